"""Pydantic models for the HTTP API."""
from pydantic import BaseModel, Field
from typing import List, Optional

from .state_models import OutboundMessage

class SimulatorRequest(BaseModel):
    phone: str = Field(min_length=3)
    message: str = ""

class SimulatorResponse(BaseModel):
    phone: str
    state: Optional[str] = None
    messages: List[OutboundMessage] = Field(default_factory=list)

class PaymentConfirmation(BaseModel):
    phone: str = Field(min_length=3)

class HealthResponse(BaseModel):
    status: str = "ok"
    environment: str
    store: str
