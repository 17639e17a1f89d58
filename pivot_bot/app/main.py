#!/usr/bin/env python3
"""
Main FastAPI application for the Pivot WhatsApp bot.
"""

from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from ..engine.errors import ConfigurationError
from ..schemas.io_models import HealthResponse, PaymentConfirmation, SimulatorRequest, SimulatorResponse
from ..schemas.state_models import OutboundMessage
from ..utils.logger import get_logger
from ..utils.security import mask_pii, validate_twilio_signature
from .config import Config
from .controller import Controller

log = get_logger("api")

# Initialize FastAPI app
app = FastAPI(
    title="Pivot WhatsApp Bot API",
    description="Conversation engine for restaurant onboarding and supplier setup over WhatsApp",
    version="1.0.0",
)

# Add CORS middleware (simulator UI)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_controller: Optional[Controller] = None


def get_controller() -> Controller:
    """Dependency returning the shared controller, created on first use."""
    global _controller
    if _controller is None:
        _controller = Controller()
    return _controller


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    log.error(f"[API] Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Conversation configuration error"})


def render_text(message: OutboundMessage) -> str:
    """Plain-text rendition of a message; options become a bulleted list."""
    parts = []
    if message.header:
        parts.append(message.header)
    parts.append(message.body)
    if message.options:
        parts.append("\n".join(f"• {option.label}" for option in message.options))
    return "\n\n".join(parts)


def render_twiml(messages: List[OutboundMessage]) -> str:
    body = "".join(f"<Message>{escape(render_text(m))}</Message>" for m in messages)
    return f'<?xml version="1.0" encoding="UTF-8"?><Response>{body}</Response>'


def incoming_text(params: Dict[str, str]) -> str:
    """Tapped buttons and list rows carry their option id; typed replies use Body."""
    return params.get("ButtonPayload") or params.get("ListId") or params.get("Body", "")


def public_url(request: Request) -> str:
    """URL Twilio signed; behind a proxy it comes from PUBLIC_BASE_URL."""
    if Config.PUBLIC_BASE_URL:
        query = f"?{request.url.query}" if request.url.query else ""
        return f"{Config.PUBLIC_BASE_URL}{request.url.path}{query}"
    return str(request.url)


def require_simulator_key(x_simulator_api_key: Optional[str] = Header(default=None)) -> None:
    if not Config.SIMULATOR_API_KEY or x_simulator_api_key != Config.SIMULATOR_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid simulator API key")


@app.post("/whatsapp/webhook")
async def whatsapp_webhook(request: Request, controller: Controller = Depends(get_controller)):
    """Twilio WhatsApp webhook: one inbound message in, TwiML reply out."""
    form = await request.form()
    params = {key: str(value) for key, value in form.items()}

    if not Config.SKIP_SIGNATURE_VALIDATION:
        signature = request.headers.get("X-Twilio-Signature", "")
        if not validate_twilio_signature(Config.TWILIO_AUTH_TOKEN, public_url(request), params, signature):
            log.warning(f"[API] Rejected webhook with invalid signature from {mask_pii(params.get('From', ''))}")
            raise HTTPException(status_code=403, detail="Invalid Twilio signature")

    sender = params.get("From", "")
    if not sender:
        raise HTTPException(status_code=400, detail="Missing sender")

    messages = await run_in_threadpool(controller.handle_message, sender, incoming_text(params))
    return Response(content=render_twiml(messages), media_type="application/xml")


@app.post("/simulator/message", response_model=SimulatorResponse, dependencies=[Depends(require_simulator_key)])
async def simulator_message(request: SimulatorRequest, controller: Controller = Depends(get_controller)):
    """Drive a conversation without Twilio (QA and the web simulator)."""
    messages = await run_in_threadpool(controller.handle_message, request.phone, request.message)
    state = await run_in_threadpool(controller.current_state, request.phone)
    return SimulatorResponse(phone=request.phone, state=state, messages=messages)


@app.post("/payments/confirm", response_model=SimulatorResponse, dependencies=[Depends(require_simulator_key)])
async def confirm_payment(request: PaymentConfirmation, controller: Controller = Depends(get_controller)):
    """Payment provider callback: moves a waiting conversation on."""
    messages = await run_in_threadpool(controller.confirm_payment, request.phone)
    state = await run_in_threadpool(controller.current_state, request.phone)
    return SimulatorResponse(phone=request.phone, state=state, messages=messages)


@app.get("/health", response_model=HealthResponse)
async def health_check(controller: Controller = Depends(get_controller)):
    """Health check endpoint."""
    return HealthResponse(environment=Config.ENVIRONMENT, store=controller.store.backend)


if __name__ == "__main__":
    import uvicorn
    Config.debug_print()
    uvicorn.run(app, host="0.0.0.0", port=8000)
