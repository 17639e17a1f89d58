"""Pydantic models describing conversation states and the results of a turn."""
from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

OK_TOKEN = "ok"
AI_VALID_TOKEN = "aiValid"
SKIP_TOKEN = "skip"


class StateId(str, Enum):
    INIT = "INIT"
    ONBOARDING_COMPANY_NAME = "ONBOARDING_COMPANY_NAME"
    ONBOARDING_LEGAL_ID = "ONBOARDING_LEGAL_ID"
    ONBOARDING_RESTAURANT_NAME = "ONBOARDING_RESTAURANT_NAME"
    ONBOARDING_YEARS_ACTIVE = "ONBOARDING_YEARS_ACTIVE"
    ONBOARDING_CONTACT_NAME = "ONBOARDING_CONTACT_NAME"
    ONBOARDING_CONTACT_EMAIL = "ONBOARDING_CONTACT_EMAIL"
    ONBOARDING_PAYMENT_METHOD = "ONBOARDING_PAYMENT_METHOD"
    WAITING_FOR_PAYMENT = "WAITING_FOR_PAYMENT"
    SETUP_SUPPLIERS_START = "SETUP_SUPPLIERS_START"
    SUPPLIER_CATEGORY = "SUPPLIER_CATEGORY"
    SUPPLIER_CONTACT = "SUPPLIER_CONTACT"
    SUPPLIER_REMINDERS = "SUPPLIER_REMINDERS"
    PRODUCTS_LIST = "PRODUCTS_LIST"
    PRODUCTS_BASE_QTY = "PRODUCTS_BASE_QTY"
    SETUP_SUPPLIERS_ADDITIONAL = "SETUP_SUPPLIERS_ADDITIONAL"
    RESTAURANT_FINISHED = "RESTAURANT_FINISHED"
    IDLE = "IDLE"


class ActionType(str, Enum):
    CREATE_RESTAURANT = "CREATE_RESTAURANT"
    ACTIVATE_RESTAURANT = "ACTIVATE_RESTAURANT"
    CREATE_SUPPLIER = "CREATE_SUPPLIER"


class Option(BaseModel):
    """A button or list row; `id` is the token sent back when it is tapped."""
    model_config = ConfigDict(frozen=True)

    label: str
    id: str


class Template(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["text", "button", "list", "card"] = "text"
    body: str
    options: List[Option] = Field(default_factory=list)
    header: Optional[str] = None


class AIValidation(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    instruction: str
    schema_name: str


class BaseState(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: StateId
    description: str = ""
    message: Optional[str] = None
    template: Optional[Template] = None
    callback: Optional[str] = None
    action: Optional[ActionType] = None
    validation_message: Optional[str] = None
    next_state: Dict[str, StateId] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _one_prompt(self):
        if (self.message is None) == (self.template is None):
            raise ValueError(f"{self.id.value}: exactly one of message or template is required")
        return self

    @property
    def options(self) -> List[Option]:
        return list(self.template.options) if self.template else []

    @property
    def option_ids(self) -> List[str]:
        return [o.id for o in self.options]

    @property
    def prompt_texts(self) -> List[str]:
        if self.template:
            return [t for t in (self.template.body, self.template.header) if t]
        return [self.message]

    def accepted_tokens(self) -> FrozenSet[str]:
        """Tokens this state can produce; next_state may only use these."""
        return frozenset(self.option_ids)


class InputState(BaseState):
    kind: Literal["input"] = "input"
    validator: Optional[str] = None
    ai_validation: Optional[AIValidation] = None

    @model_validator(mode="after")
    def _has_validation(self):
        if not self.validator and not self.ai_validation:
            raise ValueError(f"{self.id.value}: input state needs a validator or ai_validation")
        return self

    def accepted_tokens(self) -> FrozenSet[str]:
        tokens = set(self.option_ids)
        if self.validator:
            tokens.add(OK_TOKEN)
        if self.ai_validation:
            tokens.add(AI_VALID_TOKEN)
        return frozenset(tokens)


class ChoiceState(BaseState):
    kind: Literal["choice"] = "choice"

    @model_validator(mode="after")
    def _has_options(self):
        if not self.option_ids:
            raise ValueError(f"{self.id.value}: choice state needs a template with options")
        return self


class WaitState(BaseState):
    kind: Literal["wait"] = "wait"
    events: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _has_events(self):
        if not self.events:
            raise ValueError(f"{self.id.value}: wait state needs at least one event")
        return self

    def accepted_tokens(self) -> FrozenSet[str]:
        return frozenset(self.events)


class TerminalState(BaseState):
    kind: Literal["terminal"] = "terminal"

    @model_validator(mode="after")
    def _no_exits(self):
        if self.next_state:
            raise ValueError(f"{self.id.value}: terminal state cannot declare next_state")
        return self


StateDefinition = Annotated[
    Union[InputState, ChoiceState, WaitState, TerminalState],
    Field(discriminator="kind"),
]


class FieldError(BaseModel):
    field: str
    message: str


class OutboundMessage(BaseModel):
    kind: Literal["text", "button", "list", "card"] = "text"
    body: str
    options: List[Option] = Field(default_factory=list)
    header: Optional[str] = None


class Action(BaseModel):
    type: ActionType
    state_id: StateId
    payload: Dict[str, Any] = Field(default_factory=dict)


class TurnResult(BaseModel):
    next_state_id: StateId
    context: Dict[str, Any]
    outbound: OutboundMessage
    action: Optional[Action] = None
    validation_failed: bool = False
    token: Optional[str] = None
    errors: List[FieldError] = Field(default_factory=list)
