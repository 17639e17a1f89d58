"""
Transition engine.

`process_turn` takes the current state id, the conversation context and the
raw text the user sent, and returns a TurnResult with the next state, the
updated context, the message to send back and an optional action for the host.
The engine keeps no per-conversation state and never mutates the caller's
context.

Turn order:
    1. exact option id match (buttons and list rows)
    2. AI extraction, when the state declares it and an extractor is configured
    3. direct validator
    4. callback, then the next_state entry for the resolved token
"""
import asyncio
import concurrent.futures
import copy
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from ..schemas.state_models import (
    AI_VALID_TOKEN,
    OK_TOKEN,
    BaseState,
    FieldError,
    InputState,
    OutboundMessage,
    StateId,
    TerminalState,
    TurnResult,
    WaitState,
)
from ..utils.logger import get_logger
from ..utils.security import mask_pii
from .actions import build_action
from .callbacks import run_callback
from .extraction import (
    EXTRACTION_SCHEMAS,
    INVALID_OUTPUT,
    UNAVAILABLE,
    BaseExtractor,
    ExtractedValue,
    ExtractionResult,
    NoConfidentExtraction,
)
from .table import StateTable
from .templating import render_state, render_with_body
from .validators import Valid, cross_check, validate

log = get_logger("engine")

# Timeouts and cancellations of the extraction call, sync or async
EXTRACTION_INTERRUPTED = (
    TimeoutError,
    asyncio.TimeoutError,
    asyncio.CancelledError,
    concurrent.futures.TimeoutError,
    concurrent.futures.CancelledError,
)

DEFAULT_VALIDATION_MESSAGE = "⚠️ הקלט שהזנת אינו תקין. אנא נסה שוב."
GENERIC_RETRY_MESSAGE = "⚠️ מצטערים, לא הצלחנו לעבד את התשובה כרגע. אנא נסה שוב בעוד מספר רגעים."

StateRef = Union[StateId, str]


class TransitionEngine:
    def __init__(self, table: StateTable, extractor: Optional[BaseExtractor] = None):
        self.table = table
        self.extractor = extractor

    @staticmethod
    def initial_context(contact_number: str, payment_link: str = "") -> Dict[str, Any]:
        return {"contactNumber": contact_number, "paymentLink": payment_link}

    def render(self, state_id: StateRef, context: Dict[str, Any]) -> OutboundMessage:
        return render_state(self.table.lookup(state_id), context or {})

    def process_turn(self, state_id: StateRef, context: Dict[str, Any], raw_input: str) -> TurnResult:
        state = self.table.lookup(state_id)
        working = copy.deepcopy(context or {})
        text = (raw_input or "").strip()

        if isinstance(state, (TerminalState, WaitState)):
            log.info(f"[ENGINE] {state.id.value}: {state.kind} state ignores user text")
            return TurnResult(next_state_id=state.id, context=working, outbound=render_state(state, working))

        if text in state.option_ids:
            log.info(f"[ENGINE] {state.id.value}: option '{text}' selected")
            return self._advance(state, working, text, text)

        token, value, errors, unavailable = None, None, [], False
        if isinstance(state, InputState):
            token, value, errors, unavailable = self._resolve_input(state, working, text)
        if token is None:
            return self._failure(state, working, errors, unavailable)
        return self._advance(state, working, token, value)

    def process_event(self, state_id: StateRef, context: Dict[str, Any], event: str) -> TurnResult:
        """Resolve an external event (e.g. payment_confirmed) for a wait state."""
        state = self.table.lookup(state_id)
        working = copy.deepcopy(context or {})
        if not isinstance(state, WaitState) or event not in state.events:
            log.warning(f"[ENGINE] {state.id.value}: event '{event}' not accepted here")
            return TurnResult(next_state_id=state.id, context=working, outbound=render_state(state, working))
        return self._advance(state, working, event, event)

    def _resolve_input(
        self, state: InputState, context: Dict[str, Any], text: str
    ) -> Tuple[Optional[str], Any, List[FieldError], bool]:
        unavailable = False
        errors: List[FieldError] = []
        if state.ai_validation:
            if self.extractor is None:
                unavailable = True
            elif text:
                result = self._extract(state, context, text)
                if isinstance(result, ExtractedValue):
                    checked = cross_check(state.ai_validation.schema_name, result.data, context)
                    if isinstance(checked, Valid):
                        return AI_VALID_TOKEN, checked.value, [], False
                    # treated as no confident extraction
                    log.info(f"[ENGINE] {state.id.value}: extracted value rejected: {checked.messages}")
                    errors = checked.errors
                else:
                    unavailable = result.reason == UNAVAILABLE

        if state.validator:
            outcome = validate(state.validator, text, context)
            if isinstance(outcome, Valid):
                return OK_TOKEN, outcome.value, [], unavailable
            log.info(f"[ENGINE] {state.id.value}: validator '{state.validator}' rejected '{mask_pii(text)}'")
            return None, None, outcome.errors, unavailable
        return None, None, errors, unavailable

    def _extract(self, state: InputState, context: Dict[str, Any], text: str) -> ExtractionResult:
        schema = EXTRACTION_SCHEMAS[state.ai_validation.schema_name]
        try:
            result = self.extractor.extract(state.ai_validation.instruction, schema, text, copy.deepcopy(context))
        except EXTRACTION_INTERRUPTED as e:
            log.warning(f"[EXTRACTOR] {state.id.value}: extraction did not finish ({e!r})")
            return NoConfidentExtraction(UNAVAILABLE, str(e))

        if isinstance(result, ExtractedValue):
            # normalise so AI values have the same shape as validator values
            try:
                data = schema.model_validate(result.data).model_dump(mode="json", by_alias=True)
            except ValidationError as e:
                log.warning(f"[EXTRACTOR] {state.id.value}: data does not match {schema.__name__}")
                return NoConfidentExtraction(INVALID_OUTPUT, str(e))
            log.info(f"[EXTRACTOR] {state.id.value}: extracted {schema.__name__}")
            return ExtractedValue(data)

        log.info(f"[EXTRACTOR] {state.id.value}: no confident extraction ({result.reason})")
        return result

    def _failure(self, state: BaseState, context: Dict[str, Any], errors: List[FieldError], unavailable: bool) -> TurnResult:
        has_validator = isinstance(state, InputState) and bool(state.validator)
        if unavailable and not has_validator:
            body = GENERIC_RETRY_MESSAGE
        elif state.validation_message:
            body = state.validation_message
        elif errors:
            body = "\n".join(f"⚠️ {e.message}" for e in errors)
        else:
            body = DEFAULT_VALIDATION_MESSAGE
        return TurnResult(
            next_state_id=state.id,
            context=context,
            outbound=render_with_body(state, body),
            validation_failed=True,
            errors=errors,
        )

    def _advance(self, state: BaseState, context: Dict[str, Any], token: str, value: Any) -> TurnResult:
        if state.callback:
            run_callback(state.callback, context, value)

        target = state.next_state.get(token)
        next_state = self.table.lookup(target) if target is not None else state
        if target is None:
            log.info(f"[ENGINE] {state.id.value}: no transition for '{token}', staying")

        action = build_action(state.action, state.id, context) if state.action else None
        if action:
            log.info(f"[ACTION] {state.id.value}: emitting {action.type.value}")

        log.info(f"[WORKFLOW] {state.id.value} --{token}--> {next_state.id.value}")
        return TurnResult(
            next_state_id=next_state.id,
            context=context,
            outbound=render_state(next_state, context),
            action=action,
            token=token,
        )
