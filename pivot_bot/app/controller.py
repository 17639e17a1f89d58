"""Controller: runs one inbound WhatsApp message through the conversation engine.

The controller owns everything the engine does not: loading and saving the
conversation, global commands (reset, menu), running actions before a turn is
committed, and the transcript.
"""
from typing import List, Optional

from ..engine.table import load_default_table
from ..engine.transition import TransitionEngine
from ..schemas.state_models import OutboundMessage, StateId
from ..utils.logger import get_logger
from ..utils.security import mask_pii
from .actions import ActionError, ActionExecutor
from .config import Config
from .extractor import build_extractor
from .session import ConversationStore

log = get_logger("controller")

RESET_COMMAND = "reset_pivot"
ESCAPE_COMMANDS = {
    "menu": StateId.IDLE,
    "תפריט": StateId.IDLE,
    "תפריט ראשי": StateId.IDLE,
    "עזרה": StateId.IDLE,
}
# Global commands are ignored until the restaurant is registered
ONBOARDING_STATES = frozenset({
    StateId.INIT,
    StateId.ONBOARDING_COMPANY_NAME,
    StateId.ONBOARDING_LEGAL_ID,
    StateId.ONBOARDING_RESTAURANT_NAME,
    StateId.ONBOARDING_YEARS_ACTIVE,
    StateId.ONBOARDING_CONTACT_NAME,
    StateId.ONBOARDING_CONTACT_EMAIL,
    StateId.ONBOARDING_PAYMENT_METHOD,
    StateId.WAITING_FOR_PAYMENT,
})
ACTION_FAILED_MESSAGE = "⚠️ אירעה שגיאה בשמירת הנתונים. אנא נסו לשלוח את התשובה שוב בעוד מספר רגעים."
PAYMENT_EVENT = "payment_confirmed"


class Controller:
    def __init__(
        self,
        engine: Optional[TransitionEngine] = None,
        store: Optional[ConversationStore] = None,
        executor: Optional[ActionExecutor] = None,
    ):
        self.engine = engine or TransitionEngine(load_default_table(), extractor=build_extractor())
        self.store = store or ConversationStore()
        self.executor = executor or ActionExecutor()

    def current_state(self, conversation_id: str) -> Optional[str]:
        conversation = self.store.get(conversation_id)
        return conversation["currentState"] if conversation else None

    def handle_message(self, conversation_id: str, body: str) -> List[OutboundMessage]:
        text = (body or "").strip()
        log.info(f"[WORKFLOW] 1. Message from {mask_pii(conversation_id)}: '{mask_pii(text)}'")

        with self.store.lock(conversation_id):
            conversation = self.store.get(conversation_id)

            if conversation is None or text.lower() == RESET_COMMAND:
                context = self.engine.initial_context(conversation_id, Config.PAYMENT_LINK)
                if conversation is None:
                    conversation = self.store.create(conversation_id, StateId.INIT.value, context)
                else:
                    conversation = self.store.reset(conversation_id, StateId.INIT.value, context)
                return self._reply(conversation_id, conversation, text, StateId.INIT)

            state_id = self.engine.table.lookup(conversation["currentState"]).id
            escape = ESCAPE_COMMANDS.get(text.lower())
            if escape and state_id not in ONBOARDING_STATES:
                log.info(f"[WORKFLOW] 2. Escape command '{text}' -> {escape.value}")
                conversation["currentState"] = escape.value
                return self._reply(conversation_id, conversation, text, escape)

            log.info(f"[WORKFLOW] 2. Processing turn at {state_id.value}")
            result = self.engine.process_turn(state_id, conversation["context"], text)

            if result.action is not None:
                try:
                    self.executor.execute(result.action)
                except ActionError as e:
                    log.error(f"[ACTION] {e}; turn not committed, staying at {state_id.value}")
                    apology = OutboundMessage(body=ACTION_FAILED_MESSAGE)
                    self.store.append_message(conversation, "user", text, state_id.value)
                    self.store.append_message(conversation, "assistant", apology.body, state_id.value)
                    self.store.save(conversation_id, conversation)
                    return [apology]

            self.store.append_message(conversation, "user", text, state_id.value)
            conversation["currentState"] = result.next_state_id.value
            conversation["context"] = result.context
            self.store.append_message(conversation, "assistant", result.outbound.body, result.next_state_id.value)
            self.store.save(conversation_id, conversation)
            log.info(f"[WORKFLOW] 3. {state_id.value} -> {result.next_state_id.value} (failed={result.validation_failed})")
            return [result.outbound]

    def confirm_payment(self, conversation_id: str) -> List[OutboundMessage]:
        """Feed the payment provider's confirmation into a waiting conversation."""
        with self.store.lock(conversation_id):
            conversation = self.store.get(conversation_id)
            if conversation is None:
                log.warning(f"[WORKFLOW] Payment confirmed for unknown conversation {mask_pii(conversation_id)}")
                return []
            state_id = self.engine.table.lookup(conversation["currentState"]).id
            result = self.engine.process_event(state_id, conversation["context"], PAYMENT_EVENT)
            if result.next_state_id == state_id:
                return []
            if result.action is not None:
                try:
                    self.executor.execute(result.action)
                except ActionError as e:
                    log.error(f"[ACTION] {e}; payment event not committed")
                    return []
            conversation["currentState"] = result.next_state_id.value
            conversation["context"] = result.context
            self.store.append_message(conversation, "assistant", result.outbound.body, result.next_state_id.value)
            self.store.save(conversation_id, conversation)
            log.info(f"[WORKFLOW] Payment confirmed: {state_id.value} -> {result.next_state_id.value}")
            return [result.outbound]

    def _reply(self, conversation_id, conversation, text, state_id: StateId) -> List[OutboundMessage]:
        """Render `state_id` as the answer to `text` and persist the conversation."""
        outbound = self.engine.render(state_id, conversation["context"])
        if text:
            self.store.append_message(conversation, "user", text, state_id.value)
        self.store.append_message(conversation, "assistant", outbound.body, state_id.value)
        self.store.save(conversation_id, conversation)
        return [outbound]
