"""
State table: parses state definitions and checks the graph before any turn runs.

Checks performed on load:
    - every next_state target is defined (closed world) and INIT exists
    - every next_state key is a token the state can actually produce
    - validator, callback, extraction schema and renderer names resolve
    - every `{field}` in a prompt is computed, seeded by the host, or written
      by a callback on some path from INIT to the state
All problems are collected and raised together as one ConfigurationError.
"""
from functools import lru_cache
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from ..schemas.state_models import BaseState, InputState, StateDefinition, StateId
from .callbacks import CALLBACKS
from .errors import ConfigurationError, UnknownState
from .extraction import EXTRACTION_SCHEMAS
from .states import STATE_DEFINITIONS
from .templating import RENDERERS, placeholders
from .validators import VALIDATORS

# Fields the host puts into every new conversation context
SEEDED_FIELDS = frozenset({"contactNumber", "paymentLink"})

_DEFINITIONS_ADAPTER = TypeAdapter(List[StateDefinition])


class StateTable:
    """An immutable, verified set of states keyed by StateId."""

    def __init__(self, states: Iterable[BaseState], verify: bool = True):
        self._states: Dict[StateId, BaseState] = {}
        duplicates = []
        for state in states:
            if state.id in self._states:
                duplicates.append(f"duplicate state id: {state.id.value}")
            self._states[state.id] = state
        if duplicates:
            raise ConfigurationError(duplicates)
        if verify:
            self.verify()

    @classmethod
    def from_data(cls, definitions: List[Dict[str, Any]]) -> "StateTable":
        try:
            states = _DEFINITIONS_ADAPTER.validate_python(definitions)
        except ValidationError as exc:
            problems = []
            for err in exc.errors():
                loc = ".".join(str(part) for part in err.get("loc", ()))
                problems.append(f"{loc}: {err['msg']}")
            raise ConfigurationError(problems) from exc
        return cls(states)

    def __contains__(self, state_id) -> bool:
        return self._coerce(state_id) in self._states

    def __iter__(self) -> Iterator[BaseState]:
        return iter(self._states.values())

    def __len__(self) -> int:
        return len(self._states)

    @staticmethod
    def _coerce(state_id: Union[StateId, str]) -> Optional[StateId]:
        if isinstance(state_id, StateId):
            return state_id
        try:
            return StateId(state_id)
        except ValueError:
            return None

    def lookup(self, state_id: Union[StateId, str]) -> BaseState:
        key = self._coerce(state_id)
        if key is None or key not in self._states:
            raise UnknownState(getattr(state_id, "value", state_id))
        return self._states[key]

    def transitions(self) -> Iterator[Tuple[StateId, str, StateId]]:
        for state in self._states.values():
            for token, target in state.next_state.items():
                yield state.id, token, target

    def reachable_from(self, start: StateId = StateId.INIT) -> Set[StateId]:
        seen = {start}
        stack = [start]
        while stack:
            state = self._states.get(stack.pop())
            if state is None:
                continue
            for target in state.next_state.values():
                if target not in seen:
                    seen.add(target)
                    stack.append(target)
        return seen

    def fields_available(self) -> Dict[StateId, Set[str]]:
        """
        Context fields that may be present when each state is rendered.

        Union over all paths from INIT: a field counts when the callback of
        some earlier state on some path writes it.
        """
        available: Dict[StateId, Set[str]] = {sid: set() for sid in self._states}
        if StateId.INIT in available:
            available[StateId.INIT] = set(SEEDED_FIELDS)
        changed = True
        while changed:
            changed = False
            for source, _token, target in self.transitions():
                if source not in available or target not in available:
                    continue
                state = self._states[source]
                outgoing = set(available[source])
                if state.callback in CALLBACKS:
                    outgoing |= CALLBACKS[state.callback].writes
                if not outgoing <= available[target]:
                    available[target] |= outgoing
                    changed = True
        return available

    def find_problems(self) -> List[str]:
        problems: List[str] = []
        if StateId.INIT not in self._states:
            problems.append("INIT state is missing")

        for state in self._states.values():
            sid = state.id.value
            accepted = state.accepted_tokens()
            for token, target in state.next_state.items():
                if target not in self._states:
                    problems.append(f"{sid}: next_state '{token}' targets undefined state {target.value}")
                if token not in accepted:
                    problems.append(f"{sid}: next_state token '{token}' can never be produced (accepted: {sorted(accepted)})")
            if state.callback and state.callback not in CALLBACKS:
                problems.append(f"{sid}: unknown callback '{state.callback}'")
            if isinstance(state, InputState):
                if state.validator and state.validator not in VALIDATORS:
                    problems.append(f"{sid}: unknown validator '{state.validator}'")
                if state.ai_validation and state.ai_validation.schema_name not in EXTRACTION_SCHEMAS:
                    problems.append(f"{sid}: unknown extraction schema '{state.ai_validation.schema_name}'")

        available = self.fields_available()
        for state in self._states.values():
            used: Set[str] = set()
            for text in state.prompt_texts:
                used |= placeholders(text)
            for field in sorted(used):
                if field in RENDERERS or field in SEEDED_FIELDS:
                    continue
                if field not in available.get(state.id, set()):
                    problems.append(f"{state.id.value}: placeholder '{{{field}}}' is never written before this state")
        return problems

    def verify(self) -> None:
        problems = self.find_problems()
        if problems:
            raise ConfigurationError(problems)


@lru_cache(maxsize=1)
def load_default_table() -> StateTable:
    return StateTable.from_data(STATE_DEFINITIONS)
