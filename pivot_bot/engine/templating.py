"""Render state prompts by filling `{field}` placeholders from the conversation context."""
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Set

from ..schemas.state_models import BaseState, OutboundMessage
from ..utils.logger import get_logger
from .catalog import category_label, unit_label

log = get_logger("templating")

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class Renderer:
    """A placeholder computed from other context fields."""
    name: str
    fn: Callable[[Dict[str, Any]], str]
    reads: FrozenSet[str] = frozenset()


RENDERERS: Dict[str, Renderer] = {}


def register_renderer(name: str, reads=()):
    def decorator(fn):
        RENDERERS[name] = Renderer(name, fn, frozenset(reads))
        return fn
    return decorator


@register_renderer("productList", reads=["supplierProducts"])
def render_product_list(context: Dict[str, Any]) -> str:
    lines = []
    for product in context.get("supplierProducts") or []:
        emoji = product.get("emoji") or "📦"
        lines.append(f"{emoji} {product.get('name')} ({unit_label(product.get('unit', 'other'))}) - ")
    return "\n".join(lines)


@register_renderer("categoryList", reads=["supplierCategories"])
def render_category_list(context: Dict[str, Any]) -> str:
    return ", ".join(category_label(c) for c in context.get("supplierCategories") or [])


def placeholders(text: str) -> Set[str]:
    return set(PLACEHOLDER_PATTERN.findall(text or ""))


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(format_value(v) for v in value)
    return str(value)


def substitute(text: str, context: Dict[str, Any], state_id: str = "") -> str:
    """Replace every `{field}`; missing fields render empty and are logged."""
    def replace(match):
        key = match.group(1)
        if key in RENDERERS:
            return RENDERERS[key].fn(context)
        if key not in context:
            log.warning(f"[ENGINE] Missing placeholder '{key}' while rendering {state_id}")
            return ""
        return format_value(context[key])

    return PLACEHOLDER_PATTERN.sub(replace, text or "")


def render_state(state: BaseState, context: Dict[str, Any]) -> OutboundMessage:
    state_id = state.id.value
    if state.template is None:
        return OutboundMessage(kind="text", body=substitute(state.message, context, state_id))
    template = state.template
    return OutboundMessage(
        kind=template.kind,
        body=substitute(template.body, context, state_id),
        options=list(template.options),
        header=substitute(template.header, context, state_id) if template.header else None,
    )


def render_with_body(state: BaseState, body: str) -> OutboundMessage:
    """Re-send the state's options under a different body (used for re-prompts)."""
    kind = state.template.kind if state.template else "text"
    return OutboundMessage(kind=kind, body=body, options=state.options)
