"""Build side-effect requests (actions) from a snapshot of the conversation context."""
import copy
from typing import Any, Dict, Tuple

from ..schemas.state_models import Action, ActionType, StateId

# Context fields copied into each action payload
ACTION_FIELDS: Dict[ActionType, Tuple[str, ...]] = {
    ActionType.CREATE_RESTAURANT: (
        "companyName",
        "legalId",
        "restaurantName",
        "yearsActive",
        "contactName",
        "contactEmail",
        "contactNumber",
        "paymentMethod",
    ),
    ActionType.ACTIVATE_RESTAURANT: ("legalId",),
    ActionType.CREATE_SUPPLIER: (
        "legalId",
        "supplierName",
        "supplierWhatsapp",
        "supplierCategories",
        "supplierReminders",
        "supplierProducts",
    ),
}


def build_action(action_type: ActionType, state_id: StateId, context: Dict[str, Any]) -> Action:
    """Snapshot the fields this action needs; later context changes do not leak in."""
    payload = {
        key: copy.deepcopy(context[key])
        for key in ACTION_FIELDS[action_type]
        if key in context
    }
    return Action(type=action_type, state_id=state_id, payload=payload)
