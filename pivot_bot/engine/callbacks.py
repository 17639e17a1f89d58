"""
Callbacks write an accepted value into the conversation context.

Each callback is registered with the context keys it reads, writes and clears.
The table uses the declarations to check placeholder coverage, and
`run_callback` rejects a callback that touches keys it did not declare.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable

from .catalog import REMINDER_PRESETS
from .errors import ConfigurationError

SUPPLIER_DRAFT_KEYS = (
    "supplierName",
    "supplierWhatsapp",
    "supplierCategories",
    "supplierReminders",
    "supplierProducts",
)

CallbackFn = Callable[[Dict[str, Any], Any], None]


@dataclass(frozen=True)
class CallbackSpec:
    name: str
    fn: CallbackFn
    reads: FrozenSet[str] = frozenset()
    writes: FrozenSet[str] = frozenset()
    clears: FrozenSet[str] = frozenset()


CALLBACKS: Dict[str, CallbackSpec] = {}


def register_callback(name: str, reads: Iterable[str] = (), writes: Iterable[str] = (), clears: Iterable[str] = ()):
    def decorator(fn: CallbackFn) -> CallbackFn:
        CALLBACKS[name] = CallbackSpec(name, fn, frozenset(reads), frozenset(writes), frozenset(clears))
        return fn
    return decorator


def run_callback(name: str, context: Dict[str, Any], value: Any) -> None:
    """Apply callback `name` to `context` in place and verify its declared footprint."""
    spec = CALLBACKS.get(name)
    if spec is None:
        raise ConfigurationError(f"unknown callback: {name}")
    before = dict(context)
    spec.fn(context, value)

    removed = set(before) - set(context)
    undeclared_removed = removed - spec.clears
    changed = {k for k in context if k not in before or context[k] is not before[k]}
    undeclared_written = changed - spec.writes
    if undeclared_removed or undeclared_written:
        problems = []
        if undeclared_removed:
            problems.append(f"callback {name} removed undeclared keys {sorted(undeclared_removed)}")
        if undeclared_written:
            problems.append(f"callback {name} wrote undeclared keys {sorted(undeclared_written)}")
        raise ConfigurationError(problems)


def _clear(context: Dict[str, Any], keys: Iterable[str]) -> None:
    for key in keys:
        context.pop(key, None)


@register_callback("set_company_name", writes=["companyName"])
def set_company_name(context, value):
    context["companyName"] = value


@register_callback("set_legal_id", writes=["legalId"])
def set_legal_id(context, value):
    context["legalId"] = value


@register_callback("set_restaurant_name", writes=["restaurantName"])
def set_restaurant_name(context, value):
    context["restaurantName"] = value


@register_callback("set_years_active", writes=["yearsActive"])
def set_years_active(context, value):
    context["yearsActive"] = int(value)


@register_callback("set_contact_name", writes=["contactName"])
def set_contact_name(context, value):
    context["contactName"] = value


@register_callback("set_contact_email", writes=["contactEmail"])
def set_contact_email(context, value):
    # the skip button leaves the e-mail unset
    if not value or value == "skip":
        return
    context["contactEmail"] = value


@register_callback("set_payment_method", writes=["paymentMethod"])
def set_payment_method(context, value):
    context["paymentMethod"] = value


@register_callback("set_supplier_categories", writes=["supplierCategories"])
def set_supplier_categories(context, value):
    if isinstance(value, dict):
        context["supplierCategories"] = list(value.get("category") or [])
    else:
        context["supplierCategories"] = [value]


@register_callback("set_supplier_contact", writes=["supplierName", "supplierWhatsapp"])
def set_supplier_contact(context, value):
    context["supplierName"] = value["name"]
    context["supplierWhatsapp"] = value["whatsapp"]


@register_callback("set_supplier_reminders", writes=["supplierReminders"])
def set_supplier_reminders(context, value):
    if isinstance(value, dict):
        context["supplierReminders"] = list(value.get("reminders") or [])
    else:
        context["supplierReminders"] = [dict(r) for r in REMINDER_PRESETS[value]["reminders"]]


@register_callback("add_supplier_products", reads=["supplierProducts"], writes=["supplierProducts"])
def add_supplier_products(context, value):
    products = {p["name"]: p for p in context.get("supplierProducts") or []}
    for product in value.get("products") or []:
        products[product["name"]] = dict(product)
    context["supplierProducts"] = list(products.values())


@register_callback(
    "set_product_pars",
    reads=["supplierProducts"],
    writes=["supplierProducts"],
)
def set_product_pars(context, value):
    pars = {p["name"]: p for p in value.get("products") or []}
    updated = []
    for product in context.get("supplierProducts") or []:
        product = dict(product)
        par = pars.get(product["name"])
        if par:
            product["parMidweek"] = par["parMidweek"]
            product["parWeekend"] = par["parWeekend"]
        updated.append(product)
    context["supplierProducts"] = updated


@register_callback(
    "archive_supplier",
    reads=SUPPLIER_DRAFT_KEYS,
    writes=["suppliersList"],
    clears=SUPPLIER_DRAFT_KEYS,
)
def archive_supplier(context, value):
    if context.get("supplierName"):
        context["suppliersList"] = list(context.get("suppliersList") or []) + [{
            "name": context.get("supplierName"),
            "whatsapp": context.get("supplierWhatsapp"),
            "categories": context.get("supplierCategories") or [],
            "reminders": context.get("supplierReminders") or [],
            "products": context.get("supplierProducts") or [],
        }]
    _clear(context, SUPPLIER_DRAFT_KEYS)


@register_callback("clear_supplier_draft", clears=SUPPLIER_DRAFT_KEYS)
def clear_supplier_draft(context, value):
    _clear(context, SUPPLIER_DRAFT_KEYS)
