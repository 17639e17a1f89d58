"""
Direct validators.

A validator turns the raw reply of the user into a value for the state's
callback. Each one parses the text with the rule-based parsers and then checks
the result with the domain models. Validators are pure: no I/O, and bad input
comes back as `Invalid` instead of an exception.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Type, Union

from pydantic import BaseModel, ValidationError

from ..nlu import parsers
from ..schemas import domain
from ..schemas.state_models import FieldError
from .catalog import category_label
from .errors import ConfigurationError

CATEGORY_REQUIRED = "יש לבחור לפחות קטגוריה אחת"
CATEGORY_TAKEN = "כבר הוגדר ספק לקטגוריות"
REMINDERS_REQUIRED = "לא זיהינו ימים ושעות סגירה, לדוגמה: ראשון וחמישי ב-11:00"
PRODUCTS_REQUIRED = "לא זיהינו מוצרים, יש לרשום לפי הפורמט: ק\"ג: עגבניות, מלפפון"
PARS_MISSING = "חסרות כמויות בסיס עבור"


@dataclass(frozen=True)
class Valid:
    value: Any


@dataclass(frozen=True)
class Invalid:
    errors: List[FieldError]

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.errors]


ValidationResult = Union[Valid, Invalid]
ValidatorFn = Callable[[str, Dict[str, Any]], ValidationResult]

VALIDATORS: Dict[str, ValidatorFn] = {}


def register_validator(name: str):
    def decorator(fn: ValidatorFn) -> ValidatorFn:
        VALIDATORS[name] = fn
        return fn
    return decorator


def validate(name: str, raw: str, context: Dict[str, Any]) -> ValidationResult:
    """Run the validator registered under `name` against the raw reply."""
    fn = VALIDATORS.get(name)
    if fn is None:
        raise ConfigurationError(f"unknown validator: {name}")
    return fn(raw or "", context)


def errors_from_exception(exc: ValidationError, default_field: str = "value") -> List[FieldError]:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        errors.append(FieldError(field=loc or default_field, message=err["msg"]))
    return errors


def check_model(model: Type[BaseModel], data: Dict[str, Any], default_field: str = "value") -> ValidationResult:
    try:
        instance = model.model_validate(data)
    except ValidationError as exc:
        return Invalid(errors_from_exception(exc, default_field))
    return Valid(instance)


def _single(model: Type[BaseModel], field_name: str, raw: str) -> ValidationResult:
    result = check_model(model, {field_name: raw.strip()}, field_name)
    if isinstance(result, Invalid):
        return result
    return Valid(getattr(result.value, field_name))


def _dump(result: ValidationResult) -> ValidationResult:
    if isinstance(result, Invalid):
        return result
    return Valid(result.value.model_dump(mode="json", by_alias=True))


@register_validator("text")
def validate_text(raw, context):
    return _single(domain.TextAnswer, "text", raw)


@register_validator("legal_name")
def validate_legal_name(raw, context):
    return _single(domain.LegalNameAnswer, "legal_name", raw)


@register_validator("legal_id")
def validate_legal_id(raw, context):
    return _single(domain.LegalIdAnswer, "legal_id", raw)


@register_validator("restaurant_name")
def validate_restaurant_name(raw, context):
    return _single(domain.RestaurantNameAnswer, "restaurant_name", raw)


@register_validator("years_active")
def validate_years_active(raw, context):
    return _single(domain.YearsActiveAnswer, "years_active", raw)


@register_validator("person_name")
def validate_person_name(raw, context):
    return _single(domain.PersonNameAnswer, "name", raw)


@register_validator("email")
def validate_email(raw, context):
    return _single(domain.EmailAnswer, "email", raw)


def covered_categories(context: Dict[str, Any]) -> List[str]:
    """Categories already handled by suppliers saved earlier in this conversation."""
    covered: List[str] = []
    for supplier in context.get("suppliersList") or []:
        for category in supplier.get("categories") or []:
            if category not in covered:
                covered.append(category)
    return covered


# Checks that need the conversation context, keyed by the value's schema name.
# They run on validator output and on AI-extracted values alike.
CrossCheckFn = Callable[[Dict[str, Any], Dict[str, Any]], List[FieldError]]

CROSS_CHECKS: Dict[str, CrossCheckFn] = {}


def register_cross_check(schema_name: str):
    def decorator(fn: CrossCheckFn) -> CrossCheckFn:
        CROSS_CHECKS[schema_name] = fn
        return fn
    return decorator


def cross_check(schema_name: str, value: Dict[str, Any], context: Dict[str, Any]) -> ValidationResult:
    fn = CROSS_CHECKS.get(schema_name)
    errors = fn(value, context) if fn else []
    return Invalid(errors) if errors else Valid(value)


@register_cross_check("SupplierCategories")
def check_categories_not_taken(value, context):
    covered = covered_categories(context)
    taken = [c for c in value.get("category") or [] if c in covered]
    if not taken:
        return []
    labels = ", ".join(category_label(c) for c in taken)
    return [FieldError(field="category", message=f"{CATEGORY_TAKEN}: {labels}")]


@register_cross_check("ProductPars")
def check_pars_cover_drafts(value, context):
    given = {p.get("name") for p in value.get("products") or []}
    drafts = [p.get("name") for p in context.get("supplierProducts") or []]
    missing = [name for name in drafts if name not in given]
    if not missing:
        return []
    return [FieldError(field="products", message=f"{PARS_MISSING}: {', '.join(missing)}")]


@register_validator("supplier_category")
def validate_supplier_category(raw, context):
    categories = parsers.parse_categories(raw)
    if not categories:
        return Invalid([FieldError(field="category", message=CATEGORY_REQUIRED)])
    result = _dump(check_model(domain.SupplierCategories, {"category": categories}, "category"))
    if isinstance(result, Invalid):
        return result
    return cross_check("SupplierCategories", result.value, context)


@register_validator("supplier_contact")
def validate_supplier_contact(raw, context):
    contact = parsers.parse_contact(raw)
    errors = []
    if "name" not in contact:
        errors.append(FieldError(field="name", message=domain.NAME_TOO_SHORT))
    if "whatsapp" not in contact:
        errors.append(FieldError(field="whatsapp", message=domain.WHATSAPP_INVALID))
    if errors:
        return Invalid(errors)
    return _dump(check_model(domain.SupplierContact, contact))


@register_validator("supplier_reminders")
def validate_supplier_reminders(raw, context):
    reminders = parsers.parse_reminders(raw)
    if not reminders:
        return Invalid([FieldError(field="reminders", message=REMINDERS_REQUIRED)])
    return _dump(check_model(domain.SupplierReminders, {"reminders": reminders}, "reminders"))


@register_validator("product_list")
def validate_product_list(raw, context):
    products = parsers.parse_product_list(raw)
    if not products:
        return Invalid([FieldError(field="products", message=PRODUCTS_REQUIRED)])
    return _dump(check_model(domain.ProductList, {"products": products}, "products"))


@register_validator("product_pars")
def validate_product_pars(raw, context):
    pars = parsers.parse_product_pars(raw)
    if not pars and not context.get("supplierProducts"):
        return Invalid([FieldError(field="products", message=PRODUCTS_REQUIRED)])
    result = _dump(check_model(domain.ProductPars, {"products": pars}, "products"))
    missing = check_pars_cover_drafts({"products": pars}, context)
    if missing:
        previous = result.errors if isinstance(result, Invalid) else []
        return Invalid([e for e in previous if e.field != "products"] + missing)
    return result
