"""Domain models for onboarding answers, supplier drafts and persisted records."""
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from ..engine.catalog import CATEGORIES, UNITS
from ..nlu.parsers import normalize_whatsapp

LEGAL_ID_PATTERN = re.compile(r"^\d{9}$")
WHATSAPP_PATTERN = re.compile(r"^05\d{8}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

Weekday = Literal["sun", "mon", "tue", "wed", "thu", "fri", "sat"]

TEXT_TOO_SHORT = "שדה זה אינו יכול להיות ריק"
LEGAL_NAME_TOO_SHORT = "השם החוקי של המסעדה חייב להיות באורך של לפחות 2 תווים"
RESTAURANT_NAME_TOO_SHORT = "שם המסעדה חייב להיות באורך של לפחות 2 תווים"
NAME_TOO_SHORT = "שם חייב להיות באורך של לפחות 2 תווים"
PRODUCT_NAME_TOO_SHORT = "שם המוצר חייב להיות באורך של לפחות 2 תווים"
CATEGORY_TOO_SHORT = "שם הקטגוריה חייב להיות לפחות 2 תווים"
LEGAL_ID_INVALID = "מספר ח.פ של המסעדה חייב להיות באורך של 9 ספרות בלבד, לדוגמה: 123456789"
WHATSAPP_INVALID = "מספר הוואטסאפ לא תקין, יש לכתוב מספר ללא תווים נוספים לדוגמה: 0541234567"
EMAIL_INVALID = "כתובת האימייל אינה תקינה, לדוגמה: name@example.com"
YEARS_INVALID = "מספר השנים חייב להיות מספר שלם בין 0 ל-100"
HOUR_INVALID = "שעת סגירה חייבת להיות בין 0 ל-23"
MINUTE_INVALID = "הדקות חייבות להיות בין 0 ל-59"
DUPLICATE_DAY = "לא ניתן להגדיר יותר מזמן סגירה אחד ביום"
UNIT_INVALID = "יחידת מידה לא מוכרת, לדוגמה: ק\"ג, גרם, ליטר, יח', ארגז או אחר"
PAR_INVALID = "כמות הבסיס חייבת להיות גדולה מ-0"


def min_text(value: str, message: str, length: int = 2) -> str:
    value = (value or "").strip()
    if len(value) < length:
        raise PydanticCustomError("too_short", message)
    return value


def check_legal_id(value: str) -> str:
    value = (value or "").strip()
    if not value.isascii() or not LEGAL_ID_PATTERN.match(value):
        raise PydanticCustomError("legal_id", LEGAL_ID_INVALID)
    return value


def as_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def check_whatsapp(value: str) -> str:
    value = normalize_whatsapp(value)
    if not WHATSAPP_PATTERN.match(value):
        raise PydanticCustomError("whatsapp", WHATSAPP_INVALID)
    return value


class CamelModel(BaseModel):
    """Serialises with the camelCase keys used in the conversation context."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- single answers -------------------------------------------------------

class TextAnswer(BaseModel):
    text: str

    @field_validator("text")
    @classmethod
    def _min(cls, v):
        return min_text(v, TEXT_TOO_SHORT)


class LegalNameAnswer(BaseModel):
    legal_name: str

    @field_validator("legal_name")
    @classmethod
    def _min(cls, v):
        return min_text(v, LEGAL_NAME_TOO_SHORT)


class RestaurantNameAnswer(BaseModel):
    restaurant_name: str

    @field_validator("restaurant_name")
    @classmethod
    def _min(cls, v):
        return min_text(v, RESTAURANT_NAME_TOO_SHORT)


class PersonNameAnswer(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def _min(cls, v):
        return min_text(v, NAME_TOO_SHORT)


class LegalIdAnswer(BaseModel):
    legal_id: str

    @field_validator("legal_id")
    @classmethod
    def _digits(cls, v):
        return check_legal_id(v)


class YearsActiveAnswer(BaseModel):
    years_active: int

    @field_validator("years_active", mode="before")
    @classmethod
    def _range(cls, v):
        years = as_int(v)
        if years is None or not 0 <= years <= 100:
            raise PydanticCustomError("years_active", YEARS_INVALID)
        return years


class EmailAnswer(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _format(cls, v):
        v = (v or "").strip()
        if not EMAIL_PATTERN.match(v):
            raise PydanticCustomError("email", EMAIL_INVALID)
        return v.lower()


# --- supplier draft (also the AI extraction targets) ----------------------

class Reminder(BaseModel):
    day: Weekday
    hour: int
    minute: int = 0

    @field_validator("hour", mode="before")
    @classmethod
    def _hour(cls, v):
        hour = as_int(v)
        if hour is None or not 0 <= hour <= 23:
            raise PydanticCustomError("hour", HOUR_INVALID)
        return hour

    @field_validator("minute", mode="before")
    @classmethod
    def _minute(cls, v):
        minute = as_int(v)
        if minute is None or not 0 <= minute <= 59:
            raise PydanticCustomError("minute", MINUTE_INVALID)
        return minute


class ProductDraft(BaseModel):
    name: str
    unit: str = "other"
    emoji: str = "📦"

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return min_text(v, PRODUCT_NAME_TOO_SHORT)

    @field_validator("unit")
    @classmethod
    def _unit(cls, v):
        if v not in UNITS:
            raise PydanticCustomError("unit", UNIT_INVALID)
        return v


class ProductPar(CamelModel):
    name: str
    par_midweek: float
    par_weekend: float

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return min_text(v, PRODUCT_NAME_TOO_SHORT)

    @field_validator("par_midweek", "par_weekend")
    @classmethod
    def _positive(cls, v):
        if v <= 0:
            raise PydanticCustomError("par", PAR_INVALID)
        return v


class SupplierCategories(BaseModel):
    category: List[str] = Field(min_length=1)

    @field_validator("category")
    @classmethod
    def _known_or_named(cls, v):
        cleaned = []
        for item in v:
            item = item if item in CATEGORIES else min_text(item, CATEGORY_TOO_SHORT)
            if item not in cleaned:
                cleaned.append(item)
        return cleaned


class SupplierContact(BaseModel):
    name: str
    whatsapp: str

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return min_text(v, NAME_TOO_SHORT)

    @field_validator("whatsapp")
    @classmethod
    def _whatsapp(cls, v):
        return check_whatsapp(v)


class SupplierReminders(BaseModel):
    reminders: List[Reminder] = Field(min_length=1)

    @model_validator(mode="after")
    def _one_cutoff_per_day(self):
        days = [r.day for r in self.reminders]
        if len(days) != len(set(days)):
            raise PydanticCustomError("duplicate_day", DUPLICATE_DAY)
        return self


class ProductList(BaseModel):
    products: List[ProductDraft] = Field(min_length=1)


class ProductPars(BaseModel):
    products: List[ProductPar] = Field(min_length=1)


# --- records written by actions -------------------------------------------

class ContactRecord(BaseModel):
    whatsapp: str
    name: str
    role: Literal["owner", "manager", "shift", "other"] = "owner"
    email: Optional[str] = None

    @field_validator("whatsapp")
    @classmethod
    def _normalize(cls, v):
        return min_text(normalize_whatsapp(v), WHATSAPP_INVALID, length=5)

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return min_text(v, NAME_TOO_SHORT)


class RestaurantRecord(BaseModel):
    legal_id: str
    legal_name: str
    name: str
    years_active: Optional[int] = None
    payment_provider: Literal["credit_card", "trial"] = "trial"
    contact: ContactRecord

    @field_validator("legal_id")
    @classmethod
    def _legal_id(cls, v):
        return check_legal_id(v)

    @field_validator("legal_name")
    @classmethod
    def _legal_name(cls, v):
        return min_text(v, LEGAL_NAME_TOO_SHORT)

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return min_text(v, RESTAURANT_NAME_TOO_SHORT)


class SupplierProductRecord(CamelModel):
    name: str
    unit: str = "other"
    emoji: str = "📦"
    par_midweek: float = Field(gt=0)
    par_weekend: float = Field(gt=0)


class SupplierRecord(BaseModel):
    restaurant_id: str
    name: str
    whatsapp: str
    categories: List[str] = Field(min_length=1)
    reminders: List[Reminder] = Field(default_factory=list)
    products: List[SupplierProductRecord] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        return min_text(v, NAME_TOO_SHORT)

    @field_validator("whatsapp")
    @classmethod
    def _whatsapp(cls, v):
        return check_whatsapp(v)
