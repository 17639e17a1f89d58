"""Small rule-based parsers that turn a WhatsApp reply into structured supplier data."""
import re
from typing import Any, Dict, List, Optional, Tuple

from ..engine.catalog import (
    WEEKDAYS,
    resolve_category,
    resolve_unit,
    resolve_weekday,
)

ITEM_SEPARATORS = re.compile(r"[,;\n،]+")
PHONE_PATTERN = re.compile(r"\+?\d[\d\-\s()]{7,}\d")
TIME_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?$")
REMINDER_TOKENS = re.compile(r"\d{1,2}(?::\d{2})?|[^\W\d_]+")
NUMBER = r"(\d+(?:\.\d+)?)"
PAR_LINE = re.compile(r"^(.*?)\s*[-–:=]\s*" + NUMBER + r"\s*(?:[,/\\]|\s)\s*" + NUMBER + r"\s*$")
LEADING_SYMBOLS = re.compile(r"^([^\w\s\"'(]+)\s*(.*)$")
ALL_DAYS_WORDS = ("כל יום", "כל הימים", "every day", "daily")


def normalize_text(text: str) -> str:
    text = (text or "").replace("״", '"').replace("׳", "'")
    return re.sub(r"[ \t]+", " ", text).strip()


def split_items(text: str) -> List[str]:
    return [item.strip() for item in ITEM_SEPARATORS.split(normalize_text(text)) if item.strip()]


def _strip_conjunction(word: str) -> str:
    """Drop a leading Hebrew 'and' (ו) prefix."""
    return word[1:] if len(word) > 2 and word.startswith("ו") else word


def parse_categories(text: str) -> List[str]:
    """Return category ids for known categories, cleaned free text otherwise."""
    categories: List[str] = []
    for item in split_items(text):
        category = resolve_category(item) or resolve_category(_strip_conjunction(item))
        if category is None:
            category = item.strip(" .!?")
        if category and category not in categories:
            categories.append(category)
    return categories


def normalize_whatsapp(number: str) -> str:
    """Normalize an Israeli WhatsApp number to the local 05XXXXXXXX form."""
    value = (number or "").strip()
    if value.lower().startswith("whatsapp:"):
        value = value[len("whatsapp:"):]
    value = re.sub(r"[\s\-().]", "", value)
    if value.startswith("+972"):
        value = "0" + value[4:]
    elif value.startswith("972"):
        value = "0" + value[3:]
    return value


def parse_contact(text: str) -> Dict[str, Any]:
    """Split 'supplier name, phone' into its parts; missing parts are left out."""
    text = normalize_text(text)
    contact: Dict[str, Any] = {}
    match = PHONE_PATTERN.search(text)
    if match:
        contact["whatsapp"] = normalize_whatsapp(match.group())
        text = (text[:match.start()] + " " + text[match.end():])
    name = re.sub(r"\s+", " ", text.replace("\n", " ")).strip(" ,;:-")
    if name:
        contact["name"] = name
    return contact


def parse_time(token: str) -> Optional[Tuple[int, int]]:
    match = TIME_PATTERN.match(token.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2) or 0)


def parse_reminders(text: str) -> List[Dict[str, Any]]:
    """
    Parse order cutoff times such as "ראשון וחמישי ב-11:00" or "mon 10:00; thu 14:30".

    Days are collected until a time appears and then share that time. When the
    text holds a single time it applies to every day mentioned. Days left
    without a time come back with hour None so validation can report them.
    """
    text = normalize_text(text)
    lowered = text.lower()
    tokens = REMINDER_TOKENS.findall(lowered)
    times = [parse_time(t) for t in tokens if parse_time(t)]
    everyday = any(words in lowered for words in ALL_DAYS_WORDS)

    reminders: List[Dict[str, Any]] = []
    pending: List[str] = []
    for token in tokens:
        parsed = parse_time(token)
        if parsed:
            days = list(WEEKDAYS) if everyday and not pending else pending
            for day in days:
                reminders.append({"day": day, "hour": parsed[0], "minute": parsed[1]})
            pending = []
            continue
        day = resolve_weekday(token) or resolve_weekday(_strip_conjunction(token))
        if day:
            pending.append(day)

    if pending:
        if len(times) == 1:
            hour, minute = times[0]
        else:
            hour, minute = None, 0
        for day in pending:
            reminders.append({"day": day, "hour": hour, "minute": minute})
    return reminders


def _split_emoji(name: str) -> Tuple[Optional[str], str]:
    match = LEADING_SYMBOLS.match(name)
    if match and match.group(2):
        return match.group(1), match.group(2).strip()
    return None, name


def parse_product_list(text: str) -> List[Dict[str, Any]]:
    """
    Parse product lines grouped by unit:

        ק"ג: עגבניות, מלפפון
        יח': חסה

    Lines without a unit prefix keep unit 'other' unless a unit is given in
    parentheses after the product name.
    """
    products: List[Dict[str, Any]] = []
    for line in normalize_text(text).split("\n"):
        line = line.strip()
        if not line:
            continue
        unit = "other"
        if ":" in line:
            head, line = line.split(":", 1)
            unit = resolve_unit(head) or head.strip()
        for item in re.split(r"[,،;]+", line):
            item = item.strip(" .")
            if not item:
                continue
            item_unit = unit
            paren = re.match(r"^(.*?)\s*\(([^)]+)\)$", item)
            if paren:
                item = paren.group(1).strip()
                item_unit = resolve_unit(paren.group(2)) or item_unit
            emoji, name = _split_emoji(item)
            product = {"name": name, "unit": item_unit}
            if emoji:
                product["emoji"] = emoji
            products.append(product)
    return products


def parse_product_pars(text: str) -> List[Dict[str, Any]]:
    """Parse 'name - midweek, weekend' lines into par levels."""
    pars: List[Dict[str, Any]] = []
    for line in normalize_text(text).split("\n"):
        match = PAR_LINE.match(line.strip())
        if not match:
            continue
        name = match.group(1).replace("*", "").strip()
        # drop a copied "(unit)" suffix
        name = re.sub(r"\s*\([^)]*\)\s*$", "", name).strip()
        _, name = _split_emoji(name)
        pars.append({
            "name": name,
            "parMidweek": float(match.group(2)),
            "parWeekend": float(match.group(3)),
        })
    return pars
