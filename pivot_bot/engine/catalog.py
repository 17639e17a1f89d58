"""
Reference data shown to restaurant owners: supplier categories, units of
measure, weekdays and cutoff presets, with reverse lookups from Hebrew text.
"""
from typing import Dict, List, Optional

CATEGORIES: Dict[str, Dict[str, str]] = {
    "vegetables": {"name": "ירקות", "emoji": "🥬"},
    "fruits": {"name": "פירות", "emoji": "🍎"},
    "meats": {"name": "בשרים", "emoji": "🥩"},
    "fish": {"name": "דגים", "emoji": "🐟"},
    "dairy": {"name": "מוצרי חלב", "emoji": "🥛"},
    "alcohol": {"name": "אלכוהול", "emoji": "🍷"},
    "eggs": {"name": "ביצים אורגניות", "emoji": "🥚"},
    "oliveOil": {"name": "שמן זית", "emoji": "🫒"},
    "disposables": {"name": "חד פעמי", "emoji": "🥤"},
    "desserts": {"name": "קינוחים", "emoji": "🍰"},
    "juices": {"name": "מיצים טבעיים", "emoji": "🧃"},
}
CATEGORY_LIST: List[str] = list(CATEGORIES)

# Extra spellings people type for a category
CATEGORY_ALIASES = {
    "ירק": "vegetables",
    "פרי": "fruits",
    "בשר": "meats",
    "עופות": "meats",
    "דג": "fish",
    "חלב": "dairy",
    "חלבי": "dairy",
    "משקאות חריפים": "alcohol",
    "יין": "alcohol",
    "ביצים": "eggs",
    "שמן": "oliveOil",
    "חד-פעמי": "disposables",
    "קינוח": "desserts",
    "מיצים": "juices",
}

UNITS: Dict[str, str] = {
    "kg": 'ק"ג',
    "g": "גרם",
    "l": "ליטר",
    "ml": "מיליליטר",
    "pcs": "יח'",
    "box": "ארגז",
    "pack": "חבילה",
    "bag": "שק",
    "barrel": "חבית",
    "jar": "צנצנת",
    "bottle": "בקבוק",
    "can": "פחית",
    "other": "אחר",
}

UNIT_ALIASES = {
    'קג': "kg",
    "קילו": "kg",
    "קילוגרם": "kg",
    'גר': "g",
    "ליטרים": "l",
    'מל': "ml",
    "מ\"ל": "ml",
    "יח": "pcs",
    "יחידה": "pcs",
    "יחידות": "pcs",
    "ארגזים": "box",
    "קופסה": "box",
    "קופסאות": "box",
    "חבילות": "pack",
    "אריזה": "pack",
    "אריזות": "pack",
    "שקים": "bag",
    "שקית": "bag",
    "חביות": "barrel",
    "צנצנות": "jar",
    "בקבוקים": "bottle",
    "פחיות": "can",
    "unit": "pcs",
    "units": "pcs",
    "pkg": "pack",
    "packet": "pack",
}

WEEKDAYS: Dict[str, str] = {
    "sun": "ראשון",
    "mon": "שני",
    "tue": "שלישי",
    "wed": "רביעי",
    "thu": "חמישי",
    "fri": "שישי",
    "sat": "שבת",
}

WEEKDAY_ALIASES = {
    "sunday": "sun",
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
}

REMINDER_PRESETS: Dict[str, Dict] = {
    "sun_thu_11": {
        "label": "ראשון וחמישי ב-11:00",
        "reminders": [{"day": "sun", "hour": 11, "minute": 0}, {"day": "thu", "hour": 11, "minute": 0}],
    },
    "mon_fri_10": {
        "label": "שני ושישי ב-10:00",
        "reminders": [{"day": "mon", "hour": 10, "minute": 0}, {"day": "fri", "hour": 10, "minute": 0}],
    },
    "daily_12": {
        "label": "כל יום ב-12:00",
        "reminders": [{"day": day, "hour": 12, "minute": 0} for day in WEEKDAYS],
    },
}


def normalize_token(text: str) -> str:
    """Lowercase, unify Hebrew geresh/gershayim and drop surrounding punctuation."""
    text = (text or "").replace("״", '"').replace("׳", "'").replace("“", '"').replace("”", '"')
    return text.strip().strip(".!?:;-").strip().lower()


def category_label(category_id: str) -> str:
    info = CATEGORIES.get(category_id)
    return f"{info['name']} {info['emoji']}" if info else category_id


def resolve_category(text: str) -> Optional[str]:
    """Map an id, Hebrew name or alias (with or without emoji) to a category id."""
    token = normalize_token(text)
    if not token:
        return None
    for category_id, info in CATEGORIES.items():
        if token in (category_id.lower(), info["name"], info["emoji"]):
            return category_id
        if token.replace(info["emoji"], "").strip() == info["name"]:
            return category_id
    return CATEGORY_ALIASES.get(token)


def unit_label(unit_id: str) -> str:
    return UNITS.get(unit_id, unit_id)


def resolve_unit(text: str) -> Optional[str]:
    token = normalize_token(text)
    if not token:
        return None
    if token in UNITS:
        return token
    for unit_id, label in UNITS.items():
        if token == label or token == label.rstrip("'"):
            return unit_id
    return UNIT_ALIASES.get(token) or UNIT_ALIASES.get(token.replace('"', ""))


def resolve_weekday(text: str) -> Optional[str]:
    token = normalize_token(text).rstrip("'")
    if token.startswith("יום "):
        token = token[4:].strip()
    if token in WEEKDAYS:
        return token
    for day_id, name in WEEKDAYS.items():
        if token == name:
            return day_id
    return WEEKDAY_ALIASES.get(token)
