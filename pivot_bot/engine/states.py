"""
The onboarding and supplier-setup conversation, as data.

Every entry is validated into a state model when the table is loaded, so a
typo in a target, token or registry name fails at startup, not mid-chat.
"""
from typing import Any, Dict, List

from .catalog import CATEGORY_LIST, REMINDER_PRESETS, category_label

CATEGORY_OPTIONS = [{"label": category_label(c), "id": c} for c in CATEGORY_LIST]
REMINDER_OPTIONS = [{"label": p["label"], "id": preset_id} for preset_id, p in REMINDER_PRESETS.items()]

STATE_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "id": "INIT",
        "kind": "choice",
        "description": "Greeting for a new contact with the basic navigation options.",
        "template": {
            "kind": "button",
            "body": (
                "🍽️ *ברוכים הבאים ל ✨ P-vot ✨, מערכת ניהול המלאי וההזמנות!*\n"
                "בכמה צעדים פשוטים נרשום את המסעדה שלך ונגדיר את הספקים וההזמנות המומלצות עבורך.\n"
                "בחר מה ברצונך לעשות:"
            ),
            "options": [
                {"label": "📋 רישום מסעדה חדשה", "id": "new_restaurant"},
                {"label": "❓ עזרה והסבר", "id": "help"},
            ],
        },
        "validation_message": "❌ אנא בחר אחת מהאפשרויות.",
        "next_state": {"new_restaurant": "ONBOARDING_COMPANY_NAME", "help": "IDLE"},
    },
    # --- onboarding ---
    {
        "id": "ONBOARDING_COMPANY_NAME",
        "kind": "input",
        "description": "Legal company name, as printed on invoices.",
        "message": (
            "📄 *תהליך הרשמה למערכת*\n"
            "מהו השם החוקי של העסק או החברה שלך? (השם שיופיע בחשבוניות)"
        ),
        "validator": "legal_name",
        "callback": "set_company_name",
        "next_state": {"ok": "ONBOARDING_LEGAL_ID"},
    },
    {
        "id": "ONBOARDING_LEGAL_ID",
        "kind": "input",
        "description": "Business registration number (9 digits).",
        "message": "📝 מצוין! כעת הזן את מספר ח.פ/עוסק מורשה של העסק.",
        "validator": "legal_id",
        "callback": "set_legal_id",
        "next_state": {"ok": "ONBOARDING_RESTAURANT_NAME"},
    },
    {
        "id": "ONBOARDING_RESTAURANT_NAME",
        "kind": "input",
        "description": "Commercial restaurant name, may differ from the legal name.",
        "message": "🍽️ מהו השם המסחרי של המסעדה? (השם שהלקוחות מכירים)",
        "validator": "restaurant_name",
        "callback": "set_restaurant_name",
        "next_state": {"ok": "ONBOARDING_YEARS_ACTIVE"},
    },
    {
        "id": "ONBOARDING_YEARS_ACTIVE",
        "kind": "input",
        "description": "How many years the restaurant has been operating.",
        "message": "📅 כמה שנים המסעדה {restaurantName} פעילה? (מספר בלבד, 0 למסעדה חדשה)",
        "validator": "years_active",
        "callback": "set_years_active",
        "next_state": {"ok": "ONBOARDING_CONTACT_NAME"},
    },
    {
        "id": "ONBOARDING_CONTACT_NAME",
        "kind": "input",
        "description": "Full name of the primary contact.",
        "message": "👤 מה השם המלא שלך? (איש קשר ראשי)",
        "validator": "person_name",
        "callback": "set_contact_name",
        "next_state": {"ok": "ONBOARDING_CONTACT_EMAIL"},
    },
    {
        "id": "ONBOARDING_CONTACT_EMAIL",
        "kind": "input",
        "description": "Optional contact e-mail; the skip button moves on without one.",
        "template": {
            "kind": "button",
            "body": "📧 מה כתובת האימייל שלך? (אופציונלי - לחץ 'דלג' להמשך)",
            "options": [{"label": "דלג", "id": "skip"}],
        },
        "validator": "email",
        "callback": "set_contact_email",
        "next_state": {"ok": "ONBOARDING_PAYMENT_METHOD", "skip": "ONBOARDING_PAYMENT_METHOD"},
    },
    {
        "id": "ONBOARDING_PAYMENT_METHOD",
        "kind": "choice",
        "description": "Subscription payment method; leaving this state registers the restaurant.",
        "template": {
            "kind": "list",
            "body": (
                "💳 *בחר שיטת תשלום*\n"
                "המערכת זמינה בתשלום חודשי. בחר את האופציה המועדפת עליך:"
            ),
            "options": [
                {"label": "כרטיס אשראי", "id": "credit_card"},
                {"label": "התחל ניסיון", "id": "trial"},
            ],
        },
        "validation_message": "❌ אנא בחר אחת מאפשרויות התשלום.",
        "callback": "set_payment_method",
        "action": "CREATE_RESTAURANT",
        "next_state": {"credit_card": "WAITING_FOR_PAYMENT", "trial": "SETUP_SUPPLIERS_START"},
    },
    {
        "id": "WAITING_FOR_PAYMENT",
        "kind": "wait",
        "description": "Waits for the payment provider to confirm; user text does not advance it.",
        "message": (
            "⏳ *בהמתנה לאישור תשלום*\n"
            "ניתן לשלם בקישור הבא:\n"
            "{paymentLink}\n"
            "לאחר השלמת התשלום, נמשיך בהגדרת המערכת."
        ),
        "events": ["payment_confirmed"],
        "action": "ACTIVATE_RESTAURANT",
        "next_state": {"payment_confirmed": "SETUP_SUPPLIERS_START"},
    },
    # --- supplier setup ---
    {
        "id": "SETUP_SUPPLIERS_START",
        "kind": "choice",
        "description": "Opens the supplier setup flow.",
        "template": {
            "kind": "button",
            "body": (
                "🚚 *הגדרת ספקים ומוצרים*\n"
                "כעת נגדיר את הספקים שעובדים עם המסעדה שלך. זה יעזור למערכת לנהל את המלאי, "
                "לתזכר אותך ולשלוח הזמנות לספק באופן אוטומטי.\n"
                "מוכנים להתחיל?"
            ),
            "options": [
                {"label": "כן, בואו נתחיל ✨", "id": "start_supplier"},
                {"label": "לא כרגע", "id": "postpone"},
            ],
        },
        "next_state": {"start_supplier": "SUPPLIER_CATEGORY", "postpone": "IDLE"},
    },
    {
        "id": "SUPPLIER_CATEGORY",
        "kind": "input",
        "description": "One or more categories for the current supplier, from the list or free text.",
        "template": {
            "kind": "list",
            "body": (
                "🚚 *הגדרת ספק חדש למסעדה*\n"
                "בחרו קטגוריה לספק זה מתוך האפשרויות, *או* כתבו את שם הקטגוריה.\n\n"
                "💡 במידה והספק אחראי על יותר מקטגוריה אחת, ניתן לכתוב מספר קטגוריות מופרדות בפסיק"
            ),
            "options": CATEGORY_OPTIONS,
        },
        "validator": "supplier_category",
        "ai_validation": {
            "instruction": (
                "עליך לזהות את הקטגוריה (או כמה קטגוריות) של הספק הנוכחי מתוך רשימת הקטגוריות המוצעות, "
                "או קטגוריה חדשה שהמשתמש כתב. החזר מזהי קטגוריות: " + ", ".join(CATEGORY_LIST)
            ),
            "schema_name": "SupplierCategories",
        },
        "callback": "set_supplier_categories",
        "next_state": {
            **{c: "SUPPLIER_CONTACT" for c in CATEGORY_LIST},
            "ok": "SUPPLIER_CONTACT",
            "aiValid": "SUPPLIER_CONTACT",
        },
    },
    {
        "id": "SUPPLIER_CONTACT",
        "kind": "input",
        "description": "Supplier name and WhatsApp number.",
        "message": (
            "👤 *מה שם ומספר הוואטסאפ של הספק ל{categoryList}?*\n\n"
            "לדוגמה: ירקות השדה, 0501234567"
        ),
        "validator": "supplier_contact",
        "ai_validation": {
            "instruction": "עליך לזהות את שם הספק ואת מספר הוואטסאפ שלו מתוך תשובת המשתמש.",
            "schema_name": "SupplierContact",
        },
        "callback": "set_supplier_contact",
        "next_state": {"ok": "SUPPLIER_REMINDERS", "aiValid": "SUPPLIER_REMINDERS"},
    },
    {
        "id": "SUPPLIER_REMINDERS",
        "kind": "input",
        "description": "Order cutoff days and times, used to remind the owner before each deadline.",
        "template": {
            "kind": "list",
            "body": (
                "⏰ *הגדרת זמני סגירת הזמנות (CUT-OFF) של הספק {supplierName}*\n\n"
                "המערכת תשתמש במידע הזה כדי לתזכר אותך להזמין *לפני* שיהיה מאוחר מדי.\n\n"
                "אנא בחר מהאפשרויות או כתוב את ימי וזמני הסגירה המדויקים:\n\n"
                "לדוגמה: \"יום שני וחמישי עד 14:00\" או \"ראשון 10:00\""
            ),
            "options": REMINDER_OPTIONS,
        },
        "validator": "supplier_reminders",
        "ai_validation": {
            "instruction": (
                "עליך לזהות את זמני הסגירה (cut-off) של הספק - היום והשעה האחרונים שבהם ניתן לשלוח הזמנות. "
                "אם מציינים 'עד שעה מסוימת', זו שעת הסגירה. לא ניתן להגדיר יותר מזמן סגירה אחד ביום. "
                "ימים: sun, mon, tue, wed, thu, fri, sat."
            ),
            "schema_name": "SupplierReminders",
        },
        "callback": "set_supplier_reminders",
        "next_state": {
            **{preset_id: "PRODUCTS_LIST" for preset_id in REMINDER_PRESETS},
            "ok": "PRODUCTS_LIST",
            "aiValid": "PRODUCTS_LIST",
        },
    },
    {
        "id": "PRODUCTS_LIST",
        "kind": "input",
        "description": "Products bought from the supplier with their units of measure.",
        "message": (
            "📋 *הגדרת מוצרים מהספק*\n\n"
            "🔹 רשמו את רשימת המוצרים ויחידות המידה שלהם:\n\n"
            "📝 *לדוגמה:*\n"
            "ק\"ג: עגבניות, מלפפון, בצל\n"
            "יח': חסה, כרוב, פלפל\n"
            "ארגז: תפוחים, בננות"
        ),
        "validator": "product_list",
        "ai_validation": {
            "instruction": (
                "עליך לזהות רשימת מוצרים ויחידות מידה מהספק. אם לא צוינו יחידות מידה, הנח יחידות סטנדרטיות למוצר. "
                "יחידות מותרות: kg, g, l, ml, pcs, box, pack, bag, barrel, jar, bottle, can, other. "
                "החזר שם ואימוג'י לכל מוצר והתעלם מכמויות."
            ),
            "schema_name": "ProductList",
        },
        "callback": "add_supplier_products",
        "next_state": {"ok": "PRODUCTS_BASE_QTY", "aiValid": "PRODUCTS_BASE_QTY"},
    },
    {
        "id": "PRODUCTS_BASE_QTY",
        "kind": "input",
        "description": "Midweek and weekend par levels per product; leaving this state saves the supplier.",
        "message": (
            "📦 *הגדרת מצבת בסיס למוצרים*\n"
            "עבור כל מוצר, הזן את הכמות הנדרשת למסעדה לאמצע שבוע ולסוף שבוע בפורמט:\n"
            "*[שם מוצר] - [כמות אמצע שבוע], [כמות סוף שבוע]*\n\n"
            "ניתן להעתיק את הרשימה ולמלא כמויות בהתאם:\n"
            "{productList}"
        ),
        "validator": "product_pars",
        "ai_validation": {
            "instruction": (
                "עליך לזהות עבור כל מוצר ברשימה את כמות הבסיס לאמצע השבוע ולסוף השבוע. "
                "השתמש בשמות המוצרים בדיוק כפי שהם מופיעים ברשימה."
            ),
            "schema_name": "ProductPars",
        },
        "callback": "set_product_pars",
        "action": "CREATE_SUPPLIER",
        "next_state": {"ok": "SETUP_SUPPLIERS_ADDITIONAL", "aiValid": "SETUP_SUPPLIERS_ADDITIONAL"},
    },
    {
        "id": "SETUP_SUPPLIERS_ADDITIONAL",
        "kind": "choice",
        "description": "Archives the finished supplier and offers to add another.",
        "template": {
            "kind": "button",
            "body": "🏪 *הספק {supplierName} נשמר! האם יש עוד ספקים שתרצו להגדיר?*",
            "options": [
                {"label": "הגדרת ספק נוסף", "id": "add_supplier"},
                {"label": "לא כרגע", "id": "finished"},
            ],
        },
        "callback": "archive_supplier",
        "next_state": {"add_supplier": "SUPPLIER_CATEGORY", "finished": "RESTAURANT_FINISHED"},
    },
    {
        "id": "RESTAURANT_FINISHED",
        "kind": "terminal",
        "description": "Setup is complete.",
        "message": (
            "🎉 *הגדרת המסעדה {restaurantName} הושלמה!*\n"
            "תודה שהקדשתם זמן להגדיר את המסעדה שלכם. כעת תוכלו להתחיל להשתמש במערכת לניהול המלאי וההזמנות.\n"
            "כתבו \"תפריט\" כדי לראות את האפשרויות הזמינות"
        ),
    },
    {
        "id": "IDLE",
        "kind": "choice",
        "description": "Main menu outside any active flow; drops an unfinished supplier draft.",
        "template": {
            "kind": "list",
            "body": "👋 *שלום {contactName}!*\n\nמה תרצה לעשות היום?\n\nבחר אחת מהאפשרויות:",
            "options": [
                {"label": "🚚 הוספת ספק חדש", "id": "add_supplier"},
                {"label": "❓ שאלות ותמיכה", "id": "help"},
            ],
        },
        "validation_message": "❌ אנא בחר אחת מהאפשרויות.",
        "callback": "clear_supplier_draft",
        "next_state": {"add_supplier": "SUPPLIER_CATEGORY", "help": "IDLE"},
    },
]
