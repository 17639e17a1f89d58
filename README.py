"""
PIVOT BOT: System Documentation
===============================

This module-style README documents the architecture, conversation flow and
operational practices of the Pivot WhatsApp bot, which registers restaurants
and sets up their suppliers over WhatsApp. It can be imported to surface
sections programmatically or run to print them.

How to use this file
--------------------
- View in an editor for structured reading.
- Run `python README.py` to print the outline.
- Import `README` in tools or scripts to surface sections.

Table of Contents
-----------------
1. System Overview
2. Architecture
3. Package Layout
4. Conversation Flow
5. Turn Processing
6. AI Extraction
7. Data & Persistence
8. Configuration & Environment
9. Testing Strategy
10. Security & PII Handling
11. Observability
12. Running Locally
"""

from __future__ import annotations

import textwrap


def section(title: str, body: str) -> str:
    return f"\n{title}\n{'-' * len(title)}\n{body.strip()}\n"


SYSTEM_OVERVIEW = section(
    "1. System Overview",
    """
    Pivot is a Hebrew WhatsApp bot for restaurant owners. A conversation walks
    the owner through registering the restaurant (legal name, registration
    number, contact details, payment method) and then through defining each
    supplier: categories, contact, order cutoff times, products and par levels.
    The whole conversation is a state table held as data; a stateless
    transition engine turns (state, context, reply) into the next state.
    """,
)


ARCHITECTURE = section(
    "2. Architecture",
    """
    - Transport: Twilio WhatsApp webhook (form post in, TwiML out) plus a JSON
      simulator endpoint for QA.
    - Controller: loads the conversation, handles global commands, runs the
      engine, executes actions, saves the result.
    - Engine: state table + validators + callbacks + templating; optional AI
      extractor for free-text replies.
    - Storage: Redis for live conversations (in-memory fallback), SQLite or any
      SQLAlchemy database for registered restaurants and suppliers.
    """,
)


PACKAGE_LAYOUT = section(
    "3. Package Layout",
    """
    app/
      - main.py: FastAPI app, webhook, simulator, payment confirmation, health.
      - controller.py: One inbound message -> one committed turn.
      - session.py: Conversation store (Redis / memory) with per-conversation locks.
      - extractor.py: OpenAI / Gemini extraction client.
      - actions.py: Executes CREATE_RESTAURANT / ACTIVATE_RESTAURANT / CREATE_SUPPLIER.
      - config.py: Env-driven configuration.

    engine/
      - states.py: The conversation as data.
      - table.py: Loads and verifies the state graph.
      - transition.py: process_turn / process_event.
      - validators.py, callbacks.py, templating.py: Name-keyed registries.
      - extraction.py: Extractor contract and result types.
      - catalog.py: Categories, units, weekdays, cutoff presets.

    nlu/parsers.py: Rule-based parsing of Hebrew replies.
    schemas/: Pydantic models for states, domain records and API bodies.
    data/: SQLAlchemy engine, session factory and tables.
    utils/: Logger, PII masking, Twilio signature check.
    """,
)


CONVERSATION_FLOW = section(
    "4. Conversation Flow",
    """
    INIT -> ONBOARDING_COMPANY_NAME -> ONBOARDING_LEGAL_ID -> ONBOARDING_RESTAURANT_NAME
         -> ONBOARDING_YEARS_ACTIVE -> ONBOARDING_CONTACT_NAME -> ONBOARDING_CONTACT_EMAIL
         -> ONBOARDING_PAYMENT_METHOD (emits CREATE_RESTAURANT)
              credit_card -> WAITING_FOR_PAYMENT --payment_confirmed (emits ACTIVATE_RESTAURANT)--> SETUP_SUPPLIERS_START
              trial -> SETUP_SUPPLIERS_START
    SETUP_SUPPLIERS_START -> SUPPLIER_CATEGORY -> SUPPLIER_CONTACT -> SUPPLIER_REMINDERS
         -> PRODUCTS_LIST -> PRODUCTS_BASE_QTY (emits CREATE_SUPPLIER)
         -> SETUP_SUPPLIERS_ADDITIONAL: add_supplier loops, finished -> RESTAURANT_FINISHED
    IDLE is the main menu; "תפריט" jumps there once onboarding is complete and
    "reset_pivot" starts over at INIT.
    """,
)


TURN_PROCESSING = section(
    "5. Turn Processing",
    """
    1) Exact option id (button / list row) resolves to that token.
    2) States with AI extraction try the extractor first (token `aiValid`).
    3) The direct validator runs next (token `ok`).
    4) The state's callback writes the value into the context; next_state maps
       the token to the next state, whose prompt is rendered with the updated
       context.
    Failures keep the state and context and re-send the prompt options with the
    state's validation message or the field errors.
    """,
)


AI_EXTRACTION = section(
    "6. AI Extraction",
    """
    - The extractor answers `{"confident": bool, "data": {...}}` in JSON mode.
    - Data is validated against the state's schema; anything else is treated as
      no confident extraction and the direct validator decides.
    - Timeouts and network errors count as unavailable; states without a direct
      validator then ask the user to try again.
    - Without an API key the bot runs on the rule-based parsers only.
    """,
)


DATA_AND_PERSISTENCE = section(
    "7. Data & Persistence",
    """
    - Conversations: JSON documents under `conversation:{id}` with state,
      context and a trimmed transcript.
    - Records: restaurants, contacts, suppliers, products (SQLAlchemy).
    - Actions upsert (restaurant by legal id, supplier by restaurant + number),
      so a retried turn does not duplicate rows.
    """,
)


CONFIG_ENV = section(
    "8. Configuration & Environment",
    """
    - `.env` compatible; keys: AI_PROVIDER, OPENAI_API_KEY, GEMINI_API_KEY,
      TWILIO_AUTH_TOKEN, PUBLIC_BASE_URL, SIMULATOR_API_KEY, REDIS_HOST,
      DATABASE_URL, PAYMENT_LINK, LOG_LEVEL, ENVIRONMENT.
    - Missing keys only fail startup when ENVIRONMENT=production.
    """,
)


TESTING = section(
    "9. Testing Strategy",
    """
    - unittest test cases under `/tests`, run with `pytest`.
    - Engine tests drive the real state table with a fake extractor.
    - Controller and executor tests use the in-memory store and in-memory SQLite.
    - API tests use FastAPI's TestClient with the controller dependency overridden.
    """,
)


SECURITY = section(
    "10. Security & PII Handling",
    """
    - Webhook requests must carry a valid X-Twilio-Signature.
    - Simulator and payment endpoints require the x-simulator-api-key header.
    - `utils/security.py`: phone numbers and e-mails are masked before logging.
    """,
)


OBSERVABILITY = section(
    "11. Observability",
    """
    - Logs via `utils/logger.py`, tagged [WORKFLOW], [ENGINE], [EXTRACTOR],
      [ACTION], [STORE], [API].
    - Missing template placeholders are logged as warnings.
    """,
)


RUNNING = section(
    "12. Running Locally",
    """
    - `uvicorn pivot_bot.app.main:app --reload`
    - Point the Twilio sandbox webhook at `/whatsapp/webhook` (set PUBLIC_BASE_URL
      when behind a tunnel), or post to `/simulator/message`.
    """,
)


def as_text() -> str:
    return "\n".join(
        [
            SYSTEM_OVERVIEW,
            ARCHITECTURE,
            PACKAGE_LAYOUT,
            CONVERSATION_FLOW,
            TURN_PROCESSING,
            AI_EXTRACTION,
            DATA_AND_PERSISTENCE,
            CONFIG_ENV,
            TESTING,
            SECURITY,
            OBSERVABILITY,
            RUNNING,
        ]
    )


def main() -> None:
    print(textwrap.dedent(as_text()))


if __name__ == "__main__":
    main()
