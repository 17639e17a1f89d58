#!/usr/bin/env python3
"""
Configuration management for the Pivot WhatsApp bot backend.
"""

import os
from dotenv import load_dotenv

from ..utils.logger import logger

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration class for the application."""

    ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # AI extraction provider (openai|gemini)
    AI_PROVIDER = os.getenv("AI_PROVIDER", "openai").lower()
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", 20))
    AI_TEMPERATURE = 0.1

    # Twilio webhook
    TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
    SKIP_SIGNATURE_VALIDATION = _flag("SKIP_SIGNATURE_VALIDATION")
    # Public URL Twilio calls; needed for signatures when running behind a proxy
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")

    # Simulator endpoint
    SIMULATOR_API_KEY = os.getenv("SIMULATOR_API_KEY")

    # Redis Configuration
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
    REDIS_DB = int(os.getenv("REDIS_DB", 0))
    USE_REDIS = _flag("USE_REDIS", "true")

    # Database
    DB_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "pivot.db")
    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DB_PATH}")

    # Conversation
    PAYMENT_LINK = os.getenv("PAYMENT_LINK", "https://pay.pivot-app.co.il/restaurant/")
    MAX_TRANSCRIPT_MESSAGES = int(os.getenv("MAX_TRANSCRIPT_MESSAGES", 50))
    LOCK_TIMEOUT_SECONDS = int(os.getenv("LOCK_TIMEOUT_SECONDS", 30))

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == "production"

    @classmethod
    def ai_api_key(cls):
        return cls.GEMINI_API_KEY if cls.AI_PROVIDER == "gemini" else cls.OPENAI_API_KEY

    @classmethod
    def debug_print(cls):
        logger.info(f"[CONFIG] ENVIRONMENT={cls.ENVIRONMENT}")
        logger.info(f"[CONFIG] AI_PROVIDER={cls.AI_PROVIDER} key_set={bool(cls.ai_api_key())}")
        logger.info(f"[CONFIG] REDIS={cls.REDIS_HOST}:{cls.REDIS_PORT}/{cls.REDIS_DB} use={cls.USE_REDIS}")
        logger.info(f"[CONFIG] SKIP_SIGNATURE_VALIDATION={cls.SKIP_SIGNATURE_VALIDATION}")

    @classmethod
    def validate(cls):
        """Validate that all required configuration is present."""
        missing = []

        if cls.AI_PROVIDER not in ("openai", "gemini"):
            raise ValueError(f"Unsupported AI_PROVIDER: {cls.AI_PROVIDER}")

        # Development and test runs work without external credentials
        if cls.is_production():
            if not cls.ai_api_key():
                missing.append("GEMINI_API_KEY" if cls.AI_PROVIDER == "gemini" else "OPENAI_API_KEY")
            if not cls.TWILIO_AUTH_TOKEN and not cls.SKIP_SIGNATURE_VALIDATION:
                missing.append("TWILIO_AUTH_TOKEN")

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

# Validate configuration on import
Config.validate()
