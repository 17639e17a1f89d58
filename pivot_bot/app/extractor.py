#!/usr/bin/env python3
"""
AI extraction client for the Pivot bot.

Sends the state's instruction, the target JSON schema and the user's reply to
an LLM (OpenAI or Gemini) and turns the JSON answer into an ExtractedValue or
a typed NoConfidentExtraction. Network and parsing failures never escape.
"""

import json
import re
from typing import Any, Dict, Optional, Type

import requests
from pydantic import BaseModel, ValidationError

from ..engine.extraction import (
    INVALID_OUTPUT,
    NOT_CONFIDENT,
    UNAVAILABLE,
    BaseExtractor,
    ExtractedValue,
    ExtractionResult,
    NoConfidentExtraction,
)
from ..utils.logger import get_logger
from .config import Config

log = get_logger("extractor")

SYSTEM_PROMPT = (
    "You extract structured data from WhatsApp replies of restaurant owners in Israel. "
    "Replies are usually in Hebrew. Answer with JSON only, in the form "
    '{"confident": true|false, "data": {...}}. '
    "Set confident to false when the reply does not clearly contain the requested data; never guess."
)

# Context keys that help the model; the rest stays out of the prompt
PROMPT_CONTEXT_KEYS = ("restaurantName", "supplierName", "supplierCategories", "supplierProducts")


class LLMExtractor(BaseExtractor):
    """Extractor backed by a hosted LLM over HTTP."""

    name = "llm"

    def __init__(
        self,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.provider = (provider or Config.AI_PROVIDER).lower()
        if self.provider == "gemini":
            self.api_key = api_key or Config.GEMINI_API_KEY
            self.model = model or Config.GEMINI_MODEL
            self.api_url = Config.GEMINI_API_URL.format(model=self.model)
        elif self.provider == "openai":
            self.api_key = api_key or Config.OPENAI_API_KEY
            self.model = model or Config.OPENAI_MODEL
            self.api_url = Config.OPENAI_API_URL
        else:
            raise ValueError(f"Unsupported AI provider: {self.provider}")

        if not self.api_key:
            raise ValueError(f"{self.provider} API key is required")

        self.timeout = timeout or Config.AI_TIMEOUT_SECONDS
        self.http = session or requests.Session()

    def extract(
        self,
        instruction: str,
        schema: Type[BaseModel],
        raw_input: str,
        context: Dict[str, Any],
    ) -> ExtractionResult:
        prompt = self.build_prompt(instruction, schema, raw_input, context)
        try:
            content = self._call_api(prompt)
        except requests.exceptions.JSONDecodeError as e:
            log.warning(f"[EXTRACTOR] {self.provider} returned a non-JSON body: {e}")
            return NoConfidentExtraction(INVALID_OUTPUT, str(e))
        except requests.exceptions.Timeout:
            log.warning(f"[EXTRACTOR] {self.provider} timed out after {self.timeout}s")
            return NoConfidentExtraction(UNAVAILABLE, "timeout")
        except requests.exceptions.RequestException as e:
            log.warning(f"[EXTRACTOR] {self.provider} request failed: {e}")
            return NoConfidentExtraction(UNAVAILABLE, str(e))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            log.warning(f"[EXTRACTOR] Unexpected {self.provider} response structure: {e}")
            return NoConfidentExtraction(INVALID_OUTPUT, str(e))
        return self.parse_reply(content, schema)

    def build_prompt(self, instruction: str, schema: Type[BaseModel], raw_input: str, context: Dict[str, Any]) -> str:
        known = {k: context[k] for k in PROMPT_CONTEXT_KEYS if k in context}
        json_schema = json.dumps(schema.model_json_schema(by_alias=True), ensure_ascii=False)
        return (
            f"Task:\n{instruction}\n\n"
            f"The \"data\" object must match this JSON schema:\n{json_schema}\n\n"
            f"Known details:\n{json.dumps(known, ensure_ascii=False)}\n\n"
            f"User reply:\n{raw_input}"
        )

    def parse_reply(self, content: str, schema: Type[BaseModel]) -> ExtractionResult:
        match = re.search(r"\{.*\}", content or "", re.DOTALL)
        if not match:
            return NoConfidentExtraction(INVALID_OUTPUT, "no JSON object in reply")
        try:
            reply = json.loads(match.group())
        except json.JSONDecodeError as e:
            return NoConfidentExtraction(INVALID_OUTPUT, f"bad JSON: {e}")
        if not isinstance(reply, dict):
            return NoConfidentExtraction(INVALID_OUTPUT, "reply is not an object")
        if not reply.get("confident"):
            return NoConfidentExtraction(NOT_CONFIDENT)
        try:
            data = schema.model_validate(reply.get("data") or {})
        except ValidationError as e:
            log.info(f"[EXTRACTOR] Reply does not match {schema.__name__}: {e.error_count()} errors")
            return NoConfidentExtraction(INVALID_OUTPUT, str(e))
        return ExtractedValue(data.model_dump(mode="json", by_alias=True))

    def _call_api(self, prompt: str) -> str:
        if self.provider == "gemini":
            payload = {
                "contents": [{"parts": [{"text": f"{SYSTEM_PROMPT}\n\n{prompt}"}]}],
                "generationConfig": {
                    "temperature": Config.AI_TEMPERATURE,
                    "responseMimeType": "application/json",
                },
            }
            response = self.http.post(self.api_url, params={"key": self.api_key}, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": Config.AI_TEMPERATURE,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        response = self.http.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        return data["choices"][0]["message"]["content"]


def build_extractor() -> Optional[LLMExtractor]:
    """Create the configured extractor, or None when no API key is set."""
    if not Config.ai_api_key():
        log.warning(f"[EXTRACTOR] No {Config.AI_PROVIDER} API key configured; AI extraction disabled")
        return None
    return LLMExtractor()
