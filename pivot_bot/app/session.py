#!/usr/bin/env python3
"""
Conversation storage for the Pivot bot.

Each conversation (current state, context and transcript) is stored as JSON in
Redis under `conversation:{id}`. When Redis is unreachable the store falls back
to an in-process dictionary.
"""

import json
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

import redis

from ..utils.logger import get_logger
from ..utils.security import mask_pii
from .config import Config

log = get_logger("store")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConversationStore:
    """Stores conversations and serialises turns per conversation."""

    def __init__(self, use_redis: Optional[bool] = None, redis_client: Optional[redis.Redis] = None):
        """Connect to Redis, or fall back to in-memory storage."""
        self.use_redis = Config.USE_REDIS if use_redis is None else use_redis
        self.memory_conversations: Dict[str, str] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self.redis_client = None

        if not self.use_redis:
            log.info("[STORE] Using in-memory conversation storage")
            return

        try:
            self.redis_client = redis_client or redis.Redis(
                host=Config.REDIS_HOST,
                port=Config.REDIS_PORT,
                db=Config.REDIS_DB,
                decode_responses=True,
                socket_connect_timeout=2,
            )
            # Test Redis connection
            self.redis_client.ping()
            log.info("[STORE] Using Redis for conversation storage")
        except redis.RedisError as e:
            log.warning(f"[STORE] Redis not available ({e}), using in-memory conversation storage")
            self.use_redis = False
            self.redis_client = None

    @property
    def backend(self) -> str:
        return "redis" if self.use_redis else "memory"

    def _key(self, conversation_id: str) -> str:
        """
        Generate the storage key for a conversation.

        Args:
            conversation_id: Sender id, usually the WhatsApp number

        Returns:
            Redis key for the conversation
        """
        return f"conversation:{conversation_id}"

    def _write(self, conversation_id: str, conversation: Dict[str, Any]) -> None:
        data = json.dumps(conversation, ensure_ascii=False)
        if self.use_redis:
            self.redis_client.set(self._key(conversation_id), data)
        else:
            self.memory_conversations[self._key(conversation_id)] = data

    def get(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        """Return a fresh copy of the stored conversation, or None."""
        if self.use_redis:
            data = self.redis_client.get(self._key(conversation_id))
        else:
            data = self.memory_conversations.get(self._key(conversation_id))
        return json.loads(data) if data else None

    def create(self, conversation_id: str, state: str, context: Dict[str, Any]) -> Dict[str, Any]:
        conversation = {
            "currentState": state,
            "context": context,
            "messages": [],
            "createdAt": _now(),
            "lastUpdated": _now(),
        }
        self._write(conversation_id, conversation)
        log.info(f"[STORE] Created conversation {mask_pii(conversation_id)} at {state}")
        return conversation

    def save(self, conversation_id: str, conversation: Dict[str, Any]) -> None:
        """Persist the conversation, trimming the transcript to the configured size."""
        limit = Config.MAX_TRANSCRIPT_MESSAGES
        if limit and len(conversation.get("messages", [])) > limit:
            conversation["messages"] = conversation["messages"][-limit:]
        conversation["lastUpdated"] = _now()
        self._write(conversation_id, conversation)

    @staticmethod
    def append_message(conversation: Dict[str, Any], role: str, body: str, state: str) -> None:
        """Add a transcript entry; saved with the next `save`."""
        conversation.setdefault("messages", []).append({
            "role": role,
            "body": body,
            "state": state,
            "timestamp": _now(),
        })

    def reset(self, conversation_id: str, state: str, context: Dict[str, Any]) -> Dict[str, Any]:
        """Start over at `state` with a fresh context; the transcript is kept."""
        conversation = self.get(conversation_id)
        if conversation is None:
            return self.create(conversation_id, state, context)
        conversation["currentState"] = state
        conversation["context"] = context
        self.save(conversation_id, conversation)
        log.info(f"[STORE] Reset conversation {mask_pii(conversation_id)} to {state}")
        return conversation

    def delete(self, conversation_id: str) -> bool:
        if self.use_redis:
            return bool(self.redis_client.delete(self._key(conversation_id)))
        return self.memory_conversations.pop(self._key(conversation_id), None) is not None

    @contextmanager
    def lock(self, conversation_id: str, timeout: Optional[int] = None) -> Iterator[None]:
        """Hold the per-conversation lock so turns of one conversation never interleave."""
        timeout = timeout or Config.LOCK_TIMEOUT_SECONDS
        if self.use_redis:
            with self.redis_client.lock(f"lock:{self._key(conversation_id)}", timeout=timeout, blocking_timeout=timeout):
                yield
            return

        with self._locks_guard:
            lock = self._locks.setdefault(conversation_id, threading.Lock())
        with lock:
            yield
