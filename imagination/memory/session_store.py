# ABOUTME: Persistence backends for session transcripts keyed by conversation id.
# ABOUTME: In-memory (tests), JSON file directory and Redis stores behind one async protocol.

import asyncio
import hashlib
import os
import tempfile
from pathlib import Path
from typing import Protocol

from loguru import logger
from pydantic import TypeAdapter, ValidationError
from redis.asyncio import Redis

from imagination.config.settings import Settings
from imagination.memory.exceptions import SessionCorrupted
from imagination.models.messages import ChatMessage

_TRANSCRIPT_ADAPTER = TypeAdapter(list[ChatMessage])


def session_key(session_id: str) -> str:
    """
    Filesystem-safe name for a session id.

    Distinct session ids always map to distinct keys, whatever characters
    they contain.
    """
    return hashlib.sha256(session_id.encode("utf-8")).hexdigest()


def encode_transcript(messages: list[ChatMessage]) -> bytes:
    return _TRANSCRIPT_ADAPTER.dump_json(messages)


def decode_transcript(session_id: str, raw: str | bytes) -> list[ChatMessage]:
    """
    Decode a stored transcript.

    Raises:
        SessionCorrupted: When the payload is not a valid message list
    """
    try:
        return _TRANSCRIPT_ADAPTER.validate_json(raw)
    except ValidationError as e:
        raise SessionCorrupted(
            f"Stored transcript for session {session_id} is invalid: {e}"
        ) from e


class SessionStore(Protocol):
    """Durable per-session transcript storage"""

    async def load(self, session_id: str) -> list[ChatMessage]:
        """Return the stored transcript, or [] for an unknown session"""
        ...

    async def save(self, session_id: str, messages: list[ChatMessage]) -> None:
        """Replace the stored transcript"""
        ...


class InMemorySessionStore:
    """Process-local store, used by tests and the memory backend"""

    def __init__(self) -> None:
        self._sessions: dict[str, list[ChatMessage]] = {}

    async def load(self, session_id: str) -> list[ChatMessage]:
        return list(self._sessions.get(session_id, []))

    async def save(self, session_id: str, messages: list[ChatMessage]) -> None:
        self._sessions[session_id] = list(messages)


class FileSessionStore:
    """One JSON file per session inside a directory"""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, session_id: str) -> Path:
        return self.directory / f"{session_key(session_id)}.json"

    async def load(self, session_id: str) -> list[ChatMessage]:
        path = self.path_for(session_id)
        if not path.exists():
            return []

        raw = await asyncio.to_thread(path.read_bytes)
        return decode_transcript(session_id, raw)

    async def save(self, session_id: str, messages: list[ChatMessage]) -> None:
        await asyncio.to_thread(self._write, self.path_for(session_id), encode_transcript(messages))

    def _write(self, path: Path, payload: bytes) -> None:
        # Atomic replace via a sibling temp file
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class RedisSessionStore:
    """Transcripts stored as JSON strings under `session:{id}:transcript`"""

    def __init__(self, redis_client: Redis, ttl_seconds: int | None = None):
        """
        Initialize Redis session store.

        Args:
            redis_client: Async Redis connection
            ttl_seconds: Optional expiry refreshed on every save
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key_for(session_id: str) -> str:
        return f"session:{session_id}:transcript"

    async def load(self, session_id: str) -> list[ChatMessage]:
        raw = await self.redis.get(self.key_for(session_id))
        if raw is None:
            return []
        return decode_transcript(session_id, raw)

    async def save(self, session_id: str, messages: list[ChatMessage]) -> None:
        key = self.key_for(session_id)
        await self.redis.set(key, encode_transcript(messages), ex=self.ttl_seconds)
        logger.debug(f"Saved {len(messages)} messages to {key}")


def create_session_store(settings: Settings) -> SessionStore:
    """Build the store selected by `settings.session_backend`"""
    if settings.session_backend == "memory":
        return InMemorySessionStore()

    if settings.session_backend == "redis":
        redis_client = Redis.from_url(settings.redis_url)
        return RedisSessionStore(redis_client, ttl_seconds=settings.session_ttl_seconds)

    return FileSessionStore(settings.sessions_dir)
