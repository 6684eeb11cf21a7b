# ABOUTME: Transcript model and session persistence exports.
# ABOUTME: Provides Transcript plus memory, file and Redis SessionStore backends.

from imagination.memory.exceptions import EmptyTranscript, SessionCorrupted
from imagination.memory.session_store import (
    FileSessionStore,
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
    create_session_store,
    session_key,
)
from imagination.memory.transcript import Transcript

__all__ = [
    "Transcript",
    "SessionStore",
    "InMemorySessionStore",
    "FileSessionStore",
    "RedisSessionStore",
    "create_session_store",
    "session_key",
    "EmptyTranscript",
    "SessionCorrupted",
]
