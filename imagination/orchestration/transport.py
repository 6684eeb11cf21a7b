# ABOUTME: Protocols for the collaborators the dialogue loop talks to.
# ABOUTME: Transport delivers replies; generation and speech backends are duck-typed the same way.

from pathlib import Path
from typing import Protocol

from imagination.models.messages import ChatMessage


class Transport(Protocol):
    """Outbound side of the messenger connection"""

    async def send_text(self, session_id: str, html: str) -> None:
        """Send one HTML-formatted text message"""
        ...

    async def send_voice(self, session_id: str, audio_path: Path) -> None:
        """Send one voice message; the file is deleted after this returns"""
        ...


class GenerationBackend(Protocol):
    async def generate(self, messages: list[ChatMessage]) -> str:
        ...


class SpeechBackend(Protocol):
    async def transcribe(self, audio_path: str | Path) -> str:
        ...

    async def synthesize(self, text: str, voice_id: str, path: str | Path) -> Path:
        ...
