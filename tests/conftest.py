# ABOUTME: Shared pytest fixtures for all test modules (unit and integration).
# ABOUTME: Provides scripted backends, a recording transport, settings and phrase payload helpers.

import asyncio
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from imagination.agents.exceptions import SynthesisFailed
from imagination.config.settings import Settings
from imagination.memory.session_store import InMemorySessionStore
from imagination.models.dice_models import DiceRoll
from imagination.models.messages import ChatMessage
from imagination.orchestration.game_loop import DialogueOrchestrator

# --- Helper Functions ---


def text_phrase(text: str, voice: str = "narrator", role: str = "Narrator") -> dict[str, Any]:
    """Wire dict for a text phrase"""
    return {"type": "text", "voice": voice, "role": role, "text": text}


def dice_phrase(role: str, skill: str, base: int, result: int) -> dict[str, Any]:
    """Wire dict for a dice phrase"""
    return {"type": "dice", "role": role, "skill": skill, "base": base, "result": result}


def action_phrase(action: str) -> dict[str, Any]:
    """Wire dict for an action phrase"""
    return {"type": "action", "action": action}


def reply(*phrases: dict[str, Any]) -> str:
    """Backend reply content for the given phrase dicts"""
    return json.dumps(list(phrases))


# --- Scripted Collaborators ---


class ScriptedGenerator:
    """Generation backend returning queued replies; queued exceptions are raised"""

    def __init__(self, replies: list[str | Exception] | None = None):
        self.replies: list[str | Exception] = list(replies or [])
        self.calls: list[list[ChatMessage]] = []

    def queue(self, *replies: str | Exception) -> None:
        self.replies.extend(replies)

    async def generate(self, messages: list[ChatMessage]) -> str:
        self.calls.append(list(messages))
        if not self.replies:
            raise AssertionError("ScriptedGenerator ran out of replies")
        next_reply = self.replies.pop(0)
        if isinstance(next_reply, Exception):
            raise next_reply
        return next_reply


class FakeSpeech:
    """
    Speech backend writing `voice|text` bytes to the requested path.

    `delays` maps text to a synthesis delay in seconds so completion order
    can differ from job order. Texts listed in `fail_on` raise SynthesisFailed.
    """

    def __init__(
        self,
        transcription: str = "I sneak past the guard",
        delays: dict[str, float] | None = None,
        fail_on: set[str] | None = None,
    ):
        self.transcription = transcription
        self.delays = delays or {}
        self.fail_on = fail_on or set()
        self.synthesized: list[tuple[str, str, Path]] = []
        self.completed: list[str] = []
        self.transcribed: list[Path] = []

    async def transcribe(self, audio_path: str | Path) -> str:
        self.transcribed.append(Path(audio_path))
        return self.transcription

    async def synthesize(self, text: str, voice_id: str, path: str | Path) -> Path:
        path = Path(path)
        self.synthesized.append((text, voice_id, path))
        await asyncio.sleep(self.delays.get(text, 0))
        if text in self.fail_on:
            raise SynthesisFailed(f"cannot voice {text!r}")
        path.write_bytes(f"{voice_id}|{text}".encode())
        self.completed.append(text)
        return path


class RecordingTransport:
    """Transport that records every outbound message in order"""

    def __init__(self, fail_voice_at: int | None = None, fail_text: bool = False):
        self.events: list[tuple[str, str, str]] = []
        self.voice_paths: list[Path] = []
        self.fail_voice_at = fail_voice_at
        self.fail_text = fail_text

    async def send_text(self, session_id: str, html: str) -> None:
        if self.fail_text:
            raise ConnectionError("chat unavailable")
        self.events.append(("text", session_id, html))

    async def send_voice(self, session_id: str, audio_path: Path) -> None:
        if self.fail_voice_at is not None and len(self.voice_paths) == self.fail_voice_at:
            raise ConnectionError("upload rejected")
        self.voice_paths.append(audio_path)
        self.events.append(("voice", session_id, audio_path.read_text()))

    @property
    def texts(self) -> list[str]:
        return [content for kind, _, content in self.events if kind == "text"]

    @property
    def voices(self) -> list[str]:
        return [content for kind, _, content in self.events if kind == "voice"]


# --- Fixtures ---


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment and .env files"""
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        temp_dir=str(tmp_path),
        session_backend="memory",
        sessions_dir=str(tmp_path / "sessions"),
        max_generation_rounds=8,
    )


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def speech() -> FakeSpeech:
    return FakeSpeech()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def fixed_rolls():
    """Deterministic dice: queue results, each roller call consumes `count` of them"""
    queued: list[int] = []

    def roller(count: int) -> DiceRoll:
        rolls = [queued.pop(0) for _ in range(count)]
        return DiceRoll(
            dice_count=count,
            individual_rolls=rolls,
            timestamp=datetime.now(UTC),
        )

    roller.queued = queued
    return roller


@pytest.fixture
def orchestrator(generator, speech, transport, store, settings, fixed_rolls) -> DialogueOrchestrator:
    return DialogueOrchestrator(
        generator=generator,
        speech=speech,
        transport=transport,
        store=store,
        settings=settings,
        roller=fixed_rolls,
    )
