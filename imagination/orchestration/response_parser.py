# ABOUTME: Parser for the game master's phrase protocol (JSON array of typed phrases).
# ABOUTME: Cleans code fences, validates the tagged union and splits narrative from action phrases.

import json

from pydantic import TypeAdapter, ValidationError

from imagination.models.phrases import (
    ActionPhrase,
    DicePhrase,
    NarrativePhrase,
    Phrase,
    TextPhrase,
)
from imagination.orchestration.exceptions import ProtocolViolation

_PHRASES_ADAPTER = TypeAdapter(list[Phrase])

# Wrappers the backend tends to put around the JSON payload
_FENCE_MARKERS = ("```json", "```")


def strip_wrapping(content: str) -> str:
    """Remove code fences and embedded newlines around a JSON payload"""
    for marker in _FENCE_MARKERS:
        content = content.replace(marker, "")
    return content.replace("\r", "").replace("\n", "").strip()


def parse_phrases(content: str) -> list[Phrase]:
    """
    Parse assistant content into an ordered phrase list.

    Steps: strip wrapping, decode JSON, require an array, validate every
    element against the closed phrase union.

    Args:
        content: Raw assistant message content

    Returns:
        Phrases in source (reading/speaking) order

    Raises:
        ProtocolViolation: On any decoding or validation failure
    """
    cleaned = strip_wrapping(content)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ProtocolViolation(f"Reply is not valid JSON: {e.msg}", content) from e

    if not isinstance(payload, list):
        raise ProtocolViolation(
            f"Reply must be a JSON array, got {type(payload).__name__}", content
        )

    try:
        phrases = _PHRASES_ADAPTER.validate_python(payload)
    except ValidationError as e:
        errors = "; ".join(
            f"[{'.'.join(str(part) for part in err['loc'])}] {err['msg']}"
            for err in e.errors()
        )
        raise ProtocolViolation(f"Invalid phrase: {errors}", content) from e

    _check_exclusivity(phrases, content)
    return phrases


def _check_exclusivity(phrases: list[Phrase], content: str) -> None:
    # Speech and actions are mutually exclusive within one reply; dice may accompany actions
    has_speech = any(isinstance(phrase, TextPhrase) for phrase in phrases)
    has_action = any(isinstance(phrase, ActionPhrase) for phrase in phrases)

    if has_speech and has_action:
        raise ProtocolViolation("Reply mixes text phrases with action phrases", content)


def serialize_phrases(phrases: list[Phrase]) -> str:
    """Wire JSON for a phrase list (inverse of parse_phrases)"""
    return _PHRASES_ADAPTER.dump_json(phrases, by_alias=True).decode()


def narrative_phrases(phrases: list[Phrase]) -> list[NarrativePhrase]:
    """Text and dice phrases, in order"""
    return [phrase for phrase in phrases if isinstance(phrase, (TextPhrase, DicePhrase))]


def action_phrases(phrases: list[Phrase]) -> list[ActionPhrase]:
    """Action phrases, in order"""
    return [phrase for phrase in phrases if isinstance(phrase, ActionPhrase)]
