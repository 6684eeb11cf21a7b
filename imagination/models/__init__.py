"""Data models for the Imagination role-playing bot"""

from .dice_models import DiceRoll
from .game_state import DialoguePhase, TurnResult
from .messages import ChatMessage, Role, normalize_whitespace
from .phrases import (
    NARRATOR_VOICE,
    Action,
    ActionPhrase,
    DicePhrase,
    NarrativePhrase,
    Phrase,
    RenderedReply,
    TextPhrase,
    VoiceJob,
)

__all__ = [
    # Transcript models
    "Role",
    "ChatMessage",
    "normalize_whitespace",
    # Phrase protocol
    "NARRATOR_VOICE",
    "Action",
    "TextPhrase",
    "DicePhrase",
    "ActionPhrase",
    "Phrase",
    "NarrativePhrase",
    # Rendering
    "VoiceJob",
    "RenderedReply",
    # Dice
    "DiceRoll",
    # Dialogue loop
    "DialoguePhase",
    "TurnResult",
]
