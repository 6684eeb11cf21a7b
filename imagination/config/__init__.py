"""Configuration module for the Imagination role-playing bot"""

from .prompts import (
    DICE_CONTINUATION_PROMPT,
    GAME_MASTER_SYSTEM_PROMPT,
    NEW_GAME_ACKNOWLEDGEMENT,
    NEW_GAME_KICKOFF,
)
from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "GAME_MASTER_SYSTEM_PROMPT",
    "NEW_GAME_ACKNOWLEDGEMENT",
    "NEW_GAME_KICKOFF",
    "DICE_CONTINUATION_PROMPT",
]
