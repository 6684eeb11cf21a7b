# ABOUTME: Pydantic models for the phrase protocol spoken by the game master backend.
# ABOUTME: Closed tagged union of text, dice and action phrases plus the rendered reply structures.

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

# Reserved voice id for the narrator; every other voice id belongs to a character
NARRATOR_VOICE = "narrator"


class Action(str, Enum):
    """Game-level actions the backend may request"""
    START_NEW_GAME = "START_NEW_GAME"
    ROLL_DICE = "ROLL_DICE"


_PHRASE_CONFIG = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class TextPhrase(BaseModel):
    """Narrator or character speech"""

    model_config = _PHRASE_CONFIG

    type: Literal["text"] = "text"
    voice_id: str = Field(
        alias="voice",
        min_length=1,
        description="TTS voice id, or 'narrator'"
    )
    speaker_label: str = Field(
        alias="role",
        min_length=1,
        description="Name of the speaking character or role"
    )
    text: str = Field(min_length=1)

    @property
    def is_narrator(self) -> bool:
        return self.voice_id == NARRATOR_VOICE


class DicePhrase(BaseModel):
    """Outcome of a skill check, reported by the backend after dice were resolved"""

    model_config = _PHRASE_CONFIG

    type: Literal["dice"] = "dice"
    speaker_label: str = Field(alias="role", min_length=1)
    skill_label: str = Field(alias="skill", min_length=1)
    base_value: int = Field(
        alias="base",
        description="Skill bonus added to the roll"
    )
    roll_result: int = Field(
        alias="result",
        ge=1,
        le=20,
        description="Raw d20 result"
    )

    @property
    def total(self) -> int:
        """Roll plus skill bonus"""
        return self.roll_result + self.base_value


class ActionPhrase(BaseModel):
    """Control request handled by the game loop, never shown to the player"""

    model_config = _PHRASE_CONFIG

    type: Literal["action"] = "action"
    action: Action


Phrase = Annotated[TextPhrase | DicePhrase | ActionPhrase, Field(discriminator="type")]
NarrativePhrase = TextPhrase | DicePhrase


class VoiceJob(BaseModel):
    """One text-to-speech request, in playback order"""

    model_config = ConfigDict(frozen=True)

    text: str
    voice_id: str


class RenderedReply(BaseModel):
    """Player-facing output of one backend reply"""

    text: str = Field(
        default="",
        description="HTML markup for a single text message (empty = no text message)"
    )
    voice_jobs: list[VoiceJob] = Field(
        default_factory=list,
        description="Synthesis jobs in phrase order"
    )

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.voice_jobs
