# ABOUTME: Dialogue loop phases and the per-event turn summary.
# ABOUTME: DialoguePhase drives logging of state transitions; TurnResult is returned to transports.

from enum import Enum

from pydantic import BaseModel, Field


class DialoguePhase(str, Enum):
    """States of the per-session dialogue loop"""
    IDLE = "idle"
    GENERATING = "generating"
    DISPATCHING = "dispatching"
    RESOLVING = "resolving"


class TurnResult(BaseModel):
    """Outcome of one inbound event's turn chain"""

    session_id: str
    rounds: int = Field(
        default=0,
        ge=0,
        description="Generation rounds run for this event"
    )
    phases: list[DialoguePhase] = Field(
        default_factory=list,
        description="Phases entered during the chain, in order (always ends with IDLE)"
    )
    dice_rolled: list[int] = Field(
        default_factory=list,
        description="All d20 results drawn during the chain, in order"
    )
    reset: bool = Field(
        default=False,
        description="Whether the transcript was replaced by the new-game seed"
    )
    error: str | None = Field(
        default=None,
        description="Name and message of the error that aborted the chain"
    )

    @property
    def succeeded(self) -> bool:
        return self.error is None
