# ABOUTME: Pydantic model for d20 rolls drawn by the game loop when the backend requests dice.
# ABOUTME: Validates that roll count and faces agree with the individual results.

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator


class DiceRoll(BaseModel):
    """Batch of independent dice drawn for one ROLL_DICE request"""

    dice_count: int = Field(
        ge=1,
        description="Number of dice rolled"
    )
    dice_sides: int = Field(
        default=20,
        ge=2,
        description="Number of sides per die"
    )
    individual_rolls: list[int] = Field(
        description="Individual die results, in draw order"
    )
    timestamp: datetime

    @field_validator('timestamp')
    @classmethod
    def validate_timezone_aware(cls, v: datetime) -> datetime:
        """Ensure timestamp is timezone-aware"""
        if v.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        return v

    @model_validator(mode='after')
    def validate_rolls(self):
        """Validate roll count and range"""
        if len(self.individual_rolls) != self.dice_count:
            raise ValueError(
                f"individual_rolls length ({len(self.individual_rolls)}) "
                f"must match dice_count ({self.dice_count})"
            )

        for roll in self.individual_rolls:
            if not 1 <= roll <= self.dice_sides:
                raise ValueError(
                    f"Roll {roll} out of range for d{self.dice_sides}"
                )

        return self
