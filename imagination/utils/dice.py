# ABOUTME: d20 roller for ROLL_DICE resolution and spoken forms of roll results.
# ABOUTME: Produces DiceRoll models, the pluralized results report and number words for voice lines.

import random
from datetime import UTC, datetime

from imagination.models.dice_models import DiceRoll

D20_SIDES = 20

# Spoken form of every face of a d20
_NUMBER_WORDS = {
    1: "one",
    2: "two",
    3: "three",
    4: "four",
    5: "five",
    6: "six",
    7: "seven",
    8: "eight",
    9: "nine",
    10: "ten",
    11: "eleven",
    12: "twelve",
    13: "thirteen",
    14: "fourteen",
    15: "fifteen",
    16: "sixteen",
    17: "seventeen",
    18: "eighteen",
    19: "nineteen",
    20: "twenty",
}


def roll_d20() -> int:
    """
    Roll a single d20.

    Returns:
        Integer between 1 and 20 (inclusive)
    """
    return random.randint(1, D20_SIDES)


def roll_d20s(count: int) -> DiceRoll:
    """
    Roll `count` independent d20s.

    Examples:
        >>> roll = roll_d20s(3)
        >>> roll.dice_count
        3
        >>> len(roll.individual_rolls)
        3

    Args:
        count: Number of dice to roll (one per ROLL_DICE request)

    Returns:
        DiceRoll model instance with the results in draw order

    Raises:
        ValueError: If count is less than 1
    """
    if count < 1:
        raise ValueError(f"Number of dice must be at least 1, got {count}")

    individual_rolls = [roll_d20() for _ in range(count)]

    return DiceRoll(
        dice_count=count,
        dice_sides=D20_SIDES,
        individual_rolls=individual_rolls,
        timestamp=datetime.now(UTC)
    )


def spoken_number(value: int) -> str:
    """Word for a d20 face; other values fall back to digits"""
    return _NUMBER_WORDS.get(value, str(value))


def describe_roll_results(rolls: list[int]) -> str:
    """
    Build the system note that reports dice results back to the game master.

    Examples:
        >>> describe_roll_results([15])
        'The player rolled 1 die (d20). Result: 15.'
        >>> describe_roll_results([4, 12, 19])
        'The player rolled 3 dice (d20). Results: 4, 12, 19.'

    Raises:
        ValueError: If no rolls are given
    """
    if not rolls:
        raise ValueError("Cannot describe an empty roll")

    if len(rolls) == 1:
        return f"The player rolled 1 die (d20). Result: {rolls[0]}."

    joined = ", ".join(str(roll) for roll in rolls)
    return f"The player rolled {len(rolls)} dice (d20). Results: {joined}."
