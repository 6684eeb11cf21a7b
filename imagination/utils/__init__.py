# ABOUTME: Utility module exports for dice rolling and structured logging.
# ABOUTME: Provides dice.py (d20 resolution and spoken numbers) and logging.py (loguru config).

from imagination.utils.dice import describe_roll_results, roll_d20s, spoken_number
from imagination.utils.logging import log_phase_transition, log_turn_event, setup_logging

__all__ = [
    "roll_d20s",
    "spoken_number",
    "describe_roll_results",
    "setup_logging",
    "log_turn_event",
    "log_phase_transition",
]
