# ABOUTME: Orchestration layer exports for the phrase protocol and the dialogue loop.
# ABOUTME: Provides parser, renderer, reply pipeline and DialogueOrchestrator.

from imagination.orchestration.exceptions import DeliveryFailed, LoopBudgetExceeded, ProtocolViolation
from imagination.orchestration.game_loop import TURN_ERRORS, DialogueOrchestrator, new_game_seed
from imagination.orchestration.phrase_renderer import render_reply
from imagination.orchestration.reply_pipeline import DeliveryReport, ReplyPipeline
from imagination.orchestration.response_parser import (
    action_phrases,
    narrative_phrases,
    parse_phrases,
    serialize_phrases,
)
from imagination.orchestration.transport import Transport

__all__ = [
    "DialogueOrchestrator",
    "new_game_seed",
    "TURN_ERRORS",
    "parse_phrases",
    "serialize_phrases",
    "narrative_phrases",
    "action_phrases",
    "render_reply",
    "ReplyPipeline",
    "DeliveryReport",
    "Transport",
    "ProtocolViolation",
    "LoopBudgetExceeded",
    "DeliveryFailed",
]
