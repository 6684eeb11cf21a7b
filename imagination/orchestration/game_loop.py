# ABOUTME: DialogueOrchestrator runs the per-session game loop from inbound event to idle.
# ABOUTME: Generates, renders and delivers replies, then dispatches new-game and dice actions with a round budget.

import asyncio
import time
from collections import Counter
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from html import escape
from pathlib import Path
from uuid import uuid4

from loguru import logger

from imagination.agents.exceptions import GenerationFailed, SynthesisFailed, TranscriptionFailed
from imagination.config.prompts import (
    DICE_CONTINUATION_PROMPT,
    NEW_GAME_ACKNOWLEDGEMENT,
    NEW_GAME_KICKOFF,
)
from imagination.config.settings import Settings
from imagination.memory.exceptions import EmptyTranscript, SessionCorrupted
from imagination.memory.session_store import SessionStore
from imagination.memory.transcript import Transcript
from imagination.models.dice_models import DiceRoll
from imagination.models.game_state import DialoguePhase, TurnResult
from imagination.models.messages import ChatMessage, normalize_whitespace
from imagination.models.phrases import Action, Phrase
from imagination.orchestration.exceptions import DeliveryFailed, LoopBudgetExceeded, ProtocolViolation
from imagination.orchestration.phrase_renderer import render_reply
from imagination.orchestration.reply_pipeline import ReplyPipeline
from imagination.orchestration.response_parser import action_phrases, parse_phrases
from imagination.orchestration.transport import GenerationBackend, SpeechBackend, Transport
from imagination.utils.dice import describe_roll_results, roll_d20s
from imagination.utils.logging import log_phase_transition, log_turn_event

# Errors that abort a turn without escaping to the transport
TURN_ERRORS = (
    ProtocolViolation,
    EmptyTranscript,
    TranscriptionFailed,
    SynthesisFailed,
    GenerationFailed,
    LoopBudgetExceeded,
    SessionCorrupted,
    DeliveryFailed,
)

ChainStart = Callable[[Transcript, TurnResult], Awaitable[None]]


def new_game_seed() -> list[ChatMessage]:
    """The two messages a fresh game transcript starts with"""
    return [
        ChatMessage.system(NEW_GAME_ACKNOWLEDGEMENT),
        ChatMessage.user(NEW_GAME_KICKOFF),
    ]


class DialogueOrchestrator:
    """
    Game loop over one session at a time.

    Every inbound event runs one turn chain under the session's lock:

        IDLE -> GENERATING -> DISPATCHING -> IDLE
                    ^             |
                    |             +-- START_NEW_GAME: reset transcript
                    |             +-- ROLL_DICE x n -> RESOLVING
                    +---------------------------------------+

    The chain is bounded by `settings.max_generation_rounds`. Any error in
    TURN_ERRORS aborts the chain, is logged, and (optionally) produces a
    short fallback message to the player.
    """

    def __init__(
        self,
        generator: GenerationBackend,
        speech: SpeechBackend,
        transport: Transport,
        store: SessionStore,
        settings: Settings,
        roller: Callable[[int], DiceRoll] = roll_d20s,
    ):
        """
        Initialize the dialogue orchestrator.

        Args:
            generator: Game master backend
            speech: Transcription and synthesis backend
            transport: Outbound messenger connection
            store: Transcript persistence
            settings: Loop budget, delivery gates and fallback text
            roller: Dice source, replaceable for deterministic play
        """
        self.generator = generator
        self.speech = speech
        self.transport = transport
        self.store = store
        self.settings = settings
        self.roller = roller
        self.pipeline = ReplyPipeline(
            transport,
            speech,
            temp_dir=settings.temp_dir,
            text_enabled=settings.text_replies_enabled,
            voice_enabled=settings.voice_replies_enabled,
        )
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    async def on_user_text(
        self, session_id: str, text: str, message_id: str | None = None
    ) -> TurnResult:
        """Player typed a message"""
        text = normalize_whitespace(text)
        if not text:
            logger.warning(f"Ignoring blank message for session {session_id}")
            return TurnResult(session_id=session_id, phases=[DialoguePhase.IDLE])

        async def start(transcript: Transcript, result: TurnResult) -> None:
            transcript.append(ChatMessage.user(text))

        return await self._run_chain(session_id, message_id, start)

    async def on_user_voice(
        self, session_id: str, audio_path: str | Path, message_id: str | None = None
    ) -> TurnResult:
        """Player sent a voice message; the transport owns `audio_path`"""

        async def start(transcript: Transcript, result: TurnResult) -> None:
            text = await self.speech.transcribe(audio_path)
            log_turn_event(
                "Voice message transcribed",
                phase=DialoguePhase.IDLE.value,
                session_id=session_id,
                round_number=0,
                chars=len(text),
            )
            transcript.append(ChatMessage.user(text))

        return await self._run_chain(session_id, message_id, start)

    async def on_start_command(
        self, session_id: str, message_id: str | None = None
    ) -> TurnResult:
        """Player asked for a fresh game (/start)"""

        async def start(transcript: Transcript, result: TurnResult) -> None:
            self._start_new_game(transcript, result)

        return await self._run_chain(session_id, message_id, start)

    # ------------------------------------------------------------------
    # Turn chain
    # ------------------------------------------------------------------

    @property
    def locked_sessions(self) -> set[str]:
        """Sessions with a chain running or waiting"""
        return set(self._locks)

    @asynccontextmanager
    async def _session_guard(self, session_id: str) -> AsyncIterator[None]:
        """
        Hold the session's lock for one chain.

        A lock lives only while some chain holds or waits for it, so the
        lock table is bounded by the number of in-flight sessions.
        """
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._lock_users[session_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if self._lock_users[session_id] == 0:
                del self._lock_users[session_id]
                del self._locks[session_id]

    async def _run_chain(
        self, session_id: str, message_id: str | None, start: ChainStart
    ) -> TurnResult:
        message_id = message_id or uuid4().hex
        result = TurnResult(session_id=session_id)

        async with self._session_guard(session_id):
            try:
                transcript = Transcript(session_id, await self.store.load(session_id))
            except SessionCorrupted as e:
                await self._abort(result, e)
                return result

            try:
                await start(transcript, result)
                await self._drive(transcript, message_id, result)
            except TURN_ERRORS as e:
                await self._abort(result, e)
            except Exception:
                logger.exception(f"Unexpected error in turn chain for session {session_id}")
                raise
            finally:
                await self.store.save(session_id, transcript.current())

        return result

    async def _drive(self, transcript: Transcript, message_id: str, result: TurnResult) -> None:
        session_id = transcript.session_id
        phase = DialoguePhase.IDLE
        next_phase = DialoguePhase.GENERATING
        phrases: list[Phrase] = []
        pending_dice = 0

        while True:
            log_phase_transition(phase.value, next_phase.value, session_id, result.rounds)
            phase = next_phase
            result.phases.append(phase)

            if phase == DialoguePhase.IDLE:
                return

            if phase == DialoguePhase.GENERATING:
                if result.rounds >= self.settings.max_generation_rounds:
                    raise LoopBudgetExceeded(session_id, self.settings.max_generation_rounds)
                result.rounds += 1
                phrases = await self._generate_round(transcript, message_id, result.rounds)
                next_phase = DialoguePhase.DISPATCHING

            elif phase == DialoguePhase.DISPATCHING:
                next_phase, pending_dice = self._dispatch(transcript, phrases, result)

            elif phase == DialoguePhase.RESOLVING:
                self._resolve_dice(transcript, pending_dice, result)
                pending_dice = 0
                next_phase = DialoguePhase.GENERATING

    async def _generate_round(
        self, transcript: Transcript, message_id: str, round_number: int
    ) -> list[Phrase]:
        session_id = transcript.session_id
        started = time.perf_counter()

        content = await self.generator.generate(transcript.current())
        transcript.append(ChatMessage.assistant(content))

        phrases = parse_phrases(transcript.last_assistant_message().content)
        report = await self.pipeline.deliver(
            session_id, render_reply(phrases), message_id, round_number
        )

        log_turn_event(
            "Reply delivered",
            phase=DialoguePhase.GENERATING.value,
            session_id=session_id,
            round_number=round_number,
            phrases=len(phrases),
            text_sent=report.text_sent,
            voices_sent=report.voices_sent,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return phrases

    def _dispatch(
        self, transcript: Transcript, phrases: list[Phrase], result: TurnResult
    ) -> tuple[DialoguePhase, int]:
        """Pick the next phase from the reply's actions; returns (phase, dice to roll)"""
        requested = Counter(phrase.action for phrase in action_phrases(phrases))

        if requested[Action.START_NEW_GAME]:
            if requested[Action.ROLL_DICE]:
                logger.warning(
                    f"Session {transcript.session_id}: discarding "
                    f"{requested[Action.ROLL_DICE]} dice request(s) issued alongside a new game"
                )
            self._start_new_game(transcript, result)
            return DialoguePhase.GENERATING, 0

        if requested[Action.ROLL_DICE]:
            return DialoguePhase.RESOLVING, requested[Action.ROLL_DICE]

        return DialoguePhase.IDLE, 0

    def _start_new_game(self, transcript: Transcript, result: TurnResult) -> None:
        discarded = len(transcript)
        transcript.reset(new_game_seed())
        result.reset = True
        logger.info(
            f"Session {transcript.session_id}: new game, discarded {discarded} messages"
        )

    def _resolve_dice(self, transcript: Transcript, count: int, result: TurnResult) -> None:
        roll = self.roller(count)

        transcript.append(ChatMessage.system(describe_roll_results(roll.individual_rolls)))
        transcript.append(ChatMessage.user(DICE_CONTINUATION_PROMPT))
        result.dice_rolled.extend(roll.individual_rolls)

        log_turn_event(
            "Dice resolved",
            phase=DialoguePhase.RESOLVING.value,
            session_id=transcript.session_id,
            round_number=result.rounds,
            rolls=roll.individual_rolls,
        )

    async def _abort(self, result: TurnResult, error: Exception) -> None:
        session_id = result.session_id
        result.error = f"{type(error).__name__}: {error}"
        result.phases.append(DialoguePhase.IDLE)

        logger.bind(session=session_id, round=result.rounds).warning(
            f"Turn aborted: {result.error}"
        )
        if isinstance(error, ProtocolViolation):
            logger.bind(session=session_id).debug(f"Offending reply: {error.raw_content!r}")

        if not self.settings.notify_on_error:
            return

        try:
            await self.transport.send_text(session_id, escape(self.settings.error_fallback_message))
        except Exception as e:
            logger.error(f"Could not send fallback notice to session {session_id}: {e}")
