# ABOUTME: Unit tests for DialogueOrchestrator, the per-session game loop.
# ABOUTME: Covers phase sequences, dice resolution, new-game resets, error handling, round budget and locking.

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from imagination.agents.exceptions import GenerationFailed
from imagination.config.prompts import DICE_CONTINUATION_PROMPT
from imagination.memory.exceptions import SessionCorrupted
from imagination.models.game_state import DialoguePhase
from imagination.models.messages import ChatMessage, Role
from imagination.orchestration.game_loop import DialogueOrchestrator, new_game_seed
from tests.conftest import ScriptedGenerator, action_phrase, dice_phrase, reply, text_phrase

GEN = DialoguePhase.GENERATING
DISP = DialoguePhase.DISPATCHING
RES = DialoguePhase.RESOLVING
IDLE = DialoguePhase.IDLE

NARRATION = reply(text_phrase("The tavern is quiet."))


def build(orchestrator: DialogueOrchestrator, **overrides) -> DialogueOrchestrator:
    """Same collaborators, different settings"""
    return DialogueOrchestrator(
        generator=orchestrator.generator,
        speech=orchestrator.speech,
        transport=orchestrator.transport,
        store=orchestrator.store,
        settings=orchestrator.settings.model_copy(update=overrides),
        roller=orchestrator.roller,
    )


class TestNewGameSeed:
    """Test the fresh transcript contents"""

    def test_seed_is_system_then_user(self):
        seed = new_game_seed()

        assert [m.role for m in seed] == [Role.SYSTEM, Role.USER]


class TestSingleRound:
    """Test plain narrative replies"""

    @pytest.mark.asyncio
    async def test_text_reply_one_round(self, orchestrator, generator, transport, store):
        generator.queue(NARRATION)

        result = await orchestrator.on_user_text("chat-1", "I look around", "m1")

        assert result.succeeded
        assert result.rounds == 1
        assert result.phases == [GEN, DISP, IDLE]
        assert transport.texts == ["The tavern is quiet."]
        assert transport.voices == ["narrator|The tavern is quiet."]
        assert generator.calls[0] == [ChatMessage.user("I look around")]
        assert await store.load("chat-1") == [
            ChatMessage.user("I look around"),
            ChatMessage.assistant(NARRATION),
        ]

    @pytest.mark.asyncio
    async def test_user_text_normalized(self, orchestrator, generator):
        generator.queue(NARRATION)

        await orchestrator.on_user_text("chat-1", "  I   look\naround ")

        assert generator.calls[0][-1].content == "I look around"

    @pytest.mark.asyncio
    async def test_blank_text_ignored(self, orchestrator, generator, transport, store):
        result = await orchestrator.on_user_text("chat-1", " \n ")

        assert result.phases == [IDLE]
        assert result.rounds == 0
        assert generator.calls == []
        assert transport.events == []
        assert await store.load("chat-1") == []

    @pytest.mark.asyncio
    async def test_transcript_continues_across_events(self, orchestrator, generator):
        generator.queue(NARRATION, NARRATION)

        await orchestrator.on_user_text("chat-1", "first")
        await orchestrator.on_user_text("chat-1", "second")

        assert [m.content for m in generator.calls[1]] == ["first", NARRATION, "second"]

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, orchestrator, generator, store):
        generator.queue(NARRATION, NARRATION)

        await orchestrator.on_user_text("chat-1", "hello")
        await orchestrator.on_user_text("chat-2", "hi")

        assert generator.calls[1] == [ChatMessage.user("hi")]
        assert len(await store.load("chat-1")) == 2

    @pytest.mark.asyncio
    async def test_voice_message_transcribed(self, orchestrator, generator, speech, tmp_path):
        audio = tmp_path / "in.ogg"
        audio.write_bytes(b"OggS")
        generator.queue(NARRATION)

        result = await orchestrator.on_user_voice("chat-1", audio, "m1")

        assert result.succeeded
        assert speech.transcribed == [audio]
        assert generator.calls[0] == [ChatMessage.user("I sneak past the guard")]

    @pytest.mark.asyncio
    async def test_voice_gate_from_settings(self, orchestrator, generator, transport):
        orchestrator = build(orchestrator, voice_replies_enabled=False)
        generator.queue(NARRATION)

        await orchestrator.on_user_text("chat-1", "hello")

        assert transport.texts == ["The tavern is quiet."]
        assert transport.voices == []


class TestDiceResolution:
    """Test ROLL_DICE handling"""

    @pytest.mark.asyncio
    async def test_two_dice_requests_roll_two_dice(self, orchestrator, generator, transport, fixed_rolls):
        fixed_rolls.queued.extend([4, 12])
        generator.queue(
            reply(action_phrase("ROLL_DICE"), action_phrase("ROLL_DICE")),
            reply(dice_phrase("Hero", "Stealth", 2, 12), text_phrase("You slip past.")),
        )

        result = await orchestrator.on_user_text("chat-1", "I sneak past", "m1")

        assert result.succeeded
        assert result.rounds == 2
        assert result.dice_rolled == [4, 12]
        assert result.phases == [GEN, DISP, RES, GEN, DISP, IDLE]

        second_call = generator.calls[1]
        assert second_call[-2] == ChatMessage.system("The player rolled 2 dice (d20). Results: 4, 12.")
        assert second_call[-1] == ChatMessage.user(DICE_CONTINUATION_PROMPT)

        # Action-only reply sends nothing; the follow-up sends one text and two voices
        assert len(transport.texts) == 1
        assert len(transport.voices) == 2

    @pytest.mark.asyncio
    async def test_single_die_report(self, orchestrator, generator, fixed_rolls):
        fixed_rolls.queued.append(15)
        generator.queue(reply(action_phrase("ROLL_DICE")), NARRATION)

        await orchestrator.on_user_text("chat-1", "I jump")

        assert generator.calls[1][-2].content == "The player rolled 1 die (d20). Result: 15."

    @pytest.mark.asyncio
    async def test_dice_phrase_with_roll_request(self, orchestrator, generator, transport, fixed_rolls):
        fixed_rolls.queued.append(9)
        generator.queue(
            reply(dice_phrase("Hero", "Athletics", 1, 3), action_phrase("ROLL_DICE")),
            NARRATION,
        )

        result = await orchestrator.on_user_text("chat-1", "I climb again")

        assert result.dice_rolled == [9]
        assert "Athletics" in transport.texts[0]


class TestNewGame:
    """Test transcript resets"""

    @pytest.mark.asyncio
    async def test_start_command_resets(self, orchestrator, generator, store):
        await store.save("chat-1", [ChatMessage.user("old"), ChatMessage.assistant("[]")])
        generator.queue(NARRATION)

        result = await orchestrator.on_start_command("chat-1")

        assert result.reset
        assert result.rounds == 1
        assert generator.calls[0] == new_game_seed()
        assert await store.load("chat-1") == [*new_game_seed(), ChatMessage.assistant(NARRATION)]

    @pytest.mark.asyncio
    async def test_backend_requested_new_game(self, orchestrator, generator, transport, store):
        await store.save("chat-1", [ChatMessage.user("old")])
        generator.queue(reply(action_phrase("START_NEW_GAME")), NARRATION)

        result = await orchestrator.on_user_text("chat-1", "Yes, start over")

        assert result.reset
        assert result.phases == [GEN, DISP, GEN, DISP, IDLE]
        assert generator.calls[1] == new_game_seed()
        assert await store.load("chat-1") == [*new_game_seed(), ChatMessage.assistant(NARRATION)]
        assert transport.texts == ["The tavern is quiet."]

    @pytest.mark.asyncio
    async def test_new_game_wins_over_dice(self, orchestrator, generator, fixed_rolls):
        generator.queue(
            reply(action_phrase("ROLL_DICE"), action_phrase("START_NEW_GAME")),
            NARRATION,
        )

        result = await orchestrator.on_user_text("chat-1", "restart")

        assert result.reset
        assert result.dice_rolled == []
        assert RES not in result.phases


class TestErrorHandling:
    """Test aborted turns"""

    @pytest.mark.asyncio
    async def test_malformed_reply_sends_fallback(self, orchestrator, generator, transport, store):
        generator.queue("The goblin attacks!")

        result = await orchestrator.on_user_text("chat-1", "hello")

        assert not result.succeeded
        assert result.error.startswith("ProtocolViolation")
        assert result.phases[-1] == IDLE
        assert transport.texts == [orchestrator.settings.error_fallback_message]
        # The offending reply stays in the transcript
        assert (await store.load("chat-1"))[-1] == ChatMessage.assistant("The goblin attacks!")

    @pytest.mark.asyncio
    async def test_malformed_reply_silent_when_notifications_off(self, orchestrator, generator, transport):
        orchestrator = build(orchestrator, notify_on_error=False)
        generator.queue("not json")

        result = await orchestrator.on_user_text("chat-1", "hello")

        assert result.error is not None
        assert transport.events == []

    @pytest.mark.asyncio
    async def test_fallback_is_escaped(self, orchestrator, generator, transport):
        orchestrator = build(orchestrator, error_fallback_message="Oops <retry> & wait")
        generator.queue("{}")

        await orchestrator.on_user_text("chat-1", "hello")

        assert transport.texts == ["Oops &lt;retry&gt; &amp; wait"]

    @pytest.mark.asyncio
    async def test_generation_failure_keeps_user_message(self, orchestrator, generator, store):
        generator.queue(GenerationFailed("timeout"))

        result = await orchestrator.on_user_text("chat-1", "hello")

        assert result.error == "GenerationFailed: timeout"
        assert await store.load("chat-1") == [ChatMessage.user("hello")]

    @pytest.mark.asyncio
    async def test_failed_fallback_does_not_raise(self, orchestrator, generator, transport):
        transport.fail_text = True
        generator.queue("garbage")

        result = await orchestrator.on_user_text("chat-1", "hello")

        assert result.error.startswith("ProtocolViolation")

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates_after_save(self, orchestrator, generator, store):
        generator.queue(RuntimeError("bug"))

        with pytest.raises(RuntimeError, match="bug"):
            await orchestrator.on_user_text("chat-1", "hello")

        assert await store.load("chat-1") == [ChatMessage.user("hello")]

    @pytest.mark.asyncio
    async def test_corrupted_session(self, orchestrator, generator, transport):
        store = MagicMock()
        store.load = AsyncMock(side_effect=SessionCorrupted("bad payload"))
        store.save = AsyncMock()
        orchestrator.store = store

        result = await orchestrator.on_user_text("chat-1", "hello")

        assert result.error == "SessionCorrupted: bad payload"
        assert generator.calls == []
        store.save.assert_not_awaited()
        assert transport.texts == [orchestrator.settings.error_fallback_message]


class TestRoundBudget:
    """Test the per-event generation bound"""

    @pytest.mark.asyncio
    async def test_endless_dice_requests_stop(self, orchestrator, generator, fixed_rolls):
        orchestrator = build(orchestrator, max_generation_rounds=2)
        fixed_rolls.queued.extend([1, 2, 3])
        roll = reply(action_phrase("ROLL_DICE"))
        generator.queue(roll, roll, roll)

        result = await orchestrator.on_user_text("chat-1", "I keep trying")

        assert result.error.startswith("LoopBudgetExceeded")
        assert result.rounds == 2
        assert len(generator.calls) == 2
        assert result.dice_rolled == [1, 2]

    @pytest.mark.asyncio
    async def test_budget_resets_per_event(self, orchestrator, generator):
        orchestrator = build(orchestrator, max_generation_rounds=1)
        generator.queue(NARRATION, NARRATION)

        first = await orchestrator.on_user_text("chat-1", "one")
        second = await orchestrator.on_user_text("chat-1", "two")

        assert first.succeeded and second.succeeded


class SlowGenerator(ScriptedGenerator):
    async def generate(self, messages):
        self.calls.append(list(messages))
        await asyncio.sleep(0.01)
        return self.replies.pop(0)


class TestSessionLocking:
    """Test that events on one session never interleave"""

    @pytest.mark.asyncio
    async def test_concurrent_events_serialized(self, orchestrator):
        generator = SlowGenerator([NARRATION, NARRATION])
        orchestrator.generator = generator

        await asyncio.gather(
            orchestrator.on_user_text("chat-1", "first"),
            orchestrator.on_user_text("chat-1", "second"),
        )

        assert [m.content for m in generator.calls[1]] == ["first", NARRATION, "second"]

    @pytest.mark.asyncio
    async def test_lock_held_only_while_chain_runs(self, orchestrator):
        orchestrator.generator = SlowGenerator([NARRATION])

        task = asyncio.create_task(orchestrator.on_user_text("chat-1", "first"))
        await asyncio.sleep(0)

        assert orchestrator.locked_sessions == {"chat-1"}
        await task
        assert orchestrator.locked_sessions == set()

    @pytest.mark.asyncio
    async def test_locks_released_after_many_sessions(self, orchestrator):
        generator = SlowGenerator([NARRATION] * 4)
        orchestrator.generator = generator

        await asyncio.gather(
            orchestrator.on_user_text("chat-1", "first"),
            orchestrator.on_user_text("chat-1", "second"),
            orchestrator.on_user_text("chat-2", "hello"),
            orchestrator.on_user_text("chat-3", "hello"),
        )

        assert len(generator.calls) == 4
        assert orchestrator.locked_sessions == set()

    @pytest.mark.asyncio
    async def test_failed_chain_releases_lock(self, orchestrator, generator):
        generator.queue("not json")

        result = await orchestrator.on_user_text("chat-1", "hello")

        assert not result.succeeded
        assert orchestrator.locked_sessions == set()
