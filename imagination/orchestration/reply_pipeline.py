# ABOUTME: Delivers a rendered reply: one text message, then voice messages in phrase order.
# ABOUTME: Synthesizes voice jobs concurrently into temp files that are always removed after delivery.

import asyncio
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from imagination.memory.session_store import session_key
from imagination.models.phrases import RenderedReply, VoiceJob
from imagination.orchestration.exceptions import DeliveryFailed
from imagination.orchestration.transport import SpeechBackend, Transport


@dataclass
class DeliveryReport:
    """What actually reached the player for one reply"""
    text_sent: bool = False
    voices_sent: int = 0


@contextmanager
def temporary_artifact(path: Path) -> Iterator[Path]:
    """Yield `path` and remove whatever was written there on exit"""
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


class ReplyPipeline:
    """
    Executes a RenderedReply against the transport.

    Text and voice delivery are gated independently. Voice jobs are
    synthesized concurrently but sent strictly in phrase order.
    """

    def __init__(
        self,
        transport: Transport,
        speech: SpeechBackend,
        temp_dir: str | Path,
        text_enabled: bool = True,
        voice_enabled: bool = True,
    ):
        self.transport = transport
        self.speech = speech
        self.temp_dir = Path(temp_dir)
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.text_enabled = text_enabled
        self.voice_enabled = voice_enabled

    def artifact_path(
        self, session_id: str, message_id: str, round_number: int, index: int
    ) -> Path:
        """
        Temp file for voice job `index` of generation round `round_number`.

        Message ids are only unique within one chat, so the name also carries
        the session key.
        """
        return self.temp_dir / (
            f"{session_key(session_id)}_{message_id}_{round_number}_reply_{index}.mp3"
        )

    async def deliver(
        self,
        session_id: str,
        reply: RenderedReply,
        message_id: str,
        round_number: int = 1,
    ) -> DeliveryReport:
        """
        Send a rendered reply to the player.

        Args:
            session_id: Conversation to deliver to
            reply: Rendered text and voice jobs
            message_id: Id of the inbound message, scopes temp file names
            round_number: Generation round within the inbound event

        Returns:
            DeliveryReport describing what was sent

        Raises:
            SynthesisFailed: When any voice job fails (nothing is voiced then)
            DeliveryFailed: When the transport rejects a message
        """
        report = DeliveryReport()

        if reply.is_empty:
            logger.debug(f"Empty reply for session {session_id}, nothing to deliver")
            return report

        if self.text_enabled and reply.text:
            try:
                await self.transport.send_text(session_id, reply.text)
            except Exception as e:
                raise DeliveryFailed(f"Sending text to {session_id} failed: {e}") from e
            report.text_sent = True

        if self.voice_enabled and reply.voice_jobs:
            report.voices_sent = await self._deliver_voices(
                session_id, reply.voice_jobs, message_id, round_number
            )

        return report

    async def _deliver_voices(
        self,
        session_id: str,
        jobs: list[VoiceJob],
        message_id: str,
        round_number: int,
    ) -> int:
        with ExitStack() as stack:
            paths = [
                stack.enter_context(
                    temporary_artifact(self.artifact_path(session_id, message_id, round_number, index))
                )
                for index in range(len(jobs))
            ]

            # Wait for every job before raising so no file is written after cleanup
            results = await asyncio.gather(
                *(
                    self.speech.synthesize(job.text, job.voice_id, path)
                    for job, path in zip(jobs, paths)
                ),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            sent = 0
            for path in paths:
                try:
                    await self.transport.send_voice(session_id, path)
                except Exception as e:
                    raise DeliveryFailed(
                        f"Sending voice {sent + 1}/{len(paths)} to {session_id} failed: {e}"
                    ) from e
                sent += 1

            logger.debug(f"Delivered {sent} voice replies to session {session_id}")
            return sent
