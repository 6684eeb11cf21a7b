# ABOUTME: Speech collaborators backed by the OpenAI audio API.
# ABOUTME: Transcribes player voice messages and synthesizes voice replies to mp3 files.

import asyncio
from pathlib import Path

from loguru import logger
from openai import AsyncOpenAI

from imagination.agents.exceptions import SynthesisFailed, TranscriptionFailed
from imagination.agents.retry import backend_retrying
from imagination.models.messages import normalize_whitespace
from imagination.models.phrases import NARRATOR_VOICE


class SpeechClient:
    """Speech-to-text and text-to-speech over one AsyncOpenAI client"""

    def __init__(
        self,
        client: AsyncOpenAI,
        transcription_model: str = "whisper-1",
        speech_model: str = "tts-1",
        narrator_voice: str = "nova",
        retry_attempts: int = 1,
    ):
        self.client = client
        self.transcription_model = transcription_model
        self.speech_model = speech_model
        self.narrator_voice = narrator_voice
        self.retry_attempts = retry_attempts

    def resolve_voice(self, voice_id: str) -> str:
        """Map the reserved narrator id to a concrete TTS voice"""
        return self.narrator_voice if voice_id == NARRATOR_VOICE else voice_id

    async def transcribe(self, audio_path: str | Path) -> str:
        """
        Turn a voice message into text.

        Args:
            audio_path: Local audio file (ogg, mp3, wav, ...)

        Returns:
            Whitespace-normalized transcription

        Raises:
            TranscriptionFailed: When the call fails or nothing was recognized
        """
        audio_path = Path(audio_path)

        try:
            audio = await asyncio.to_thread(audio_path.read_bytes)
            async for attempt in backend_retrying(self.retry_attempts):
                with attempt:
                    transcription = await self.client.audio.transcriptions.create(
                        model=self.transcription_model,
                        file=(audio_path.name, audio),
                    )
        except Exception as e:
            raise TranscriptionFailed(f"Transcription of {audio_path.name} failed: {e}") from e

        text = normalize_whitespace(transcription.text or "")
        if not text:
            raise TranscriptionFailed(f"No transcription text for {audio_path.name}")

        logger.debug(f"Transcribed {audio_path.name}: {len(text)} chars")
        return text

    async def synthesize(self, text: str, voice_id: str, path: str | Path) -> Path:
        """
        Synthesize `text` with `voice_id` into an mp3 file at `path`.

        Returns:
            Path of the written file

        Raises:
            SynthesisFailed: When the call fails or the file cannot be written
        """
        path = Path(path)
        voice = self.resolve_voice(voice_id)

        try:
            async for attempt in backend_retrying(self.retry_attempts):
                with attempt:
                    response = await self.client.audio.speech.create(
                        model=self.speech_model,
                        voice=voice,
                        input=text,
                        response_format="mp3",
                    )
            await asyncio.to_thread(path.write_bytes, response.content)
        except Exception as e:
            raise SynthesisFailed(f"Synthesis with voice '{voice}' failed: {e}") from e

        return path
