# ABOUTME: Entry point for playing in the terminal.
# ABOUTME: Wires settings, OpenAI clients, session store and the console transport: python -m imagination.interface

import asyncio
import sys

from loguru import logger
from openai import AsyncOpenAI
from pydantic import ValidationError

from imagination.agents.llm_client import GenerationClient
from imagination.agents.speech_client import SpeechClient
from imagination.config.settings import get_settings
from imagination.interface.console import ConsoleSession, ConsoleTransport
from imagination.memory.session_store import create_session_store
from imagination.orchestration.game_loop import DialogueOrchestrator
from imagination.utils.logging import setup_logging


def main() -> None:
    """Run the console game with real configuration"""
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Error: invalid configuration (is OPENAI_API_KEY set?)\n{e}")
        sys.exit(1)

    setup_logging(
        log_level=settings.log_level,
        log_dir=settings.log_dir,
        file_output=settings.log_to_file,
    )

    client = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)

    generator = GenerationClient(
        client,
        model=settings.openai_model,
        retry_attempts=settings.llm_retry_attempts,
        timeout=settings.generation_timeout_seconds,
    )
    speech = SpeechClient(
        client,
        transcription_model=settings.transcription_model,
        speech_model=settings.speech_model,
        narrator_voice=settings.narrator_voice,
        retry_attempts=settings.llm_retry_attempts,
    )

    orchestrator = DialogueOrchestrator(
        generator=generator,
        speech=speech,
        transport=ConsoleTransport(settings.voice_output_dir),
        store=create_session_store(settings),
        settings=settings,
    )

    try:
        asyncio.run(ConsoleSession(orchestrator).run())
    except KeyboardInterrupt:
        print("\nInterrupted. Goodbye!")
    except Exception:
        logger.exception("Fatal error in console session")
        sys.exit(1)


if __name__ == "__main__":
    main()
