# ABOUTME: Configuration settings for the Imagination role-playing bot using Pydantic Settings.
# ABOUTME: Loads backend credentials, delivery gates, storage and loop limits from the environment.

import tempfile
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    # OpenAI API Configuration
    openai_api_key: str = Field(
        description="API key for the generation and speech backend"
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Optional OpenAI-compatible endpoint (e.g. a proxy)"
    )
    openai_model: str = Field(
        default="gpt-4o",
        description="Chat model acting as the game master"
    )
    transcription_model: str = Field(
        default="whisper-1",
        description="Speech-to-text model for voice messages"
    )
    speech_model: str = Field(
        default="tts-1",
        description="Text-to-speech model for voice replies"
    )
    narrator_voice: str = Field(
        default="nova",
        description="TTS voice used for the reserved 'narrator' voice id"
    )
    generation_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Request timeout for a single backend call"
    )
    llm_retry_attempts: int = Field(
        default=1,
        ge=1,
        description="Total attempts per backend call on transient errors (1 = no retry)"
    )

    # Reply delivery
    temp_dir: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory for temporary voice artifacts"
    )
    text_replies_enabled: bool = Field(
        default=True,
        description="Send formatted text replies"
    )
    voice_replies_enabled: bool = Field(
        default=True,
        description="Send synthesized voice replies"
    )
    voice_output_dir: str = Field(
        default="voice_replies",
        description="Where the console transport keeps delivered voice replies"
    )

    # Game loop
    max_generation_rounds: int = Field(
        default=8,
        ge=1,
        description="Maximum generation rounds triggered by a single inbound event"
    )
    notify_on_error: bool = Field(
        default=True,
        description="Send a short fallback message when a turn aborts"
    )
    error_fallback_message: str = Field(
        default="The game master lost the thread for a moment. Please try again.",
        description="Text sent to the player when a turn aborts"
    )

    # Session storage
    session_backend: Literal["memory", "file", "redis"] = Field(
        default="file",
        description="Transcript persistence backend"
    )
    sessions_dir: str = Field(
        default="sessions",
        description="Directory for the file session backend"
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL for the redis session backend"
    )
    session_ttl_seconds: int | None = Field(
        default=None,
        description="Optional expiry for transcripts stored in Redis"
    )

    # Application Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_dir: str = Field(
        default="logs",
        description="Directory for rotating log files"
    )
    log_to_file: bool = Field(
        default=False,
        description="Also write logs to rotating files in log_dir"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Singleton settings instance - lazy initialization to allow import without .env
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the singleton settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
