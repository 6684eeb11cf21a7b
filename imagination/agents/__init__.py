# ABOUTME: Backend collaborator exports for generation and speech.
# ABOUTME: Provides OpenAI-backed GenerationClient and SpeechClient with their error types.

from imagination.agents.exceptions import GenerationFailed, SynthesisFailed, TranscriptionFailed
from imagination.agents.llm_client import GenerationClient
from imagination.agents.speech_client import SpeechClient

__all__ = [
    "GenerationClient",
    "SpeechClient",
    "GenerationFailed",
    "TranscriptionFailed",
    "SynthesisFailed",
]
