# ABOUTME: Exception definitions for backend collaborator failures.
# ABOUTME: Defines error types raised by the generation and speech clients.


class GenerationFailed(Exception):
    """Raised when the game master backend call fails or returns nothing"""
    pass


class TranscriptionFailed(Exception):
    """Raised when a voice message cannot be turned into text"""
    pass


class SynthesisFailed(Exception):
    """Raised when a voice reply cannot be synthesized"""
    pass
