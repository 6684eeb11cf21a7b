# ABOUTME: Exception definitions for transcript and session storage errors.
# ABOUTME: Defines error types raised by Transcript and the SessionStore backends.


class EmptyTranscript(Exception):
    """Raised when an assistant message is requested before the backend has replied"""
    pass


class SessionCorrupted(Exception):
    """Raised when a stored transcript cannot be decoded"""
    pass
