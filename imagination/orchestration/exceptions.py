# ABOUTME: Exception definitions for orchestration layer errors.
# ABOUTME: Defines error types raised by the response parser and the dialogue loop.


class ProtocolViolation(Exception):
    """Raised when a backend reply is not a valid phrase array"""

    def __init__(self, reason: str, raw_content: str):
        super().__init__(reason)
        self.reason = reason
        self.raw_content = raw_content


class LoopBudgetExceeded(Exception):
    """Raised when one inbound event triggers more generation rounds than allowed"""

    def __init__(self, session_id: str, max_rounds: int):
        super().__init__(
            f"Session {session_id} exceeded {max_rounds} generation rounds for one event"
        )
        self.session_id = session_id
        self.max_rounds = max_rounds


class DeliveryFailed(Exception):
    """Raised when the transport fails to deliver a text or voice message"""
    pass
