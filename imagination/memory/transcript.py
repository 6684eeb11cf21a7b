# ABOUTME: Ordered per-session message log exchanged with the game master backend.
# ABOUTME: Append-only apart from wholesale reset to a seed sequence on a new game.

from collections.abc import Iterable, Iterator

from imagination.memory.exceptions import EmptyTranscript
from imagination.models.messages import ChatMessage, Role


class Transcript:
    """
    Message log of one conversation.

    Messages are only ever appended; the log is replaced as a whole by
    `reset()` (new game) and never partially truncated.
    """

    def __init__(self, session_id: str, messages: Iterable[ChatMessage] = ()):
        self.session_id = session_id
        self._messages: list[ChatMessage] = list(messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self._messages)

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def reset(self, seed: Iterable[ChatMessage]) -> None:
        """Replace the whole log with `seed`"""
        self._messages = list(seed)

    def current(self) -> list[ChatMessage]:
        """Snapshot of the log in order"""
        return list(self._messages)

    def last_assistant_message(self) -> ChatMessage:
        """
        Latest backend reply.

        Raises:
            EmptyTranscript: When the backend has not replied yet
        """
        for message in reversed(self._messages):
            if message.role == Role.ASSISTANT:
                return message

        raise EmptyTranscript(
            f"Session {self.session_id} has no assistant message yet"
        )

    def to_openai(self) -> list[dict[str, str]]:
        """Messages as chat-completions dicts"""
        return [message.to_openai() for message in self._messages]
