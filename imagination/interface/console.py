# ABOUTME: Console transport for playing the game from a terminal.
# ABOUTME: Parses player commands, feeds events to DialogueOrchestrator and prints/stores its replies.

import asyncio
import html
import re
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from loguru import logger

from imagination.models.game_state import TurnResult
from imagination.orchestration.game_loop import DialogueOrchestrator

# ============================================================================
# Custom Exceptions
# ============================================================================


class InvalidCommandError(Exception):
    """Raised when a command cannot be parsed"""
    pass


# ============================================================================
# Command Parsing
# ============================================================================


class PlayerCommandType(str, Enum):
    """Console commands; anything that is not a command is said in character"""
    SAY = "say"
    VOICE = "voice"
    START = "start"
    QUIT = "quit"


@dataclass
class ParsedCommand:
    """Parsed command with type and arguments"""
    command_type: PlayerCommandType
    args: dict
    raw_input: str


class PlayerCommandParser:
    """
    Parser for player input.

    Supports:
    - Plain text: "I open the door"
    - Slash commands: "/start", "/voice path/to/message.ogg", "/quit"
    """

    COMMAND_PATTERNS = {
        PlayerCommandType.START: r'^/start$',
        PlayerCommandType.QUIT: r'^/(?:quit|exit)$',
        PlayerCommandType.VOICE: r'^/voice(?:\s+(.+))?$',
    }

    def parse(self, user_input: str) -> ParsedCommand:
        """
        Parse player input into a structured command.

        Raises:
            InvalidCommandError: If input is empty or a command is malformed
        """
        if not user_input or not user_input.strip():
            raise InvalidCommandError("Cannot parse empty input")

        user_input = user_input.strip()

        for cmd_type, pattern in self.COMMAND_PATTERNS.items():
            match = re.match(pattern, user_input, re.IGNORECASE)
            if not match:
                continue

            if cmd_type == PlayerCommandType.VOICE:
                path = (match.group(1) or "").strip()
                if not path:
                    raise InvalidCommandError("Usage: /voice <path to audio file>")
                if not Path(path).is_file():
                    raise InvalidCommandError(f"Audio file not found: {path}")
                return ParsedCommand(cmd_type, {"path": Path(path)}, user_input)

            return ParsedCommand(cmd_type, {}, user_input)

        if user_input.startswith("/"):
            raise InvalidCommandError(f"Unknown command: {user_input.split()[0]}")

        return ParsedCommand(PlayerCommandType.SAY, {"text": user_input}, user_input)


# ============================================================================
# Transport
# ============================================================================


def html_to_console(markup: str) -> str:
    """Render reply markup as plain terminal text"""
    text = re.sub(r"\s*<blockquote>\s*", "\n  │ ", markup)
    text = re.sub(r"\s*</blockquote>\s*", "\n", text)
    text = re.sub(r"<[^>]+>", "", text)
    return html.unescape(text).strip()


class ConsoleTransport:
    """Prints text replies and keeps voice replies as numbered mp3 files"""

    def __init__(self, voice_output_dir: str | Path):
        self.voice_output_dir = Path(voice_output_dir)
        self.voice_output_dir.mkdir(parents=True, exist_ok=True)
        self._voice_counter = 0

    async def send_text(self, session_id: str, html_text: str) -> None:
        print(f"\n{html_to_console(html_text)}\n")

    async def send_voice(self, session_id: str, audio_path: Path) -> None:
        self._voice_counter += 1
        target = self.voice_output_dir / f"{session_id}_{self._voice_counter:04d}.mp3"
        await asyncio.to_thread(shutil.copyfile, audio_path, target)
        print(f"🔊 {target}")


# ============================================================================
# Session Loop
# ============================================================================


class ConsoleSession:
    """Reads player input and runs it through the orchestrator until /quit"""

    PROMPT = "> "

    def __init__(self, orchestrator: DialogueOrchestrator, session_id: str = "console"):
        self.orchestrator = orchestrator
        self.session_id = session_id
        self.parser = PlayerCommandParser()
        self._message_counter = 0

    def _next_message_id(self) -> str:
        self._message_counter += 1
        return f"{self.session_id}_{self._message_counter}"

    async def handle(self, command: ParsedCommand) -> TurnResult | None:
        """Dispatch one parsed command; returns None for /quit"""
        message_id = self._next_message_id()

        if command.command_type == PlayerCommandType.QUIT:
            return None

        if command.command_type == PlayerCommandType.START:
            return await self.orchestrator.on_start_command(self.session_id, message_id)

        if command.command_type == PlayerCommandType.VOICE:
            return await self.orchestrator.on_user_voice(
                self.session_id, command.args["path"], message_id
            )

        return await self.orchestrator.on_user_text(
            self.session_id, command.args["text"], message_id
        )

    async def run(self) -> None:
        """
        Main console loop.

        Reads input, parses it, forwards it to the orchestrator and
        reports dice and errors until /quit or end of input.
        """
        print("Type to act, /start for a new game, /voice <file> to speak, /quit to leave.")

        while True:
            try:
                user_input = await asyncio.to_thread(input, self.PROMPT)
            except EOFError:
                print("\nEnd of input. Exiting.")
                return

            if not user_input.strip():
                continue

            try:
                command = self.parser.parse(user_input)
            except InvalidCommandError as e:
                print(f"✗ {e}")
                continue

            result = await self.handle(command)
            if result is None:
                print("Goodbye!")
                return

            if result.dice_rolled:
                print(f"🎲 Rolled: {', '.join(str(roll) for roll in result.dice_rolled)}")
            if result.error:
                logger.debug(f"Turn ended with error: {result.error}")
