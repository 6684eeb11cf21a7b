# ABOUTME: Structured logging configuration using loguru for the dialogue loop.
# ABOUTME: Supports context fields (session, phase, round) and console/rotating file output.

import sys
from pathlib import Path
from typing import Any

from loguru import logger


# Default log format with structured context
DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | "
    "{extra}"
)


def setup_logging(
    log_level: str = "INFO",
    log_dir: str | Path | None = None,
    console_output: bool = True,
    file_output: bool = True,
    format_string: str | None = None,
    rotation: str = "100 MB",
    retention: str = "30 days",
    compression: str = "zip"
) -> None:
    """
    Configure loguru for console and file logging.

    Usage:
        >>> setup_logging(log_level="DEBUG", log_dir="logs")
        >>> logger.bind(session="42").info("Turn started")

    Args:
        log_level: Minimum log level ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        log_dir: Directory for log files (default: "logs")
        console_output: Enable console logging (default: True)
        file_output: Enable file logging (default: True)
        format_string: Custom format string (default: structured format)
        rotation: When to rotate log files (default: "100 MB")
        retention: How long to keep old logs (default: "30 days")
        compression: Compression for rotated logs (default: "zip")

    Raises:
        ValueError: If log_level is invalid
    """
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    log_level = log_level.upper()
    if log_level not in valid_levels:
        raise ValueError(
            f"Invalid log level: '{log_level}'. "
            f"Must be one of: {', '.join(sorted(valid_levels))}"
        )

    # Remove default handler
    logger.remove()

    fmt = format_string or DEFAULT_FORMAT

    if console_output:
        logger.add(
            sys.stderr,
            format=fmt,
            level=log_level,
            colorize=True,
            backtrace=True,
            diagnose=True,
        )

    if file_output:
        log_dir = Path("logs") if log_dir is None else Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / "imagination_{time:YYYY-MM-DD}.log"
        logger.add(
            str(log_file),
            format=fmt,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            backtrace=True,
            diagnose=False,  # no variable dumps (transcripts) in files
            enqueue=True,  # Thread-safe
        )

    logger.info(
        f"Logging configured: level={log_level}, "
        f"console={console_output}, file={file_output}"
    )


def log_turn_event(
    message: str,
    phase: str,
    session_id: str,
    round_number: int,
    level: str = "INFO",
    **extra_context: Any
) -> None:
    """
    Log a dialogue loop event with the standard context fields.

    Usage:
        >>> log_turn_event(
        ...     "Backend reply appended",
        ...     phase="generating",
        ...     session_id="1234",
        ...     round_number=2,
        ...     phrases=3
        ... )

    Args:
        message: Log message
        phase: Current dialogue phase
        session_id: Conversation id
        round_number: Generation round within the current inbound event
        level: Log level (default: "INFO")
        **extra_context: Additional context fields
    """
    context = {
        "phase": phase,
        "session": session_id,
        "round": round_number,
        **extra_context
    }

    logger.bind(**context).log(level.upper(), message)


def log_phase_transition(
    from_phase: str,
    to_phase: str,
    session_id: str,
    round_number: int,
    duration_ms: float | None = None
) -> None:
    """
    Log a dialogue phase transition with optional timing information.

    Usage:
        >>> log_phase_transition(
        ...     from_phase="generating",
        ...     to_phase="dispatching",
        ...     session_id="1234",
        ...     round_number=1,
        ...     duration_ms=850.2
        ... )
    """
    context: dict[str, Any] = {
        "from_phase": from_phase,
        "to_phase": to_phase,
        "session": session_id,
        "round": round_number,
    }

    if duration_ms is not None:
        context["duration_ms"] = duration_ms

    logger.bind(**context).debug(
        f"Phase transition: {from_phase} -> {to_phase}"
    )
