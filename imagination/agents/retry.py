# ABOUTME: Exponential backoff retry policy for OpenAI backend calls.
# ABOUTME: Retries only transient connection and rate-limit errors; attempt count comes from settings.

from loguru import logger
from openai import APIConnectionError, RateLimitError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# APITimeoutError is a subclass of APIConnectionError
TRANSIENT_ERRORS = (APIConnectionError, RateLimitError)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Backend call attempt {retry_state.attempt_number} failed "
        f"({type(exc).__name__}: {exc}), retrying"
    )


def backend_retrying(attempts: int) -> AsyncRetrying:
    """
    Retry controller for a single backend call.

    Usage:
        async for attempt in backend_retrying(3):
            with attempt:
                response = await client.chat.completions.create(...)

    Args:
        attempts: Total attempts, including the first one (1 = no retry)

    Returns:
        AsyncRetrying that re-raises the last error when attempts run out
    """
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        before_sleep=_log_retry,
        reraise=True,
    )
