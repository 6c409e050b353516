from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import OPERATION_MAX_ATTEMPTS, RETRY_MAX_BACKOFF_SECONDS
from ..logging_config import log_structured_error
from .internal import (
    InternalError,
    NetworkError,
    OAuthError,
    ParsingError,
    RateLimitError,
)

T = TypeVar("T")


def _categorize(error: Exception) -> str:
    if isinstance(error, NetworkError | OSError | ConnectionError):
        return "network"
    if isinstance(error, OAuthError):
        return "auth"
    if isinstance(error, RateLimitError):
        return "ratelimit"
    if isinstance(error, ParsingError):
        return "parsing"
    if isinstance(error, InternalError):
        return "internal"
    return "unknown"


def log_error(message: str, error: Exception, context: dict | None = None) -> None:
    """Log ``error`` through the structured error logger under its category.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    log_structured_error(
        error_type=_categorize(error),
        message=f"{message}: {error}",
        exception=error,
        context=context,
    )


async def handle_api_error(operation: Callable[[], Awaitable[T]], context: str) -> T:  # type: ignore[valid-type]
    """Run a REST operation and translate failures into the internal hierarchy.

    Args:
        operation: The async API operation to execute.
        context: Descriptive context for the operation (e.g. "update channel").

    Returns:
        The result of the operation if successful.

    Raises:
        NetworkError, OAuthError, RateLimitError, ParsingError or InternalError.
    """
    try:
        return await operation()
    except (aiohttp.ClientError, ValueError, RuntimeError, OSError, InternalError) as e:
        if isinstance(e, NetworkError | OAuthError | RateLimitError | ParsingError):
            log_error(f"API operation failed in {context}", e, context={"operation": context})
            raise
        error_context: dict[str, object] = {"operation": context, "timestamp": time.time()}
        status = getattr(e, "status", None)
        if status is not None:
            error_context["http_status"] = status

        log_error(f"API operation failed in {context}", e, context=error_context)

        if isinstance(e, OSError | ConnectionError | aiohttp.ClientConnectionError):
            raise NetworkError(
                f"Network connectivity issue in {context}. Error: {e}"
            ) from e
        if status == 401:
            raise OAuthError(
                f"Authentication failed in {context}. Token may be expired or invalid. Error: {e}"
            ) from e
        if status == 429:
            raise RateLimitError(f"API rate limit exceeded in {context}.") from e
        if isinstance(status, int) and 400 <= status < 500:
            raise ParsingError(
                f"Client error in {context} (HTTP {status}). Error: {e}"
            ) from e
        raise InternalError(f"Unexpected error in {context}. Error: {e}") from e


async def with_retry(  # type: ignore[valid-type]
    operation: Callable[[], Awaitable[T]],
    context: str,
    max_attempts: int = OPERATION_MAX_ATTEMPTS,
) -> T:
    """Run ``operation`` through ``handle_api_error``, retrying on NetworkError.

    Raises:
        The last NetworkError once attempts are exhausted, or any other
        internal error immediately.
    """

    def before_sleep(retry_state):
        logging.info(f"Retrying {context} (attempt {retry_state.attempt_number + 1})")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, max=RETRY_MAX_BACKOFF_SECONDS),
        retry=retry_if_exception_type(NetworkError),
        before_sleep=before_sleep,
        reraise=True,
    )
    return await retrying(handle_api_error, operation, context)
