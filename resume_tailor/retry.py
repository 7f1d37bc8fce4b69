"""Deadlines and backoff for calls that leave the process (job pages, suggestions)."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from .errors import DependencyUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

#: HTTP statuses worth another attempt.
RETRYABLE_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})


@dataclass
class RetryConfig:
    """Attempts and delay schedule for :func:`retry_with_backoff`."""

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    exponential_base: float = 2.0
    jitter_factor: float = 0.2  # ±20% random variation

    def delay_for(self, attempt: int) -> float:
        """Delay after the zero-based *attempt* failed."""
        delay = min(self.base_delay * (self.exponential_base**attempt), self.max_delay)
        return delay + delay * self.jitter_factor * (2 * random.random() - 1)


class TransientError(Exception):
    """The remote side may answer on a later attempt."""


class PermanentError(Exception):
    """Retrying cannot help (bad status, wrong content type, oversized body)."""


async def with_timeout(awaitable: Awaitable[T], seconds: float, label: str) -> T:
    """Await *awaitable* for at most *seconds*.

    Raises:
        DependencyUnavailable: when the deadline passes.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        logger.warning("%s timed out after %.1fs", label, seconds)
        raise DependencyUnavailable(f"{label} timed out", {"timeout_seconds": seconds}) from e


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    config: RetryConfig,
    *args: Any,
    **kwargs: Any,
) -> T:
    """Await ``func(*args, **kwargs)``, retrying transient failures.

    Raises:
        PermanentError: as soon as a failure is not transient.
        Exception: the last transient failure once attempts run out.
    """
    for attempt in range(config.max_attempts):
        try:
            result = await func(*args, **kwargs)
        except PermanentError:
            raise
        except Exception as e:
            if not is_transient_error(e):
                logger.debug("Not retrying %s: %s", type(e).__name__, e)
                raise PermanentError(str(e)) from e
            if attempt == config.max_attempts - 1:
                logger.warning("Giving up after %d attempts: %s", config.max_attempts, e)
                raise

            delay = config.delay_for(attempt)
            logger.info("Attempt %d/%d failed (%s); retrying in %.2fs", attempt + 1, config.max_attempts, e, delay)
            await asyncio.sleep(delay)
        else:
            if attempt > 0:
                logger.info("Succeeded on attempt %d", attempt + 1)
            return result

    raise PermanentError("retry_with_backoff called with max_attempts < 1")


def is_transient_error(error: Exception) -> bool:
    """Network hiccups, timeouts and retryable HTTP statuses."""
    if isinstance(error, TransientError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUSES
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    return isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError))
