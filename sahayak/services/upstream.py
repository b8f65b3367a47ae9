"""
Sahayak — Upstream Call Guard
Bounds the latency of calls to external collaborators: each attempt gets a
timeout, a failed attempt is retried after an exponential backoff, and the
final failure surfaces as UpstreamUnavailableError so the caller can answer
"temporarily unavailable" instead of stalling the session.
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from sahayak.config import Settings, get_settings
from sahayak.errors import NotFoundError, UpstreamUnavailableError
from sahayak.utils.logger import logger

T = TypeVar("T")

# Failures worth a retry. Domain errors (NotFound etc.) propagate untouched.
RETRYABLE_ERRORS = (asyncio.TimeoutError, ConnectionError, OSError, UpstreamUnavailableError)


async def call_upstream(
    collaborator: str,
    call: Callable[[], Awaitable[T]],
    settings: Settings | None = None,
    timeout: float | None = None,
) -> T:
    """
    Await ``call()`` with a per-attempt timeout and bounded retries.
    ``call`` must build a fresh awaitable each time it is invoked.
    """
    settings = settings or get_settings()
    budget = timeout if timeout is not None else settings.upstream_timeout_seconds
    attempts = 1 + max(0, settings.upstream_max_retries)

    last_error: BaseException | None = None
    for attempt in range(attempts):
        try:
            return await asyncio.wait_for(call(), timeout=budget)
        except NotFoundError:
            raise
        except RETRYABLE_ERRORS as e:
            last_error = e
            wait = settings.upstream_retry_backoff_seconds * (2 ** attempt)
            logger.warning(
                f"⏳ {collaborator} attempt {attempt + 1}/{attempts} failed: {e!r}. "
                + (f"Retrying in {wait:.2f}s..." if attempt < attempts - 1 else "Giving up.")
            )
            if attempt < attempts - 1:
                await asyncio.sleep(wait)

    raise UpstreamUnavailableError(collaborator, last_error)
