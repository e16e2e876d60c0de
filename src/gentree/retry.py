"""Retry wrapper for generation collaborator calls."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

import anyio

from gentree.errors import GenerationError
from gentree.models.run_settings import RetryPolicy


logger = logging.getLogger(__name__)

T = TypeVar("T")
RetryCallback = Callable[[int, float, GenerationError], None]


async def call_with_retry(
    policy: RetryPolicy,
    call: Callable[[], Awaitable[T]],
    *,
    on_retry: RetryCallback | None = None,
) -> T:
    """
    Calls `call`, retrying on GenerationError up to `policy.max_attempts` times.
    The delay doubles after each failed attempt.
    """
    attempt = 1
    while True:
        try:
            return await call()
        except GenerationError as exc:
            if attempt >= policy.max_attempts:
                if attempt > 1:
                    raise GenerationError(f"{exc} (gave up after {attempt} attempts)") from exc
                raise
            delay = policy.delay_for(attempt)
            logger.warning("Generation attempt %d/%d failed: %s; retrying in %.2fs", attempt, policy.max_attempts, exc, delay)
            if on_retry is not None:
                on_retry(attempt, delay, exc)
            await anyio.sleep(delay)
            attempt += 1
