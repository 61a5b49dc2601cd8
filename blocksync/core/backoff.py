"""Exponential backoff with jitter for the Notion transport.

Jitter comes from ``secrets`` rather than ``random`` so that many callers
retrying at once do not share a predictable sequence of delays.
"""

from __future__ import annotations

import asyncio
import secrets

JITTER_CEILING_MS = 200


def secure_jitter_ms(ceiling: int = JITTER_CEILING_MS) -> int:
    """Return a uniformly distributed integer in ``[0, ceiling)``."""
    if ceiling <= 0:
        return 0
    return secrets.randbelow(ceiling)


def compute_backoff_delay_ms(
    attempt: int,
    base_delay_ms: int,
    *,
    jitter_ceiling_ms: int = JITTER_CEILING_MS,
) -> int:
    """Delay before retrying after ``attempt`` (0-indexed) failed.

    Delay formula: ``base_delay_ms * 2^attempt + jitter`` with ``0 <= jitter < jitter_ceiling_ms``
    """
    if attempt < 0:
        msg = f"attempt must be non-negative, got {attempt}"
        raise ValueError(msg)
    return base_delay_ms * (2**attempt) + secure_jitter_ms(jitter_ceiling_ms)


async def sleep_ms(delay_ms: float) -> None:
    """Suspend the current task for ``delay_ms`` milliseconds."""
    await asyncio.sleep(max(0.0, delay_ms) / 1000)
