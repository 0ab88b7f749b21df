from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select locking behavior for the resolution caches of a ``ShadowFactory``.

    Resolution is deterministic and free of side effects, so both modes give
    the same results. They differ only in how often concurrent first lookups
    of the same key run the resolution work.
    """

    THREAD = "thread"
    """Guard first-time resolution with ``threading.RLock`` (exactly once per key)."""

    NONE = "none"
    """Resolve without locking; concurrent first lookups may resolve more than once."""
