from __future__ import annotations

import threading
from collections.abc import Callable, Hashable, Iterator
from typing import Any, Generic, TypeVar

from shadowire.lock_mode import LockMode

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_MISSING: Any = object()


class LoadingMap(Generic[K, V]):
    """Insert-only cache that computes missing values with a loader function.

    Entries are never updated, evicted or invalidated. A loader call that
    raises stores nothing, so the next lookup of the same key runs the loader
    again.

    With ``LockMode.THREAD`` first-time loads are serialised by a re-entrant
    lock and run exactly once per key; loaders may look up other keys of the
    same map. With ``LockMode.NONE`` loads run unlocked and concurrent first
    lookups may run the loader more than once; the first stored value wins.
    """

    def __init__(self, loader: Callable[[K], V], *, lock_mode: LockMode = LockMode.THREAD) -> None:
        self._loader = loader
        self._values: dict[K, V] = {}
        self._lock: threading.RLock | None = threading.RLock() if lock_mode is LockMode.THREAD else None

    def get(self, key: K) -> V:
        """Return the value for ``key``, loading and storing it on first access.

        Args:
            key: Cache key to look up.

        """
        value = self._values.get(key, _MISSING)
        if value is not _MISSING:
            return value

        if self._lock is None:
            return self._values.setdefault(key, self._loader(key))

        with self._lock:
            value = self._values.get(key, _MISSING)
            if value is _MISSING:
                value = self._loader(key)
                self._values[key] = value
            return value

    def get_if_present(self, key: K) -> V | None:
        """Return the cached value for ``key`` without loading it.

        Args:
            key: Cache key to look up.

        """
        return self._values.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[K]:
        return iter(tuple(self._values))
