from __future__ import annotations

import pytest

from shadowire._internal.factory import ShadowFactory
from shadowire.lock_mode import LockMode


@pytest.fixture()
def shadowire_lock_mode() -> LockMode:
    """Lock mode used by ``shadowire_factory``.

    Override this fixture to exercise the lock-free cache mode.
    """
    return LockMode.THREAD


@pytest.fixture()
def shadowire_factory(shadowire_lock_mode: LockMode) -> ShadowFactory:
    """Create a per-test factory.

    The fixture is function-scoped, so resolver registrations and resolved
    member caches are isolated between tests instead of leaking through the
    process-wide ``shadowire.shadow_factory``.

    Returns:
        A new ``ShadowFactory`` instance.

    """
    return ShadowFactory(lock_mode=shadowire_lock_mode)
