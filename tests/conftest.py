"""Shared pytest fixtures for shadowire tests."""

import pytest

from shadowire import ShadowFactory


@pytest.fixture()
def factory() -> ShadowFactory:
    """Fresh factory so resolver registrations and caches stay isolated per test."""
    return ShadowFactory()
