from __future__ import annotations

import types
from typing import Any, TypeGuard

from shadowire._internal.shadow import Shadow


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_shadow_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a capability class (a ``Shadow`` subclass).

    Args:
        candidate: Value being checked, usually a declared annotation.

    """
    if not is_runtime_class(candidate):
        return False
    try:
        return issubclass(candidate, Shadow) and candidate is not Shadow
    except TypeError:
        return False


__all__ = ["is_runtime_class", "is_shadow_class"]
