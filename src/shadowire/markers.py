from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

from shadowire._internal.strategies import ForShadowArrays

M = TypeVar("M")
MarkerT = TypeVar("MarkerT", bound="Marker")

_MARKERS_ATTR = "__shadowire_markers__"


@dataclass(frozen=True, slots=True)
class Marker:
    """Base class for declarative capability markers.

    Marker instances are decorators: applying one to a capability class or a
    capability function records it on that object. Markers are read from the
    decorated object itself, never inherited from base classes.
    """

    def __call__(self, obj: M) -> M:
        target = _marker_owner(obj)
        setattr(target, _MARKERS_ATTR, (*get_markers(target), self))
        return obj


@dataclass(frozen=True, slots=True)
class ShadowFieldMarker(Marker):
    """Mark a capability function as a field accessor (getter or setter)."""


@dataclass(frozen=True, slots=True)
class StaticMarker(Marker):
    """Mark a capability function as static-scope (class attribute or static/class method)."""


@dataclass(frozen=True, slots=True)
class ClassTarget(Marker):
    """Declare the target class of a capability class with a constant value.

    Examples:
        .. code-block:: python

            @ClassTarget(Account)
            class AccountShadow(Shadow): ...

    """

    value: type[Any]


@dataclass(frozen=True, slots=True)
class Target(Marker):
    """Declare a target by name.

    On a capability class the value is an import path such as
    ``"package.module.Account"`` or ``"package.module:Outer.Inner"``. On a
    capability function it is the real method or field name.

    Examples:
        .. code-block:: python

            @Target("billing.models.Account")
            class AccountShadow(Shadow):
                @shadow_field
                @Target("_balance")
                def get_balance(self) -> int: ...

    """

    value: str


@dataclass(frozen=True, slots=True)
class DynamicClassTarget(Marker):
    """Declare the target class of a capability class through a function.

    ``function`` is called as ``function(shadow_class)`` and must return the
    target class. Classes are instantiated through the strategy discovery
    order (``get_instance()``, single-member enum, ``instance``/``INSTANCE``,
    zero-argument constructor).
    """

    function: Any


@dataclass(frozen=True, slots=True)
class DynamicMethodTarget(Marker):
    """Declare the real method name of a capability function through a function.

    ``function`` is called as ``function(capability_function, shadow_class,
    target_class)`` and must return the real method name.
    """

    function: Any


@dataclass(frozen=True, slots=True)
class DynamicFieldTarget(Marker):
    """Declare the real field name of a field accessor through a function.

    ``function`` is called as ``function(capability_function, shadow_class,
    target_class)`` and must return the real field name.
    """

    function: Any


@dataclass(frozen=True, slots=True)
class ShadowingStrategy(Marker):
    """Override how arguments are unwrapped and results are wrapped for one member.

    ``None`` keeps the default ``ForShadows`` behavior for that side. Classes
    are instantiated through the strategy discovery order.
    """

    wrapper: Any = None
    unwrapper: Any = None


shadow_field = ShadowFieldMarker()
"""Mark a capability function as a field accessor.

Zero-argument calls read the field, one-argument calls write it.
"""

static = StaticMarker()
"""Mark a capability function as static-scope."""

shadow_arrays = ShadowingStrategy(wrapper=ForShadowArrays, unwrapper=ForShadowArrays)
"""Wrap and unwrap one-dimensional lists/tuples of capability values element-wise."""


def get_markers(obj: object) -> tuple[Marker, ...]:
    """Return markers recorded directly on ``obj`` in application order.

    Args:
        obj: Capability class or capability function.

    """
    try:
        return tuple(vars(_marker_owner(obj)).get(_MARKERS_ATTR, ()))
    except TypeError:
        return ()


def find_marker(obj: object, marker_type: type[MarkerT]) -> MarkerT | None:
    """Return the first marker of ``marker_type`` recorded on ``obj``, if any.

    Args:
        obj: Capability class or capability function.
        marker_type: Marker class to look for.

    """
    return next(
        (marker for marker in get_markers(obj) if isinstance(marker, marker_type)),
        None,
    )


def has_marker(obj: object, marker_type: type[Marker]) -> bool:
    """Return True when ``obj`` carries a marker of ``marker_type``."""
    return find_marker(obj, marker_type) is not None


def _marker_owner(obj: Any) -> Any:
    if isinstance(obj, (staticmethod, classmethod)):
        return obj.__func__
    return obj


__all__ = [
    "ClassTarget",
    "DynamicClassTarget",
    "DynamicFieldTarget",
    "DynamicMethodTarget",
    "Marker",
    "ShadowFieldMarker",
    "ShadowingStrategy",
    "StaticMarker",
    "Target",
    "find_marker",
    "get_markers",
    "has_marker",
    "shadow_arrays",
    "shadow_field",
    "static",
]
