from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from shadowire._internal.annotations import sequence_element_annotation, strip_optional
from shadowire._internal.shadow import Shadow
from shadowire._internal.type_checks import is_shadow_class
from shadowire.exceptions import ShadowireArrayShapeError

if TYPE_CHECKING:
    from shadowire._internal.factory import ShadowFactory


@runtime_checkable
class Wrapper(Protocol):
    """Turn a value returned by the real target into what the capability member declares."""

    def wrap(self, value: Any, expected_type: Any, factory: ShadowFactory) -> Any:
        """Wrap ``value`` for a capability member whose declared return type is ``expected_type``.

        Args:
            value: Raw value produced by the real member.
            expected_type: Declared capability return annotation.
            factory: Factory used to create live bindings.

        """
        ...


@runtime_checkable
class Unwrapper(Protocol):
    """Turn capability-side arguments and declared types into what the real target expects."""

    def unwrap(self, value: Any, expected_type: Any, factory: ShadowFactory) -> Any:
        """Unwrap one argument value.

        Args:
            value: Argument as passed by the caller.
            expected_type: Declared parameter type, already passed through ``unwrap_type``.
            factory: Factory used to look up target classes.

        """
        ...

    def unwrap_type(self, declared_type: Any, factory: ShadowFactory) -> Any:
        """Return the real-side type matching a declared capability parameter type.

        Args:
            declared_type: Declared capability parameter annotation.
            factory: Factory used to look up target classes.

        """
        ...


class NoShadowing:
    """Pass values and types through unchanged."""

    def wrap(self, value: Any, expected_type: Any, factory: ShadowFactory) -> Any:
        """Return ``value`` unchanged."""
        return value

    def unwrap(self, value: Any, expected_type: Any, factory: ShadowFactory) -> Any:
        """Return ``value`` unchanged."""
        return value

    def unwrap_type(self, declared_type: Any, factory: ShadowFactory) -> Any:
        """Return ``declared_type`` unchanged."""
        return declared_type


class ForShadows:
    """Default strategy: unwrap live bindings to their targets, wrap results in capability classes.

    Wrapping applies when the declared return type, with ``Optional``
    stripped, is a capability class. ``None`` is never wrapped.
    """

    def wrap(self, value: Any, expected_type: Any, factory: ShadowFactory) -> Any:
        """Bind ``value`` to the declared capability class, if there is one."""
        if value is None:
            return None
        shadow_class = strip_optional(expected_type)
        if not is_shadow_class(shadow_class):
            return value
        return factory.shadow(shadow_class, value)

    def unwrap(self, value: Any, expected_type: Any, factory: ShadowFactory) -> Any:
        """Replace a live binding with its target."""
        return _unwrap_binding(value)

    def unwrap_type(self, declared_type: Any, factory: ShadowFactory) -> Any:
        """Map a capability class to its target class once it is defined."""
        stripped = strip_optional(declared_type)
        if is_shadow_class(stripped):
            return factory.get_target_class(stripped)
        return declared_type


class ForShadowArrays:
    """Wrap and unwrap one-dimensional lists/tuples of capability values element-wise.

    The declared type must be ``list[Cap]``, ``tuple[Cap, ...]`` or
    ``Sequence[Cap]`` where ``Cap`` is a capability class. Results are fresh
    containers of the declared kind; ``None`` elements stay ``None``.
    """

    def wrap(self, value: Any, expected_type: Any, factory: ShadowFactory) -> Any:
        """Bind every element of ``value`` to the declared element capability class."""
        if value is None:
            return None
        _require_sequence_value(value, "wrapped")
        container, element_type = _require_shadow_sequence(expected_type)
        return container(None if item is None else factory.shadow(element_type, item) for item in value)

    def unwrap(self, value: Any, expected_type: Any, factory: ShadowFactory) -> Any:
        """Replace every live binding in ``value`` with its target."""
        if value is None:
            return None
        _require_sequence_value(value, "unwrapped")
        split = sequence_element_annotation(expected_type)
        if split is None:
            msg = f"Expected type is not a sequence: {expected_type!r}"
            raise ShadowireArrayShapeError(msg)
        container, _ = split
        return container(_unwrap_binding(item) for item in value)

    def unwrap_type(self, declared_type: Any, factory: ShadowFactory) -> Any:
        """Map ``list[Cap]``/``tuple[Cap, ...]`` to the matching target-class sequence."""
        container, element_type = _require_shadow_sequence(declared_type)
        target_class = factory.get_target_class(element_type)
        if container is tuple:
            return tuple[target_class, ...]  # type: ignore[valid-type]
        return list[target_class]  # type: ignore[valid-type]


def _unwrap_binding(value: Any) -> Any:
    while isinstance(value, Shadow):
        value = value.get_shadow_target()
    return value


def _require_sequence_value(value: Any, role: str) -> None:
    if not isinstance(value, (list, tuple)):
        msg = f"Object to be {role} is not a list or tuple: {type(value)!r}"
        raise ShadowireArrayShapeError(msg)


def _require_shadow_sequence(declared_type: Any) -> tuple[type[Any], type[Any]]:
    split = sequence_element_annotation(declared_type)
    if split is None:
        msg = f"Expected type is not a sequence: {declared_type!r}"
        raise ShadowireArrayShapeError(msg)
    container, element_type = split
    element_type = strip_optional(element_type)
    if not is_shadow_class(element_type):
        msg = f"Expected type is not a sequence of capability classes: {declared_type!r}"
        raise ShadowireArrayShapeError(msg)
    return container, element_type


__all__ = ["ForShadowArrays", "ForShadows", "NoShadowing", "Unwrapper", "Wrapper"]
