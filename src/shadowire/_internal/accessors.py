from __future__ import annotations

import types
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MemberAccessor(Protocol):
    """Low-level primitive used to touch real members once they are resolved.

    Replace it through ``ShadowFactory(accessor=...)`` to trace, sandbox or
    otherwise intercept every read, write, call and construction performed on
    behalf of live bindings.
    """

    def get(self, owner: Any, name: str) -> Any:
        """Read attribute ``name`` from an object, or from a class for static fields."""
        ...

    def set(self, owner: Any, name: str, value: Any) -> None:
        """Write attribute ``name`` on an object, or on a class for static fields."""
        ...

    def invoke(self, function: Callable[..., Any], args: Sequence[Any], kwargs: Mapping[str, Any]) -> Any:
        """Call a resolved real function with fully prepared arguments."""
        ...

    def construct(self, cls: type[Any], args: Sequence[Any], kwargs: Mapping[str, Any]) -> Any:
        """Create a new instance of a real class."""
        ...


class DefaultMemberAccessor:
    """Access members through the generic ``object``/``type`` attribute protocol.

    Writes skip class-level ``__setattr__`` overrides, so frozen dataclasses,
    frozen attrs classes, frozen pydantic models and hand-written write guards
    are modified like any other object. Slot fields are written through their
    member descriptor.
    """

    def get(self, owner: Any, name: str) -> Any:
        """Read ``name`` without running ``__getattribute__`` overrides."""
        if isinstance(owner, type):
            return type.__getattribute__(owner, name)
        return object.__getattribute__(owner, name)

    def set(self, owner: Any, name: str, value: Any) -> None:
        """Write ``name`` without running ``__setattr__`` overrides."""
        if isinstance(owner, type):
            type.__setattr__(owner, name, value)
            return
        descriptor = _find_slot_descriptor(type(owner), name)
        if descriptor is not None:
            descriptor.__set__(owner, value)
            return
        object.__setattr__(owner, name, value)

    def invoke(self, function: Callable[..., Any], args: Sequence[Any], kwargs: Mapping[str, Any]) -> Any:
        """Call ``function`` directly."""
        return function(*args, **kwargs)

    def construct(self, cls: type[Any], args: Sequence[Any], kwargs: Mapping[str, Any]) -> Any:
        """Instantiate ``cls`` through its regular constructor."""
        return cls(*args, **kwargs)


def _find_slot_descriptor(cls: type[Any], name: str) -> types.MemberDescriptorType | None:
    for owner in cls.__mro__:
        descriptor = owner.__dict__.get(name)
        if isinstance(descriptor, types.MemberDescriptorType):
            return descriptor
        if descriptor is not None:
            return None
    return None


__all__ = ["DefaultMemberAccessor", "MemberAccessor"]
