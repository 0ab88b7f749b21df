from __future__ import annotations

import dis
import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from shadowire._internal.annotations import own_class_annotations, safe_signature
from shadowire._internal.shadow import SHADOW_IDENTITY_METHOD_NAMES, SHADOW_OBJECT_PROTOCOL_METHOD_NAMES
from shadowire.markers import ShadowFieldMarker, ShadowingStrategy, StaticMarker, find_marker, has_marker

_NON_EXECUTING_OPNAMES = frozenset(
    {"RESUME", "NOP", "CACHE", "COPY_FREE_VARS", "MAKE_CELL", "NOT_TAKEN", "EXTENDED_ARG"},
)


class MemberKind(Enum):
    """How a live binding serves a capability member, checked in declaration order."""

    IDENTITY = auto()
    """``get_shadow_target``/``get_shadow_class``: answered by the binding itself."""

    OBJECT_PROTOCOL = auto()
    """``__repr__``/``__str__``/``__eq__``/``__ne__``/``__hash__``: answered by the binding."""

    DEFAULT = auto()
    """Function or property with a real body: inherited and run on the binding."""

    FIELD = auto()
    """Stub marked ``shadow_field``: reads or writes a real field."""

    METHOD = auto()
    """Any other stub: calls a real method."""

    UNCLASSIFIED = auto()
    """Annotation-only attribute or property stub: touching it is an error."""


@dataclass(frozen=True, eq=False, slots=True)
class CapabilityMember:
    """One member declared on a capability class (or one of its bases).

    Members compare and hash by identity; each is created once per capability
    class and doubles as a cache key.
    """

    name: str
    """Attribute name on the capability class."""
    kind: MemberKind
    """How the binding serves this member."""
    declaring_class: type[Any]
    """Capability class whose ``__dict__`` declares the member."""
    function: Callable[..., Any] | None = None
    """Declared function, unwrapped from ``staticmethod``/``classmethod``."""
    signature: inspect.Signature | None = None
    """Call signature without the implicit ``self``/``cls`` parameter."""
    is_static: bool = False
    """True when the member needs no target object."""
    wrapper: Any = None
    """Wrapper strategy class or object from a ``ShadowingStrategy`` marker."""
    unwrapper: Any = None
    """Unwrapper strategy class or object from a ``ShadowingStrategy`` marker."""

    @property
    def return_annotation(self) -> Any:
        """Return the declared return annotation, or ``inspect.Signature.empty``."""
        if self.signature is None:
            return inspect.Signature.empty
        return self.signature.return_annotation

    def describe(self) -> str:
        """Return a readable ``Capability.member`` label for logs and errors."""
        return f"{self.declaring_class.__qualname__}.{self.name}"


def is_stub_function(function: Callable[..., Any]) -> bool:
    """Return True when ``function`` has no body beyond ``...``, ``pass`` or a docstring.

    Functions marked ``@abstractmethod`` are always stubs.

    Args:
        function: Plain function to inspect.

    """
    if getattr(function, "__isabstractmethod__", False):
        return True
    code = getattr(function, "__code__", None)
    if code is None:
        return False

    instructions = [
        instruction
        for instruction in dis.get_instructions(code)
        if instruction.opname not in _NON_EXECUTING_OPNAMES
    ]
    opnames = [instruction.opname for instruction in instructions]
    if opnames == ["RETURN_CONST"]:
        return instructions[0].argval is None
    if opnames == ["LOAD_CONST", "RETURN_VALUE"]:
        return instructions[0].argval is None
    return False


def classify_members(shadow_class: type[Any]) -> Mapping[str, CapabilityMember]:
    """Classify every member visible on ``shadow_class``.

    The capability MRO is walked from the most derived class; the first
    declaration of a name wins. Dunder attributes other than the object
    protocol methods are ignored.

    Args:
        shadow_class: Capability class to classify.

    """
    members: dict[str, CapabilityMember] = {}
    for owner in shadow_class.__mro__:
        if owner is object:
            continue
        for name, declared in owner.__dict__.items():
            if name in members:
                continue
            member = _classify(owner, name, declared)
            if member is not None:
                members[name] = member

    for owner in shadow_class.__mro__:
        if owner is object:
            continue
        for name in own_class_annotations(owner):
            if name in members or _is_dunder(name) or _declared_anywhere(shadow_class, name):
                continue
            members[name] = CapabilityMember(name=name, kind=MemberKind.UNCLASSIFIED, declaring_class=owner)

    return members


def _classify(owner: type[Any], name: str, declared: Any) -> CapabilityMember | None:
    if name in SHADOW_IDENTITY_METHOD_NAMES:
        return CapabilityMember(name=name, kind=MemberKind.IDENTITY, declaring_class=owner)
    if name in SHADOW_OBJECT_PROTOCOL_METHOD_NAMES:
        return CapabilityMember(name=name, kind=MemberKind.OBJECT_PROTOCOL, declaring_class=owner)
    if _is_dunder(name):
        return None

    if isinstance(declared, property):
        if declared.fget is None or is_stub_function(declared.fget):
            return CapabilityMember(name=name, kind=MemberKind.UNCLASSIFIED, declaring_class=owner)
        return CapabilityMember(name=name, kind=MemberKind.DEFAULT, declaring_class=owner)

    implicitly_static = isinstance(declared, (staticmethod, classmethod))
    function = declared.__func__ if implicitly_static else declared
    if not inspect.isfunction(function):
        return None
    if not is_stub_function(function):
        return CapabilityMember(name=name, kind=MemberKind.DEFAULT, declaring_class=owner, function=function)

    signature = safe_signature(function)
    if signature is not None and not isinstance(declared, staticmethod):
        parameters = list(signature.parameters.values())[1:]
        signature = signature.replace(parameters=parameters)

    strategy = find_marker(function, ShadowingStrategy)
    return CapabilityMember(
        name=name,
        kind=MemberKind.FIELD if has_marker(function, ShadowFieldMarker) else MemberKind.METHOD,
        declaring_class=owner,
        function=function,
        signature=signature,
        is_static=implicitly_static or has_marker(function, StaticMarker),
        wrapper=None if strategy is None else strategy.wrapper,
        unwrapper=None if strategy is None else strategy.unwrapper,
    )


def _declared_anywhere(shadow_class: type[Any], name: str) -> bool:
    return any(name in owner.__dict__ for owner in shadow_class.__mro__)


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


__all__ = ["CapabilityMember", "MemberKind", "classify_members", "is_stub_function"]
