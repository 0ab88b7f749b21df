from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, cast

from shadowire._internal.accessors import MemberAccessor
from shadowire._internal.dispatcher import build_proxy_class
from shadowire._internal.layout import FieldLocation, find_field
from shadowire._internal.loading_map import LoadingMap
from shadowire._internal.matcher import (
    KeywordShapes,
    MemberCandidate,
    MethodScope,
    Shapes,
    find_matching_constructor,
    find_matching_method,
)
from shadowire._internal.members import CapabilityMember, MemberKind, classify_members
from shadowire.exceptions import ShadowireMemberNotFoundError, ShadowireScopeError
from shadowire.lock_mode import LockMode

if TYPE_CHECKING:
    from collections.abc import Callable

    from shadowire._internal.factory import ShadowFactory

logger = logging.getLogger(__name__)

MethodKey = tuple[CapabilityMember, Shapes, KeywordShapes]
ConstructorKey = tuple[Shapes, KeywordShapes]


@dataclass(frozen=True, slots=True)
class TargetMethod:
    """A real method resolved for one capability member and argument shapes."""

    candidate: MemberCandidate
    """Matched real callable."""
    target_class: type[Any]
    """Target class of the definition, passed as ``cls`` to class methods on static bindings."""

    def invoke(
        self,
        target: Any,
        args: tuple[Any, ...],
        kwargs: Mapping[str, Any],
        accessor: MemberAccessor,
    ) -> Any:
        """Call the real method through ``accessor``.

        Args:
            target: Real object, or ``None`` on static bindings.
            args: Unwrapped positional arguments.
            kwargs: Unwrapped keyword arguments.
            accessor: Primitive used to perform the call.

        """
        scope = self.candidate.scope
        if scope is MethodScope.INSTANCE:
            call_args = (target, *args)
        elif scope is MethodScope.CLASS:
            call_args = (self.target_class if target is None else type(target), *args)
        else:
            call_args = args
        return accessor.invoke(self.candidate.function, call_args, kwargs)


@dataclass(frozen=True, slots=True)
class TargetField:
    """A real field resolved for one capability field accessor."""

    location: FieldLocation
    """Where the field lives on the target class."""

    def get(self, target: Any, accessor: MemberAccessor) -> Any:
        """Read the field from ``target`` (or from its declaring class when static)."""
        return accessor.get(self._owner(target), self.location.attribute_name)

    def set(self, target: Any, value: Any, accessor: MemberAccessor) -> None:
        """Write the field on ``target`` (or on its declaring class when static)."""
        accessor.set(self._owner(target), self.location.attribute_name, value)

    def _owner(self, target: Any) -> Any:
        return self.location.owner if self.location.is_static else target


@dataclass(frozen=True, slots=True)
class TargetConstructor:
    """The target class constructor matched for a set of argument shapes."""

    target_class: type[Any]
    """Class to instantiate."""
    signature: inspect.Signature
    """Matched constructor signature."""

    def invoke(self, args: tuple[Any, ...], kwargs: Mapping[str, Any], accessor: MemberAccessor) -> Any:
        """Construct a new target object through ``accessor``."""
        return accessor.construct(self.target_class, args, kwargs)


class ShadowDefinition:
    """Everything known about one capability class bound to its target class.

    Created once per capability class per factory. Member resolution is lazy:
    real methods, fields and constructors are looked up on first use and
    cached for the lifetime of the factory.
    """

    def __init__(
        self,
        factory: ShadowFactory,
        shadow_class: type[Any],
        target_class: type[Any],
        *,
        lock_mode: LockMode = LockMode.THREAD,
    ) -> None:
        self.factory = factory
        self.shadow_class = shadow_class
        self.target_class = target_class
        self.members: Mapping[str, CapabilityMember] = classify_members(shadow_class)
        self.methods: LoadingMap[MethodKey, TargetMethod] = LoadingMap(
            self._load_target_method,
            lock_mode=lock_mode,
        )
        self.fields: LoadingMap[CapabilityMember, TargetField] = LoadingMap(
            self._load_target_field,
            lock_mode=lock_mode,
        )
        self.constructors: LoadingMap[ConstructorKey, TargetConstructor] = LoadingMap(
            self._load_target_constructor,
            lock_mode=lock_mode,
        )
        self.proxy_class: type[Any] = build_proxy_class(self)

    def __repr__(self) -> str:
        return (
            f"ShadowDefinition(shadow_class={self.shadow_class.__qualname__}, "
            f"target_class={self.target_class.__qualname__})"
        )

    def members_of_kind(self, kind: MemberKind) -> tuple[CapabilityMember, ...]:
        """Return the classified members of ``kind`` in declaration order."""
        return tuple(member for member in self.members.values() if member.kind is kind)

    def find_target_method(
        self,
        member: CapabilityMember,
        shapes: Shapes,
        keyword_shapes: KeywordShapes = (),
    ) -> TargetMethod:
        """Return the real method serving ``member`` for the given argument shapes."""
        return self.methods.get((member, shapes, keyword_shapes))

    def find_target_field(self, member: CapabilityMember) -> TargetField:
        """Return the real field serving the field accessor ``member``."""
        return self.fields.get(member)

    def find_target_constructor(self, shapes: Shapes, keyword_shapes: KeywordShapes = ()) -> TargetConstructor:
        """Return the target constructor accepting the given argument shapes."""
        return self.constructors.get((shapes, keyword_shapes))

    def _load_target_method(self, key: MethodKey) -> TargetMethod:
        member, shapes, keyword_shapes = key
        function = cast("Callable[..., Any]", member.function)
        name = self.factory.target_lookup.lookup_method(function, self.shadow_class, self.target_class)
        if name is None:
            name = member.name

        try:
            candidate = find_matching_method(self.target_class, name, shapes, keyword_shapes)
        except ShadowireMemberNotFoundError as error:
            error.shadow_class = self.shadow_class
            error.member = member.name
            raise

        self._check_scope(member, target_is_static=candidate.scope.is_static, target_label=candidate.describe())
        logger.debug("Resolved %s to %s", member.describe(), candidate.describe())
        return TargetMethod(candidate=candidate, target_class=self.target_class)

    def _load_target_field(self, member: CapabilityMember) -> TargetField:
        function = cast("Callable[..., Any]", member.function)
        name = self.factory.target_lookup.lookup_field(function, self.shadow_class, self.target_class)
        if name is None:
            name = member.name

        try:
            location = find_field(self.target_class, name)
        except ShadowireMemberNotFoundError as error:
            error.shadow_class = self.shadow_class
            error.member = member.name
            raise

        self._check_scope(
            member,
            target_is_static=location.is_static,
            target_label=f"field {location.owner.__qualname__}.{location.attribute_name}",
        )
        logger.debug(
            "Resolved %s to field %s.%s",
            member.describe(),
            location.owner.__qualname__,
            location.attribute_name,
        )
        return TargetField(location=location)

    def _load_target_constructor(self, key: ConstructorKey) -> TargetConstructor:
        shapes, keyword_shapes = key
        signature = find_matching_constructor(self.target_class, shapes, keyword_shapes)
        logger.debug("Resolved constructor %s%s", self.target_class.__qualname__, signature)
        return TargetConstructor(target_class=self.target_class, signature=signature)

    def _check_scope(self, member: CapabilityMember, *, target_is_static: bool, target_label: str) -> None:
        if member.is_static == target_is_static:
            return
        if member.is_static:
            msg = f"Capability member '{member.describe()}' is static, but {target_label} is not."
        else:
            msg = f"Capability member '{member.describe()}' is not static, but {target_label} is."
        raise ShadowireScopeError(
            msg,
            shadow_class=self.shadow_class,
            member=member.name,
            target_class=self.target_class,
        )


__all__ = [
    "ShadowDefinition",
    "TargetConstructor",
    "TargetField",
    "TargetMethod",
]
