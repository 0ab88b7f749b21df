from __future__ import annotations

from typing import Any


class ShadowireError(Exception):
    """Represent a base class for all shadowire-specific failures.

    Catch this type when you want to handle any shadowire error path without
    matching each concrete exception class individually.

    Every error keeps the diagnostic context known at the raise site: the
    capability class (``shadow_class``), the capability member name
    (``member``) and the real target class (``target_class``). Attributes that
    are unknown at the raise site are ``None``.
    """

    def __init__(
        self,
        msg: str,
        *,
        shadow_class: type[Any] | None = None,
        member: str | None = None,
        target_class: type[Any] | None = None,
    ) -> None:
        super().__init__(msg)
        self.shadow_class = shadow_class
        self.member = member
        self.target_class = target_class


class ShadowireInvalidShadowClassError(ShadowireError):
    """Signal that a value passed as a capability class is not a ``Shadow`` subclass.

    Raised by ``ShadowFactory.shadow``, ``static_shadow`` and
    ``construct_shadow`` before any resolution happens.
    """


class ShadowireTargetNotFoundError(ShadowireError):
    """Signal that the target class of a capability class cannot be determined.

    Raised on first use of a capability class when no registered
    ``TargetResolver`` answers for it, or when a ``Target("pkg.mod.Name")``
    path cannot be imported.

    Typical fixes include decorating the capability class with
    ``@ClassTarget(RealClass)`` or correcting the import path.
    """


class ShadowireTypeMismatchError(ShadowireError):
    """Signal that a target object is not an instance of the capability target class.

    Raised by ``ShadowFactory.shadow`` and by the default wrapper when a
    returned value does not fit the declared capability return type.
    """


class ShadowireMemberNotFoundError(ShadowireError):
    """Signal that no real method, constructor or field matches a capability member.

    ``name`` holds the attempted real member name and ``shapes`` the argument
    types that were matched against.

    Typical fixes include adding a ``Target("real_name")`` marker, correcting
    the capability parameter annotations, or marking accessors with
    ``shadow_field``.
    """

    def __init__(
        self,
        msg: str,
        *,
        name: str,
        shapes: tuple[type[Any], ...] = (),
        shadow_class: type[Any] | None = None,
        member: str | None = None,
        target_class: type[Any] | None = None,
    ) -> None:
        super().__init__(
            msg,
            shadow_class=shadow_class,
            member=member,
            target_class=target_class,
        )
        self.name = name
        self.shapes = shapes


class ShadowireScopeError(ShadowireError):
    """Signal a static/instance mismatch between a capability member and its target.

    Raised when a member without the ``static`` marker is called on a binding
    created by ``static_shadow``, and when the ``static`` marker disagrees with
    the resolved real member (for example a ``static`` capability member bound
    to a plain instance method).
    """


class ShadowireAccessorArityError(ShadowireError):
    """Signal that a field accessor was called with an unsupported argument count.

    Field accessors take no arguments (getter) or exactly one (setter).
    """


class ShadowireArrayShapeError(ShadowireError):
    """Signal that array wrapping or unwrapping received an unexpected shape.

    Raised by ``ForShadowArrays`` when the value is not a list/tuple, or when
    the declared type is not a sequence of capability classes.
    """


class ShadowireUnclassifiedMemberError(ShadowireError):
    """Signal access to a capability member that shadowire cannot dispatch.

    Annotation-only attributes and property stubs declared on a capability
    class have no recognised access marker. This is a configuration error and
    is never retried.
    """


class ShadowireStrategyInstantiationError(ShadowireError):
    """Signal that a strategy class could not be turned into an instance.

    Dynamic target functions and wrap/unwrap strategies given as classes are
    instantiated through ``get_instance()``, a single-member enum, an
    ``instance``/``INSTANCE`` class attribute, or a zero-argument constructor.
    This error is raised when every attempt fails.
    """
