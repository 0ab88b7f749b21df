from __future__ import annotations

from typing import Any

from typing_extensions import Self

from shadowire.exceptions import ShadowireInvalidShadowClassError

SHADOW_IDENTITY_METHOD_NAMES = frozenset({"get_shadow_target", "get_shadow_class"})
SHADOW_OBJECT_PROTOCOL_METHOD_NAMES = frozenset({"__repr__", "__str__", "__eq__", "__ne__", "__hash__"})


class Shadow:
    """Base class for capability classes.

    A capability class describes the members of a real target class that a
    caller wants to reach. Its methods are stubs (``...`` bodies); shadowire
    generates a subclass whose stubs dispatch to the real object.

    Capability classes are never instantiated directly. Use
    ``ShadowFactory.shadow``, ``ShadowFactory.static_shadow`` or
    ``ShadowFactory.construct_shadow`` to obtain live bindings.

    Examples:
        .. code-block:: python

            class Account:
                def __init__(self, balance: int) -> None:
                    self.__balance = balance


            @ClassTarget(Account)
            class AccountShadow(Shadow):
                @shadow_field
                @Target("__balance")
                def get_balance(self) -> int: ...


            shadow = shadow_factory.shadow(AccountShadow, Account(10))
            assert shadow.get_balance() == 10

    """

    __slots__ = ()

    def __new__(cls, *_args: object, **_kwargs: object) -> Self:
        """Prevent instantiation; bind the capability class through a ``ShadowFactory``."""
        msg = (
            f"Capability class '{cls.__qualname__}' cannot be instantiated directly. "
            "Use ShadowFactory.shadow(), static_shadow() or construct_shadow()."
        )
        raise ShadowireInvalidShadowClassError(msg, shadow_class=cls)

    def get_shadow_target(self) -> Any:
        """Return the real object behind this binding, or ``None`` for static bindings."""

    def get_shadow_class(self) -> type[Self]:  # type: ignore[empty-body]
        """Return the capability class this binding was created for."""
