from __future__ import annotations

import enum
import inspect
import logging
from collections.abc import Callable
from typing import Any

from shadowire._internal.annotations import safe_signature
from shadowire._internal.type_checks import is_runtime_class
from shadowire.exceptions import ShadowireStrategyInstantiationError

logger = logging.getLogger(__name__)

_FACTORY_METHOD_NAME = "get_instance"
_SINGLETON_ATTRIBUTE_NAMES = ("instance", "INSTANCE")


def discover_instance(strategy: Any) -> Any:
    """Return a usable instance for a strategy given as a class or an object.

    Objects that are not classes are returned unchanged. Classes are turned
    into instances by trying, in order:

    1. a zero-argument ``get_instance()`` static or class method declared on
       the class,
    2. the only member of a single-member ``Enum``,
    3. a class attribute named ``instance`` and then ``INSTANCE`` holding an
       instance of the class,
    4. calling the class with no arguments.

    Args:
        strategy: Strategy class or ready-made strategy object.

    Raises:
        ShadowireStrategyInstantiationError: If every attempt fails.

    """
    if not is_runtime_class(strategy):
        return strategy

    last_error: Exception | None = None
    for attempt_name, attempt in _ATTEMPTS:
        try:
            found, instance = attempt(strategy)
        except Exception as error:  # noqa: BLE001
            last_error = error
            continue
        if found:
            logger.debug("Obtained %s instance via %s", strategy.__qualname__, attempt_name)
            return instance

    msg = (
        f"Unable to obtain an instance of '{strategy.__qualname__}'. Provide a zero-argument "
        "get_instance(), a single-member enum, an 'instance'/'INSTANCE' class attribute, "
        "or a zero-argument constructor."
    )
    raise ShadowireStrategyInstantiationError(msg) from last_error


def _from_factory_method(cls: type[Any]) -> tuple[bool, Any]:
    declared = cls.__dict__.get(_FACTORY_METHOD_NAME)
    if not isinstance(declared, (staticmethod, classmethod)):
        return False, None
    factory = getattr(cls, _FACTORY_METHOD_NAME)
    if not _accepts_no_arguments(factory):
        return False, None
    instance = factory()
    return isinstance(instance, cls), instance


def _from_enum_singleton(cls: type[Any]) -> tuple[bool, Any]:
    if not issubclass(cls, enum.Enum):
        return False, None
    members = list(cls)
    if len(members) != 1:
        return False, None
    return True, members[0]


def _from_singleton_attribute(cls: type[Any]) -> tuple[bool, Any]:
    for attribute_name in _SINGLETON_ATTRIBUTE_NAMES:
        value = cls.__dict__.get(attribute_name)
        if isinstance(value, cls):
            return True, value
    return False, None


def _from_constructor(cls: type[Any]) -> tuple[bool, Any]:
    if inspect.isabstract(cls) or not _accepts_no_arguments(cls):
        return False, None
    return True, cls()


def _accepts_no_arguments(obj: Callable[..., Any]) -> bool:
    signature = safe_signature(obj)
    if signature is None:
        return True
    return all(
        parameter.default is not inspect.Parameter.empty
        or parameter.kind in {inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD}
        for parameter in signature.parameters.values()
    )


_ATTEMPTS: tuple[tuple[str, Callable[[type[Any]], tuple[bool, Any]]], ...] = (
    ("get_instance()", _from_factory_method),
    ("enum singleton", _from_enum_singleton),
    ("singleton attribute", _from_singleton_attribute),
    ("constructor", _from_constructor),
)

__all__ = ["discover_instance"]
