from __future__ import annotations

import importlib
import re
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from shadowire._internal.instances import discover_instance
from shadowire._internal.type_checks import is_runtime_class
from shadowire.exceptions import ShadowireTargetNotFoundError
from shadowire.markers import (
    ClassTarget,
    DynamicClassTarget,
    DynamicFieldTarget,
    DynamicMethodTarget,
    Target,
    find_marker,
)

_SNAKE_CASE_ACCESSOR = re.compile(r"^(?:get|is|set)_(?P<name>\w+)$")
_CAMEL_CASE_ACCESSOR = re.compile(r"^(?:get|is|set)(?P<head>[A-Z])(?P<tail>\w*)$")


class TargetResolver:
    """Answer how capability classes and members map onto real classes and names.

    Every lookup returns ``None`` when the resolver has no answer, letting the
    next resolver in the chain try. Subclass and override only the lookups you
    need, then register the resolver with
    ``ShadowFactory.register_target_resolver``.

    Examples:
        .. code-block:: python

            class PrefixResolver(TargetResolver):
                def lookup_method(self, function, shadow_class, target_class):
                    if function.__name__.startswith("raw_"):
                        return "_" + function.__name__.removeprefix("raw_")
                    return None


            shadow_factory.register_target_resolver(PrefixResolver())

    """

    def lookup_class(self, shadow_class: type[Any]) -> type[Any] | None:
        """Return the target class for ``shadow_class``, if this resolver knows it.

        Args:
            shadow_class: Capability class being defined.

        """
        return None

    def lookup_method(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        """Return the real method name for a capability function, if known.

        Args:
            function: Capability function being resolved.
            shadow_class: Capability class declaring the function.
            target_class: Real class the name must resolve on.

        """
        return None

    def lookup_field(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        """Return the real field name for a field accessor, if known.

        Args:
            function: Capability accessor function being resolved.
            shadow_class: Capability class declaring the function.
            target_class: Real class the name must resolve on.

        """
        return None


@dataclass(frozen=True)
class ClassTargetResolver(TargetResolver):
    """Resolve target classes declared with ``ClassTarget``."""

    def lookup_class(self, shadow_class: type[Any]) -> type[Any] | None:
        marker = find_marker(shadow_class, ClassTarget)
        return None if marker is None else marker.value


@dataclass(frozen=True)
class NameTargetResolver(TargetResolver):
    """Resolve names and import paths declared with ``Target``."""

    def lookup_class(self, shadow_class: type[Any]) -> type[Any] | None:
        marker = find_marker(shadow_class, Target)
        if marker is None:
            return None
        return import_target_class(marker.value, shadow_class=shadow_class)

    def lookup_method(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        marker = find_marker(function, Target)
        return None if marker is None else marker.value

    def lookup_field(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        marker = find_marker(function, Target)
        return None if marker is None else marker.value


@dataclass(frozen=True)
class DynamicClassTargetResolver(TargetResolver):
    """Resolve target classes computed by a ``DynamicClassTarget`` function.

    ``instance_of`` turns the marker's function (a callable or a class) into
    the callable to invoke.
    """

    instance_of: Callable[[Any], Any] = discover_instance

    def lookup_class(self, shadow_class: type[Any]) -> type[Any] | None:
        marker = find_marker(shadow_class, DynamicClassTarget)
        if marker is None:
            return None
        target_class = self.instance_of(marker.function)(shadow_class)
        if not is_runtime_class(target_class):
            msg = (
                f"Dynamic target function for '{shadow_class.__qualname__}' returned "
                f"{target_class!r}, expected a class."
            )
            raise ShadowireTargetNotFoundError(msg, shadow_class=shadow_class)
        return target_class


@dataclass(frozen=True)
class DynamicMethodTargetResolver(TargetResolver):
    """Resolve method names computed by a ``DynamicMethodTarget`` function."""

    instance_of: Callable[[Any], Any] = discover_instance

    def lookup_method(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        marker = find_marker(function, DynamicMethodTarget)
        if marker is None:
            return None
        return self.instance_of(marker.function)(function, shadow_class, target_class)


@dataclass(frozen=True)
class DynamicFieldTargetResolver(TargetResolver):
    """Resolve field names computed by a ``DynamicFieldTarget`` function."""

    instance_of: Callable[[Any], Any] = discover_instance

    def lookup_field(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        marker = find_marker(function, DynamicFieldTarget)
        if marker is None:
            return None
        return self.instance_of(marker.function)(function, shadow_class, target_class)


@dataclass(frozen=True)
class FuzzyFieldTargetResolver(TargetResolver):
    """Map getter/setter style accessor names onto field names.

    ``get_name``/``is_name``/``set_name`` map to ``name``; ``getName``,
    ``isName`` and ``setName`` map to ``name`` with the first letter
    lower-cased.
    """

    def lookup_field(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        return fuzzy_field_name(function.__name__)


def fuzzy_field_name(accessor_name: str) -> str | None:
    """Return the field name implied by a getter/setter name, if it follows the pattern.

    Args:
        accessor_name: Capability accessor function name.

    """
    if match := _SNAKE_CASE_ACCESSOR.match(accessor_name):
        return match.group("name")
    if match := _CAMEL_CASE_ACCESSOR.match(accessor_name):
        return match.group("head").lower() + match.group("tail")
    return None


def import_target_class(path: str, *, shadow_class: type[Any] | None = None) -> type[Any]:
    """Import a class from ``"package.module.Name"`` or ``"package.module:Outer.Inner"``.

    Args:
        path: Import path of the class.
        shadow_class: Capability class used for error context.

    Raises:
        ShadowireTargetNotFoundError: If the module or attribute cannot be
            found, or the attribute is not a class.

    """
    module_name, separator, qualname = path.partition(":")
    if not separator:
        module_name, _, qualname = path.rpartition(".")

    try:
        if not module_name or not qualname:
            msg = f"'{path}' is not an import path."
            raise ValueError(msg)
        resolved: Any = importlib.import_module(module_name)
        for attribute_name in qualname.split("."):
            resolved = getattr(resolved, attribute_name)
    except (ImportError, AttributeError, ValueError) as error:
        msg = f"Unable to import target class '{path}': {error}"
        raise ShadowireTargetNotFoundError(msg, shadow_class=shadow_class) from error

    if not is_runtime_class(resolved):
        msg = f"Target '{path}' resolved to {resolved!r}, expected a class."
        raise ShadowireTargetNotFoundError(msg, shadow_class=shadow_class)
    return resolved


def default_target_resolvers(
    instance_of: Callable[[Any], Any] = discover_instance,
) -> tuple[TargetResolver, ...]:
    """Return the built-in resolver chain in lookup order.

    Args:
        instance_of: Turns a dynamic marker's function into the callable to
            invoke. ``ShadowFactory`` passes its cached ``strategy_instance``
            so each computing class is instantiated once per factory.

    """
    return (
        ClassTargetResolver(),
        NameTargetResolver(),
        DynamicClassTargetResolver(instance_of),
        DynamicMethodTargetResolver(instance_of),
        DynamicFieldTargetResolver(instance_of),
        FuzzyFieldTargetResolver(),
    )


DEFAULT_TARGET_RESOLVERS: tuple[TargetResolver, ...] = default_target_resolvers()


class TargetLookup(TargetResolver):
    """Delegate lookups to an ordered chain of resolvers; the first answer wins.

    Registered resolvers take priority over the built-in ones. The chain is
    copy-on-write, so lookups iterate a stable snapshot while registrations
    happen concurrently.
    """

    def __init__(self, resolvers: Iterable[TargetResolver] = DEFAULT_TARGET_RESOLVERS) -> None:
        self._resolvers: tuple[TargetResolver, ...] = tuple(resolvers)
        self._lock = threading.Lock()

    @property
    def resolvers(self) -> tuple[TargetResolver, ...]:
        """Return the current resolver chain in lookup order."""
        return self._resolvers

    def register_resolver(self, resolver: TargetResolver) -> bool:
        """Insert ``resolver`` at the front of the chain unless an equal one is present.

        Args:
            resolver: Resolver to register.

        Returns:
            ``True`` when the resolver was inserted, ``False`` when ignored.

        """
        with self._lock:
            if resolver in self._resolvers:
                return False
            self._resolvers = (resolver, *self._resolvers)
            return True

    def lookup_class(self, shadow_class: type[Any]) -> type[Any] | None:
        for resolver in self._resolvers:
            result = resolver.lookup_class(shadow_class)
            if result is not None:
                return result
        return None

    def lookup_method(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        for resolver in self._resolvers:
            result = resolver.lookup_method(function, shadow_class, target_class)
            if result is not None:
                return result
        return None

    def lookup_field(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        for resolver in self._resolvers:
            result = resolver.lookup_field(function, shadow_class, target_class)
            if result is not None:
                return result
        return None


__all__ = [
    "DEFAULT_TARGET_RESOLVERS",
    "ClassTargetResolver",
    "DynamicClassTargetResolver",
    "DynamicFieldTargetResolver",
    "DynamicMethodTargetResolver",
    "FuzzyFieldTargetResolver",
    "NameTargetResolver",
    "TargetLookup",
    "TargetResolver",
    "default_target_resolvers",
    "fuzzy_field_name",
    "import_target_class",
]
