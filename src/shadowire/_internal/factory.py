from __future__ import annotations

import logging
from typing import Any, TypeVar

from shadowire._internal.accessors import DefaultMemberAccessor, MemberAccessor
from shadowire._internal.definition import ShadowDefinition
from shadowire._internal.dispatcher import ShadowDispatcher, new_binding
from shadowire._internal.instances import discover_instance
from shadowire._internal.loading_map import LoadingMap
from shadowire._internal.resolvers import TargetLookup, TargetResolver, default_target_resolvers
from shadowire._internal.shadow import Shadow
from shadowire._internal.strategies import ForShadows, Unwrapper
from shadowire._internal.type_checks import is_runtime_class, is_shadow_class
from shadowire.exceptions import (
    ShadowireInvalidShadowClassError,
    ShadowireTargetNotFoundError,
    ShadowireTypeMismatchError,
)
from shadowire.lock_mode import LockMode

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ShadowFactory:
    """Bind capability classes to real objects and classes.

    A factory owns the resolver chain, the per-capability definitions and
    every resolved-member cache. Definitions are created lazily on first use
    of a capability class and live as long as the factory.

    Most code uses the process-wide ``shadowire.shadow_factory``. Create a
    dedicated factory to isolate resolver registrations or caches, for example
    per test.
    """

    def __init__(
        self,
        *,
        lock_mode: LockMode = LockMode.THREAD,
        accessor: MemberAccessor | None = None,
    ) -> None:
        """Initialize a factory.

        Args:
            lock_mode: Locking strategy for every cache owned by the factory.
                ``LockMode.THREAD`` resolves each definition and member exactly
                once under concurrency; ``LockMode.NONE`` skips locks and may
                resolve concurrently requested entries more than once.
            accessor: Primitive used to read, write, call and construct real
                members. Defaults to ``DefaultMemberAccessor``.

        Examples:
            .. code-block:: python

                factory = ShadowFactory()

                lock_free_factory = ShadowFactory(lock_mode=LockMode.NONE)

        """
        self._lock_mode = lock_mode
        self._accessor: MemberAccessor = accessor if accessor is not None else DefaultMemberAccessor()
        self._strategies: LoadingMap[Any, Any] = LoadingMap(discover_instance, lock_mode=lock_mode)
        self._target_lookup = TargetLookup(default_target_resolvers(self.strategy_instance))
        self._default_strategy = ForShadows()
        self._definitions: LoadingMap[type[Any], ShadowDefinition] = LoadingMap(
            self._load_definition,
            lock_mode=lock_mode,
        )

    def __repr__(self) -> str:
        return f"ShadowFactory(lock_mode={self._lock_mode}, definitions={len(self._definitions)})"

    @property
    def lock_mode(self) -> LockMode:
        """Return the locking strategy of the factory caches."""
        return self._lock_mode

    @property
    def accessor(self) -> MemberAccessor:
        """Return the member accessor used for every real member access."""
        return self._accessor

    @property
    def target_lookup(self) -> TargetLookup:
        """Return the resolver chain used to find target classes and member names."""
        return self._target_lookup

    @property
    def default_strategy(self) -> ForShadows:
        """Return the strategy used by members without a ``ShadowingStrategy`` marker."""
        return self._default_strategy

    def shadow(self, shadow_class: type[T], target: Any) -> T:
        """Return a live binding of ``shadow_class`` over ``target``.

        Args:
            shadow_class: Capability class to bind.
            target: Real object; must be an instance of the capability's target class.

        Raises:
            ShadowireInvalidShadowClassError: If ``shadow_class`` is not a ``Shadow`` subclass.
            ShadowireTargetNotFoundError: If the target class cannot be determined.
            ShadowireTypeMismatchError: If ``target`` is not an instance of the target class.

        Examples:
            .. code-block:: python

                account = shadow_factory.shadow(AccountShadow, Account(10))
                account.deposit(5)

        """
        definition = self.definition(shadow_class)
        if not isinstance(target, definition.target_class):
            msg = (
                f"Target class '{definition.target_class.__qualname__}' is not assignable from "
                f"'{type(target).__qualname__}'."
            )
            raise ShadowireTypeMismatchError(
                msg,
                shadow_class=shadow_class,
                target_class=definition.target_class,
            )
        return new_binding(definition.proxy_class, ShadowDispatcher(self, definition, target))

    def static_shadow(self, shadow_class: type[T]) -> T:
        """Return a live binding of ``shadow_class`` without a target object.

        Only members marked ``static`` (or declared as ``staticmethod`` /
        ``classmethod`` stubs) can be called on the result; other members
        raise ``ShadowireScopeError``.

        Args:
            shadow_class: Capability class to bind.

        """
        definition = self.definition(shadow_class)
        dispatcher = ShadowDispatcher(self, definition, None, is_static_binding=True)
        return new_binding(definition.proxy_class, dispatcher)

    def construct_shadow(
        self,
        shadow_class: type[T],
        *args: Any,
        unwrapper: Unwrapper | type[Any] | None = None,
        **kwargs: Any,
    ) -> T:
        """Construct a new target object and return a live binding over it.

        Arguments are unwrapped first against the real-side type of their
        runtime values (live bindings become their targets). The constructor
        is then matched against the unwrapped argument shapes and the new
        object is bound as with ``shadow``.

        Args:
            shadow_class: Capability class to bind.
            *args: Positional constructor arguments.
            unwrapper: Unwrapper strategy (class or object). Defaults to ``ForShadows``.
            **kwargs: Keyword constructor arguments.

        Examples:
            .. code-block:: python

                account = shadow_factory.construct_shadow(AccountShadow, 100, owner="ana")

        """
        definition = self.definition(shadow_class)
        strategy = self._default_strategy if unwrapper is None else self.strategy_instance(unwrapper)

        unwrapped_args = tuple(strategy.unwrap(value, _runtime_declared_type(value), self) for value in args)
        unwrapped_kwargs = {
            name: strategy.unwrap(value, _runtime_declared_type(value), self) for name, value in kwargs.items()
        }
        shapes = tuple(type(value) for value in unwrapped_args)
        keyword_shapes = tuple((name, type(value)) for name, value in unwrapped_kwargs.items())

        constructor = definition.find_target_constructor(shapes, keyword_shapes)
        target = constructor.invoke(unwrapped_args, unwrapped_kwargs, self._accessor)
        return self.shadow(shadow_class, target)

    def register_target_resolver(self, resolver: TargetResolver) -> None:
        """Register a resolver ahead of every previously registered one.

        Registering a resolver equal to one already in the chain does nothing.
        Definitions already created keep their target class; member names not
        yet resolved use the new chain.

        Args:
            resolver: Resolver to register.

        """
        if self._target_lookup.register_resolver(resolver):
            logger.info("Registered target resolver %r", resolver)
        else:
            logger.debug("Target resolver %r is already registered", resolver)

    def get_target_class(self, cls: type[Any]) -> type[Any]:
        """Return the target class of an already defined capability class, else ``cls``.

        Args:
            cls: Capability class or any other class.

        """
        definition = self._definitions.get_if_present(cls)
        return cls if definition is None else definition.target_class

    def definition(self, shadow_class: type[Any]) -> ShadowDefinition:
        """Return the definition of ``shadow_class``, creating it on first use.

        Args:
            shadow_class: Capability class to look up.

        Raises:
            ShadowireInvalidShadowClassError: If ``shadow_class`` is not a ``Shadow`` subclass.
            ShadowireTargetNotFoundError: If the target class cannot be determined.

        """
        if not is_shadow_class(shadow_class):
            msg = f"{shadow_class!r} is not a capability class. Subclass shadowire.Shadow."
            raise ShadowireInvalidShadowClassError(msg)
        return self._definitions.get(shadow_class)

    def strategy_instance(self, strategy: Any) -> Any:
        """Return the cached instance for a strategy given as a class or an object.

        Args:
            strategy: Strategy class, or an already usable strategy object.

        Raises:
            ShadowireStrategyInstantiationError: If a strategy class cannot be instantiated.

        """
        if not is_runtime_class(strategy):
            return strategy
        return self._strategies.get(strategy)

    def _load_definition(self, shadow_class: type[Any]) -> ShadowDefinition:
        target_class = self._target_lookup.lookup_class(shadow_class)
        if target_class is None:
            msg = (
                f"Capability class '{shadow_class.__qualname__}' does not have a target class. "
                "Decorate it with @ClassTarget(...), @Target('pkg.mod.Name') or @DynamicClassTarget(...)."
            )
            raise ShadowireTargetNotFoundError(msg, shadow_class=shadow_class)

        definition = ShadowDefinition(self, shadow_class, target_class, lock_mode=self._lock_mode)
        logger.info(
            "Defined capability %s -> %s (%d members)",
            shadow_class.__qualname__,
            target_class.__qualname__,
            len(definition.members),
        )
        return definition


def _runtime_declared_type(value: Any) -> Any:
    """Return the real-side type of an argument, with lists and tuples typed by their first element."""
    while isinstance(value, Shadow):
        value = value.get_shadow_target()
    if isinstance(value, (list, tuple)):
        element = next((item for item in value if item is not None), None)
        element_type = object if element is None else _runtime_declared_type(element)
        if isinstance(value, tuple):
            return tuple[element_type, ...]  # type: ignore[valid-type]
        return list[element_type]  # type: ignore[valid-type]
    return type(value)


__all__ = ["ShadowFactory"]
