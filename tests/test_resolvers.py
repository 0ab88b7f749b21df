"""Tests for target class and member name resolution."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from fractions import Fraction
from typing import Any

import pytest

from shadowire import (
    ClassTarget,
    DynamicClassTarget,
    DynamicFieldTarget,
    DynamicMethodTarget,
    Shadow,
    ShadowFactory,
    ShadowireTargetNotFoundError,
    Target,
    TargetResolver,
    shadow_field,
)
from shadowire._internal.resolvers import (
    DEFAULT_TARGET_RESOLVERS,
    TargetLookup,
    fuzzy_field_name,
    import_target_class,
)


class Outer:
    class Inner:
        pass


class Account:
    def __init__(self, owner: str, balance: int) -> None:
        self.owner_value = owner
        self._balance = balance

    def _deposit(self, amount: int) -> int:
        self._balance += amount
        return self._balance

    def get_total(self) -> str:
        return "real get_total"


class ComputeAccountClass:
    calls = 0

    def __call__(self, shadow_class: type[Any]) -> type[Any]:
        type(self).calls += 1
        return Account


class ComputeFieldName:
    def __call__(self, function: Callable[..., Any], shadow_class: type[Any], target_class: type[Any]) -> str:
        return function.__name__.removeprefix("get_") + "_value"


class ComputePrivateName:
    created = 0

    def __init__(self) -> None:
        type(self).created += 1

    def __call__(self, function: Callable[..., Any], shadow_class: type[Any], target_class: type[Any]) -> str:
        return "_" + function.__name__


class ComputeNothing:
    def __call__(self, shadow_class: type[Any]) -> Any:
        return "not a class"


@DynamicClassTarget(ComputeAccountClass)
class DynamicAccountShadow(Shadow):
    @shadow_field
    @DynamicFieldTarget(ComputeFieldName)
    def get_owner(self) -> str: ...

    @DynamicMethodTarget(lambda function, shadow_class, target_class: "_" + function.__name__)
    def deposit(self, amount: int) -> int: ...


@ClassTarget(Account)
class PrivateAccountShadow(Shadow):
    @DynamicMethodTarget(ComputePrivateName)
    def deposit(self, amount: int) -> int: ...

    @shadow_field
    @DynamicFieldTarget(ComputePrivateName)
    def balance(self) -> int: ...


@Target("fractions.Fraction")
class FractionShadow(Shadow):
    @shadow_field
    @Target("_numerator")
    def get_numerator(self) -> int: ...


@Target("collections:OrderedDict")
class OrderedDictShadow(Shadow):
    pass


@Target(f"{__name__}:Outer.Inner")
class InnerShadow(Shadow):
    pass


@Target("no_such_module_for_shadowire_tests.Thing")
class UnimportableShadow(Shadow):
    pass


@Target("os.path.join")
class NotAClassShadow(Shadow):
    pass


@DynamicClassTarget(ComputeNothing)
class DynamicNothingShadow(Shadow):
    pass


@ClassTarget(Account)
class AccountShadow(Shadow):
    def get_total(self) -> str: ...

    def deposit(self, amount: int) -> int: ...

    @shadow_field
    @Target("_balance")
    def balance(self) -> int: ...


@dataclass(frozen=True)
class PrivateMethodResolver(TargetResolver):
    prefix: str

    def lookup_method(
        self,
        function: Callable[..., Any],
        shadow_class: type[Any],
        target_class: type[Any],
    ) -> str | None:
        return self.prefix + function.__name__


class TestDynamicTargets:
    def test_dynamic_class_field_and_method_targets(self, factory: ShadowFactory) -> None:
        """Dynamic functions compute the target class and member names."""
        account = factory.shadow(DynamicAccountShadow, Account("ana", 10))

        assert account.get_owner() == "ana"
        assert account.deposit(5) == 15

    def test_dynamic_class_function_runs_once_per_factory(self, factory: ShadowFactory) -> None:
        """The target class is computed once and cached with the definition."""
        before = ComputeAccountClass.calls

        factory.shadow(DynamicAccountShadow, Account("ana", 10))
        factory.shadow(DynamicAccountShadow, Account("bob", 20))

        assert ComputeAccountClass.calls == before + 1

    def test_dynamic_name_class_is_instantiated_once_per_factory(self, factory: ShadowFactory) -> None:
        """Computing classes are instantiated once per factory and shared by every member."""
        before = ComputePrivateName.created

        account = factory.shadow(PrivateAccountShadow, Account("ana", 10))
        assert account.deposit(5) == 15
        assert account.balance() == 15
        assert ComputePrivateName.created == before + 1

        other = ShadowFactory().shadow(PrivateAccountShadow, Account("bob", 1))
        assert other.balance() == 1
        assert ComputePrivateName.created == before + 2

    def test_dynamic_class_function_must_return_class(self, factory: ShadowFactory) -> None:
        """A dynamic class function returning a non-class is reported."""
        with pytest.raises(ShadowireTargetNotFoundError) as exc_info:
            factory.definition(DynamicNothingShadow)

        assert exc_info.value.shadow_class is DynamicNothingShadow


class TestImportPaths:
    def test_dotted_path(self, factory: ShadowFactory) -> None:
        """Dotted import paths name a module attribute."""
        fraction = factory.shadow(FractionShadow, Fraction(3, 4))

        assert fraction.get_numerator() == 3

    def test_colon_path(self, factory: ShadowFactory) -> None:
        """Colon paths separate the module from a nested attribute path."""
        assert factory.definition(OrderedDictShadow).target_class is OrderedDict
        assert factory.definition(InnerShadow).target_class is Outer.Inner

    @pytest.mark.parametrize(
        ("shadow_class", "cause"),
        [
            (UnimportableShadow, ImportError),
            (NotAClassShadow, None),
        ],
    )
    def test_unusable_paths(
        self,
        factory: ShadowFactory,
        shadow_class: type[Any],
        cause: type[BaseException] | None,
    ) -> None:
        """Paths that cannot be imported or do not name a class are reported."""
        with pytest.raises(ShadowireTargetNotFoundError) as exc_info:
            factory.definition(shadow_class)

        assert exc_info.value.shadow_class is shadow_class
        if cause is None:
            assert exc_info.value.__cause__ is None
        else:
            assert isinstance(exc_info.value.__cause__, cause)

    @pytest.mark.parametrize(
        ("path", "cause"),
        [
            ("fractions.NoSuchThing", AttributeError),
            ("Fraction", ValueError),
            ("fractions:", ValueError),
        ],
    )
    def test_malformed_or_missing_attribute(self, path: str, cause: type[BaseException]) -> None:
        """Missing attributes and paths without a module are reported."""
        with pytest.raises(ShadowireTargetNotFoundError) as exc_info:
            import_target_class(path)

        assert isinstance(exc_info.value.__cause__, cause)


class TestResolverChain:
    def test_registered_resolver_takes_priority(self, factory: ShadowFactory) -> None:
        """Registered resolvers answer before the built-in ones."""
        factory.register_target_resolver(PrivateMethodResolver("_"))
        account = factory.shadow(AccountShadow, Account("ana", 10))

        assert account.deposit(1) == 11

    def test_registering_equal_resolver_is_ignored(self, factory: ShadowFactory) -> None:
        """Registering an equal resolver twice keeps a single entry."""
        factory.register_target_resolver(PrivateMethodResolver("_"))
        factory.register_target_resolver(PrivateMethodResolver("_"))
        factory.register_target_resolver(PrivateMethodResolver("__"))

        resolvers = factory.target_lookup.resolvers
        assert resolvers[:2] == (PrivateMethodResolver("__"), PrivateMethodResolver("_"))
        assert len(resolvers) == len(DEFAULT_TARGET_RESOLVERS) + 2

    def test_registration_after_resolution_keeps_cached_names(self, factory: ShadowFactory) -> None:
        """Names resolved before a registration stay cached."""
        account = factory.shadow(AccountShadow, Account("ana", 10))
        assert account.get_total() == "real get_total"

        factory.register_target_resolver(PrivateMethodResolver("missing_"))

        assert account.get_total() == "real get_total"

    def test_fuzzy_names_apply_to_fields_only(self, factory: ShadowFactory) -> None:
        """Getter-style method names are not rewritten."""
        account = factory.shadow(AccountShadow, Account("ana", 10))

        assert account.get_total() == "real get_total"
        assert account.balance() == 10

    def test_empty_lookup_answers_nothing(self) -> None:
        """A chain without resolvers answers None for every lookup."""
        lookup = TargetLookup(())

        assert lookup.lookup_class(AccountShadow) is None
        assert lookup.lookup_method(AccountShadow.deposit, AccountShadow, Account) is None
        assert lookup.lookup_field(AccountShadow.balance, AccountShadow, Account) is None

    def test_base_resolver_answers_nothing(self) -> None:
        """The resolver base class is a no-op."""
        resolver = TargetResolver()

        assert resolver.lookup_class(AccountShadow) is None
        assert resolver.lookup_field(AccountShadow.balance, AccountShadow, Account) is None


@pytest.mark.parametrize(
    ("accessor_name", "expected"),
    [
        ("get_name", "name"),
        ("is_active", "active"),
        ("set_value", "value"),
        ("getName", "name"),
        ("isEnabled", "enabled"),
        ("setURL", "uRL"),
        ("fetch", None),
        ("get", None),
        ("getter", None),
        ("settle", None),
    ],
)
def test_fuzzy_field_name(accessor_name: str, expected: str | None) -> None:
    """Getter and setter names map to field names."""
    assert fuzzy_field_name(accessor_name) == expected
