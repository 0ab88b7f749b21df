"""Tests for method dispatch through live bindings."""

from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from collections.abc import Sized
from typing import Protocol

import pytest

from shadowire import (
    ClassTarget,
    Shadow,
    ShadowFactory,
    ShadowireMemberNotFoundError,
    ShadowireTargetNotFoundError,
    ShadowireUnclassifiedMemberError,
    Target,
)


class Ledger:
    def __init__(self) -> None:
        self.entries: list[str] = []

    def transfer(self, amount: int, *, memo: str = "") -> str:
        return f"{amount}:{memo}"

    def total(self, *values: int) -> int:
        return sum(values)

    def scale(self, factor: float) -> float:
        return factor * 1.5

    def _record(self, entry: str) -> int:
        self.entries.append(entry)
        return len(self.entries)

    def fail(self) -> None:
        msg = "ledger is closed"
        raise RuntimeError(msg)

    @functools.singledispatchmethod
    def render(self, value: object) -> str:
        return "object"

    @render.register(int)
    def _render_int(self, value: int) -> str:
        return "int"

    @render.register(float)
    def _render_float(self, value: float) -> str:
        return "float"

    @render.register(Sized)
    def _render_sized(self, value: Sized) -> str:
        return "sized"


class AuditedLedger(Ledger):
    def transfer(self, amount: str, *, memo: str = "") -> str:  # type: ignore[override]
        return f"audited {amount}"


@ClassTarget(Ledger)
class LedgerShadow(Shadow):
    def transfer(self, amount: int, *, memo: str = "capability default") -> str: ...

    def total(self, *values: int) -> int: ...

    def scale(self, factor: int) -> float: ...

    @Target("_record")
    def record(self, entry: str) -> int: ...

    def fail(self) -> None: ...

    def render(self, value: object) -> str: ...

    def vanish(self) -> None: ...

    balance: int

    @property
    def owner(self) -> str: ...

    @property
    def kind(self) -> str:
        return "ledger"


@ClassTarget(AuditedLedger)
class AuditedLedgerShadow(Shadow):
    def transfer(self, amount: object, *, memo: str = "") -> str: ...


class Pinger(Protocol):
    def ping(self) -> str: ...


class Server:
    def ping(self) -> str:
        return "pong"

    def status(self) -> str:
        return "up"


class StatusCapability(Shadow, ABC):
    @abstractmethod
    def status(self) -> str: ...


@ClassTarget(Server)
class ServerShadow(StatusCapability, Pinger):
    pass


class DerivedServerShadow(ServerShadow):
    pass


class TestArguments:
    def test_keyword_arguments_are_forwarded(self, factory: ShadowFactory) -> None:
        """Keyword arguments reach the real method by name."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        assert ledger.transfer(5, memo="rent") == "5:rent"
        assert ledger.transfer(amount=5, memo="rent") == "5:rent"

    def test_capability_defaults_are_not_applied(self, factory: ShadowFactory) -> None:
        """Omitted arguments fall back to the real method's defaults."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        assert ledger.transfer(5) == "5:"

    def test_variadic_arguments(self, factory: ShadowFactory) -> None:
        """Variadic positional arguments are matched element by element."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        assert ledger.total(1, 2, 3) == 6
        assert ledger.total() == 0

    def test_numeric_promotion(self, factory: ShadowFactory) -> None:
        """An int argument is accepted by a float parameter."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        assert ledger.scale(2) == 3.0

    def test_bool_argument_reaches_float_parameter(self, factory: ShadowFactory) -> None:
        """A bool is an int, so it is promoted to a float parameter as well."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        assert ledger.scale(True) == 1.5  # noqa: FBT003

    def test_invalid_call_is_rejected_by_capability_signature(self, factory: ShadowFactory) -> None:
        """Calls that do not fit the capability signature fail like normal Python calls."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        with pytest.raises(TypeError):
            ledger.transfer()

    def test_renamed_private_method(self, factory: ShadowFactory) -> None:
        """Target renames a capability method onto a private real method."""
        target = Ledger()
        ledger = factory.shadow(LedgerShadow, target)

        assert ledger.record("a") == 1
        assert ledger.record("b") == 2
        assert target.entries == ["a", "b"]


class TestOverloads:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1, "int"),
            (True, "int"),
            (1.5, "float"),
            ("text", "sized"),
            ([1, 2], "sized"),
            (object(), "object"),
        ],
    )
    def test_singledispatch_registrations_are_overloads(
        self,
        factory: ShadowFactory,
        value: object,
        expected: str,
    ) -> None:
        """The cheapest registered implementation is selected for the runtime type."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        assert ledger.render(value) == expected

    def test_first_compatible_class_in_mro_wins(self, factory: ShadowFactory) -> None:
        """An incompatible override falls through to a compatible base class method."""
        ledger = factory.shadow(AuditedLedgerShadow, AuditedLedger())

        assert ledger.transfer(5) == "5:"
        assert ledger.transfer("x") == "audited x"


class TestResolutionCache:
    def test_resolution_is_cached_per_shapes(self, factory: ShadowFactory) -> None:
        """Each distinct argument shape is resolved once."""
        ledger = factory.shadow(LedgerShadow, Ledger())
        definition = factory.definition(LedgerShadow)

        ledger.render(1)
        ledger.render(2)
        assert len(definition.methods) == 1

        ledger.render("text")
        assert len(definition.methods) == 2

    def test_cache_is_shared_between_bindings(self, factory: ShadowFactory) -> None:
        """Bindings of the same capability class reuse resolved methods."""
        factory.shadow(LedgerShadow, Ledger()).total(1)
        factory.shadow(LedgerShadow, Ledger()).total(2)

        assert len(factory.definition(LedgerShadow).methods) == 1


class TestFailures:
    def test_missing_method(self, factory: ShadowFactory) -> None:
        """A stub without a real counterpart reports the attempted name."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        with pytest.raises(ShadowireMemberNotFoundError) as exc_info:
            ledger.vanish()

        assert exc_info.value.name == "vanish"
        assert exc_info.value.member == "vanish"
        assert exc_info.value.shadow_class is LedgerShadow
        assert exc_info.value.target_class is Ledger
        assert len(factory.definition(LedgerShadow).methods) == 0

    def test_incompatible_argument(self, factory: ShadowFactory) -> None:
        """An argument no candidate accepts is reported with its shape."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        with pytest.raises(ShadowireMemberNotFoundError) as exc_info:
            ledger.transfer("five")

        assert exc_info.value.shapes == (str,)

    def test_real_exceptions_propagate_unchanged(self, factory: ShadowFactory) -> None:
        """Exceptions raised by the real method are not wrapped."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        with pytest.raises(RuntimeError, match="ledger is closed"):
            ledger.fail()

    def test_annotation_only_member(self, factory: ShadowFactory) -> None:
        """Annotation-only members raise on access."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        with pytest.raises(ShadowireUnclassifiedMemberError) as exc_info:
            _ = ledger.balance

        assert exc_info.value.member == "balance"

    def test_property_stub(self, factory: ShadowFactory) -> None:
        """Property stubs raise on access."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        with pytest.raises(ShadowireUnclassifiedMemberError):
            _ = ledger.owner

    def test_property_with_body_is_inherited(self, factory: ShadowFactory) -> None:
        """Properties with real bodies run on the binding."""
        ledger = factory.shadow(LedgerShadow, Ledger())

        assert ledger.kind == "ledger"


class TestCapabilityInheritance:
    def test_stubs_from_abstract_and_protocol_bases(self, factory: ShadowFactory) -> None:
        """Stubs declared on abstract and protocol bases dispatch like local ones."""
        server = factory.shadow(ServerShadow, Server())

        assert server.ping() == "pong"
        assert server.status() == "up"

    def test_target_markers_are_not_inherited(self, factory: ShadowFactory) -> None:
        """A derived capability class needs its own target declaration."""
        with pytest.raises(ShadowireTargetNotFoundError):
            factory.shadow(DerivedServerShadow, Server())
