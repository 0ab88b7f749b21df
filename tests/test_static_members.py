"""Tests for static-scope capability members and static bindings."""

from __future__ import annotations

from typing import ClassVar

import pytest

from shadowire import (
    ClassTarget,
    Shadow,
    ShadowFactory,
    ShadowireScopeError,
    Target,
    shadow_field,
    static,
)


class Registry:
    prefix: ClassVar[str] = "reg"
    _counter = 0

    def __init__(self, name: str) -> None:
        self.name = name

    @staticmethod
    def normalize(value: str) -> str:
        return value.strip().lower()

    @classmethod
    def create(cls, name: str) -> Registry:
        return cls(name)

    def label(self) -> str:
        return f"{self.prefix}:{self.name}"


class SubRegistry(Registry):
    pass


@ClassTarget(Registry)
class RegistryShadow(Shadow):
    @static
    @shadow_field
    def get_prefix(self) -> str: ...

    @static
    @shadow_field
    @Target("_counter")
    def get_counter(self) -> int: ...

    @static
    @shadow_field
    @Target("_counter")
    def set_counter(self, value: int) -> None: ...

    @static
    def normalize(self, value: str) -> str: ...

    @static
    def create(self, name: str) -> RegistryShadow: ...

    def label(self) -> str: ...


@ClassTarget(Registry)
class DeclaredStaticRegistryShadow(Shadow):
    @staticmethod
    def normalize(value: str) -> str: ...

    @classmethod
    def create(cls, name: str) -> RegistryShadow: ...


@ClassTarget(Registry)
class MisdeclaredRegistryShadow(Shadow):
    def normalize(self, value: str) -> str: ...

    @static
    def label(self) -> str: ...

    @shadow_field
    def get_prefix(self) -> str: ...


class TestStaticBinding:
    def test_reads_static_fields(self, factory: ShadowFactory) -> None:
        """Static fields are read from the declaring class."""
        registry = factory.static_shadow(RegistryShadow)

        assert registry.get_prefix() == "reg"
        assert registry.get_shadow_target() is None

    def test_writes_static_fields_on_declaring_class(
        self,
        factory: ShadowFactory,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Static writes land on the class, visible to every instance."""
        monkeypatch.setattr(Registry, "_counter", 0)
        registry = factory.static_shadow(RegistryShadow)

        registry.set_counter(41)

        assert Registry._counter == 41
        assert registry.get_counter() == 41

    def test_calls_static_method(self, factory: ShadowFactory) -> None:
        """Static methods are called without a target object."""
        registry = factory.static_shadow(RegistryShadow)

        assert registry.normalize("  ABC ") == "abc"

    def test_calls_class_method_with_target_class(self, factory: ShadowFactory) -> None:
        """Class methods receive the target class and results are wrapped."""
        registry = factory.static_shadow(RegistryShadow)

        created = registry.create("x")

        assert isinstance(created, RegistryShadow)
        assert type(created.get_shadow_target()) is Registry
        assert created.label() == "reg:x"

    def test_instance_member_on_static_binding(self, factory: ShadowFactory) -> None:
        """Members without the static marker cannot be used on static bindings."""
        registry = factory.static_shadow(RegistryShadow)

        with pytest.raises(ShadowireScopeError) as exc_info:
            registry.label()

        assert exc_info.value.member == "label"

    def test_declared_staticmethod_and_classmethod_stubs(self, factory: ShadowFactory) -> None:
        """staticmethod and classmethod stubs are static without the marker."""
        registry = factory.static_shadow(DeclaredStaticRegistryShadow)

        assert registry.normalize(" Q ") == "q"
        assert registry.create("y").label() == "reg:y"


class TestStaticMembersOnInstanceBinding:
    def test_static_members_work_on_instance_bindings(self, factory: ShadowFactory) -> None:
        """Static members stay usable on bindings with a target."""
        registry = factory.shadow(RegistryShadow, Registry("a"))

        assert registry.get_prefix() == "reg"
        assert registry.normalize(" B ") == "b"
        assert registry.label() == "reg:a"

    def test_class_method_receives_runtime_class(self, factory: ShadowFactory) -> None:
        """Class methods reached through a target receive the class of that target."""
        registry = factory.shadow(RegistryShadow, SubRegistry("a"))

        assert type(registry.create("b").get_shadow_target()) is SubRegistry

    def test_instance_stub_bound_to_static_method(self, factory: ShadowFactory) -> None:
        """A non-static stub resolving to a static method is a scope mismatch."""
        registry = factory.shadow(MisdeclaredRegistryShadow, Registry("a"))

        with pytest.raises(ShadowireScopeError):
            registry.normalize("x")

    def test_static_stub_bound_to_instance_method(self, factory: ShadowFactory) -> None:
        """A static stub resolving to an instance method is a scope mismatch."""
        registry = factory.shadow(MisdeclaredRegistryShadow, Registry("a"))

        with pytest.raises(ShadowireScopeError):
            registry.label()

    def test_instance_accessor_bound_to_static_field(self, factory: ShadowFactory) -> None:
        """A non-static accessor resolving to a class attribute is a scope mismatch."""
        registry = factory.shadow(MisdeclaredRegistryShadow, Registry("a"))

        with pytest.raises(ShadowireScopeError):
            registry.get_prefix()

    def test_scope_mismatch_is_not_cached(self, factory: ShadowFactory) -> None:
        """Failed resolutions leave the method cache empty."""
        registry = factory.shadow(MisdeclaredRegistryShadow, Registry("a"))

        for _ in range(2):
            with pytest.raises(ShadowireScopeError):
                registry.normalize("x")

        assert len(factory.definition(MisdeclaredRegistryShadow).methods) == 0
