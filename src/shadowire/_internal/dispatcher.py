from __future__ import annotations

import functools
import inspect
import logging
import types
import typing
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Union, cast, get_args, get_origin

import typing_extensions

from shadowire._internal.annotations import is_void_annotation, shape_of
from shadowire._internal.matcher import KeywordShapes, Shapes
from shadowire._internal.members import CapabilityMember, MemberKind
from shadowire._internal.shadow import Shadow
from shadowire.exceptions import (
    ShadowireAccessorArityError,
    ShadowireScopeError,
    ShadowireUnclassifiedMemberError,
)

if TYPE_CHECKING:
    from shadowire._internal.definition import ShadowDefinition
    from shadowire._internal.factory import ShadowFactory
    from shadowire._internal.strategies import Unwrapper, Wrapper

logger = logging.getLogger(__name__)

_HANDLER_ATTRIBUTE = "_shadow_handler"
_SETTER_ARITY = 1
_SELF_ANNOTATION_NAMES = frozenset({"Self", "typing.Self", "typing_extensions.Self"})


class ShadowDispatcher:
    """Serve the capability members of one live binding.

    Every live binding holds exactly one dispatcher. Field accessors and stub
    methods of the generated binding class forward here; the dispatcher
    unwraps arguments, resolves the real member through the definition
    caches, invokes it through the factory's member accessor and wraps the
    result.
    """

    __slots__ = ("definition", "factory", "is_static_binding", "target")

    def __init__(
        self,
        factory: ShadowFactory,
        definition: ShadowDefinition,
        target: Any,
        *,
        is_static_binding: bool = False,
    ) -> None:
        self.factory = factory
        self.definition = definition
        self.target = target
        self.is_static_binding = is_static_binding

    def invoke(self, member: CapabilityMember, args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> Any:
        """Serve one call of a field accessor or stub method.

        Args:
            member: Classified capability member being called.
            args: Positional arguments as passed by the caller.
            kwargs: Keyword arguments as passed by the caller.

        Raises:
            ShadowireScopeError: If a non-static member is called on a static binding.
            ShadowireAccessorArityError: If a field accessor gets more than one argument.

        """
        if self.is_static_binding and not member.is_static:
            msg = (
                f"Cannot call non-static member '{member.describe()}' on a static binding. "
                "Mark it with @static or bind a target with ShadowFactory.shadow()."
            )
            raise ShadowireScopeError(
                msg,
                shadow_class=self.definition.shadow_class,
                member=member.name,
                target_class=self.definition.target_class,
            )

        if member.kind is MemberKind.FIELD:
            return self._invoke_field(member, args, kwargs)
        return self._invoke_method(member, args, kwargs)

    def _invoke_field(self, member: CapabilityMember, args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> Any:
        arguments = (*args, *kwargs.values())
        accessor = self.factory.accessor
        declared_return = self._declared_return(member)

        if not arguments:
            value = self.definition.find_target_field(member).get(self.target, accessor)
            return self._wrapper(member).wrap(value, declared_return, self.factory)

        if len(arguments) == _SETTER_ARITY:
            target_field = self.definition.find_target_field(member)
            unwrapper = self._unwrapper(member)
            declared = unwrapper.unwrap_type(_first_parameter_annotation(member), self.factory)
            target_field.set(self.target, unwrapper.unwrap(arguments[0], declared, self.factory), accessor)
            result = None if is_void_annotation(declared_return) else self.target
            return self._wrapper(member).wrap(result, declared_return, self.factory)

        msg = (
            f"Field accessor '{member.describe()}' takes no arguments (getter) or one argument "
            f"(setter), got {len(arguments)}."
        )
        raise ShadowireAccessorArityError(
            msg,
            shadow_class=self.definition.shadow_class,
            member=member.name,
            target_class=self.definition.target_class,
        )

    def _invoke_method(self, member: CapabilityMember, args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> Any:
        if member.signature is None:
            bound_args, bound_kwargs = args, dict(kwargs)
            positional_annotations = [inspect.Parameter.empty] * len(args)
            keyword_annotations = dict.fromkeys(kwargs, inspect.Parameter.empty)
        else:
            bound = member.signature.bind(*args, **kwargs)
            bound_args, bound_kwargs = bound.args, bound.kwargs
            positional_annotations = _positional_annotations(member.signature, len(bound_args))
            keyword_annotations = {name: _keyword_annotation(member.signature, name) for name in bound_kwargs}

        unwrapper = self._unwrapper(member)
        declared = [unwrapper.unwrap_type(annotation, self.factory) for annotation in positional_annotations]
        keyword_declared = {
            name: unwrapper.unwrap_type(annotation, self.factory)
            for name, annotation in keyword_annotations.items()
        }
        values = tuple(
            unwrapper.unwrap(value, expected, self.factory)
            for value, expected in zip(bound_args, declared, strict=True)
        )
        keyword_values = {
            name: unwrapper.unwrap(value, keyword_declared[name], self.factory)
            for name, value in bound_kwargs.items()
        }

        shapes: Shapes = tuple(
            _argument_shape(value, expected) for value, expected in zip(values, declared, strict=True)
        )
        keyword_shapes: KeywordShapes = tuple(
            (name, _argument_shape(value, keyword_declared[name])) for name, value in keyword_values.items()
        )

        target_method = self.definition.find_target_method(member, shapes, keyword_shapes)
        result = target_method.invoke(self.target, values, keyword_values, self.factory.accessor)
        return self._wrapper(member).wrap(result, self._declared_return(member), self.factory)

    def _declared_return(self, member: CapabilityMember) -> Any:
        """Return the member's return annotation with ``Self`` replaced by the capability class."""
        annotation = member.return_annotation
        if _is_self(annotation):
            return self.definition.shadow_class
        if get_origin(annotation) in (Union, types.UnionType) and any(_is_self(arg) for arg in get_args(annotation)):
            return self.definition.shadow_class | None
        return annotation

    def _wrapper(self, member: CapabilityMember) -> Wrapper:
        if member.wrapper is None:
            return self.factory.default_strategy
        return self.factory.strategy_instance(member.wrapper)

    def _unwrapper(self, member: CapabilityMember) -> Unwrapper:
        if member.unwrapper is None:
            return self.factory.default_strategy
        return self.factory.strategy_instance(member.unwrapper)


def build_proxy_class(definition: ShadowDefinition) -> type[Any]:
    """Generate the live-binding class for a capability class.

    The generated class subclasses the capability class. Identity and object
    protocol methods answer from the binding, field accessors and stub
    methods forward to the binding's ``ShadowDispatcher``, unclassified
    members raise on access, and members with real bodies are inherited.

    Args:
        definition: Definition whose capability class is being bound.

    """
    shadow_class = definition.shadow_class
    namespace: dict[str, Any] = {
        "__slots__": (_HANDLER_ATTRIBUTE,),
        "__module__": shadow_class.__module__,
        "__qualname__": f"{shadow_class.__qualname__}Binding",
        "__doc__": shadow_class.__doc__,
        "get_shadow_target": _get_shadow_target,
        "get_shadow_class": _get_shadow_class,
        "__repr__": _binding_repr,
        "__str__": _binding_repr,
        "__eq__": _binding_eq,
        "__ne__": _binding_ne,
        "__hash__": _binding_hash,
    }

    dispatched = 0
    for member in definition.members.values():
        if member.kind in (MemberKind.FIELD, MemberKind.METHOD):
            namespace[member.name] = _dispatching_function(member)
            dispatched += 1
        elif member.kind is MemberKind.UNCLASSIFIED:
            namespace[member.name] = _unclassified_property(definition, member)

    metaclass = type(shadow_class)
    proxy_class = metaclass(f"{shadow_class.__name__}Binding", (shadow_class,), namespace)
    proxy_class.__abstractmethods__ = frozenset()
    logger.debug(
        "Generated binding class for %s with %d dispatched members",
        shadow_class.__qualname__,
        dispatched,
    )
    return proxy_class


def new_binding(proxy_class: type[Any], handler: ShadowDispatcher) -> Any:
    """Create a live binding of ``proxy_class`` served by ``handler``.

    The capability constructor chain is never run.
    """
    binding = object.__new__(proxy_class)
    proxy_class.__dict__[_HANDLER_ATTRIBUTE].__set__(binding, handler)
    return binding


def _dispatching_function(member: CapabilityMember) -> Callable[..., Any]:
    def dispatch(self: Any, *args: Any, **kwargs: Any) -> Any:
        return self._shadow_handler.invoke(member, args, kwargs)

    functools.update_wrapper(dispatch, cast("Callable[..., Any]", member.function))
    dispatch.__dict__.pop("__isabstractmethod__", None)
    return dispatch


def _unclassified_property(definition: ShadowDefinition, member: CapabilityMember) -> property:
    def fail(self: Any, *_args: Any) -> Any:
        msg = (
            f"Capability member '{member.describe()}' has no recognised access marker. "
            "Declare it as a method stub, optionally marked with @shadow_field."
        )
        raise ShadowireUnclassifiedMemberError(
            msg,
            shadow_class=definition.shadow_class,
            member=member.name,
            target_class=definition.target_class,
        )

    return property(fail, fail, fail)


def _get_shadow_target(self: Any) -> Any:
    return self._shadow_handler.target


def _get_shadow_class(self: Any) -> type[Any]:
    return self._shadow_handler.definition.shadow_class


def _binding_repr(self: Any) -> str:
    handler: ShadowDispatcher = self._shadow_handler
    return (
        f"Shadow(shadow_class={handler.definition.shadow_class.__qualname__}, "
        f"target_class={handler.definition.target_class.__qualname__}, "
        f"target={handler.target!r})"
    )


def _binding_eq(self: Any, other: object) -> Any:
    if other is self:
        return True
    if not isinstance(other, Shadow):
        return NotImplemented
    handler: ShadowDispatcher = self._shadow_handler
    return (
        handler.definition.shadow_class is other.get_shadow_class()
        and handler.target == other.get_shadow_target()
    )


def _binding_ne(self: Any, other: object) -> Any:
    result = _binding_eq(self, other)
    if result is NotImplemented:
        return result
    return not result


def _binding_hash(self: Any) -> int:
    handler: ShadowDispatcher = self._shadow_handler
    return hash(handler.definition.shadow_class) ^ hash(handler.target)


def _is_self(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation in _SELF_ANNOTATION_NAMES
    return annotation is typing.Self or annotation is typing_extensions.Self


def _argument_shape(value: Any, declared: Any) -> type[Any]:
    if value is None:
        return shape_of(declared)
    return type(value)


def _first_parameter_annotation(member: CapabilityMember) -> Any:
    if member.signature is None or not member.signature.parameters:
        return inspect.Parameter.empty
    return next(iter(member.signature.parameters.values())).annotation


def _positional_annotations(signature: inspect.Signature, count: int) -> list[Any]:
    annotations: list[Any] = []
    for parameter in signature.parameters.values():
        if len(annotations) == count:
            break
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            annotations.append(parameter.annotation)
        elif parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            annotations.extend([parameter.annotation] * (count - len(annotations)))
    return annotations


def _keyword_annotation(signature: inspect.Signature, name: str) -> Any:
    parameter = signature.parameters.get(name)
    if parameter is not None and parameter.kind is not inspect.Parameter.VAR_KEYWORD:
        return parameter.annotation
    for candidate in signature.parameters.values():
        if candidate.kind is inspect.Parameter.VAR_KEYWORD:
            return candidate.annotation
    return inspect.Parameter.empty


__all__ = ["ShadowDispatcher", "build_proxy_class", "new_binding"]
