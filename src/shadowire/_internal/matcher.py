from __future__ import annotations

import abc
import functools
import inspect
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum, auto
from inspect import Parameter
from typing import Any, TypeAlias

from shadowire._internal.annotations import normalize_annotation, safe_signature
from shadowire.exceptions import ShadowireMemberNotFoundError

logger = logging.getLogger(__name__)

Shapes: TypeAlias = tuple[type[Any], ...]
"""Runtime classes of positional arguments, in call order."""

KeywordShapes: TypeAlias = tuple[tuple[str, type[Any]], ...]
"""Keyword argument names paired with the runtime classes of their values."""

_PROMOTIONS: dict[type[Any], tuple[type[Any], ...]] = {
    float: (int,),
    complex: (int, float),
    bytes: (bytearray, memoryview),
}
_PROMOTION_COST = 0.25
_VIRTUAL_INTERFACE_COST = 0.25
_SUPERCLASS_STEP_COST = 1.0
_UNIVERSAL_BASE_COST = 1.5
_POSITIONAL_KINDS = (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)


class MethodScope(Enum):
    """Describe how a real method is bound when invoked."""

    INSTANCE = auto()
    """Plain function; the target object is passed as the first argument."""

    STATIC = auto()
    """``staticmethod``; no implicit first argument."""

    CLASS = auto()
    """``classmethod``; the target class is passed as the first argument."""

    @property
    def is_static(self) -> bool:
        """Return True for scopes that do not need a target object."""
        return self is not MethodScope.INSTANCE


@dataclass(frozen=True, slots=True)
class MemberCandidate:
    """One callable found on a target class that may serve a capability member."""

    owner: type[Any]
    """Class whose ``__dict__`` declares the candidate."""
    attribute_name: str
    """Attribute name in ``owner.__dict__``, possibly name-mangled."""
    function: Callable[..., Any]
    """Underlying function, unwrapped from ``staticmethod``/``classmethod``."""
    scope: MethodScope
    """How the function is bound on invocation."""
    signature: inspect.Signature
    """Call signature without the implicit ``self``/``cls`` parameter."""

    def describe(self) -> str:
        """Return a readable ``Owner.name(signature)`` label for logs and errors."""
        return f"{self.owner.__qualname__}.{self.attribute_name}{self.signature}"


def mangled_name(owner: type[Any], name: str) -> str | None:
    """Return the private (name-mangled) form of ``name`` for ``owner``, if it has one.

    Args:
        owner: Class whose name prefixes the mangled attribute.
        name: Attribute name as written in source, for example ``"__balance"``.

    """
    if not name.startswith("__") or name.endswith("__"):
        return None
    owner_name = owner.__name__.lstrip("_")
    if not owner_name:
        return None
    return f"_{owner_name}{name}"


def candidate_attribute_names(owner: type[Any], name: str) -> tuple[str, ...]:
    """Return ``name`` and, for private names, its mangled form on ``owner``."""
    mangled = mangled_name(owner, name)
    return (name,) if mangled is None else (name, mangled)


def iter_method_candidates(owner: type[Any], name: str) -> Iterator[MemberCandidate]:
    """Yield callables declared directly on ``owner`` under ``name`` or its mangled form.

    ``functools.singledispatchmethod`` attributes yield one candidate per
    registered implementation, with the dispatch type as the first parameter
    annotation.

    Args:
        owner: Class to inspect (its own ``__dict__`` only).
        name: Real member name.

    """
    for attribute_name in candidate_attribute_names(owner, name):
        declared = owner.__dict__.get(attribute_name)
        if declared is None:
            continue
        if isinstance(declared, functools.singledispatchmethod):
            yield from _singledispatch_candidates(owner, attribute_name, declared)
            continue
        candidate = _candidate(owner, attribute_name, declared)
        if candidate is not None:
            yield candidate


def find_matching_method(
    target_class: type[Any],
    name: str,
    shapes: Shapes,
    keyword_shapes: KeywordShapes = (),
) -> MemberCandidate:
    """Select the real method that best accepts a call with the given argument shapes.

    Classes are searched along the target MRO; the first class declaring a
    compatible candidate wins. Within one class an exact signature match is
    returned immediately, otherwise the candidate with the lowest conversion
    cost wins and ties keep the first candidate found.

    Args:
        target_class: Real class to search.
        name: Real method name.
        shapes: Runtime classes of positional arguments.
        keyword_shapes: Keyword argument names with the runtime classes of their values.

    Raises:
        ShadowireMemberNotFoundError: If no class in the MRO declares a
            compatible candidate.

    """
    for owner in target_class.__mro__:
        candidates = list(iter_method_candidates(owner, name))
        if not candidates:
            continue
        best = select_best_candidate(candidates, shapes, keyword_shapes)
        if best is not None:
            logger.debug(
                "Matched %s for shapes %s on %s",
                best.describe(),
                _format_shapes(shapes, keyword_shapes),
                target_class.__qualname__,
            )
            return best

    msg = (
        f"No method '{name}' on '{target_class.__qualname__}' accepts "
        f"{_format_shapes(shapes, keyword_shapes)}."
    )
    raise ShadowireMemberNotFoundError(
        msg,
        name=name,
        shapes=shapes,
        target_class=target_class,
    )


def find_matching_constructor(
    target_class: type[Any],
    shapes: Shapes,
    keyword_shapes: KeywordShapes = (),
) -> inspect.Signature:
    """Return the constructor signature of ``target_class`` if it accepts the given shapes.

    Python classes expose a single constructor signature, so there is no
    superclass search. Classes without an introspectable signature accept any
    arguments.

    Args:
        target_class: Real class to construct.
        shapes: Runtime classes of positional arguments.
        keyword_shapes: Keyword argument names with the runtime classes of their values.

    Raises:
        ShadowireMemberNotFoundError: If the constructor does not accept the shapes.

    """
    signature = safe_signature(target_class)
    if signature is None:
        return _ANY_ARGUMENTS_SIGNATURE
    if call_cost(signature, shapes, keyword_shapes) is not None:
        return signature

    msg = (
        f"No constructor of '{target_class.__qualname__}' accepts "
        f"{_format_shapes(shapes, keyword_shapes)}."
    )
    raise ShadowireMemberNotFoundError(
        msg,
        name="__init__",
        shapes=shapes,
        target_class=target_class,
    )


def select_best_candidate(
    candidates: list[MemberCandidate],
    shapes: Shapes,
    keyword_shapes: KeywordShapes = (),
) -> MemberCandidate | None:
    """Return the cheapest compatible candidate, or ``None`` if none accepts the shapes."""
    for candidate in candidates:
        if is_exact_match(candidate.signature, shapes, keyword_shapes):
            return candidate

    best: MemberCandidate | None = None
    best_cost = float("inf")
    for candidate in candidates:
        cost = call_cost(candidate.signature, shapes, keyword_shapes)
        if cost is not None and cost < best_cost:
            best = candidate
            best_cost = cost
    return best


def is_exact_match(signature: inspect.Signature, shapes: Shapes, keyword_shapes: KeywordShapes = ()) -> bool:
    """Return True when every parameter is supplied and annotated with exactly its argument shape."""
    parameters = list(signature.parameters.values())
    if any(parameter.kind not in _POSITIONAL_KINDS for parameter in parameters):
        return False
    if len(parameters) != len(shapes) + len(keyword_shapes):
        return False

    positional = parameters[: len(shapes)]
    by_name = {parameter.name: parameter for parameter in parameters[len(shapes) :]}
    for parameter, shape in zip(positional, shapes, strict=True):
        if normalize_annotation(parameter.annotation) != (shape,):
            return False
    for keyword, shape in keyword_shapes:
        parameter = by_name.get(keyword)
        if parameter is None or parameter.kind is Parameter.POSITIONAL_ONLY:
            return False
        if normalize_annotation(parameter.annotation) != (shape,):
            return False
    return True


def call_cost(signature: inspect.Signature, shapes: Shapes, keyword_shapes: KeywordShapes = ()) -> float | None:
    """Return the total conversion cost of a call, or ``None`` if the signature rejects it.

    The call is accepted when the positional count fits, every keyword names a
    parameter (or ``**kwargs`` exists), every required parameter is supplied
    and every argument shape is assignment compatible with its parameter.

    Args:
        signature: Candidate signature without implicit ``self``/``cls``.
        shapes: Runtime classes of positional arguments.
        keyword_shapes: Keyword argument names with the runtime classes of their values.

    """
    parameters = list(signature.parameters.values())
    positional = [parameter for parameter in parameters if parameter.kind in _POSITIONAL_KINDS]
    var_positional = next((p for p in parameters if p.kind is Parameter.VAR_POSITIONAL), None)
    var_keyword = next((p for p in parameters if p.kind is Parameter.VAR_KEYWORD), None)

    if len(shapes) > len(positional) and var_positional is None:
        return None

    assignments: list[tuple[Parameter, type[Any]]] = []
    for index, shape in enumerate(shapes):
        if index < len(positional):
            assignments.append((positional[index], shape))
        elif var_positional is not None:
            assignments.append((var_positional, shape))

    supplied = {parameter.name for parameter in positional[: len(shapes)]}
    for keyword, shape in keyword_shapes:
        parameter = signature.parameters.get(keyword)
        if parameter is not None and parameter.kind in (Parameter.POSITIONAL_OR_KEYWORD, Parameter.KEYWORD_ONLY):
            if keyword in supplied:
                return None
            supplied.add(keyword)
        elif var_keyword is not None:
            parameter = var_keyword
        else:
            return None
        assignments.append((parameter, shape))

    for parameter in parameters:
        if parameter.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            continue
        if parameter.default is Parameter.empty and parameter.name not in supplied:
            return None

    total = 0.0
    for parameter, shape in assignments:
        cost = annotation_cost(shape, parameter.annotation)
        if cost is None:
            return None
        total += cost
    return total


def annotation_cost(source: type[Any], annotation: Any) -> float | None:
    """Return the cheapest cost of passing a ``source`` instance to ``annotation``.

    Unions take their cheapest compatible member. ``None`` means no member
    accepts ``source``.
    """
    costs = [
        cost
        for destination in normalize_annotation(annotation)
        if (cost := transformation_cost(source, destination)) is not None
    ]
    return min(costs, default=None)


def transformation_cost(source: type[Any], destination: type[Any]) -> float | None:
    """Return the cost of converting a ``source`` value to ``destination``.

    Exact matches cost nothing. Walking one superclass step costs 1; numeric
    and bytes promotions and virtual interface satisfaction cost 0.25 and stop
    the walk. Falling back to ``object`` adds 1.5 on top of the walk.

    Args:
        source: Runtime class of the argument.
        destination: Declared parameter class.

    """
    if not is_assignment_compatible(destination, source):
        return None

    cost = 0.0
    for step in source.__mro__:
        if step is destination:
            break
        if step in _PROMOTIONS.get(destination, ()):
            cost += _PROMOTION_COST
            break
        if _is_virtual_subclass(step, destination):
            cost += _VIRTUAL_INTERFACE_COST
            break
        cost += _SUPERCLASS_STEP_COST

    if destination is object and source is not object:
        cost += _UNIVERSAL_BASE_COST
    return cost


def is_assignment_compatible(destination: type[Any], source: type[Any]) -> bool:
    """Return True when a ``source`` instance may be passed where ``destination`` is declared."""
    if _is_subclass(source, destination):
        return True
    return any(_is_subclass(source, promoted) for promoted in _PROMOTIONS.get(destination, ()))


def _is_virtual_subclass(source: type[Any], destination: type[Any]) -> bool:
    if not isinstance(destination, abc.ABCMeta) and not getattr(destination, "_is_protocol", False):
        return False
    if destination in source.__mro__:
        return False
    return _is_subclass(source, destination)


def _is_subclass(source: type[Any], destination: type[Any]) -> bool:
    try:
        return issubclass(source, destination)
    except TypeError:
        return False


def _candidate(owner: type[Any], attribute_name: str, declared: Any) -> MemberCandidate | None:
    if isinstance(declared, staticmethod):
        scope, function = MethodScope.STATIC, declared.__func__
    elif isinstance(declared, classmethod):
        scope, function = MethodScope.CLASS, declared.__func__
    elif inspect.isfunction(declared) or inspect.isbuiltin(declared) or inspect.ismethoddescriptor(declared):
        scope, function = MethodScope.INSTANCE, declared
    else:
        return None

    if not callable(function):
        return None
    signature = safe_signature(function)
    if signature is None:
        signature = _ANY_ARGUMENTS_SIGNATURE
    elif scope is not MethodScope.STATIC:
        signature = _drop_first_parameter(signature)
    return MemberCandidate(
        owner=owner,
        attribute_name=attribute_name,
        function=function,
        scope=scope,
        signature=signature,
    )


def _singledispatch_candidates(
    owner: type[Any],
    attribute_name: str,
    declared: functools.singledispatchmethod[Any],
) -> Iterator[MemberCandidate]:
    base = declared.func
    scope = MethodScope.INSTANCE
    if isinstance(base, staticmethod):
        scope = MethodScope.STATIC
    elif isinstance(base, classmethod):
        scope = MethodScope.CLASS

    for dispatch_type, implementation in declared.dispatcher.registry.items():
        function = getattr(implementation, "__func__", implementation)
        candidate = _candidate(owner, attribute_name, function)
        if candidate is None:
            continue
        signature = candidate.signature
        if scope is MethodScope.STATIC:
            signature = safe_signature(function) or _ANY_ARGUMENTS_SIGNATURE
        yield MemberCandidate(
            owner=owner,
            attribute_name=attribute_name,
            function=function,
            scope=scope,
            signature=_with_dispatch_type(signature, dispatch_type),
        )


def _with_dispatch_type(signature: inspect.Signature, dispatch_type: Any) -> inspect.Signature:
    parameters = list(signature.parameters.values())
    if not parameters or parameters[0].kind not in _POSITIONAL_KINDS:
        return signature
    parameters[0] = parameters[0].replace(annotation=dispatch_type)
    return signature.replace(parameters=parameters)


def _drop_first_parameter(signature: inspect.Signature) -> inspect.Signature:
    parameters = list(signature.parameters.values())
    if parameters and parameters[0].kind in _POSITIONAL_KINDS:
        parameters = parameters[1:]
    return signature.replace(parameters=parameters)


def _format_shapes(shapes: Shapes, keyword_shapes: KeywordShapes) -> str:
    rendered = [shape.__qualname__ for shape in shapes]
    rendered.extend(f"{name}={shape.__qualname__}" for name, shape in keyword_shapes)
    return f"({', '.join(rendered)})"


_ANY_ARGUMENTS_SIGNATURE = inspect.Signature(
    parameters=[
        Parameter("args", Parameter.VAR_POSITIONAL),
        Parameter("kwargs", Parameter.VAR_KEYWORD),
    ],
)

__all__ = [
    "KeywordShapes",
    "MemberCandidate",
    "MethodScope",
    "Shapes",
    "annotation_cost",
    "call_cost",
    "candidate_attribute_names",
    "find_matching_constructor",
    "find_matching_method",
    "is_assignment_compatible",
    "is_exact_match",
    "iter_method_candidates",
    "mangled_name",
    "select_best_candidate",
    "transformation_cost",
]
