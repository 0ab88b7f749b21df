from __future__ import annotations

import collections.abc
import inspect
import types
import typing
from collections.abc import Callable
from typing import Annotated, Any, ForwardRef, Literal, TypeVar, Union, get_args, get_origin

from shadowire._internal.type_checks import is_runtime_class

_NONE_TYPE = type(None)
_SEQUENCE_ORIGINS: tuple[Any, ...] = (
    list,
    tuple,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
)
_VARIADIC_TUPLE_ARGUMENT_COUNT = 2


def safe_signature(obj: Callable[..., Any]) -> inspect.Signature | None:
    """Return the signature of ``obj`` with string annotations evaluated when possible.

    Falls back to unevaluated annotations when forward references cannot be
    resolved, and to ``None`` when the callable exposes no signature at all
    (some builtins).

    Args:
        obj: Function, method or class to inspect.

    """
    try:
        return inspect.signature(obj, eval_str=True)
    except (NameError, SyntaxError, AttributeError):
        pass
    except (TypeError, ValueError):
        return None
    try:
        return inspect.signature(obj)
    except (TypeError, ValueError):
        return None


def normalize_annotation(annotation: Any) -> tuple[type[Any], ...]:
    """Return the runtime classes a declared annotation accepts.

    ``Any``, ``TypeVar``, missing and unresolved string annotations accept
    ``object``. Unions are flattened, ``Annotated`` and ``NewType`` are
    unwrapped and parametrized generics collapse to their origin class.

    Args:
        annotation: Parameter or return annotation as found on a signature.

    """
    if annotation is inspect.Parameter.empty or annotation is Any:
        return (object,)
    if annotation is None or annotation is _NONE_TYPE:
        return (_NONE_TYPE,)
    if isinstance(annotation, (str, ForwardRef, TypeVar)):
        return (object,)

    supertype = getattr(annotation, "__supertype__", None)
    if supertype is not None:
        return normalize_annotation(supertype)

    origin = get_origin(annotation)
    if origin is Annotated:
        return normalize_annotation(get_args(annotation)[0])
    if origin is Union or origin is types.UnionType:
        normalized: list[type[Any]] = []
        for member in get_args(annotation):
            for cls in normalize_annotation(member):
                if cls not in normalized:
                    normalized.append(cls)
        return tuple(normalized)
    if origin is Literal:
        return tuple(dict.fromkeys(type(value) for value in get_args(annotation)))
    if origin is not None:
        return (origin,) if is_runtime_class(origin) else (object,)

    if is_runtime_class(annotation):
        return (annotation,)
    return (object,)


def shape_of(annotation: Any) -> type[Any]:
    """Return the single runtime class used as an argument shape for ``annotation``.

    Optional annotations use their non-``None`` member; anything that does not
    collapse to exactly one class becomes ``object``.

    Args:
        annotation: Declared parameter annotation.

    """
    classes = tuple(cls for cls in normalize_annotation(strip_optional(annotation)) if cls is not _NONE_TYPE)
    if len(classes) == 1:
        return classes[0]
    return object


def strip_optional(annotation: Any) -> Any:
    """Return ``X`` for ``Optional[X]``/``X | None``; other annotations unchanged.

    Args:
        annotation: Declared annotation.

    """
    origin = get_origin(annotation)
    if origin is Annotated:
        return strip_optional(get_args(annotation)[0])
    if origin is not Union and origin is not types.UnionType:
        return annotation
    members = [member for member in get_args(annotation) if member is not _NONE_TYPE]
    if len(members) == 1:
        return members[0]
    return annotation


def is_void_annotation(annotation: Any) -> bool:
    """Return True for ``None`` return annotations and missing annotations.

    Args:
        annotation: Declared return annotation.

    """
    return annotation is inspect.Signature.empty or annotation is None or annotation is _NONE_TYPE


def sequence_element_annotation(annotation: Any) -> tuple[type[Any], Any] | None:
    """Split a one-dimensional sequence annotation into container class and element type.

    ``list[X]`` and ``Sequence[X]``/``MutableSequence[X]`` allocate lists,
    ``tuple[X, ...]`` and ``tuple[X]`` allocate tuples. Other annotations
    return ``None``.

    Args:
        annotation: Declared annotation, optionally wrapped in ``Optional``.

    """
    stripped = strip_optional(annotation)
    origin = get_origin(stripped)
    if origin not in _SEQUENCE_ORIGINS:
        return None

    arguments = get_args(stripped)
    if origin is tuple:
        if len(arguments) == _VARIADIC_TUPLE_ARGUMENT_COUNT and arguments[1] is Ellipsis:
            return tuple, arguments[0]
        if len(arguments) == 1:
            return tuple, arguments[0]
        return None

    if len(arguments) != 1:
        return None
    return list, arguments[0]


def own_class_annotations(owner: type[Any]) -> dict[str, Any]:
    """Return the annotations declared on ``owner`` itself, or an empty dict if they fail to evaluate.

    Args:
        owner: Class to read.

    """
    try:
        return inspect.get_annotations(owner)
    except NameError:
        return {}


def is_classvar_annotation(annotation: Any) -> bool:
    """Return True when an attribute annotation declares a ``ClassVar``.

    String annotations are matched textually since class-level annotations are
    read without evaluation.

    Args:
        annotation: Raw class attribute annotation.

    """
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar", "t.ClassVar"))
    return annotation is typing.ClassVar or get_origin(annotation) is typing.ClassVar


__all__ = [
    "is_classvar_annotation",
    "is_void_annotation",
    "normalize_annotation",
    "own_class_annotations",
    "safe_signature",
    "sequence_element_annotation",
    "shape_of",
    "strip_optional",
]
