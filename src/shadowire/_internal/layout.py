from __future__ import annotations

import dataclasses
import dis
import inspect
import logging
import types
from dataclasses import dataclass
from typing import Any

from shadowire._internal.annotations import is_classvar_annotation, own_class_annotations
from shadowire._internal.matcher import candidate_attribute_names
from shadowire.exceptions import ShadowireMemberNotFoundError

logger = logging.getLogger(__name__)

_INIT_METHOD_NAMES = ("__init__", "__post_init__", "__attrs_post_init__")
_METHOD_LIKE_TYPES = (
    types.FunctionType,
    types.BuiltinFunctionType,
    staticmethod,
    classmethod,
)


@dataclass(frozen=True, slots=True)
class FieldLocation:
    """Where a real field lives on a target class."""

    owner: type[Any]
    """Class in the target MRO that declares the field."""
    attribute_name: str
    """Attribute name as stored, possibly name-mangled."""
    is_static: bool
    """True for class attributes, False for per-instance attributes."""


def find_field(target_class: type[Any], name: str) -> FieldLocation:
    """Locate a field named ``name`` (or its mangled form) along the target MRO.

    Instance fields are recognised from class annotations (other than
    ``ClassVar``), ``__slots__``, dataclass/attrs/pydantic/msgspec field
    declarations, properties and ``self.<name> = ...`` assignments in
    ``__init__``. Class attributes without any of that evidence are static
    fields.

    Args:
        target_class: Real class to search.
        name: Real field name.

    Raises:
        ShadowireMemberNotFoundError: If no class in the MRO declares the field.

    """
    for owner in target_class.__mro__:
        if owner is object:
            continue
        instance_fields = instance_field_names(owner)
        for attribute_name in candidate_attribute_names(owner, name):
            if attribute_name in instance_fields:
                is_static = False
            elif _is_static_field(owner, attribute_name):
                is_static = True
            else:
                continue
            logger.debug(
                "Located %s field %s.%s for '%s'",
                "static" if is_static else "instance",
                owner.__qualname__,
                attribute_name,
                name,
            )
            return FieldLocation(owner=owner, attribute_name=attribute_name, is_static=is_static)

    msg = f"No field '{name}' on '{target_class.__qualname__}'."
    raise ShadowireMemberNotFoundError(msg, name=name, target_class=target_class)


def instance_field_names(owner: type[Any]) -> frozenset[str]:
    """Return the instance attribute names declared by ``owner`` itself."""
    names: set[str] = set()
    own = owner.__dict__

    for attribute_name, annotation in own_class_annotations(owner).items():
        if not is_classvar_annotation(annotation):
            names.add(attribute_name)

    for attribute_name, value in own.items():
        if isinstance(value, (types.MemberDescriptorType, types.GetSetDescriptorType, property)):
            if not attribute_name.startswith("__") or not attribute_name.endswith("__"):
                names.add(attribute_name)

    if "__dataclass_fields__" in own:
        names.update(field.name for field in dataclasses.fields(owner))

    attrs_attributes = own.get("__attrs_attrs__")
    if attrs_attributes:
        names.update(attribute.name for attribute in attrs_attributes)

    pydantic_fields = own.get("__pydantic_fields__")
    if pydantic_fields:
        names.update(pydantic_fields)

    struct_fields = own.get("__struct_fields__")
    if struct_fields:
        names.update(struct_fields)

    for method_name in _INIT_METHOD_NAMES:
        names.update(_stored_attribute_names(own.get(method_name)))

    return frozenset(names)


def _is_static_field(owner: type[Any], attribute_name: str) -> bool:
    if attribute_name not in owner.__dict__:
        annotation = own_class_annotations(owner).get(attribute_name)
        return annotation is not None and is_classvar_annotation(annotation)
    if attribute_name.startswith("__") and attribute_name.endswith("__"):
        return False
    value = owner.__dict__[attribute_name]
    return not isinstance(value, _METHOD_LIKE_TYPES) and not inspect.isclass(value)


def _stored_attribute_names(function: Any) -> set[str]:
    """Return names assigned as ``self.<name> = ...`` in ``function``."""
    code = getattr(function, "__code__", None)
    if code is None or code.co_argcount == 0:
        return set()
    self_name = code.co_varnames[0]

    names: set[str] = set()
    previous: dis.Instruction | None = None
    for instruction in dis.get_instructions(code):
        if instruction.opname == "STORE_ATTR" and previous is not None and _loads_name(previous, self_name):
            names.add(instruction.argval)
        if instruction.opname != "CACHE":
            previous = instruction
    return names


def _loads_name(instruction: dis.Instruction, name: str) -> bool:
    if not instruction.opname.startswith("LOAD_FAST"):
        return False
    loaded = instruction.argval
    if isinstance(loaded, tuple):
        return bool(loaded) and loaded[-1] == name
    return loaded == name


__all__ = ["FieldLocation", "find_field", "instance_field_names"]
