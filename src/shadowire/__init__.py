from shadowire._internal.accessors import DefaultMemberAccessor, MemberAccessor
from shadowire._internal.factory import ShadowFactory
from shadowire._internal.resolvers import TargetResolver
from shadowire._internal.shadow import Shadow
from shadowire._internal.strategies import ForShadowArrays, ForShadows, NoShadowing, Unwrapper, Wrapper
from shadowire.exceptions import (
    ShadowireAccessorArityError,
    ShadowireArrayShapeError,
    ShadowireError,
    ShadowireInvalidShadowClassError,
    ShadowireMemberNotFoundError,
    ShadowireScopeError,
    ShadowireStrategyInstantiationError,
    ShadowireTargetNotFoundError,
    ShadowireTypeMismatchError,
    ShadowireUnclassifiedMemberError,
)
from shadowire.lock_mode import LockMode
from shadowire.markers import (
    ClassTarget,
    DynamicClassTarget,
    DynamicFieldTarget,
    DynamicMethodTarget,
    ShadowingStrategy,
    Target,
    shadow_arrays,
    shadow_field,
    static,
)

shadow_factory = ShadowFactory()
"""Process-wide default factory."""

__all__ = [
    "ClassTarget",
    "DefaultMemberAccessor",
    "DynamicClassTarget",
    "DynamicFieldTarget",
    "DynamicMethodTarget",
    "ForShadowArrays",
    "ForShadows",
    "LockMode",
    "MemberAccessor",
    "NoShadowing",
    "Shadow",
    "ShadowFactory",
    "ShadowingStrategy",
    "ShadowireAccessorArityError",
    "ShadowireArrayShapeError",
    "ShadowireError",
    "ShadowireInvalidShadowClassError",
    "ShadowireMemberNotFoundError",
    "ShadowireScopeError",
    "ShadowireStrategyInstantiationError",
    "ShadowireTargetNotFoundError",
    "ShadowireTypeMismatchError",
    "ShadowireUnclassifiedMemberError",
    "Target",
    "TargetResolver",
    "Unwrapper",
    "Wrapper",
    "shadow_arrays",
    "shadow_factory",
    "shadow_field",
    "static",
]
