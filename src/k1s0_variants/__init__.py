"""k1s0 variants library."""

from .condition_types import (
    ConditionFactory,
    ConditionTypeRegistry,
    register_builtin_condition_types,
)
from .conditions import (
    CONDITION_TYPE_MOD_RANGE,
    CONDITION_TYPE_RANDOM,
    CONDITION_TYPE_USER_ID,
    CONDITION_TYPE_USER_IP,
    AllowListCondition,
    Condition,
    ConfiguredCondition,
    FunctionCondition,
    ModRangeCondition,
    RandomCondition,
)
from .context import EvaluationContext
from .exceptions import (
    DuplicateFlagError,
    DuplicateVariantError,
    MalformedFlagSpecError,
    MalformedModSpecError,
    MalformedPayloadError,
    MalformedVariantSpecError,
    PayloadDecodeError,
    PayloadReadError,
    UnknownConditionTypeError,
    UnknownFlagError,
    VariantsError,
    VariantsErrorCodes,
)
from .loader import decode_payload, read_payload
from .models import Flag, Mod, Operator, Variant
from .registry import (
    LoadResult,
    Registry,
    RegistryConfig,
    default_registry,
    reset_default_registry,
)

__all__ = [
    "AllowListCondition",
    "CONDITION_TYPE_MOD_RANGE",
    "CONDITION_TYPE_RANDOM",
    "CONDITION_TYPE_USER_ID",
    "CONDITION_TYPE_USER_IP",
    "Condition",
    "ConditionFactory",
    "ConditionTypeRegistry",
    "ConfiguredCondition",
    "DuplicateFlagError",
    "DuplicateVariantError",
    "EvaluationContext",
    "Flag",
    "FunctionCondition",
    "LoadResult",
    "MalformedFlagSpecError",
    "MalformedModSpecError",
    "MalformedPayloadError",
    "MalformedVariantSpecError",
    "Mod",
    "ModRangeCondition",
    "Operator",
    "PayloadDecodeError",
    "PayloadReadError",
    "RandomCondition",
    "Registry",
    "RegistryConfig",
    "UnknownConditionTypeError",
    "UnknownFlagError",
    "Variant",
    "VariantsError",
    "VariantsErrorCodes",
    "decode_payload",
    "default_registry",
    "read_payload",
    "register_builtin_condition_types",
    "reset_default_registry",
]
