"""条件タイプレジストリ"""

from __future__ import annotations

import random
import threading
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from .conditions import (
    CONDITION_TYPE_MOD_RANGE,
    CONDITION_TYPE_RANDOM,
    CONDITION_TYPE_USER_ID,
    CONDITION_TYPE_USER_IP,
    Condition,
    ConfiguredCondition,
    FunctionCondition,
    build_mod_range,
    build_user_id,
    build_user_ip,
    random_condition_factory,
)
from .exceptions import MalformedVariantSpecError, UnknownConditionTypeError

ConditionFactory = Callable[[Mapping[str, Any]], Condition | Callable[..., Any]]

logger = structlog.get_logger(__name__)


def _normalize(identifier: str) -> str:
    if not isinstance(identifier, str) or not identifier.strip():
        raise ValueError("condition type identifier cannot be empty")
    return identifier.strip().upper()


def _lookup_key(identifier: object) -> object:
    return identifier.strip().upper() if isinstance(identifier, str) else identifier


class ConditionTypeRegistry:
    """条件タイプ識別子からファクトリへのマッピング。

    識別子は大文字小文字を区別しない。同じ識別子を再登録すると後勝ちで
    上書きされるため、ホストアプリケーションは組み込みタイプを差し替えられる。
    """

    def __init__(self) -> None:
        self._factories: Mapping[str, ConditionFactory] = {}
        self._lock = threading.Lock()

    def register(self, identifier: str, factory: ConditionFactory) -> None:
        """条件タイプを登録する。"""
        key = _normalize(identifier)
        if not callable(factory):
            raise TypeError(f"factory for condition type {key} must be callable")
        with self._lock:
            factories = dict(self._factories)
            replaced = key in factories
            factories[key] = factory
            self._factories = factories
        logger.debug("condition type registered", condition_type=key, replaced=replaced)

    def build(
        self, identifier: str, params: Mapping[str, Any] | None = None
    ) -> ConfiguredCondition:
        """登録済みファクトリで条件を構築する。

        Raises:
            UnknownConditionTypeError: 識別子が未登録の場合
            MalformedVariantSpecError: パラメータが不正、またはファクトリが条件を返さない場合
        """
        key = _lookup_key(identifier)
        factory = self._factories.get(key)
        if factory is None:
            raise UnknownConditionTypeError(str(identifier))
        params = dict(params or {})
        try:
            built = factory(params)
        except (LookupError, TypeError, ValueError) as e:
            raise MalformedVariantSpecError(
                f"Invalid parameters for condition type {key}: {e}", cause=e
            ) from e
        if isinstance(built, Condition):
            condition = built
        elif callable(built):
            condition = FunctionCondition(built)
        else:
            raise MalformedVariantSpecError(
                f"Factory for condition type {key} must return a Condition or a callable"
            )
        return ConfiguredCondition(type=key, params=params, condition=condition)

    def identifiers(self) -> list[str]:
        """登録済みの識別子一覧を返す。"""
        return list(self._factories)

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and _lookup_key(identifier) in self._factories


def register_builtin_condition_types(
    registry: ConditionTypeRegistry,
    random_source: Callable[[], float] = random.random,
) -> None:
    """組み込み条件タイプ（RANDOM, MOD_RANGE, USER_ID, USER_IP）を登録する。"""
    registry.register(CONDITION_TYPE_RANDOM, random_condition_factory(random_source))
    registry.register(CONDITION_TYPE_MOD_RANGE, build_mod_range)
    registry.register(CONDITION_TYPE_USER_ID, build_user_id)
    registry.register(CONDITION_TYPE_USER_IP, build_user_ip)
