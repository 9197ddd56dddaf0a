"""フラグ評価コンテキスト"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

_NAMED_FIELDS = ("user_id", "tenant_id")


@dataclass(frozen=True)
class EvaluationContext:
    """フラグ評価コンテキスト。

    条件はこのオブジェクトを読み取るだけで、変更してはならない。
    attributes は読み取り専用のマッピングとして保持される。
    """

    user_id: str | int | None = None
    tenant_id: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def get(self, key: str, default: Any = None) -> Any:
        """名前付きフィールドまたは属性から値を取得する。"""
        if key in _NAMED_FIELDS:
            value = getattr(self, key)
            if value is not None:
                return value
        return self.attributes.get(key, default)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> EvaluationContext:
        """辞書から EvaluationContext を作成する。

        user_id / tenant_id キーは名前付きフィールドにも設定される。
        """
        return cls(
            user_id=data.get("user_id"),
            tenant_id=data.get("tenant_id"),
            attributes=data,
        )

    @classmethod
    def of(cls, value: EvaluationContext | Mapping[str, Any] | None) -> EvaluationContext:
        """呼び出し側から渡された値を EvaluationContext に正規化する。"""
        if value is None:
            return _EMPTY_CONTEXT
        if isinstance(value, EvaluationContext):
            return value
        if isinstance(value, Mapping):
            return cls.from_mapping(value)
        raise TypeError(
            f"context must be an EvaluationContext or a mapping, got {type(value).__name__}"
        )


_EMPTY_CONTEXT = EvaluationContext()
