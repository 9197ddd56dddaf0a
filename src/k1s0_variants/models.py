"""variants データモデル"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from .condition_types import ConditionTypeRegistry
from .conditions import Condition, ConfiguredCondition
from .context import EvaluationContext
from .exceptions import (
    MalformedFlagSpecError,
    MalformedModSpecError,
    MalformedVariantSpecError,
)
from .schema import FlagSpec, ModSpec, VariantSpec


class Operator(str, Enum):
    """条件リストの結合演算子。"""

    AND = "and"
    OR = "or"

    @classmethod
    def parse(cls, token: str) -> Operator:
        """大文字小文字を区別せずにトークンを解釈する。"""
        try:
            return cls(token.strip().lower())
        except (AttributeError, ValueError) as e:
            raise MalformedVariantSpecError(
                f"Unknown conditional operator: {token!r}", cause=e
            ) from e


@dataclass(frozen=True)
class Flag:
    """バリアントフラグ。"""

    name: str
    description: str = ""
    base_value: Any = field(default=None, hash=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Flag:
        """シリアライズ形式からフラグを作成する。

        Raises:
            MalformedFlagSpecError: name がない、または文字列でない場合
        """
        try:
            spec = FlagSpec.model_validate(data)
        except ValidationError as e:
            raise MalformedFlagSpecError(f"Invalid flag spec: {e}", cause=e) from e
        return cls(name=spec.name, description=spec.description, base_value=spec.base_value)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "baseValue": self.base_value}


@dataclass(frozen=True)
class Mod:
    """フラグ値の上書き。"""

    flag_name: str
    value: Any = field(hash=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Mod:
        """シリアライズ形式から Mod を作成する。

        Raises:
            MalformedModSpecError: flagName または value がない場合
        """
        try:
            spec = ModSpec.model_validate(data)
        except ValidationError as e:
            raise MalformedModSpecError(f"Invalid mod spec: {e}", cause=e) from e
        return cls(flag_name=spec.flag_name, value=spec.value)

    def to_dict(self) -> dict[str, Any]:
        return {"flagName": self.flag_name, "value": self.value}


@dataclass(frozen=True)
class Variant:
    """条件付きで有効になる Mod の集合。

    evaluate は op に従って条件を短絡評価する。条件が空の場合、AND は常に
    真（常時有効なバリアント）、OR は常に偽となる。同じフラグに対する Mod が
    複数ある場合は宣言順で最初のものだけが参照される。
    """

    identifier: str
    op: Operator = Operator.AND
    conditions: tuple[Condition, ...] = ()
    mods: tuple[Mod, ...] = field(default=(), hash=False)
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.identifier, str) or not self.identifier:
            raise ValueError("identifier cannot be empty")
        object.__setattr__(self, "op", Operator.parse(self.op))
        object.__setattr__(self, "conditions", tuple(self.conditions))
        object.__setattr__(self, "mods", tuple(self.mods))

    def mod_for_flag(self, name: str) -> Mod | None:
        """指定フラグに対する最初の Mod を返す。"""
        for mod in self.mods:
            if mod.flag_name == name:
                return mod
        return None

    def value_for_flag(self, name: str) -> Any | None:
        """指定フラグの上書き値を返す。Mod がなければ None。"""
        mod = self.mod_for_flag(name)
        return mod.value if mod is not None else None

    def overrides(self, name: str) -> bool:
        return self.mod_for_flag(name) is not None

    def evaluate(self, context: EvaluationContext) -> bool:
        """コンテキストに対してバリアントが有効か評価する。"""
        if self.op is Operator.OR:
            return any(c.evaluate(context) for c in self.conditions)
        return all(c.evaluate(context) for c in self.conditions)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], condition_types: ConditionTypeRegistry
    ) -> Variant:
        """シリアライズ形式からバリアントを作成する。

        条件は condition_types に登録されたファクトリで構築される。

        Raises:
            MalformedVariantSpecError: 構造や演算子が不正な場合
            MalformedModSpecError: Mod エントリが不正な場合
            UnknownConditionTypeError: 未登録の条件タイプを参照した場合
        """
        try:
            spec = VariantSpec.model_validate(data)
        except ValidationError as e:
            raise MalformedVariantSpecError(f"Invalid variant spec: {e}", cause=e) from e
        op = Operator.parse(spec.op)
        conditions = [condition_types.build(c.type, c.params) for c in spec.conditions]
        mods = [Mod.from_dict(m) for m in spec.mods]
        return cls(
            identifier=spec.identifier,
            op=op,
            conditions=tuple(conditions),
            mods=tuple(mods),
            description=spec.description,
        )

    def to_dict(self) -> dict[str, Any]:
        """シリアライズ形式に変換する。

        Raises:
            MalformedVariantSpecError: 条件タイプから構築されていない条件を含む場合
        """
        conditions = []
        for condition in self.conditions:
            if not isinstance(condition, ConfiguredCondition):
                raise MalformedVariantSpecError(
                    f"Variant {self.identifier} has a condition with no serialized form"
                )
            conditions.append(condition.to_dict())
        return {
            "identifier": self.identifier,
            "description": self.description,
            "op": self.op.value,
            "conditions": conditions,
            "mods": [m.to_dict() for m in self.mods],
        }
