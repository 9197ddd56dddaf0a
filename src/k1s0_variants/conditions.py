"""条件（Condition）と組み込み条件タイプ"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .context import EvaluationContext

CONDITION_TYPE_RANDOM = "RANDOM"
CONDITION_TYPE_MOD_RANGE = "MOD_RANGE"
CONDITION_TYPE_USER_ID = "USER_ID"
CONDITION_TYPE_USER_IP = "USER_IP"

Predicate = Callable[[EvaluationContext], bool]


class Condition(ABC):
    """コンテキストに対する真偽値の述語。"""

    @abstractmethod
    def evaluate(self, context: EvaluationContext) -> bool:
        """コンテキストを評価して条件を満たすか返す。"""
        ...


class FunctionCondition(Condition):
    """任意の関数をラップする条件。"""

    def __init__(self, fn: Predicate) -> None:
        self._fn = fn

    def evaluate(self, context: EvaluationContext) -> bool:
        return bool(self._fn(context))


@dataclass(frozen=True)
class ConfiguredCondition(Condition):
    """条件タイプから構築された条件。

    シリアライズ形式に戻せるよう、タイプ識別子とパラメータを保持する。
    """

    type: str
    params: Mapping[str, Any] = field(hash=False)
    condition: Condition = field(compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def evaluate(self, context: EvaluationContext) -> bool:
        return self.condition.evaluate(context)

    def to_dict(self) -> dict[str, Any]:
        """シリアライズ形式 {"type": ..., **params} に変換する。"""
        return {"type": self.type, **self.params}


class RandomCondition(Condition):
    """確率 probability で真となる条件。"""

    def __init__(self, probability: float, random_source: Callable[[], float]) -> None:
        self.probability = probability
        self._random_source = random_source

    def evaluate(self, context: EvaluationContext) -> bool:
        if self.probability <= 0:
            return False
        return self._random_source() < self.probability


class ModRangeCondition(Condition):
    """context[key] % 100 が [begin, end] に含まれるとき真となる条件。"""

    def __init__(self, key: str, begin: int, end: int) -> None:
        self.key = key
        self.begin = begin
        self.end = end

    def evaluate(self, context: EvaluationContext) -> bool:
        value = context.get(self.key)
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        return self.begin <= value % 100 <= self.end


class AllowListCondition(Condition):
    """context[key] が許可リストに含まれるとき真となる条件。"""

    def __init__(self, key: str, allowed: frozenset[Any]) -> None:
        self.key = key
        self.allowed = allowed

    def evaluate(self, context: EvaluationContext) -> bool:
        value = context.get(self.key)
        if value is None:
            return False
        try:
            return value in self.allowed
        except TypeError:
            # unhashable context value
            return False


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise TypeError(f"{name} must be an integer")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise TypeError(f"{name} must be an integer")
    return value


def _value_list(params: Mapping[str, Any], condition_type: str) -> list[Any]:
    """value（単一値）または values（配列）から値リストを取り出す。"""
    if "values" in params:
        values = params["values"]
        if not isinstance(values, list):
            raise TypeError(f"{condition_type} expects 'values' to be an array")
        return values
    if "value" in params:
        return [params["value"]]
    raise ValueError(f"{condition_type} requires 'value' or 'values'")


def random_condition_factory(
    random_source: Callable[[], float],
) -> Callable[[Mapping[str, Any]], Condition]:
    """RANDOM 条件タイプのファクトリを返す。

    random_source は [0, 1) の乱数を返す関数。テストではシード済みの
    random.Random(seed).random を渡して結果を固定できる。
    """

    def build(params: Mapping[str, Any]) -> Condition:
        value = params.get("value")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError("RANDOM requires a numeric 'value'")
        if not 0 <= value <= 1:
            raise ValueError(f"RANDOM value must be between 0 and 1, got {value}")
        return RandomCondition(float(value), random_source)

    return build


def build_mod_range(params: Mapping[str, Any]) -> Condition:
    """MOD_RANGE 条件を構築する。values = [key, begin, end]。"""
    values = params.get("values")
    if not isinstance(values, list) or len(values) != 3:
        raise ValueError("MOD_RANGE expects 'values' to be [key, begin, end]")
    key, begin, end = values
    if not isinstance(key, str):
        raise TypeError("MOD_RANGE expects values[0] to be a string")
    begin = _as_int(begin, "MOD_RANGE range begin")
    end = _as_int(end, "MOD_RANGE range end")
    if begin < 0 or begin > end:
        raise ValueError(f"MOD_RANGE range must satisfy 0 <= begin <= end, got [{begin}, {end}]")
    return ModRangeCondition(key, begin, end)


def build_user_id(params: Mapping[str, Any]) -> Condition:
    """USER_ID 条件を構築する。"""
    return AllowListCondition("user_id", frozenset(_value_list(params, CONDITION_TYPE_USER_ID)))


def build_user_ip(params: Mapping[str, Any]) -> Condition:
    """USER_IP 条件を構築する。コンテキストの ip 属性を参照する。"""
    return AllowListCondition("ip", frozenset(_value_list(params, CONDITION_TYPE_USER_IP)))
