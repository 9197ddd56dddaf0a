"""設定ペイロードのシリアライズ形式定義（pydantic BaseModel）

旧形式の設定ファイルのキー名（flag_defs, flag, base_value, id,
condition_operator など）も受け付ける。
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictStr, model_validator


class FlagSpec(BaseModel):
    """フラグ定義。"""

    model_config = ConfigDict(frozen=True)

    name: StrictStr = Field(validation_alias=AliasChoices("name", "flag"))
    description: str = Field(default="", validation_alias=AliasChoices("description", "desc"))
    base_value: Any = Field(
        default=None,
        validation_alias=AliasChoices("baseValue", "base_value"),
        serialization_alias="baseValue",
    )


class ModSpec(BaseModel):
    """Mod 定義。"""

    model_config = ConfigDict(frozen=True)

    flag_name: StrictStr = Field(
        validation_alias=AliasChoices("flagName", "flag_name", "flag"),
        serialization_alias="flagName",
    )
    value: Any


class ConditionSpec(BaseModel):
    """条件定義。type 以外のキーはすべて条件パラメータとして扱う。"""

    model_config = ConfigDict(extra="allow", frozen=True)

    type: StrictStr = Field(min_length=1)

    @model_validator(mode="after")
    def _check_value_and_values(self) -> ConditionSpec:
        params = self.params
        if params.get("value") is not None and params.get("values") is not None:
            raise ValueError(f"cannot specify both 'value' and 'values' for {self.type}")
        return self

    @property
    def params(self) -> dict[str, Any]:
        """条件パラメータ。"""
        return dict(self.model_extra or {})


class VariantSpec(BaseModel):
    """バリアント定義。"""

    model_config = ConfigDict(frozen=True)

    identifier: StrictStr = Field(
        min_length=1, validation_alias=AliasChoices("identifier", "id")
    )
    description: str = Field(default="", validation_alias=AliasChoices("description", "desc"))
    op: StrictStr = Field(
        default="and",
        validation_alias=AliasChoices("op", "condition_operator", "operator"),
    )
    conditions: list[ConditionSpec] = Field(default_factory=list)
    mods: list[Any] = Field(min_length=1)


class ConfigPayload(BaseModel):
    """設定ペイロード全体。各エントリの検証はモデル側で行う。"""

    flags: list[Any] = Field(
        default_factory=list, validation_alias=AliasChoices("flags", "flag_defs")
    )
    variants: list[Any] = Field(default_factory=list)
