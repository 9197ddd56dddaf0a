"""フラグ・バリアントのレジストリと評価エンジン"""

from __future__ import annotations

import random
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import structlog
from pydantic import ValidationError

from .condition_types import (
    ConditionFactory,
    ConditionTypeRegistry,
    register_builtin_condition_types,
)
from .context import EvaluationContext
from .exceptions import (
    DuplicateFlagError,
    DuplicateVariantError,
    MalformedPayloadError,
    UnknownFlagError,
    VariantsError,
)
from .loader import decode_payload
from .models import Flag, Variant
from .schema import ConfigPayload

logger = structlog.get_logger(__name__)

Payload = Mapping[str, Any] | bytes | bytearray | str


@dataclass
class RegistryConfig:
    """レジストリ設定。"""

    register_builtin_conditions: bool = True
    # True の場合、未登録フラグを参照する Mod を持つバリアントを拒否する
    strict_mod_flags: bool = False
    random_source: Callable[[], float] = random.random


@dataclass(frozen=True)
class LoadResult:
    """load_config / reload_config で登録されたフラグ名とバリアント識別子。"""

    flags: list[str] = field(default_factory=list)
    variants: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _Snapshot:
    flags: Mapping[str, Flag]
    variants: tuple[Variant, ...]


def _snapshot(flags: dict[str, Flag], variants: Iterable[Variant]) -> _Snapshot:
    return _Snapshot(flags=MappingProxyType(flags), variants=tuple(variants))


class Registry:
    """フラグとバリアントを保持し、コンテキストに応じたフラグ値を解決する。

    書き込み操作はロックで直列化され、完成したスナップショットを一度に
    差し替えて公開する。読み取り操作はロックを取らずに現在のスナップショット
    だけを参照するため、load_config の途中状態を観測することはない。

    バリアントは登録順に評価され、先に登録されたものが優先される。
    """

    def __init__(self, config: RegistryConfig | None = None) -> None:
        self._config = config or RegistryConfig()
        self._condition_types = ConditionTypeRegistry()
        if self._config.register_builtin_conditions:
            register_builtin_condition_types(
                self._condition_types, random_source=self._config.random_source
            )
        self._state = _snapshot({}, ())
        self._write_lock = threading.Lock()

    @property
    def condition_types(self) -> ConditionTypeRegistry:
        return self._condition_types

    def register_condition_type(self, identifier: str, factory: ConditionFactory) -> None:
        """条件タイプを登録する。同じ識別子は上書きされる。"""
        self._condition_types.register(identifier, factory)

    def add_flag(self, flag: Flag) -> None:
        """フラグを登録する。

        Raises:
            DuplicateFlagError: 同名のフラグが既に登録されている場合
        """
        with self._write_lock:
            state = self._state
            if flag.name in state.flags:
                raise DuplicateFlagError(flag.name)
            flags = dict(state.flags)
            flags[flag.name] = flag
            self._state = _snapshot(flags, state.variants)
        logger.debug("flag registered", flag=flag.name)

    def add_variant(self, variant: Variant) -> None:
        """バリアントを最低優先度で登録する。

        Raises:
            DuplicateVariantError: 同じ識別子のバリアントが既に登録されている場合
            UnknownFlagError: strict_mod_flags が有効で未登録フラグを参照する場合
        """
        with self._write_lock:
            state = self._state
            if any(v.identifier == variant.identifier for v in state.variants):
                raise DuplicateVariantError(variant.identifier)
            self._check_mod_flags([variant], state.flags)
            self._state = _snapshot(dict(state.flags), (*state.variants, variant))
        logger.debug("variant registered", variant=variant.identifier)

    def remove_variant(self, identifier: str) -> bool:
        """バリアントを削除する。削除できたら True。"""
        with self._write_lock:
            state = self._state
            variants = [v for v in state.variants if v.identifier != identifier]
            if len(variants) == len(state.variants):
                return False
            self._state = _snapshot(dict(state.flags), variants)
        logger.debug("variant removed", variant=identifier)
        return True

    def get_flag(self, name: str) -> Flag:
        """フラグ定義を取得する。"""
        flag = self._state.flags.get(name)
        if flag is None:
            raise UnknownFlagError(name)
        return flag

    def flag_value(
        self,
        name: str,
        context: EvaluationContext | Mapping[str, Any] | None = None,
        *,
        forced: Mapping[str, bool] | None = None,
    ) -> Any:
        """コンテキストに応じたフラグ値を返す。

        登録順にバリアントを走査し、このフラグの Mod を持ち、かつ有効な最初の
        バリアントの値を返す。該当がなければフラグのベース値を返す。

        Args:
            name: フラグ名
            context: 評価コンテキスト。None の場合は空のコンテキストで評価する。
            forced: バリアント識別子 -> True/False。条件評価を無視して強制的に
                有効化・無効化する。

        Raises:
            UnknownFlagError: フラグが未登録の場合
        """
        state = self._state
        flag = state.flags.get(name)
        if flag is None:
            raise UnknownFlagError(name)
        ctx = EvaluationContext.of(context)
        forced = forced or {}
        for variant in state.variants:
            mod = variant.mod_for_flag(name)
            if mod is None:
                continue
            forced_state = forced.get(variant.identifier)
            if forced_state is False:
                continue
            if forced_state is True or variant.evaluate(ctx):
                return mod.value
        return flag.base_value

    def flag_value_or(
        self,
        name: str,
        default: Any,
        context: EvaluationContext | Mapping[str, Any] | None = None,
    ) -> Any:
        """フラグが未登録の場合に default を返す flag_value。"""
        try:
            return self.flag_value(name, context)
        except UnknownFlagError:
            return default

    def all_flags(self) -> list[Flag]:
        """登録済みフラグを登録順で返す。"""
        return list(self._state.flags.values())

    def all_variants(self) -> list[Variant]:
        """登録済みバリアントを優先度順で返す。"""
        return list(self._state.variants)

    def load_config(self, payload: Payload) -> LoadResult:
        """設定ペイロードからフラグとバリアントを登録する。

        すべてのエントリを検証してから一括で反映する。失敗した場合、その
        ペイロードのエントリは一つも登録されない。

        Args:
            payload: デコード済みの辞書、またはエンコード済みの bytes / str

        Raises:
            PayloadDecodeError: エンコード済みペイロードをデコードできない場合
            MalformedPayloadError: ペイロード全体の構造が不正な場合
            MalformedFlagSpecError, MalformedModSpecError, MalformedVariantSpecError:
                エントリの構造が不正な場合
            UnknownConditionTypeError: 未登録の条件タイプを参照した場合
            DuplicateFlagError, DuplicateVariantError: 名前が重複する場合
        """
        try:
            flags, variants = self._decode(payload)
            with self._write_lock:
                state = self._state
                merged = dict(state.flags)
                for flag in flags:
                    if flag.name in merged:
                        raise DuplicateFlagError(flag.name)
                    merged[flag.name] = flag
                identifiers = {v.identifier for v in state.variants}
                for variant in variants:
                    if variant.identifier in identifiers:
                        raise DuplicateVariantError(variant.identifier)
                    identifiers.add(variant.identifier)
                self._check_mod_flags(variants, merged)
                self._state = _snapshot(merged, (*state.variants, *variants))
        except VariantsError as e:
            logger.warning("variants config rejected", error_code=e.code, error=str(e))
            raise
        logger.info("variants config loaded", flags=len(flags), variants=len(variants))
        return LoadResult(
            flags=[f.name for f in flags],
            variants=[v.identifier for v in variants],
        )

    def reload_config(self, payload: Payload) -> LoadResult:
        """設定ペイロードで既存の定義を上書きする。

        ペイロードに含まれるフラグとバリアントは同名・同識別子の既存定義を
        その位置のまま置き換え、新しいものは末尾に追加する。それ以外の定義は
        変更しない。load_config と同様に失敗時は何も反映しない。
        """
        try:
            flags, variants = self._decode(payload)
            with self._write_lock:
                state = self._state
                merged = dict(state.flags)
                merged.update((flag.name, flag) for flag in flags)
                replacements: dict[str, Variant] = {}
                for variant in variants:
                    if variant.identifier in replacements:
                        raise DuplicateVariantError(variant.identifier)
                    replacements[variant.identifier] = variant
                self._check_mod_flags(variants, merged)
                ordered = [replacements.pop(v.identifier, v) for v in state.variants]
                ordered.extend(replacements.values())
                self._state = _snapshot(merged, ordered)
        except VariantsError as e:
            logger.warning("variants config rejected", error_code=e.code, error=str(e))
            raise
        logger.info("variants config reloaded", flags=len(flags), variants=len(variants))
        return LoadResult(
            flags=[f.name for f in flags],
            variants=[v.identifier for v in variants],
        )

    def dump_config(self) -> dict[str, Any]:
        """現在の状態を load_config で読み込める形式に変換する。"""
        state = self._state
        return {
            "flags": [f.to_dict() for f in state.flags.values()],
            "variants": [v.to_dict() for v in state.variants],
        }

    def _decode(self, payload: Payload) -> tuple[list[Flag], list[Variant]]:
        if isinstance(payload, Mapping):
            data = payload
        elif isinstance(payload, (bytes, bytearray, str)):
            data = decode_payload(payload)
        else:
            raise MalformedPayloadError(
                f"Config payload must be a mapping, got {type(payload).__name__}"
            )
        try:
            parsed = ConfigPayload.model_validate(data)
        except ValidationError as e:
            raise MalformedPayloadError(f"Invalid config payload: {e}", cause=e) from e
        flags = [Flag.from_dict(f) for f in parsed.flags]
        variants = [Variant.from_dict(v, self._condition_types) for v in parsed.variants]
        seen: set[str] = set()
        for flag in flags:
            if flag.name in seen:
                raise DuplicateFlagError(flag.name)
            seen.add(flag.name)
        return flags, variants

    def _check_mod_flags(self, variants: Iterable[Variant], flags: Mapping[str, Flag]) -> None:
        if not self._config.strict_mod_flags:
            return
        for variant in variants:
            for mod in variant.mods:
                if mod.flag_name not in flags:
                    raise UnknownFlagError(mod.flag_name)


_default_registry: Registry | None = None
_default_registry_lock = threading.Lock()


def default_registry() -> Registry:
    """プロセス全体で共有するデフォルトレジストリを返す。"""
    global _default_registry
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = Registry()
        return _default_registry


def reset_default_registry(config: RegistryConfig | None = None) -> Registry:
    """デフォルトレジストリを新しいインスタンスに置き換える。"""
    global _default_registry
    with _default_registry_lock:
        _default_registry = Registry(config)
        return _default_registry
