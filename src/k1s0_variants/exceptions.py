"""variants ライブラリの例外型定義"""

from __future__ import annotations


class VariantsError(Exception):
    """variants ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class VariantsErrorCodes:
    """VariantsError のエラーコード定数。"""

    MALFORMED_FLAG_SPEC: str = "MALFORMED_FLAG_SPEC"
    MALFORMED_MOD_SPEC: str = "MALFORMED_MOD_SPEC"
    MALFORMED_VARIANT_SPEC: str = "MALFORMED_VARIANT_SPEC"
    MALFORMED_PAYLOAD: str = "MALFORMED_PAYLOAD"
    PAYLOAD_DECODE: str = "PAYLOAD_DECODE_ERROR"
    READ_FILE: str = "READ_FILE_ERROR"
    UNKNOWN_CONDITION_TYPE: str = "UNKNOWN_CONDITION_TYPE"
    UNKNOWN_FLAG: str = "UNKNOWN_FLAG"
    DUPLICATE_FLAG: str = "DUPLICATE_FLAG"
    DUPLICATE_VARIANT: str = "DUPLICATE_VARIANT"


class MalformedFlagSpecError(VariantsError):
    """フラグ定義の構造が不正な場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(VariantsErrorCodes.MALFORMED_FLAG_SPEC, message, cause)


class MalformedModSpecError(VariantsError):
    """Mod 定義の構造が不正な場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(VariantsErrorCodes.MALFORMED_MOD_SPEC, message, cause)


class MalformedVariantSpecError(VariantsError):
    """バリアント定義の構造が不正な場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(VariantsErrorCodes.MALFORMED_VARIANT_SPEC, message, cause)


class MalformedPayloadError(VariantsError):
    """設定ペイロード全体の構造が不正な場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(VariantsErrorCodes.MALFORMED_PAYLOAD, message, cause)


class PayloadDecodeError(VariantsError):
    """設定ペイロードのデコードに失敗した場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(VariantsErrorCodes.PAYLOAD_DECODE, message, cause)


class PayloadReadError(VariantsError):
    """設定ファイルの読み込みに失敗した場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(VariantsErrorCodes.READ_FILE, message, cause)


class UnknownConditionTypeError(VariantsError):
    """未登録の条件タイプが参照された場合のエラー。"""

    def __init__(self, condition_type: str) -> None:
        self.condition_type = condition_type
        super().__init__(
            VariantsErrorCodes.UNKNOWN_CONDITION_TYPE,
            f"Unknown condition type: {condition_type}",
        )


class UnknownFlagError(VariantsError):
    """未登録のフラグが参照された場合のエラー。"""

    def __init__(self, flag_name: str) -> None:
        self.flag_name = flag_name
        super().__init__(VariantsErrorCodes.UNKNOWN_FLAG, f"Flag not found: {flag_name}")


class DuplicateFlagError(VariantsError):
    """同名のフラグが既に登録されている場合のエラー。"""

    def __init__(self, flag_name: str) -> None:
        self.flag_name = flag_name
        super().__init__(
            VariantsErrorCodes.DUPLICATE_FLAG,
            f"Flag already registered: {flag_name}",
        )


class DuplicateVariantError(VariantsError):
    """同じ識別子のバリアントが既に登録されている場合のエラー。"""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(
            VariantsErrorCodes.DUPLICATE_VARIANT,
            f"Variant already registered: {identifier}",
        )
