"""設定ペイロードの読み込み"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import MalformedPayloadError, PayloadDecodeError, PayloadReadError


def decode_payload(data: bytes | str) -> dict[str, Any]:
    """エンコード済みペイロード（JSON または YAML）をデコードする。

    YAML は JSON の上位互換のため、どちらの形式も yaml.safe_load で読める。
    空のドキュメントは空の辞書として扱う。

    Raises:
        PayloadDecodeError: UTF-8 または YAML/JSON として解釈できない場合
        MalformedPayloadError: トップレベルがマッピングでない場合
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadDecodeError("Payload is not valid UTF-8", cause=e) from e
    try:
        decoded = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise PayloadDecodeError(f"Failed to decode payload: {e}", cause=e) from e
    if decoded is None:
        return {}
    if not isinstance(decoded, dict):
        raise MalformedPayloadError(
            f"Payload must be a mapping, got {type(decoded).__name__}"
        )
    return decoded


def read_payload(path: Path) -> dict[str, Any]:
    """設定ファイルを読み込んでデコードする。"""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise PayloadReadError(f"Failed to read config file: {path}", cause=e) from e
    return decode_payload(data)
