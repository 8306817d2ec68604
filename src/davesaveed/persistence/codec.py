from __future__ import annotations

import json
from typing import Any, Dict

from ..errors import FormatError

# Fixed repeating key the game obfuscates its save files with
XOR_KEY = b"GameData"


def xor_transform(data: bytes, key: bytes = XOR_KEY) -> bytes:
    """XOR ``data`` with ``key`` repeated cyclically over its whole length.

    The transform is its own inverse, so the same call both obfuscates and
    de-obfuscates a payload.
    """
    if not key:
        raise ValueError("XOR key must not be empty")
    if not data:
        return b""
    reps, rest = divmod(len(data), len(key))
    keystream = key * reps + key[:rest]
    mixed = int.from_bytes(data, "big") ^ int.from_bytes(keystream, "big")
    return mixed.to_bytes(len(data), "big")


def decode_text(raw: bytes, key: bytes = XOR_KEY) -> str:
    """Turn raw save bytes into the document's JSON text."""
    try:
        return xor_transform(raw, key).decode("utf-8")
    except UnicodeDecodeError as e:
        raise FormatError(f"Decoded save is not UTF-8 text: {e}") from e


def encode_text(text: str, key: bytes = XOR_KEY) -> bytes:
    return xor_transform(text.encode("utf-8"), key)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name!r}")


def parse_document(text: str) -> Dict[str, Any]:
    """Parse JSON text into an object-rooted document tree.

    Lone surrogate escapes such as ``"\\ud800"`` are rejected: they decode to
    Python strings that cannot be written back as UTF-8.
    """
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except RecursionError as e:
        raise FormatError("Invalid JSON: nesting too deep") from e
    except ValueError as e:
        raise FormatError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise FormatError(f"Save document root must be an object, got {type(data).__name__}")
    try:
        dump_document(data).encode("utf-8")
    except RecursionError as e:
        raise FormatError("Invalid JSON: nesting too deep") from e
    except (UnicodeEncodeError, ValueError) as e:
        raise FormatError(f"Invalid JSON: document cannot be re-encoded as UTF-8: {e}") from e
    return data


def dump_document(data: Dict[str, Any]) -> str:
    """Serialize a document compactly, keeping key order and raw UTF-8 characters."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def decode_save(raw: bytes, key: bytes = XOR_KEY) -> Dict[str, Any]:
    return parse_document(decode_text(raw, key))


def encode_save(data: Dict[str, Any], key: bytes = XOR_KEY) -> bytes:
    return encode_text(dump_document(data), key)
