"""Decoders for the free-form text printed by ``xattr`` and ``mdls``.

Both grammars are defined by the external tools, so the parsers below accept
exactly the shapes those tools print and fall back to the raw text otherwise.

Dependencies: none
Wired in: services/xattr_service.py, services/spotlight_service.py
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

_HEX_DUMP = re.compile(r"[0-9A-Fa-f\s]+")
_WHITESPACE = re.compile(r"\s+")
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_METADATA_LINE = re.compile(r"^(\w+)\s+=\s+(.*)$")

NULL_LITERAL = "(null)"

MetadataValue = str | int | float | list[str] | None


class ValueKind(StrEnum):
    """Shape of a decoded attribute value."""

    STRING = "string"
    NUMBER = "number"
    NULL = "null"
    STRING_LIST = "string_list"
    STRUCTURED = "structured"


class ValueEncoding(StrEnum):
    """How the raw tool output was interpreted."""

    UTF8 = "utf8"
    HEX = "hex"
    JSON = "json"


@dataclass(frozen=True)
class DecodedValue:
    """An extended-attribute value decoded from ``xattr -p`` output."""

    kind: ValueKind
    value: Any
    size_bytes: int
    encoding: ValueEncoding

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "value": self.value,
            "size": self.size_bytes,
            "encoding": str(self.encoding),
        }


def _kind_of(value: Any) -> ValueKind:
    if value is None:
        return ValueKind.NULL
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, int | float) and not isinstance(value, bool):
        return ValueKind.NUMBER
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return ValueKind.STRING_LIST
    return ValueKind.STRUCTURED


def _parse_json(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return False, None


def _hex_bytes(raw: str) -> bytes | None:
    """Return the bytes of a hex dump, or ``None`` when *raw* is not one.

    Whitespace-only and odd-length digit runs are not hex dumps; they are
    decoded as plain text instead.
    """
    if not _HEX_DUMP.fullmatch(raw):
        return None
    digits = _WHITESPACE.sub("", raw)
    if not digits or len(digits) % 2:
        return None
    return bytes.fromhex(digits)


def decode_attribute_value(raw: str) -> DecodedValue:
    """Decode one extended-attribute value as printed by ``xattr -p``."""
    data = _hex_bytes(raw)
    if data is not None:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            text = None
        if text is not None and "\ufffd" not in text:
            parsed_ok, parsed = _parse_json(text)
            if parsed_ok:
                return DecodedValue(_kind_of(parsed), parsed, len(data), ValueEncoding.JSON)
            return DecodedValue(ValueKind.STRING, text, len(data), ValueEncoding.UTF8)
        digits = _WHITESPACE.sub("", raw)
        return DecodedValue(ValueKind.STRING, digits, len(data), ValueEncoding.HEX)

    size = len(raw.encode("utf-8"))
    parsed_ok, parsed = _parse_json(raw)
    if parsed_ok:
        return DecodedValue(_kind_of(parsed), parsed, size, ValueEncoding.UTF8)
    return DecodedValue(ValueKind.STRING, raw, size, ValueEncoding.UTF8)


def _unquote(text: str) -> str:
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text[1:-1]
    return text


def _parse_number(text: str) -> int | float | None:
    if not _NUMBER.fullmatch(text):
        return None
    if any(marker in text for marker in ".eE"):
        return float(text)
    return int(text)


def decode_metadata_value(raw: str) -> MetadataValue:
    """Decode one value from an ``mdls`` attribute dump.

    ``(null)`` is ``None``, ``(a, "b")`` is a list of strings, ``"x"`` is a
    string, a plain decimal is a number, anything else is returned unchanged.
    """
    value = raw.strip()
    if value == NULL_LITERAL:
        return None
    if value.startswith("(") and value.endswith(")"):
        inner = value[1:-1].strip()
        if not inner:
            return []
        return [_unquote(item.strip()) for item in inner.split(",")]
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    number = _parse_number(value)
    if number is not None:
        return number
    return raw


def parse_metadata_dump(text: str) -> dict[str, MetadataValue]:
    """Parse ``name = value`` lines, joining multi-line parenthesized arrays."""
    parsed: dict[str, MetadataValue] = {}
    pending_name: str | None = None
    pending: list[str] = []
    for line in text.splitlines():
        if pending_name is not None:
            pending.append(line.strip())
            if line.strip() == ")":
                parsed[pending_name] = decode_metadata_value(" ".join(pending))
                pending_name, pending = None, []
            continue
        match = _METADATA_LINE.match(line)
        if match is None:
            continue
        name, value = match.group(1), match.group(2).strip()
        if value == "(":
            pending_name, pending = name, [value]
            continue
        parsed[name] = decode_metadata_value(value)
    return parsed
