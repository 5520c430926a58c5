from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any

from .errors import ParseError

MAX_STRING_LENGTH = 2049
MAX_BINARY_CHUNK = 254

INT32_RANGE = (-(2**31), 2**31 - 1)
INT16_RANGE = (-(2**15), 2**15 - 1)

_INTEGER = re.compile(r"^[+-]?\d+$")
_REAL = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_HEX_HANDLE = re.compile(r"^[0-9A-Fa-f]{1,16}$")
_HEX_DIGITS = re.compile(r"^(?:[0-9A-Fa-f]{2})*$")


class ValueType(Enum):
    INT = "int"
    SHORT = "short"
    HEX = "hex"
    DOUBLE = "double"
    STRING = "string"
    FLAG = "flag"
    BINARY = "binary"


def decode_value(raw: str, value_type: ValueType) -> Any:
    """Convert a raw tag value to its typed representation.

    Raises `ParseError` for anything that does not fit the type. Strings keep
    their inner whitespace; everything else is stripped first.
    """
    if value_type is ValueType.STRING:
        if len(raw) > MAX_STRING_LENGTH:
            raise ParseError(f"string value exceeds {MAX_STRING_LENGTH} characters")
        return raw

    text = raw.strip()
    if value_type is ValueType.DOUBLE:
        if not _REAL.match(text):
            raise ParseError(f"{text!r} is not a real number")
        number = float(text)
        if not math.isfinite(number):
            raise ParseError(f"{text!r} is not a finite real number")
        return number

    if value_type in (ValueType.INT, ValueType.SHORT, ValueType.FLAG):
        if not _INTEGER.match(text):
            raise ParseError(f"{text!r} is not an integer")
        number = int(text)
        if value_type is ValueType.FLAG:
            return number != 0
        low, high = INT16_RANGE if value_type is ValueType.SHORT else INT32_RANGE
        if not low <= number <= high:
            raise ParseError(f"{number} is outside the {value_type.value} range [{low}, {high}]")
        return number

    if value_type is ValueType.HEX:
        if not _HEX_HANDLE.match(text):
            raise ParseError(f"{text!r} is not a hexadecimal handle")
        return int(text, 16)

    if value_type is ValueType.BINARY:
        if len(text) > MAX_BINARY_CHUNK or not _HEX_DIGITS.match(text):
            raise ParseError(f"{text[:32]!r} is not a binary chunk of at most {MAX_BINARY_CHUNK} hex digits")
        return bytes.fromhex(text)

    raise ParseError(f"unsupported value type: {value_type}")


def encode_value(value: Any, value_type: ValueType) -> str:
    if value_type is ValueType.STRING:
        text = str(value)
        if len(text) > MAX_STRING_LENGTH:
            raise ValueError(f"string value exceeds {MAX_STRING_LENGTH} characters")
        if "\n" in text or "\r" in text:
            raise ValueError(f"string value contains a line break: {text!r}")
        return text
    if value_type is ValueType.DOUBLE:
        number = float(value)
        if not math.isfinite(number):
            raise ValueError(f"cannot encode non-finite real {number!r}")
        return repr(number)
    if value_type is ValueType.FLAG:
        return "1" if value else "0"
    if value_type in (ValueType.INT, ValueType.SHORT):
        number = int(value)
        low, high = INT16_RANGE if value_type is ValueType.SHORT else INT32_RANGE
        if not low <= number <= high:
            raise ValueError(f"{number} is outside the {value_type.value} range [{low}, {high}]")
        return str(number)
    if value_type is ValueType.HEX:
        number = int(value)
        if number < 0:
            raise ValueError(f"handle must not be negative: {number}")
        return f"{number:X}"
    if value_type is ValueType.BINARY:
        chunk = bytes(value)
        if len(chunk) * 2 > MAX_BINARY_CHUNK:
            raise ValueError(f"binary chunk exceeds {MAX_BINARY_CHUNK // 2} bytes")
        return chunk.hex().upper()
    raise ValueError(f"unsupported value type: {value_type}")


def accepts(value: Any, value_type: ValueType) -> bool:
    """Tell whether ``value`` is a valid in-memory value for ``value_type``."""
    if value_type is ValueType.STRING:
        return isinstance(value, str)
    if value_type is ValueType.DOUBLE:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if value_type is ValueType.FLAG:
        return isinstance(value, bool)
    if value_type is ValueType.BINARY:
        return isinstance(value, (bytes, bytearray))
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    if value_type is ValueType.HEX:
        return value >= 0
    low, high = INT16_RANGE if value_type is ValueType.SHORT else INT32_RANGE
    return low <= value <= high


def split_binary(data: bytes, chunk_size: int = MAX_BINARY_CHUNK // 2) -> list[bytes]:
    """Split a byte string into chunks that each fit on one ``310`` line."""
    return [bytes(data[i : i + chunk_size]) for i in range(0, len(data), chunk_size)]
