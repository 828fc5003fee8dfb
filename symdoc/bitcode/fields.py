"""Field decoders — convert a raw record into one typed value.

Each decoder validates its input and raises the matching decode error
instead of guessing.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from symdoc.bitcode.cursor import RawRecord
from symdoc.bitcode.ids import INT_MAX
from symdoc.errors import (
    BadIdentifierLength,
    IntegerOverflow,
    InvalidEnumValue,
    MalformedStream,
)
from symdoc.meta.symbols import USR_HASH_SIZE, Location, SymbolID

E = TypeVar("E", bound=Enum)


def _first(record: RawRecord) -> int:
    if not record.fields:
        raise MalformedStream(f"record {record.record_id} has no fields")
    return record.fields[0]


def decode_string(record: RawRecord) -> str:
    return record.blob.decode("utf-8", errors="replace")


def decode_bool(record: RawRecord) -> bool:
    return _first(record) != 0


def decode_int(record: RawRecord) -> int:
    value = _first(record)
    if value > INT_MAX:
        raise IntegerOverflow(f"integer too large to parse: {value}")
    return value


def decode_enum(record: RawRecord, enum_type: type[E]) -> E:
    value = _first(record)
    try:
        return enum_type(value)
    except ValueError:
        raise InvalidEnumValue(f"invalid value {value} for {enum_type.__name__}") from None


def decode_symbol_id(record: RawRecord) -> SymbolID:
    """Identifier records carry their length first, then one byte per field."""
    length = _first(record)
    if length != USR_HASH_SIZE:
        raise BadIdentifierLength(f"incorrect identifier size {length}, expected {USR_HASH_SIZE}")
    content = record.fields[1:]
    if len(content) != length:
        raise BadIdentifierLength(
            f"identifier declares {length} bytes but carries {len(content)}"
        )
    if any(b > 0xFF for b in content):
        raise IntegerOverflow("identifier byte out of range")
    return SymbolID(bytes(content))


def decode_location(record: RawRecord) -> Location:
    line = decode_int(record)
    is_definition = len(record.fields) > 1 and record.fields[1] != 0
    return Location(line_number=line, filename=decode_string(record), is_definition=is_definition)
