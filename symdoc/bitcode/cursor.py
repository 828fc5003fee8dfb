"""Binary cursor — structural reader over one container's bytes.

Layout (all integers little-endian):

    ENTER_BLOCK  u8=1  u16 block_id  u32 length   (length covers body + END_BLOCK)
    END_BLOCK    u8=0
    RECORD       u8=2  u16 record_id  u16 n  n*u64 fields  u32 blob_len  blob

The cursor knows nothing about what blocks or records mean.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from symdoc.bitcode.ids import SIGNATURE, Abbrev, block_name
from symdoc.errors import BadSignature, MalformedStream

_U32 = struct.Struct("<I")
_BLOCK_HEADER = struct.Struct("<HI")
_RECORD_HEADER = struct.Struct("<HH")


@dataclass(frozen=True)
class RawRecord:
    record_id: int
    fields: tuple[int, ...]
    blob: bytes = b""


@dataclass
class _Frame:
    block_id: int
    end: int


class BinaryCursor:
    """Sequential reader producing structural tokens and raw records."""

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0
        self._stack: list[_Frame] = []
        self._pending: tuple[int, int] | None = None  # (block_id, length) read but not entered

    # --- Position ---

    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def block_path(self) -> str:
        return "/".join(block_name(f.block_id) for f in self._stack)

    def _limit(self) -> int:
        return self._stack[-1].end if self._stack else len(self.data)

    def _take(self, size: int) -> bytes:
        end = self.pos + size
        if end > self._limit():
            if end > len(self.data):
                raise MalformedStream(f"truncated stream at offset {self.pos}", self.block_path)
            raise MalformedStream(f"value at offset {self.pos} overruns its block", self.block_path)
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    # --- Tokens ---

    def read_signature(self) -> None:
        if len(self.data) < len(SIGNATURE):
            raise BadSignature("stream is shorter than the signature")
        if self.data[: len(SIGNATURE)] != SIGNATURE:
            raise BadSignature(f"invalid signature {self.data[:len(SIGNATURE)]!r}")
        self.pos = len(SIGNATURE)

    def read_code(self) -> Abbrev:
        if self._pending is not None:
            raise MalformedStream("block header read but never entered or skipped", self.block_path)
        (code,) = self._take(1)
        try:
            return Abbrev(code)
        except ValueError:
            raise MalformedStream(
                f"unknown abbreviation code {code} at offset {self.pos - 1}", self.block_path
            ) from None

    def read_block_id(self) -> int:
        """Read the header following an ENTER_BLOCK code."""
        block_id, length = _BLOCK_HEADER.unpack(self._take(_BLOCK_HEADER.size))
        if self.pos + length > self._limit():
            raise MalformedStream(
                f"block {block_id} of length {length} overruns its container", self.block_path
            )
        if length < 1:
            raise MalformedStream(f"block {block_id} has no END_BLOCK", self.block_path)
        self._pending = (block_id, length)
        return block_id

    def enter_block(self, block_id: int) -> None:
        if self._pending is None or self._pending[0] != block_id:
            raise MalformedStream(f"cannot enter block {block_id} here", self.block_path)
        _, length = self._pending
        self._pending = None
        self._stack.append(_Frame(block_id=block_id, end=self.pos + length))

    def skip_block(self) -> None:
        """Skip the block whose header was just read, or the rest of the current block."""
        if self._pending is not None:
            _, length = self._pending
            self._pending = None
            self.pos += length
            return
        if not self._stack:
            raise MalformedStream("skip requested outside of any block")
        self.pos = self._stack.pop().end

    def read_block_end(self) -> int:
        """Consume the END_BLOCK that closes the innermost block."""
        if not self._stack:
            raise MalformedStream(f"END_BLOCK without matching ENTER_BLOCK at offset {self.pos - 1}")
        frame = self._stack.pop()
        if self.pos != frame.end:
            raise MalformedStream(
                f"END_BLOCK at offset {self.pos - 1} does not close its block (expected {frame.end - 1})",
                self.block_path,
            )
        return frame.block_id

    def unwind(self, depth: int) -> None:
        """Skip every open block deeper than ``depth``."""
        if self._pending is not None:
            self.skip_block()
        while len(self._stack) > depth:
            self.pos = self._stack.pop().end

    def read_record(self) -> RawRecord:
        """Read the record following a RECORD code."""
        record_id, count = _RECORD_HEADER.unpack(self._take(_RECORD_HEADER.size))
        raw = self._take(8 * count)
        fields = struct.unpack(f"<{count}Q", raw) if count else ()
        (blob_len,) = _U32.unpack(self._take(_U32.size))
        blob = self._take(blob_len)
        return RawRecord(record_id=record_id, fields=tuple(fields), blob=blob)
