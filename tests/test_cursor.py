"""Tests for the binary cursor."""

import struct

import pytest

from symdoc.bitcode.cursor import BinaryCursor, RawRecord
from symdoc.bitcode.ids import Abbrev, BlockId
from symdoc.bitcode.writer import BinaryWriter
from symdoc.errors import BadSignature, MalformedStream


def _stream(build) -> bytes:
    w = BinaryWriter()
    w.signature()
    build(w)
    return w.getvalue()


# --- Signature ---


def test_signature_accepted():
    cursor = BinaryCursor(b"DOCS")
    cursor.read_signature()
    assert cursor.at_end()


def test_bad_signature():
    with pytest.raises(BadSignature):
        BinaryCursor(b"BC\xc0\xde").read_signature()


def test_short_stream_is_bad_signature():
    with pytest.raises(BadSignature) as exc:
        BinaryCursor(b"DO").read_signature()
    assert exc.value.fatal


# --- Tokens ---


def test_block_and_record_tokens():
    def build(w):
        with w.block(BlockId.NAMESPACE):
            w.record(7, [1, 2**40], b"ab")

    cursor = BinaryCursor(_stream(build))
    cursor.read_signature()

    assert cursor.read_code() == Abbrev.ENTER_BLOCK
    assert cursor.read_block_id() == BlockId.NAMESPACE
    cursor.enter_block(BlockId.NAMESPACE)
    assert cursor.depth == 1
    assert cursor.block_path == "NAMESPACE"

    assert cursor.read_code() == Abbrev.RECORD
    assert cursor.read_record() == RawRecord(record_id=7, fields=(1, 2**40), blob=b"ab")

    assert cursor.read_code() == Abbrev.END_BLOCK
    assert cursor.read_block_end() == BlockId.NAMESPACE
    assert cursor.depth == 0
    assert cursor.at_end()


def test_record_without_fields_or_blob():
    def build(w):
        w.record(4)

    cursor = BinaryCursor(_stream(build))
    cursor.read_signature()
    cursor.read_code()
    assert cursor.read_record() == RawRecord(record_id=4, fields=())


def test_unknown_abbreviation_code():
    cursor = BinaryCursor(b"DOCS\x07")
    cursor.read_signature()
    with pytest.raises(MalformedStream):
        cursor.read_code()


def test_end_block_without_open_block():
    cursor = BinaryCursor(b"DOCS\x00")
    cursor.read_signature()
    assert cursor.read_code() == Abbrev.END_BLOCK
    with pytest.raises(MalformedStream):
        cursor.read_block_end()


def test_end_block_before_announced_end():
    body = b"\x00" + b"\x00" * 9
    data = b"DOCS" + struct.pack("<BHI", 1, BlockId.RECORD, len(body)) + body
    cursor = BinaryCursor(data)
    cursor.read_signature()
    cursor.read_code()
    cursor.enter_block(cursor.read_block_id())
    assert cursor.read_code() == Abbrev.END_BLOCK
    with pytest.raises(MalformedStream):
        cursor.read_block_end()


def test_record_overrunning_its_block():
    record = b"\x02" + struct.pack("<HHI", 5, 0, 0)
    data = b"DOCS" + struct.pack("<BHI", 1, BlockId.RECORD, 3) + record
    cursor = BinaryCursor(data)
    cursor.read_signature()
    cursor.read_code()
    cursor.enter_block(cursor.read_block_id())
    assert cursor.read_code() == Abbrev.RECORD
    with pytest.raises(MalformedStream, match="overruns"):
        cursor.read_record()


def test_block_longer_than_stream():
    data = b"DOCS" + struct.pack("<BHI", 1, BlockId.RECORD, 100) + b"\x00"
    cursor = BinaryCursor(data)
    cursor.read_signature()
    cursor.read_code()
    with pytest.raises(MalformedStream):
        cursor.read_block_id()


def test_truncated_record():
    def build(w):
        w.record(5, [1, 2, 3], b"hello")

    data = _stream(build)[:-3]
    cursor = BinaryCursor(data)
    cursor.read_signature()
    cursor.read_code()
    with pytest.raises(MalformedStream, match="truncated"):
        cursor.read_record()


def test_header_must_be_entered_or_skipped():
    def build(w):
        with w.block(BlockId.RECORD):
            pass

    cursor = BinaryCursor(_stream(build))
    cursor.read_signature()
    cursor.read_code()
    cursor.read_block_id()
    with pytest.raises(MalformedStream):
        cursor.read_code()


def test_enter_wrong_block():
    def build(w):
        with w.block(BlockId.RECORD):
            pass

    cursor = BinaryCursor(_stream(build))
    cursor.read_signature()
    cursor.read_code()
    cursor.read_block_id()
    with pytest.raises(MalformedStream):
        cursor.enter_block(BlockId.FUNCTION)


# --- Skipping ---


def test_skip_pending_block():
    def build(w):
        with w.block(200):
            w.record(1, [1], b"ignored")
            with w.block(201):
                w.record(2)
        with w.block(BlockId.VERSION):
            pass

    cursor = BinaryCursor(_stream(build))
    cursor.read_signature()
    cursor.read_code()
    assert cursor.read_block_id() == 200
    cursor.skip_block()
    assert cursor.read_code() == Abbrev.ENTER_BLOCK
    assert cursor.read_block_id() == BlockId.VERSION


def test_skip_rest_of_current_block():
    def build(w):
        with w.block(BlockId.RECORD):
            w.record(1)
            w.record(2)

    cursor = BinaryCursor(_stream(build))
    cursor.read_signature()
    cursor.read_code()
    cursor.enter_block(cursor.read_block_id())
    cursor.read_code()
    cursor.read_record()
    cursor.skip_block()
    assert cursor.depth == 0
    assert cursor.at_end()


def test_unwind_to_outer_depth():
    def build(w):
        with w.block(BlockId.NAMESPACE):
            with w.block(BlockId.REFERENCE):
                w.record(1)
                w.record(2)
            w.record(3)

    cursor = BinaryCursor(_stream(build))
    cursor.read_signature()
    cursor.read_code()
    cursor.enter_block(cursor.read_block_id())
    cursor.read_code()
    cursor.enter_block(cursor.read_block_id())
    cursor.read_code()
    cursor.read_record()

    cursor.unwind(1)
    assert cursor.depth == 1
    assert cursor.read_code() == Abbrev.RECORD
    assert cursor.read_record().record_id == 3


def test_writer_refuses_open_blocks():
    w = BinaryWriter()
    w.enter_block(BlockId.RECORD)
    with pytest.raises(RuntimeError):
        w.getvalue()
