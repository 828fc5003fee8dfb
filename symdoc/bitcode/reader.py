"""Top-level stream reader — one container in, one list of partial entities out.

The container starts with the signature, then an optional BLOCKINFO block,
the VERSION block and any number of entity blocks. Unknown top-level blocks
are skipped so newer producers can add block kinds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from symdoc.bitcode.cursor import BinaryCursor, RawRecord
from symdoc.bitcode.dispatch import BlockReader
from symdoc.bitcode.fields import decode_int, decode_string
from symdoc.bitcode.ids import (
    CHILD_ONLY_BLOCKS,
    ENTITY_BLOCKS,
    VERSION_NUMBER,
    Abbrev,
    BlockId,
    RecordId,
    block_name,
)
from symdoc.errors import InvalidTopLevelBlock, MalformedStream, VersionMismatch
from symdoc.meta.symbols import Info

log = structlog.get_logger()


@dataclass
class DecodedUnit:
    """Everything one container holds."""

    entities: list[Info] = field(default_factory=list)
    version: int | None = None
    block_names: dict[int, str] = field(default_factory=dict)
    skipped_blocks: list[int] = field(default_factory=list)


class StreamReader:
    """Reads the top-level blocks of one container."""

    def __init__(self, data: bytes, expected_version: int = VERSION_NUMBER):
        self.cursor = BinaryCursor(data)
        self.blocks = BlockReader(self.cursor)
        self.expected_version = expected_version

    def read(self) -> DecodedUnit:
        cursor = self.cursor
        unit = DecodedUnit()
        cursor.read_signature()

        while not cursor.at_end():
            code = cursor.read_code()
            if code != Abbrev.ENTER_BLOCK:
                raise MalformedStream(f"expected a block at top level, got {code.name}")
            block_id = cursor.read_block_id()

            if block_id in ENTITY_BLOCKS:
                unit.entities.append(self.blocks.read_entity(block_id))
            elif block_id == BlockId.VERSION:
                unit.version = self._read_version()
            elif block_id == BlockId.BLOCKINFO:
                unit.block_names.update(self._read_block_info())
            elif block_id in CHILD_ONLY_BLOCKS:
                raise InvalidTopLevelBlock(f"{block_name(block_id)} is not legal at top level")
            else:
                log.debug("top_level_block_skipped", block_id=block_id)
                unit.skipped_blocks.append(block_id)
                cursor.skip_block()

        return unit

    def _read_version(self) -> int:
        found: list[int] = []

        def on_record(record: RawRecord) -> None:
            if record.record_id != RecordId.VERSION:
                raise MalformedStream(f"invalid record {record.record_id} for the version block")
            version = decode_int(record)
            if version != self.expected_version:
                raise VersionMismatch(
                    f"container has schema version {version}, expected {self.expected_version}"
                )
            found.append(version)

        def on_block(block_id: int) -> None:
            raise MalformedStream(f"the version block cannot contain a {block_name(block_id)} block")

        self.blocks.walk(BlockId.VERSION, on_record, on_block)
        if not found:
            raise MalformedStream("the version block has no version record")
        return found[-1]

    def _read_block_info(self) -> dict[int, str]:
        names: dict[int, str] = {}

        def on_record(record: RawRecord) -> None:
            # Other metadata records are reserved
            if record.record_id == RecordId.BLOCKNAME and record.fields:
                names[record.fields[0]] = decode_string(record)

        self.blocks.walk(BlockId.BLOCKINFO, on_record, lambda _id: self.cursor.skip_block())
        return names


def read_container(data: bytes, expected_version: int = VERSION_NUMBER) -> list[Info]:
    """Decode one container into its partial entities.

    Raises a DecodeError subclass if the container is rejected; no partial
    result is returned in that case.
    """
    return StreamReader(data, expected_version).read().entities


def read_container_file(path: str | Path, expected_version: int = VERSION_NUMBER) -> DecodedUnit:
    return StreamReader(Path(path).read_bytes(), expected_version).read()
