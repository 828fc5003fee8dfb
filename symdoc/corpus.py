"""Corpus — the canonical symbol set built from many containers.

Each container is decoded independently into partial entities. Failing
units are reported and skipped (or abort the build when failures are not
ignored). The surviving units are merged by identifier into one entity per
symbol, which the corpus exposes by identifier and as a sorted name index.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import cmp_to_key
from pathlib import Path
from typing import Iterable, Iterator

import structlog

from symdoc.bitcode.reader import StreamReader
from symdoc.config import CorpusConfig
from symdoc.errors import DecodeError
from symdoc.merge import MergeIssue, MergeResult, Severity, merge_units, resolve
from symdoc.meta.symbols import Info, Reference, SymbolID

log = structlog.get_logger()


@dataclass
class UnitFailure:
    """A container that could not be decoded."""

    unit: str
    error: DecodeError

    @property
    def kind(self) -> str:
        return self.error.kind

    @property
    def message(self) -> str:
        return str(self.error)


# --- Symbol index ---


def compare_names(a: str, b: str) -> int:
    """Case-insensitive order; on a case-only tie lower case sorts first."""
    for x, y in zip(a, b):
        xl, yl = x.lower(), y.lower()
        if xl != yl:
            return -1 if xl < yl else 1
    if len(a) == len(b):
        if a == b:
            return 0
        return -1 if a > b else 1
    return -1 if len(a) < len(b) else 1


@dataclass
class IndexEntry:
    """A node in the name-sorted symbol tree."""

    ref: Reference = field(default_factory=Reference)
    children: list[IndexEntry] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.ref.name

    def sort(self) -> None:
        self.children.sort(key=cmp_to_key(lambda a, b: compare_names(a.name, b.name)))
        for child in self.children:
            child.sort()

    def walk(self, depth: int = 0) -> Iterator[tuple[int, IndexEntry]]:
        for child in self.children:
            yield depth, child
            yield from child.walk(depth + 1)


# --- Corpus ---


class Corpus:
    """Canonical entities keyed by identifier, plus build diagnostics."""

    def __init__(
        self,
        infos: dict[SymbolID, Info] | None = None,
        failures: list[UnitFailure] | None = None,
        issues: list[MergeIssue] | None = None,
    ):
        self.infos: dict[SymbolID, Info] = infos or {}
        self.failures: list[UnitFailure] = failures or []
        self.issues: list[MergeIssue] = issues or []

    def __len__(self) -> int:
        return len(self.infos)

    def __iter__(self) -> Iterator[Info]:
        return iter(self.infos.values())

    def __contains__(self, usr: SymbolID) -> bool:
        return usr in self.infos

    def get(self, usr: SymbolID) -> Info | None:
        return self.infos.get(usr)

    def resolve(self, ref: Reference) -> Info | None:
        """Follow a reference. Dangling references resolve to None."""
        return resolve(self.infos, ref)

    @property
    def failed_symbols(self) -> set[SymbolID]:
        return MergeResult(issues=self.issues).failed

    def issues_for(self, usr: SymbolID) -> list[MergeIssue]:
        return MergeResult(issues=self.issues).issues_for(usr)

    def index(self) -> IndexEntry:
        """Build the name-sorted tree of every entity.

        An entity hangs under its innermost enclosing scope when that scope is
        in the corpus, otherwise under the root.
        """
        root = IndexEntry()
        entries = {usr: IndexEntry(ref=info.as_reference()) for usr, info in self.infos.items()}
        for usr, info in self.infos.items():
            parent = root
            if info.namespace and info.namespace[0].usr in entries:
                parent = entries[info.namespace[0].usr]
            parent.children.append(entries[usr])
        root.sort()
        return root

    # --- Construction ---

    @classmethod
    def build(cls, paths: Iterable[str | Path], config: CorpusConfig | None = None) -> Corpus:
        """Decode and merge the containers at the given paths."""
        paths = [Path(p) for p in paths]
        return cls.from_buffers(((str(p), p.read_bytes()) for p in paths), config)

    @classmethod
    def from_buffers(
        cls,
        units: Iterable[tuple[str, bytes]],
        config: CorpusConfig | None = None,
    ) -> Corpus:
        """Decode and merge named in-memory containers.

        Units are decoded concurrently but merged in the order given.
        """
        config = config or CorpusConfig()
        units = list(units)

        def decode(unit: tuple[str, bytes]) -> list[Info] | UnitFailure:
            name, data = unit
            try:
                entities = StreamReader(data, config.expected_version).read().entities
            except DecodeError as err:
                return UnitFailure(name, err)
            log.debug("unit_decoded", unit=name, entities=len(entities))
            return entities

        if config.workers > 1 and len(units) > 1:
            with ThreadPoolExecutor(max_workers=config.workers) as pool:
                outcomes = list(pool.map(decode, units))
        else:
            outcomes = [decode(u) for u in units]

        decoded: list[list[Info]] = []
        failures: list[UnitFailure] = []
        for outcome in outcomes:
            if isinstance(outcome, UnitFailure):
                log.warning("unit_failed", unit=outcome.unit, kind=outcome.kind, error=outcome.message)
                if not config.ignore_failures:
                    raise outcome.error
                failures.append(outcome)
            else:
                decoded.append(outcome)

        result = merge_units(decoded, workers=config.workers)
        for issue in result.issues:
            event = "merge_failed" if issue.severity == Severity.ERROR else "merge_anomaly"
            log.warning(event, usr=str(issue.usr), code=issue.code, detail=issue.message)

        log.info(
            "corpus_built",
            units=len(units),
            entities=len(result.infos),
            failures=len(failures),
            errors=len(result.errors),
            warnings=len(result.warnings),
        )
        return cls(result.infos, failures, result.issues)
