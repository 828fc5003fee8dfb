"""Merge engine: fold per-unit partial entities into canonical entities.

Partial entities are grouped by identifier. Entities with the zero
identifier name no symbol and are dropped with an error issue. Each group
is folded into one entity:

- Name and path are first-wins; a disagreement is a warning.
- Declaration locations are unioned on (file, line); the definition
  location is first-wins and a conflicting later one is a warning.
- Reference and child lists are concatenated, then deduplicated by
  identifier where the element has one.
- Documentation comments are concatenated; the first non-empty returns
  paragraph wins.

Groups are processed in first-seen order so first-wins choices are
reproducible. Briefs are computed only once every group is merged.
"""

from __future__ import annotations

import copy
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

import structlog

from symdoc.errors import ConflictingEntityKind
from symdoc.meta.symbols import (
    EnumInfo,
    FunctionInfo,
    Info,
    NamespaceInfo,
    RecordInfo,
    Reference,
    Scope,
    SymbolID,
    TypedefInfo,
    TypeInfo,
)

log = structlog.get_logger()


class Severity(Enum):
    ERROR = "error"  # The identifier is left out of the corpus
    WARNING = "warning"  # Recorded, merge continues


@dataclass
class MergeIssue:
    """One anomaly found while merging an identifier."""

    severity: Severity
    code: str  # Machine-readable issue code
    message: str
    usr: SymbolID | None = None


@dataclass
class MergeResult:
    """Canonical entities plus everything noticed along the way."""

    infos: dict[SymbolID, Info] = field(default_factory=dict)
    issues: list[MergeIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[MergeIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[MergeIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def failed(self) -> set[SymbolID]:
        return {i.usr for i in self.errors if i.usr is not None}

    def issues_for(self, usr: SymbolID) -> list[MergeIssue]:
        return [i for i in self.issues if i.usr == usr]

    def summary(self) -> str:
        return (
            f"{len(self.infos)} symbol(s), {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)"
        )


Note = Callable[[str, str], None]


# --- List helpers ---


def _identity(item) -> SymbolID | None:
    usr = getattr(item, "usr", None)
    return usr if usr else None


def _union(dst: list, src: Iterable) -> None:
    """Append src to dst, skipping identifiers dst already holds.

    Items without an identifier are always appended.
    """
    seen = {_identity(item) for item in dst} - {None}
    for item in src:
        usr = _identity(item)
        if usr is not None:
            if usr in seen:
                continue
            seen.add(usr)
        dst.append(item)


def _merge_scope(dst: Scope, src: Scope) -> None:
    _union(dst.namespaces, src.namespaces)
    _union(dst.records, src.records)
    _union(dst.functions, src.functions)
    _union(dst.enums, src.enums)
    _union(dst.typedefs, src.typedefs)


# --- Per-kind folding ---


def _merge_common(dst: Info, src: Info, note: Note) -> None:
    for attr in ("name", "path"):
        mine, theirs = getattr(dst, attr), getattr(src, attr)
        if not mine:
            setattr(dst, attr, theirs)
        elif theirs and theirs != mine:
            note(f"{attr.upper()}_MISMATCH", f"{attr} {theirs!r} differs from {mine!r}; keeping the first")

    if not dst.namespace:
        dst.namespace = list(src.namespace)

    seen = {loc.key for loc in dst.loc}
    for loc in src.loc:
        if loc.key not in seen:
            seen.add(loc.key)
            dst.loc.append(loc)

    if dst.def_loc is None:
        dst.def_loc = src.def_loc
    elif src.def_loc is not None and src.def_loc.key != dst.def_loc.key:
        note(
            "CONFLICTING_DEFINITION",
            f"definition at {src.def_loc.filename}:{src.def_loc.line_number} dropped; "
            f"keeping {dst.def_loc.filename}:{dst.def_loc.line_number}",
        )

    dst.javadoc.merge(src.javadoc)


def _merge_namespace(dst: NamespaceInfo, src: NamespaceInfo, note: Note) -> None:
    _merge_scope(dst.children, src.children)


def _merge_record(dst: RecordInfo, src: RecordInfo, note: Note) -> None:
    dst.is_type_def = dst.is_type_def or src.is_type_def
    _union(dst.parents, src.parents)
    _union(dst.virtual_parents, src.virtual_parents)
    _union(dst.bases, src.bases)
    _union(dst.members, src.members)
    _merge_scope(dst.children, src.children)
    if dst.template is None:
        dst.template = src.template


def _merge_function(dst: FunctionInfo, src: FunctionInfo, note: Note) -> None:
    dst.is_method = dst.is_method or src.is_method
    if not dst.parent.usr and src.parent.usr:
        dst.parent = src.parent
    if dst.return_type == TypeInfo():
        dst.return_type = src.return_type
    if not dst.params:
        dst.params = list(src.params)
    if dst.template is None:
        dst.template = src.template


def _merge_enum(dst: EnumInfo, src: EnumInfo, note: Note) -> None:
    dst.scoped = dst.scoped or src.scoped
    if dst.base_type is None:
        dst.base_type = src.base_type
    _union(dst.members, src.members)


def _merge_typedef(dst: TypedefInfo, src: TypedefInfo, note: Note) -> None:
    dst.is_using = dst.is_using or src.is_using
    if dst.underlying == TypeInfo():
        dst.underlying = src.underlying


_MERGERS: dict[type, Callable[[Info, Info, Note], None]] = {
    NamespaceInfo: _merge_namespace,
    RecordInfo: _merge_record,
    FunctionInfo: _merge_function,
    EnumInfo: _merge_enum,
    TypedefInfo: _merge_typedef,
}


def merge_infos(values: list[Info], issues: list[MergeIssue] | None = None) -> Info:
    """Fold the partial views of one identifier, in the order given.

    Raises ConflictingEntityKind when the views disagree on the entity kind.
    A single view is returned as is.
    """
    if not values:
        raise ValueError("nothing to merge")
    first = values[0]
    usr = first.usr
    kinds = {type(v) for v in values}
    if len(kinds) > 1:
        names = ", ".join(sorted(k.__name__ for k in kinds))
        raise ConflictingEntityKind(f"symbol {usr} is seen as {names}", usr)
    if len(values) == 1:
        return first

    def note(code: str, message: str) -> None:
        if issues is not None:
            issues.append(MergeIssue(Severity.WARNING, code, message, usr))

    merged = copy.deepcopy(first)
    kind_merge = _MERGERS[type(first)]
    for other in values[1:]:
        other = copy.deepcopy(other)
        _merge_common(merged, other, note)
        kind_merge(merged, other, note)
    return merged


def group_by_usr(
    units: Iterable[Iterable[Info]],
    anonymous: list[Info] | None = None,
) -> dict[SymbolID, list[Info]]:
    """Group partial entities by identifier, keeping first-seen order.

    Entities with the zero identifier name no symbol and are never grouped;
    they are collected into ``anonymous`` when given.
    """
    groups: dict[SymbolID, list[Info]] = {}
    for unit in units:
        for info in unit:
            if not info.usr:
                if anonymous is not None:
                    anonymous.append(info)
                continue
            groups.setdefault(info.usr, []).append(info)
    return groups


# --- Briefs ---


def calculate_briefs(info: Info) -> None:
    """Compute the brief of an entity and of every comment it owns."""
    info.javadoc.calculate_brief()
    if isinstance(info, RecordInfo):
        for member in info.members:
            member.javadoc.calculate_brief()
        for base in info.bases:
            base.javadoc.calculate_brief()
            for member in base.members:
                member.javadoc.calculate_brief()
    if isinstance(info, (NamespaceInfo, RecordInfo)):
        for child in (*info.children.enums, *info.children.typedefs):
            calculate_briefs(child)


# --- Driver ---


def _merge_group(item: tuple[SymbolID, list[Info]]) -> tuple[SymbolID, Info | None, list[MergeIssue]]:
    usr, values = item
    issues: list[MergeIssue] = []
    try:
        merged = merge_infos(values, issues)
    except ConflictingEntityKind as err:
        issues.append(MergeIssue(Severity.ERROR, err.kind, err.message, usr))
        return usr, None, issues
    return usr, merged, issues


def merge_units(units: Iterable[Iterable[Info]], workers: int = 1) -> MergeResult:
    """Merge every unit's partial entities into canonical entities.

    Units are folded in the order given. Groups are independent and may be
    merged on a thread pool; results are collected in first-seen order.
    """
    anonymous: list[Info] = []
    groups = group_by_usr(units, anonymous)
    if workers > 1 and len(groups) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(_merge_group, groups.items()))
    else:
        outcomes = [_merge_group(item) for item in groups.items()]

    result = MergeResult()
    for info in anonymous:
        kind = info.info_type.name.lower()
        result.issues.append(
            MergeIssue(Severity.ERROR, "MISSING_IDENTIFIER", f"{kind} {info.name!r} has no identifier; dropped")
        )
    for usr, merged, issues in outcomes:
        result.issues.extend(issues)
        if merged is not None:
            result.infos[usr] = merged

    for info in result.infos.values():
        calculate_briefs(info)

    log.debug("units_merged", groups=len(groups), errors=len(result.errors))
    return result


def resolve(infos: dict[SymbolID, Info], ref: Reference) -> Info | None:
    """Look up the entity a reference points to; None when it is not known."""
    if not ref.usr:
        return None
    return infos.get(ref.usr)
