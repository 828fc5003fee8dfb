"""Symbol records — the per-unit metadata extracted for each documented symbol.

Each translation unit yields partial views of these entities. The merge
engine folds every partial view sharing an identifier into one canonical
entity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from symdoc.meta.javadoc import Javadoc

USR_HASH_SIZE = 20  # SHA-1 width


@dataclass(frozen=True, order=True)
class SymbolID:
    """Fixed-width opaque hash naming one source-level symbol.

    The all-zero identifier means "no symbol" (e.g. an unresolved base type).
    """

    raw: bytes = bytes(USR_HASH_SIZE)

    def __post_init__(self):
        if len(self.raw) != USR_HASH_SIZE:
            raise ValueError(f"SymbolID must be {USR_HASH_SIZE} bytes, got {len(self.raw)}")

    def __bool__(self) -> bool:
        return any(self.raw)

    def __str__(self) -> str:
        return self.raw.hex()

    @classmethod
    def from_hex(cls, text: str) -> SymbolID:
        return cls(bytes.fromhex(text))


EMPTY_SID = SymbolID()


class InfoType(Enum):
    DEFAULT = 0
    NAMESPACE = 1
    RECORD = 2
    FUNCTION = 3
    ENUM = 4
    TYPEDEF = 5


class RelationKind(Enum):
    """Which slot of its owner a reference fills."""

    DEFAULT = 0
    NAMESPACE = 1  # Enclosing namespace
    PARENT = 2  # Base class, or parent class of a method
    VPARENT = 3  # Virtual base class
    TYPE = 4  # Return, field or member type
    CHILD_NAMESPACE = 5
    CHILD_RECORD = 6
    CHILD_FUNCTION = 7


class AccessSpecifier(Enum):
    PUBLIC = 0
    PROTECTED = 1
    PRIVATE = 2
    NONE = 3


class TagType(Enum):
    STRUCT = 0
    INTERFACE = 1
    UNION = 2
    CLASS = 3
    ENUM = 4


# --- Leaf structures ---


@dataclass(frozen=True)
class Location:
    line_number: int = 0
    filename: str = ""
    is_definition: bool = False

    @property
    def key(self) -> tuple[str, int]:
        return (self.filename, self.line_number)


@dataclass
class Reference:
    """Non-owning pointer to another entity, by identifier.

    Name, path and type are denormalized copies so generators can display the
    reference without resolving it. The referenced entity may not exist in
    the corpus at all.
    """

    usr: SymbolID = EMPTY_SID
    name: str = ""
    ref_type: InfoType = InfoType.DEFAULT
    path: str = ""
    relation: RelationKind = field(default=RelationKind.DEFAULT, compare=False)  # Slot it fills in its owner


@dataclass
class TypeInfo:
    type: Reference = field(default_factory=Reference)


@dataclass
class FieldTypeInfo:
    """A typed, named slot: a function parameter."""

    type: Reference = field(default_factory=Reference)
    name: str = ""
    default_value: str = ""


@dataclass
class MemberTypeInfo:
    """A data member of a record."""

    type: Reference = field(default_factory=Reference)
    name: str = ""
    default_value: str = ""
    access: AccessSpecifier = AccessSpecifier.PUBLIC
    javadoc: Javadoc = field(default_factory=Javadoc)


@dataclass
class TemplateParamInfo:
    contents: str = ""


@dataclass
class TemplateSpecializationInfo:
    specialization_of: SymbolID = EMPTY_SID
    params: list[TemplateParamInfo] = field(default_factory=list)


@dataclass
class TemplateInfo:
    params: list[TemplateParamInfo] = field(default_factory=list)
    specialization: TemplateSpecializationInfo | None = None


@dataclass
class EnumValueInfo:
    name: str = ""
    value: str = ""
    value_expr: str = ""


@dataclass
class BaseRecordInfo:
    """A base class as seen from a derived record."""

    usr: SymbolID = EMPTY_SID
    name: str = ""
    path: str = ""
    tag_type: TagType = TagType.STRUCT
    is_virtual: bool = False
    access: AccessSpecifier = AccessSpecifier.PUBLIC
    is_parent: bool = False  # Direct parent, not only a transitive base
    members: list[MemberTypeInfo] = field(default_factory=list)
    javadoc: Javadoc = field(default_factory=Javadoc)


@dataclass
class Scope:
    """Children of a namespace or record."""

    namespaces: list[Reference] = field(default_factory=list)
    records: list[Reference] = field(default_factory=list)
    functions: list[Reference] = field(default_factory=list)
    enums: list[EnumInfo] = field(default_factory=list)
    typedefs: list[TypedefInfo] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.namespaces or self.records or self.functions or self.enums or self.typedefs)


# --- Entities ---


@dataclass
class Info:
    """Fields common to every documented symbol."""

    usr: SymbolID = EMPTY_SID
    name: str = ""
    path: str = ""
    namespace: list[Reference] = field(default_factory=list)
    def_loc: Location | None = None
    loc: list[Location] = field(default_factory=list)
    javadoc: Javadoc = field(default_factory=Javadoc)

    info_type: ClassVar[InfoType] = InfoType.DEFAULT

    @property
    def qualified_name(self) -> str:
        return f"{self.path}::{self.name}" if self.path else self.name

    def as_reference(self, relation: RelationKind = RelationKind.DEFAULT) -> Reference:
        return Reference(
            usr=self.usr,
            name=self.name,
            ref_type=self.info_type,
            path=self.path,
            relation=relation,
        )


@dataclass
class NamespaceInfo(Info):
    children: Scope = field(default_factory=Scope)

    info_type: ClassVar[InfoType] = InfoType.NAMESPACE


@dataclass
class RecordInfo(Info):
    tag_type: TagType = TagType.STRUCT
    is_type_def: bool = False
    parents: list[Reference] = field(default_factory=list)
    virtual_parents: list[Reference] = field(default_factory=list)
    bases: list[BaseRecordInfo] = field(default_factory=list)
    members: list[MemberTypeInfo] = field(default_factory=list)
    children: Scope = field(default_factory=Scope)
    template: TemplateInfo | None = None

    info_type: ClassVar[InfoType] = InfoType.RECORD


@dataclass
class FunctionInfo(Info):
    is_method: bool = False
    parent: Reference = field(default_factory=Reference)
    return_type: TypeInfo = field(default_factory=TypeInfo)
    params: list[FieldTypeInfo] = field(default_factory=list)
    access: AccessSpecifier = AccessSpecifier.PUBLIC
    template: TemplateInfo | None = None

    info_type: ClassVar[InfoType] = InfoType.FUNCTION


@dataclass
class EnumInfo(Info):
    scoped: bool = False
    base_type: TypeInfo | None = None
    members: list[EnumValueInfo] = field(default_factory=list)

    info_type: ClassVar[InfoType] = InfoType.ENUM


@dataclass
class TypedefInfo(Info):
    is_using: bool = False  # `using X = Y` rather than `typedef Y X`
    underlying: TypeInfo = field(default_factory=TypeInfo)

    info_type: ClassVar[InfoType] = InfoType.TYPEDEF
