"""Container writer — the producer side of the format.

Front ends emit one container per translation unit with ``write_container``.
Every reference block carries its own relation record, so the reader never
depends on state left behind by a previous record.
"""

from __future__ import annotations

import struct
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from symdoc.bitcode.ids import SIGNATURE, VERSION_NUMBER, Abbrev, BlockId, RecordId
from symdoc.meta.javadoc import Admonition, Javadoc, NodeKind, Param, StyledText, Text, TParam
from symdoc.meta.symbols import (
    USR_HASH_SIZE,
    BaseRecordInfo,
    EnumInfo,
    EnumValueInfo,
    FieldTypeInfo,
    FunctionInfo,
    Info,
    Location,
    MemberTypeInfo,
    NamespaceInfo,
    RecordInfo,
    Reference,
    RelationKind,
    Scope,
    SymbolID,
    TemplateInfo,
    TemplateParamInfo,
    TypedefInfo,
    TypeInfo,
)

_BLOCK_HEADER = struct.Struct("<BHI")


class BinaryWriter:
    """Low-level emitter mirroring BinaryCursor."""

    def __init__(self):
        self.buf = bytearray()
        self._open: list[int] = []  # Offsets of pending length fields

    def signature(self) -> None:
        self.buf += SIGNATURE

    def enter_block(self, block_id: int) -> None:
        self.buf += _BLOCK_HEADER.pack(Abbrev.ENTER_BLOCK, block_id, 0)
        self._open.append(len(self.buf) - 4)

    def end_block(self) -> None:
        self.buf.append(Abbrev.END_BLOCK)
        start = self._open.pop()
        struct.pack_into("<I", self.buf, start, len(self.buf) - (start + 4))

    @contextmanager
    def block(self, block_id: int) -> Iterator[None]:
        self.enter_block(block_id)
        yield
        self.end_block()

    def record(self, record_id: int, fields: Iterable[int] = (), blob: bytes = b"") -> None:
        values = list(fields)
        self.buf.append(Abbrev.RECORD)
        self.buf += struct.pack(f"<HH{len(values)}Q", record_id, len(values), *values)
        self.buf += struct.pack("<I", len(blob))
        self.buf += blob

    def getvalue(self) -> bytes:
        if self._open:
            raise RuntimeError(f"{len(self._open)} block(s) still open")
        return bytes(self.buf)


class ContainerWriter:
    """Serializes partial entities into one container."""

    def __init__(self, version: int = VERSION_NUMBER, block_info: bool = True):
        self.version = version
        self.block_info = block_info
        self.out = BinaryWriter()

    def write(self, entities: Iterable[Info]) -> bytes:
        out = self.out
        out.signature()
        if self.block_info:
            with out.block(BlockId.BLOCKINFO):
                for block_id in BlockId:
                    out.record(RecordId.BLOCKNAME, [block_id], block_id.name.encode())
        with out.block(BlockId.VERSION):
            out.record(RecordId.VERSION, [self.version])
        for info in entities:
            self.emit_entity(info)
        return out.getvalue()

    # --- Primitive records ---

    def _usr(self, record_id: int, usr: SymbolID) -> None:
        self.out.record(record_id, [USR_HASH_SIZE, *usr.raw])

    def _str(self, record_id: int, value: str) -> None:
        if value:
            self.out.record(record_id, blob=value.encode("utf-8"))

    def _int(self, record_id: int, value: int) -> None:
        self.out.record(record_id, [int(value)])

    def _loc(self, record_id: int, loc: Location) -> None:
        self.out.record(
            record_id, [loc.line_number, int(loc.is_definition)], loc.filename.encode("utf-8")
        )

    def _locations(self, info: Info, def_id: int, loc_id: int) -> None:
        if info.def_loc is not None:
            self._loc(def_id, info.def_loc)
        for loc in info.loc:
            self._loc(loc_id, loc)

    # --- Shared blocks ---

    def emit_reference(self, ref: Reference, relation: RelationKind) -> None:
        with self.out.block(BlockId.REFERENCE):
            self._usr(RecordId.REFERENCE_USR, ref.usr)
            self._str(RecordId.REFERENCE_NAME, ref.name)
            self._int(RecordId.REFERENCE_TYPE, ref.ref_type.value)
            self._str(RecordId.REFERENCE_PATH, ref.path)
            self._int(RecordId.REFERENCE_FIELD, relation.value)

    def _references(self, refs: list[Reference], relation: RelationKind) -> None:
        for ref in refs:
            self.emit_reference(ref, relation)

    def _type_ref(self, ref: Reference) -> None:
        if ref != Reference():
            self.emit_reference(ref, RelationKind.TYPE)

    def emit_type(self, info: TypeInfo) -> None:
        with self.out.block(BlockId.TYPE):
            self._type_ref(info.type)

    def emit_field_type(self, info: FieldTypeInfo) -> None:
        with self.out.block(BlockId.FIELD_TYPE):
            self._str(RecordId.FIELD_TYPE_NAME, info.name)
            self._str(RecordId.FIELD_DEFAULT_VALUE, info.default_value)
            self._type_ref(info.type)

    def emit_member_type(self, info: MemberTypeInfo) -> None:
        with self.out.block(BlockId.MEMBER_TYPE):
            self._str(RecordId.MEMBER_TYPE_NAME, info.name)
            self._int(RecordId.MEMBER_TYPE_ACCESS, info.access.value)
            self._str(RecordId.MEMBER_TYPE_DEFAULT_VALUE, info.default_value)
            self._type_ref(info.type)
            self.emit_javadoc(info.javadoc)

    def emit_template(self, info: TemplateInfo) -> None:
        with self.out.block(BlockId.TEMPLATE):
            self._template_params(info.params)
            if info.specialization is not None:
                with self.out.block(BlockId.TEMPLATE_SPECIALIZATION):
                    self._usr(RecordId.TEMPLATE_SPECIALIZATION_OF, info.specialization.specialization_of)
                    self._template_params(info.specialization.params)

    def _template_params(self, params: list[TemplateParamInfo]) -> None:
        for param in params:
            with self.out.block(BlockId.TEMPLATE_PARAM):
                self._str(RecordId.TEMPLATE_PARAM_CONTENTS, param.contents)

    def _scope(self, scope: Scope) -> None:
        self._references(scope.namespaces, RelationKind.CHILD_NAMESPACE)
        self._references(scope.records, RelationKind.CHILD_RECORD)
        self._references(scope.functions, RelationKind.CHILD_FUNCTION)
        for enum in scope.enums:
            self.emit_enum(enum)
        for typedef in scope.typedefs:
            self.emit_typedef(typedef)

    # --- Documentation ---

    def emit_javadoc(self, doc: Javadoc) -> None:
        if not (doc.blocks or doc.params or doc.tparams or doc.returns is not None):
            return
        with self.out.block(BlockId.JAVADOC):
            for kind, nodes in (
                (NodeKind.BLOCK, doc.blocks),
                (NodeKind.PARAM, doc.params),
                (NodeKind.TPARAM, doc.tparams),
            ):
                if nodes:
                    self._doc_list(kind, nodes)
            if doc.returns is not None:
                self._doc_node(doc.returns)

    def _doc_list(self, kind: NodeKind, nodes: list) -> None:
        with self.out.block(BlockId.JAVADOC_LIST):
            self._int(RecordId.JAVADOC_LIST_KIND, kind.value)
            for node in nodes:
                self._doc_node(node)

    def _doc_node(self, node) -> None:
        with self.out.block(BlockId.JAVADOC_NODE):
            self._int(RecordId.JAVADOC_NODE_KIND, node.kind.value)
            if isinstance(node, (Text, StyledText)):
                self._str(RecordId.JAVADOC_NODE_STRING, node.string)
            if isinstance(node, StyledText):
                self._int(RecordId.JAVADOC_NODE_STYLE, node.style.value)
            if isinstance(node, (Param, TParam)):
                self._str(RecordId.JAVADOC_NODE_STRING, node.name)
            if isinstance(node, Admonition):
                self._int(RecordId.JAVADOC_NODE_ADMONISH, node.style.value)
            children = getattr(node, "children", None)
            if children:
                self._doc_list(NodeKind.TEXT, children)

    # --- Entities ---

    def emit_entity(self, info: Info) -> None:
        emit = {
            NamespaceInfo: self.emit_namespace,
            RecordInfo: self.emit_record,
            FunctionInfo: self.emit_function,
            EnumInfo: self.emit_enum,
            TypedefInfo: self.emit_typedef,
        }.get(type(info))
        if emit is None:
            raise TypeError(f"cannot serialize {type(info).__name__}")
        emit(info)

    def emit_namespace(self, info: NamespaceInfo) -> None:
        with self.out.block(BlockId.NAMESPACE):
            self._usr(RecordId.NAMESPACE_USR, info.usr)
            self._str(RecordId.NAMESPACE_NAME, info.name)
            self._str(RecordId.NAMESPACE_PATH, info.path)
            self._references(info.namespace, RelationKind.NAMESPACE)
            self._scope(info.children)
            self.emit_javadoc(info.javadoc)

    def emit_record(self, info: RecordInfo) -> None:
        with self.out.block(BlockId.RECORD):
            self._usr(RecordId.RECORD_USR, info.usr)
            self._str(RecordId.RECORD_NAME, info.name)
            self._str(RecordId.RECORD_PATH, info.path)
            self._locations(info, RecordId.RECORD_DEFLOCATION, RecordId.RECORD_LOCATION)
            self._int(RecordId.RECORD_TAG_TYPE, info.tag_type.value)
            self._int(RecordId.RECORD_IS_TYPE_DEF, info.is_type_def)
            self._references(info.namespace, RelationKind.NAMESPACE)
            self._references(info.parents, RelationKind.PARENT)
            self._references(info.virtual_parents, RelationKind.VPARENT)
            for base in info.bases:
                self.emit_base_record(base)
            for member in info.members:
                self.emit_member_type(member)
            self._scope(info.children)
            if info.template is not None:
                self.emit_template(info.template)
            self.emit_javadoc(info.javadoc)

    def emit_base_record(self, info: BaseRecordInfo) -> None:
        with self.out.block(BlockId.BASE_RECORD):
            self._usr(RecordId.BASE_RECORD_USR, info.usr)
            self._str(RecordId.BASE_RECORD_NAME, info.name)
            self._str(RecordId.BASE_RECORD_PATH, info.path)
            self._int(RecordId.BASE_RECORD_TAG_TYPE, info.tag_type.value)
            self._int(RecordId.BASE_RECORD_IS_VIRTUAL, info.is_virtual)
            self._int(RecordId.BASE_RECORD_ACCESS, info.access.value)
            self._int(RecordId.BASE_RECORD_IS_PARENT, info.is_parent)
            for member in info.members:
                self.emit_member_type(member)
            self.emit_javadoc(info.javadoc)

    def emit_function(self, info: FunctionInfo) -> None:
        with self.out.block(BlockId.FUNCTION):
            self._usr(RecordId.FUNCTION_USR, info.usr)
            self._str(RecordId.FUNCTION_NAME, info.name)
            self._str(RecordId.FUNCTION_PATH, info.path)
            self._locations(info, RecordId.FUNCTION_DEFLOCATION, RecordId.FUNCTION_LOCATION)
            self._int(RecordId.FUNCTION_ACCESS, info.access.value)
            self._int(RecordId.FUNCTION_IS_METHOD, info.is_method)
            self._references(info.namespace, RelationKind.NAMESPACE)
            if info.parent != Reference():
                self.emit_reference(info.parent, RelationKind.PARENT)
            if info.return_type != TypeInfo():
                self.emit_type(info.return_type)
            for param in info.params:
                self.emit_field_type(param)
            if info.template is not None:
                self.emit_template(info.template)
            self.emit_javadoc(info.javadoc)

    def emit_enum(self, info: EnumInfo) -> None:
        with self.out.block(BlockId.ENUM):
            self._usr(RecordId.ENUM_USR, info.usr)
            self._str(RecordId.ENUM_NAME, info.name)
            self._str(RecordId.ENUM_PATH, info.path)
            self._locations(info, RecordId.ENUM_DEFLOCATION, RecordId.ENUM_LOCATION)
            self._int(RecordId.ENUM_SCOPED, info.scoped)
            self._references(info.namespace, RelationKind.NAMESPACE)
            if info.base_type is not None:
                self.emit_type(info.base_type)
            for value in info.members:
                self._enum_value(value)
            self.emit_javadoc(info.javadoc)

    def _enum_value(self, value: EnumValueInfo) -> None:
        with self.out.block(BlockId.ENUM_VALUE):
            self._str(RecordId.ENUM_VALUE_NAME, value.name)
            self._str(RecordId.ENUM_VALUE_VALUE, value.value)
            self._str(RecordId.ENUM_VALUE_EXPR, value.value_expr)

    def emit_typedef(self, info: TypedefInfo) -> None:
        with self.out.block(BlockId.TYPEDEF):
            self._usr(RecordId.TYPEDEF_USR, info.usr)
            self._str(RecordId.TYPEDEF_NAME, info.name)
            self._str(RecordId.TYPEDEF_PATH, info.path)
            self._locations(info, RecordId.TYPEDEF_DEFLOCATION, RecordId.TYPEDEF_LOCATION)
            self._int(RecordId.TYPEDEF_IS_USING, info.is_using)
            self._references(info.namespace, RelationKind.NAMESPACE)
            if info.underlying != TypeInfo():
                self.emit_type(info.underlying)
            self.emit_javadoc(info.javadoc)


def write_container(entities: Iterable[Info], version: int = VERSION_NUMBER) -> bytes:
    """Serialize one unit's partial entities."""
    return ContainerWriter(version=version).write(entities)


def write_container_file(
    path: str | Path, entities: Iterable[Info], version: int = VERSION_NUMBER
) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(write_container(entities, version))
    return path
