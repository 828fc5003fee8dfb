"""Block dispatcher — recursive-descent decoding of nested blocks.

For an owner object and a nested block id the dispatcher decodes the block
into the matching child type, then places it into the owner with
``attach()``. The set of legal (owner, child, relation) combinations is a
closed table: anything else is an ``InvalidAttachment``.

Records of one block are decoded strictly in stream order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

from symdoc.bitcode.cursor import BinaryCursor, RawRecord
from symdoc.bitcode.fields import (
    decode_bool,
    decode_enum,
    decode_location,
    decode_string,
    decode_symbol_id,
)
from symdoc.bitcode.ids import Abbrev, BlockId, RecordId, block_name
from symdoc.errors import DecodeError, InvalidAttachment, MalformedStream
from symdoc.meta.javadoc import (
    BLOCK_TYPES,
    CONTENT_TYPES,
    NODE_TYPES,
    TEXT_TYPES,
    Admonish,
    Admonition,
    Javadoc,
    NodeKind,
    Param,
    Returns,
    Style,
    StyledText,
    Text,
    TParam,
)
from symdoc.meta.symbols import (
    AccessSpecifier,
    BaseRecordInfo,
    EnumInfo,
    EnumValueInfo,
    FieldTypeInfo,
    FunctionInfo,
    InfoType,
    MemberTypeInfo,
    NamespaceInfo,
    RecordInfo,
    Reference,
    RelationKind,
    TagType,
    TemplateInfo,
    TemplateParamInfo,
    TemplateSpecializationInfo,
    TypedefInfo,
    TypeInfo,
)

log = structlog.get_logger()


# --- Record tables ---


def _set(attr: str, decode: Callable[[RawRecord], Any]):
    def apply(obj, record: RawRecord) -> None:
        setattr(obj, attr, decode(record))

    return apply


def _append(attr: str, decode: Callable[[RawRecord], Any]):
    def apply(obj, record: RawRecord) -> None:
        getattr(obj, attr).append(decode(record))

    return apply


def _enum(enum_type):
    return lambda record: decode_enum(record, enum_type)


_RECORD_FIELDS: dict[type, dict[int, Callable[[Any, RawRecord], None]]] = {
    NamespaceInfo: {
        RecordId.NAMESPACE_USR: _set("usr", decode_symbol_id),
        RecordId.NAMESPACE_NAME: _set("name", decode_string),
        RecordId.NAMESPACE_PATH: _set("path", decode_string),
    },
    RecordInfo: {
        RecordId.RECORD_USR: _set("usr", decode_symbol_id),
        RecordId.RECORD_NAME: _set("name", decode_string),
        RecordId.RECORD_PATH: _set("path", decode_string),
        RecordId.RECORD_DEFLOCATION: _set("def_loc", decode_location),
        RecordId.RECORD_LOCATION: _append("loc", decode_location),
        RecordId.RECORD_TAG_TYPE: _set("tag_type", _enum(TagType)),
        RecordId.RECORD_IS_TYPE_DEF: _set("is_type_def", decode_bool),
    },
    BaseRecordInfo: {
        RecordId.BASE_RECORD_USR: _set("usr", decode_symbol_id),
        RecordId.BASE_RECORD_NAME: _set("name", decode_string),
        RecordId.BASE_RECORD_PATH: _set("path", decode_string),
        RecordId.BASE_RECORD_TAG_TYPE: _set("tag_type", _enum(TagType)),
        RecordId.BASE_RECORD_IS_VIRTUAL: _set("is_virtual", decode_bool),
        RecordId.BASE_RECORD_ACCESS: _set("access", _enum(AccessSpecifier)),
        RecordId.BASE_RECORD_IS_PARENT: _set("is_parent", decode_bool),
    },
    FunctionInfo: {
        RecordId.FUNCTION_USR: _set("usr", decode_symbol_id),
        RecordId.FUNCTION_NAME: _set("name", decode_string),
        RecordId.FUNCTION_PATH: _set("path", decode_string),
        RecordId.FUNCTION_DEFLOCATION: _set("def_loc", decode_location),
        RecordId.FUNCTION_LOCATION: _append("loc", decode_location),
        RecordId.FUNCTION_ACCESS: _set("access", _enum(AccessSpecifier)),
        RecordId.FUNCTION_IS_METHOD: _set("is_method", decode_bool),
    },
    EnumInfo: {
        RecordId.ENUM_USR: _set("usr", decode_symbol_id),
        RecordId.ENUM_NAME: _set("name", decode_string),
        RecordId.ENUM_PATH: _set("path", decode_string),
        RecordId.ENUM_DEFLOCATION: _set("def_loc", decode_location),
        RecordId.ENUM_LOCATION: _append("loc", decode_location),
        RecordId.ENUM_SCOPED: _set("scoped", decode_bool),
    },
    EnumValueInfo: {
        RecordId.ENUM_VALUE_NAME: _set("name", decode_string),
        RecordId.ENUM_VALUE_VALUE: _set("value", decode_string),
        RecordId.ENUM_VALUE_EXPR: _set("value_expr", decode_string),
    },
    TypedefInfo: {
        RecordId.TYPEDEF_USR: _set("usr", decode_symbol_id),
        RecordId.TYPEDEF_NAME: _set("name", decode_string),
        RecordId.TYPEDEF_PATH: _set("path", decode_string),
        RecordId.TYPEDEF_DEFLOCATION: _set("def_loc", decode_location),
        RecordId.TYPEDEF_LOCATION: _append("loc", decode_location),
        RecordId.TYPEDEF_IS_USING: _set("is_using", decode_bool),
    },
    TypeInfo: {},
    FieldTypeInfo: {
        RecordId.FIELD_TYPE_NAME: _set("name", decode_string),
        RecordId.FIELD_DEFAULT_VALUE: _set("default_value", decode_string),
    },
    MemberTypeInfo: {
        RecordId.MEMBER_TYPE_NAME: _set("name", decode_string),
        RecordId.MEMBER_TYPE_ACCESS: _set("access", _enum(AccessSpecifier)),
        RecordId.MEMBER_TYPE_DEFAULT_VALUE: _set("default_value", decode_string),
    },
    Reference: {
        RecordId.REFERENCE_USR: _set("usr", decode_symbol_id),
        RecordId.REFERENCE_NAME: _set("name", decode_string),
        RecordId.REFERENCE_TYPE: _set("ref_type", _enum(InfoType)),
        RecordId.REFERENCE_PATH: _set("path", decode_string),
        RecordId.REFERENCE_FIELD: _set("relation", _enum(RelationKind)),
    },
    TemplateInfo: {},
    TemplateSpecializationInfo: {
        RecordId.TEMPLATE_SPECIALIZATION_OF: _set("specialization_of", decode_symbol_id),
    },
    TemplateParamInfo: {
        RecordId.TEMPLATE_PARAM_CONTENTS: _set("contents", decode_string),
    },
}


def parse_record(obj, record: RawRecord) -> None:
    """Apply one record to the object being decoded."""
    handler = _RECORD_FIELDS.get(type(obj), {}).get(record.record_id)
    if handler is None:
        raise MalformedStream(f"invalid record {record.record_id} for {type(obj).__name__}")
    handler(obj, record)


# --- Attach table ---

ENTITY_BLOCK_TYPES: dict[int, type] = {
    BlockId.NAMESPACE: NamespaceInfo,
    BlockId.RECORD: RecordInfo,
    BlockId.FUNCTION: FunctionInfo,
    BlockId.ENUM: EnumInfo,
    BlockId.TYPEDEF: TypedefInfo,
}

_CHILD_BLOCK_TYPES: dict[int, type] = {
    BlockId.TYPE: TypeInfo,
    BlockId.FIELD_TYPE: FieldTypeInfo,
    BlockId.MEMBER_TYPE: MemberTypeInfo,
    BlockId.REFERENCE: Reference,
    BlockId.BASE_RECORD: BaseRecordInfo,
    BlockId.ENUM: EnumInfo,
    BlockId.ENUM_VALUE: EnumValueInfo,
    BlockId.TEMPLATE: TemplateInfo,
    BlockId.TEMPLATE_SPECIALIZATION: TemplateSpecializationInfo,
    BlockId.TEMPLATE_PARAM: TemplateParamInfo,
    BlockId.TYPEDEF: TypedefInfo,
}


def _setter(attr: str):
    return lambda owner, child: setattr(owner, attr, child)


def _appender(*path: str):
    def apply(owner, child) -> None:
        target = owner
        for attr in path:
            target = getattr(target, attr)
        target.append(child)

    return apply


def _assign_type(owner, child: Reference) -> None:
    owner.type = child


def _extend_javadoc(owner, child: Javadoc) -> None:
    owner.javadoc.extend(child)


_NS = RelationKind.NAMESPACE

_ATTACH: dict[tuple[type, type, RelationKind | None], Callable[[Any, Any], None]] = {
    # Type slots
    (RecordInfo, MemberTypeInfo, None): _appender("members"),
    (BaseRecordInfo, MemberTypeInfo, None): _appender("members"),
    (FunctionInfo, TypeInfo, None): _setter("return_type"),
    (FunctionInfo, FieldTypeInfo, None): _appender("params"),
    (EnumInfo, TypeInfo, None): _setter("base_type"),
    (TypedefInfo, TypeInfo, None): _setter("underlying"),
    # Reference slots
    (TypeInfo, Reference, RelationKind.TYPE): _assign_type,
    (FieldTypeInfo, Reference, RelationKind.TYPE): _assign_type,
    (MemberTypeInfo, Reference, RelationKind.TYPE): _assign_type,
    (EnumInfo, Reference, _NS): _appender("namespace"),
    (TypedefInfo, Reference, _NS): _appender("namespace"),
    (NamespaceInfo, Reference, _NS): _appender("namespace"),
    (NamespaceInfo, Reference, RelationKind.CHILD_NAMESPACE): _appender("children", "namespaces"),
    (NamespaceInfo, Reference, RelationKind.CHILD_RECORD): _appender("children", "records"),
    (NamespaceInfo, Reference, RelationKind.CHILD_FUNCTION): _appender("children", "functions"),
    (FunctionInfo, Reference, _NS): _appender("namespace"),
    (FunctionInfo, Reference, RelationKind.PARENT): _setter("parent"),
    (RecordInfo, Reference, _NS): _appender("namespace"),
    (RecordInfo, Reference, RelationKind.PARENT): _appender("parents"),
    (RecordInfo, Reference, RelationKind.VPARENT): _appender("virtual_parents"),
    (RecordInfo, Reference, RelationKind.CHILD_RECORD): _appender("children", "records"),
    (RecordInfo, Reference, RelationKind.CHILD_FUNCTION): _appender("children", "functions"),
    # Owned children
    (NamespaceInfo, EnumInfo, None): _appender("children", "enums"),
    (NamespaceInfo, TypedefInfo, None): _appender("children", "typedefs"),
    (RecordInfo, EnumInfo, None): _appender("children", "enums"),
    (RecordInfo, TypedefInfo, None): _appender("children", "typedefs"),
    (RecordInfo, BaseRecordInfo, None): _appender("bases"),
    (EnumInfo, EnumValueInfo, None): _appender("members"),
    # Templates
    (RecordInfo, TemplateInfo, None): _setter("template"),
    (FunctionInfo, TemplateInfo, None): _setter("template"),
    (TemplateInfo, TemplateSpecializationInfo, None): _setter("specialization"),
    (TemplateInfo, TemplateParamInfo, None): _appender("params"),
    (TemplateSpecializationInfo, TemplateParamInfo, None): _appender("params"),
}

# Documentation slots
for _owner in (
    NamespaceInfo,
    RecordInfo,
    FunctionInfo,
    EnumInfo,
    TypedefInfo,
    BaseRecordInfo,
    MemberTypeInfo,
):
    _ATTACH[(_owner, Javadoc, None)] = _extend_javadoc


def attach(owner, child) -> None:
    """Place a decoded child into the slot of its owner it belongs to."""
    relation = child.relation if isinstance(child, Reference) else None
    handler = _ATTACH.get((type(owner), type(child), relation))
    if handler is None:
        what = type(child).__name__
        if relation is not None:
            what = f"{what} with relation {relation.name}"
        raise InvalidAttachment(f"{type(owner).__name__} cannot contain {what}")
    handler(owner, child)


# --- Documentation context ---


@dataclass
class _NodeFrame:
    """Nodes accumulated by one open documentation list."""

    kind: NodeKind | None = None
    nodes: list = field(default_factory=list)


@dataclass
class DocContext:
    """Explicit stack of open node lists for the comment being decoded."""

    javadoc: Javadoc = field(default_factory=Javadoc)
    frames: list[_NodeFrame] = field(default_factory=list)


# --- Reader ---


class BlockReader:
    """Decodes nested blocks from a cursor into symbol objects."""

    def __init__(self, cursor: BinaryCursor):
        self.cursor = cursor

    def walk(
        self,
        block_id: int,
        on_record: Callable[[RawRecord], None],
        on_block: Callable[[int], None],
    ) -> None:
        """Enter a block and feed its records and sub-blocks in stream order.

        When a sub-block fails, the rest of it is skipped before the error
        propagates so the cursor stays aligned with its siblings.
        """
        cursor = self.cursor
        cursor.enter_block(block_id)
        while True:
            code = cursor.read_code()
            if code == Abbrev.END_BLOCK:
                cursor.read_block_end()
                return
            if code == Abbrev.ENTER_BLOCK:
                depth = cursor.depth
                child_id = cursor.read_block_id()
                try:
                    on_block(child_id)
                except DecodeError as err:
                    if not err.block:
                        err.block = cursor.block_path or block_name(child_id)
                    cursor.unwind(depth)
                    raise
                continue
            record = cursor.read_record()
            try:
                on_record(record)
            except DecodeError as err:
                if not err.block:
                    err.block = cursor.block_path
                raise

    def read_block(self, block_id: int, obj):
        """Fill ``obj`` from the block about to be entered and return it."""
        self.walk(
            block_id,
            lambda record: parse_record(obj, record),
            lambda child_id: self.read_sub_block(child_id, obj),
        )
        return obj

    def read_entity(self, block_id: int):
        return self.read_block(block_id, ENTITY_BLOCK_TYPES[block_id]())

    def read_sub_block(self, block_id: int, owner) -> None:
        if block_id == BlockId.JAVADOC:
            attach(owner, self.read_javadoc())
            return
        child_type = _CHILD_BLOCK_TYPES.get(block_id)
        if child_type is None:
            raise InvalidAttachment(
                f"{type(owner).__name__} cannot contain a {block_name(block_id)} block"
            )
        child = self.read_block(block_id, child_type())
        attach(owner, child)

    # --- Documentation ---

    def read_javadoc(self) -> Javadoc:
        ctx = DocContext()

        def on_record(record: RawRecord) -> None:
            raise MalformedStream(f"invalid record {record.record_id} for Javadoc")

        def on_block(block_id: int) -> None:
            if block_id == BlockId.JAVADOC_LIST:
                self._read_doc_list(ctx)
            elif block_id == BlockId.JAVADOC_NODE:
                self._read_lone_node(ctx)
            else:
                raise InvalidAttachment(f"Javadoc cannot contain a {block_name(block_id)} block")

        self.walk(BlockId.JAVADOC, on_record, on_block)
        return ctx.javadoc

    def _read_doc_list(self, ctx: DocContext) -> None:
        frame = _NodeFrame()
        ctx.frames.append(frame)

        def on_record(record: RawRecord) -> None:
            if record.record_id != RecordId.JAVADOC_LIST_KIND:
                raise MalformedStream(f"invalid record {record.record_id} for a doc list")
            frame.kind = decode_enum(record, NodeKind)

        def on_block(block_id: int) -> None:
            if block_id != BlockId.JAVADOC_NODE:
                raise InvalidAttachment(f"a doc list cannot contain a {block_name(block_id)} block")
            self._read_doc_node(ctx)

        try:
            self.walk(BlockId.JAVADOC_LIST, on_record, on_block)
        finally:
            ctx.frames.pop()

        if ctx.frames:
            self._hand_to_parent(ctx.frames[-1], frame)
        else:
            self._hand_to_javadoc(ctx.javadoc, frame)

    @staticmethod
    def _hand_to_javadoc(javadoc: Javadoc, frame: _NodeFrame) -> None:
        expected = {
            NodeKind.BLOCK: BLOCK_TYPES,
            NodeKind.PARAM: (Param,),
            NodeKind.TPARAM: (TParam,),
        }.get(frame.kind)
        if expected is None:
            raise InvalidAttachment(f"wrong kind {frame.kind} for a top-level doc list")
        for node in frame.nodes:
            if not isinstance(node, expected):
                raise InvalidAttachment(
                    f"{type(node).__name__} cannot appear in a {frame.kind.name} list"
                )
            javadoc.append(node)

    @staticmethod
    def _hand_to_parent(enclosing: _NodeFrame, frame: _NodeFrame) -> None:
        if not enclosing.nodes:
            raise MalformedStream("nested doc list has no parent node")
        parent = enclosing.nodes[-1]
        if not isinstance(parent, CONTENT_TYPES):
            raise InvalidAttachment(f"{type(parent).__name__} cannot own child nodes")
        for node in frame.nodes:
            if not isinstance(node, TEXT_TYPES):
                raise InvalidAttachment(
                    f"{type(node).__name__} cannot be a child of {type(parent).__name__}"
                )
        parent.children.extend(frame.nodes)

    def _read_doc_node(self, ctx: DocContext) -> None:
        """Decode one node into the innermost open list.

        The kind record must come before any kind-specific content.
        """
        frame = ctx.frames[-1]
        current: list = []

        def node():
            if not current:
                raise MalformedStream("doc node content precedes its kind")
            return current[0]

        def on_record(record: RawRecord) -> None:
            rid = record.record_id
            if rid == RecordId.JAVADOC_NODE_KIND:
                if current:
                    raise MalformedStream("doc node kind set twice")
                kind = decode_enum(record, NodeKind)
                node_type = NODE_TYPES.get(kind)
                if node_type is None:
                    raise InvalidAttachment(f"{kind.name} is not a node kind")
                current.append(node_type())
                frame.nodes.append(current[0])
            elif rid == RecordId.JAVADOC_NODE_STRING:
                target = node()
                if isinstance(target, (Text, StyledText)):
                    target.string = decode_string(record)
                elif isinstance(target, (Param, TParam)):
                    target.name = decode_string(record)
                else:
                    raise InvalidAttachment(f"{type(target).__name__} has no string")
            elif rid == RecordId.JAVADOC_NODE_STYLE:
                target = node()
                if not isinstance(target, StyledText):
                    raise InvalidAttachment(f"{type(target).__name__} has no style")
                target.style = decode_enum(record, Style)
            elif rid == RecordId.JAVADOC_NODE_ADMONISH:
                target = node()
                if not isinstance(target, Admonition):
                    raise InvalidAttachment(f"{type(target).__name__} has no admonishment")
                target.style = decode_enum(record, Admonish)
            else:
                raise MalformedStream(f"invalid record {rid} for a doc node")

        def on_block(block_id: int) -> None:
            if block_id != BlockId.JAVADOC_LIST:
                raise InvalidAttachment(f"a doc node cannot contain a {block_name(block_id)} block")
            node()
            self._read_doc_list(ctx)

        self.walk(BlockId.JAVADOC_NODE, on_record, on_block)

    def _read_lone_node(self, ctx: DocContext) -> None:
        """A node directly under the comment: only the returns paragraph."""
        frame = _NodeFrame()
        ctx.frames.append(frame)
        try:
            self._read_doc_node(ctx)
        finally:
            ctx.frames.pop()
        if not frame.nodes:
            raise MalformedStream("doc node has no kind")
        node = frame.nodes[0]
        if not isinstance(node, Returns):
            raise InvalidAttachment(f"{type(node).__name__} cannot appear outside a doc list")
        log.debug("doc_returns_decoded", empty=node.is_empty)
        ctx.javadoc.append(node)
