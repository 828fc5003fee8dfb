"""Tests for the top-level stream reader and the container writer."""

import tempfile
from pathlib import Path

import pytest

from symdoc.bitcode.ids import BlockId, RecordId
from symdoc.bitcode.reader import StreamReader, read_container, read_container_file
from symdoc.bitcode.writer import BinaryWriter, write_container, write_container_file
from symdoc.errors import (
    BadIdentifierLength,
    BadSignature,
    InvalidEnumValue,
    InvalidTopLevelBlock,
    MalformedStream,
    VersionMismatch,
)
from symdoc.meta.javadoc import (
    Admonish,
    Admonition,
    Brief,
    Code,
    Javadoc,
    Paragraph,
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
    Location,
    MemberTypeInfo,
    NamespaceInfo,
    RecordInfo,
    Reference,
    Scope,
    SymbolID,
    TagType,
    TemplateInfo,
    TemplateParamInfo,
    TemplateSpecializationInfo,
    TypedefInfo,
    TypeInfo,
)


def _sid(n: int) -> SymbolID:
    return SymbolID(bytes([n]) * 20)


def _ns_ref() -> Reference:
    return Reference(usr=_sid(1), name="gfx", ref_type=InfoType.NAMESPACE)


def _int_type() -> TypeInfo:
    return TypeInfo(Reference(name="int"))


def _doc(summary: str) -> Javadoc:
    return Javadoc(blocks=[Brief([Text(summary)])])


def _roundtrip(*entities):
    return read_container(write_container(list(entities)))


# --- Round trip ---


def test_roundtrip_namespace():
    ns = NamespaceInfo(
        usr=_sid(1),
        name="gfx",
        path="",
        children=Scope(
            namespaces=[Reference(usr=_sid(20), name="detail", ref_type=InfoType.NAMESPACE)],
            records=[Reference(usr=_sid(2), name="Widget", ref_type=InfoType.RECORD, path="gfx")],
            functions=[Reference(usr=_sid(3), name="draw", ref_type=InfoType.FUNCTION, path="gfx")],
            enums=[EnumInfo(usr=_sid(4), name="Color", members=[EnumValueInfo("Red", "0")])],
            typedefs=[TypedefInfo(usr=_sid(5), name="Size", underlying=_int_type())],
        ),
        javadoc=_doc("Graphics."),
    )
    assert _roundtrip(ns) == [ns]


def test_roundtrip_record():
    record = RecordInfo(
        usr=_sid(2),
        name="Widget",
        path="gfx",
        namespace=[_ns_ref()],
        def_loc=Location(10, "widget.hpp", True),
        loc=[Location(3, "fwd.hpp")],
        tag_type=TagType.CLASS,
        is_type_def=True,
        parents=[Reference(usr=_sid(6), name="Base", ref_type=InfoType.RECORD)],
        virtual_parents=[Reference(usr=_sid(7), name="VBase", ref_type=InfoType.RECORD)],
        bases=[
            BaseRecordInfo(
                usr=_sid(6),
                name="Base",
                path="gfx",
                tag_type=TagType.STRUCT,
                is_virtual=False,
                access=AccessSpecifier.PROTECTED,
                is_parent=True,
                members=[MemberTypeInfo(Reference(name="int"), "id")],
                javadoc=_doc("A base."),
            )
        ],
        members=[
            MemberTypeInfo(
                type=Reference(name="double"),
                name="width",
                default_value="1.0",
                access=AccessSpecifier.PRIVATE,
                javadoc=_doc("Width in pixels."),
            )
        ],
        children=Scope(functions=[Reference(usr=_sid(8), name="resize", ref_type=InfoType.FUNCTION)]),
        template=TemplateInfo(
            params=[TemplateParamInfo("typename T")],
            specialization=TemplateSpecializationInfo(_sid(9), [TemplateParamInfo("int")]),
        ),
        javadoc=_doc("A widget."),
    )
    assert _roundtrip(record) == [record]


def test_roundtrip_function():
    fn = FunctionInfo(
        usr=_sid(8),
        name="resize",
        path="gfx::Widget",
        namespace=[Reference(usr=_sid(2), name="Widget", ref_type=InfoType.RECORD), _ns_ref()],
        def_loc=Location(44, "widget.cpp", True),
        loc=[Location(20, "widget.hpp")],
        is_method=True,
        parent=Reference(usr=_sid(2), name="Widget", ref_type=InfoType.RECORD),
        return_type=TypeInfo(Reference(name="void")),
        params=[
            FieldTypeInfo(Reference(name="int"), "w"),
            FieldTypeInfo(Reference(name="int"), "h", "0"),
        ],
        access=AccessSpecifier.PUBLIC,
        template=TemplateInfo(params=[TemplateParamInfo("class U")]),
    )
    assert _roundtrip(fn) == [fn]


def test_roundtrip_enum():
    enum = EnumInfo(
        usr=_sid(4),
        name="Color",
        path="gfx",
        namespace=[_ns_ref()],
        def_loc=Location(5, "color.hpp", True),
        scoped=True,
        base_type=TypeInfo(Reference(name="unsigned char")),
        members=[EnumValueInfo("Red", "0", ""), EnumValueInfo("Blue", "2", "1 << 1")],
    )
    assert _roundtrip(enum) == [enum]


def test_roundtrip_typedef():
    typedef = TypedefInfo(
        usr=_sid(5),
        name="Size",
        path="gfx",
        namespace=[_ns_ref()],
        loc=[Location(2, "types.hpp")],
        is_using=True,
        underlying=TypeInfo(Reference(usr=_sid(30), name="size_t", ref_type=InfoType.TYPEDEF)),
    )
    assert _roundtrip(typedef) == [typedef]


def test_roundtrip_every_doc_node_kind():
    doc = Javadoc(
        blocks=[
            Brief([Text("Draws the widget.")]),
            Paragraph([Text("Call "), StyledText("draw()", Style.MONO), StyledText(" twice", Style.ITALIC)]),
            Admonition([Text("Not thread safe.")], Admonish.WARNING),
            Code([Text("w.draw();")]),
        ],
        params=[Param("ctx", [Text("the "), StyledText("target", Style.BOLD)])],
        tparams=[TParam("T", [Text("pixel type")])],
        returns=Returns([Text("true on success")]),
    )
    fn = FunctionInfo(usr=_sid(3), name="draw", javadoc=doc)
    [decoded] = _roundtrip(fn)
    assert decoded.javadoc == doc


def test_roundtrip_empty_returns_survives_decode():
    fn = FunctionInfo(usr=_sid(3), name="draw", javadoc=Javadoc(returns=Returns()))
    [decoded] = _roundtrip(fn)
    assert decoded.javadoc.returns == Returns()


def test_roundtrip_preserves_entity_order():
    entities = [
        FunctionInfo(usr=_sid(3), name="f"),
        NamespaceInfo(usr=_sid(1), name="n"),
        TypedefInfo(usr=_sid(5), name="t"),
    ]
    assert [e.name for e in _roundtrip(*entities)] == ["f", "n", "t"]


def test_container_file_roundtrip():
    with tempfile.TemporaryDirectory() as tmp:
        path = write_container_file(Path(tmp) / "units" / "a.docs", [RecordInfo(usr=_sid(2), name="W")])
        unit = read_container_file(path)
    assert unit.version == 3
    assert [e.name for e in unit.entities] == ["W"]
    assert unit.block_names[BlockId.RECORD] == "RECORD"


# --- Malformed input ---


def test_bad_signature():
    data = write_container([RecordInfo(usr=_sid(2))])
    with pytest.raises(BadSignature):
        read_container(b"XXXX" + data[4:])


def test_version_mismatch():
    data = write_container([RecordInfo(usr=_sid(2), name="W")], version=4)
    with pytest.raises(VersionMismatch) as exc:
        read_container(data, expected_version=3)
    assert exc.value.fatal


def test_expected_version_is_configurable():
    data = write_container([RecordInfo(usr=_sid(2), name="W")], version=4)
    assert len(read_container(data, expected_version=4)) == 1


def _raw(build) -> bytes:
    w = BinaryWriter()
    w.signature()
    with w.block(BlockId.VERSION):
        w.record(RecordId.VERSION, [3])
    build(w)
    return w.getvalue()


def test_child_block_at_top_level():
    def build(w):
        with w.block(BlockId.TYPE):
            pass

    with pytest.raises(InvalidTopLevelBlock):
        read_container(_raw(build))


def test_unknown_top_level_block_is_skipped():
    def build(w):
        with w.block(200):
            w.record(1, [5], b"future")
        with w.block(BlockId.RECORD):
            w.record(RecordId.RECORD_NAME, blob=b"W")

    unit = StreamReader(_raw(build)).read()
    assert [e.name for e in unit.entities] == ["W"]
    assert unit.skipped_blocks == [200]


def test_record_at_top_level():
    def build(w):
        w.record(RecordId.RECORD_NAME, blob=b"W")

    with pytest.raises(MalformedStream):
        read_container(_raw(build))


def test_version_block_without_record():
    w = BinaryWriter()
    w.signature()
    with w.block(BlockId.VERSION):
        pass
    with pytest.raises(MalformedStream):
        read_container(w.getvalue())


def test_missing_version_block_is_accepted():
    w = BinaryWriter()
    w.signature()
    with w.block(BlockId.TYPEDEF):
        w.record(RecordId.TYPEDEF_NAME, blob=b"T")
    unit = StreamReader(w.getvalue()).read()
    assert unit.version is None
    assert unit.entities[0].name == "T"


def test_invalid_enum_value():
    def build(w):
        with w.block(BlockId.RECORD):
            w.record(RecordId.RECORD_TAG_TYPE, [99])

    with pytest.raises(InvalidEnumValue):
        read_container(_raw(build))


def test_identifier_of_wrong_length():
    def build(w):
        with w.block(BlockId.FUNCTION):
            w.record(RecordId.FUNCTION_USR, [16, *range(16)])

    with pytest.raises(BadIdentifierLength):
        read_container(_raw(build))


def test_empty_container():
    assert read_container(write_container([])) == []
