"""Tests for the documentation comment tree."""

import pytest

from symdoc.errors import InvalidAttachment, TooManyReturnsNodes
from symdoc.meta.javadoc import (
    Admonish,
    Admonition,
    Brief,
    Code,
    Javadoc,
    Paragraph,
    Param,
    Returns,
    StyledText,
    Text,
    TParam,
)


def _para(text: str) -> Paragraph:
    return Paragraph([Text(text)])


# --- Structure ---


def test_append_routes_by_kind():
    doc = Javadoc()
    doc.append(_para("body"))
    doc.append(Admonition([Text("careful")], Admonish.WARNING))
    doc.append(Param("n", [Text("count")]))
    doc.append(TParam("T", [Text("element type")]))
    doc.append(Returns([Text("size")]))

    assert len(doc.blocks) == 2
    assert doc.params[0].name == "n"
    assert doc.tparams[0].name == "T"
    assert doc.returns.text == "size"


def test_append_second_returns():
    doc = Javadoc(returns=Returns([Text("a")]))
    with pytest.raises(TooManyReturnsNodes):
        doc.append(Returns([Text("b")]))


def test_append_text_node_at_top_level():
    with pytest.raises(InvalidAttachment):
        Javadoc().append(Text("loose"))


def test_text_joins_children():
    p = Paragraph([Text("call "), StyledText("f()"), Text(" first")])
    assert p.text == "call f() first"


def test_is_empty():
    assert Javadoc().is_empty
    assert Javadoc(returns=Returns()).is_empty
    assert not Javadoc(blocks=[Code([Text("x;")])]).is_empty


def test_extend_keeps_single_returns():
    doc = Javadoc(returns=Returns([Text("a")]))
    with pytest.raises(TooManyReturnsNodes):
        doc.extend(Javadoc(returns=Returns([Text("b")])))


# --- Merge ---


def test_merge_concatenates_lists():
    a = Javadoc(blocks=[_para("a")], params=[Param("x")])
    b = Javadoc(blocks=[_para("b")], params=[Param("y")])
    a.merge(b)
    assert [blk.text for blk in a.blocks] == ["a", "b"]
    assert [p.name for p in a.params] == ["x", "y"]


def test_merge_first_non_empty_returns_wins():
    a = Javadoc(returns=Returns())
    a.merge(Javadoc(returns=Returns([Text("second")])))
    assert a.returns.text == "second"

    a.merge(Javadoc(returns=Returns([Text("third")])))
    assert a.returns.text == "second"


def test_merge_all_empty_returns_is_absent():
    a = Javadoc(returns=Returns())
    a.merge(Javadoc(returns=Returns()))
    assert a.returns is None


# --- Brief ---


def test_brief_prefers_brief_block():
    doc = Javadoc(blocks=[_para("x"), Brief([Text("y")])])
    assert doc.calculate_brief() is doc.blocks[1]
    assert doc.brief_text == "y"


def test_brief_falls_back_to_first_block():
    doc = Javadoc(blocks=[_para("x")])
    doc.calculate_brief()
    assert doc.brief_text == "x"


def test_no_blocks_no_brief():
    doc = Javadoc(params=[Param("n", [Text("count")])])
    assert doc.calculate_brief() is None
    assert doc.brief_text == ""


def test_brief_is_not_part_of_equality():
    a = Javadoc(blocks=[_para("x")])
    b = Javadoc(blocks=[_para("x")])
    a.calculate_brief()
    assert a == b
