"""Documentation comment tree attached to symbols.

A comment is a ``Javadoc`` aggregate holding the top-level blocks, the
``@param`` and ``@tparam`` entries and at most one ``@returns`` paragraph.
Nodes form closed families:

- text nodes: Text, StyledText
- blocks: Paragraph, Brief, Admonition, Code
- commands: Param, TParam, Returns

Every family member with content owns an ordered list of text nodes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

from symdoc.errors import InvalidAttachment, TooManyReturnsNodes


class NodeKind(Enum):
    TEXT = 1
    STYLED = 2
    BLOCK = 3  # Only used to tag lists of top-level blocks
    PARAGRAPH = 4
    BRIEF = 5
    ADMONITION = 6
    CODE = 7
    PARAM = 8
    TPARAM = 9
    RETURNS = 10


class Style(Enum):
    NONE = 1
    MONO = 2
    BOLD = 3
    ITALIC = 4


class Admonish(Enum):
    NONE = 1
    NOTE = 2
    TIP = 3
    IMPORTANT = 4
    CAUTION = 5
    WARNING = 6


# --- Text nodes ---


@dataclass
class Text:
    """A string of plain text."""

    string: str = ""
    kind: ClassVar[NodeKind] = NodeKind.TEXT


@dataclass
class StyledText:
    """A piece of styled text."""

    string: str = ""
    style: Style = Style.NONE
    kind: ClassVar[NodeKind] = NodeKind.STYLED


TextNode = Union[Text, StyledText]


class _Content:
    """Helpers shared by every node that owns a list of text nodes."""

    children: list

    @property
    def text(self) -> str:
        return "".join(child.string for child in self.children)

    @property
    def is_empty(self) -> bool:
        return not self.children


# --- Blocks ---


@dataclass
class Paragraph(_Content):
    children: list[TextNode] = field(default_factory=list)
    kind: ClassVar[NodeKind] = NodeKind.PARAGRAPH


@dataclass
class Brief(_Content):
    children: list[TextNode] = field(default_factory=list)
    kind: ClassVar[NodeKind] = NodeKind.BRIEF


@dataclass
class Admonition(_Content):
    children: list[TextNode] = field(default_factory=list)
    style: Admonish = Admonish.NONE
    kind: ClassVar[NodeKind] = NodeKind.ADMONITION


@dataclass
class Code(_Content):
    """Preformatted source code."""

    children: list[TextNode] = field(default_factory=list)
    kind: ClassVar[NodeKind] = NodeKind.CODE


BlockNode = Union[Paragraph, Brief, Admonition, Code]


# --- Commands ---


@dataclass
class Param(_Content):
    """Documentation for a function parameter."""

    name: str = ""
    children: list[TextNode] = field(default_factory=list)
    kind: ClassVar[NodeKind] = NodeKind.PARAM


@dataclass
class TParam(_Content):
    """Documentation for a template parameter."""

    name: str = ""
    children: list[TextNode] = field(default_factory=list)
    kind: ClassVar[NodeKind] = NodeKind.TPARAM


@dataclass
class Returns(_Content):
    """Documentation for a function return value."""

    children: list[TextNode] = field(default_factory=list)
    kind: ClassVar[NodeKind] = NodeKind.RETURNS


Node = Union[Text, StyledText, Paragraph, Brief, Admonition, Code, Param, TParam, Returns]

NODE_TYPES: dict[NodeKind, type] = {
    cls.kind: cls
    for cls in (Text, StyledText, Paragraph, Brief, Admonition, Code, Param, TParam, Returns)
}
TEXT_TYPES = (Text, StyledText)
BLOCK_TYPES = (Paragraph, Brief, Admonition, Code)
CONTENT_TYPES = (Paragraph, Brief, Admonition, Code, Param, TParam, Returns)


# --- Aggregate ---


@dataclass
class Javadoc:
    """A processed doc comment attached to a declaration."""

    blocks: list[BlockNode] = field(default_factory=list)
    params: list[Param] = field(default_factory=list)
    tparams: list[TParam] = field(default_factory=list)
    returns: Returns | None = None

    # Computed by calculate_brief(); never serialized
    brief: BlockNode | None = field(default=None, compare=False, repr=False)

    @property
    def is_empty(self) -> bool:
        return (
            not self.blocks
            and not self.params
            and not self.tparams
            and (self.returns is None or self.returns.is_empty)
        )

    def append(self, node: Node) -> None:
        """Add a top-level element, routing it to the list matching its kind."""
        if isinstance(node, BLOCK_TYPES):
            self.blocks.append(node)
        elif isinstance(node, Param):
            self.params.append(node)
        elif isinstance(node, TParam):
            self.tparams.append(node)
        elif isinstance(node, Returns):
            if self.returns is not None:
                raise TooManyReturnsNodes("a symbol has more than one returns paragraph")
            self.returns = node
        else:
            raise InvalidAttachment(f"{type(node).__name__} is not a top-level doc node")

    def extend(self, other: Javadoc) -> None:
        """Splice another comment decoded for the same symbol into this one."""
        self.blocks.extend(other.blocks)
        self.params.extend(other.params)
        self.tparams.extend(other.tparams)
        if other.returns is not None:
            self.append(other.returns)

    def merge(self, other: Javadoc) -> None:
        """Merge the comment of another partial view of the same symbol.

        Lists are concatenated in first-seen order. The first non-empty
        returns paragraph wins; when every candidate is empty the result
        has none.
        """
        self.blocks.extend(other.blocks)
        self.params.extend(other.params)
        self.tparams.extend(other.tparams)
        candidates = [r for r in (self.returns, other.returns) if r is not None and not r.is_empty]
        self.returns = candidates[0] if candidates else None

    def calculate_brief(self) -> BlockNode | None:
        """Pick the summary paragraph.

        The first Brief block, else the first block of any kind, else
        nothing. Must only run once every partial comment has been merged.
        """
        self.brief = None
        for block in self.blocks:
            if isinstance(block, Brief):
                self.brief = block
                return self.brief
        if self.blocks:
            self.brief = self.blocks[0]
        return self.brief

    @property
    def brief_text(self) -> str:
        return self.brief.text if self.brief is not None else ""
