"""Error kinds raised while decoding containers and merging partial symbols.

Decode errors abort the unit being decoded. Merge errors abort the merge of
one identifier only; the rest of the corpus still merges.
"""

from __future__ import annotations


class SymdocError(Exception):
    """Base class for every error raised by symdoc."""


# --- Decode errors ---


class DecodeError(SymdocError):
    """A container could not be decoded."""

    fatal = False  # True when no partial result may ever be returned

    def __init__(self, message: str, block: str = ""):
        super().__init__(message)
        self.message = message
        self.block = block

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __str__(self) -> str:
        if self.block:
            return f"{self.message} (in {self.block})"
        return self.message


class BadSignature(DecodeError):
    fatal = True


class VersionMismatch(DecodeError):
    fatal = True


class MalformedStream(DecodeError):
    pass


class InvalidTopLevelBlock(DecodeError):
    pass


class InvalidAttachment(DecodeError):
    pass


class InvalidEnumValue(DecodeError):
    pass


class IntegerOverflow(DecodeError):
    pass


class BadIdentifierLength(DecodeError):
    pass


class TooManyReturnsNodes(DecodeError):
    pass


# --- Merge errors ---


class MergeError(SymdocError):
    """The partial views of one identifier could not be merged."""

    def __init__(self, message: str, usr=None):
        super().__init__(message)
        self.message = message
        self.usr = usr

    @property
    def kind(self) -> str:
        return type(self).__name__


class ConflictingEntityKind(MergeError):
    pass
