"""Identifiers of the container format: signature, version, blocks and records."""

from __future__ import annotations

from enum import IntEnum

SIGNATURE = b"DOCS"
VERSION_NUMBER = 3

# Signed 32-bit bound for integer fields
INT_MAX = 2**31 - 1


class Abbrev(IntEnum):
    """One-byte structural codes."""

    END_BLOCK = 0
    ENTER_BLOCK = 1
    RECORD = 2


class BlockId(IntEnum):
    BLOCKINFO = 0
    VERSION = 8
    NAMESPACE = 9
    ENUM = 10
    ENUM_VALUE = 11
    TYPE = 12
    FIELD_TYPE = 13
    MEMBER_TYPE = 14
    RECORD = 15
    BASE_RECORD = 16
    FUNCTION = 17
    JAVADOC = 18
    JAVADOC_LIST = 19
    JAVADOC_NODE = 20
    REFERENCE = 21
    TEMPLATE = 22
    TEMPLATE_SPECIALIZATION = 23
    TEMPLATE_PARAM = 24
    TYPEDEF = 25


class RecordId(IntEnum):
    BLOCKNAME = 1  # Only inside BLOCKINFO
    VERSION = 4
    JAVADOC_LIST_KIND = 5
    JAVADOC_NODE_KIND = 6
    JAVADOC_NODE_STRING = 7
    JAVADOC_NODE_STYLE = 8
    JAVADOC_NODE_ADMONISH = 9
    FIELD_TYPE_NAME = 10
    FIELD_DEFAULT_VALUE = 11
    MEMBER_TYPE_NAME = 12
    MEMBER_TYPE_ACCESS = 13
    MEMBER_TYPE_DEFAULT_VALUE = 14
    NAMESPACE_USR = 15
    NAMESPACE_NAME = 16
    NAMESPACE_PATH = 17
    ENUM_USR = 18
    ENUM_NAME = 19
    ENUM_PATH = 20
    ENUM_DEFLOCATION = 21
    ENUM_LOCATION = 22
    ENUM_SCOPED = 23
    ENUM_VALUE_NAME = 24
    ENUM_VALUE_VALUE = 25
    ENUM_VALUE_EXPR = 26
    RECORD_USR = 27
    RECORD_NAME = 28
    RECORD_PATH = 29
    RECORD_DEFLOCATION = 30
    RECORD_LOCATION = 31
    RECORD_TAG_TYPE = 32
    RECORD_IS_TYPE_DEF = 33
    BASE_RECORD_USR = 34
    BASE_RECORD_NAME = 35
    BASE_RECORD_PATH = 36
    BASE_RECORD_TAG_TYPE = 37
    BASE_RECORD_IS_VIRTUAL = 38
    BASE_RECORD_ACCESS = 39
    BASE_RECORD_IS_PARENT = 40
    FUNCTION_USR = 41
    FUNCTION_NAME = 42
    FUNCTION_PATH = 43
    FUNCTION_DEFLOCATION = 44
    FUNCTION_LOCATION = 45
    FUNCTION_ACCESS = 46
    FUNCTION_IS_METHOD = 47
    REFERENCE_USR = 48
    REFERENCE_NAME = 49
    REFERENCE_TYPE = 50
    REFERENCE_PATH = 51
    REFERENCE_FIELD = 52
    TEMPLATE_PARAM_CONTENTS = 53
    TEMPLATE_SPECIALIZATION_OF = 54
    TYPEDEF_USR = 55
    TYPEDEF_NAME = 56
    TYPEDEF_PATH = 57
    TYPEDEF_DEFLOCATION = 58
    TYPEDEF_LOCATION = 59
    TYPEDEF_IS_USING = 60


ENTITY_BLOCKS = frozenset(
    {BlockId.NAMESPACE, BlockId.RECORD, BlockId.FUNCTION, BlockId.ENUM, BlockId.TYPEDEF}
)

# Legal only nested inside an entity
CHILD_ONLY_BLOCKS = frozenset(
    {
        BlockId.ENUM_VALUE,
        BlockId.TYPE,
        BlockId.FIELD_TYPE,
        BlockId.MEMBER_TYPE,
        BlockId.BASE_RECORD,
        BlockId.JAVADOC,
        BlockId.JAVADOC_LIST,
        BlockId.JAVADOC_NODE,
        BlockId.REFERENCE,
        BlockId.TEMPLATE,
        BlockId.TEMPLATE_SPECIALIZATION,
        BlockId.TEMPLATE_PARAM,
    }
)


def block_name(block_id: int) -> str:
    try:
        return BlockId(block_id).name
    except ValueError:
        return f"block#{block_id}"
