"""Wire-level type tags and metadata for the Thrift binary protocol.

The metadata dataclasses are what the protocol hands back from the various
``read_*_begin`` calls; generated code only looks at their fields.
"""

from dataclasses import dataclass
from enum import IntEnum


class TType(IntEnum):
    """Wire type tags written before every field and container element."""

    STOP = 0
    VOID = 1
    BOOL = 2
    BYTE = 3
    DOUBLE = 4
    I16 = 6
    I32 = 8
    I64 = 10
    STRING = 11
    STRUCT = 12
    MAP = 13
    SET = 14
    LIST = 15


class TMessageType(IntEnum):
    """Kinds of RPC message envelopes."""

    CALL = 1
    REPLY = 2
    EXCEPTION = 3
    ONEWAY = 4


@dataclass(frozen=True, slots=True)
class ThriftMessage:
    """Header returned by ``read_message_begin``."""

    name: str
    mtype: int
    seqid: int


@dataclass(frozen=True, slots=True)
class ThriftField:
    """Header returned by ``read_field_begin``."""

    name: str | None
    ttype: int
    fid: int


@dataclass(frozen=True, slots=True)
class ThriftMap:
    ktype: int
    vtype: int
    size: int


@dataclass(frozen=True, slots=True)
class ThriftSet:
    etype: int
    size: int


@dataclass(frozen=True, slots=True)
class ThriftList:
    etype: int
    size: int
