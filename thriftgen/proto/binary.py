"""Thrift binary protocol.

All integers are big-endian. Strings and binaries are a signed 32-bit
length followed by the raw bytes. Message headers use the strict form
(version word OR'd with the message type) when ``strict_write`` is set.
"""

import logging
import struct

from .serialization import ProtocolError, ProtocolErrorKind
from .transport import Transport
from .types import ThriftField, ThriftList, ThriftMap, ThriftMessage, ThriftSet, TType

logger = logging.getLogger(__name__)

VERSION_MASK = -65536  # 0xffff0000 as a signed i32
VERSION_1 = -2147418112  # 0x80010000 as a signed i32
TYPE_MASK = 0x000000FF

_BYTE = struct.Struct("!b")
_I16 = struct.Struct("!h")
_I32 = struct.Struct("!i")
_I64 = struct.Struct("!q")
_DOUBLE = struct.Struct("!d")
_MAP_HEADER = struct.Struct("!bbi")
_LIST_HEADER = struct.Struct("!bi")
_FIELD_HEADER = struct.Struct("!bh")


def _decode_utf8(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Invalid UTF-8 in string: {e}", ProtocolErrorKind.INVALID_DATA) from e


class TBinaryProtocol:
    """Reads and writes thrift values on a transport.

    Example:
        trans = TMemoryBuffer()
        proto = TBinaryProtocol(trans)
        proto.write_i32(42)
        trans.flush()
    """

    def __init__(
        self,
        trans: Transport,
        *,
        strict_read: bool = False,
        strict_write: bool = True,
        string_length_limit: int | None = None,
        container_length_limit: int | None = None,
        recursion_limit: int = 64,
    ) -> None:
        self.trans = trans
        self.strict_read = strict_read
        self.strict_write = strict_write
        self.string_length_limit = string_length_limit
        self.container_length_limit = container_length_limit
        self.recursion_limit = recursion_limit

    # Writing

    def write_message_begin(self, name: str, mtype: int, seqid: int) -> None:
        if self.strict_write:
            self.write_i32(VERSION_1 | mtype)
            self.write_string(name)
            self.write_i32(seqid)
        else:
            self.write_string(name)
            self.write_byte(mtype)
            self.write_i32(seqid)

    def write_message_end(self) -> None:
        pass

    def write_struct_begin(self, name: str) -> None:
        pass

    def write_struct_end(self) -> None:
        pass

    def write_field_begin(self, name: str, ttype: int, fid: int) -> None:
        self.trans.write(_FIELD_HEADER.pack(ttype, fid))

    def write_field_end(self) -> None:
        pass

    def write_field_stop(self) -> None:
        self.write_byte(TType.STOP)

    def write_map_begin(self, ktype: int, vtype: int, size: int) -> None:
        self.trans.write(_MAP_HEADER.pack(ktype, vtype, size))

    def write_map_end(self) -> None:
        pass

    def write_list_begin(self, etype: int, size: int) -> None:
        self.trans.write(_LIST_HEADER.pack(etype, size))

    def write_list_end(self) -> None:
        pass

    def write_set_begin(self, etype: int, size: int) -> None:
        self.trans.write(_LIST_HEADER.pack(etype, size))

    def write_set_end(self) -> None:
        pass

    def write_bool(self, value: bool) -> None:
        self.write_byte(1 if value else 0)

    def write_byte(self, value: int) -> None:
        self.trans.write(_BYTE.pack(value))

    def write_i16(self, value: int) -> None:
        self.trans.write(_I16.pack(value))

    def write_i32(self, value: int) -> None:
        self.trans.write(_I32.pack(value))

    def write_i64(self, value: int) -> None:
        self.trans.write(_I64.pack(value))

    def write_double(self, value: float) -> None:
        self.trans.write(_DOUBLE.pack(value))

    def write_string(self, value: str) -> None:
        self.write_binary(value.encode("utf-8"))

    def write_binary(self, value: bytes) -> None:
        self.write_i32(len(value))
        self.trans.write(value)

    # Reading

    def read_message_begin(self) -> ThriftMessage:
        sz = self.read_i32()
        if sz < 0:
            version = sz & VERSION_MASK
            if version != VERSION_1:
                raise ProtocolError(
                    f"Bad version in read_message_begin: {sz}", ProtocolErrorKind.BAD_VERSION
                )
            return ThriftMessage(
                name=self.read_string(), mtype=sz & TYPE_MASK, seqid=self.read_i32()
            )
        if self.strict_read:
            raise ProtocolError("No protocol version header", ProtocolErrorKind.BAD_VERSION)
        name = _decode_utf8(self._read_sized(sz))
        return ThriftMessage(name=name, mtype=self.read_byte(), seqid=self.read_i32())

    def read_message_end(self) -> None:
        pass

    def read_struct_begin(self) -> None:
        pass

    def read_struct_end(self) -> None:
        pass

    def read_field_begin(self) -> ThriftField:
        ttype = self.read_byte()
        if ttype == TType.STOP:
            return ThriftField(name=None, ttype=ttype, fid=0)
        return ThriftField(name=None, ttype=ttype, fid=self.read_i16())

    def read_field_end(self) -> None:
        pass

    def read_map_begin(self) -> ThriftMap:
        ktype, vtype, size = _MAP_HEADER.unpack(self.trans.read(_MAP_HEADER.size))
        self._check_container_length(size)
        return ThriftMap(ktype=ktype, vtype=vtype, size=size)

    def read_map_end(self) -> None:
        pass

    def read_list_begin(self) -> ThriftList:
        etype, size = _LIST_HEADER.unpack(self.trans.read(_LIST_HEADER.size))
        self._check_container_length(size)
        return ThriftList(etype=etype, size=size)

    def read_list_end(self) -> None:
        pass

    def read_set_begin(self) -> ThriftSet:
        etype, size = _LIST_HEADER.unpack(self.trans.read(_LIST_HEADER.size))
        self._check_container_length(size)
        return ThriftSet(etype=etype, size=size)

    def read_set_end(self) -> None:
        pass

    def read_bool(self) -> bool:
        return self.read_byte() != 0

    def read_byte(self) -> int:
        return _BYTE.unpack(self.trans.read(1))[0]

    def read_i16(self) -> int:
        return _I16.unpack(self.trans.read(2))[0]

    def read_i32(self) -> int:
        return _I32.unpack(self.trans.read(4))[0]

    def read_i64(self) -> int:
        return _I64.unpack(self.trans.read(8))[0]

    def read_double(self) -> float:
        return _DOUBLE.unpack(self.trans.read(8))[0]

    def read_string(self) -> str:
        return _decode_utf8(self.read_binary())

    def read_binary(self) -> bytes:
        return self._read_sized(self.read_i32())

    def skip(self, ttype: int) -> None:
        """Consume one value of wire type ``ttype`` without materializing it."""
        logger.debug("Skipping value of wire type %s", ttype)
        self._skip(ttype, self.recursion_limit)

    def _skip(self, ttype: int, depth: int) -> None:
        if depth <= 0:
            raise ProtocolError("Maximum skip depth exceeded", ProtocolErrorKind.DEPTH_LIMIT)

        if ttype == TType.BOOL:
            self.read_bool()
        elif ttype == TType.BYTE:
            self.read_byte()
        elif ttype == TType.I16:
            self.read_i16()
        elif ttype == TType.I32:
            self.read_i32()
        elif ttype == TType.I64:
            self.read_i64()
        elif ttype == TType.DOUBLE:
            self.read_double()
        elif ttype == TType.STRING:
            self.read_binary()
        elif ttype == TType.STRUCT:
            self.read_struct_begin()
            while True:
                field = self.read_field_begin()
                if field.ttype == TType.STOP:
                    break
                self._skip(field.ttype, depth - 1)
                self.read_field_end()
            self.read_struct_end()
        elif ttype == TType.MAP:
            meta = self.read_map_begin()
            for _ in range(meta.size):
                self._skip(meta.ktype, depth - 1)
                self._skip(meta.vtype, depth - 1)
            self.read_map_end()
        elif ttype == TType.SET:
            meta = self.read_set_begin()
            for _ in range(meta.size):
                self._skip(meta.etype, depth - 1)
            self.read_set_end()
        elif ttype == TType.LIST:
            meta = self.read_list_begin()
            for _ in range(meta.size):
                self._skip(meta.etype, depth - 1)
            self.read_list_end()
        else:
            raise ProtocolError(f"Cannot skip unknown wire type {ttype}", ProtocolErrorKind.INVALID_DATA)

    def _read_sized(self, size: int) -> bytes:
        if size < 0:
            raise ProtocolError(f"Negative length: {size}", ProtocolErrorKind.NEGATIVE_SIZE)
        if self.string_length_limit is not None and size > self.string_length_limit:
            raise ProtocolError(f"Length {size} exceeds limit", ProtocolErrorKind.SIZE_LIMIT)
        return self.trans.read(size)

    def _check_container_length(self, size: int) -> None:
        if size < 0:
            raise ProtocolError(f"Negative container size: {size}", ProtocolErrorKind.NEGATIVE_SIZE)
        if self.container_length_limit is not None and size > self.container_length_limit:
            raise ProtocolError(f"Container size {size} exceeds limit", ProtocolErrorKind.SIZE_LIMIT)


class TBinaryProtocolFactory:
    """Builds protocols with shared options; usable as a client protocol factory."""

    def __init__(self, strict_read: bool = False, strict_write: bool = True) -> None:
        self.strict_read = strict_read
        self.strict_write = strict_write

    def __call__(self, trans: Transport) -> TBinaryProtocol:
        return TBinaryProtocol(trans, strict_read=self.strict_read, strict_write=self.strict_write)
