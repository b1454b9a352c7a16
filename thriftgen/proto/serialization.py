"""Base classes and errors shared by generated thrift types."""

from dataclasses import dataclass, fields
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Self

from .types import TType

if TYPE_CHECKING:
    from .binary import TBinaryProtocol


class ProtocolErrorKind(IntEnum):
    UNKNOWN = 0
    INVALID_DATA = 1
    NEGATIVE_SIZE = 2
    SIZE_LIMIT = 3
    BAD_VERSION = 4
    NOT_IMPLEMENTED = 5
    DEPTH_LIMIT = 6
    MISSING_REQUIRED_FIELD = 7


class ProtocolError(RuntimeError):
    """Raised when bytes on the wire cannot be turned into a value."""

    def __init__(self, message: str, kind: ProtocolErrorKind = ProtocolErrorKind.UNKNOWN) -> None:
        super().__init__(message)
        self.kind = kind


class ApplicationExceptionKind(IntEnum):
    UNKNOWN = 0
    UNKNOWN_METHOD = 1
    INVALID_MESSAGE_TYPE = 2
    WRONG_METHOD_NAME = 3
    BAD_SEQUENCE_ID = 4
    MISSING_RESULT = 5
    INTERNAL_ERROR = 6
    PROTOCOL_ERROR = 7


class Struct:
    """Base class for generated struct types.

    Subclasses are @dataclass decorated; generated code overrides
    ``write`` and ``read``.

    Example:
        @dataclass
        class Point(Struct):
            x: int | None = None
            y: int | None = None
    """

    def write(self, oprot: "TBinaryProtocol") -> None:
        """Encode this struct. Generated code overrides this."""
        raise NotImplementedError("write() must be implemented by generated code")

    @classmethod
    def read(cls, iprot: "TBinaryProtocol") -> Self:
        """Decode a struct from ``iprot``. Generated code overrides this."""
        raise NotImplementedError("read() must be implemented by generated code")


class ThriftUnion(Struct):
    """Base class for generated unions: at most one field may be set."""

    def __post_init__(self) -> None:
        present = [f.name for f in fields(self) if getattr(self, f.name) is not None]  # type: ignore[arg-type]
        if len(present) > 1:
            raise ProtocolError(
                f"{type(self).__name__} is a union but has {len(present)} fields set: "
                + ", ".join(present),
                ProtocolErrorKind.INVALID_DATA,
            )


class ThriftException(Struct, Exception):
    """Base class for generated exception types."""

    def __str__(self) -> str:
        return repr(self)


@dataclass(eq=True)
class ApplicationException(ThriftException):
    """Protocol-level failure not modelled by a method's declared exceptions."""

    message: str | None = None
    type: int = ApplicationExceptionKind.UNKNOWN

    def __str__(self) -> str:
        return self.message or f"application exception {self.type}"

    def write(self, oprot: "TBinaryProtocol") -> None:
        oprot.write_struct_begin("ApplicationException")
        if self.message is not None:
            oprot.write_field_begin("message", TType.STRING, 1)
            oprot.write_string(self.message)
            oprot.write_field_end()
        oprot.write_field_begin("type", TType.I32, 2)
        oprot.write_i32(self.type)
        oprot.write_field_end()
        oprot.write_field_stop()
        oprot.write_struct_end()

    @classmethod
    def read(cls, iprot: "TBinaryProtocol") -> Self:
        args: dict[str, Any] = {}
        iprot.read_struct_begin()
        while True:
            field = iprot.read_field_begin()
            if field.ttype == TType.STOP:
                break
            if field.fid == 1 and field.ttype == TType.STRING:
                args["message"] = iprot.read_string()
            elif field.fid == 2 and field.ttype == TType.I32:
                args["type"] = iprot.read_i32()
            else:
                iprot.skip(field.ttype)
            iprot.read_field_end()
        iprot.read_struct_end()
        return cls(**args)
