"""Type definitions for Thrift IDL documents.

``LogicalType`` and ``Definition`` are closed unions: every dispatch over
them ends in ``resolver.unreachable`` so a new variant shows up as a type
error at each match site.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TypeAlias

from dataclasses_json import DataClassJsonMixin


class BaseKind(StrEnum):
    """Scalar Thrift types."""

    BOOL = "bool"
    BYTE = "byte"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    DOUBLE = "double"
    STRING = "string"
    BINARY = "binary"


class Requiredness(StrEnum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    DEFAULT = "default"


class StructKind(StrEnum):
    STRUCT = "struct"
    UNION = "union"
    EXCEPTION = "exception"


@dataclass
class BaseType(DataClassJsonMixin):
    kind: BaseKind


@dataclass
class ListType(DataClassJsonMixin):
    element: LogicalType


@dataclass
class SetType(DataClassJsonMixin):
    element: LogicalType


@dataclass
class MapType(DataClassJsonMixin):
    key: LogicalType
    value: LogicalType


@dataclass
class Identifier(DataClassJsonMixin):
    """A named reference, resolved lazily against the document's definitions."""

    name: str


@dataclass
class VoidType(DataClassJsonMixin):
    pass


ContainerType: TypeAlias = ListType | SetType | MapType
LogicalType: TypeAlias = BaseType | ListType | SetType | MapType | Identifier | VoidType


@dataclass
class IntConstant(DataClassJsonMixin):
    value: int


@dataclass
class DoubleConstant(DataClassJsonMixin):
    value: float


@dataclass
class StringLiteral(DataClassJsonMixin):
    value: str


@dataclass
class BoolLiteral(DataClassJsonMixin):
    value: bool


@dataclass
class ConstIdentifier(DataClassJsonMixin):
    """A reference to another constant or an enum member, e.g. ``Color.RED``."""

    name: str


@dataclass
class ConstList(DataClassJsonMixin):
    elements: list[ConstValue]


@dataclass
class ConstMapEntry(DataClassJsonMixin):
    key: ConstValue
    value: ConstValue


@dataclass
class ConstMap(DataClassJsonMixin):
    entries: list[ConstMapEntry]


ConstValue: TypeAlias = (
    IntConstant
    | DoubleConstant
    | StringLiteral
    | BoolLiteral
    | ConstIdentifier
    | ConstList
    | ConstMap
)


@dataclass
class FieldDefinition(DataClassJsonMixin):
    """A field of a struct, union, exception, argument list or throws clause.

    ``field_id`` is only ``None`` straight out of the parser; validation
    rejects documents that leave it unset.
    """

    name: str
    field_id: int | None
    type: LogicalType
    requiredness: Requiredness = Requiredness.DEFAULT
    default: ConstValue | None = None
    annotations: dict[str, str] = field(default_factory=dict)
    line: int | None = None


@dataclass
class StructDefinition(DataClassJsonMixin):
    """A struct, union or exception: named, ordered fields."""

    name: str
    fields: list[FieldDefinition]
    kind: StructKind = StructKind.STRUCT
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class EnumMember(DataClassJsonMixin):
    name: str
    value: int


@dataclass
class EnumDefinition(DataClassJsonMixin):
    name: str
    members: list[EnumMember]


@dataclass
class TypedefDefinition(DataClassJsonMixin):
    name: str
    type: LogicalType


@dataclass
class ConstDefinition(DataClassJsonMixin):
    name: str
    type: LogicalType
    value: ConstValue


@dataclass
class FunctionDefinition(DataClassJsonMixin):
    name: str
    return_type: LogicalType
    arguments: list[FieldDefinition]
    throws: list[FieldDefinition] = field(default_factory=list)
    oneway: bool = False


@dataclass
class ServiceDefinition(DataClassJsonMixin):
    name: str
    functions: list[FunctionDefinition]
    extends: str | None = None


Definition: TypeAlias = (
    StructDefinition | EnumDefinition | TypedefDefinition | ConstDefinition | ServiceDefinition
)


@dataclass
class Namespace(DataClassJsonMixin):
    scope: str
    name: str


@dataclass
class Include(DataClassJsonMixin):
    path: str


@dataclass
class Document(DataClassJsonMixin):
    """A parsed Thrift file, possibly with its includes merged in."""

    definitions: list[Definition]
    namespaces: list[Namespace] = field(default_factory=list)
    includes: list[Include] = field(default_factory=list)

    def of_type(self, class_type: type) -> list:
        return [d for d in self.definitions if isinstance(d, class_type)]
