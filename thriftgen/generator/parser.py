"""Thrift IDL parser using Lark."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lark import Lark, Token
from lark.exceptions import UnexpectedInput
from lark.visitors import Transformer, v_args

from .types import (
    BaseKind,
    BaseType,
    BoolLiteral,
    ConstDefinition,
    ConstIdentifier,
    ConstList,
    ConstMap,
    ConstMapEntry,
    ConstValue,
    Document,
    DoubleConstant,
    EnumDefinition,
    EnumMember,
    FieldDefinition,
    FunctionDefinition,
    Identifier,
    Include,
    IntConstant,
    ListType,
    LogicalType,
    MapType,
    Namespace,
    Requiredness,
    ServiceDefinition,
    SetType,
    StringLiteral,
    StructDefinition,
    StructKind,
    TypedefDefinition,
    VoidType,
)

_g_parser: Lark | None = None


class ValidationError(RuntimeError):
    """Raised when a Thrift document is malformed or inconsistent."""


@dataclass
class _FieldId:
    value: int


@dataclass
class _Requiredness:
    value: Requiredness


@dataclass
class _Annotation:
    name: str
    value: str


@dataclass
class _Annotations:
    value: dict[str, str]


@dataclass
class _EnumValue:
    name: str
    value: int | None


@dataclass
class _Extends:
    value: str


@dataclass
class _Oneway:
    pass


@dataclass
class _Throws:
    fields: list[FieldDefinition]


def _filter(args: list[Any], class_type: Any) -> list[Any]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: Any) -> Any:
    filtered = _filter(args, class_type)
    if len(filtered) == 0:
        return None
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")
    return filtered[0]


def _annotations(args: list[Any]) -> dict[str, str]:
    found = _find_one(args, _Annotations)
    return found.value if found else {}


def _parse_int(text: str) -> int:
    sign = -1 if text.startswith("-") else 1
    digits = text.lstrip("+-")
    if digits.lower().startswith("0x"):
        return sign * int(digits, 16)
    return sign * int(digits, 10)


def _unquote(text: str) -> str:
    return text[1:-1].replace('\\"', '"').replace("\\'", "'").replace("\\\\", "\\")


def _struct_like(args: list[Any], kind: StructKind) -> StructDefinition:
    return StructDefinition(
        name=str(_find_one(args, Token)),
        fields=_filter(args, FieldDefinition),
        kind=kind,
        annotations=_annotations(args),
    )


class TreeTransformer(Transformer):
    """Transform parse tree into a Document."""

    def start(self, args: list[Any]) -> Document:
        return Document(
            definitions=_filter(
                args,
                StructDefinition
                | EnumDefinition
                | TypedefDefinition
                | ConstDefinition
                | ServiceDefinition,
            ),
            namespaces=_filter(args, Namespace),
            includes=_filter(args, Include),
        )

    def include(self, args: list[Any]) -> Include:
        return Include(path=_unquote(args[0]))

    def cpp_include(self, _args: list[Any]) -> None:
        return None

    def namespace(self, args: list[Any]) -> Namespace:
        return Namespace(scope=str(args[0]), name=str(args[1]))

    def const(self, args: list[Any]) -> ConstDefinition:
        return ConstDefinition(name=str(args[1]), type=args[0], value=args[2])

    def typedef(self, args: list[Any]) -> TypedefDefinition:
        return TypedefDefinition(name=str(args[1]), type=args[0])

    def enum(self, args: list[Any]) -> EnumDefinition:
        members: list[EnumMember] = []
        next_value = 0
        for value in _filter(args, _EnumValue):
            if value.value is not None:
                next_value = value.value
            members.append(EnumMember(name=value.name, value=next_value))
            next_value += 1
        return EnumDefinition(name=str(args[0]), members=members)

    def enum_value(self, args: list[Any]) -> _EnumValue:
        number = next((a for a in args[1:] if isinstance(a, Token)), None)
        return _EnumValue(name=str(args[0]), value=_parse_int(number) if number else None)

    def struct(self, args: list[Any]) -> StructDefinition:
        return _struct_like(args, StructKind.STRUCT)

    def union(self, args: list[Any]) -> StructDefinition:
        return _struct_like(args, StructKind.UNION)

    def exception(self, args: list[Any]) -> StructDefinition:
        return _struct_like(args, StructKind.EXCEPTION)

    def service(self, args: list[Any]) -> ServiceDefinition:
        extends = _find_one(args, _Extends)
        return ServiceDefinition(
            name=str(_find_one(args, Token)),
            functions=_filter(args, FunctionDefinition),
            extends=extends.value if extends else None,
        )

    def extends(self, args: list[Any]) -> _Extends:
        return _Extends(value=str(args[0]))

    def function(self, args: list[Any]) -> FunctionDefinition:
        throws = _find_one(args, _Throws)
        return FunctionDefinition(
            name=str(_find_one(args, Token)),
            return_type=_find_one(args, LogicalType),
            arguments=_filter(args, FieldDefinition),
            throws=throws.fields if throws else [],
            oneway=_find_one(args, _Oneway) is not None,
        )

    def oneway(self, _args: list[Any]) -> _Oneway:
        return _Oneway()

    def throws(self, args: list[Any]) -> _Throws:
        return _Throws(fields=_filter(args, FieldDefinition))

    @v_args(meta=True)
    def field(self, meta: Any, args: list[Any]) -> FieldDefinition:
        field_id = _find_one(args, _FieldId)
        requiredness = _find_one(args, _Requiredness)
        return FieldDefinition(
            name=str(_find_one(args, Token)),
            field_id=field_id.value if field_id else None,
            type=_find_one(args, LogicalType),
            requiredness=requiredness.value if requiredness else Requiredness.DEFAULT,
            default=_find_one(args, ConstValue),
            annotations=_annotations(args),
            line=getattr(meta, "line", None),
        )

    def field_id(self, args: list[Any]) -> _FieldId:
        return _FieldId(value=_parse_int(args[0]))

    def requiredness(self, args: list[Any]) -> _Requiredness:
        return _Requiredness(value=Requiredness(str(args[0])))

    def base_type(self, args: list[Any]) -> BaseType:
        return BaseType(kind=BaseKind(str(args[0])))

    def identifier_type(self, args: list[Any]) -> Identifier:
        return Identifier(name=str(args[0]))

    def map_type(self, args: list[Any]) -> MapType:
        return MapType(key=args[0], value=args[1])

    def set_type(self, args: list[Any]) -> SetType:
        return SetType(element=args[0])

    def list_type(self, args: list[Any]) -> ListType:
        return ListType(element=args[0])

    def void_type(self, _args: list[Any]) -> VoidType:
        return VoidType()

    def const_int(self, args: list[Any]) -> IntConstant:
        return IntConstant(value=_parse_int(args[0]))

    def const_double(self, args: list[Any]) -> DoubleConstant:
        return DoubleConstant(value=float(args[0]))

    def const_string(self, args: list[Any]) -> StringLiteral:
        return StringLiteral(value=_unquote(args[0]))

    def const_true(self, _args: list[Any]) -> BoolLiteral:
        return BoolLiteral(value=True)

    def const_false(self, _args: list[Any]) -> BoolLiteral:
        return BoolLiteral(value=False)

    def const_identifier(self, args: list[Any]) -> ConstIdentifier:
        return ConstIdentifier(name=str(args[0]))

    def const_list(self, args: list[Any]) -> ConstList:
        return ConstList(elements=list(args))

    def const_map(self, args: list[Any]) -> ConstMap:
        return ConstMap(
            entries=[ConstMapEntry(key=k, value=v) for k, v in zip(args[::2], args[1::2])]
        )

    def annotations(self, args: list[Any]) -> _Annotations:
        return _Annotations(value={a.name: a.value for a in args})

    def annotation(self, args: list[Any]) -> _Annotation:
        return _Annotation(name=str(args[0]), value=_unquote(args[1]) if len(args) > 1 else "")


def _validate_fields(owner: str, fields: list[FieldDefinition]) -> None:
    seen: set[int] = set()
    for f in fields:
        if f.field_id is None:
            where = f" (line {f.line})" if f.line else ""
            raise ValidationError(f"Field {f.name} of {owner} has no field id{where}")
        if f.field_id in seen:
            raise ValidationError(f"Field id {f.field_id} is used more than once in {owner}")
        seen.add(f.field_id)


def validate(document: Document) -> None:
    """Validate a parsed (or merged) document."""
    names: set[str] = set()
    for definition in document.definitions:
        if definition.name in names:
            raise ValidationError(f"{definition.name} is defined more than once")
        names.add(definition.name)

        if isinstance(definition, StructDefinition):
            _validate_fields(definition.name, definition.fields)
        elif isinstance(definition, ServiceDefinition):
            functions: set[str] = set()
            for function in definition.functions:
                if function.name in functions:
                    raise ValidationError(
                        f"Function {function.name} is defined more than once in {definition.name}"
                    )
                functions.add(function.name)
                owner = f"{definition.name}.{function.name}"
                _validate_fields(owner, function.arguments)
                _validate_fields(f"{owner} throws", function.throws)
                if function.oneway and (function.throws or not isinstance(function.return_type, VoidType)):
                    raise ValidationError(f"Oneway function {owner} must return void and not throw")


def parse(text: str) -> Document:
    """Parse a Thrift IDL document."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/thrift.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(grammar, parser="lalr", propagate_positions=True)

    try:
        tree = _g_parser.parse(text)
    except UnexpectedInput as e:
        raise ValidationError(f"Syntax error at line {e.line}, column {e.column}") from e

    document: Document = TreeTransformer().transform(tree)
    validate(document)
    return document


def load(path: str | Path) -> Document:
    """Parse a Thrift file, merging the definitions of everything it includes."""
    return _load(Path(path), set())


def _load(path: Path, seen: set[Path]) -> Document:
    resolved = path.resolve()
    if resolved in seen:
        return Document(definitions=[])
    seen.add(resolved)

    document = parse(path.read_text(encoding="utf-8"))
    definitions = []
    for include in document.includes:
        definitions.extend(_load(path.parent / include.path, seen).definitions)
    definitions.extend(document.definitions)

    merged = Document(
        definitions=definitions, namespaces=document.namespaces, includes=document.includes
    )
    validate(merged)
    return merged
