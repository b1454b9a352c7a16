"""Per-type read and write code for the binary protocol.

Every logical type maps to a fixed sequence of protocol calls.  The
functions here produce that sequence as IR statements; structs.py and
service.py stitch them together into whole methods.
"""

from dataclasses import dataclass

from thriftgen.proto.types import TType

from .ir import (
    AddElement,
    Assign,
    ContainerKind,
    Expr,
    ExprStmt,
    ForEach,
    ForRange,
    Len,
    Name,
    NameAllocator,
    NewContainer,
    SetItem,
    Stmt,
    attr,
    method_call,
    stmt,
)
from .resolver import InternalError, Resolver, TypeMisuseError, TypeDefinition, unreachable
from .types import (
    BaseKind,
    BaseType,
    ContainerType,
    EnumDefinition,
    Identifier,
    ListType,
    LogicalType,
    MapType,
    SetType,
    StructDefinition,
    TypedefDefinition,
    VoidType,
)

READ_METHODS: dict[BaseKind, str] = {
    BaseKind.BOOL: "read_bool",
    BaseKind.BYTE: "read_byte",
    BaseKind.I8: "read_byte",
    BaseKind.I16: "read_i16",
    BaseKind.I32: "read_i32",
    BaseKind.I64: "read_i64",
    BaseKind.DOUBLE: "read_double",
    BaseKind.STRING: "read_string",
    BaseKind.BINARY: "read_binary",
}

WRITE_METHODS: dict[BaseKind, str] = {
    kind: method.replace("read_", "write_", 1) for kind, method in READ_METHODS.items()
}


@dataclass(frozen=True)
class GenContext:
    """State shared while generating one method.

    ``field_type`` is the wire type read from the current field header; it
    is only set while decoding a struct field.
    """

    resolver: Resolver
    names: NameAllocator
    iprot: str = "iprot"
    oprot: str = "oprot"
    field_type: Expr | None = None


def ttype_expr(ttype: TType) -> Expr:
    return attr("TType", ttype.name)


def _container_kind(t: ContainerType) -> ContainerKind:
    if isinstance(t, ListType):
        return ContainerKind.LIST
    if isinstance(t, SetType):
        return ContainerKind.SET
    if isinstance(t, MapType):
        return ContainerKind.MAP
    unreachable(t)


def _check_element(t: LogicalType, ctx: GenContext) -> None:
    if isinstance(ctx.resolver.unwrap(t), VoidType):
        raise TypeMisuseError("void cannot be used as a container element")


def emit_read(t: LogicalType, target: str, ctx: GenContext) -> list[Stmt]:
    """Statements that read a value of type ``t`` and bind it to ``target``."""
    if isinstance(t, BaseType):
        return [Assign(target, method_call(ctx.iprot, READ_METHODS[t.kind]))]
    if isinstance(t, Identifier):
        return _read_definition(ctx.resolver.resolve_type(t.name), target, ctx)
    if isinstance(t, ListType | SetType | MapType):
        return _read_container(t, target, ctx)
    if isinstance(t, VoidType):
        if ctx.field_type is None:
            raise TypeMisuseError("void is only valid as a function return type")
        return [stmt(ctx.iprot, "skip", ctx.field_type)]
    unreachable(t)


def _read_definition(definition: TypeDefinition, target: str, ctx: GenContext) -> list[Stmt]:
    if isinstance(definition, StructDefinition):
        return [Assign(target, method_call(definition.name, "read", Name(ctx.iprot)))]
    if isinstance(definition, EnumDefinition):
        # Unknown values are passed through as plain ints.
        return [Assign(target, method_call(ctx.iprot, READ_METHODS[BaseKind.I32]))]
    if isinstance(definition, TypedefDefinition):
        return emit_read(ctx.resolver.unwrap(definition.type), target, ctx)
    unreachable(definition)


def _read_container(t: ContainerType, target: str, ctx: GenContext) -> list[Stmt]:
    kind = _container_kind(t)
    meta = ctx.names.fresh("meta")
    index = ctx.names.fresh("i")

    body: list[Stmt]
    if isinstance(t, MapType):
        _check_element(t.key, ctx)
        _check_element(t.value, ctx)
        key = ctx.names.fresh("key")
        value = ctx.names.fresh("value")
        body = [
            *emit_read(t.key, key, ctx),
            *emit_read(t.value, value, ctx),
            SetItem(Name(target), Name(key), Name(value)),
        ]
    else:
        _check_element(t.element, ctx)
        element = ctx.names.fresh("elem")
        body = [
            *emit_read(t.element, element, ctx),
            AddElement(Name(target), kind, Name(element)),
        ]

    return [
        Assign(target, NewContainer(kind)),
        Assign(meta, method_call(ctx.iprot, f"read_{kind}_begin")),
        ForRange(index, attr(meta, "size"), tuple(body)),
        stmt(ctx.iprot, f"read_{kind}_end"),
    ]


def emit_write(t: LogicalType, source: Expr, ctx: GenContext) -> list[Stmt]:
    """Statements that write the value of ``source``, which has type ``t``."""
    if isinstance(t, BaseType):
        return [stmt(ctx.oprot, WRITE_METHODS[t.kind], source)]
    if isinstance(t, Identifier):
        return _write_definition(ctx.resolver.resolve_type(t.name), source, ctx)
    if isinstance(t, ListType | SetType | MapType):
        return _write_container(t, source, ctx)
    if isinstance(t, VoidType):
        return []
    unreachable(t)


def _write_definition(definition: TypeDefinition, source: Expr, ctx: GenContext) -> list[Stmt]:
    if isinstance(definition, StructDefinition):
        return [ExprStmt(method_call(source, "write", Name(ctx.oprot)))]
    if isinstance(definition, EnumDefinition):
        return [stmt(ctx.oprot, WRITE_METHODS[BaseKind.I32], source)]
    if isinstance(definition, TypedefDefinition):
        return emit_write(ctx.resolver.unwrap(definition.type), source, ctx)
    unreachable(definition)


def _write_container(t: ContainerType, source: Expr, ctx: GenContext) -> list[Stmt]:
    kind = _container_kind(t)
    wire = ctx.resolver.wire_type

    if isinstance(t, MapType):
        _check_element(t.key, ctx)
        _check_element(t.value, ctx)
        key = ctx.names.fresh("key")
        value = ctx.names.fresh("value")
        return [
            stmt(
                ctx.oprot,
                "write_map_begin",
                ttype_expr(wire(t.key)),
                ttype_expr(wire(t.value)),
                Len(source),
            ),
            ForEach(
                (key, value),
                method_call(source, "items"),
                (*emit_write(t.key, Name(key), ctx), *emit_write(t.value, Name(value), ctx)),
            ),
            stmt(ctx.oprot, "write_map_end"),
        ]

    _check_element(t.element, ctx)
    element = ctx.names.fresh("elem")
    return [
        stmt(ctx.oprot, f"write_{kind}_begin", ttype_expr(wire(t.element)), Len(source)),
        ForEach((element,), source, tuple(emit_write(t.element, Name(element), ctx))),
        stmt(ctx.oprot, f"write_{kind}_end"),
    ]


def skip_field(ctx: GenContext) -> Stmt:
    """Skip the value of the field whose header was just read."""
    if ctx.field_type is None:
        raise InternalError("skip_field used outside of a struct field")
    return stmt(ctx.iprot, "skip", ctx.field_type)
