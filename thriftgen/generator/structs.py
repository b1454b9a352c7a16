"""Struct, union and exception classes, and constant expressions."""

from dataclasses import replace

from thriftgen.proto.types import TType

from .codec import GenContext, emit_read, emit_write, skip_field, ttype_expr
from .ir import (
    Assign,
    BoolOp,
    Break,
    Case,
    ClassDef,
    Compare,
    Construct,
    ContainerKind,
    Display,
    Expr,
    FieldDecl,
    If,
    Literal,
    MapDisplay,
    Name,
    NameAllocator,
    NewContainer,
    Procedure,
    ProcedureKind,
    Raise,
    Return,
    SetItem,
    Stmt,
    Switch,
    While,
    attr,
    call,
    method_call,
    stmt,
)
from .parser import ValidationError
from .resolver import Resolver, TypeMisuseError, unreachable
from .types import (
    BaseKind,
    BaseType,
    BoolLiteral,
    ConstDefinition,
    ConstIdentifier,
    ConstList,
    ConstMap,
    ConstValue,
    DoubleConstant,
    EnumDefinition,
    FieldDefinition,
    Identifier,
    IntConstant,
    ListType,
    LogicalType,
    MapType,
    Requiredness,
    SetType,
    StringLiteral,
    StructDefinition,
    StructKind,
    VoidType,
)
from .util import py_name

BASE_CLASSES = {
    StructKind.STRUCT: "Struct",
    StructKind.UNION: "ThriftUnion",
    StructKind.EXCEPTION: "ThriftException",
}

STAGING = "_args"
FIELD = "_field"


def _is_void(t: LogicalType, resolver: Resolver) -> bool:
    return isinstance(resolver.unwrap(t), VoidType)


def _field_id(f: FieldDefinition, owner: str) -> int:
    if f.field_id is None:
        where = f" on line {f.line}" if f.line else ""
        raise ValidationError(f"Field {f.name} of {owner}{where} has no field id")
    return f.field_id


def _missing_required(definition: StructDefinition) -> Raise:
    return Raise(
        call(
            Name("ProtocolError"),
            Literal(f"Unable to read {definition.name} from input: missing required field"),
            attr("ProtocolErrorKind", "MISSING_REQUIRED_FIELD"),
        )
    )


def _decode_case(f: FieldDefinition, definition: StructDefinition, ctx: GenContext) -> Case:
    value = ctx.names.fresh("value")
    body: list[Stmt] = emit_read(f.type, value, ctx)
    if not _is_void(f.type, ctx.resolver):
        body.append(SetItem(Name(STAGING), Literal(py_name(f.name)), Name(value)))

    expected = ttype_expr(ctx.resolver.wire_type(f.type))
    return Case(
        Literal(_field_id(f, definition.name)),
        (If(Compare(attr(FIELD, "ttype"), "==", expected), tuple(body), (skip_field(ctx),)),),
    )


def decode_procedure(definition: StructDefinition, ctx: GenContext) -> Procedure:
    """``read`` classmethod: a field loop that tolerates unknown and mistyped fields."""
    field_ctx = replace(ctx, field_type=attr(FIELD, "ttype"))
    cases = tuple(_decode_case(f, definition, field_ctx) for f in definition.fields)

    loop: tuple[Stmt, ...] = (
        Assign(FIELD, method_call(ctx.iprot, "read_field_begin")),
        If(Compare(attr(FIELD, "ttype"), "==", ttype_expr(TType.STOP)), (Break(),)),
        Switch(attr(FIELD, "fid"), cases, (skip_field(field_ctx),)),
        stmt(ctx.iprot, "read_field_end"),
    )

    body: list[Stmt] = []
    if definition.fields:
        body.append(Assign(STAGING, NewContainer(ContainerKind.MAP)))
    body.extend(
        [
            stmt(ctx.iprot, "read_struct_begin"),
            While(Literal(True), loop),
            stmt(ctx.iprot, "read_struct_end"),
        ]
    )

    required = [f for f in definition.fields if f.requiredness == Requiredness.REQUIRED]
    if required:
        missing = tuple(
            Compare(Literal(py_name(f.name)), "not in", Name(STAGING)) for f in required
        )
        test = missing[0] if len(missing) == 1 else BoolOp("or", missing)
        body.append(If(test, (_missing_required(definition),)))

    if definition.fields:
        body.append(Return(Construct(Name("cls"), Name(STAGING))))
    else:
        body.append(Return(call(Name("cls"))))

    return Procedure(
        "read",
        ("cls", ctx.iprot),
        tuple(body),
        kind=ProcedureKind.CLASSMETHOD,
        returns=definition.name,
    )


def encode_procedure(definition: StructDefinition, ctx: GenContext) -> Procedure:
    """``write`` method: every set field in declaration order, then a stop byte."""
    body: list[Stmt] = [stmt(ctx.oprot, "write_struct_begin", Literal(definition.name))]

    for f in definition.fields:
        if _is_void(f.type, ctx.resolver):
            continue
        source = attr("self", py_name(f.name))
        write = (
            stmt(
                ctx.oprot,
                "write_field_begin",
                Literal(f.name),
                ttype_expr(ctx.resolver.wire_type(f.type)),
                Literal(_field_id(f, definition.name)),
            ),
            *emit_write(f.type, source, ctx),
            stmt(ctx.oprot, "write_field_end"),
        )
        if f.requiredness == Requiredness.REQUIRED:
            unset = Raise(
                call(
                    Name("ProtocolError"),
                    Literal(f"Required field {f.name} of {definition.name} is unset"),
                    attr("ProtocolErrorKind", "MISSING_REQUIRED_FIELD"),
                )
            )
            body.append(If(Compare(source, "is", Literal(None)), (unset,)))
            body.extend(write)
        else:
            body.append(If(Compare(source, "is not", Literal(None)), write))

    body.extend([stmt(ctx.oprot, "write_field_stop"), stmt(ctx.oprot, "write_struct_end")])
    return Procedure("write", ("self", ctx.oprot), tuple(body), returns="None")


def struct_class(
    definition: StructDefinition, resolver: Resolver, doc: str | None = None
) -> ClassDef:
    """Record class for a struct, union or exception, with its codec methods."""
    fields = []
    for f in definition.fields:
        if _is_void(f.type, resolver):
            continue
        default = None
        # A union with a default would always have that member set.
        if f.default is not None and definition.kind != StructKind.UNION:
            default = const_expr(f.default, f.type, resolver)
        fields.append(FieldDecl(py_name(f.name), f.type, default, f))

    return ClassDef(
        name=definition.name,
        bases=(BASE_CLASSES[definition.kind],),
        methods=(
            encode_procedure(definition, GenContext(resolver, NameAllocator())),
            decode_procedure(definition, GenContext(resolver, NameAllocator())),
        ),
        fields=tuple(fields),
        record=True,
        doc=doc,
    )


def _const_reference(name: str, resolver: Resolver) -> Expr:
    """Python expression for a constant or enum member named in the IDL."""
    if name in resolver:
        definition = resolver.resolve(name)
        if isinstance(definition, ConstDefinition):
            return Name(definition.name)

    head, _, member = name.rpartition(".")
    if head and head in resolver:
        definition = resolver.resolve(head)
        if isinstance(definition, EnumDefinition):
            if member not in {m.name for m in definition.members}:
                raise ValidationError(f"Enum {definition.name} has no member {member}")
            return attr(definition.name, member)

    raise ValidationError(f"Unknown constant {name}")


def const_expr(value: ConstValue, t: LogicalType, resolver: Resolver) -> Expr:
    """Python expression for a constant literal of type ``t``."""
    t = resolver.unwrap(t)

    if isinstance(value, IntConstant):
        if isinstance(t, BaseType) and t.kind == BaseKind.DOUBLE:
            return Literal(float(value.value))
        if isinstance(t, BaseType) and t.kind == BaseKind.BOOL:
            return Literal(bool(value.value))
        return Literal(value.value)
    if isinstance(value, DoubleConstant):
        return Literal(value.value)
    if isinstance(value, StringLiteral):
        if isinstance(t, BaseType) and t.kind == BaseKind.BINARY:
            return Literal(value.value.encode("utf-8"))
        return Literal(value.value)
    if isinstance(value, BoolLiteral):
        return Literal(value.value)
    if isinstance(value, ConstIdentifier):
        return _const_reference(value.name, resolver)
    if isinstance(value, ConstList):
        if isinstance(t, ListType):
            kind = ContainerKind.LIST
        elif isinstance(t, SetType):
            kind = ContainerKind.SET
        else:
            raise TypeMisuseError(f"List literal used as a value of type {t}")
        return Display(kind, tuple(const_expr(v, t.element, resolver) for v in value.elements))
    if isinstance(value, ConstMap):
        if isinstance(t, MapType):
            return MapDisplay(
                tuple(
                    (const_expr(e.key, t.key, resolver), const_expr(e.value, t.value, resolver))
                    for e in value.entries
                )
            )
        if isinstance(t, Identifier):
            return _struct_literal(value, t, resolver)
        raise TypeMisuseError(f"Map literal used as a value of type {t}")
    unreachable(value)


def _struct_literal(value: ConstMap, t: Identifier, resolver: Resolver) -> Expr:
    definition = resolver.resolve_type(t.name)
    if not isinstance(definition, StructDefinition):
        raise TypeMisuseError(f"Map literal used as a value of {definition.name}")

    fields = {f.name: f for f in definition.fields}
    kwargs: dict[str, Expr] = {}
    for entry in value.entries:
        if not isinstance(entry.key, StringLiteral) or entry.key.value not in fields:
            raise ValidationError(f"Invalid field name in constant of type {definition.name}")
        f = fields[entry.key.value]
        kwargs[py_name(f.name)] = const_expr(entry.value, f.type, resolver)
    return call(Name(definition.name), **kwargs)
