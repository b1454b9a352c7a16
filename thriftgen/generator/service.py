"""Client and processor classes for Thrift services.

Each function gets an ``<Service><Function>Args`` struct holding its
arguments and, unless it is oneway, a ``<Service><Function>Result`` struct
whose field 0 is the return value and whose remaining fields are the
declared exceptions.
"""

from thriftgen.proto.types import TType

from .codec import ttype_expr
from .ir import (
    Assign,
    BinOp,
    Case,
    ClassDef,
    Compare,
    Expr,
    ExprStmt,
    If,
    IsInstance,
    Literal,
    Name,
    Procedure,
    Return,
    Stmt,
    Switch,
    attr,
    call,
    method_call,
    stmt,
)
from .resolver import Resolver, TypeMisuseError
from .types import (
    FieldDefinition,
    FunctionDefinition,
    Identifier,
    Requiredness,
    ServiceDefinition,
    StructDefinition,
    StructKind,
    VoidType,
)
from .util import CLIENT_RESERVED, py_name, to_camel_case


def args_name(service: ServiceDefinition, function: FunctionDefinition) -> str:
    return f"{service.name}{to_camel_case(function.name)}Args"


def result_name(service: ServiceDefinition, function: FunctionDefinition) -> str:
    return f"{service.name}{to_camel_case(function.name)}Result"


def helper_structs(service: ServiceDefinition) -> list[StructDefinition]:
    """Argument and result structs for every function declared on ``service``."""
    structs = []
    for function in service.functions:
        structs.append(
            StructDefinition(name=args_name(service, function), fields=function.arguments)
        )
        if function.oneway:
            continue
        success = FieldDefinition(
            name="success",
            field_id=0,
            type=function.return_type,
            requiredness=Requiredness.OPTIONAL,
        )
        structs.append(
            StructDefinition(
                name=result_name(service, function), fields=[success, *function.throws]
            )
        )
    return structs


def _is_void(function: FunctionDefinition, resolver: Resolver) -> bool:
    return isinstance(resolver.unwrap(function.return_type), VoidType)


def _exception_class(f: FieldDefinition, function: FunctionDefinition, resolver: Resolver) -> str:
    t = resolver.unwrap(f.type)
    if isinstance(t, Identifier):
        definition = resolver.resolve_type(t.name)
        if isinstance(definition, StructDefinition) and definition.kind == StructKind.EXCEPTION:
            return definition.name
    raise TypeMisuseError(f"{f.name} in the throws clause of {function.name} is not an exception")


def _arg_names(function: FunctionDefinition) -> list[str]:
    return [py_name(a.name) for a in function.arguments]


# Client


def _client_call(function: FunctionDefinition) -> Procedure:
    arguments = _arg_names(function)
    body: list[Stmt] = [
        Assign("_seqid", method_call("self", f"send_{function.name}", *map(Name, arguments)))
    ]
    if function.oneway:
        body.append(Return(method_call("self", "_completed")))
    else:
        body.append(Return(method_call("self", "_register", Name("_seqid"))))
    return Procedure(
        py_name(function.name, CLIENT_RESERVED),
        ("self", *arguments),
        tuple(body),
        returns="Future",
    )


def _client_send(service: ServiceDefinition, function: FunctionDefinition) -> Procedure:
    arguments = _arg_names(function)
    mtype = "ONEWAY" if function.oneway else "CALL"
    payload = call(Name(args_name(service, function)), **{a: Name(a) for a in arguments})
    body: tuple[Stmt, ...] = (
        Assign("_seqid", method_call("self", "new_seqid")),
        Assign("_oprot", call(attr("self", "_protocol_factory"), attr("self", "_transport"))),
        stmt(
            "_oprot",
            "write_message_begin",
            Literal(function.name),
            attr("TMessageType", mtype),
            Name("_seqid"),
        ),
        Assign("_args", payload),
        stmt("_args", "write", Name("_oprot")),
        stmt("_oprot", "write_message_end"),
        stmt(attr("self", "_transport"), "flush"),
        Return(Name("_seqid")),
    )
    return Procedure(f"send_{function.name}", ("self", *arguments), body, returns="int")


def _client_recv(
    service: ServiceDefinition, function: FunctionDefinition, resolver: Resolver
) -> Procedure:
    rseqid = Name("rseqid")
    body: list[Stmt] = [
        If(
            Compare(Name("mtype"), "==", attr("TMessageType", "EXCEPTION")),
            (
                Assign("error", method_call("ApplicationException", "read", Name("iprot"))),
                stmt("iprot", "read_message_end"),
                stmt("self", "_fail", rseqid, Name("error")),
                Return(),
            ),
        ),
        Assign("result", method_call(result_name(service, function), "read", Name("iprot"))),
        stmt("iprot", "read_message_end"),
    ]

    void = _is_void(function, resolver)
    if not void:
        success = attr("result", "success")
        body.append(
            If(
                Compare(success, "is not", Literal(None)),
                (stmt("self", "_resolve", rseqid, success), Return()),
            )
        )
    for f in function.throws:
        thrown = attr("result", py_name(f.name))
        body.append(
            If(
                Compare(thrown, "is not", Literal(None)),
                (stmt("self", "_fail", rseqid, thrown), Return()),
            )
        )

    if void:
        body.append(stmt("self", "_resolve", rseqid, Literal(None)))
    else:
        unknown = call(
            Name("ApplicationException"),
            message=Literal(f"{function.name} failed: unknown result"),
            type=attr("ApplicationExceptionKind", "MISSING_RESULT"),
        )
        body.append(stmt("self", "_fail", rseqid, unknown))

    return Procedure(
        f"recv_{function.name}", ("self", "iprot", "mtype", "rseqid"), tuple(body), returns="None"
    )


def client_class(service: ServiceDefinition, resolver: Resolver) -> ClassDef:
    """``<Service>Client``: one call/send/recv triple per declared function."""
    parent = resolver.parent(service)
    methods: list[Procedure] = []
    for function in service.functions:
        methods.append(_client_call(function))
        methods.append(_client_send(service, function))
        if not function.oneway:
            methods.append(_client_recv(service, function, resolver))

    return ClassDef(
        name=f"{service.name}Client",
        bases=(f"{parent.name}Client" if parent else "ClientBase",),
        methods=tuple(methods),
        doc=f"Client for the {service.name} service.",
    )


# Processor


def _write_message(name: Expr, mtype: str, seqid: Expr, payload: Expr) -> list[Stmt]:
    return [
        stmt("oprot", "write_message_begin", name, attr("TMessageType", mtype), seqid),
        ExprStmt(method_call(payload, "write", Name("oprot"))),
        stmt("oprot", "write_message_end"),
        stmt(attr("oprot", "trans"), "flush"),
    ]


def _process(service: ServiceDefinition, resolver: Resolver) -> Procedure:
    msg_name = attr("msg", "name")
    msg_seqid = attr("msg", "seqid")
    cases = tuple(
        Case(
            Literal(function.name),
            (
                Return(
                    method_call(
                        "self",
                        f"process_{function.name}",
                        msg_seqid,
                        Name("iprot"),
                        Name("oprot"),
                        Name("context"),
                    )
                ),
            ),
        )
        for function in resolver.service_functions(service)
    )
    unknown = call(
        Name("ApplicationException"),
        message=BinOp(Literal("Unknown function "), "+", msg_name),
        type=attr("ApplicationExceptionKind", "UNKNOWN_METHOD"),
    )
    default: tuple[Stmt, ...] = (
        stmt("logger", "warning", Literal("Unknown function %s"), msg_name),
        stmt("iprot", "skip", ttype_expr(TType.STRUCT)),
        stmt("iprot", "read_message_end"),
        Assign("error", unknown),
        *_write_message(msg_name, "EXCEPTION", msg_seqid, Name("error")),
        Return(Literal(None)),
    )
    body: tuple[Stmt, ...] = (
        Assign("msg", method_call("iprot", "read_message_begin")),
        Switch(msg_name, cases, default),
    )
    return Procedure(
        "process",
        ("self", "iprot", "oprot", "context=None"),
        body,
        returns="Completion | None",
        doc="Read one request and hand it to the handler.",
    )


def _process_function(service: ServiceDefinition, function: FunctionDefinition) -> Procedure:
    handler = attr("self", "_handler", py_name(function.name))
    arguments = [attr("args", name) for name in _arg_names(function)]
    body: list[Stmt] = [
        Assign("args", method_call(args_name(service, function), "read", Name("iprot"))),
        stmt("iprot", "read_message_end"),
        Assign("future", call(Name("invoke"), handler, *arguments, Name("context"))),
    ]
    if not function.oneway:
        reply = call(
            Name("partial"), attr("self", f"reply_{function.name}"), Name("seqid"), Name("oprot")
        )
        body.append(stmt("future", "add_done_callback", reply))
    body.append(Return(Name("future")))
    return Procedure(
        f"process_{function.name}",
        ("self", "seqid", "iprot", "oprot", "context"),
        tuple(body),
        returns="Completion",
    )


def _reply_function(
    service: ServiceDefinition, function: FunctionDefinition, resolver: Resolver
) -> Procedure:
    name = Literal(function.name)
    seqid = Name("seqid")
    result_class = Name(result_name(service, function))

    if _is_void(function, resolver):
        success = call(result_class)
    else:
        success = call(result_class, success=method_call("future", "result"))

    body: list[Stmt] = [
        Assign("error", method_call("future", "exception")),
        If(
            Compare(Name("error"), "is", Literal(None)),
            (
                Assign("result", success),
                *_write_message(name, "REPLY", seqid, Name("result")),
                Return(),
            ),
        ),
    ]
    for f in function.throws:
        declared = Name(_exception_class(f, function, resolver))
        body.append(
            If(
                IsInstance(Name("error"), declared),
                (
                    Assign("result", call(result_class, **{py_name(f.name): Name("error")})),
                    *_write_message(name, "REPLY", seqid, Name("result")),
                    Return(),
                ),
            )
        )

    undeclared = call(
        Name("ApplicationException"),
        message=call(Name("str"), Name("error")),
        type=attr("ApplicationExceptionKind", "UNKNOWN"),
    )
    body.extend(
        [
            stmt("logger", "debug", Literal(f"{function.name} raised %r"), Name("error")),
            Assign("error", undeclared),
            *_write_message(name, "EXCEPTION", seqid, Name("error")),
        ]
    )
    return Procedure(
        f"reply_{function.name}", ("self", "seqid", "oprot", "future"), tuple(body), returns="None"
    )


def processor_class(service: ServiceDefinition, resolver: Resolver) -> ClassDef:
    """``<Service>Processor``: dispatches requests to a handler object."""
    parent = resolver.parent(service)
    methods: list[Procedure] = [_process(service, resolver)]
    for function in service.functions:
        methods.append(_process_function(service, function))
        if not function.oneway:
            methods.append(_reply_function(service, function, resolver))

    return ClassDef(
        name=f"{service.name}Processor",
        bases=(f"{parent.name}Processor" if parent else "ProcessorBase",),
        methods=tuple(methods),
        doc=f"Processor for the {service.name} service.",
    )
