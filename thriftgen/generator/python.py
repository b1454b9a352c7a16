"""Python code generator for thrift documents."""

import logging
from importlib import resources

from jinja2 import Environment, PackageLoader

from thriftgen import __version__

from . import ir
from .resolver import InternalError, Resolver, unreachable
from .service import client_class, helper_structs, processor_class
from .structs import const_expr, struct_class
from .types import (
    BaseKind,
    BaseType,
    ConstDefinition,
    Document,
    EnumDefinition,
    Identifier,
    ListType,
    LogicalType,
    MapType,
    ServiceDefinition,
    SetType,
    StructDefinition,
    TypedefDefinition,
    VoidType,
)

RUNTIME_FILES = [
    "__init__.py",
    "types.py",
    "transport.py",
    "binary.py",
    "serialization.py",
    "runtime.py",
]

INDENT = "    "

logger = logging.getLogger(__name__)

env = Environment(
    loader=PackageLoader("thriftgen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("python.py.j2")

# Map thrift types to Python type annotations
PRIMITIVE_TYPE_MAP = {
    BaseKind.BOOL: "bool",
    BaseKind.BYTE: "int",
    BaseKind.I8: "int",
    BaseKind.I16: "int",
    BaseKind.I32: "int",
    BaseKind.I64: "int",
    BaseKind.DOUBLE: "float",
    BaseKind.STRING: "str",
    BaseKind.BINARY: "bytes",
}

# Annotations for the fixed parameters of generated methods
PARAM_TYPES = {
    "iprot": "TBinaryProtocol",
    "oprot": "TBinaryProtocol",
    "seqid": "int",
    "rseqid": "int",
    "mtype": "int",
    "future": "Completion",
}

NEW_CONTAINERS = {
    ir.ContainerKind.LIST: "[]",
    ir.ContainerKind.SET: "set()",
    ir.ContainerKind.MAP: "{}",
}

ADD_METHODS = {
    ir.ContainerKind.LIST: "append",
    ir.ContainerKind.SET: "add",
}


def _map_type(t: LogicalType, resolver: Resolver) -> str:
    """Map a thrift type to a Python type annotation."""
    if isinstance(t, BaseType):
        return PRIMITIVE_TYPE_MAP[t.kind]
    if isinstance(t, ListType):
        return f"list[{_map_type(t.element, resolver)}]"
    if isinstance(t, SetType):
        return f"set[{_map_type(t.element, resolver)}]"
    if isinstance(t, MapType):
        return f"dict[{_map_type(t.key, resolver)}, {_map_type(t.value, resolver)}]"
    if isinstance(t, Identifier):
        return resolver.resolve_type(t.name).name
    if isinstance(t, VoidType):
        return "None"
    unreachable(t)


def render_expr(e: ir.Expr) -> str:
    """Render an IR expression as Python source."""
    if isinstance(e, ir.Name):
        return e.id
    if isinstance(e, ir.Attribute):
        return f"{render_expr(e.value)}.{e.attr}"
    if isinstance(e, ir.Call):
        args = [render_expr(a) for a in e.args]
        args.extend(f"{k}={render_expr(v)}" for k, v in e.kwargs)
        return f"{render_expr(e.func)}({', '.join(args)})"
    if isinstance(e, ir.Literal):
        return repr(e.value)
    if isinstance(e, ir.Compare):
        return f"{render_expr(e.left)} {e.op} {render_expr(e.right)}"
    if isinstance(e, ir.BoolOp):
        return f" {e.op} ".join(render_expr(v) for v in e.values)
    if isinstance(e, ir.BinOp):
        return f"{render_expr(e.left)} {e.op} {render_expr(e.right)}"
    if isinstance(e, ir.NewContainer):
        return NEW_CONTAINERS[e.kind]
    if isinstance(e, ir.Display):
        items = ", ".join(render_expr(i) for i in e.items)
        if e.kind == ir.ContainerKind.LIST:
            return f"[{items}]"
        if e.kind == ir.ContainerKind.SET:
            return f"{{{items}}}" if items else "set()"
        raise InternalError("Map literals are rendered from MapDisplay")
    if isinstance(e, ir.MapDisplay):
        entries = ", ".join(f"{render_expr(k)}: {render_expr(v)}" for k, v in e.entries)
        return f"{{{entries}}}"
    if isinstance(e, ir.Len):
        return f"len({render_expr(e.value)})"
    if isinstance(e, ir.IsInstance):
        return f"isinstance({render_expr(e.value)}, {render_expr(e.cls)})"
    if isinstance(e, ir.Construct):
        return f"{render_expr(e.cls)}(**{render_expr(e.staging)})"
    unreachable(e)


def render_block(body: tuple[ir.Stmt, ...], indent: str = "") -> list[str]:
    """Render statements as lines of Python at ``indent``."""
    if not body:
        return [f"{indent}pass"]
    lines: list[str] = []
    for s in body:
        lines.extend(_render_stmt(s, indent))
    return lines


def _render_stmt(s: ir.Stmt, indent: str) -> list[str]:
    inner = indent + INDENT
    if isinstance(s, ir.Assign):
        return [f"{indent}{s.target} = {render_expr(s.value)}"]
    if isinstance(s, ir.SetItem):
        target = f"{render_expr(s.container)}[{render_expr(s.key)}]"
        return [f"{indent}{target} = {render_expr(s.value)}"]
    if isinstance(s, ir.AddElement):
        if s.kind not in ADD_METHODS:
            raise InternalError("Map entries are added with SetItem")
        method = f"{render_expr(s.container)}.{ADD_METHODS[s.kind]}"
        return [f"{indent}{method}({render_expr(s.value)})"]
    if isinstance(s, ir.ExprStmt):
        return [f"{indent}{render_expr(s.value)}"]
    if isinstance(s, ir.If):
        lines = [f"{indent}if {render_expr(s.test)}:", *render_block(s.body, inner)]
        if len(s.orelse) == 1 and isinstance(s.orelse[0], ir.If):
            chained = _render_stmt(s.orelse[0], indent)
            chained[0] = f"{indent}el{chained[0][len(indent):]}"
            lines.extend(chained)
        elif s.orelse:
            lines.append(f"{indent}else:")
            lines.extend(render_block(s.orelse, inner))
        return lines
    if isinstance(s, ir.While):
        return [f"{indent}while {render_expr(s.test)}:", *render_block(s.body, inner)]
    if isinstance(s, ir.ForRange):
        return [
            f"{indent}for {s.var} in range({render_expr(s.count)}):",
            *render_block(s.body, inner),
        ]
    if isinstance(s, ir.ForEach):
        return [
            f"{indent}for {', '.join(s.targets)} in {render_expr(s.iterable)}:",
            *render_block(s.body, inner),
        ]
    if isinstance(s, ir.Switch):
        if not s.cases:
            return render_block(s.default, indent)
        subject = render_expr(s.subject)
        lines = []
        for i, case in enumerate(s.cases):
            keyword = "if" if i == 0 else "elif"
            lines.append(f"{indent}{keyword} {subject} == {render_expr(case.value)}:")
            lines.extend(render_block(case.body, inner))
        if s.default:
            lines.append(f"{indent}else:")
            lines.extend(render_block(s.default, inner))
        return lines
    if isinstance(s, ir.Break):
        return [f"{indent}break"]
    if isinstance(s, ir.Return):
        if s.value is None:
            return [f"{indent}return"]
        return [f"{indent}return {render_expr(s.value)}"]
    if isinstance(s, ir.Raise):
        return [f"{indent}raise {render_expr(s.exc)}"]
    unreachable(s)


def _render_param(param: str) -> str:
    if param in PARAM_TYPES:
        return f"{param}: {PARAM_TYPES[param]}"
    return param


def render_procedure(proc: ir.Procedure, indent: str = INDENT) -> list[str]:
    """Render a method, decorators included."""
    lines = []
    if proc.kind == ir.ProcedureKind.CLASSMETHOD:
        lines.append(f"{indent}@classmethod")
    params = ", ".join(_render_param(p) for p in proc.params)
    returns = f" -> {proc.returns}" if proc.returns else ""
    lines.append(f"{indent}def {proc.name}({params}){returns}:")
    if proc.doc:
        lines.append(f'{indent}{INDENT}"""{proc.doc}"""')
    lines.extend(render_block(proc.body, indent + INDENT))
    return lines


def _needs_factory(e: ir.Expr) -> bool:
    """Containers and struct instances are built per instance."""
    return isinstance(e, ir.Display | ir.MapDisplay | ir.Call)


def _render_field(f: ir.FieldDecl, resolver: Resolver) -> str:
    annotation = f"{_map_type(f.type, resolver)} | None"
    if f.default is None:
        value = "None"
    elif isinstance(f.default, ir.Name):
        # Each instance gets its own copy of the constant.
        value = f"_field(default_factory=lambda: deepcopy({render_expr(f.default)}))"
    elif _needs_factory(f.default):
        value = f"_field(default_factory=lambda: {render_expr(f.default)})"
    else:
        value = render_expr(f.default)
    return f"{INDENT}{f.name}: {annotation} = {value}"


def render_class(cls: ir.ClassDef, resolver: Resolver) -> str:
    """Render a generated class to Python source."""
    lines = []
    if cls.record:
        lines.append("@dataclass(unsafe_hash=True)")
    lines.append(f"class {cls.name}({', '.join(cls.bases)}):")
    if cls.doc:
        lines.append(f'{INDENT}"""{cls.doc}"""')
        lines.append("")
    for f in cls.fields:
        lines.append(_render_field(f, resolver))
    if cls.fields:
        lines.append("")
    for proc in cls.methods:
        lines.extend(render_procedure(proc))
        lines.append("")
    if not cls.fields and not cls.methods and not cls.doc:
        lines.append(f"{INDENT}pass")
    return "\n".join(lines).rstrip() + "\n"


def _service_depth(service: ServiceDefinition, resolver: Resolver) -> int:
    depth = 0
    parent = resolver.parent(service)
    while parent is not None:
        depth += 1
        parent = resolver.parent(parent)
    return depth


def _references_struct(t: LogicalType, resolver: Resolver) -> bool:
    t = resolver.unwrap(t)
    if isinstance(t, ListType | SetType):
        return _references_struct(t.element, resolver)
    if isinstance(t, MapType):
        return _references_struct(t.key, resolver) or _references_struct(t.value, resolver)
    if isinstance(t, Identifier):
        return isinstance(resolver.resolve_type(t.name), StructDefinition)
    return False


def render(document: Document, runtime_import: str = "thriftgen_runtime") -> str:
    """Render a thrift document to a Python module."""
    resolver = Resolver(document)

    classes: list[ir.ClassDef] = []
    for struct in document.of_type(StructDefinition):
        logger.debug("Generating %s %s", struct.kind.value, struct.name)
        classes.append(struct_class(struct, resolver))
    services = sorted(
        document.of_type(ServiceDefinition), key=lambda s: _service_depth(s, resolver)
    )
    for service in services:
        logger.debug("Generating service %s", service.name)
        classes.extend(struct_class(s, resolver) for s in helper_structs(service))
        classes.append(client_class(service, resolver))
        classes.append(processor_class(service, resolver))

    # Constants holding structs have to wait until the classes exist.
    consts: list[tuple[str, str]] = []
    late_consts: list[tuple[str, str]] = []
    for const in document.of_type(ConstDefinition):
        rendered = (const.name, render_expr(const_expr(const.value, const.type, resolver)))
        if _references_struct(const.type, resolver):
            late_consts.append(rendered)
        else:
            consts.append(rendered)

    typedefs = [
        (t.name, _map_type(resolver.unwrap(t.type), resolver))
        for t in document.of_type(TypedefDefinition)
    ]

    return template.render(
        version=__version__,
        enums=document.of_type(EnumDefinition),
        consts=consts,
        late_consts=late_consts,
        classes=[render_class(c, resolver) for c in classes],
        typedefs=typedefs,
        runtime_import=runtime_import,
    )


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("thriftgen.proto").joinpath(filename).read_text()
        result[filename] = content
    return result
