"""Intermediate representation produced by the codec generators.

A small statement/expression tree, independent of how it is printed.
``python.py`` renders it to Python source.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TypeAlias

from .types import FieldDefinition, LogicalType


class ContainerKind(StrEnum):
    LIST = "list"
    SET = "set"
    MAP = "map"


class ProcedureKind(StrEnum):
    METHOD = "method"
    CLASSMETHOD = "classmethod"


# Expressions


@dataclass(frozen=True)
class Name:
    id: str


@dataclass(frozen=True)
class Attribute:
    value: Expr
    attr: str


@dataclass(frozen=True)
class Call:
    func: Expr
    args: tuple[Expr, ...] = ()
    kwargs: tuple[tuple[str, Expr], ...] = ()


@dataclass(frozen=True)
class Literal:
    value: object


@dataclass(frozen=True)
class Compare:
    left: Expr
    op: str
    right: Expr


@dataclass(frozen=True)
class BoolOp:
    op: str
    values: tuple[Expr, ...]


@dataclass(frozen=True)
class BinOp:
    left: Expr
    op: str
    right: Expr


@dataclass(frozen=True)
class NewContainer:
    kind: ContainerKind


@dataclass(frozen=True)
class Display:
    """A container literal with known elements."""

    kind: ContainerKind
    items: tuple[Expr, ...]


@dataclass(frozen=True)
class MapDisplay:
    entries: tuple[tuple[Expr, Expr], ...]


@dataclass(frozen=True)
class Len:
    value: Expr


@dataclass(frozen=True)
class IsInstance:
    value: Expr
    cls: Expr


@dataclass(frozen=True)
class Construct:
    """Build ``cls`` from a staging mapping of field name to value."""

    cls: Expr
    staging: Expr


Expr: TypeAlias = (
    Name
    | Attribute
    | Call
    | Literal
    | Compare
    | BoolOp
    | BinOp
    | NewContainer
    | Display
    | MapDisplay
    | Len
    | IsInstance
    | Construct
)


# Statements


@dataclass(frozen=True)
class Assign:
    target: str
    value: Expr


@dataclass(frozen=True)
class SetItem:
    container: Expr
    key: Expr
    value: Expr


@dataclass(frozen=True)
class AddElement:
    container: Expr
    kind: ContainerKind
    value: Expr


@dataclass(frozen=True)
class ExprStmt:
    value: Expr


@dataclass(frozen=True)
class If:
    test: Expr
    body: tuple[Stmt, ...]
    orelse: tuple[Stmt, ...] = ()


@dataclass(frozen=True)
class While:
    test: Expr
    body: tuple[Stmt, ...]


@dataclass(frozen=True)
class ForRange:
    var: str
    count: Expr
    body: tuple[Stmt, ...]


@dataclass(frozen=True)
class ForEach:
    targets: tuple[str, ...]
    iterable: Expr
    body: tuple[Stmt, ...]


@dataclass(frozen=True)
class Case:
    value: Expr
    body: tuple[Stmt, ...]


@dataclass(frozen=True)
class Switch:
    subject: Expr
    cases: tuple[Case, ...]
    default: tuple[Stmt, ...]


@dataclass(frozen=True)
class Break:
    pass


@dataclass(frozen=True)
class Return:
    value: Expr | None = None


@dataclass(frozen=True)
class Raise:
    exc: Expr


Stmt: TypeAlias = (
    Assign
    | SetItem
    | AddElement
    | ExprStmt
    | If
    | While
    | ForRange
    | ForEach
    | Switch
    | Break
    | Return
    | Raise
)


# Definitions


@dataclass(frozen=True)
class Procedure:
    name: str
    params: tuple[str, ...]
    body: tuple[Stmt, ...]
    kind: ProcedureKind = ProcedureKind.METHOD
    returns: str | None = None
    doc: str | None = None


@dataclass(frozen=True)
class FieldDecl:
    """A data attribute of a generated record class."""

    name: str
    type: LogicalType
    default: Expr | None = None
    source: FieldDefinition | None = None


@dataclass(frozen=True)
class ClassDef:
    name: str
    bases: tuple[str, ...]
    methods: tuple[Procedure, ...]
    fields: tuple[FieldDecl, ...] = ()
    record: bool = False
    doc: str | None = None


@dataclass
class NameAllocator:
    """Hands out collision-free temporary names for one generation pass."""

    _counters: defaultdict[str, int] = field(default_factory=lambda: defaultdict(int))

    def fresh(self, prefix: str) -> str:
        self._counters[prefix] += 1
        return f"_{prefix}_{self._counters[prefix]}"


def attr(value: Expr | str, *path: str) -> Expr:
    """``attr("self", "x", "y")`` is ``self.x.y``."""
    expr: Expr = Name(value) if isinstance(value, str) else value
    for part in path:
        expr = Attribute(expr, part)
    return expr


def call(func: Expr, *args: Expr, **kwargs: Expr) -> Call:
    return Call(func, tuple(args), tuple(kwargs.items()))


def method_call(obj: Expr | str, method: str, *args: Expr) -> Call:
    return Call(attr(obj, method), tuple(args))


def stmt(obj: Expr | str, method: str, *args: Expr) -> ExprStmt:
    """Statement calling ``obj.method(*args)``."""
    return ExprStmt(method_call(obj, method, *args))
