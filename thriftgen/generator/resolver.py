"""Name resolution over a document's definitions."""

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Never, NoReturn

from thriftgen.proto.types import TType

from .parser import ValidationError
from .types import (
    BaseKind,
    BaseType,
    ConstDefinition,
    Definition,
    Document,
    EnumDefinition,
    FunctionDefinition,
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

logger = logging.getLogger(__name__)

WIRE_TYPES: dict[BaseKind, TType] = {
    BaseKind.BOOL: TType.BOOL,
    BaseKind.BYTE: TType.BYTE,
    BaseKind.I8: TType.BYTE,
    BaseKind.I16: TType.I16,
    BaseKind.I32: TType.I32,
    BaseKind.I64: TType.I64,
    BaseKind.DOUBLE: TType.DOUBLE,
    BaseKind.STRING: TType.STRING,
    BaseKind.BINARY: TType.STRING,
}

TypeDefinition = StructDefinition | EnumDefinition | TypedefDefinition


class TypeMisuseError(RuntimeError):
    """Raised when a constant or a service is named where a type is expected."""


class InternalError(RuntimeError):
    """Raised on generator bugs: an unhandled variant or a typedef cycle."""


def unreachable(value: Never) -> NoReturn:
    """Close an exhaustive isinstance chain."""
    raise InternalError(f"Non-exhaustive match for: {value!r}")


class Resolver:
    """Lookup table from names to definitions.

    Names qualified with an include prefix (``shared.Thing``) resolve to the
    bare definition, since included documents are merged into one namespace.
    """

    def __init__(self, document: Document) -> None:
        self._table = MappingProxyType({d.name: d for d in document.definitions})
        self._acyclic: set[str] = set()

    def __contains__(self, name: str) -> bool:
        return self._lookup(name) is not None

    def _lookup(self, name: str) -> Definition | None:
        definition = self._table.get(name)
        if definition is None and "." in name:
            definition = self._table.get(name.rsplit(".", 1)[1])
        return definition

    def resolve(self, name: str) -> Definition:
        """Return whatever ``name`` refers to."""
        definition = self._lookup(name)
        if definition is None:
            raise ValidationError(f"Unknown identifier {name}")
        return definition

    def resolve_type(self, name: str) -> TypeDefinition:
        """Resolve ``name`` where a type is expected."""
        definition = self.resolve(name)
        if isinstance(definition, ConstDefinition):
            raise TypeMisuseError(f"Identifier {definition.name} is a value being used as a type")
        if isinstance(definition, ServiceDefinition):
            raise TypeMisuseError(f"Service {definition.name} is being used as a type")
        return definition

    def _check_typedefs(self, t: LogicalType, path: tuple[str, ...] = ()) -> None:
        """Raise if expanding ``t`` would loop through a typedef, containers included."""
        if isinstance(t, ListType | SetType):
            self._check_typedefs(t.element, path)
        elif isinstance(t, MapType):
            self._check_typedefs(t.key, path)
            self._check_typedefs(t.value, path)
        elif isinstance(t, Identifier):
            definition = self._lookup(t.name)
            if not isinstance(definition, TypedefDefinition) or definition.name in self._acyclic:
                return
            if definition.name in path:
                chain = " -> ".join([*path, definition.name])
                raise InternalError(f"Typedef cycle detected: {chain}")
            self._check_typedefs(definition.type, (*path, definition.name))
            self._acyclic.add(definition.name)

    def unwrap(self, t: LogicalType) -> LogicalType:
        """Follow typedef chains until reaching a type that is not a typedef."""
        self._check_typedefs(t)
        seen: list[str] = []
        while isinstance(t, Identifier):
            definition = self.resolve_type(t.name)
            if not isinstance(definition, TypedefDefinition):
                break
            seen.append(definition.name)
            t = definition.type
        if seen:
            logger.debug("Resolved typedef chain %s", " -> ".join(seen))
        return t

    def wire_type(self, t: LogicalType) -> TType:
        """Wire type tag a value of logical type ``t`` is written with."""
        t = self.unwrap(t)
        if isinstance(t, BaseType):
            return WIRE_TYPES[t.kind]
        if isinstance(t, ListType):
            return TType.LIST
        if isinstance(t, SetType):
            return TType.SET
        if isinstance(t, MapType):
            return TType.MAP
        if isinstance(t, VoidType):
            return TType.VOID
        if isinstance(t, Identifier):
            definition = self.resolve_type(t.name)
            if isinstance(definition, StructDefinition):
                return TType.STRUCT
            if isinstance(definition, EnumDefinition):
                return TType.I32
            if isinstance(definition, TypedefDefinition):
                raise InternalError(f"Typedef {definition.name} survived unwrapping")
            unreachable(definition)
        unreachable(t)

    def parent(self, service: ServiceDefinition) -> ServiceDefinition | None:
        if service.extends is None:
            return None
        definition = self.resolve(service.extends)
        if not isinstance(definition, ServiceDefinition):
            raise TypeMisuseError(f"{service.name} extends {definition.name}, which is not a service")
        return definition

    def service_functions(self, service: ServiceDefinition) -> list[FunctionDefinition]:
        """All functions of ``service``, inherited ones first."""
        chain: list[ServiceDefinition] = []
        current: ServiceDefinition | None = service
        while current is not None:
            if current in chain:
                raise InternalError(f"Service inheritance cycle through {current.name}")
            chain.append(current)
            current = self.parent(current)
        return [f for s in reversed(chain) for f in s.functions]


@dataclass(frozen=True)
class OutputNamespace:
    """Where the module generated for one document goes."""

    scope: str
    name: str
    path: Path


def _path_for_namespace(out_path: str | Path, ns: str, name: str) -> Path:
    segment = ns.split(".")[-1] if ns else ""
    return Path(out_path).resolve() / segment / f"{name}.py"


def resolve_namespace(out_path: str | Path, document: Document, file_name: str) -> OutputNamespace:
    """Pick the namespace used for output: ``py``, else ``java``, else none."""
    by_scope = {ns.scope: ns for ns in document.namespaces}
    for scope in ("py", "java"):
        ns = by_scope.get(scope)
        if ns is not None:
            return OutputNamespace(
                scope=ns.scope, name=ns.name, path=_path_for_namespace(out_path, ns.name, file_name)
            )
    return OutputNamespace(scope="", name="", path=_path_for_namespace(out_path, "", file_name))
