"""Thrift IDL code generator."""

from .parser import *
from .resolver import InternalError as InternalError
from .resolver import Resolver as Resolver
from .resolver import TypeMisuseError as TypeMisuseError
from .resolver import resolve_namespace as resolve_namespace
from .types import *
