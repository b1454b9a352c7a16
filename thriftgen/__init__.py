"""thriftgen - Thrift IDL compiler producing Python binary-protocol bindings."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("thriftgen")
except PackageNotFoundError:
    __version__ = "(local)"
