"""Transports carry raw bytes between a protocol and the outside world."""

from typing import Protocol


class TTransportException(RuntimeError):
    """Raised when a transport cannot satisfy a read."""


class Transport(Protocol):
    """The subset of a transport that protocols and generated code use."""

    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> None: ...

    def flush(self) -> None: ...


class TMemoryBuffer:
    """In-memory transport.

    Reads consume ``value``. Writes are buffered and only become visible
    through ``getvalue()`` once ``flush()`` has been called, the same way a
    socket transport only sends on flush.
    """

    def __init__(self, value: bytes = b"") -> None:
        self._rbuf = memoryview(bytes(value))
        self._pos = 0
        self._pending = bytearray()
        self._written = bytearray()

    def read(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._rbuf):
            raise TTransportException(
                f"Read of {size} bytes past end of buffer ({len(self._rbuf) - self._pos} available)"
            )
        data = bytes(self._rbuf[self._pos : end])
        self._pos = end
        return data

    def write(self, data: bytes) -> None:
        self._pending.extend(data)

    def flush(self) -> None:
        self._written.extend(self._pending)
        self._pending.clear()

    def getvalue(self) -> bytes:
        """Return everything written and flushed so far."""
        return bytes(self._written)

    @property
    def remaining(self) -> int:
        return len(self._rbuf) - self._pos
