"""Runtime support for generated service clients and processors."""

import asyncio
import inspect
import logging
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any

from .binary import TBinaryProtocol
from .transport import Transport
from .types import TType

logger = logging.getLogger(__name__)

Completion = Future | asyncio.Future


def invoke(fn: Callable[..., Any], *args: Any) -> Completion:
    """Call a handler and capture its outcome as a future.

    Plain return values, raised exceptions, futures and coroutines all end
    up as a single completion the caller can attach one continuation to.
    Coroutines are scheduled on the running event loop.
    """
    try:
        result = fn(*args)
    except Exception as e:  # pylint: disable=broad-except
        future: Future = Future()
        future.set_exception(e)
        return future

    if isinstance(result, (Future, asyncio.Future)):
        return result
    if inspect.isawaitable(result):
        return asyncio.ensure_future(result)

    future = Future()
    future.set_result(result)
    return future


class ClientBase:
    """Base class for generated service clients.

    Generated subclasses define, per method, a public call returning a
    completion, a ``send_<method>`` writer and a ``recv_<method>`` reader.
    Replies are fed in by whoever owns the transport's read side, either by
    calling ``recv_<method>`` directly or through ``dispatch``.

    Example:
        client = CalculatorClient(transport)
        pending = client.add(1, 2)
        client.dispatch(TBinaryProtocol(reply_transport))
        pending.result()  # 3
    """

    def __init__(
        self,
        transport: Transport,
        protocol_factory: Callable[[Transport], TBinaryProtocol] = TBinaryProtocol,
    ) -> None:
        self._transport = transport
        self._protocol_factory = protocol_factory
        self._seqid = 0
        self._reqs: dict[int, Future] = {}

    def seqid(self) -> int:
        return self._seqid

    def new_seqid(self) -> int:
        self._seqid += 1
        return self._seqid

    @property
    def pending(self) -> int:
        """Number of calls still waiting for a reply."""
        return len(self._reqs)

    def _register(self, seqid: int) -> Future:
        future: Future = Future()
        self._reqs[seqid] = future
        return future

    def _completed(self, value: Any = None) -> Future:
        future: Future = Future()
        future.set_result(value)
        return future

    def _resolve(self, seqid: int, value: Any) -> None:
        future = self._reqs.pop(seqid, None)
        if future is None:
            logger.debug("Reply for unknown sequence id %d ignored", seqid)
            return
        future.set_result(value)

    def _fail(self, seqid: int, error: BaseException) -> None:
        future = self._reqs.pop(seqid, None)
        if future is None:
            logger.debug("Failure for unknown sequence id %d ignored", seqid)
            return
        future.set_exception(error)

    def dispatch(self, iprot: TBinaryProtocol) -> None:
        """Read one reply message and route it to its ``recv_<method>``."""
        msg = iprot.read_message_begin()
        recv = getattr(self, f"recv_{msg.name}", None)
        if recv is None:
            logger.warning("Reply for unknown method %r skipped", msg.name)
            iprot.skip(TType.STRUCT)
            iprot.read_message_end()
            return
        recv(iprot, msg.mtype, msg.seqid)


class ProcessorBase:
    """Base class for generated service processors.

    Generated subclasses implement ``process``, which reads one request
    from ``iprot``, calls the matching handler method and writes the reply
    to ``oprot``. Handler methods may return a value, raise, or return a
    future or coroutine.
    """

    def __init__(self, handler: Any) -> None:
        self._handler = handler

    @property
    def handler(self) -> Any:
        return self._handler

    def process(
        self, iprot: TBinaryProtocol, oprot: TBinaryProtocol, context: Any = None
    ) -> Completion | None:
        """Handle one request. Generated code overrides this."""
        raise NotImplementedError("process() must be implemented by generated code")
