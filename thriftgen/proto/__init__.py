"""Runtime used by thriftgen generated code."""

from .binary import TBinaryProtocol as TBinaryProtocol
from .binary import TBinaryProtocolFactory as TBinaryProtocolFactory
from .runtime import ClientBase as ClientBase
from .runtime import Completion as Completion
from .runtime import ProcessorBase as ProcessorBase
from .runtime import invoke as invoke
from .serialization import ApplicationException as ApplicationException
from .serialization import ApplicationExceptionKind as ApplicationExceptionKind
from .serialization import ProtocolError as ProtocolError
from .serialization import ProtocolErrorKind as ProtocolErrorKind
from .serialization import Struct as Struct
from .serialization import ThriftException as ThriftException
from .serialization import ThriftUnion as ThriftUnion
from .transport import TMemoryBuffer as TMemoryBuffer
from .transport import TTransportException as TTransportException
from .types import TMessageType as TMessageType
from .types import TType as TType
