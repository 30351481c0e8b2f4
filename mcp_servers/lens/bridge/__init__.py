from .client import BridgeClient, BridgeClientError, BridgeUnavailableError
from .handler import BridgeHandler
from .operations import Operation, OperationRegistry, create_default_registry
from .server import BridgeServer, read_limited_body

__all__ = [
    "BridgeClient",
    "BridgeClientError",
    "BridgeHandler",
    "BridgeServer",
    "BridgeUnavailableError",
    "Operation",
    "OperationRegistry",
    "create_default_registry",
    "read_limited_body",
]
