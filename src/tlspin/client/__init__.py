"""HTTP components - handshake-hooked transport and the request executor."""

from tlspin.client.transport import PinningTransport, create_ssl_context
from tlspin.client.executor import PinnedRequestExecutor

__all__ = ["PinningTransport", "create_ssl_context", "PinnedRequestExecutor"]
