#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
DiscoverySocketBinding -- one bound UDP socket used by a discovery scan, typically one per
network interface, together with the asyncio transport that drives it.

Errors on one binding are reported to its owner and never affect other bindings.
"""

from __future__ import annotations

import asyncio
import socket

from .internal_types import *
from .pkg_logging import logger

DatagramHandler = Callable[['DiscoverySocketBinding', HostAndPort, bytes], None]
ErrorHandler = Callable[['DiscoverySocketBinding', Exception], None]

class DiscoverySocketBinding:
    sock: Optional[socket.socket] = None
    """The low-level socket. Owned by the transport once start() succeeds."""

    bind_address: str
    """The local interface address this binding sends the probe from"""

    ifname: Optional[str]
    """The name of the network interface, if known"""

    _transport: Optional[asyncio.DatagramTransport] = None
    _on_datagram: DatagramHandler
    _on_error: ErrorHandler

    def __init__(
            self,
            sock: socket.socket,
            bind_address: str,
            on_datagram: DatagramHandler,
            on_error: ErrorHandler,
            ifname: Optional[str]=None,
          ):
        self.sock = sock
        self.bind_address = bind_address
        self.ifname = ifname
        self._on_datagram = on_datagram
        self._on_error = on_error

    @property
    def transport(self) -> Optional[asyncio.DatagramTransport]:
        return self._transport

    async def start(self) -> None:
        """Creates the asyncio datagram endpoint for the socket."""
        assert self.sock is not None and self._transport is None
        loop = asyncio.get_running_loop()
        # Note: asyncio datagram transports do not inherit from asyncio.DatagramTransport, although
        # they implement the same interface.
        untyped_transport, protocol = await loop.create_datagram_endpoint(
            lambda: _DiscoverySocketProtocol(self),
            sock=self.sock
          )
        self._transport = untyped_transport # type: ignore[assignment]
        logger.debug(f"Created datagram endpoint for {self}")

    def sendto(self, data: bytes, addr: HostAndPort) -> None:
        logger.debug(f"Sending {len(data)} bytes via {self} to {addr}")
        assert self._transport is not None
        self._transport.sendto(data, addr)

    def datagram_received(self, addr: HostAndPort, data: bytes) -> None:
        self._on_datagram(self, addr, data)

    def error_received(self, exc: Exception) -> None:
        self._on_error(self, exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        logger.debug(f"Transport closed on {self}, exc={exc}")
        self._transport = None
        self.sock = None

    def close(self) -> None:
        """Closes the transport, or the bare socket if start() never succeeded. Never raises."""
        transport = self._transport
        if transport is not None:
            self._transport = None
            try:
                transport.close()
            except Exception as e:
                logger.error(f"Error closing transport on {self}: {e}")
            # The transport owns and closes the socket
            self.sock = None
        sock = self.sock
        if sock is not None:
            self.sock = None
            try:
                sock.close()
            except Exception as e:
                logger.error(f"Error closing socket on {self}: {e}")

    @property
    def is_closed(self) -> bool:
        return self._transport is None and self.sock is None

    def __str__(self) -> str:
        if self.ifname is None:
            return f"DiscoverySocketBinding({self.bind_address})"
        return f"DiscoverySocketBinding({self.bind_address}@{self.ifname})"

    def __repr__(self) -> str:
        return str(self)

class _DiscoverySocketProtocol(asyncio.DatagramProtocol):
    """An adapter between the asyncio transport and a DiscoverySocketBinding."""
    socket_binding: DiscoverySocketBinding

    def __init__(self, socket_binding: DiscoverySocketBinding):
        self.socket_binding = socket_binding

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        """Called when some datagram is received."""
        try:
            self.socket_binding.datagram_received(addr, data)
        except Exception as e:
            logger.warning(f"Exception processing datagram from {addr} on {self.socket_binding}: {e}")

    def error_received(self, exc: Exception):
        """Called when a send or receive operation raises an OSError.

        (Other than BlockingIOError or InterruptedError.)
        """
        self.socket_binding.error_received(exc)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        """Called when the connection is lost or closed."""
        self.socket_binding.connection_lost(exc)
