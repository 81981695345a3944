#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
YeelightConnection -- owns the TCP control connection to one device.

  1. connect() opens the socket, with a deadline, and starts a reader task that feeds inbound
     bytes to a LineFramer
  2. The LineFramer hands responses to a CommandCorrelator and notifications to a NotificationRouter
  3. send_command() sends a command through the CommandCorrelator and waits for its response
  4. When the connection ends, for any reason, every pending command is rejected with
     ConnectionClosed and a "disconnected" event is emitted

There is no automatic reconnection; call connect() again after a disconnect.
"""

from __future__ import annotations

import asyncio
from enum import Enum

from .internal_types import *
from .pkg_logging import logger
from .constants import READ_CHUNK_SIZE
from .exceptions import ConnectionTimeout, ConnectionRefused, TransportError
from .device_record import DeviceRecord
from .options import YeelightOptions
from .line_framer import LineFramer
from .correlator import CommandCorrelator
from .notifications import NotificationRouter, NotificationSubscriber, DeviceEventKind, DeviceEventHandler

class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"

class YeelightConnection(AsyncContextManager['YeelightConnection']):
    record: DeviceRecord
    options: YeelightOptions
    framer: LineFramer
    correlator: CommandCorrelator
    notifications: NotificationRouter
    state: ConnectionState = ConnectionState.DISCONNECTED
    reader: Optional[asyncio.StreamReader] = None
    writer: Optional[asyncio.StreamWriter] = None
    _reader_task: Optional[asyncio.Task[None]] = None
    _connecting: Optional[asyncio.Future[None]] = None

    def __init__(self, record: DeviceRecord, options: Optional[YeelightOptions]=None):
        self.record = record
        self.options = YeelightOptions() if options is None else options
        self.correlator = CommandCorrelator(diagnostic_sink=self.options.diagnostic_sink)
        self.notifications = NotificationRouter()
        self.framer = LineFramer(
            self.correlator.on_response,
            self.notifications.on_notification,
            diagnostic_sink=self.options.diagnostic_sink,
          )

    @property
    def host(self) -> str:
        return self.record.ip

    @property
    def port(self) -> int:
        return self.options.resolve_port(self.record.port)

    @property
    def timeout_secs(self) -> float:
        return self.options.timeout

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def add_event_handler(self, handler: DeviceEventHandler, kind: Optional[DeviceEventKind]=None) -> int:
        """Adds a handler for connected/disconnected/error/notification events. Returns a handle for remove_event_handler()."""
        return self.notifications.add_handler(handler, kind=kind)

    def remove_event_handler(self, i: int) -> None:
        self.notifications.remove_handler(i)

    def subscribe(self) -> NotificationSubscriber:
        """An async context manager/iterable of the device's notifications. See NotificationRouter.subscribe()."""
        return self.notifications.subscribe()

    async def connect(self) -> None:
        """Opens the connection. A no-op if already connected.

        Raises:
            ConnectionTimeout: The connection was not established within options.timeout seconds.
            ConnectionRefused: The device refused the connection.
            TransportError:    Any other socket error.
        """
        if self.state == ConnectionState.CONNECTED:
            return
        if self._connecting is not None:
            await asyncio.shield(self._connecting)
            return

        loop = asyncio.get_running_loop()
        connecting: asyncio.Future[None] = loop.create_future()
        self._connecting = connecting
        self.state = ConnectionState.CONNECTING
        logger.debug(f"Connecting to: {self}")
        try:
            try:
                reader, writer = await asyncio.wait_for(asyncio.open_connection(self.host, self.port), self.timeout_secs)
            except asyncio.TimeoutError as e:
                raise ConnectionTimeout(f"Timed out connecting to {self.host}:{self.port}") from e
            except ConnectionRefusedError as e:
                raise ConnectionRefused(f"Connection refused by {self.host}:{self.port}") from e
            except OSError as e:
                raise TransportError(f"Failed to connect to {self.host}:{self.port}: {e}") from e
        except BaseException as e:
            self.state = ConnectionState.DISCONNECTED
            self._connecting = None
            if isinstance(e, Exception):
                connecting.set_exception(e)
                # Only concurrent connect() callers retrieve this
                connecting.exception()
            else:
                connecting.cancel()
            raise

        self.reader = reader
        self.writer = writer
        self.framer.reset()
        self.correlator.attach(self._write)
        self.state = ConnectionState.CONNECTED
        self._connecting = None
        self._reader_task = asyncio.create_task(self._run_reader_task(reader))
        connecting.set_result(None)
        logger.info(f"{self} connected")
        self.notifications.on_connected()

    async def _write(self, data: bytes) -> None:
        writer = self.writer
        if writer is None or writer.is_closing():
            raise TransportError(f"Connection to {self.host}:{self.port} is closed")
        writer.write(data)
        await asyncio.wait_for(writer.drain(), self.timeout_secs)

    async def _run_reader_task(self, reader: asyncio.StreamReader) -> None:
        logger.debug(f"{self}: reader task starting")
        try:
            while True:
                data = await reader.read(READ_CHUNK_SIZE)
                if len(data) == 0:
                    logger.debug(f"{self}: connection closed by device")
                    break
                self.framer.feed(data)
        except asyncio.CancelledError:
            logger.debug(f"{self}: reader task cancelled")
            raise
        except Exception as e:
            logger.info(f"{self}: transport error: {e}")
            self.notifications.on_error(TransportError(f"Transport error on {self.host}:{self.port}: {e}"))
        finally:
            self._handle_close(reader)

    def _handle_close(self, reader: Optional[asyncio.StreamReader]=None) -> None:
        """Tears down the current connection. Safe to call more than once; only the first call has effect.
           If `reader` is given, does nothing unless it belongs to the current connection."""
        writer = self.writer
        if writer is None:
            return
        if reader is not None and reader is not self.reader:
            return
        self.writer = None
        self.reader = None
        self.state = ConnectionState.DISCONNECTED
        try:
            writer.close()
        except Exception as e:
            logger.error(f"Error closing transport to {self.host}:{self.port}: {e}")
        self.correlator.close_all_pending()
        logger.info(f"{self} disconnected")
        self.notifications.on_disconnected()

    async def disconnect(self) -> None:
        """Forcibly closes the connection. Pending commands are rejected with ConnectionClosed."""
        writer = self.writer
        reader_task = self._reader_task
        self._reader_task = None
        self._handle_close()
        if reader_task is not None and reader_task is not asyncio.current_task():
            reader_task.cancel()
            try:
                await reader_task
            except asyncio.CancelledError:
                pass
        if writer is not None:
            try:
                await writer.wait_closed()
            except Exception as e:
                logger.debug(f"Exception while closing writer: {e}")

    async def send_command(self, method: str, params: Optional[Iterable[Any]]=None, timeout: Optional[float]=None) -> Tuple[Any, ...]:
        """Sends a command and returns the "result" values of the device's response.

        See CommandCorrelator.send() for the exceptions raised.
        """
        return await self.correlator.send(method, params, timeout=self.timeout_secs if timeout is None else timeout)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        await self.disconnect()
        return False

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(host={self.host}, port={self.port})"

    def __repr__(self) -> str:
        return str(self)
