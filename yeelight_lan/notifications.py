#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
NotificationRouter -- fans out session events (connected, disconnected, error, and unsolicited
device notifications) to subscribers.

Subscribers either register a callback with add_handler(), or use a NotificationSubscriber,
which is an async context manager/iterable yielding Notifications until the connection closes.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from dataclasses import dataclass

from .internal_types import *
from .pkg_logging import logger
from .messages import Notification

MAX_QUEUE_SIZE = 1000

class DeviceEventKind(Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    NOTIFICATION = "notification"

@dataclass(frozen=True)
class DeviceEvent:
    """An immutable event delivered to handlers"""
    kind: DeviceEventKind
    notification: Optional[Notification] = None
    error: Optional[BaseException] = None

DeviceEventHandler = Callable[[DeviceEvent], None]

class NotificationSubscriber(
        AsyncContextManager['NotificationSubscriber'],
        AsyncIterable[Notification]
      ):
    router: NotificationRouter
    queue: asyncio.Queue[Optional[Notification]]
    eos: bool = False

    def __init__(self, router: NotificationRouter, max_queue_size: int=MAX_QUEUE_SIZE):
        self.router = router
        self.queue = asyncio.Queue(max_queue_size)

    async def __aenter__(self) -> NotificationSubscriber:
        self.router.add_subscriber(self)
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.router.remove_subscriber(self)
        self.on_end_of_stream()
        return False

    def on_notification(self, notification: Notification) -> None:
        if not self.eos:
            try:
                self.queue.put_nowait(notification)
            except asyncio.QueueFull:
                logger.warning(f"Queue full, dropping {notification}")

    def on_end_of_stream(self) -> None:
        if not self.eos:
            self.eos = True
            try:
                # wake up any waiting tasks
                self.queue.put_nowait(None)
            except asyncio.QueueFull:
                # queue is full so waiters will wake up soon
                pass

    async def receive(self) -> Optional[Notification]:
        """Returns the next notification, or None once the connection has closed and the queue is drained"""
        if self.eos and self.queue.empty():
            return None
        result = await self.queue.get()
        self.queue.task_done()
        return result

    async def iter_notifications(self) -> AsyncIterator[Notification]:
        while True:
            result = await self.receive()
            if result is None:
                break
            yield result

    def __aiter__(self) -> AsyncIterator[Notification]:
        return self.iter_notifications()

class NotificationRouter:
    handlers: Dict[int, Tuple[Optional[DeviceEventKind], DeviceEventHandler]]
    subscribers: Set[NotificationSubscriber]
    i_next_handler: int = 0

    def __init__(self):
        self.handlers = {}
        self.subscribers = set()

    def add_handler(self, handler: DeviceEventHandler, kind: Optional[DeviceEventKind]=None) -> int:
        """Adds a handler called for every event of `kind`, or for all events if kind is None.
           Returns a handle for remove_handler()."""
        i = self.i_next_handler
        self.i_next_handler += 1
        self.handlers[i] = (kind, handler)
        return i

    def remove_handler(self, i: int) -> None:
        """Removes a previously added handler."""
        del self.handlers[i]

    def add_subscriber(self, subscriber: NotificationSubscriber) -> None:
        self.subscribers.add(subscriber)

    def remove_subscriber(self, subscriber: NotificationSubscriber) -> None:
        self.subscribers.discard(subscriber)

    def subscribe(self) -> NotificationSubscriber:
        """Creates an async context manager/iterable of notifications.

        Usage:
            async with device.notifications.subscribe() as subscriber:
                async for notification in subscriber:
                    print(notification.params)
        """
        return NotificationSubscriber(self)

    def emit(self, event: DeviceEvent) -> None:
        for kind, handler in list(self.handlers.values()):
            if kind is None or kind == event.kind:
                try:
                    handler(event)
                except Exception as e:
                    logger.warning(f"Handler raised exception processing {event.kind.value} event: {e}")

    def on_notification(self, notification: Notification) -> None:
        for subscriber in list(self.subscribers):
            subscriber.on_notification(notification)
        self.emit(DeviceEvent(DeviceEventKind.NOTIFICATION, notification=notification))

    def on_connected(self) -> None:
        self.emit(DeviceEvent(DeviceEventKind.CONNECTED))

    def on_error(self, error: BaseException) -> None:
        self.emit(DeviceEvent(DeviceEventKind.ERROR, error=error))

    def on_disconnected(self) -> None:
        for subscriber in list(self.subscribers):
            subscriber.on_end_of_stream()
        self.emit(DeviceEvent(DeviceEventKind.DISCONNECTED))
