#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LineFramer -- splits the inbound byte stream of a control connection into lines, decodes
each line, and hands responses and notifications to their consumers.

The buffer is kept as bytes so that a multi-byte UTF-8 sequence split across two reads is
decoded only once the whole line is present.
"""

from __future__ import annotations

from .internal_types import *
from .constants import LINE_TERMINATOR
from .exceptions import ParseError
from .messages import Response, Notification, decode_message
from .diagnostics import DiagnosticSink, default_diagnostic_sink

ResponseHandler = Callable[[Response], None]
NotificationHandler = Callable[[Notification], None]

class LineFramer:
    on_response: ResponseHandler
    on_notification: NotificationHandler
    diagnostic_sink: DiagnosticSink
    _buffer: bytearray

    def __init__(
            self,
            on_response: ResponseHandler,
            on_notification: NotificationHandler,
            diagnostic_sink: Optional[DiagnosticSink]=None,
          ):
        self.on_response = on_response
        self.on_notification = on_notification
        self.diagnostic_sink = default_diagnostic_sink if diagnostic_sink is None else diagnostic_sink
        self._buffer = bytearray()

    @property
    def buffered(self) -> bytes:
        """Bytes received that do not yet form a complete line"""
        return bytes(self._buffer)

    def reset(self) -> None:
        """Discards any partial line. Called when a new connection is made."""
        self._buffer.clear()

    def feed(self, data: bytes) -> None:
        """Appends a chunk received from the transport and dispatches every complete line in the buffer."""
        self._buffer += data
        while True:
            i = self._buffer.find(LINE_TERMINATOR)
            if i == -1:
                break
            line = bytes(self._buffer[:i])
            del self._buffer[:i + 1]
            self._dispatch_line(line)

    def _dispatch_line(self, line: bytes) -> None:
        if line.endswith(b'\r'):
            line = line[:-1]
        if len(line.strip()) == 0:
            return
        self.diagnostic_sink.debug(f"Received line: {line!r}")
        try:
            message = decode_message(line)
        except ParseError as e:
            self.diagnostic_sink.error(f"Discarding malformed line: {e}")
            return
        try:
            if isinstance(message, Notification):
                self.on_notification(message)
            else:
                self.on_response(message)
        except Exception as e:
            self.diagnostic_sink.error(f"Handler raised exception processing {message}: {e}")
