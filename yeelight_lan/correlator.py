#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
CommandCorrelator -- assigns ids to outbound commands and matches inbound responses to the
commands that caused them.

Any number of commands may be outstanding on one connection. Each has its own future and its
own deadline timer; a command completes exactly once, by a matching response, by its deadline,
or by the connection closing.

All state is touched only from the event loop thread, so no locking is needed.
"""

from __future__ import annotations

import asyncio
from asyncio import Future

from .internal_types import *
from .pkg_logging import logger
from .exceptions import NotConnected, SendFailure, CommandTimeout, ConnectionClosed
from .messages import Command, Response, ResultResponse, ErrorResponse
from .diagnostics import DiagnosticSink, default_diagnostic_sink

CommandWriter = Callable[[bytes], Awaitable[None]]
"""Writes an encoded command to the transport; raises on failure."""

class PendingCommand:
    """A command that has been registered and not yet completed"""

    command: Command
    future: Future[Tuple[Any, ...]]
    timer: Optional[asyncio.TimerHandle] = None
    deadline: float
    """Event loop time (loop.time()) at which the command times out"""

    def __init__(self, command: Command, future: Future[Tuple[Any, ...]], deadline: float):
        self.command = command
        self.future = future
        self.deadline = deadline

    @property
    def id(self) -> int:
        return self.command.id

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def resolve(self, values: Tuple[Any, ...]) -> None:
        self.cancel_timer()
        if not self.future.done():
            self.future.set_result(values)

    def reject(self, exc: BaseException) -> None:
        self.cancel_timer()
        if not self.future.done():
            self.future.set_exception(exc)

    def __str__(self) -> str:
        return f"PendingCommand({self.command})"

    def __repr__(self) -> str:
        return str(self)

class CommandCorrelator:
    diagnostic_sink: DiagnosticSink
    _writer: Optional[CommandWriter] = None
    _last_id: int = 0
    _pending: Dict[int, PendingCommand]

    def __init__(self, diagnostic_sink: Optional[DiagnosticSink]=None):
        self.diagnostic_sink = default_diagnostic_sink if diagnostic_sink is None else diagnostic_sink
        self._pending = {}

    @property
    def is_attached(self) -> bool:
        return self._writer is not None

    @property
    def pending_ids(self) -> List[int]:
        return sorted(self._pending.keys())

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def last_id(self) -> int:
        """The most recently issued id on the current connection; 0 if none has been issued yet"""
        return self._last_id

    def attach(self, writer: CommandWriter) -> None:
        """Begins a new connection. Ids start over at 1."""
        assert len(self._pending) == 0
        self._writer = writer
        self._last_id = 0

    def detach(self) -> None:
        """Stops accepting new commands. Pending commands are not affected; see close_all_pending()."""
        self._writer = None

    def _next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    async def send(self, method: str, params: Optional[Iterable[Any]]=None, timeout: float=30.0) -> Tuple[Any, ...]:
        """Sends a command and waits for its response.

        Returns the "result" values of the response.

        Raises:
            NotConnected:     There is no connection. No id is consumed and nothing is written.
            SendFailure:      The command could not be written.
            DeviceError:      The device answered with an error.
            CommandTimeout:   No response arrived within `timeout` seconds.
            ConnectionClosed: The connection was torn down before a response arrived.
        """
        writer = self._writer
        if writer is None:
            raise NotConnected(f"Not connected; cannot send {method}")

        loop = asyncio.get_running_loop()
        command = Command(self._next_id(), method, params)
        assert command.id not in self._pending
        future: Future[Tuple[Any, ...]] = loop.create_future()
        pending = PendingCommand(command, future, loop.time() + timeout)
        pending.timer = loop.call_at(pending.deadline, self._on_timeout, command.id)
        self._pending[command.id] = pending

        try:
            self.diagnostic_sink.debug(f"Sending {command}")
            try:
                await writer(command.raw_data)
            except Exception as e:
                self._remove(command.id)
                pending.cancel_timer()
                if future.done() and not future.cancelled():
                    # Already rejected by a concurrent close; the SendFailure below supersedes it
                    future.exception()
                raise SendFailure(f"Failed to send command {command}: {e}", command=command) from e
            return await future
        finally:
            # Reached with the entry still present only if the caller was cancelled
            if self._pending.get(command.id) is pending:
                self._remove(command.id)
                pending.cancel_timer()

    def _remove(self, id: int) -> Optional[PendingCommand]:
        return self._pending.pop(id, None)

    def on_response(self, response: Response) -> None:
        """Completes the pending command whose id matches the response. Unknown ids are dropped."""
        pending = self._remove(response.id)
        if pending is None:
            self.diagnostic_sink.debug(f"Dropping response with unknown id: {response}")
            return
        if isinstance(response, ErrorResponse):
            pending.reject(response.to_exception(pending.command))
        else:
            assert isinstance(response, ResultResponse)
            pending.resolve(response.values)

    def _on_timeout(self, id: int) -> None:
        pending = self._remove(id)
        if pending is not None:
            pending.timer = None
            logger.debug(f"{pending} timed out")
            pending.reject(CommandTimeout(f"Command timed out: {pending.command}", command=pending.command))

    def close_all_pending(self) -> int:
        """Rejects every pending command with ConnectionClosed and empties the table.

        Also detaches, so no command can be registered while the table is drained.

        Returns the number of commands rejected.
        """
        self.detach()
        pending_commands = list(self._pending.values())
        self._pending = {}
        for pending in pending_commands:
            pending.reject(ConnectionClosed(f"Connection closed with command pending: {pending.command}", command=pending.command))
        if len(pending_commands) > 0:
            logger.debug(f"Rejected {len(pending_commands)} pending commands on connection close")
        return len(pending_commands)
