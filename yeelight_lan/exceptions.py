#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from __future__ import annotations

from .internal_types import *

if TYPE_CHECKING:
    from .messages import Command

class YeelightError(Exception):
    """Base class for all error exceptions defined by this package."""

    command: Optional[Command] = None
    """The command this error relates to, if any"""

    def __init__(self, message: str, command: Optional[Command]=None):
        super().__init__(message)
        self.command = command

class ValidationError(YeelightError, ValueError):
    """A caller-supplied parameter was out of its documented range. Raised before any network activity."""
    pass

class ConnectionTimeout(YeelightError):
    """The TCP connection to the device was not established within the deadline."""
    pass

class TransportError(YeelightError):
    """The transport failed while connecting or while connected."""
    pass

class ConnectionRefused(TransportError):
    """The device refused the TCP connection."""
    pass

class NotConnected(YeelightError):
    """A command was attempted while the session was not connected."""
    pass

class SendFailure(YeelightError):
    """Writing a registered command to the transport failed."""
    pass

class CommandTimeout(YeelightError):
    """No response for a command arrived within its deadline."""
    pass

class ConnectionClosed(YeelightError):
    """A pending command was invalidated because the connection was torn down."""
    pass

class DeviceError(YeelightError):
    """The device answered a command with an error object."""

    code: int
    message: str

    def __init__(self, code: int, message: str, command: Optional[Command]=None):
        super().__init__(f"Device error {code}: {message}", command=command)
        self.code = code
        self.message = message

class ParseError(YeelightError):
    """An inbound line or datagram could not be decoded. Reported, never raised out of a session or scan."""

    raw_data: bytes

    def __init__(self, message: str, raw_data: bytes=b''):
        super().__init__(message)
        self.raw_data = raw_data

class DiscoveryInterfaceError(YeelightError):
    """Setting up discovery on a single network interface failed. Reported, never raised out of a scan."""

    bind_address: str

    def __init__(self, message: str, bind_address: str):
        super().__init__(message)
        self.bind_address = bind_address
