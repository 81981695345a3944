# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package yeelight_lan controls Yeelight smart lights over the local network.

Devices are found with a UDP multicast discovery probe (239.255.255.250:1982), and
controlled over a plaintext TCP connection (port 55443 by default) that carries one
JSON object per line. Commands are correlated with their responses by id, so any number
of commands may be outstanding at once; the device may also push unsolicited notifications
on the same connection.

There is no authentication and no automatic reconnection.
"""

from .version import __version__

from .internal_types import Jsonable, JsonableDict

from .exceptions import (
    YeelightError,
    ValidationError,
    ConnectionTimeout,
    TransportError,
    ConnectionRefused,
    NotConnected,
    SendFailure,
    CommandTimeout,
    ConnectionClosed,
    DeviceError,
    ParseError,
    DiscoveryInterfaceError,
  )

from .messages import Command, Response, ResultResponse, ErrorResponse, Notification, decode_message
from .diagnostics import DiagnosticSink, LoggerDiagnosticSink
from .options import YeelightOptions
from .device_record import DeviceRecord
from .device_cache import DeviceCache
from .line_framer import LineFramer
from .correlator import CommandCorrelator, PendingCommand
from .notifications import NotificationRouter, NotificationSubscriber, DeviceEvent, DeviceEventKind
from .connection import YeelightConnection, ConnectionState
from .device import YeelightDevice, PowerMode, encode_rgb
from .discovery_response import DiscoveryResponse
from .discovery import DiscoveryScanner, DiscoveryScan, discover
from .constants import DISCOVERY_MULTICAST_ADDRESS, DISCOVERY_PORT, DEFAULT_DEVICE_PORT

__all__ = [
    '__version__',
    'Jsonable', 'JsonableDict',
    'YeelightError', 'ValidationError', 'ConnectionTimeout', 'TransportError', 'ConnectionRefused',
    'NotConnected', 'SendFailure', 'CommandTimeout', 'ConnectionClosed', 'DeviceError',
    'ParseError', 'DiscoveryInterfaceError',
    'Command', 'Response', 'ResultResponse', 'ErrorResponse', 'Notification', 'decode_message',
    'DiagnosticSink', 'LoggerDiagnosticSink',
    'YeelightOptions',
    'DeviceRecord', 'DeviceCache',
    'LineFramer', 'CommandCorrelator', 'PendingCommand',
    'NotificationRouter', 'NotificationSubscriber', 'DeviceEvent', 'DeviceEventKind',
    'YeelightConnection', 'ConnectionState',
    'YeelightDevice', 'PowerMode', 'encode_rgb',
    'DiscoveryResponse', 'DiscoveryScanner', 'DiscoveryScan', 'discover',
    'DISCOVERY_MULTICAST_ADDRESS', 'DISCOVERY_PORT', 'DEFAULT_DEVICE_PORT',
]
