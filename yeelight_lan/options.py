#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Connection options for a device session.
"""

from __future__ import annotations

import os

from .internal_types import *
from .constants import DEFAULT_TIMEOUT, DEFAULT_DEVICE_PORT
from .exceptions import ValidationError
from .diagnostics import DiagnosticSink, default_diagnostic_sink

PORT_ENV_VAR = "YEELIGHT_PORT"
TIMEOUT_ENV_VAR = "YEELIGHT_TIMEOUT"

class YeelightOptions:
    port: Optional[int]
    """Overrides the port of the device record, if not None"""

    timeout: float
    """Connect deadline and per-command deadline, in seconds"""

    diagnostic_sink: DiagnosticSink

    def __init__(
            self,
            port: Optional[int]=None,
            timeout: float=DEFAULT_TIMEOUT,
            diagnostic_sink: Optional[DiagnosticSink]=None,
          ):
        if port is not None and not (0 < port < 65536):
            raise ValidationError(f"Port must be between 1 and 65535: {port}")
        if timeout <= 0.0:
            raise ValidationError(f"Timeout must be positive: {timeout}")
        self.port = port
        self.timeout = timeout
        self.diagnostic_sink = default_diagnostic_sink if diagnostic_sink is None else diagnostic_sink

    def resolve_port(self, record_port: Optional[int]) -> int:
        """The port to connect to for a device record that advertises `record_port`"""
        if self.port is not None:
            return self.port
        if record_port is not None:
            return record_port
        return DEFAULT_DEVICE_PORT

    @classmethod
    def from_jsonable(cls, data: JsonableDict, diagnostic_sink: Optional[DiagnosticSink]=None) -> YeelightOptions:
        """Creates options from a dict with optional "port", "timeout" (seconds) or "timeout_ms" keys."""
        port = data.get('port')
        if port is not None and not isinstance(port, int):
            raise ValidationError(f"Option 'port' must be an integer: {port!r}")
        timeout: float = DEFAULT_TIMEOUT
        if 'timeout' in data:
            raw_timeout = data['timeout']
            if not isinstance(raw_timeout, (int, float)):
                raise ValidationError(f"Option 'timeout' must be a number: {raw_timeout!r}")
            timeout = float(raw_timeout)
        elif 'timeout_ms' in data:
            raw_timeout = data['timeout_ms']
            if not isinstance(raw_timeout, (int, float)):
                raise ValidationError(f"Option 'timeout_ms' must be a number: {raw_timeout!r}")
            timeout = float(raw_timeout) / 1000.0
        return cls(port=port, timeout=timeout, diagnostic_sink=diagnostic_sink)

    @classmethod
    def from_env(cls, diagnostic_sink: Optional[DiagnosticSink]=None) -> YeelightOptions:
        """Creates options from $YEELIGHT_PORT and $YEELIGHT_TIMEOUT (seconds). Unset variables use defaults."""
        data: JsonableDict = {}
        port_str = os.getenv(PORT_ENV_VAR)
        if port_str is not None and port_str != '':
            try:
                data['port'] = int(port_str)
            except ValueError:
                raise ValidationError(f"{PORT_ENV_VAR} must be an integer: {port_str!r}")
        timeout_str = os.getenv(TIMEOUT_ENV_VAR)
        if timeout_str is not None and timeout_str != '':
            try:
                data['timeout'] = float(timeout_str)
            except ValueError:
                raise ValidationError(f"{TIMEOUT_ENV_VAR} must be a number: {timeout_str!r}")
        return cls.from_jsonable(data, diagnostic_sink=diagnostic_sink)

    def __str__(self) -> str:
        return f"YeelightOptions(port={self.port}, timeout={self.timeout})"

    def __repr__(self) -> str:
        return str(self)
