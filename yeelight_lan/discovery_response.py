#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Parsing of the HTTP-like datagrams that devices send in answer to a discovery probe.

A typical response:

    HTTP/1.1 200 OK
    Cache-Control: max-age=3600
    Location: yeelight://192.168.1.239:55443
    id: 0x000000000015243f
    model: color
    fw_ver: 18
    support: get_prop set_default set_power toggle set_bright start_cf stop_cf
    power: on
    name: bedroom
"""

from __future__ import annotations

from .internal_types import *
from .constants import DEVICE_FAMILY_MARKER, LOCATION_SCHEME, DEFAULT_DEVICE_PORT
from .exceptions import ParseError
from .device_record import DeviceRecord
from .util import CaseInsensitiveDict, split_bytes_at_lf_or_crlf, parse_http_headers

class DiscoveryResponse:
    """A parsed discovery response datagram.

    Header lookup is case-insensitive. Missing headers are None, never an error.
    """

    raw_data: bytes
    statement_line: str
    headers: CaseInsensitiveDict[str]

    def __init__(self, raw_data: bytes):
        self.raw_data = raw_data
        try:
            statement_and_remainder = split_bytes_at_lf_or_crlf(raw_data, 1)
            self.statement_line = statement_and_remainder[0].decode('utf-8', errors='replace').strip()
            remainder = b'' if len(statement_and_remainder) < 2 else statement_and_remainder[1]
            self.headers = parse_http_headers(remainder)
        except Exception as e:
            raise ParseError(f"Unparsable discovery response: {e}", raw_data=raw_data) from e

    @classmethod
    def is_device_response(cls, raw_data: bytes) -> bool:
        """True if the datagram carries the device-family marker"""
        return DEVICE_FAMILY_MARKER.encode('ascii') in raw_data

    def get(self, name: str) -> Optional[str]:
        """The value of a header, or None if it is missing or empty"""
        result = self.headers.get(name)
        if result is None or result == '':
            return None
        return result

    @property
    def hdr_location(self) -> Optional[HostAndPort]:
        """Returns the "Location" header as a HostAndPort.

        Returns None if there is no Location header or it is not a valid host/port string.
        """
        location = self.get("Location")
        if location is None:
            return None
        if location.lower().startswith(LOCATION_SCHEME):
            location = location[len(LOCATION_SCHEME):]
        location = location.rstrip('/')
        parts = location.split(':', 1)
        host = parts[0]
        if host == '':
            return None
        if len(parts) < 2:
            port = DEFAULT_DEVICE_PORT
        else:
            try:
                port = int(parts[1])
            except ValueError:
                return None
        return (host, port)

    @property
    def hdr_support(self) -> Optional[List[str]]:
        """Returns the space-delimited "support" header as a List[str]"""
        support = self.get("support")
        if support is None:
            return None
        return support.split()

    @property
    def hdr_power(self) -> Optional[str]:
        power = self.get("power")
        if power is None:
            return None
        power = power.lower()
        return power if power in ("on", "off") else None

    def to_device_record(self) -> DeviceRecord:
        """Raises ParseError if the response has no usable Location header."""
        location = self.hdr_location
        if location is None:
            raise ParseError(f"Discovery response has no valid Location header: {self}", raw_data=self.raw_data)
        ip, port = location
        return DeviceRecord(
            ip,
            port=port,
            id=self.get("id"),
            model=self.get("model"),
            name=self.get("name"),
            firmware=self.get("fw_ver"),
            capabilities=self.hdr_support,
            power=self.hdr_power,
          )

    def __str__(self) -> str:
        return f"DiscoveryResponse('{self.statement_line}', headers={dict(self.headers)})"

    def __repr__(self) -> str:
        return str(self)
