#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple utility functions used by this package
"""

from __future__ import annotations

from typing_extensions import SupportsIndex

import netifaces
import socket
from ipaddress import IPv4Address

from .internal_types import *

from email.parser import BytesHeaderParser
from email.message import Message as EmailParserMessage
from requests.structures import CaseInsensitiveDict

def split_bytes_at_lf_or_crlf(data: bytes, maxsplit: SupportsIndex = -1) -> List[bytes]:
    """Split a byte string at LF or CRLF.

    If maxsplit is given, at most maxsplit splits are done.

    Returns a List[bytes] representing the delimited lines with the delimiters removed.
    """
    parts = data.split(b'\n', maxsplit)
    if len(parts) > 1:
        for i, part in enumerate(parts[:-1]):
            if part.endswith(b'\r'):
                parts[i] = part[:-1]
    return parts

def parse_http_headers(data: bytes) -> CaseInsensitiveDict[str]:
    """Parse HTTP-style "name: value" header lines out of a byte string.

    Lines may end in '\n' or '\r\n'. Parsing stops at the first empty line. Values have surrounding
    whitespace removed and are not otherwise decoded. If a header is repeated, the first
    occurrence is kept.

    It is assumed that any preceding statement line (e.g., "HTTP/1.1 200 OK\r\n") has already been removed.
    """
    lines = split_bytes_at_lf_or_crlf(data)
    header_lines: List[bytes] = []
    for line in lines:
        if len(line.strip()) == 0:
            break
        header_lines.append(line)
    headers_data = b''.join(line + b'\r\n' for line in header_lines)

    msg: EmailParserMessage = BytesHeaderParser().parsebytes(headers_data)
    headers: CaseInsensitiveDict[str] = CaseInsensitiveDict()
    for name, value in msg.items():
        if name not in headers:
            headers[name] = str(value).strip()
    return headers

def get_local_ip_addresses_and_interfaces(include_loopback: bool=False) -> List[Tuple[str, str]]:
    """Returns a list of Tuple[ip_address: str, interface_name: str] for the IPv4 addresses of the local host.

       Addresses on the default gateway interface are listed first. Loopback addresses are omitted
       unless include_loopback is True, in which case they are listed last.
    """
    result_with_priority: List[Tuple[int, str, str]] = []
    default_gateway_ifname = get_default_ip_gateway()[1]
    for ifname in netifaces.interfaces():
        ifinfo = netifaces.ifaddresses(ifname)
        for addrinfo in ifinfo.get(netifaces.AF_INET, []):
            ip_str = addrinfo.get('addr')
            if not isinstance(ip_str, str):
                continue
            if IPv4Address(ip_str).is_loopback:
                if not include_loopback:
                    continue
                priority = 2
            elif ifname == default_gateway_ifname:
                priority = 0
            else:
                priority = 1
            result_with_priority.append((priority, ip_str, ifname))
    return [ (ip, ifname) for _, ip, ifname in sorted(result_with_priority)]

def get_default_ip_gateway() -> Tuple[Optional[str], Optional[str]]:
    """Returns the (gateway_ip_address: str, gateway_interface_name: str) for the default IPv4 gateway, if any.
       returns (None, None) if there is no default gateway."""
    gws = netifaces.gateways()
    if "default" in gws:
        default_gateway_infos = gws["default"]
        if netifaces.AF_INET in default_gateway_infos:
            gw_ip, gw_interface_name = default_gateway_infos[netifaces.AF_INET][:2]
            return (gw_ip, gw_interface_name)
    return (None, None)

def is_multicast_address(address: str) -> bool:
    try:
        return IPv4Address(address).is_multicast
    except ValueError:
        return False

def inet_aton_or_any(address: str) -> bytes:
    """The 4-byte packed form of an IPv4 address, or of INADDR_ANY for ''"""
    if address == '':
        return socket.inet_aton('0.0.0.0')
    return socket.inet_aton(address)
