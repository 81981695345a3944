# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

DISCOVERY_MULTICAST_ADDRESS = "239.255.255.250"
"""The multicast address that Yeelight devices listen on for discovery probes."""

DISCOVERY_PORT = 1982
"""The UDP port that Yeelight devices listen on for discovery probes."""

DISCOVERY_PROBE = (
    b'M-SEARCH * HTTP/1.1\r\n'
    b'HOST: 239.255.255.250:1982\r\n'
    b'MAN: "ssdp:discover"\r\n'
    b'ST: wifi_bulb\r\n'
    b'\r\n'
  )
"""The fixed datagram multicast to find devices."""

DEVICE_FAMILY_MARKER = "yeelight"
"""Discovery responses that do not contain this string are ignored."""

LOCATION_SCHEME = "yeelight://"
"""The scheme prefix of the Location header in discovery responses."""

DEFAULT_DEVICE_PORT = 55443
"""The TCP control port used when neither the options nor the device record name one."""

DEFAULT_TIMEOUT = 30.0
"""The default connect and per-command deadline, in seconds."""

DEFAULT_DISCOVERY_TIMEOUT = 3.0
"""The default amount of time (in seconds) a discovery scan listens for responses."""

DEFAULT_CACHE_FILENAME = ".yeelight-cache.json"
"""The device cache file name, relative to the current directory."""

CACHE_FILE_ENV_VAR = "YEELIGHT_CACHE_FILE"
"""Environment variable that overrides the device cache location."""

LINE_TERMINATOR = b'\n'
"""Every message on the control connection ends with this byte."""

OUTBOUND_LINE_TERMINATOR = b'\r\n'
"""Terminator written after outbound commands. Devices accept CRLF; inbound framing splits on LF."""

READ_CHUNK_SIZE = 4096
"""Maximum number of bytes read from the control connection at a time."""
