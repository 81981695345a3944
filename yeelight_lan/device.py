#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
YeelightDevice -- a YeelightConnection with methods for the documented light commands.

Every method validates its arguments before touching the network; an out-of-range value
raises ValidationError and nothing is sent.

Usage:
    async with YeelightDevice(DeviceRecord("192.168.1.23")) as light:
        await light.turn_on()
        await light.set_brightness(50)
        await light.set_rgb(255, 0, 0)
"""

from __future__ import annotations

from enum import IntEnum

from .internal_types import *
from .exceptions import ValidationError
from .connection import YeelightConnection

DEFAULT_DURATION_MS = 500
"""The default transition time of a change, in milliseconds"""

SMOOTH = "smooth"

class PowerMode(IntEnum):
    """The mode a light switches into when it is powered on"""
    NORMAL = 0
    COLOR_TEMPERATURE = 1
    RGB = 2
    HSV = 3
    COLOR_FLOW = 4
    NIGHT_LIGHT = 5

def check_range(name: str, value: int, min_value: int, max_value: int) -> int:
    """Raises ValidationError unless `value` is an integer in [min_value, max_value]"""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer: {value!r}")
    if not (min_value <= value <= max_value):
        raise ValidationError(f"{name} must be between {min_value} and {max_value}: {value}")
    return value

def encode_rgb(red: int, green: int, blue: int) -> int:
    """Packs 8-bit color components into the single integer the set_rgb command takes.
       e.g., (255, 0, 0) -> 16711680"""
    check_range("Red", red, 0, 255)
    check_range("Green", green, 0, 255)
    check_range("Blue", blue, 0, 255)
    return (red << 16) | (green << 8) | blue

def _check_duration(duration_ms: int) -> int:
    return check_range("Duration", duration_ms, 0, 2**31 - 1)

class YeelightDevice(YeelightConnection):

    async def set_power(self, power: str, mode: PowerMode=PowerMode.NORMAL, duration_ms: int=DEFAULT_DURATION_MS) -> None:
        if power not in ("on", "off"):
            raise ValidationError(f"Power must be 'on' or 'off': {power!r}")
        try:
            mode = PowerMode(mode)
        except ValueError:
            raise ValidationError(f"Unknown power mode: {mode!r}")
        _check_duration(duration_ms)
        await self.send_command("set_power", [power, int(mode), duration_ms])

    async def turn_on(self, duration_ms: int=DEFAULT_DURATION_MS) -> None:
        await self.set_power("on", PowerMode.NORMAL, duration_ms)

    async def turn_off(self, duration_ms: int=DEFAULT_DURATION_MS) -> None:
        await self.set_power("off", PowerMode.NORMAL, duration_ms)

    async def set_brightness(self, brightness: int, duration_ms: int=DEFAULT_DURATION_MS) -> None:
        """Sets brightness, 1 to 100 percent"""
        check_range("Brightness", brightness, 1, 100)
        _check_duration(duration_ms)
        await self.send_command("set_bright", [brightness, SMOOTH, duration_ms])

    async def set_rgb(self, red: int, green: int, blue: int, duration_ms: int=DEFAULT_DURATION_MS) -> None:
        rgb = encode_rgb(red, green, blue)
        _check_duration(duration_ms)
        await self.send_command("set_rgb", [rgb, SMOOTH, duration_ms])

    async def set_color_temperature(self, temperature: int, duration_ms: int=DEFAULT_DURATION_MS) -> None:
        """Sets the white color temperature, 1700 to 6500 Kelvin"""
        check_range("Color temperature", temperature, 1700, 6500)
        _check_duration(duration_ms)
        await self.send_command("set_ct_abx", [temperature, SMOOTH, duration_ms])

    async def set_hsv(self, hue: int, saturation: int, duration_ms: int=DEFAULT_DURATION_MS) -> None:
        check_range("Hue", hue, 0, 359)
        check_range("Saturation", saturation, 0, 100)
        _check_duration(duration_ms)
        await self.send_command("set_hsv", [hue, saturation, SMOOTH, duration_ms])

    async def get_properties(self, *names: str) -> Dict[str, Any]:
        """Reads the named properties (e.g., "power", "bright", "rgb") and returns a name->value dict.
           Properties the device does not know come back as ''."""
        if len(names) == 0:
            raise ValidationError("At least one property name is required")
        values = await self.send_command("get_prop", list(names))
        return dict(zip(names, values))
