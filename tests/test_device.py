"""
Tests for the YeelightDevice light commands.
"""

import asyncio

import pytest

from yeelight_lan import PowerMode, ValidationError, YeelightDevice, encode_rgb


@pytest.mark.parametrize(
    "rgb, expected",
    [
        ((255, 0, 0), 16711680),
        ((0, 255, 0), 65280),
        ((0, 0, 255), 255),
        ((255, 255, 255), 16777215),
        ((0, 0, 0), 0),
    ],
)
def test_encode_rgb(rgb, expected):
    assert encode_rgb(*rgb) == expected


@pytest.mark.parametrize("rgb", [(256, 0, 0), (0, -1, 0), (0, 0, 1000)])
def test_encode_rgb_out_of_range(rgb):
    with pytest.raises(ValidationError):
        encode_rgb(*rgb)


class TestYeelightDevice:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("brightness", [0, 101, -5])
    async def test_brightness_out_of_range_sends_nothing(self, brightness, device_record, options, fake_device):
        async with YeelightDevice(device_record, options) as device:
            with pytest.raises(ValidationError):
                await device.set_brightness(brightness)
            await asyncio.sleep(0.02)
        assert fake_device.received == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("brightness", [1, 100])
    async def test_brightness_bounds_send_one_command(self, brightness, device_record, options, fake_device):
        async with YeelightDevice(device_record, options) as device:
            await device.set_brightness(brightness)
        assert fake_device.received == [
            {"id": 1, "method": "set_bright", "params": [brightness, "smooth", 500]}
        ]

    @pytest.mark.asyncio
    async def test_set_power(self, device_record, options, fake_device):
        async with YeelightDevice(device_record, options) as device:
            await device.turn_on()
            await device.turn_off(duration_ms=30)
            await device.set_power("on", PowerMode.RGB)
        assert [c["params"] for c in fake_device.received] == [
            ["on", 0, 500],
            ["off", 0, 30],
            ["on", 2, 500],
        ]
        assert {c["method"] for c in fake_device.received} == {"set_power"}

    @pytest.mark.asyncio
    async def test_set_power_rejects_bad_state(self, device_record, options, fake_device):
        async with YeelightDevice(device_record, options) as device:
            with pytest.raises(ValidationError):
                await device.set_power("dim")
            with pytest.raises(ValidationError):
                await device.set_power("on", 17)
        assert fake_device.received == []

    @pytest.mark.asyncio
    async def test_set_rgb(self, device_record, options, fake_device):
        async with YeelightDevice(device_record, options) as device:
            await device.set_rgb(0, 255, 0)
        assert fake_device.received[0]["method"] == "set_rgb"
        assert fake_device.received[0]["params"] == [65280, "smooth", 500]

    @pytest.mark.asyncio
    async def test_set_color_temperature(self, device_record, options, fake_device):
        async with YeelightDevice(device_record, options) as device:
            await device.set_color_temperature(2700)
            with pytest.raises(ValidationError):
                await device.set_color_temperature(1000)
        assert fake_device.received == [
            {"id": 1, "method": "set_ct_abx", "params": [2700, "smooth", 500]}
        ]

    @pytest.mark.asyncio
    async def test_set_hsv(self, device_record, options, fake_device):
        async with YeelightDevice(device_record, options) as device:
            await device.set_hsv(359, 100)
            with pytest.raises(ValidationError):
                await device.set_hsv(360, 50)
            with pytest.raises(ValidationError):
                await device.set_hsv(10, 101)
        assert fake_device.received == [
            {"id": 1, "method": "set_hsv", "params": [359, 100, "smooth", 500]}
        ]

    @pytest.mark.asyncio
    async def test_get_properties(self, device_record, options, fake_device):
        fake_device.auto_reply = False
        async with YeelightDevice(device_record, options) as device:
            task = asyncio.create_task(device.get_properties("power", "bright", "rgb"))
            command = await fake_device.next_command()
            assert command["method"] == "get_prop"
            assert command["params"] == ["power", "bright", "rgb"]
            await fake_device.reply({"id": command["id"], "result": ["on", "80", ""]})
            assert await task == {"power": "on", "bright": "80", "rgb": ""}

    @pytest.mark.asyncio
    async def test_get_properties_requires_a_name(self, device_record, options):
        async with YeelightDevice(device_record, options) as device:
            with pytest.raises(ValidationError):
                await device.get_properties()
