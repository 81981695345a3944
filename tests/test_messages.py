"""
Unit tests for encoding commands and decoding inbound lines.
"""

import json

import pytest

from yeelight_lan import (
    Command,
    DeviceError,
    ErrorResponse,
    Notification,
    ParseError,
    ResultResponse,
    decode_message,
)


class TestCommand:
    def test_raw_data_is_one_terminated_json_line(self):
        command = Command(7, "set_bright", [50, "smooth", 500])

        raw = command.raw_data

        assert raw.endswith(b"\r\n")
        assert raw.count(b"\n") == 1
        assert json.loads(raw) == {"id": 7, "method": "set_bright", "params": [50, "smooth", 500]}

    def test_params_default_to_empty(self):
        command = Command(1, "toggle")

        assert command.params == ()
        assert json.loads(command.raw_data)["params"] == []


class TestDecodeMessage:
    def test_result(self):
        message = decode_message(b'{"id": 3, "result": ["ok"]}')

        assert message == ResultResponse(3, ["ok"])

    def test_error(self):
        message = decode_message(b'{"id": 4, "error": {"code": -1, "message": "unsupported method"}}')

        assert isinstance(message, ErrorResponse)
        assert message.id == 4
        assert message.code == -1
        assert message.message == "unsupported method"

    def test_error_to_exception_carries_code_and_command(self):
        command = Command(4, "set_scene", [])
        error = ErrorResponse(4, -5000, "general error").to_exception(command)

        assert isinstance(error, DeviceError)
        assert error.code == -5000
        assert error.message == "general error"
        assert error.command is command

    def test_notification(self):
        message = decode_message(b'{"method": "props", "params": {"power": "on", "bright": "10"}}')

        assert message == Notification("props", {"power": "on", "bright": "10"})

    def test_method_takes_priority_over_id(self):
        message = decode_message(b'{"id": 9, "method": "props", "params": []}')

        assert isinstance(message, Notification)

    def test_notification_list_params_are_immutable(self):
        message = decode_message(b'{"method": "props", "params": [1, 2]}')

        assert message.params == (1, 2)

    def test_notification_dict_params_are_read_only(self):
        params = {"power": "on"}
        message = Notification("props", params)
        params["power"] = "off"

        assert message.params == {"power": "on"}
        with pytest.raises(TypeError):
            message.params["power"] = "off"

    def test_deeply_nested_line_raises_parse_error(self):
        with pytest.raises(ParseError):
            decode_message(b"[" * 200000)

    @pytest.mark.parametrize(
        "line",
        [
            b"not json",
            b"[1, 2, 3]",
            b'{"foo": "bar"}',
            b'{"id": "seven", "result": []}',
            b'{"id": 1}',
            b'{"id": 1, "error": "bad"}',
            b'{"method": 5}',
            b"\xff\xfe",
        ],
    )
    def test_invalid_lines_raise_parse_error(self, line):
        with pytest.raises(ParseError):
            decode_message(line)
