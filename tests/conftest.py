"""
Shared fixtures for yeelight_lan tests.

FakeDevice is an in-process TCP server on 127.0.0.1 that speaks the line-delimited JSON
control protocol well enough to exercise a session.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio

from yeelight_lan import DeviceRecord, DeviceCache, YeelightOptions


class FakeDevice:
    """Records every command it receives and, if auto_reply is set, answers {"result": ["ok"]}"""

    def __init__(self) -> None:
        self.received: List[Dict[str, Any]] = []
        self.commands: asyncio.Queue = asyncio.Queue()
        self.auto_reply = True
        self.writers: List[asyncio.StreamWriter] = []
        self.connected = asyncio.Event()
        self.server: Optional[asyncio.AbstractServer] = None
        self.port = 0

    async def start(self) -> None:
        self.server = await asyncio.start_server(self._handle_client, "127.0.0.1", 0)
        self.port = self.server.sockets[0].getsockname()[1]

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.writers.append(writer)
        self.connected.set()
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                command = json.loads(line)
                self.received.append(command)
                await self.commands.put(command)
                if self.auto_reply:
                    await self.reply({"id": command["id"], "result": ["ok"]})
        except (ConnectionError, asyncio.CancelledError):
            pass
        finally:
            writer.close()

    async def send_raw(self, data: bytes) -> None:
        for writer in list(self.writers):
            if not writer.is_closing():
                writer.write(data)
                await writer.drain()

    async def reply(self, message: Dict[str, Any]) -> None:
        await self.send_raw(json.dumps(message).encode("utf-8") + b"\r\n")

    async def next_command(self, timeout: float = 2.0) -> Dict[str, Any]:
        return await asyncio.wait_for(self.commands.get(), timeout)

    async def drop_clients(self) -> None:
        for writer in list(self.writers):
            writer.close()
        self.writers = []

    async def stop(self) -> None:
        await self.drop_clients()
        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()


@pytest_asyncio.fixture
async def fake_device():
    device = FakeDevice()
    await device.start()
    yield device
    await device.stop()


@pytest.fixture
def device_record(fake_device) -> DeviceRecord:
    return DeviceRecord("127.0.0.1", port=fake_device.port, name="test-bulb")


@pytest.fixture
def options() -> YeelightOptions:
    return YeelightOptions(timeout=2.0)


@pytest.fixture
def cache(tmp_path) -> DeviceCache:
    return DeviceCache(str(tmp_path / "cache.json"))


class RecordingSink:
    """A diagnostic sink that keeps what it is given"""

    def __init__(self) -> None:
        self.debug_messages: List[str] = []
        self.error_messages: List[str] = []

    def debug(self, message: str) -> None:
        self.debug_messages.append(message)

    def error(self, message: str) -> None:
        self.error_messages.append(message)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
