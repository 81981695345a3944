"""
Tests for discovery response parsing and DiscoveryScanner, using a UDP responder on the
loopback interface in place of real devices.
"""

import asyncio
import socket

import pytest
import pytest_asyncio

from yeelight_lan import (
    DeviceRecord,
    DiscoveryResponse,
    DiscoveryScan,
    DiscoveryScanner,
    ParseError,
)
from yeelight_lan.constants import DISCOVERY_PROBE


def make_response(ip="192.168.1.239", port=55443, name="bedroom", power="on"):
    return (
        "HTTP/1.1 200 OK\r\n"
        "Cache-Control: max-age=3600\r\n"
        "Date: \r\n"
        "Ext: \r\n"
        f"Location: yeelight://{ip}:{port}\r\n"
        "Server: POSIX UPnP/1.0 YGLC/1\r\n"
        "id: 0x000000000015243f\r\n"
        "model: color\r\n"
        "fw_ver: 18\r\n"
        "support: get_prop set_default set_power toggle set_bright start_cf stop_cf\r\n"
        f"power: {power}\r\n"
        "bright: 100\r\n"
        f"name: {name}\r\n"
        "\r\n"
    ).encode("utf-8")


class TestDiscoveryResponse:
    def test_to_device_record(self):
        response = DiscoveryResponse(make_response())
        record = response.to_device_record()

        assert response.statement_line == "HTTP/1.1 200 OK"
        assert record.ip == "192.168.1.239"
        assert record.port == 55443
        assert record.id == "0x000000000015243f"
        assert record.model == "color"
        assert record.firmware == "18"
        assert record.name == "bedroom"
        assert record.power == "on"
        assert record.supports("set_bright")
        assert not record.supports("set_rgb")

    def test_headers_are_case_insensitive_and_empty_is_missing(self):
        response = DiscoveryResponse(make_response())
        assert response.get("LOCATION") == "yeelight://192.168.1.239:55443"
        assert response.get("date") is None
        assert response.get("no-such-header") is None

    def test_missing_location_raises_parse_error(self):
        data = b"HTTP/1.1 200 OK\r\nid: 0x1\r\nmodel: yeelight mono\r\n\r\n"
        with pytest.raises(ParseError):
            DiscoveryResponse(data).to_device_record()

    def test_location_without_port_uses_default(self):
        data = b"HTTP/1.1 200 OK\r\nLocation: yeelight://10.0.0.5\r\n\r\n"
        assert DiscoveryResponse(data).hdr_location == ("10.0.0.5", 55443)

    def test_unknown_power_is_none(self):
        record = DiscoveryResponse(make_response(power="dimmed")).to_device_record()
        assert record.power is None

    def test_is_device_response(self):
        assert DiscoveryResponse.is_device_response(make_response())
        assert not DiscoveryResponse.is_device_response(
            b"HTTP/1.1 200 OK\r\nLocation: http://10.0.0.9:80/desc.xml\r\nServer: Linux UPnP/1.0\r\n\r\n"
        )


class FakeBinding:
    def __init__(self, name):
        self.name = name
        self.bind_address = name

    def __str__(self):
        return self.name


class TestDiscoveryScan:
    def test_first_live_response_per_ip_wins(self):
        scan = DiscoveryScan()
        addr = ("192.168.1.239", 1982)

        scan.datagram_received(FakeBinding("eth0"), addr, make_response(name="first"))
        scan.datagram_received(FakeBinding("wlan0"), addr, make_response(name="second"))

        assert [r.name for r in scan.results] == ["first"]

    def test_live_response_replaces_cached_record(self):
        cached = [
            DeviceRecord("192.168.1.239", name="stale"),
            DeviceRecord("192.168.1.50", name="offline"),
        ]
        scan = DiscoveryScan(cached)

        scan.datagram_received(FakeBinding("eth0"), ("192.168.1.239", 1982), make_response(name="fresh"))

        by_ip = {r.ip: r for r in scan.results}
        assert by_ip["192.168.1.239"].name == "fresh"
        assert by_ip["192.168.1.50"].name == "offline"
        assert len(scan.results) == 2

    def test_ignores_other_devices_and_garbage(self):
        scan = DiscoveryScan()
        scan.datagram_received(FakeBinding("eth0"), ("10.0.0.9", 1900), b"HTTP/1.1 200 OK\r\nServer: printer\r\n\r\n")
        scan.datagram_received(FakeBinding("eth0"), ("10.0.0.9", 1900), b"yeelight but no headers")
        assert scan.results == []


class ResponderProtocol(asyncio.DatagramProtocol):
    def __init__(self, responses):
        self.responses = responses
        self.probes = []
        self.transport = None

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        self.probes.append((data, addr))
        for response in self.responses:
            self.transport.sendto(response, addr)


@pytest_asyncio.fixture
async def responder():
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        lambda: ResponderProtocol([make_response(ip="127.0.0.1", port=55443, name="desk")]),
        local_addr=("127.0.0.1", 0),
    )
    protocol.port = transport.get_extra_info("sockname")[1]
    yield protocol
    transport.close()


class LoopbackScanner(DiscoveryScanner):
    """Binds plain loopback sockets instead of joining the multicast group"""

    def __init__(self, *args, fail_addresses=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_addresses = set(fail_addresses)
        self.sockets = []

    def create_socket(self, bind_address):
        if bind_address in self.fail_addresses:
            raise OSError(f"Cannot assign requested address: {bind_address}")
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        sock.bind(("127.0.0.1", 0))
        self.sockets.append(sock)
        return sock


class TestDiscoveryScanner:
    @pytest.mark.asyncio
    async def test_discover_merges_responses_from_all_interfaces(self, responder, cache):
        scanner = LoopbackScanner(
            cache=cache,
            multicast_address="127.0.0.1",
            multicast_port=responder.port,
            bind_addresses=["127.0.0.1", "127.0.0.1"],
        )

        records = await scanner.discover(timeout=0.3)

        assert len(responder.probes) == 2
        assert all(data == DISCOVERY_PROBE for data, _ in responder.probes)
        assert [r.name for r in records] == ["desk"]
        assert all(sock.fileno() == -1 for sock in scanner.sockets)

    @pytest.mark.asyncio
    async def test_failed_interface_does_not_affect_others(self, responder, cache):
        scanner = LoopbackScanner(
            cache=cache,
            multicast_address="127.0.0.1",
            multicast_port=responder.port,
            bind_addresses=["192.0.2.77", "127.0.0.1"],
            fail_addresses=["192.0.2.77"],
        )

        records = await scanner.discover(timeout=0.3)

        assert [r.ip for r in records] == ["127.0.0.1"]
        assert len(scanner.sockets) == 1
        assert scanner.sockets[0].fileno() == -1

    @pytest.mark.asyncio
    async def test_cached_devices_are_included(self, responder, cache):
        cache.save([DeviceRecord("127.0.0.1", name="old-name"), DeviceRecord("10.1.1.1", name="away")])
        scanner = LoopbackScanner(
            cache=cache,
            multicast_address="127.0.0.1",
            multicast_port=responder.port,
            bind_addresses=["127.0.0.1"],
        )

        records = {r.ip: r for r in await scanner.discover(timeout=0.3)}
        assert records["127.0.0.1"].name == "desk"
        assert records["10.1.1.1"].name == "away"

        records = await scanner.discover(timeout=0.3, use_cache=False)
        assert [r.ip for r in records] == ["127.0.0.1"]

    @pytest.mark.asyncio
    async def test_no_interfaces_returns_cache(self, cache):
        cache.save([DeviceRecord("10.1.1.1")])
        scanner = LoopbackScanner(cache=cache, bind_addresses=[])
        records = await scanner.discover(timeout=0.05)
        assert [r.ip for r in records] == ["10.1.1.1"]

    @pytest.mark.asyncio
    async def test_scan_cancelled_closes_sockets(self, responder, cache):
        scanner = LoopbackScanner(
            cache=cache,
            multicast_address="127.0.0.1",
            multicast_port=responder.port,
            bind_addresses=["127.0.0.1"],
        )
        task = asyncio.create_task(scanner.discover(timeout=10.0))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert all(sock.fileno() == -1 for sock in scanner.sockets)

    def test_manual_cache_management(self, cache):
        scanner = DiscoveryScanner(cache=cache)
        scanner.add_device_manually(DeviceRecord("10.0.0.2", name="lamp"))
        scanner.add_device_manually(DeviceRecord("10.0.0.3"))
        scanner.add_device_manually(DeviceRecord("10.0.0.2", name="renamed"))

        assert [(r.ip, r.name) for r in scanner.get_known_devices()] == [("10.0.0.2", "renamed"), ("10.0.0.3", None)]

        scanner.remove_device("10.0.0.2")
        assert [r.ip for r in scanner.get_known_devices()] == ["10.0.0.3"]
