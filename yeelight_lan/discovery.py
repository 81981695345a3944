#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
DiscoveryScanner -- finds devices on the local network:

  1. Optionally seeds the result with the devices in the DeviceCache
  2. Opens one UDP socket per non-loopback IPv4 interface, joins the discovery multicast group,
     and sends the probe from each (typically to 239.255.255.250:1982)
  3. Parses device responses into DeviceRecords, keyed by IP address
  4. After a fixed wait, closes every socket and returns the merged records

A failure on one interface is logged and does not affect the others.
"""

from __future__ import annotations

import asyncio
import socket

from .internal_types import *
from .pkg_logging import logger
from .constants import (
    DISCOVERY_MULTICAST_ADDRESS,
    DISCOVERY_PORT,
    DISCOVERY_PROBE,
    DEFAULT_DISCOVERY_TIMEOUT,
  )
from .exceptions import ParseError, DiscoveryInterfaceError
from .device_record import DeviceRecord
from .device_cache import DeviceCache
from .discovery_response import DiscoveryResponse
from .discovery_socket import DiscoverySocketBinding
from .util import get_local_ip_addresses_and_interfaces, is_multicast_address, inet_aton_or_any

class DiscoveryScan:
    """The results of a single discovery call.

    Cached records are added first. The first live response for an IP address replaces any cached
    record for it; later responses for the same IP in the same scan are ignored.
    """

    devices: Dict[str, DeviceRecord]
    responded_ips: Set[str]
    bindings: List[DiscoverySocketBinding]

    def __init__(self, cached: Optional[Iterable[DeviceRecord]]=None):
        self.devices = {}
        self.responded_ips = set()
        self.bindings = []
        if cached is not None:
            for record in cached:
                self.devices[record.ip] = record

    @property
    def results(self) -> List[DeviceRecord]:
        return list(self.devices.values())

    def datagram_received(self, socket_binding: DiscoverySocketBinding, addr: HostAndPort, data: bytes) -> None:
        if not DiscoveryResponse.is_device_response(data):
            logger.debug(f"Ignoring non-device datagram from {addr} on {socket_binding}")
            return
        try:
            response = DiscoveryResponse(data)
            record = response.to_device_record()
        except ParseError as e:
            logger.debug(f"Ignoring discovery response from {addr} on {socket_binding}: {e}")
            return
        if record.ip in self.responded_ips:
            logger.debug(f"Ignoring duplicate discovery response for {record.ip} from {addr} on {socket_binding}")
            return
        self.responded_ips.add(record.ip)
        self.devices[record.ip] = record
        logger.debug(f"Discovered {record} via {socket_binding}")

    def error_received(self, socket_binding: DiscoverySocketBinding, exc: Exception) -> None:
        logger.warning(str(DiscoveryInterfaceError(f"Socket error on {socket_binding}: {exc}", socket_binding.bind_address)))

    def close_all(self) -> None:
        for socket_binding in self.bindings:
            socket_binding.close()

class DiscoveryScanner:
    cache: DeviceCache
    multicast_address: str = DISCOVERY_MULTICAST_ADDRESS
    multicast_port: int = DISCOVERY_PORT
    bind_addresses: Optional[List[Tuple[str, Optional[str]]]]
    """(ip_address, interface_name) pairs to probe from. If None, all non-loopback IPv4 interfaces
       are enumerated at the start of each scan."""

    def __init__(
            self,
            cache: Optional[DeviceCache]=None,
            multicast_address: str=DISCOVERY_MULTICAST_ADDRESS,
            multicast_port: int=DISCOVERY_PORT,
            bind_addresses: Optional[Iterable[str]]=None,
          ):
        self.cache = DeviceCache() if cache is None else cache
        self.multicast_address = multicast_address
        self.multicast_port = multicast_port
        self.bind_addresses = None if bind_addresses is None else [ (address, None) for address in bind_addresses ]

    def get_interfaces(self) -> List[Tuple[str, Optional[str]]]:
        """The (ip_address, interface_name) pairs to probe from"""
        if self.bind_addresses is not None:
            return list(self.bind_addresses)
        return [ (ip, ifname) for ip, ifname in get_local_ip_addresses_and_interfaces(include_loopback=False) ]

    def create_socket(self, bind_address: str) -> socket.socket:
        """Creates a UDP socket bound to an ephemeral port that sends multicasts out of the
           interface with address `bind_address` and is a member of the discovery group on it."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            # Responses are unicast back to the probe's source port, so the wildcard address works
            # on every platform; the outgoing interface is selected with IP_MULTICAST_IF.
            sock.bind(('', 0))
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, inet_aton_or_any(bind_address))
            if is_multicast_address(self.multicast_address):
                mreq = socket.inet_aton(self.multicast_address) + inet_aton_or_any(bind_address)
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
        except BaseException:
            sock.close()
            raise
        return sock

    async def _run_interface_worker(
            self,
            scan: DiscoveryScan,
            bind_address: str,
            ifname: Optional[str],
            done: asyncio.Event,
          ) -> None:
        """Probes from one interface and keeps its socket open until `done` is set. Never raises
           except for cancellation; the socket is closed on every path."""
        socket_binding: Optional[DiscoverySocketBinding] = None
        try:
            sock = self.create_socket(bind_address)
            socket_binding = DiscoverySocketBinding(
                sock,
                bind_address,
                scan.datagram_received,
                scan.error_received,
                ifname=ifname,
              )
            scan.bindings.append(socket_binding)
            await socket_binding.start()
            socket_binding.sendto(DISCOVERY_PROBE, (self.multicast_address, self.multicast_port))
            await done.wait()
        except Exception as e:
            name = bind_address if ifname is None else f"{bind_address}@{ifname}"
            logger.warning(str(DiscoveryInterfaceError(f"Discovery failed on interface {name}: {e}", bind_address)))
        finally:
            if socket_binding is not None:
                socket_binding.close()

    async def discover(self, timeout: float=DEFAULT_DISCOVERY_TIMEOUT, use_cache: bool=True) -> List[DeviceRecord]:
        """Runs one discovery scan, waiting the full `timeout` seconds for responses.

        Returns the cached records (if use_cache) merged with the records of every device that
        responded, one per IP address, in no particular order.
        """
        scan = DiscoveryScan(self.cache.load() if use_cache else None)
        done = asyncio.Event()
        workers: List[asyncio.Task[None]] = []
        try:
            interfaces = self.get_interfaces()
            logger.debug(f"Discovering on interfaces {interfaces}")
            if len(interfaces) == 0:
                logger.warning("No non-loopback IPv4 interfaces found for discovery")
            for bind_address, ifname in interfaces:
                workers.append(asyncio.create_task(self._run_interface_worker(scan, bind_address, ifname, done)))
            await asyncio.sleep(timeout)
        finally:
            done.set()
            for worker in workers:
                if not worker.done():
                    worker.cancel()
            if len(workers) > 0:
                await asyncio.gather(*workers, return_exceptions=True)
            scan.close_all()
        results = scan.results
        logger.debug(f"Discovery found {len(scan.responded_ips)} responding devices, {len(results)} total")
        return results

    def get_known_devices(self) -> List[DeviceRecord]:
        """The devices in the cache"""
        return self.cache.load()

    def add_device_manually(self, record: DeviceRecord) -> None:
        """Adds or replaces a device in the cache, by IP address, and saves the cache."""
        self.cache.upsert(record)

    def remove_device(self, ip: str) -> None:
        """Removes a device from the cache and saves the cache."""
        self.cache.remove(ip)

async def discover(
        timeout: float=DEFAULT_DISCOVERY_TIMEOUT,
        use_cache: bool=True,
        cache_file: Optional[str]=None,
      ) -> List[DeviceRecord]:
    """Convenience wrapper: runs one scan with a DiscoveryScanner on the default interfaces."""
    scanner = DiscoveryScanner(cache=DeviceCache(cache_file))
    return await scanner.discover(timeout=timeout, use_cache=use_cache)
