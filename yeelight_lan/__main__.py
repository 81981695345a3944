#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

from __future__ import annotations

import sys
import argparse
import json
import asyncio
import logging

from yeelight_lan.internal_types import *

from yeelight_lan import (
    __version__ as pkg_version,
    YeelightError,
    YeelightDevice,
    YeelightOptions,
    DeviceRecord,
    DeviceCache,
    DiscoveryScanner,
    DEFAULT_DEVICE_PORT,
  )
from yeelight_lan.constants import DEFAULT_DISCOVERY_TIMEOUT

class CmdExitError(RuntimeError):
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

class CommandHandler:
    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    def _get_cache(self) -> DeviceCache:
        return DeviceCache(self._args.cache_file)

    def _print_records(self, records: List[DeviceRecord]) -> None:
        print(json.dumps([ record.to_jsonable() for record in records ], indent=2, sort_keys=True))

    def _get_record(self, ip: str) -> DeviceRecord:
        """The cached record for `ip`, or a bare record on the default port"""
        for record in self._get_cache().load():
            if record.ip == ip:
                return record
        return DeviceRecord(ip, port=DEFAULT_DEVICE_PORT)

    def _get_options(self) -> YeelightOptions:
        options = YeelightOptions.from_env()
        port: Optional[int] = self._args.port
        timeout: Optional[float] = self._args.timeout
        return YeelightOptions(
            port=options.port if port is None else port,
            timeout=options.timeout if timeout is None else timeout,
          )

    async def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    async def cmd_discover(self) -> int:
        scanner = DiscoveryScanner(cache=self._get_cache())
        records = await scanner.discover(timeout=self._args.timeout, use_cache=not self._args.no_cache)
        self._print_records(records)
        return 0

    async def cmd_known(self) -> int:
        self._print_records(self._get_cache().load())
        return 0

    async def cmd_add(self) -> int:
        record = DeviceRecord(self._args.ip, port=self._args.device_port, name=self._args.name, model=self._args.model)
        DiscoveryScanner(cache=self._get_cache()).add_device_manually(record)
        return 0

    async def cmd_remove(self) -> int:
        DiscoveryScanner(cache=self._get_cache()).remove_device(self._args.ip)
        return 0

    async def _run_device_command(self, func: Callable[[YeelightDevice], Awaitable[Any]]) -> int:
        async with YeelightDevice(self._get_record(self._args.ip), self._get_options()) as device:
            result = await func(device)
        if result is not None:
            print(json.dumps(result, indent=2, sort_keys=True))
        return 0

    async def cmd_power(self) -> int:
        return await self._run_device_command(lambda d: d.set_power(self._args.state))

    async def cmd_brightness(self) -> int:
        return await self._run_device_command(lambda d: d.set_brightness(self._args.value))

    async def cmd_rgb(self) -> int:
        return await self._run_device_command(lambda d: d.set_rgb(self._args.red, self._args.green, self._args.blue))

    async def cmd_ct(self) -> int:
        return await self._run_device_command(lambda d: d.set_color_temperature(self._args.kelvin))

    async def cmd_hsv(self) -> int:
        return await self._run_device_command(lambda d: d.set_hsv(self._args.hue, self._args.saturation))

    async def cmd_props(self) -> int:
        return await self._run_device_command(lambda d: d.get_properties(*self._args.names))

    async def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    async def arun(self) -> int:
        """Run the yeelight command-line tool with provided arguments

        Args:
            argv (Optional[Sequence[str]], optional):
                A list of commandline arguments (NOT including the program as argv[0]!),
                or None to use sys.argv[1:]. Defaults to None.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(description="Discover and control Yeelight devices on the local network.")

        # ======================= Main command

        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        parser.add_argument('--cache-file', dest='cache_file', default=None,
                            help='''The device cache file. Default: $YEELIGHT_CACHE_FILE, or ./.yeelight-cache.json''')
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')

        # ======================= discover

        parser_discover = subparsers.add_parser('discover', description="Search the local network for devices")
        parser_discover.add_argument('--timeout', '--wait-time', dest='timeout', type=float, default=DEFAULT_DISCOVERY_TIMEOUT,
                            help=f'''The amount of time to wait for responses, in seconds. Default: {DEFAULT_DISCOVERY_TIMEOUT}''')
        parser_discover.add_argument('--no-cache', dest='no_cache', action='store_true', default=False,
                            help='Do not include cached devices that did not respond. Default: False')
        parser_discover.set_defaults(func=self.cmd_discover)

        # ======================= known

        parser_known = subparsers.add_parser('known', description="List the devices in the cache")
        parser_known.set_defaults(func=self.cmd_known)

        # ======================= add

        parser_add = subparsers.add_parser('add', description="Add a device to the cache by IP address")
        parser_add.add_argument('ip', help='The IP address of the device')
        parser_add.add_argument('--port', dest='device_port', type=int, default=DEFAULT_DEVICE_PORT,
                            help=f'''The control port of the device. Default: {DEFAULT_DEVICE_PORT}''')
        parser_add.add_argument('--name', default=None, help='The name of the device')
        parser_add.add_argument('--model', default=None, help='The model of the device')
        parser_add.set_defaults(func=self.cmd_add)

        # ======================= remove

        parser_remove = subparsers.add_parser('remove', description="Remove a device from the cache")
        parser_remove.add_argument('ip', help='The IP address of the device')
        parser_remove.set_defaults(func=self.cmd_remove)

        # ======================= device commands

        def add_device_parser(name: str, description: str) -> argparse.ArgumentParser:
            p = subparsers.add_parser(name, description=description)
            p.add_argument('ip', help='The IP address of the device')
            p.add_argument('-p', '--port', type=int, default=None,
                           help='''The control port to connect to. Default: $YEELIGHT_PORT, the cached port, or 55443''')
            p.add_argument('-t', '--timeout', type=float, default=None,
                           help='''Connect and command timeout, in seconds. Default: $YEELIGHT_TIMEOUT, or 30''')
            return p

        parser_power = add_device_parser('power', "Turn a device on or off")
        parser_power.add_argument('state', choices=['on', 'off'])
        parser_power.set_defaults(func=self.cmd_power)

        parser_brightness = add_device_parser('brightness', "Set the brightness of a device")
        parser_brightness.add_argument('value', type=int, help='Brightness, 1-100')
        parser_brightness.set_defaults(func=self.cmd_brightness)

        parser_rgb = add_device_parser('rgb', "Set the color of a device")
        parser_rgb.add_argument('red', type=int, help='0-255')
        parser_rgb.add_argument('green', type=int, help='0-255')
        parser_rgb.add_argument('blue', type=int, help='0-255')
        parser_rgb.set_defaults(func=self.cmd_rgb)

        parser_ct = add_device_parser('ct', "Set the white color temperature of a device")
        parser_ct.add_argument('kelvin', type=int, help='1700-6500')
        parser_ct.set_defaults(func=self.cmd_ct)

        parser_hsv = add_device_parser('hsv', "Set the hue and saturation of a device")
        parser_hsv.add_argument('hue', type=int, help='0-359')
        parser_hsv.add_argument('saturation', type=int, help='0-100')
        parser_hsv.set_defaults(func=self.cmd_hsv)

        parser_props = add_device_parser('props', "Read properties of a device")
        parser_props.add_argument('names', nargs='+', help='Property names, e.g., power bright rgb')
        parser_props.set_defaults(func=self.cmd_props)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

        # =========================================================

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            func: Callable[[], Awaitable[int]] = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = await func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            if isinstance(ex, CmdExitError):
                rc = ex.exit_code
            else:
                rc = 1
            if rc != 0:
                if traceback:
                    raise
            print(f"yeelight: error: {ex}", file=sys.stderr)
        except BaseException as ex:
            print(f"yeelight: Unhandled exception: {ex}", file=sys.stderr)
            raise

        return rc

    def run(self) -> int:
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            rc = loop.run_until_complete(self.arun())
        finally:
            loop.close()
        return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = CommandHandler(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

async def arun(argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = await CommandHandler(argv).arun()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    sys.exit(run())
