#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
DeviceRecord -- what is known about one device on the local network. Records are keyed by IP address.
"""

from __future__ import annotations

from .internal_types import *
from .constants import DEFAULT_DEVICE_PORT

POWER_VALUES = ('on', 'off')

class DeviceRecord:
    ip: str
    port: int
    id: Optional[str] = None
    model: Optional[str] = None
    name: Optional[str] = None
    firmware: Optional[str] = None
    capabilities: Optional[FrozenSet[str]] = None
    """The methods the device supports, from the "support" header of its discovery response"""
    power: Optional[str] = None
    """"on", "off", or None if unknown"""

    def __init__(
            self,
            ip: str,
            port: int=DEFAULT_DEVICE_PORT,
            id: Optional[str]=None,
            model: Optional[str]=None,
            name: Optional[str]=None,
            firmware: Optional[str]=None,
            capabilities: Optional[Iterable[str]]=None,
            power: Optional[str]=None,
          ):
        self.ip = ip
        self.port = port
        self.id = id
        self.model = model
        self.name = name
        self.firmware = firmware
        self.capabilities = None if capabilities is None else frozenset(capabilities)
        self.power = power if power in POWER_VALUES else None

    def supports(self, method: str) -> bool:
        """True if the device advertised `method`. Unknown capabilities are assumed supported."""
        return self.capabilities is None or method in self.capabilities

    def to_jsonable(self) -> JsonableDict:
        result: JsonableDict = dict(ip=self.ip, port=self.port)
        for key in ('id', 'model', 'name', 'firmware', 'power'):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.capabilities is not None:
            result['support'] = sorted(self.capabilities)
        return result

    @classmethod
    def from_jsonable(cls, data: Jsonable) -> DeviceRecord:
        """Creates a DeviceRecord from its to_jsonable() form. Raises ValueError if it is malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"Device record is not an object: {data!r}")
        ip = data.get('ip')
        if not isinstance(ip, str) or ip == '':
            raise ValueError(f"Device record has no ip: {data!r}")
        port = data.get('port', DEFAULT_DEVICE_PORT)
        if not isinstance(port, int) or isinstance(port, bool):
            raise ValueError(f"Device record port is not an integer: {data!r}")
        capabilities = data.get('support', data.get('capabilities'))
        if isinstance(capabilities, str):
            capabilities = capabilities.split()
        elif capabilities is not None and not isinstance(capabilities, list):
            raise ValueError(f"Device record capabilities are not a list: {data!r}")
        if capabilities is not None and not all(isinstance(c, str) for c in capabilities):
            raise ValueError(f"Device record capabilities are not all strings: {data!r}")

        def opt_str(key: str) -> Optional[str]:
            value = data.get(key)
            return None if value is None else str(value)

        return cls(
            ip,
            port=port,
            id=opt_str('id'),
            model=opt_str('model'),
            name=opt_str('name'),
            firmware=opt_str('firmware'),
            capabilities=capabilities,
            power=opt_str('power'),
          )

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, DeviceRecord):
            return False
        return self.to_jsonable() == other.to_jsonable()

    def __hash__(self) -> int:
        return hash(self.ip)

    def __str__(self) -> str:
        return f"DeviceRecord({self.ip}:{self.port}, id={self.id}, model={self.model}, name={self.name})"

    def __repr__(self) -> str:
        return str(self)
