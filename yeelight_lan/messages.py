#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Messages exchanged with a Yeelight device over its TCP control connection.

Every message is a single JSON object on one line:

    command (to device):       {"id": 1, "method": "set_power", "params": ["on", "smooth", 500]}
    result (from device):      {"id": 1, "result": ["ok"]}
    error (from device):       {"id": 1, "error": {"code": -1, "message": "unsupported method"}}
    notification (from device):{"method": "props", "params": {"power": "on"}}

Results and errors are correlated with the command that caused them by "id". Notifications
carry no id.
"""

from __future__ import annotations

import json
from types import MappingProxyType

from .internal_types import *
from .constants import OUTBOUND_LINE_TERMINATOR
from .exceptions import ParseError, DeviceError

class Command:
    """A command sent to a device"""

    id: int
    method: str
    params: Tuple[Any, ...]

    def __init__(self, id: int, method: str, params: Optional[Iterable[Any]]=None):
        self.id = id
        self.method = method
        self.params = () if params is None else tuple(params)

    def to_jsonable(self) -> JsonableDict:
        return dict(id=self.id, method=self.method, params=list(self.params))

    @property
    def raw_data(self) -> bytes:
        """The encoded command, including the line terminator"""
        return json.dumps(self.to_jsonable(), separators=(',', ':')).encode('utf-8') + OUTBOUND_LINE_TERMINATOR

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Command):
            return False
        return self.id == other.id and self.method == other.method and self.params == other.params

    def __hash__(self) -> int:
        return hash((self.id, self.method))

    def __str__(self) -> str:
        return f"Command(id={self.id}, {self.method}{list(self.params)})"

    def __repr__(self) -> str:
        return str(self)

class Response:
    """Base class for a device's answer to a Command. Either a ResultResponse or an ErrorResponse."""

    id: int

    def __init__(self, id: int):
        self.id = id

    @property
    def is_error(self) -> bool:
        return False

class ResultResponse(Response):
    """A successful response, carrying the "result" values"""

    values: Tuple[Any, ...]

    def __init__(self, id: int, values: Iterable[Any]):
        super().__init__(id)
        self.values = tuple(values)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, ResultResponse) and self.id == other.id and self.values == other.values

    def __str__(self) -> str:
        return f"ResultResponse(id={self.id}, values={list(self.values)})"

    def __repr__(self) -> str:
        return str(self)

class ErrorResponse(Response):
    """A response reporting an application-level failure of the command"""

    code: int
    message: str

    def __init__(self, id: int, code: int, message: str):
        super().__init__(id)
        self.code = code
        self.message = message

    @property
    def is_error(self) -> bool:
        return True

    def to_exception(self, command: Optional[Command]=None) -> DeviceError:
        return DeviceError(self.code, self.message, command=command)

    def __eq__(self, other: Any) -> bool:
        return (isinstance(other, ErrorResponse) and self.id == other.id and
                self.code == other.code and self.message == other.message)

    def __str__(self) -> str:
        return f"ErrorResponse(id={self.id}, code={self.code}, message={self.message!r})"

    def __repr__(self) -> str:
        return str(self)

class Notification:
    """An unsolicited message pushed by the device, e.g. after a property change.

    Params are read-only: a list becomes a tuple and a dict a read-only mapping.
    """

    method: str
    params: Any

    def __init__(self, method: str, params: Any=None):
        self.method = method
        if params is None:
            params = ()
        elif isinstance(params, list):
            params = tuple(params)
        elif isinstance(params, dict):
            params = MappingProxyType(dict(params))
        self.params = params

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Notification) and self.method == other.method and self.params == other.params

    def __str__(self) -> str:
        return f"Notification({self.method}, params={self.params!r})"

    def __repr__(self) -> str:
        return str(self)

InboundMessage = Union[ResultResponse, ErrorResponse, Notification]

def decode_message(line: bytes) -> InboundMessage:
    """Decodes one inbound line (without its terminator) into a Notification or a Response.

    An object with a "method" key is a Notification, even if it also has an "id". An object
    with an "id" key and no "method" is a Response.

    Raises ParseError if the line is not valid UTF-8 JSON or matches neither shape.
    """
    try:
        obj = json.loads(line.decode('utf-8'))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise ParseError(f"Undecodable line: {e}", raw_data=line) from e
    if not isinstance(obj, dict):
        raise ParseError(f"Line is not a JSON object: {line!r}", raw_data=line)

    if 'method' in obj:
        method = obj['method']
        if not isinstance(method, str):
            raise ParseError(f"Notification method is not a string: {line!r}", raw_data=line)
        return Notification(method, obj.get('params'))

    if 'id' in obj:
        id = obj['id']
        if not isinstance(id, int) or isinstance(id, bool):
            raise ParseError(f"Response id is not an integer: {line!r}", raw_data=line)
        if 'error' in obj:
            error = obj['error']
            if not isinstance(error, dict):
                raise ParseError(f"Response error is not an object: {line!r}", raw_data=line)
            code = error.get('code', -1)
            message = error.get('message', '')
            if not isinstance(code, int):
                raise ParseError(f"Response error code is not an integer: {line!r}", raw_data=line)
            return ErrorResponse(id, code, str(message))
        if 'result' in obj:
            result = obj['result']
            if not isinstance(result, list):
                result = [result]
            return ResultResponse(id, result)
        raise ParseError(f"Response has neither result nor error: {line!r}", raw_data=line)

    raise ParseError(f"Line is neither a response nor a notification: {line!r}", raw_data=line)
