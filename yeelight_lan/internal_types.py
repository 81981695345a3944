# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Type hints shared by the modules in this package.

Modules do "from .internal_types import *" to pick up the common typing names.
"""

from __future__ import annotations

from typing import (
    Any, Awaitable, Callable, Coroutine, Dict, FrozenSet, Iterable, Iterator, List, Mapping,
    MutableMapping, Optional, Sequence, Set, Tuple, Type, TypeVar, Union, cast,
    AsyncContextManager, AsyncIterable, AsyncIterator, TYPE_CHECKING,
)
from types import TracebackType
from typing_extensions import Self, TypeAlias

Jsonable: TypeAlias = Union[str, int, float, bool, None, Dict[str, Any], List[Any]]
"""A value that can be serialized with json.dumps"""

JsonableDict: TypeAlias = Dict[str, Jsonable]
"""A dict that can be serialized with json.dumps"""

JsonableTypes = (str, int, float, bool, dict, list)
"""Types that may be passed to isinstance() to check for a non-None Jsonable value"""

HostAndPort: TypeAlias = Tuple[str, int]
"""An (ip_address, port) tuple"""

__all__ = [
    'Any', 'Awaitable', 'Callable', 'Coroutine', 'Dict', 'FrozenSet', 'Iterable', 'Iterator', 'List', 'Mapping',
    'MutableMapping', 'Optional', 'Sequence', 'Set', 'Tuple', 'Type', 'TypeVar', 'Union', 'cast',
    'AsyncContextManager', 'AsyncIterable', 'AsyncIterator', 'TYPE_CHECKING',
    'TracebackType', 'Self', 'TypeAlias',
    'Jsonable', 'JsonableDict', 'JsonableTypes', 'HostAndPort',
]
