#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
DeviceCache -- persists known DeviceRecords as a JSON list in a file.

Loading is best-effort: a missing or corrupt file yields no records. Saving overwrites the
whole file.
"""

from __future__ import annotations

import os
import json

from .internal_types import *
from .pkg_logging import logger
from .constants import DEFAULT_CACHE_FILENAME, CACHE_FILE_ENV_VAR
from .device_record import DeviceRecord

def default_cache_file() -> str:
    """The cache file named by $YEELIGHT_CACHE_FILE, or .yeelight-cache.json in the current directory"""
    result = os.environ.get(CACHE_FILE_ENV_VAR)
    if result is None or result == '':
        result = os.path.join(os.getcwd(), DEFAULT_CACHE_FILENAME)
    return os.path.abspath(os.path.expanduser(result))

class DeviceCache:
    cache_file: str

    def __init__(self, cache_file: Optional[str]=None):
        self.cache_file = default_cache_file() if cache_file is None else os.path.abspath(os.path.expanduser(cache_file))

    def load(self) -> List[DeviceRecord]:
        """Returns the cached records in file order. Never raises for a missing or corrupt file."""
        if not os.path.exists(self.cache_file):
            return []
        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError, RecursionError) as e:
            logger.warning(f"Failed to load device cache {self.cache_file}: {e}")
            return []
        if not isinstance(data, list):
            logger.warning(f"Ignoring device cache {self.cache_file}: not a list")
            return []
        result: List[DeviceRecord] = []
        for item in data:
            try:
                result.append(DeviceRecord.from_jsonable(item))
            except ValueError as e:
                logger.warning(f"Skipping malformed record in device cache {self.cache_file}: {e}")
        return result

    def save(self, records: Iterable[DeviceRecord]) -> None:
        """Overwrites the cache file with `records`."""
        data = [ record.to_jsonable() for record in records ]
        cache_dir = os.path.dirname(self.cache_file)
        if cache_dir != '':
            os.makedirs(cache_dir, exist_ok=True)
        tmp_file = self.cache_file + '.tmp'
        with open(tmp_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
            f.write('\n')
        os.replace(tmp_file, self.cache_file)
        logger.debug(f"Saved {len(data)} records to device cache {self.cache_file}")

    def upsert(self, record: DeviceRecord) -> List[DeviceRecord]:
        """Replaces the record with the same ip, or appends it, and saves. Returns the new contents."""
        records = self.load()
        for i, existing in enumerate(records):
            if existing.ip == record.ip:
                records[i] = record
                break
        else:
            records.append(record)
        self.save(records)
        return records

    def remove(self, ip: str) -> List[DeviceRecord]:
        """Removes any record with `ip` and saves. Returns the new contents."""
        records = [ record for record in self.load() if record.ip != ip ]
        self.save(records)
        return records

    def __str__(self) -> str:
        return f"DeviceCache({self.cache_file})"

    def __repr__(self) -> str:
        return str(self)
