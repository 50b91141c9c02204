# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""
Device local key/value cache for guest data.

All keys live in a single JSON document that is rewritten atomically on every
change, so the cache survives restarts of the process but is never shared
between devices. Without a path the cache only lives in memory.
"""

import json
import os
import tempfile
import threading
from typing import Any, Dict, Optional

from . import logger
from .errors import StoreUnavailable

log = logger.create()


class LocalCache:

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = self._load()

    def _load(self):
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            log.warning("Guest cache %s unreadable, starting empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            log.warning("Guest cache %s has unexpected content, starting empty", self.path)
            return {}
        return data

    def _persist(self, data):
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.guest_cache', suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            log.error("Failed to write guest cache %s: %s", self.path, e)
            raise StoreUnavailable(f"Local cache not writable: {e}")

    def get(self, key: str, default=None):
        with self._lock:
            value = self._data.get(key, default)
            # hand out copies so callers can't change the cache behind our back
            return json.loads(json.dumps(value)) if value is not None else value

    def set(self, key: str, value):
        self.update({key: value})

    def update(self, values: Dict[str, Any]):
        """Set several keys with a single write"""
        with self._lock:
            data = dict(self._data)
            data.update(values)
            self._persist(data)
            self._data = data

    def remove(self, key: str):
        with self._lock:
            if key not in self._data:
                return
            data = dict(self._data)
            del data[key]
            self._persist(data)
            self._data = data

    def __contains__(self, key):
        with self._lock:
            return key in self._data

    def keys(self):
        with self._lock:
            return list(self._data.keys())
