# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

import os

from . import constants, logger

log = logger.create()


def _parse_tokens(value):
    """Parse ``token:user_id,token:user_id`` into a dict"""
    tokens = {}
    for entry in (value or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        token, sep, user_id = entry.partition(":")
        if not sep or not token.strip() or not user_id.strip():
            log.warning("Ignoring malformed API token entry %r", entry)
            continue
        tokens[token.strip()] = user_id.strip()
    return tokens


class Config:
    """
    Runtime settings, read from the environment.

    Values passed as keyword arguments override the environment, which is how
    the command line and the tests hand in their settings.
    """

    def __init__(self, environ=None, **overrides):
        self._environ = os.environ if environ is None else environ
        self.load()
        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            if value is not None:
                setattr(self, key, value)

    def load(self):
        env = self._environ
        self.database_url = env.get('SHELFSYNC_DATABASE_URL', constants.DEFAULT_DATABASE_URL)
        self.guest_cache_path = env.get('SHELFSYNC_GUEST_CACHE', constants.DEFAULT_GUEST_CACHE)
        self.guest_book_limit = self._get_int('SHELFSYNC_GUEST_BOOK_LIMIT', constants.DEFAULT_GUEST_BOOK_LIMIT)
        self.progress_debounce = self._get_float('SHELFSYNC_PROGRESS_DEBOUNCE', constants.DEFAULT_PROGRESS_DEBOUNCE)
        self.port = self._get_int('PORT', constants.DEFAULT_PORT)
        self.host = env.get('SHELFSYNC_HOST', '0.0.0.0')
        self.logfile = env.get('SHELFSYNC_LOGFILE', '')
        self.log_level = logger.level_from_name(env.get('SHELFSYNC_LOG_LEVEL'))
        self.api_tokens = _parse_tokens(env.get('SHELFSYNC_API_TOKENS'))
        if not logger.is_valid_logfile(self.logfile):
            log.warning("Log file %s is not usable, logging to default location", self.logfile)
            self.logfile = ''

    def _get_int(self, name, default):
        value = self._environ.get(name)
        if value is None or value == '':
            return default
        try:
            parsed = int(value)
        except ValueError:
            log.warning("Invalid value %r for %s, using default %s", value, name, default)
            return default
        if parsed < 0:
            log.warning("Negative value %r for %s, using default %s", value, name, default)
            return default
        return parsed

    def _get_float(self, name, default):
        value = self._environ.get(name)
        if value is None or value == '':
            return default
        try:
            parsed = float(value)
        except ValueError:
            log.warning("Invalid value %r for %s, using default %s", value, name, default)
            return default
        if parsed < 0:
            log.warning("Negative value %r for %s, using default %s", value, name, default)
            return default
        return parsed

    def __repr__(self):
        return '<Config database_url=%r guest_cache_path=%r guest_book_limit=%r>' % (
            self.database_url, self.guest_cache_path, self.guest_book_limit)
