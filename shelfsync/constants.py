# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

import os


BASE_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_DIR = os.environ.get('SHELFSYNC_CONFIG_DIR', os.path.join(os.path.dirname(BASE_DIR), 'config'))

# Collection kinds, lowest priority first
COLLECTION_FAVORITES = 'favorites'
COLLECTION_READING = 'reading'
COLLECTION_READ = 'read'
COLLECTION_KINDS = (COLLECTION_FAVORITES, COLLECTION_READING, COLLECTION_READ)

COLLECTION_PRIORITY = {kind: rank for rank, kind in enumerate(COLLECTION_KINDS)}

# Names accepted by the REST service, including the ones the web client sends
COLLECTION_ALIASES = {
    'favorites': COLLECTION_FAVORITES,
    'reading': COLLECTION_READING,
    'read': COLLECTION_READ,
    'favoritos': COLLECTION_FAVORITES,
    'lendo': COLLECTION_READING,
    'lidos': COLLECTION_READ,
}

# Local cache keys
GUEST_CACHE_KEYS = {
    COLLECTION_FAVORITES: 'guest_favorites',
    COLLECTION_READING: 'guest_reading',
    COLLECTION_READ: 'guest_read',
}
GUEST_PROGRESS_KEY = 'guest_progress'

DEFAULT_GUEST_BOOK_LIMIT = 7
DEFAULT_PROGRESS_DEBOUNCE = 1.0  # seconds
DEFAULT_PORT = 4200

DEFAULT_DATABASE_URL = 'sqlite:///' + os.path.join(CONFIG_DIR, 'shelfsync.db')
DEFAULT_GUEST_CACHE = os.path.join(CONFIG_DIR, 'guest_cache.json')

# Failure reasons reported to callers
REASON_QUOTA_EXCEEDED = 'quota_exceeded'
REASON_STORE_UNAVAILABLE = 'store_unavailable'
REASON_NOT_AUTHENTICATED = 'not_authenticated'
REASON_INVALID_COLLECTION = 'invalid_collection'
REASON_INVALID_TRANSITION = 'invalid_transition'
