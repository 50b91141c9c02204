# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

__package__ = "shelfsync"

from flask import Flask

from . import logger
from . import db
from .config import Config
from .identity import TokenIdentityResolver
from .local_cache import LocalCache
from .progress import LocalProgressStore, ProgressStoreAdapter, ReadingPositionTracker, RemoteProgressStore
from .store import CollectionStoreAdapter, LocalCollectionStore, RemoteCollectionStore

__version__ = "1.0.0"

log = logger.create()


class Services:
    """Shared objects of the REST service, kept in ``app.extensions['shelfsync']``"""

    def __init__(self, config, resolver=None):
        self.config = config
        self.resolver = resolver or TokenIdentityResolver(config.api_tokens)
        # the REST service only serves authenticated users, guests never reach the local stores
        cache = LocalCache()
        self.collection_store = CollectionStoreAdapter(LocalCollectionStore(cache), RemoteCollectionStore())
        self.progress = ReadingPositionTracker(
            ProgressStoreAdapter(LocalProgressStore(cache), RemoteProgressStore()),
            delay=config.progress_debounce)


def create_app(config=None, resolver=None):
    config = config or Config()
    app = Flask(__name__)

    db.init_db(config.database_url)
    app.extensions['shelfsync'] = Services(config, resolver)

    @app.teardown_appcontext
    def remove_session(exception=None):
        if db.session is not None:
            db.session.remove()

    from .web import library_api
    app.register_blueprint(library_api)
    log.info("Library service ready, database %s", config.database_url)
    return app
