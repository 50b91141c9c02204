# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

from . import logger
from .config import Config
from .identity import IdentityTransitionManager
from .library import Library
from .local_cache import LocalCache
from .progress import LocalProgressStore, ProgressStoreAdapter, ReaderBinding
from .progress import ReadingPositionTracker, RemoteProgressStore
from .store import CollectionStoreAdapter, LocalCollectionStore, RemoteCollectionStore

log = logger.create()


class LibraryClient:
    """
    Everything one reader session needs, wired together.

    The session starts without an identity; call continue_as_guest() or
    login() once the auth provider answered. Logging out clears the library
    view and drops pending position writes of the previous identity.
    """

    def __init__(self, config=None, cache=None, session=None, debouncer=None):
        self.config = config or Config()
        self.cache = cache if cache is not None else LocalCache(self.config.guest_cache_path)
        self.identity_manager = IdentityTransitionManager()

        self.collection_store = CollectionStoreAdapter(LocalCollectionStore(self.cache),
                                                       RemoteCollectionStore(session))
        self.library = Library(self.collection_store, self.config.guest_book_limit,
                               manager=self.identity_manager)

        progress_store = ProgressStoreAdapter(LocalProgressStore(self.cache), RemoteProgressStore(session))
        self.progress = ReadingPositionTracker(progress_store, debouncer=debouncer,
                                               delay=self.config.progress_debounce,
                                               manager=self.identity_manager)

    @property
    def identity(self):
        return self.identity_manager.current

    def continue_as_guest(self):
        return self.identity_manager.continue_as_guest()

    def login(self, user_id):
        return self.identity_manager.login(user_id)

    def logout(self):
        return self.identity_manager.logout()

    def toggle_favorite(self, book_id, max_items=None):
        return self.library.toggle_favorite(self.identity, book_id, max_items)

    def toggle_reading(self, book_id, max_items=None):
        return self.library.toggle_reading(self.identity, book_id, max_items)

    def toggle_read(self, book_id, max_items=None):
        return self.library.toggle_read(self.identity, book_id, max_items)

    def open_book(self, book_id):
        binding = ReaderBinding(self.progress, self.identity, book_id, library=self.library)
        location = binding.open()
        log.debug("Opened book %s for %s at location %s", book_id, self.identity, location)
        return binding

    def close(self):
        self.progress.shutdown()
