# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""
Persistence of the favorites / reading / read collections.

Guests are backed by the device local cache, authenticated users by the
relational store. Stores know nothing about the mutual exclusion or quota
rules, those are applied by the library before a store is touched.
"""

import abc
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError

from . import constants, db, logger
from .errors import InvalidCollectionKind, NotAuthenticated
from .errors import StoreUnavailable
from .identity import Authenticated, Guest

log = logger.create()


def validate_kind(kind):
    if kind not in constants.COLLECTION_KINDS:
        raise InvalidCollectionKind(kind)
    return kind


def select_backend(identity, local, remote):
    """Guests are served from the local store, authenticated users from the remote one"""
    if identity is None:
        raise NotAuthenticated("No identity resolved")
    if isinstance(identity, Guest):
        return local
    if isinstance(identity, Authenticated):
        return remote
    raise NotAuthenticated(f"Unsupported identity {identity!r}")


class CollectionStore(abc.ABC):

    @abc.abstractmethod
    def list_books(self, identity, kind) -> List[str]:
        """Book ids of one collection, oldest first"""

    @abc.abstractmethod
    def add(self, identity, kind, book_id) -> bool:
        """Store the membership; adding an existing member succeeds"""

    @abc.abstractmethod
    def remove(self, identity, kind, book_id) -> bool:
        """Delete the membership; removing a non member succeeds"""

    @abc.abstractmethod
    def move(self, identity, from_kinds, to_kind, book_id) -> bool:
        """Delete the memberships in ``from_kinds`` and add to ``to_kind``, all or nothing"""

    def load_all(self, identity) -> Dict[str, List[str]]:
        return {kind: self.list_books(identity, kind) for kind in constants.COLLECTION_KINDS}


class LocalCollectionStore(CollectionStore):
    """Guest collections, stored as JSON arrays in the local cache"""

    def __init__(self, cache):
        self.cache = cache

    def list_books(self, identity, kind):
        validate_kind(kind)
        value = self.cache.get(constants.GUEST_CACHE_KEYS[kind], [])
        if not isinstance(value, list):
            log.warning("Ignoring malformed guest cache entry for %s", kind)
            return []
        return [str(book_id) for book_id in value]

    def _sync(self, collections):
        # write-through of all three collections on every change
        self.cache.update({constants.GUEST_CACHE_KEYS[kind]: books for kind, books in collections.items()})

    def add(self, identity, kind, book_id):
        validate_kind(kind)
        collections = self.load_all(identity)
        if book_id not in collections[kind]:
            collections[kind].append(book_id)
        self._sync(collections)
        log.debug("Guest added book %s to %s", book_id, kind)
        return True

    def remove(self, identity, kind, book_id):
        validate_kind(kind)
        collections = self.load_all(identity)
        collections[kind] = [b for b in collections[kind] if b != book_id]
        self._sync(collections)
        log.debug("Guest removed book %s from %s", book_id, kind)
        return True

    def move(self, identity, from_kinds, to_kind, book_id):
        collections = self.load_all(identity)
        for kind in from_kinds:
            collections[validate_kind(kind)] = [b for b in collections[kind] if b != book_id]
        if book_id not in collections[validate_kind(to_kind)]:
            collections[to_kind].append(book_id)
        self._sync(collections)
        log.debug("Guest moved book %s to %s", book_id, to_kind)
        return True


class RemoteCollectionStore(CollectionStore):
    """Authenticated collections, one table per collection keyed by (user_id, book_id)"""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.get_session()

    def list_books(self, identity, kind):
        model = db.COLLECTION_MODELS[validate_kind(kind)]
        try:
            rows = (self.session.query(model.book_id)
                    .filter(model.user_id == identity.user_id)
                    .order_by(model.created_at, model.id)
                    .all())
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error("Failed to load %s for user %s: %s", kind, identity.user_id, e)
            raise StoreUnavailable(f"Could not load {kind}")
        return [row[0] for row in rows]

    def add(self, identity, kind, book_id):
        model = db.COLLECTION_MODELS[validate_kind(kind)]
        try:
            exists = self.session.query(model.id).filter(model.user_id == identity.user_id,
                                                         model.book_id == book_id).first()
            if not exists:
                self.session.add(model(user_id=identity.user_id, book_id=book_id))
                self.session.commit()
                log.info("User %s added book %s to %s", identity.user_id, book_id, kind)
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error("Failed to add book %s to %s for user %s: %s", book_id, kind, identity.user_id, e)
            raise StoreUnavailable(f"Could not add book to {kind}")
        return True

    def remove(self, identity, kind, book_id):
        model = db.COLLECTION_MODELS[validate_kind(kind)]
        try:
            deleted = self.session.query(model).filter(model.user_id == identity.user_id,
                                                       model.book_id == book_id).delete()
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error("Failed to remove book %s from %s for user %s: %s", book_id, kind, identity.user_id, e)
            raise StoreUnavailable(f"Could not remove book from {kind}")
        if deleted:
            log.info("User %s removed book %s from %s", identity.user_id, book_id, kind)
        return True

    def move(self, identity, from_kinds, to_kind, book_id):
        target = db.COLLECTION_MODELS[validate_kind(to_kind)]
        sources = [db.COLLECTION_MODELS[validate_kind(kind)] for kind in from_kinds]
        try:
            for model in sources:
                self.session.query(model).filter(model.user_id == identity.user_id,
                                                 model.book_id == book_id).delete()
            exists = self.session.query(target.id).filter(target.user_id == identity.user_id,
                                                          target.book_id == book_id).first()
            if not exists:
                self.session.add(target(user_id=identity.user_id, book_id=book_id))
            # deletes and insert are committed together
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error("Failed to move book %s to %s for user %s: %s", book_id, to_kind, identity.user_id, e)
            raise StoreUnavailable(f"Could not move book to {to_kind}")
        log.info("User %s moved book %s from %s to %s", identity.user_id, book_id, ", ".join(from_kinds), to_kind)
        return True


class CollectionStoreAdapter:
    """Routes collection calls to the store that owns the identity's data"""

    def __init__(self, local: CollectionStore, remote: CollectionStore):
        self.local = local
        self.remote = remote

    def backend_for(self, identity) -> CollectionStore:
        return select_backend(identity, self.local, self.remote)

    def list_books(self, identity, kind):
        return self.backend_for(identity).list_books(identity, kind)

    def load_all(self, identity):
        return self.backend_for(identity).load_all(identity)

    def add(self, identity, kind, book_id):
        return self.backend_for(identity).add(identity, kind, book_id)

    def remove(self, identity, kind, book_id):
        return self.backend_for(identity).remove(identity, kind, book_id)

    def move(self, identity, from_kinds, to_kind, book_id):
        return self.backend_for(identity).move(identity, from_kinds, to_kind, book_id)
