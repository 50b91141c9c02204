# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""
The reader's personal library: favorites, reading and read.

Library keeps an in-memory view of the collections of the active identity and
is the only entry point the UI uses to change them. Every change is written to
the owning store first, the view follows only once the store confirmed it, so
a failed remote write never shows up as a change on screen.

Toggle operations return a ToggleResult instead of raising; it is falsy when
the change was refused and tells why (quota reached, store unavailable, ...).
"""

from typing import Dict, List, Optional

from . import constants, logger, policy
from .errors import LibraryError, NotAuthenticated, QuotaExceeded, StoreUnavailable
from .identity import Guest
from .store import validate_kind

log = logger.create()


class ToggleResult:
    __slots__ = ('success', 'reason', 'message', 'member')

    def __init__(self, success, reason=None, message=None, member=None):
        self.success = success
        self.reason = reason
        self.message = message
        self.member = member

    def __bool__(self):
        return self.success

    def __eq__(self, other):
        if isinstance(other, bool):
            return self.success is other
        if isinstance(other, ToggleResult):
            return (self.success, self.reason, self.member) == (other.success, other.reason, other.member)
        return NotImplemented

    __hash__ = None

    def to_dict(self):
        return {'success': self.success, 'reason': self.reason, 'message': self.message, 'member': self.member}

    def __repr__(self):
        return '<ToggleResult success=%r reason=%r member=%r>' % (self.success, self.reason, self.member)


def _empty():
    return {kind: [] for kind in constants.COLLECTION_KINDS}


class Library:

    def __init__(self, store, guest_book_limit=constants.DEFAULT_GUEST_BOOK_LIMIT, manager=None):
        self.store = store
        self.guest_book_limit = guest_book_limit
        self.identity = None
        self.last_error: Optional[LibraryError] = None
        self._collections: Dict[str, List[str]] = _empty()
        # False until the view holds what the store has for the identity
        self._loaded = False
        if manager is not None:
            self.bind(manager)

    # -- identity handling -------------------------------------------------

    def bind(self, manager):
        """Follow the identity of ``manager`` from now on"""
        manager.on_identity_change(self._identity_changed)
        if manager.current is not None:
            self._identity_changed(manager, previous=None, current=manager.current)

    def _identity_changed(self, sender, previous=None, current=None):
        if current is None:
            self.clear()
            return
        try:
            self.activate(current)
        except StoreUnavailable as e:
            # identity stays active, the next change reloads before touching the store
            log.error("Could not load library for %s: %s", current, e)

    def activate(self, identity):
        """Replace the view with the collections stored for ``identity``"""
        if identity is None:
            raise NotAuthenticated("No identity resolved")
        self.identity = identity
        self._collections = _empty()
        self._loaded = False
        self.reload()

    def reload(self):
        if self.identity is None:
            raise NotAuthenticated("No identity resolved")
        try:
            loaded = self.store.load_all(self.identity)
        except StoreUnavailable as e:
            self.last_error = e
            raise
        self._collections = {kind: list(loaded.get(kind, [])) for kind in constants.COLLECTION_KINDS}
        self._loaded = True
        self.last_error = None
        log.debug("Loaded library for %s: %s", self.identity,
                  {kind: len(books) for kind, books in self._collections.items()})

    def clear(self):
        self.identity = None
        self.last_error = None
        self._collections = _empty()
        self._loaded = False

    # -- read access -------------------------------------------------------

    @property
    def favorites(self):
        return list(self._collections[constants.COLLECTION_FAVORITES])

    @property
    def reading(self):
        return list(self._collections[constants.COLLECTION_READING])

    @property
    def read(self):
        return list(self._collections[constants.COLLECTION_READ])

    def books(self, kind):
        return list(self._collections[validate_kind(kind)])

    def collections(self):
        return {kind: list(books) for kind, books in self._collections.items()}

    def contains(self, kind, book_id):
        return str(book_id) in self._collections[validate_kind(kind)]

    def is_in_favorites(self, book_id):
        return str(book_id) in self._collections[constants.COLLECTION_FAVORITES]

    def is_in_reading(self, book_id):
        return str(book_id) in self._collections[constants.COLLECTION_READING]

    def is_in_read(self, book_id):
        return str(book_id) in self._collections[constants.COLLECTION_READ]

    def collection_of(self, book_id):
        book_id = str(book_id)
        for kind in constants.COLLECTION_KINDS:
            if book_id in self._collections[kind]:
                return kind
        return None

    @property
    def total_items(self):
        return policy.total_items(self._collections)

    def item_limit(self, identity=None):
        identity = identity if identity is not None else self.identity
        if isinstance(identity, Guest):
            return self.guest_book_limit
        return None

    # -- changes -----------------------------------------------------------

    def _view_for(self, identity):
        if identity is None:
            raise NotAuthenticated("No identity resolved")
        if self.identity is None:
            self.activate(identity)
        elif identity != self.identity:
            # switching identities goes through the IdentityTransitionManager
            raise NotAuthenticated(f"{identity} is not the active identity ({self.identity})")
        elif not self._loaded:
            self.reload()
        return self._collections

    def _add(self, identity, kind, book_id, max_items):
        collections = self._view_for(identity)
        plan = policy.plan_add(collections, kind, book_id)
        if plan.noop:
            return ToggleResult(True, member=book_id in collections[kind])

        limit = max_items if max_items is not None else self.item_limit(identity)
        policy.check_quota(collections, kind, book_id, limit)

        if plan.conflicts:
            # leaving the weaker collections and joining the target is one store write
            self.store.move(identity, plan.conflicts, kind, book_id)
            for conflict in plan.conflicts:
                collections[conflict].remove(book_id)
            log.debug("Book %s moved from %s to %s", book_id, ", ".join(plan.conflicts), kind)
        else:
            self.store.add(identity, kind, book_id)
        collections[kind].append(book_id)
        return ToggleResult(True, member=True)

    def _remove(self, identity, kind, book_id):
        collections = self._view_for(identity)
        self.store.remove(identity, kind, book_id)
        if book_id in collections[kind]:
            collections[kind].remove(book_id)
        return ToggleResult(True, member=False)

    def _toggle(self, identity, kind, book_id, max_items):
        collections = self._view_for(identity)
        if book_id in collections[kind]:
            return self._remove(identity, kind, book_id)
        return self._add(identity, kind, book_id, max_items)

    def _guarded(self, action, identity, kind, book_id, *args):
        try:
            validate_kind(kind)
            return action(identity, kind, str(book_id), *args)
        except QuotaExceeded as e:
            log.info("%s: %s, %s not added to %s", identity, e.message, book_id, kind)
            return ToggleResult(False, e.reason, e.message)
        except StoreUnavailable as e:
            log.warning("%s: %s not changed in %s: %s", identity, book_id, kind, e.message)
            return ToggleResult(False, e.reason, e.message)
        except LibraryError as e:
            log.warning("Library change for book %s in %s refused: %s", book_id, kind, e.message)
            return ToggleResult(False, e.reason, e.message)

    def add(self, identity, kind, book_id, max_items=None) -> ToggleResult:
        """Guarded add, applies promotion and quota rules. Adding a member succeeds."""
        return self._guarded(self._add, identity, kind, book_id, max_items)

    def remove(self, identity, kind, book_id) -> ToggleResult:
        return self._guarded(self._remove, identity, kind, book_id)

    def toggle(self, identity, kind, book_id, max_items=None) -> ToggleResult:
        return self._guarded(self._toggle, identity, kind, book_id, max_items)

    def toggle_favorite(self, identity, book_id, max_items=None) -> ToggleResult:
        return self.toggle(identity, constants.COLLECTION_FAVORITES, book_id, max_items)

    def toggle_reading(self, identity, book_id, max_items=None) -> ToggleResult:
        return self.toggle(identity, constants.COLLECTION_READING, book_id, max_items)

    def toggle_read(self, identity, book_id, max_items=None) -> ToggleResult:
        return self.toggle(identity, constants.COLLECTION_READ, book_id, max_items)
