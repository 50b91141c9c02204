# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""
Reading position tracking

Keeps the current location of every (identity, book) pair. The document
renderer reports a location on every page turn; those reports are debounced
so that a burst of page turns ends up as one write carrying the last location.

Stores:
    RemoteProgressStore - reading_progress table, upsert on (user_id, book_id)
    LocalProgressStore  - guest positions in the local cache
"""

import abc
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from . import constants, db, logger
from .errors import NotAuthenticated, StoreUnavailable
from .scheduler import Debouncer
from .store import select_backend

log = logger.create()


def progress_percentage(current_location: int, total_locations: int) -> float:
    """Share of the book read, in percent with two decimals (45 of 180 -> 25.0)"""
    return round(current_location / total_locations * 100, 2)


def validate_location(current_location, total_locations):
    for name, value in (('current_location', current_location), ('total_locations', total_locations)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        if value < 1:
            raise ValueError(f"{name} must be at least 1, got {value}")
    if current_location > total_locations:
        raise ValueError(f"current_location {current_location} is beyond total_locations {total_locations}")


@dataclass
class ReadingPosition:
    book_id: str
    current_location: int
    total_locations: int
    progress_percentage: float
    last_updated: datetime

    @classmethod
    def create(cls, book_id, current_location, total_locations, last_updated=None):
        validate_location(current_location, total_locations)
        return cls(book_id=str(book_id),
                   current_location=current_location,
                   total_locations=total_locations,
                   progress_percentage=progress_percentage(current_location, total_locations),
                   last_updated=last_updated or datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'book_id': self.book_id,
            'current_page': self.current_location,
            'total_pages': self.total_locations,
            'progress_percentage': self.progress_percentage,
            'last_read_at': self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data):
        last_read_at = data.get('last_read_at')
        return cls(book_id=str(data['book_id']),
                   current_location=int(data['current_page']),
                   total_locations=int(data['total_pages']),
                   progress_percentage=float(data['progress_percentage']),
                   last_updated=datetime.fromisoformat(last_read_at) if last_read_at else None)


class ProgressStore(abc.ABC):

    @abc.abstractmethod
    def load(self, identity, book_id) -> Optional[ReadingPosition]:
        pass

    @abc.abstractmethod
    def save(self, identity, position: ReadingPosition) -> None:
        pass


class RemoteProgressStore(ProgressStore):

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.get_session()

    def load(self, identity, book_id):
        try:
            record = self.session.query(db.ReadingProgress).filter(
                db.ReadingProgress.user_id == identity.user_id,
                db.ReadingProgress.book_id == str(book_id)
            ).first()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error("Failed to load reading progress for user %s, book %s: %s", identity.user_id, book_id, e)
            raise StoreUnavailable("Could not load reading progress")
        if not record:
            return None
        last_read_at = record.last_read_at
        if last_read_at is not None and last_read_at.tzinfo is None:
            # sqlite hands back naive datetimes
            last_read_at = last_read_at.replace(tzinfo=timezone.utc)
        return ReadingPosition(book_id=record.book_id,
                               current_location=record.current_page,
                               total_locations=record.total_pages,
                               progress_percentage=record.progress_percentage,
                               last_updated=last_read_at)

    def save(self, identity, position):
        try:
            record = self.session.query(db.ReadingProgress).filter(
                db.ReadingProgress.user_id == identity.user_id,
                db.ReadingProgress.book_id == position.book_id
            ).first()
            if record:
                record.current_page = position.current_location
                record.total_pages = position.total_locations
                record.progress_percentage = position.progress_percentage
                record.last_read_at = position.last_updated
            else:
                record = db.ReadingProgress(user_id=identity.user_id,
                                            book_id=position.book_id,
                                            current_page=position.current_location,
                                            total_pages=position.total_locations,
                                            progress_percentage=position.progress_percentage,
                                            last_read_at=position.last_updated)
                self.session.add(record)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error("Failed to save reading progress for user %s, book %s: %s",
                      identity.user_id, position.book_id, e)
            raise StoreUnavailable("Could not save reading progress")
        log.debug("Saved progress: user=%s, book=%s, page=%s/%s (%.2f%%)", identity.user_id, position.book_id,
                  position.current_location, position.total_locations, position.progress_percentage)


class LocalProgressStore(ProgressStore):

    def __init__(self, cache):
        self.cache = cache

    def load(self, identity, book_id):
        entries = self.cache.get(constants.GUEST_PROGRESS_KEY, {})
        data = entries.get(str(book_id)) if isinstance(entries, dict) else None
        if not data:
            return None
        try:
            return ReadingPosition.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            log.warning("Ignoring malformed guest progress for book %s: %s", book_id, e)
            return None

    def save(self, identity, position):
        entries = self.cache.get(constants.GUEST_PROGRESS_KEY, {})
        if not isinstance(entries, dict):
            entries = {}
        entries[position.book_id] = position.to_dict()
        self.cache.set(constants.GUEST_PROGRESS_KEY, entries)


class ProgressStoreAdapter(ProgressStore):

    def __init__(self, local: ProgressStore, remote: ProgressStore):
        self.local = local
        self.remote = remote

    def load(self, identity, book_id):
        return select_backend(identity, self.local, self.remote).load(identity, book_id)

    def save(self, identity, position):
        return select_backend(identity, self.local, self.remote).save(identity, position)


class ReadingPositionTracker:

    def __init__(self, store: ProgressStore, debouncer: Debouncer = None,
                 delay=constants.DEFAULT_PROGRESS_DEBOUNCE, manager=None):
        self.store = store
        self.debouncer = debouncer if debouncer is not None else Debouncer(delay)
        self.last_error = None
        if manager is not None:
            self.bind(manager)

    def bind(self, manager):
        manager.on_identity_change(self._identity_changed)

    def _identity_changed(self, sender, previous=None, current=None):
        if previous is not None:
            dropped = self.cancel(previous)
            if dropped:
                log.debug("Dropped %d pending position writes of %s", dropped, previous)

    @staticmethod
    def _key(identity, book_id):
        if identity is None:
            raise NotAuthenticated("No identity resolved")
        return identity.key, str(book_id)

    def get_position(self, identity, book_id) -> Optional[ReadingPosition]:
        key = self._key(identity, book_id)
        pending = self.debouncer.pending(key)
        if pending is not None:
            return pending[1]
        return self.store.load(identity, book_id)

    def restore_location(self, identity, book_id) -> int:
        """Location the renderer should open the book at"""
        position = self.get_position(identity, book_id)
        return position.current_location if position else 1

    def report_location_change(self, identity, book_id, current_location, total_locations) -> ReadingPosition:
        key = self._key(identity, book_id)
        position = ReadingPosition.create(book_id, current_location, total_locations)
        self.debouncer.submit(key, self._write, identity, position)
        return position

    def _write(self, identity, position):
        try:
            self.store.save(identity, position)
            self.last_error = None
        except StoreUnavailable as e:
            # runs on the scheduler thread, nobody to raise to
            self.last_error = e
            log.error_or_exception("Reading position of book {} for {} lost: {}".format(
                position.book_id, identity, e.message))

    def save_position(self, identity, book_id, current_location, total_locations) -> ReadingPosition:
        """Write immediately, replacing a pending report for the same book"""
        key = self._key(identity, book_id)
        position = ReadingPosition.create(book_id, current_location, total_locations)
        self.debouncer.cancel(key)
        self.store.save(identity, position)
        return position

    def has_pending(self, identity, book_id):
        return self.debouncer.pending(self._key(identity, book_id)) is not None

    def flush(self, identity=None, book_id=None):
        if identity is None:
            return self.debouncer.flush()
        if book_id is None:
            return self.debouncer.flush(lambda key: key[0] == identity.key)
        target = self._key(identity, book_id)
        return self.debouncer.flush(lambda key: key == target)

    def cancel(self, identity):
        return self.debouncer.cancel_matching(lambda key: key[0] == identity.key)

    def shutdown(self):
        self.debouncer.shutdown(flush=True)


class ReaderBinding:
    """
    Glue between a document renderer and the tracker for one open book.

    The renderer reports page and page count changes; positions are only
    reported once both are known.
    """

    def __init__(self, tracker: ReadingPositionTracker, identity, book_id, library=None):
        self.tracker = tracker
        self.identity = identity
        self.book_id = str(book_id)
        self.library = library
        self.current_location = None
        self.total_locations = None
        self.reading_result = None

    def open(self, max_items=None) -> int:
        if self.library is not None:
            # opening a book puts it on the reading shelf
            self.reading_result = self.library.add(self.identity, constants.COLLECTION_READING,
                                                   self.book_id, max_items)
        self.current_location = self.tracker.restore_location(self.identity, self.book_id)
        return self.current_location

    def on_page_change(self, page):
        self.current_location = page
        self._report()

    def on_total_pages_change(self, total):
        self.total_locations = total
        self._report()

    def _report(self):
        if not self.current_location or not self.total_locations:
            return
        # pagination may shrink, e.g. after a font size change
        current = min(self.current_location, self.total_locations)
        self.tracker.report_location_change(self.identity, self.book_id, current, self.total_locations)

    def close(self):
        self.tracker.flush(self.identity, self.book_id)
