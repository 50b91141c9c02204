# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

import os
from datetime import datetime, timezone

from sqlalchemy import create_engine, exc
from sqlalchemy import Column, UniqueConstraint
from sqlalchemy import String, Integer, DateTime, Float
from sqlalchemy.orm import declarative_base, sessionmaker, Session, scoped_session
from sqlalchemy.pool import StaticPool

from . import constants, logger
from .errors import StoreUnavailable

log = logger.create()

session: Session | None = None
engine = None
database_url = None
Base = declarative_base()


class _CollectionMixin:
    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    book_id = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return '<%s user=%s book=%s>' % (self.__class__.__name__, self.user_id, self.book_id)


class Favorite(_CollectionMixin, Base):
    __tablename__ = 'favorites'
    __table_args__ = (UniqueConstraint('user_id', 'book_id', name='unique_favorites_user_book'),)


class Reading(_CollectionMixin, Base):
    __tablename__ = 'reading'
    __table_args__ = (UniqueConstraint('user_id', 'book_id', name='unique_reading_user_book'),)


class Read(_CollectionMixin, Base):
    __tablename__ = 'read'
    __table_args__ = (UniqueConstraint('user_id', 'book_id', name='unique_read_user_book'),)


COLLECTION_MODELS = {
    constants.COLLECTION_FAVORITES: Favorite,
    constants.COLLECTION_READING: Reading,
    constants.COLLECTION_READ: Read,
}


class ReadingProgress(Base):
    __tablename__ = 'reading_progress'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False)
    book_id = Column(String, nullable=False)
    current_page = Column(Integer, nullable=False, default=1)
    total_pages = Column(Integer, nullable=False, default=1)
    progress_percentage = Column(Float, nullable=False, default=0.0)
    last_read_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint('user_id', 'book_id', name='unique_progress_user_book'),
    )

    def __repr__(self):
        return '<ReadingProgress user=%s book=%s page=%s/%s>' % (
            self.user_id, self.book_id, self.current_page, self.total_pages)


def _create_engine(url):
    if url.startswith('sqlite'):
        if url in ('sqlite://', 'sqlite:///:memory:'):
            # one shared connection, otherwise every thread sees its own empty database
            return create_engine(url, echo=False, poolclass=StaticPool,
                                 connect_args={'check_same_thread': False})
        path = url.split(':///', 1)[-1]
        if path and os.path.dirname(path):
            os.makedirs(os.path.dirname(path), exist_ok=True)
        return create_engine(url, echo=False, connect_args={'timeout': 30, 'check_same_thread': False})
    return create_engine(url, echo=False)


def init_db(url=None):
    # Open session for database connection
    global session
    global engine
    global database_url

    database_url = url or constants.DEFAULT_DATABASE_URL
    engine = _create_engine(database_url)

    Session = scoped_session(sessionmaker())
    Session.configure(bind=engine)
    session = Session

    Base.metadata.create_all(engine)
    log.debug("Database initialised at %s", database_url)
    return session


def get_session():
    if session is None:
        raise StoreUnavailable("Database not initialised, call init_db() first")
    return session


def dispose():
    global session
    global engine

    old_session = session
    old_engine = engine
    session = None
    engine = None
    if old_session:
        try:
            old_session.remove()
        except exc.SQLAlchemyError as e:
            log.debug("Failed to close session: %s", e)
    if old_engine:
        old_engine.dispose()

