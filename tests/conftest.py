# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""
Shared pytest fixtures and configuration for shelfsync tests.

This module contains common fixtures that are automatically available
to all tests without needing to import them explicitly.
"""

import pytest
from apscheduler.jobstores.base import ConflictingIdError, JobLookupError

from shelfsync import db
from shelfsync.config import Config
from shelfsync.identity import GUEST, Authenticated
from shelfsync.library import Library
from shelfsync.local_cache import LocalCache
from shelfsync.progress import LocalProgressStore, ProgressStoreAdapter, ReadingPositionTracker
from shelfsync.progress import RemoteProgressStore
from shelfsync.scheduler import Debouncer
from shelfsync.store import CollectionStoreAdapter, LocalCollectionStore, RemoteCollectionStore


# ============================================================================
# Identities
# ============================================================================

@pytest.fixture
def guest():
    return GUEST


@pytest.fixture
def user():
    return Authenticated("user-1")


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def database():
    """Fresh in-memory library database, disposed after the test."""
    session = db.init_db("sqlite://")
    yield session
    db.dispose()


@pytest.fixture
def file_database(tmp_path):
    """Library database on disk, for tests that write from another thread."""
    session = db.init_db("sqlite:///{}".format(tmp_path / "shelfsync.db"))
    yield session
    db.dispose()


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def cache_path(tmp_path):
    return str(tmp_path / "guest_cache.json")


@pytest.fixture
def cache(cache_path):
    return LocalCache(cache_path)


@pytest.fixture
def collection_store(cache, database):
    return CollectionStoreAdapter(LocalCollectionStore(cache), RemoteCollectionStore())


@pytest.fixture
def library(collection_store):
    return Library(collection_store, guest_book_limit=7)


@pytest.fixture
def progress_store(cache, database):
    return ProgressStoreAdapter(LocalProgressStore(cache), RemoteProgressStore())


@pytest.fixture
def config(tmp_path):
    return Config(environ={}, database_url="sqlite://", guest_cache_path=str(tmp_path / "guest_cache.json"))


# ============================================================================
# Scheduler Fixtures
# ============================================================================

class FakeScheduler:
    """
    Stands in for the APScheduler BackgroundScheduler.

    Jobs never fire by themselves; tests decide when time has passed by
    calling run_pending().
    """

    def __init__(self):
        self.jobs = {}
        self.scheduled = 0

    def add_job(self, func, trigger=None, args=None, id=None, name=None,
                replace_existing=False, misfire_grace_time=None):
        if id in self.jobs and not replace_existing:
            raise ConflictingIdError(id)
        self.jobs[id] = (func, list(args or []), trigger)
        self.scheduled += 1

    def remove_job(self, job_id):
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]

    def run_pending(self):
        jobs = list(self.jobs.values())
        self.jobs.clear()
        for func, args, _ in jobs:
            func(*args)
        return len(jobs)


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()


@pytest.fixture
def debouncer(fake_scheduler):
    return Debouncer(delay=1.0, scheduler=fake_scheduler)


@pytest.fixture
def tracker(progress_store, debouncer):
    return ReadingPositionTracker(progress_store, debouncer=debouncer)


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: fast tests without external services"
    )
    config.addinivalue_line(
        "markers", "integration: tests running against a real database or the REST service"
    )
    config.addinivalue_line(
        "markers", "slow: tests waiting on real timers"
    )
