# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

import threading
from datetime import datetime, timedelta, timezone

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from . import constants, logger

log = logger.create()


class Debouncer:
    """
    Per key "run after delay, restart the delay on every new submit".

    Only the payload of the last submit for a key is kept. Jobs run on a
    single worker thread, so writes for one key happen in submit order.
    """

    def __init__(self, delay=constants.DEFAULT_PROGRESS_DEBOUNCE, scheduler=None):
        self.delay = delay
        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._pending = {}
        self._lock = threading.RLock()

    @property
    def scheduler(self):
        if self._scheduler is None:
            logger.logging.getLogger('tzlocal').setLevel(logger.logging.WARNING)
            self._scheduler = BackgroundScheduler(executors={'default': ThreadPoolExecutor(1)})
            self._scheduler.start()
        return self._scheduler

    @staticmethod
    def job_id(key):
        if isinstance(key, tuple):
            key = ':'.join(str(part) for part in key)
        return 'debounce:{}'.format(key)

    def submit(self, key, func, *args):
        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.delay)
        with self._lock:
            self._pending[key] = (func, args)
            self.scheduler.add_job(self._fire, trigger=DateTrigger(run_date=run_date), args=[key],
                                   id=self.job_id(key), name=self.job_id(key),
                                   replace_existing=True, misfire_grace_time=None)

    def _fire(self, key):
        with self._lock:
            entry = self._pending.pop(key, None)
        if entry is None:
            return
        func, args = entry
        func(*args)

    def _remove_job(self, key):
        try:
            self.scheduler.remove_job(self.job_id(key))
        except JobLookupError:
            # already fired
            pass

    def pending(self, key):
        with self._lock:
            entry = self._pending.get(key)
        return entry[1] if entry else None

    def pending_keys(self):
        with self._lock:
            return list(self._pending.keys())

    def cancel(self, key):
        with self._lock:
            entry = self._pending.pop(key, None)
            if entry is not None:
                self._remove_job(key)
        return entry is not None

    def cancel_matching(self, predicate):
        cancelled = 0
        for key in self.pending_keys():
            if predicate(key) and self.cancel(key):
                cancelled += 1
        return cancelled

    def flush(self, predicate=None):
        """Run pending calls now instead of waiting for their timer"""
        with self._lock:
            keys = [key for key in self._pending if predicate is None or predicate(key)]
            entries = []
            for key in keys:
                entries.append(self._pending.pop(key))
                self._remove_job(key)
        for func, args in entries:
            func(*args)
        return len(entries)

    def shutdown(self, flush=True):
        if flush:
            self.flush()
        else:
            with self._lock:
                for key in list(self._pending):
                    self._remove_job(key)
                self._pending.clear()
        if self._owns_scheduler and self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
