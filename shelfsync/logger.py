# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

import os
import sys
import inspect
import logging
from logging import Formatter, StreamHandler
from logging.handlers import RotatingFileHandler

from .constants import CONFIG_DIR as _CONFIG_DIR


FORMATTER = Formatter("[%(asctime)s] %(levelname)5s {%(name)s:%(lineno)d} %(message)s")
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FILE = os.path.join(_CONFIG_DIR, "shelfsync.log")
LOG_TO_STDERR = '/dev/stderr'
LOG_TO_STDOUT = '/dev/stdout'

logging.addLevelName(logging.WARNING, "WARN")
logging.addLevelName(logging.CRITICAL, "CRIT")


class _Logger(logging.Logger):

    def error_or_exception(self, message, stacklevel=2, *args, **kwargs):
        if is_debug_enabled():
            self.exception(message, stacklevel=stacklevel, *args, **kwargs)
        else:
            self.error(message, stacklevel=stacklevel, *args, **kwargs)


def get(name=None):
    return logging.getLogger(name)


def create():
    parent_frame = inspect.stack(0)[1]
    if hasattr(parent_frame, 'frame'):
        parent_frame = parent_frame.frame
    else:
        parent_frame = parent_frame[0]
    parent_module = inspect.getmodule(parent_frame)
    return get(parent_module.__name__)


def is_debug_enabled():
    return logging.root.level <= logging.DEBUG


def get_level_name(level):
    return logging.getLevelName(level)


def level_from_name(name, default=DEFAULT_LOG_LEVEL):
    if not name:
        return default
    if str(name).isdigit():
        return int(name)
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


def is_valid_logfile(file_path):
    if file_path in (LOG_TO_STDERR, LOG_TO_STDOUT):
        return True
    if not file_path:
        return True
    if os.path.isdir(file_path):
        return False
    log_dir = os.path.dirname(file_path)
    return (not log_dir) or os.path.isdir(log_dir)


def _absolute_log_file(log_file, default_log_file):
    if log_file:
        if not os.path.dirname(log_file):
            log_file = os.path.join(_CONFIG_DIR, log_file)
        return os.path.abspath(log_file)

    return default_log_file


def get_logfile(log_file):
    return _absolute_log_file(log_file, DEFAULT_LOG_FILE)


def setup(log_file, log_level=None):
    """
    Configure the root logger.

    Called once at startup and again whenever the configured log file or level
    changes. Existing handlers are replaced.
    """
    log_file = get_logfile(log_file) if log_file not in (LOG_TO_STDERR, LOG_TO_STDOUT) else log_file

    r = logging.root
    if log_level is None or log_level >= logging.INFO:
        # avoid spamming the log with debug messages from libraries
        logging.getLogger('apscheduler').setLevel(logging.WARNING)
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    r.setLevel(log_level if log_level is not None else DEFAULT_LOG_LEVEL)

    previous_handler = r.handlers[0] if r.handlers else None
    if previous_handler:
        # if the log_file has not changed, don't create a new handler
        if getattr(previous_handler, 'baseFilename', None) == log_file:
            return "" if log_file == DEFAULT_LOG_FILE else log_file

    if log_file == LOG_TO_STDERR:
        file_handler = StreamHandler()
        file_handler.baseFilename = LOG_TO_STDERR
    elif log_file == LOG_TO_STDOUT:
        file_handler = StreamHandler(sys.stdout)
        file_handler.baseFilename = LOG_TO_STDOUT
    else:
        try:
            os.makedirs(os.path.dirname(log_file), exist_ok=True)
            file_handler = RotatingFileHandler(log_file, maxBytes=100000, backupCount=2, encoding='utf-8')
        except (IOError, PermissionError):
            if log_file == DEFAULT_LOG_FILE:
                raise
            file_handler = RotatingFileHandler(DEFAULT_LOG_FILE, maxBytes=100000, backupCount=2, encoding='utf-8')
            log_file = ""
    file_handler.setFormatter(FORMATTER)

    for h in r.handlers[:]:
        r.removeHandler(h)
        h.close()
    r.addHandler(file_handler)
    logging.captureWarnings(True)
    return "" if log_file == DEFAULT_LOG_FILE else log_file


# Make sure every logger handed out by create() knows error_or_exception()
logging.setLoggerClass(_Logger)
