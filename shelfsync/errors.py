# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""Exceptions raised by the library and reading-position components."""

from . import constants


class LibraryError(Exception):
    """Base class; ``reason`` is the machine readable code shown to clients"""
    reason = None

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class NotAuthenticated(LibraryError):
    """No resolved identity is available for the operation"""
    reason = constants.REASON_NOT_AUTHENTICATED


class QuotaExceeded(LibraryError):
    """Add rejected because the identity reached its item limit"""
    reason = constants.REASON_QUOTA_EXCEEDED

    def __init__(self, max_items: int, total_items: int):
        self.max_items = max_items
        self.total_items = total_items
        super().__init__(f"Book limit reached ({total_items}/{max_items})")


class StoreUnavailable(LibraryError):
    """Backing store read or write failed"""
    reason = constants.REASON_STORE_UNAVAILABLE


class InvalidCollectionKind(LibraryError):
    reason = constants.REASON_INVALID_COLLECTION

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Unknown collection: {kind!r}")


class IdentityTransitionError(LibraryError):
    reason = constants.REASON_INVALID_TRANSITION

    def __init__(self, previous, current):
        self.previous = previous
        self.current = current
        super().__init__(f"Cannot switch identity from {previous!r} to {current!r}")
