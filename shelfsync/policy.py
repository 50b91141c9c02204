# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""
Collection rules.

A book is a member of at most one of favorites < reading < read. Adding to a
collection removes the book from the lower ones (promotion). Adding a book to
favorites while it sits in reading or read changes nothing. There is no
demotion through add, that needs an explicit remove first.

Capacity limited identities (guests) may hold at most ``max_items`` books over
all three collections.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from . import constants
from .errors import InvalidCollectionKind, QuotaExceeded


@dataclass(frozen=True)
class AddPlan:
    kind: str
    book_id: str
    # collections the book has to leave before it is added
    conflicts: Tuple[str, ...] = field(default_factory=tuple)
    # the add would not change anything
    noop: bool = False


def plan_add(collections: Dict[str, Iterable[str]], kind: str, book_id: str) -> AddPlan:
    """Work out what adding ``book_id`` to ``kind`` means for the other collections"""
    if kind not in constants.COLLECTION_PRIORITY:
        raise InvalidCollectionKind(kind)

    if book_id in collections.get(kind, ()):
        return AddPlan(kind, book_id, noop=True)

    rank = constants.COLLECTION_PRIORITY[kind]
    stronger = [k for k in constants.COLLECTION_KINDS
                if constants.COLLECTION_PRIORITY[k] > rank and book_id in collections.get(k, ())]
    if stronger:
        # favorites can't override reading or read
        return AddPlan(kind, book_id, noop=True)

    # promotion order matters for the store, drop the closest collection first
    weaker = tuple(k for k in reversed(constants.COLLECTION_KINDS)
                   if constants.COLLECTION_PRIORITY[k] < rank and book_id in collections.get(k, ()))
    return AddPlan(kind, book_id, conflicts=weaker)


def total_items(collections: Dict[str, Iterable[str]]) -> int:
    return sum(len(list(collections.get(kind, ()))) for kind in constants.COLLECTION_KINDS)


def check_quota(collections: Dict[str, Iterable[str]], kind: str, book_id: str,
                max_items: Optional[int]) -> None:
    """
    Raise QuotaExceeded if adding ``book_id`` to ``kind`` is over the limit.

    Re-adding an existing member never fails, it doesn't add anything. A
    ``max_items`` of None means unlimited.
    """
    if max_items is None:
        return
    if book_id in collections.get(kind, ()):
        return
    current = total_items(collections)
    if current >= max_items:
        raise QuotaExceeded(max_items, current)
