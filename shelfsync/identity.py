# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""
Identities and the switch between them.

An identity is the acting principal of a session: ``Guest`` (anonymous, data
kept in the local cache, capacity limited) or ``Authenticated`` (data kept in
the relational store). ``None`` stands for "not resolved yet" / logged out.

The IdentityTransitionManager is the single owner of the current identity of a
client session. Interested components (the library view, the reading position
tracker) subscribe to ``identity_changed`` and receive ``previous`` and
``current`` as keyword arguments.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from blinker import Namespace

from . import logger
from .errors import IdentityTransitionError

log = logger.create()

_signals = Namespace()
identity_changed = _signals.signal('identity-changed')


@dataclass(frozen=True)
class Guest:
    is_authenticated = False
    is_anonymous = True

    @property
    def key(self):
        return 'guest'

    def __str__(self):
        return 'Guest'


@dataclass(frozen=True)
class Authenticated:
    user_id: str
    is_authenticated = True
    is_anonymous = False

    @property
    def key(self):
        return 'user:{}'.format(self.user_id)

    def __str__(self):
        return 'User {}'.format(self.user_id)


Identity = Union[Guest, Authenticated]

GUEST = Guest()


def _state(identity):
    if identity is None:
        return None
    return type(identity)


class IdentityTransitionManager:
    """State machine holding the current identity of a client session"""

    _allowed = {
        (None, Guest),
        (None, Authenticated),
        (Authenticated, None),
        (Guest, Authenticated),
        (Guest, None),
    }

    def __init__(self, identity: Optional[Identity] = None):
        self._current = identity

    @property
    def current(self) -> Optional[Identity]:
        return self._current

    def get_current_identity(self) -> Optional[Identity]:
        return self._current

    def on_identity_change(self, callback: Callable) -> Callable:
        # Strong reference, listeners live as long as the manager
        identity_changed.connect(callback, sender=self, weak=False)
        return callback

    def remove_listener(self, callback: Callable):
        identity_changed.disconnect(callback, sender=self)

    def continue_as_guest(self):
        return self.transition(GUEST)

    def login(self, user_id):
        return self.transition(Authenticated(str(user_id)))

    def logout(self):
        return self.transition(None)

    def transition(self, identity: Optional[Identity]) -> bool:
        """
        Switch to ``identity`` and notify subscribers.

        Returns False if ``identity`` is already the current one (for example a
        refreshed session token for the same user), True if it changed.
        Raises IdentityTransitionError for switches that have to go through a
        logout first, e.g. one user to another.
        """
        previous = self._current
        if identity == previous:
            log.debug("Identity unchanged: %s", identity)
            return False
        if (_state(previous), _state(identity)) not in self._allowed:
            raise IdentityTransitionError(previous, identity)

        self._current = identity
        log.info("Identity changed: %s -> %s", previous, identity)
        identity_changed.send(self, previous=previous, current=identity)
        return True


class TokenIdentityResolver:
    """Resolves bearer tokens issued by the auth provider to identities"""

    def __init__(self, tokens: Optional[Dict[str, str]] = None):
        self._tokens = dict(tokens or {})

    def register(self, token: str, user_id):
        self._tokens[token] = str(user_id)

    def revoke(self, token: str):
        self._tokens.pop(token, None)

    def resolve(self, token: str) -> Optional[Authenticated]:
        if not token:
            return None
        user_id = self._tokens.get(token)
        if user_id is None:
            log.debug("Unknown token presented")
            return None
        return Authenticated(user_id)
