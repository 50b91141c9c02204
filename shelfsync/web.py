# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""
REST access to the library and reading progress of authenticated users.

Endpoints:
    * GET  /health                              - liveness probe
    * GET  /library?type=<collection>           - book ids of one collection
    * POST /library/<collection>/<book>/toggle  - toggle a book in a collection
    * GET  /progress/<book>                     - stored reading position
    * PUT  /progress/<book>                     - save a reading position

<collection> is favorites, reading or read; the names favoritos, lendo and
lidos used by the web client are accepted as well. All endpoints except
/health need an ``Authorization: Bearer <token>`` header.
"""

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from flask_httpauth import HTTPTokenAuth

from . import constants, logger
from .errors import InvalidCollectionKind, LibraryError, StoreUnavailable
from .library import Library

log = logger.create()

library_api = Blueprint('library_api', __name__)
auth = HTTPTokenAuth(scheme='Bearer')


def create_response(data: Dict[str, Any], status_code: int = 200) -> tuple:
    return jsonify(data), status_code


def create_error_response(error: LibraryError, status_code: int) -> tuple:
    return create_response({
        "error": error.reason,
        "message": error.message
    }, status_code)


def resolve_collection(name):
    """Map a collection name or alias to its kind; missing name means favorites"""
    if name is None or name == '':
        return constants.COLLECTION_FAVORITES
    kind = constants.COLLECTION_ALIASES.get(name.strip().lower())
    if kind is None:
        raise InvalidCollectionKind(name)
    return kind


def _services():
    return current_app.extensions['shelfsync']


@auth.verify_token
def verify_token(token):
    return _services().resolver.resolve(token)


@auth.error_handler
def handle_unauthorized(status):
    return create_response({
        "error": constants.REASON_NOT_AUTHENTICATED,
        "message": "Unauthorized"
    }, status)


@library_api.route("/health", methods=["GET"])
def health():
    return create_response({"status": "ok"})


@library_api.route("/library", methods=["GET"])
@auth.login_required
def list_collection():
    identity = auth.current_user()
    kind = resolve_collection(request.args.get("type"))
    books = _services().collection_store.list_books(identity, kind)
    return create_response({"type": kind, "books": books})


@library_api.route("/library/<collection>/<book_id>/toggle", methods=["POST"])
@auth.login_required
def toggle_book(collection, book_id):
    identity = auth.current_user()
    kind = resolve_collection(collection)
    services = _services()
    library = Library(services.collection_store, services.config.guest_book_limit)

    payload = request.get_json(silent=True) or {}
    max_items = payload.get("max_items")
    if max_items is not None and (isinstance(max_items, bool) or not isinstance(max_items, int) or max_items < 0):
        return create_response({"error": "invalid_fields", "message": "max_items must be a positive integer"}, 400)

    result = library.toggle(identity, kind, book_id, max_items)
    response = result.to_dict()
    response["type"] = kind
    if result.reason == constants.REASON_STORE_UNAVAILABLE:
        return create_response(response, 503)
    return create_response(response)


@library_api.route("/progress/<book_id>", methods=["GET"])
@auth.login_required
def get_progress(book_id):
    identity = auth.current_user()
    position = _services().progress.get_position(identity, book_id)
    if position is None:
        return create_response({})
    return create_response(position.to_dict())


@library_api.route("/progress/<book_id>", methods=["PUT"])
@auth.login_required
def update_progress(book_id):
    identity = auth.current_user()
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return create_response({"error": "invalid_fields", "message": "Invalid request data"}, 400)

    try:
        position = _services().progress.save_position(identity, book_id,
                                                      data.get("current_page"), data.get("total_pages"))
    except ValueError as e:
        return create_response({"error": "invalid_fields", "message": str(e)}, 400)

    log.info("Saved reading progress: user=%s, book=%s, progress=%.2f%%",
             identity.user_id, book_id, position.progress_percentage)
    return create_response(position.to_dict())


################################################################################
# Error Handlers
################################################################################

@library_api.errorhandler(InvalidCollectionKind)
def handle_invalid_collection(error):
    return create_error_response(error, 400)


@library_api.errorhandler(StoreUnavailable)
def handle_store_unavailable(error):
    log.error("Store unavailable: %s", error.message)
    return create_error_response(error, 503)


@library_api.errorhandler(LibraryError)
def handle_library_error(error):
    return create_error_response(error, 400)
