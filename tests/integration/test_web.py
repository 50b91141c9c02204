# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

"""
Integration tests for the REST service.

Uses the Flask test client against an in-memory database.
"""

import pytest

from shelfsync import create_app, db
from shelfsync.errors import StoreUnavailable
from shelfsync.identity import TokenIdentityResolver

AUTH = {'Authorization': 'Bearer token-u1'}
OTHER_AUTH = {'Authorization': 'Bearer token-u2'}


@pytest.fixture
def app(config):
    resolver = TokenIdentityResolver({'token-u1': 'u1', 'token-u2': 'u2'})
    app = create_app(config, resolver)
    app.config['TESTING'] = True
    yield app
    app.extensions['shelfsync'].progress.shutdown()
    db.dispose()


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions['shelfsync']


@pytest.mark.integration
class TestAuthentication:

    def test_health_needs_no_token(self, http):
        response = http.get('/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok'}

    def test_missing_token(self, http):
        response = http.get('/library')
        assert response.status_code == 401
        assert response.get_json()['error'] == 'not_authenticated'

    def test_unknown_token(self, http):
        response = http.get('/library', headers={'Authorization': 'Bearer nope'})
        assert response.status_code == 401


@pytest.mark.integration
class TestLibraryEndpoints:

    def test_empty_library_defaults_to_favorites(self, http):
        response = http.get('/library', headers=AUTH)
        assert response.status_code == 200
        assert response.get_json() == {'type': 'favorites', 'books': []}

    def test_toggle_adds_and_removes(self, http):
        response = http.post('/library/favorites/42/toggle', headers=AUTH)
        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['member'] is True
        assert body['type'] == 'favorites'
        assert http.get('/library?type=favorites', headers=AUTH).get_json()['books'] == ['42']

        body = http.post('/library/favorites/42/toggle', headers=AUTH).get_json()
        assert body['member'] is False
        assert http.get('/library', headers=AUTH).get_json()['books'] == []

    def test_aliases(self, http):
        http.post('/library/lidos/7/toggle', headers=AUTH)
        response = http.get('/library?type=read', headers=AUTH)
        assert response.get_json() == {'type': 'read', 'books': ['7']}
        assert http.get('/library?type=Lidos', headers=AUTH).get_json()['books'] == ['7']

    def test_promotion(self, http):
        http.post('/library/favorites/7/toggle', headers=AUTH)
        http.post('/library/reading/7/toggle', headers=AUTH)
        assert http.get('/library?type=favorites', headers=AUTH).get_json()['books'] == []
        assert http.get('/library?type=reading', headers=AUTH).get_json()['books'] == ['7']

    def test_users_see_their_own_books(self, http):
        http.post('/library/reading/7/toggle', headers=AUTH)
        assert http.get('/library?type=reading', headers=OTHER_AUTH).get_json()['books'] == []

    def test_unknown_collection(self, http):
        response = http.get('/library?type=wishlist', headers=AUTH)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_collection'

        response = http.post('/library/wishlist/1/toggle', headers=AUTH)
        assert response.status_code == 400

    def test_client_supplied_limit(self, http):
        http.post('/library/favorites/1/toggle', headers=AUTH)
        response = http.post('/library/favorites/2/toggle', headers=AUTH, json={'max_items': 1})
        body = response.get_json()
        assert response.status_code == 200
        assert body['success'] is False
        assert body['reason'] == 'quota_exceeded'

    @pytest.mark.parametrize("max_items", ["1", -1, True, 1.5])
    def test_invalid_limit(self, http, max_items):
        response = http.post('/library/favorites/2/toggle', headers=AUTH, json={'max_items': max_items})
        assert response.status_code == 400

    def test_store_unavailable_on_toggle(self, http, services, mocker):
        mocker.patch.object(services.collection_store, 'add', side_effect=StoreUnavailable("db down"))
        response = http.post('/library/favorites/1/toggle', headers=AUTH)
        assert response.status_code == 503
        assert response.get_json()['reason'] == 'store_unavailable'

    def test_store_unavailable_on_list(self, http, services, mocker):
        mocker.patch.object(services.collection_store, 'list_books', side_effect=StoreUnavailable("db down"))
        response = http.get('/library', headers=AUTH)
        assert response.status_code == 503
        assert response.get_json()['error'] == 'store_unavailable'


@pytest.mark.integration
class TestProgressEndpoints:

    def test_unknown_book(self, http):
        response = http.get('/progress/1', headers=AUTH)
        assert response.status_code == 200
        assert response.get_json() == {}

    def test_save_and_load(self, http):
        response = http.put('/progress/1', headers=AUTH, json={'current_page': 45, 'total_pages': 180})
        assert response.status_code == 200
        assert response.get_json()['progress_percentage'] == 25.0

        body = http.get('/progress/1', headers=AUTH).get_json()
        assert body['current_page'] == 45
        assert body['total_pages'] == 180
        assert body['book_id'] == '1'
        assert body['last_read_at']

    def test_update_overwrites(self, http):
        http.put('/progress/1', headers=AUTH, json={'current_page': 10, 'total_pages': 100})
        http.put('/progress/1', headers=AUTH, json={'current_page': 20, 'total_pages': 100})
        assert http.get('/progress/1', headers=AUTH).get_json()['current_page'] == 20

    @pytest.mark.parametrize("payload", [
        None,
        [1, 2],
        {'current_page': 200, 'total_pages': 100},
        {'current_page': 0, 'total_pages': 100},
        {'current_page': 'ten', 'total_pages': 100},
        {'total_pages': 100},
    ])
    def test_invalid_payload(self, http, payload):
        response = http.put('/progress/1', headers=AUTH, json=payload)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_fields'
