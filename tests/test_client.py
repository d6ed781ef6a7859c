"""The Python client, driven against the real app through the Flask test client."""

import json
from unittest.mock import patch

import pytest

from chiral.client import (
    ChiralClient, TTLCache, AuthSession, FileTokenStore, ApiClientError,
)

BASE_URL = 'http://localhost/api'


class _Response:

    def __init__(self, flask_response):
        self.status_code = flask_response.status_code
        self.text = flask_response.get_data(as_text=True)
        self.ok = self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FlaskTransport:
    """Quacks like requests.Session for ApiClient, routing into the test client."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.calls = []

    def request(self, method, url, headers=None, timeout=None, json=None, params=None):
        path = url[len('http://localhost'):]
        self.calls.append((method, path))
        resp = self.test_client.open(
            path, method=method, headers=headers or {}, json=json, query_string=params,
        )
        return _Response(resp)


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def transport(client):
    return FlaskTransport(client)


@pytest.fixture
def chiral(transport):
    return ChiralClient(BASE_URL, http=transport)


@pytest.fixture
def logged_in(chiral, user):
    chiral.auth.login('test@example.com', 'password123')
    return chiral


class TestTTLCache:

    def test_entries_expire(self):
        clock = FakeClock()
        cache = TTLCache(ttl=300, clock=clock)
        assert cache.is_stale('k')

        cache.set('k', [1])
        assert cache.get('k') == [1]
        clock.now += 300
        assert not cache.is_stale('k')
        clock.now += 1
        assert cache.is_stale('k')
        assert cache.get('k') is None

    def test_invalidate_by_prefix(self):
        cache = TTLCache()
        cache.set('articles:list:a', 1)
        cache.set('articles:saved', 2)
        cache.set('notes', 3)
        cache.invalidate('articles:')
        assert 'articles:list:a' not in cache
        assert 'notes' in cache

    def test_oldest_entry_is_evicted(self):
        clock = FakeClock()
        cache = TTLCache(max_entries=2, clock=clock)
        for key in ('a', 'b', 'c'):
            cache.set(key, key)
            clock.now += 1
        assert len(cache) == 2
        assert cache.get('a') is None


class TestAuthSession:

    def test_login_logout_transitions(self):
        changes = []
        session = AuthSession()
        session.on_change(lambda s: changes.append(s.is_authenticated))

        session.login('tok', {'id': '1'})
        assert session.token == 'tok'
        session.logout()
        assert session.token is None
        assert session.user is None
        assert changes == [True, False]

    def test_file_store_survives_restart(self, tmp_path):
        path = tmp_path / 'auth.json'
        AuthSession(FileTokenStore(path)).login('tok', {'id': '1'})

        restored = AuthSession(FileTokenStore(path))
        assert restored.token == 'tok'
        assert restored.user == {'id': '1'}

        restored.logout()
        assert not path.exists()

    def test_corrupt_file_means_logged_out(self, tmp_path):
        path = tmp_path / 'auth.json'
        path.write_text('{not json')
        assert not AuthSession(FileTokenStore(path)).is_authenticated


class TestAuthRepository:

    def test_register_then_login(self, chiral, app):
        chiral.auth.register('A', 'a@x.com', 'password123', ['python'])
        user = chiral.auth.login('a@x.com', 'password123')
        assert chiral.session.is_authenticated
        assert user['learningInterests'] == ['python']
        assert chiral.auth.fetch_profile()['email'] == 'a@x.com'

    def test_bad_login_records_error(self, chiral, user):
        with pytest.raises(ApiClientError) as exc_info:
            chiral.auth.login('test@example.com', 'wrong')
        assert exc_info.value.status == 401
        assert chiral.auth.error == 'Invalid email/password'
        assert not chiral.session.is_authenticated

    def test_protected_call_without_token_is_not_sent(self, chiral, transport):
        with pytest.raises(ApiClientError) as exc_info:
            chiral.highlights.list()
        assert exc_info.value.status == 401
        assert transport.calls == []

    def test_rejected_token_logs_out(self, chiral, transport, app):
        chiral.session.login('forged-token', {'id': 'x'})
        with pytest.raises(ApiClientError):
            chiral.notes.list()
        assert not chiral.session.is_authenticated

    def test_update_interests_updates_cached_user(self, logged_in):
        logged_in.auth.update_interests(['rust'])
        assert logged_in.session.user['learningInterests'] == ['rust']


class TestArticlesRepository:

    @patch('chiral.services.devto.requests.get')
    def test_list_is_served_from_cache_until_stale(self, mock_get, transport):
        mock_get.return_value.json.return_value = [{'id': 1}]
        mock_get.return_value.raise_for_status.return_value = None
        clock = FakeClock()
        chiral = ChiralClient(BASE_URL, http=transport)
        chiral.cache = chiral.articles.cache = TTLCache(clock=clock)

        assert chiral.articles.list() == [{'id': 1}]
        assert chiral.articles.list() == [{'id': 1}]
        assert len(transport.calls) == 1

        clock.now += 301
        assert chiral.articles.is_stale()
        chiral.articles.list()
        assert len(transport.calls) == 2

    def test_saved_list_is_cached_until_a_mutation(self, logged_in, transport):
        def saved_reads():
            return transport.calls.count(('GET', '/api/articles/saved'))

        saved = logged_in.articles.save({
            'title': 'Closures', 'url': 'https://dev.to/a/1', 'devToId': 1,
        })
        assert len(logged_in.articles.saved()) == 1
        logged_in.articles.saved()
        assert saved_reads() == 1

        logged_in.articles.delete_saved(saved['id'])
        assert logged_in.articles.saved() == []
        assert saved_reads() == 2

    def test_logout_clears_cached_data(self, logged_in):
        logged_in.cache.set('articles:list:programming:10', [{'id': 1}])
        logged_in.auth.logout()
        assert len(logged_in.cache) == 0


class TestHighlightsRepository:

    def test_create_update_delete(self, logged_in):
        repo = logged_in.highlights
        created = repo.create('1', 'closure', auto_explain=False)
        assert repo.items[0]['id'] == created['id']

        updated = repo.update(created['id'], isBookmarked=True)
        assert updated['isBookmarked'] is True
        assert repo.items[0]['isBookmarked'] is True

        assert repo.list(is_bookmarked=True)[0]['id'] == created['id']
        assert repo.pagination['total'] == 1

        repo.delete(created['id'])
        assert repo.items == []

    @patch('chiral.services.gemini.explain_text', return_value='Because scope')
    def test_explain_updates_local_state(self, mock_explain, logged_in):
        repo = logged_in.highlights
        created = repo.create('1', 'closure', auto_explain=False)
        repo.explain(created['id'])
        assert repo.items[0]['explanation'] == 'Because scope'

    def test_not_found_sets_error(self, logged_in):
        with pytest.raises(ApiClientError):
            logged_in.highlights.get('missing')
        assert logged_in.highlights.error == 'Highlight not found'


class TestNotesRepository:

    def test_variants_and_markdown(self, logged_in):
        repo = logged_in.notes
        note = repo.create_traditional('Title', 'Body')
        repo.create_from_highlight('text', 'explained')
        assert len(repo.list()) == 2

        favorite = repo.toggle_favorite(note)
        assert favorite['isFavorite'] is True
        assert [n['id'] for n in repo.list(favorites_only=True)] == [note['id']]

        assert repo.markdown(note['id']).startswith('# Title')

    def test_validation_message_is_surfaced(self, logged_in):
        with pytest.raises(ApiClientError) as exc_info:
            logged_in.notes.create_from_highlight('text', '')
        assert exc_info.value.status == 400
        assert logged_in.notes.error == 'Explanation is required for highlight notes'
