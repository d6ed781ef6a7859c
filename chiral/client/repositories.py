"""One repository per server resource.

Each repository mirrors what the UI needs from a resource: the last list
(``items``), the last single record (``current``) and the last error
message (``error``). Calls raise ``ApiClientError``; ``error`` is set first
so a caller that only inspects state still sees what went wrong.
"""

from contextlib import contextmanager

from .cache import TTLCache
from .transport import ApiClientError


class Repository:

    def __init__(self, api, cache=None):
        self.api = api
        self.cache = cache if cache is not None else TTLCache()
        self.items = []
        self.current = None
        self.error = None
        self.pagination = None

    @contextmanager
    def _call(self):
        self.error = None
        try:
            yield
        except ApiClientError as e:
            self.error = e.message
            raise

    def _set_page(self, data, key):
        self.items = data.get(key, [])
        self.pagination = {
            'total': data.get('total', len(self.items)),
            'currentPage': data.get('currentPage', 1),
            'totalPages': data.get('totalPages', 1),
        }
        return self.items

    def _replace_item(self, record):
        self.items = [record if item.get('id') == record['id'] else item for item in self.items]
        if self.current and self.current.get('id') == record['id']:
            self.current = record

    def _drop_item(self, record_id):
        self.items = [item for item in self.items if item.get('id') != record_id]
        if self.current and self.current.get('id') == record_id:
            self.current = None


class AuthRepository(Repository):

    @property
    def session(self):
        return self.api.session

    def register(self, name, email, password, learning_interests=None):
        with self._call():
            data = self.api.post('/auth/register', auth=False, json={
                'name': name,
                'email': email,
                'password': password,
                'learningInterests': learning_interests or [],
            }, default_message='Registration failed')
        return data['user']

    def login(self, email, password):
        with self._call():
            data = self.api.post('/auth/login', auth=False, json={
                'email': email, 'password': password,
            }, default_message='Login failed')
        self.session.login(data['access_token'], data['user'])
        return data['user']

    def google_login(self, google_token):
        with self._call():
            data = self.api.post('/google-login', auth=False, json={
                'googleToken': google_token,
            }, default_message='Google login failed')
        self.session.login(data['access_token'], data['user'])
        return data['user']

    def logout(self):
        self.session.logout()
        self.cache.invalidate()

    def fetch_profile(self):
        with self._call():
            user = self.api.get('/auth/profile', default_message='Failed to fetch profile')['user']
        self.session.update_user(user)
        return user

    def update_interests(self, learning_interests):
        with self._call():
            data = self.api.put('/auth/interests', json={
                'learningInterests': learning_interests,
            }, default_message='Failed to update interests')
        user = dict(self.session.user or {})
        user['learningInterests'] = data['learningInterests']
        self.session.update_user(user)
        # Recommendations depend on interests
        self.cache.invalidate('articles:recommendations')
        return data['learningInterests']


class ArticlesRepository(Repository):

    def list(self, tag='programming', per_page=10, refresh=False):
        """Public feed; served from cache until it goes stale."""
        key = f'articles:list:{tag}:{per_page}'
        if not refresh:
            cached = self.cache.get(key)
            if cached is not None:
                self.items = cached
                return cached
        with self._call():
            data = self.api.get('/articles', auth=False, params={
                'tag': tag, 'per_page': per_page,
            }, default_message='Failed to fetch articles')
        self.items = data['articles']
        self.cache.set(key, self.items)
        return self.items

    def is_stale(self, tag='programming', per_page=10):
        return self.cache.is_stale(f'articles:list:{tag}:{per_page}')

    def recommendations(self, per_page=20, refresh=False):
        key = f'articles:recommendations:{per_page}'
        if not refresh:
            cached = self.cache.get(key)
            if cached is not None:
                self.items = cached
                return cached
        with self._call():
            data = self.api.get('/articles/recommendations', params={'per_page': per_page},
                                default_message='Failed to fetch recommendations')
        self.items = data['articles']
        self.cache.set(key, self.items)
        return self.items

    def search(self, q=None, tag=None, per_page=10):
        params = {'per_page': per_page}
        if q:
            params['q'] = q
        if tag:
            params['tag'] = tag
        with self._call():
            data = self.api.get('/articles/search', params=params,
                                default_message='Failed to search articles')
        self.items = data['articles']
        return self.items

    def get(self, article_id):
        with self._call():
            self.current = self.api.get(f'/articles/{article_id}',
                                        default_message='Failed to fetch article')['article']
        return self.current

    def save(self, article):
        with self._call():
            saved = self.api.post('/articles/saved', json=article,
                                  default_message='Failed to save article')['article']
        self.cache.invalidate('articles:saved')
        return saved

    def saved(self, page=1, limit=10, refresh=False):
        key = f'articles:saved:{page}:{limit}'
        data = None if refresh else self.cache.get(key)
        if data is None:
            with self._call():
                data = self.api.get('/articles/saved', params={'page': page, 'limit': limit},
                                    default_message='Failed to fetch saved articles')
            self.cache.set(key, data)
        return self._set_page(data, 'articles')

    def delete_saved(self, saved_id):
        with self._call():
            self.api.delete(f'/articles/saved/{saved_id}',
                            default_message='Failed to delete article')
        self._drop_item(saved_id)
        self.cache.invalidate('articles:saved')


class HighlightsRepository(Repository):

    def list(self, page=1, limit=20, article_id=None, is_bookmarked=None, search=None):
        params = {'page': page, 'limit': limit}
        if article_id:
            params['articleId'] = article_id
        if is_bookmarked is not None:
            params['isBookmarked'] = 'true' if is_bookmarked else 'false'
        if search:
            params['search'] = search
        with self._call():
            data = self.api.get('/highlights', params=params,
                                default_message='Failed to fetch highlights')
        return self._set_page(data, 'highlights')

    def for_article(self, article_id):
        with self._call():
            data = self.api.get(f'/highlights/article/{article_id}',
                                default_message='Failed to fetch article highlights')
        self.items = data['highlights']
        return self.items

    def get(self, highlight_id):
        with self._call():
            self.current = self.api.get(f'/highlights/{highlight_id}',
                                        default_message='Failed to fetch highlight')['highlight']
        return self.current

    def create(self, article_id, highlighted_text, context=None, auto_explain=True, **extra):
        payload = {
            'articleId': article_id,
            'highlightedText': highlighted_text,
            'context': context,
            'autoExplain': auto_explain,
        }
        payload.update(extra)
        with self._call():
            highlight = self.api.post('/highlights', json=payload,
                                      default_message='Failed to create highlight')['highlight']
        self.items = [highlight] + self.items
        return highlight

    def update(self, highlight_id, **changes):
        with self._call():
            highlight = self.api.put(f'/highlights/{highlight_id}', json=changes,
                                     default_message='Failed to update highlight')['highlight']
        self._replace_item(highlight)
        return highlight

    def delete(self, highlight_id):
        with self._call():
            self.api.delete(f'/highlights/{highlight_id}',
                            default_message='Failed to delete highlight')
        self._drop_item(highlight_id)

    def explain(self, highlight_id, regenerate=False):
        params = {'regenerate': 'true'} if regenerate else None
        with self._call():
            data = self.api.post(f'/highlights/{highlight_id}/explain', params=params,
                                 default_message='Failed to explain highlight')
        for item in self.items:
            if item.get('id') == highlight_id:
                item['explanation'] = data['explanation']
        if self.current and self.current.get('id') == highlight_id:
            self.current['explanation'] = data['explanation']
        return data


class NotesRepository(Repository):

    def list(self, page=1, limit=20, search=None, favorites_only=False, note_type=None):
        params = {'page': page, 'limit': limit}
        if search:
            params['search'] = search
        if favorites_only:
            params['isFavorite'] = 'true'
        if note_type:
            params['noteType'] = note_type
        with self._call():
            data = self.api.get('/notes', params=params, default_message='Failed to fetch notes')
        return self._set_page(data, 'notes')

    def get(self, note_id):
        with self._call():
            self.current = self.api.get(f'/notes/{note_id}',
                                        default_message='Failed to fetch note')['note']
        return self.current

    def create_traditional(self, title, content, is_favorite=False):
        return self._create({
            'noteType': 'traditional',
            'title': title,
            'content': content,
            'isFavorite': is_favorite,
        })

    def create_from_highlight(self, highlighted_text, explanation, original_context=None):
        return self._create({
            'noteType': 'highlight',
            'highlightedText': highlighted_text,
            'explanation': explanation,
            'originalContext': original_context,
        })

    def _create(self, payload):
        with self._call():
            note = self.api.post('/notes', json=payload,
                                 default_message='Failed to create note')['note']
        self.items = [note] + self.items
        return note

    def update(self, note_id, **changes):
        with self._call():
            note = self.api.put(f'/notes/{note_id}', json=changes,
                                default_message='Failed to update note')['note']
        self._replace_item(note)
        return note

    def toggle_favorite(self, note):
        return self.update(note['id'], isFavorite=not note.get('isFavorite', False))

    def delete(self, note_id):
        with self._call():
            self.api.delete(f'/notes/{note_id}', default_message='Failed to delete note')
        self._drop_item(note_id)

    def markdown(self, note_id):
        with self._call():
            return self.api.get(f'/notes/{note_id}/markdown', raw=True,
                                default_message='Failed to export note')


class GeminiRepository(Repository):

    def explain(self, highlighted_text, context=None):
        with self._call():
            self.current = self.api.post('/gemini/explain', json={
                'highlightedText': highlighted_text,
                'context': context,
            }, default_message='Failed to get explanation')
        return self.current
