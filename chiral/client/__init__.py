"""Python client for the Chiral REST API."""

from .cache import TTLCache
from .session import AuthSession, FileTokenStore, MemoryTokenStore
from .transport import ApiClient, ApiClientError
from .repositories import (
    AuthRepository,
    ArticlesRepository,
    HighlightsRepository,
    NotesRepository,
    GeminiRepository,
)

__all__ = [
    'ChiralClient', 'TTLCache', 'AuthSession', 'FileTokenStore', 'MemoryTokenStore',
    'ApiClient', 'ApiClientError',
]


class ChiralClient:
    """All repositories wired to one session and one cache.

    Usage::

        client = ChiralClient('http://localhost:5000/api')
        client.auth.login('a@x.com', 'password123')
        client.highlights.list(search='closure')
    """

    def __init__(self, base_url, store=None, http=None, cache_ttl=None):
        self.session = AuthSession(store)
        self.api = ApiClient(base_url, self.session, http=http)
        self.cache = TTLCache() if cache_ttl is None else TTLCache(ttl=cache_ttl)
        self.auth = AuthRepository(self.api, self.cache)
        self.articles = ArticlesRepository(self.api, self.cache)
        self.highlights = HighlightsRepository(self.api, self.cache)
        self.notes = NotesRepository(self.api, self.cache)
        self.gemini = GeminiRepository(self.api, self.cache)
        # Per-user data must not outlive a logout
        self.session.on_change(self._on_session_change)

    def _on_session_change(self, session):
        if not session.is_authenticated:
            self.cache.invalidate()
            for repo in (self.articles, self.highlights, self.notes, self.gemini):
                repo.items = []
                repo.current = None
