"""Client authentication state.

``AuthSession`` is the only place the access token lives on the client.
Logging in and out are explicit transitions; the token store decides
whether the state survives the process.
"""

import json
import os


class MemoryTokenStore:

    def __init__(self):
        self._data = {}

    def load(self):
        return dict(self._data)

    def save(self, data):
        self._data = dict(data)

    def clear(self):
        self._data = {}


class FileTokenStore:
    """Persist ``access_token`` and the cached user as a JSON file."""

    def __init__(self, path):
        self.path = path

    def load(self):
        try:
            with open(self.path, encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return {}
        except ValueError:
            # Corrupt file: behave as logged out
            return {}

    def save(self, data):
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f)

    def clear(self):
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class AuthSession:

    def __init__(self, store=None):
        self.store = store if store is not None else MemoryTokenStore()
        data = self.store.load()
        self._token = data.get('access_token')
        self._user = data.get('user')
        self._listeners = []

    @property
    def token(self):
        return self._token

    @property
    def user(self):
        return self._user

    @property
    def is_authenticated(self):
        return bool(self._token)

    def on_change(self, callback):
        """Call ``callback(session)`` after every login/logout/user update."""
        self._listeners.append(callback)

    def _changed(self):
        if self._token:
            self.store.save({'access_token': self._token, 'user': self._user})
        else:
            self.store.clear()
        for callback in self._listeners:
            callback(self)

    def login(self, token, user):
        if not token:
            raise ValueError('token is required')
        self._token = token
        self._user = user
        self._changed()

    def update_user(self, user):
        self._user = user
        self._changed()

    def logout(self):
        self._token = None
        self._user = None
        self._changed()
