"""HTTP transport for the Chiral REST API."""

import requests

DEFAULT_TIMEOUT = 30


class ApiClientError(Exception):
    """A failed API call; ``message`` is the server's ``{message}`` when present."""

    def __init__(self, status, message):
        super().__init__(message)
        self.status = status
        self.message = message


class ApiClient:

    def __init__(self, base_url, session, http=None, timeout=DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.session = session
        self.http = http or requests.Session()
        self.timeout = timeout

    def request(self, method, path, auth=True, default_message='Request failed',
                raw=False, **kwargs):
        headers = kwargs.pop('headers', {})
        if auth:
            if not self.session.token:
                raise ApiClientError(401, 'Authentication required')
            headers['Authorization'] = f'Bearer {self.session.token}'

        try:
            resp = self.http.request(
                method, f'{self.base_url}{path}',
                headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise ApiClientError(None, f'{default_message}: {e}')

        if resp.status_code == 401 and auth:
            # Expired or revoked token: drop it so callers see a logged-out state
            self.session.logout()

        if not resp.ok:
            try:
                message = resp.json().get('message') or default_message
            except ValueError:
                message = default_message
            raise ApiClientError(resp.status_code, message)

        return resp.text if raw else resp.json()

    def get(self, path, **kwargs):
        return self.request('GET', path, **kwargs)

    def post(self, path, **kwargs):
        return self.request('POST', path, **kwargs)

    def put(self, path, **kwargs):
        return self.request('PUT', path, **kwargs)

    def delete(self, path, **kwargs):
        return self.request('DELETE', path, **kwargs)
