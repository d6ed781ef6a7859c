import json

import pytest

from chiral import create_app
from chiral.extensions import db as _db
from chiral.config import TestConfig
from chiral.models.user import User
from chiral.services.tokens import sign_token


@pytest.fixture
def app():
    """Create a test Flask application with SQLite in-memory database."""
    application = create_app(TestConfig)

    with application.app_context():
        _db.create_all()

        yield application

        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


def _make_user(name, email, interests=None):
    user = User(
        name=name,
        email=email,
        password='password123',
        learning_interests=interests or [],
    )
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture
def user(app):
    return _make_user('Test User', 'test@example.com', ['python', 'javascript'])


@pytest.fixture
def other_user(app):
    return _make_user('Other User', 'other@example.com')


@pytest.fixture
def auth_headers(user):
    return {'Authorization': f'Bearer {sign_token(user.id)}'}


@pytest.fixture
def other_headers(other_user):
    return {'Authorization': f'Bearer {sign_token(other_user.id)}'}


@pytest.fixture
def post_json(client):
    """POST/PUT a JSON body: post_json(url, payload, headers, method='post')."""
    def _send(url, payload, headers=None, method='post'):
        return getattr(client, method)(
            url,
            data=json.dumps(payload),
            content_type='application/json',
            headers=headers or {},
        )
    return _send
