import jwt
from functools import wraps
from flask import request, g
from chiral.extensions import db
from chiral.errors import Unauthorized
from chiral.models.user import User
from chiral.services.tokens import verify_token


def _bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[7:].strip() or None
    return None


def _resolve_user(token):
    """Verify the token and load its user. Raises Unauthorized."""
    try:
        payload = verify_token(token)
    except jwt.ExpiredSignatureError:
        raise Unauthorized('Token expired')
    except jwt.InvalidTokenError:
        raise Unauthorized('Invalid token')

    user = db.session.get(User, payload['sub'])
    if not user:
        raise Unauthorized('Invalid token')
    return user


def require_auth(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise Unauthorized('Access token required')

        user = _resolve_user(token)
        g.user = user
        g.user_id = user.id

        return f(*args, **kwargs)
    return decorated


def optional_auth(f):
    """Like require_auth but doesn't fail if the token is missing or bad."""
    @wraps(f)
    def decorated(*args, **kwargs):
        g.user = None
        g.user_id = None

        token = _bearer_token()
        if token:
            try:
                user = _resolve_user(token)
                g.user = user
                g.user_id = user.id
            except Unauthorized:
                pass  # Proceed without auth

        return f(*args, **kwargs)
    return decorated
