"""Access token issue/verify (HS256, shared secret)."""

from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

ALGORITHM = 'HS256'


def sign_token(user_id, expires_in=None):
    now = datetime.now(timezone.utc)
    if expires_in is None:
        expires_in = timedelta(hours=current_app.config['JWT_EXPIRES_IN_HOURS'])
    payload = {
        'sub': str(user_id),
        'iat': now,
        'exp': now + expires_in,
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm=ALGORITHM)


def verify_token(token):
    """Decode a token issued by ``sign_token``.

    Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        current_app.config['JWT_SECRET'],
        algorithms=[ALGORITHM],
        options={'require': ['sub', 'exp']},
    )
