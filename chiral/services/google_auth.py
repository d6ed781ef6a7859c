"""Verify Google Sign-In ID tokens against Google's published keys."""

import logging

import jwt
from jwt import PyJWKClient
from flask import current_app

from chiral.errors import BadRequest

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ('accounts.google.com', 'https://accounts.google.com')

# Module-level JWKS client, cached across requests
_jwks_client = None


def _get_jwks_client():
    global _jwks_client
    if _jwks_client is None:
        _jwks_client = PyJWKClient(current_app.config['GOOGLE_CERTS_URL'], cache_keys=True)
    return _jwks_client


def verify_id_token(token):
    """Return the Google identity carried by ``token``.

    Raises BadRequest('Invalid Google token') on any verification failure.
    """
    try:
        signing_key = _get_jwks_client().get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=['RS256'],
            audience=current_app.config['GOOGLE_CLIENT_ID'],
        )
    except jwt.PyJWTError as e:
        logger.info('Google token rejected: %s', e)
        raise BadRequest('Invalid Google token')

    if payload.get('iss') not in GOOGLE_ISSUERS or not payload.get('email'):
        raise BadRequest('Invalid Google token')

    return {
        'google_id': payload['sub'],
        'email': payload['email'],
        'name': payload.get('name'),
        'picture': payload.get('picture'),
        'email_verified': payload.get('email_verified', False),
    }
