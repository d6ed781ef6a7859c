"""bcrypt helpers for the ``users.password`` column."""

import secrets

import bcrypt


def hash_password(plain, rounds=12):
    if not plain:
        raise ValueError('password cannot be empty')
    salt = bcrypt.gensalt(rounds)
    return bcrypt.hashpw(plain.encode('utf-8'), salt).decode('utf-8')


def verify_password(plain, hashed):
    """False for a wrong password, a missing value or a malformed stored hash."""
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        return False


def placeholder_password():
    """Random secret for Google-only accounts; nobody knows its plain text."""
    return secrets.token_urlsafe(32)
