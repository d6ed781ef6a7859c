"""Error taxonomy and the central JSON error handler.

Views raise ``ApiError`` subclasses instead of building error responses
themselves. ``register_error_handlers`` turns every exception that escapes a
view into ``{"message": ...}`` with the status from ``STATUS_CODES``.
"""

import enum
import re

import jwt
from flask import jsonify, current_app
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db


class ErrorKind(enum.Enum):
    BAD_REQUEST = 'Bad Request'
    UNAUTHORIZED = 'Unauthorized'
    FORBIDDEN = 'Forbidden'
    NOT_FOUND = 'Not Found'
    PAYLOAD_TOO_LARGE = 'Payload Too Large'
    BAD_GATEWAY = 'Bad Gateway'
    SERVICE_UNAVAILABLE = 'Service Unavailable'
    INTERNAL = 'Internal Server Error'


STATUS_CODES = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.BAD_GATEWAY: 502,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
    ErrorKind.INTERNAL: 500,
}


class ApiError(Exception):
    kind = ErrorKind.INTERNAL

    def __init__(self, message, kind=None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    @property
    def status_code(self):
        return STATUS_CODES[self.kind]


class BadRequest(ApiError):
    kind = ErrorKind.BAD_REQUEST


class Unauthorized(ApiError):
    kind = ErrorKind.UNAUTHORIZED


class Forbidden(ApiError):
    kind = ErrorKind.FORBIDDEN


class NotFound(ApiError):
    kind = ErrorKind.NOT_FOUND


class UpstreamError(ApiError):
    kind = ErrorKind.BAD_GATEWAY


class ModelValidationError(BadRequest):
    """Raised by model-level validators; the message names the first violated rule."""


class ExplanationFailure(enum.Enum):
    RATE_LIMITED = 'rate_limited'
    UNAVAILABLE = 'unavailable'
    CONFIGURATION = 'configuration'
    FAILED = 'failed'


_RETRYABLE = {ExplanationFailure.RATE_LIMITED, ExplanationFailure.UNAVAILABLE}


class ExplanationError(ApiError):
    """A classified failure of the generative AI service."""

    def __init__(self, failure, message, detail=None):
        kind = ErrorKind.SERVICE_UNAVAILABLE if failure in _RETRYABLE else ErrorKind.INTERNAL
        super().__init__(message, kind=kind)
        self.failure = failure
        self.detail = detail

    @property
    def retryable(self):
        return self.failure in _RETRYABLE


_UNIQUE_COLUMN_RE = re.compile(
    r'(?:UNIQUE constraint failed: \w+\.(\w+)|Key \((\w+)\)=)'
)


def _unique_violation_message(error):
    match = _UNIQUE_COLUMN_RE.search(str(error.orig))
    if match:
        column = match.group(1) or match.group(2)
        return f'{column} must be unique'
    return 'Duplicate value violates a unique constraint'


def _error_response(message, status):
    return jsonify({'message': message}), status


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            app.logger.error('%s: %s', error.kind.value, error.message)
        return _error_response(error.message, error.status_code)

    @app.errorhandler(jwt.ExpiredSignatureError)
    def handle_expired_token(error):
        return _error_response('Token expired', 401)

    @app.errorhandler(jwt.InvalidTokenError)
    def handle_invalid_token(error):
        return _error_response('Invalid token', 401)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        return _error_response(_unique_violation_message(error), 400)

    @app.errorhandler(OperationalError)
    def handle_connection_error(error):
        db.session.rollback()
        app.logger.error('Database connection failed: %s', error)
        return _error_response('Database connection failed', 503)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        app.logger.exception('Database error')
        return _error_response('Database error occurred', 500)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        if error.code == 413:
            return _error_response('Request payload too large', 413)
        return _error_response(error.description or error.name, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        app.logger.exception('Unhandled error')
        message = 'Internal server error'
        if current_app.debug and str(error):
            message = str(error)
        return _error_response(message, 500)
