import re
import uuid
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.orm import validates

from chiral.extensions import db
from chiral.errors import ModelValidationError
from chiral.services.passwords import hash_password, verify_password

_EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(100), nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    google_id = db.Column(db.String(100), unique=True, nullable=True)
    learning_interests = db.Column(db.JSON, nullable=False, default=list)
    profile_picture = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    highlights = db.relationship('Highlight', backref='user', cascade='all, delete-orphan', passive_deletes=True)
    notes = db.relationship('Note', backref='user', cascade='all, delete-orphan', passive_deletes=True)
    articles = db.relationship('Article', backref='user', cascade='all, delete-orphan', passive_deletes=True)

    @validates('email')
    def _validate_email(self, key, email):
        if not email or not _EMAIL_RE.match(email):
            raise ModelValidationError('Invalid email format')
        return email.strip().lower()

    @validates('password')
    def _hash_password(self, key, password):
        """Every assignment stores a bcrypt hash, never the plain text."""
        if not password:
            raise ModelValidationError('Password is required')
        return hash_password(password, rounds=current_app.config.get('BCRYPT_ROUNDS', 12))

    def check_password(self, plain):
        return verify_password(plain, self.password)
