import uuid
from datetime import datetime, timezone
from urllib.parse import urlparse

from sqlalchemy.orm import validates

from chiral.extensions import db
from chiral.errors import ModelValidationError


class Article(db.Model):
    """A dev.to article saved to a user's reading list."""

    __tablename__ = 'articles'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    title = db.Column(db.String(500), nullable=False)
    url = db.Column(db.String(2000), nullable=False)
    content = db.Column(db.Text, nullable=True)
    author = db.Column(db.String(200), nullable=True)
    published_at = db.Column(db.DateTime, nullable=True)
    tags = db.Column(db.Text, nullable=True)  # comma separated
    dev_to_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint('user_id', 'dev_to_id', name='uq_user_devto_article'),
        db.Index('ix_articles_user_created', 'user_id', created_at.desc()),
    )

    @validates('title')
    def _validate_title(self, key, title):
        if not title or not title.strip():
            raise ModelValidationError('Title is required')
        return title.strip()

    @validates('url')
    def _validate_url(self, key, url):
        if not url:
            raise ModelValidationError('URL is required')
        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ModelValidationError('Must be a valid URL')
        return url
