import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import validates

from chiral.extensions import db
from chiral.errors import ModelValidationError

MAX_HIGHLIGHT_LENGTH = 5000
MAX_EXPLANATION_LENGTH = 10000


class Highlight(db.Model):
    __tablename__ = 'highlights'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    article_id = db.Column(db.String(64), nullable=False)  # dev.to article id
    article_title = db.Column(db.String(500), nullable=True)
    article_url = db.Column(db.String(2000), nullable=True)
    highlighted_text = db.Column(db.Text, nullable=False)
    explanation = db.Column(db.Text, nullable=True)
    context = db.Column(db.Text, nullable=True)
    position = db.Column(db.JSON, nullable=True)  # {start, end, paragraph, ...}
    tags = db.Column(db.JSON, nullable=True)
    is_bookmarked = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.Index('ix_highlights_user', 'user_id'),
        db.Index('ix_highlights_user_article', 'user_id', 'article_id'),
        db.Index('ix_highlights_bookmarked', 'is_bookmarked'),
    )

    @validates('highlighted_text')
    def _validate_highlighted_text(self, key, text):
        if not text:
            raise ModelValidationError('Highlighted text is required')
        if len(text) > MAX_HIGHLIGHT_LENGTH:
            raise ModelValidationError(
                f'Highlighted text is too long (max {MAX_HIGHLIGHT_LENGTH} characters)'
            )
        return text
