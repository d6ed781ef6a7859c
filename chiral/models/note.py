import enum
import uuid
from collections import namedtuple
from datetime import datetime, timezone

from sqlalchemy import event

from chiral.extensions import db
from chiral.errors import ModelValidationError


class NoteType(str, enum.Enum):
    TRADITIONAL = 'traditional'
    HIGHLIGHT = 'highlight'


NoteField = namedtuple('NoteField', ['attr', 'key', 'label', 'max_length', 'required'])

# Payload shape of each note variant. ``key`` is the JSON name on the wire.
VARIANT_FIELDS = {
    NoteType.TRADITIONAL: (
        NoteField('title', 'title', 'Title', 200, True),
        NoteField('content', 'content', 'Content', 50000, True),
    ),
    NoteType.HIGHLIGHT: (
        NoteField('highlighted_text', 'highlightedText', 'Highlighted text', 5000, True),
        NoteField('explanation', 'explanation', 'Explanation', 10000, True),
        NoteField('original_context', 'originalContext', 'Original context', 10000, False),
    ),
}


class Note(db.Model):
    """A user note: either free text (traditional) or derived from a highlight."""

    __tablename__ = 'notes'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    note_type = db.Column(db.String(20), nullable=False, default=NoteType.HIGHLIGHT.value)
    title = db.Column(db.String(200), nullable=True)
    content = db.Column(db.Text, nullable=True)
    highlighted_text = db.Column(db.Text, nullable=True)
    explanation = db.Column(db.Text, nullable=True)
    original_context = db.Column(db.Text, nullable=True)
    is_favorite = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.CheckConstraint(
            "(note_type = 'traditional' AND title IS NOT NULL AND content IS NOT NULL) OR "
            "(note_type = 'highlight' AND highlighted_text IS NOT NULL AND explanation IS NOT NULL)",
            name='ck_note_variant',
        ),
        db.Index('ix_notes_user_created', 'user_id', created_at.desc()),
    )

    @property
    def variant(self):
        return NoteType(self.note_type)

    def variant_error(self):
        """Return the first rule this record's variant violates, or None."""
        try:
            fields = VARIANT_FIELDS[self.variant]
        except ValueError:
            return "Note type must be either 'traditional' or 'highlight'"
        for field in fields:
            value = getattr(self, field.attr)
            if field.required and not value:
                return f'{field.label} is required for {self.note_type} notes'
            if value and len(value) > field.max_length:
                return f'{field.label} is too long (max {field.max_length} characters)'
        return None


@event.listens_for(Note, 'before_insert')
@event.listens_for(Note, 'before_update')
def _check_variant(mapper, connection, note):
    error = note.variant_error()
    if error:
        raise ModelValidationError(error)
