import re

from flask import Blueprint, request, jsonify, g, Response
from sqlalchemy import or_
from chiral.extensions import db
from chiral.errors import BadRequest, NotFound
from chiral.models.note import Note, NoteType, VARIANT_FIELDS
from chiral.middleware.auth import require_auth
from chiral.api._helpers import json_body, pagination_args, paginate, isoformat

bp = Blueprint('notes', __name__, url_prefix='/api/notes')

_SLUG_RE = re.compile(r'[^a-z0-9]+')


def _note_to_dict(note):
    """Common fields plus the fields of the note's own variant only."""
    data = {
        'id': note.id,
        'userId': note.user_id,
        'noteType': note.note_type,
        'isFavorite': note.is_favorite,
        'createdAt': isoformat(note.created_at),
        'updatedAt': isoformat(note.updated_at),
    }
    for field in VARIANT_FIELDS[note.variant]:
        data[field.key] = getattr(note, field.attr)
    return data


def _parse_note_type(value):
    try:
        return NoteType(value or NoteType.HIGHLIGHT.value)
    except ValueError:
        raise BadRequest("Note type must be either 'traditional' or 'highlight'")


def _reject_foreign_fields(note_type, data):
    for other_type, fields in VARIANT_FIELDS.items():
        if other_type == note_type:
            continue
        for field in fields:
            if data.get(field.key) is not None:
                raise BadRequest(
                    f'{field.key} cannot be set on {note_type.value} notes'
                )


def _variant_values(note_type, data, partial=False):
    """Validate and trim the variant's fields from ``data``.

    With ``partial`` only keys present in ``data`` are returned, but a
    required field still cannot be blanked.
    """
    values = {}
    for field in VARIANT_FIELDS[note_type]:
        if partial and field.key not in data:
            continue
        raw = data.get(field.key)
        if raw is not None and not isinstance(raw, str):
            raise BadRequest(f'{field.label} must be a string')
        if raw and len(raw) > field.max_length:
            raise BadRequest(
                f'{field.label} is too long (max {field.max_length} characters)'
            )
        value = raw.strip() if raw else None
        if field.required and not value:
            raise BadRequest(f'{field.label} is required for {note_type.value} notes')
        values[field.attr] = value or None
    return values


def _favorite_flag(data):
    value = data.get('isFavorite', False)
    if not isinstance(value, bool):
        raise BadRequest('isFavorite must be a boolean')
    return value


def _get_owned_note(note_id):
    note = Note.query.filter_by(id=note_id, user_id=g.user_id).first()
    if not note:
        raise NotFound('Note not found')
    return note


def _note_markdown(note):
    lines = []
    if note.variant is NoteType.TRADITIONAL:
        lines += [f'# {note.title}', '', note.content, '']
    else:
        lines += ['# Highlight Note', '']
        lines += [f'> {line}' for line in note.highlighted_text.splitlines()]
        lines += ['', '## Explanation', '', note.explanation, '']
        if note.original_context:
            lines += ['## Original Context', '', note.original_context, '']
    lines += ['---', f'*Created: {isoformat(note.created_at)}*', '']
    return '\n'.join(lines)


def _markdown_filename(note):
    base = note.title if note.variant is NoteType.TRADITIONAL else note.highlighted_text
    slug = _SLUG_RE.sub('-', base.lower())[:50].strip('-') or 'note'
    return f'{slug}.md'


@bp.route('', methods=['POST'])
@require_auth
def create_note():
    """Create a traditional or highlight note (``noteType``, default highlight)."""
    data = json_body()
    note_type = _parse_note_type(data.get('noteType'))
    _reject_foreign_fields(note_type, data)

    note = Note(
        user_id=g.user_id,
        note_type=note_type.value,
        is_favorite=_favorite_flag(data),
        **_variant_values(note_type, data),
    )
    db.session.add(note)
    db.session.commit()

    return jsonify({
        'message': 'Note created successfully',
        'note': _note_to_dict(note),
    }), 201


@bp.route('', methods=['GET'])
@require_auth
def list_notes():
    """List notes, newest first.

    Query params:
        page, limit (default 20)
        search: case-insensitive match on any text field
        isFavorite: only the literal 'true' filters; anything else is ignored
        noteType: traditional | highlight
    """
    page, limit = pagination_args()
    search = request.args.get('search')
    note_type = request.args.get('noteType')

    query = Note.query.filter_by(user_id=g.user_id)

    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(
            Note.title.ilike(pattern),
            Note.content.ilike(pattern),
            Note.highlighted_text.ilike(pattern),
            Note.explanation.ilike(pattern),
            Note.original_context.ilike(pattern),
        ))
    if request.args.get('isFavorite') == 'true':
        query = query.filter_by(is_favorite=True)
    if note_type:
        query = query.filter_by(note_type=_parse_note_type(note_type).value)

    query = query.order_by(Note.created_at.desc())
    notes, total, total_pages = paginate(query, page, limit)

    return jsonify({
        'notes': [_note_to_dict(n) for n in notes],
        'total': total,
        'currentPage': page,
        'totalPages': total_pages,
    })


@bp.route('/<note_id>', methods=['GET'])
@require_auth
def get_note(note_id):
    return jsonify({'note': _note_to_dict(_get_owned_note(note_id))})


@bp.route('/<note_id>', methods=['PUT'])
@require_auth
def update_note(note_id):
    """Update fields of the note's own variant; the other variant's are rejected."""
    note = _get_owned_note(note_id)
    data = json_body()

    if 'noteType' in data and data['noteType'] != note.note_type:
        raise BadRequest('Note type cannot be changed')
    _reject_foreign_fields(note.variant, data)

    for attr, value in _variant_values(note.variant, data, partial=True).items():
        setattr(note, attr, value)
    if 'isFavorite' in data:
        note.is_favorite = _favorite_flag(data)

    db.session.commit()

    return jsonify({
        'message': 'Note updated successfully',
        'note': _note_to_dict(note),
    })


@bp.route('/<note_id>', methods=['DELETE'])
@require_auth
def delete_note(note_id):
    note = _get_owned_note(note_id)
    db.session.delete(note)
    db.session.commit()

    return jsonify({'message': 'Note deleted successfully'})


@bp.route('/<note_id>/markdown', methods=['GET'])
@require_auth
def export_note_markdown(note_id):
    note = _get_owned_note(note_id)
    return Response(
        _note_markdown(note),
        mimetype='text/markdown',
        headers={
            'Content-Disposition': f'attachment; filename="{_markdown_filename(note)}"',
        },
    )
