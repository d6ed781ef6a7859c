from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy import or_
from chiral.extensions import db
from chiral.errors import BadRequest, NotFound, ExplanationError
from chiral.models.highlight import Highlight, MAX_HIGHLIGHT_LENGTH, MAX_EXPLANATION_LENGTH
from chiral.middleware.auth import require_auth
from chiral.services import gemini
from chiral.api._helpers import (
    json_body, pagination_args, paginate, optional_string, isoformat,
)

bp = Blueprint('highlights', __name__, url_prefix='/api/highlights')


def _highlight_to_dict(highlight):
    return {
        'id': highlight.id,
        'userId': highlight.user_id,
        'articleId': highlight.article_id,
        'articleTitle': highlight.article_title,
        'articleUrl': highlight.article_url,
        'highlightedText': highlight.highlighted_text,
        'explanation': highlight.explanation,
        'context': highlight.context,
        'position': highlight.position,
        'tags': highlight.tags,
        'isBookmarked': highlight.is_bookmarked,
        'createdAt': isoformat(highlight.created_at),
        'updatedAt': isoformat(highlight.updated_at),
    }


def _validated_text(value):
    if not value or not isinstance(value, str):
        raise BadRequest('Highlighted text is required')
    if len(value) > MAX_HIGHLIGHT_LENGTH:
        raise BadRequest(
            f'Highlighted text is too long (max {MAX_HIGHLIGHT_LENGTH} characters)'
        )
    text = value.strip()
    if not text:
        raise BadRequest('Highlighted text is required')
    return text


def _validated_explanation(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise BadRequest('Explanation must be a string')
    if len(value) > MAX_EXPLANATION_LENGTH:
        raise BadRequest(
            f'Explanation is too long (max {MAX_EXPLANATION_LENGTH} characters)'
        )
    return value


def _validated_tags(value):
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        raise BadRequest('Tags must be a list of strings')
    return value


def _as_bool(value, label):
    if isinstance(value, bool):
        return value
    if value in ('true', 'false'):
        return value == 'true'
    raise BadRequest(f'{label} must be a boolean')


def _get_owned_highlight(highlight_id):
    """Another user's highlight is reported as missing, same as a bad id."""
    highlight = Highlight.query.filter_by(id=highlight_id, user_id=g.user_id).first()
    if not highlight:
        raise NotFound('Highlight not found')
    return highlight


@bp.route('', methods=['POST'])
@require_auth
def create_highlight():
    """Save a highlight, optionally asking Gemini to explain it first.

    An explanation failure never fails the create; the highlight is stored
    with ``explanation = null`` and can be explained later.
    """
    data = json_body()

    article_id = data.get('articleId')
    if article_id is None or str(article_id).strip() == '':
        raise BadRequest('Article ID is required')

    text = _validated_text(data.get('highlightedText'))
    context = optional_string(data, 'context', 'Context')
    article_title = optional_string(data, 'articleTitle', 'Article title')
    article_url = optional_string(data, 'articleUrl', 'Article URL')
    tags = _validated_tags(data.get('tags'))

    explanation = None
    if data.get('autoExplain', True):
        try:
            explanation = gemini.explain_text(text, context)
        except ExplanationError as e:
            current_app.logger.warning('Failed to generate explanation: %s', e.message)

    highlight = Highlight(
        user_id=g.user_id,
        article_id=str(article_id).strip(),
        article_title=article_title,
        article_url=article_url,
        highlighted_text=text,
        explanation=explanation,
        context=context,
        position=data.get('position'),
        tags=tags,
        is_bookmarked=False,
    )
    db.session.add(highlight)
    db.session.commit()

    return jsonify({
        'message': 'Highlight created successfully',
        'highlight': _highlight_to_dict(highlight),
    }), 201


@bp.route('', methods=['GET'])
@require_auth
def list_highlights():
    """List the user's highlights, newest first.

    Query params:
        page, limit (default 20)
        articleId: only highlights from this article
        isBookmarked: 'true' | 'false'
        search: case-insensitive match on text, explanation or article title
    """
    page, limit = pagination_args()
    article_id = request.args.get('articleId')
    is_bookmarked = request.args.get('isBookmarked')
    search = request.args.get('search')

    query = Highlight.query.filter_by(user_id=g.user_id)

    if article_id:
        query = query.filter_by(article_id=article_id)
    if is_bookmarked is not None:
        query = query.filter_by(is_bookmarked=is_bookmarked == 'true')
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(
            Highlight.highlighted_text.ilike(pattern),
            Highlight.explanation.ilike(pattern),
            Highlight.article_title.ilike(pattern),
        ))

    query = query.order_by(Highlight.created_at.desc())
    highlights, total, total_pages = paginate(query, page, limit)

    return jsonify({
        'highlights': [_highlight_to_dict(h) for h in highlights],
        'total': total,
        'currentPage': page,
        'totalPages': total_pages,
        'filters': {
            'articleId': article_id,
            'isBookmarked': is_bookmarked,
            'search': search,
        },
    })


@bp.route('/article/<article_id>', methods=['GET'])
@require_auth
def list_article_highlights(article_id):
    """All of the user's highlights for one article, in reading order."""
    highlights = (
        Highlight.query
        .filter_by(user_id=g.user_id, article_id=article_id)
        .order_by(Highlight.created_at.asc())
        .all()
    )
    return jsonify({
        'highlights': [_highlight_to_dict(h) for h in highlights],
        'articleId': article_id,
        'total': len(highlights),
    })


@bp.route('/<highlight_id>', methods=['GET'])
@require_auth
def get_highlight(highlight_id):
    highlight = _get_owned_highlight(highlight_id)
    return jsonify({'highlight': _highlight_to_dict(highlight)})


@bp.route('/<highlight_id>', methods=['PUT'])
@require_auth
def update_highlight(highlight_id):
    """Partial update; keys missing from the body are left untouched."""
    highlight = _get_owned_highlight(highlight_id)
    data = json_body()

    if 'highlightedText' in data:
        highlight.highlighted_text = _validated_text(data['highlightedText'])
    if 'explanation' in data:
        highlight.explanation = _validated_explanation(data['explanation'])
    if 'tags' in data:
        highlight.tags = _validated_tags(data['tags'])
    if 'isBookmarked' in data:
        highlight.is_bookmarked = _as_bool(data['isBookmarked'], 'isBookmarked')

    db.session.commit()

    return jsonify({
        'message': 'Highlight updated successfully',
        'highlight': _highlight_to_dict(highlight),
    })


@bp.route('/<highlight_id>', methods=['DELETE'])
@require_auth
def delete_highlight(highlight_id):
    highlight = _get_owned_highlight(highlight_id)
    db.session.delete(highlight)
    db.session.commit()

    return jsonify({'message': 'Highlight deleted successfully'})


@bp.route('/<highlight_id>/explain', methods=['POST'])
@require_auth
def explain_highlight(highlight_id):
    """Return the stored explanation, generating it when missing.

    ``?regenerate=true`` forces a new Gemini call. Gemini failures propagate
    to the error handler here, unlike on create.
    """
    highlight = _get_owned_highlight(highlight_id)
    regenerate = request.args.get('regenerate', 'false').lower() in ('true', '1')

    if highlight.explanation and not regenerate:
        return jsonify({
            'highlightedText': highlight.highlighted_text,
            'explanation': highlight.explanation,
            'context': highlight.context,
            'cached': True,
        })

    highlight.explanation = gemini.explain_text(highlight.highlighted_text, highlight.context)
    db.session.commit()

    return jsonify({
        'highlightedText': highlight.highlighted_text,
        'explanation': highlight.explanation,
        'context': highlight.context,
        'cached': False,
        'message': 'Explanation regenerated' if regenerate else 'Explanation generated',
    })
