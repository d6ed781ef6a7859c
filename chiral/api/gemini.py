from flask import Blueprint, jsonify
from chiral.errors import BadRequest
from chiral.middleware.auth import require_auth
from chiral.services import gemini
from chiral.api._helpers import json_body

bp = Blueprint('gemini', __name__, url_prefix='/api/gemini')

MAX_TEXT_LENGTH = 5000
MAX_CONTEXT_LENGTH = 10000
MAX_CONTENT_LENGTH = 50000


def _required_text(data, key, label, max_length):
    value = data.get(key)
    if not value or not isinstance(value, str):
        raise BadRequest(f'{label} is required')
    if len(value) > max_length:
        raise BadRequest(f'{label} is too long (max {max_length} characters)')
    value = value.strip()
    if not value:
        raise BadRequest(f'{label} cannot be empty')
    return value


@bp.route('/explain', methods=['POST'])
@require_auth
def explain_text():
    """Explain a text fragment without storing anything.

    Accepts: { highlightedText, context? }
    Returns: { highlightedText, explanation, context }
    """
    data = json_body()
    text = _required_text(data, 'highlightedText', 'Highlighted text', MAX_TEXT_LENGTH)

    context = data.get('context')
    if context is not None and not isinstance(context, str):
        raise BadRequest('Context must be a string')
    if context and len(context) > MAX_CONTEXT_LENGTH:
        raise BadRequest(f'Context is too long (max {MAX_CONTEXT_LENGTH} characters)')
    context = context.strip() if context else None

    return jsonify({
        'highlightedText': text,
        'explanation': gemini.explain_text(text, context or None),
        'context': context or None,
    })


@bp.route('/suggestions', methods=['POST'])
@require_auth
def learning_path():
    data = json_body()
    topic = _required_text(data, 'topic', 'Topic', 200)
    level = data.get('currentLevel') or 'beginner'
    return jsonify(gemini.generate_learning_path(topic, level))


@bp.route('/quiz', methods=['POST'])
@require_auth
def quiz():
    data = json_body()
    content = _required_text(data, 'content', 'Content', MAX_CONTENT_LENGTH)
    difficulty = data.get('difficulty') or 'easy'
    if difficulty not in ('easy', 'medium', 'hard'):
        raise BadRequest('Difficulty must be easy, medium or hard')
    return jsonify(gemini.generate_quiz(content, difficulty))


@bp.route('/summarize', methods=['POST'])
@require_auth
def summarize():
    data = json_body()
    content = _required_text(data, 'content', 'Content', MAX_CONTENT_LENGTH)
    return jsonify(gemini.summarize_content(content, data.get('length') or 'medium'))
