"""Gemini client for explanations, learning paths, quizzes and summaries.

Each call is a single POST to the ``generateContent`` REST endpoint. There
are no retries; failures are classified into ``ExplanationError`` so callers
can tell a retryable outage from a broken configuration.
"""

import json
import logging
import re

import requests
from flask import current_app

from chiral.errors import ExplanationError, ExplanationFailure

logger = logging.getLogger(__name__)

_CONFIG_ERROR_RE = re.compile(
    r'api[ _-]?key|API_KEY_INVALID|PERMISSION_DENIED|UNAUTHENTICATED', re.IGNORECASE
)
_JSON_FENCE_RE = re.compile(r'^```(?:json)?\s*|\s*```$')

_SUMMARY_LENGTHS = {
    'short': 'one short paragraph',
    'medium': 'one to two paragraphs',
    'long': 'two to three paragraphs',
}


def build_explanation_prompt(text, context=None):
    lines = [f'Explain the word or phrase "{text}" as simply and briefly as possible.']
    if context:
        lines.append(f'Context: "{context}"')
    lines.extend([
        '',
        'Rules:',
        '- At most one or two short paragraphs',
        '- Use a simple, relatable analogy',
        '- Focus only on the core meaning',
        '- Plain language a middle-school student understands',
        '- Get to the point',
        '- Give one concrete, familiar example',
        '',
        'Answer in the form: short definition + simple analogy + concrete example',
    ])
    return '\n'.join(lines)


def _classify(error, failure_message):
    """Map a low-level error onto an ExplanationError."""
    status = None
    detail = str(error)
    if isinstance(error, requests.HTTPError) and error.response is not None:
        status = error.response.status_code
        detail = f'{detail} {error.response.text[:500]}'

    if status == 429:
        return ExplanationError(
            ExplanationFailure.RATE_LIMITED, 'AI service rate limit exceeded', detail
        )
    if status == 503:
        return ExplanationError(
            ExplanationFailure.UNAVAILABLE, 'AI service is temporarily unavailable', detail
        )
    if _CONFIG_ERROR_RE.search(detail):
        return ExplanationError(
            ExplanationFailure.CONFIGURATION, 'AI service configuration error', detail
        )
    return ExplanationError(ExplanationFailure.FAILED, failure_message, detail)


def _generate(prompt, failure_message):
    config = current_app.config
    api_key = config.get('GEMINI_API_KEY')
    if not api_key:
        raise ExplanationError(
            ExplanationFailure.CONFIGURATION,
            'AI service configuration error',
            'GEMINI_API_KEY is not set',
        )

    url = f"{config['GEMINI_API_URL']}/models/{config['GEMINI_MODEL']}:generateContent"
    try:
        resp = requests.post(
            url,
            json={'contents': [{'parts': [{'text': prompt}]}]},
            headers={'x-goog-api-key': api_key},
            timeout=config['GEMINI_REQUEST_TIMEOUT'],
        )
        resp.raise_for_status()
        data = resp.json()
        parts = data['candidates'][0]['content']['parts']
        text = ''.join(part.get('text', '') for part in parts).strip()
    except (requests.RequestException, ValueError, KeyError, IndexError, TypeError) as e:
        error = _classify(e, failure_message)
        logger.warning('Gemini API error (%s): %s', error.failure.value, error.detail)
        raise error from e

    if not text:
        raise ExplanationError(ExplanationFailure.FAILED, failure_message, 'empty response')
    return text


def _parse_json_answer(text):
    """Gemini often wraps JSON in a markdown fence."""
    try:
        return json.loads(_JSON_FENCE_RE.sub('', text.strip()))
    except ValueError:
        return None


def explain_text(text, context=None):
    """Return a short plain-language explanation of ``text``."""
    return _generate(
        build_explanation_prompt(text, context), 'Failed to generate explanation'
    )


def generate_learning_path(topic, level='beginner'):
    prompt = '\n'.join([
        f'Create a study plan for the topic "{topic}" at {level} level.',
        '',
        'Rules:',
        '- At most 4 learning steps',
        '- Every step is short and actionable',
        '- Realistic time estimates',
        '- Easily accessible learning resources',
        '',
        'Respond with JSON only:',
        '{"learningPath": [{"step": 1, "title": "...", "description": "...", '
        '"resources": ["..."]}], "keyTopics": ["..."], "estimatedTime": "...", '
        '"prerequisites": ["..."]}',
    ])
    text = _generate(prompt, 'Failed to generate learning suggestions')
    parsed = _parse_json_answer(text)
    if parsed is None:
        return {'topic': topic, 'suggestions': text, 'format': 'text'}
    return parsed


def generate_quiz(content, difficulty='easy'):
    prompt = '\n'.join([
        f'Write 3 multiple-choice questions about this content at {difficulty} difficulty.',
        '',
        f'Content: "{content[:800]}..."',
        '',
        'Rules:',
        '- Exactly 3 questions',
        '- Short, clear questions',
        '- Answer explanations of at most one sentence',
        '- Focus on the key points of the content',
        '',
        'Respond with JSON only:',
        '{"questions": [{"question": "...?", "options": ["A. ...", "B. ...", '
        '"C. ...", "D. ..."], "correctAnswer": "A", "explanation": "..."}]}',
    ])
    text = _generate(prompt, 'Failed to generate quiz')
    parsed = _parse_json_answer(text)
    if parsed is None:
        return {'content': content[:100] + '...', 'quiz': text, 'format': 'text'}
    return parsed


def summarize_content(content, length='medium'):
    prompt = '\n'.join([
        f'Summarize this article in {_SUMMARY_LENGTHS.get(length, _SUMMARY_LENGTHS["medium"])}.',
        '',
        f'Article: "{content}"',
        '',
        'Rules:',
        '- Main points only',
        '- Simple, clear language',
        '- Include one or two key insights',
    ])
    summary = _generate(prompt, 'Failed to generate summary')
    return {
        'originalLength': len(content),
        'summary': summary,
        'summaryLength': len(summary),
        'compressionRatio': round((1 - len(summary) / len(content)) * 100),
    }
