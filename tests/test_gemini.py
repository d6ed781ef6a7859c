from unittest.mock import patch, MagicMock

import pytest
import requests

from chiral.errors import ExplanationError, ExplanationFailure
from chiral.services import gemini


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _gemini_response(text):
    resp = MagicMock()
    resp.status_code = 200
    resp.raise_for_status.return_value = None
    resp.json.return_value = {
        'candidates': [{'content': {'parts': [{'text': text}]}}],
    }
    return resp


def _http_error(status, body=''):
    resp = MagicMock()
    resp.status_code = status
    resp.text = body
    resp.raise_for_status.side_effect = requests.HTTPError(
        f'{status} Error', response=resp
    )
    return resp


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class TestExplainText:

    @patch('chiral.services.gemini.requests.post')
    def test_returns_model_text(self, mock_post, app):
        mock_post.return_value = _gemini_response('  A closure keeps variables alive.  ')
        assert gemini.explain_text('closure') == 'A closure keeps variables alive.'

        url = mock_post.call_args.args[0]
        assert url.endswith('/models/gemini-2.5-flash:generateContent')
        kwargs = mock_post.call_args.kwargs
        assert kwargs['headers']['x-goog-api-key'] == 'test-gemini-key'
        prompt = kwargs['json']['contents'][0]['parts'][0]['text']
        assert '"closure"' in prompt
        assert 'Context:' not in prompt

    def test_prompt_includes_context(self):
        prompt = gemini.build_explanation_prompt('closure', 'in JavaScript')
        assert 'Context: "in JavaScript"' in prompt

    @pytest.mark.parametrize('status, body, failure, retryable', [
        (429, 'Resource exhausted', ExplanationFailure.RATE_LIMITED, True),
        (503, 'overloaded', ExplanationFailure.UNAVAILABLE, True),
        (400, 'API key not valid. Please pass a valid API key.', ExplanationFailure.CONFIGURATION, False),
        (500, 'internal', ExplanationFailure.FAILED, False),
    ])
    @patch('chiral.services.gemini.requests.post')
    def test_classifies_http_failures(self, mock_post, app, status, body, failure, retryable):
        mock_post.return_value = _http_error(status, body)
        with pytest.raises(ExplanationError) as exc_info:
            gemini.explain_text('closure')
        assert exc_info.value.failure is failure
        assert exc_info.value.retryable is retryable
        assert mock_post.call_count == 1

    @patch('chiral.services.gemini.requests.post')
    def test_connection_error_is_generic_failure(self, mock_post, app):
        mock_post.side_effect = requests.ConnectionError('connection refused')
        with pytest.raises(ExplanationError) as exc_info:
            gemini.explain_text('closure')
        assert exc_info.value.failure is ExplanationFailure.FAILED
        assert exc_info.value.message == 'Failed to generate explanation'

    @patch('chiral.services.gemini.requests.post')
    def test_missing_key_is_configuration_error(self, mock_post, app):
        app.config['GEMINI_API_KEY'] = ''
        with pytest.raises(ExplanationError) as exc_info:
            gemini.explain_text('closure')
        assert exc_info.value.failure is ExplanationFailure.CONFIGURATION
        mock_post.assert_not_called()

    @patch('chiral.services.gemini.requests.post')
    def test_malformed_response_is_failure(self, mock_post, app):
        resp = _gemini_response('x')
        resp.json.return_value = {'promptFeedback': {'blockReason': 'SAFETY'}}
        mock_post.return_value = resp
        with pytest.raises(ExplanationError):
            gemini.explain_text('closure')


class TestStructuredAnswers:

    @patch('chiral.services.gemini.requests.post')
    def test_quiz_parses_fenced_json(self, mock_post, app):
        mock_post.return_value = _gemini_response(
            '```json\n{"questions": [{"question": "Q?", "correctAnswer": "A"}]}\n```'
        )
        quiz = gemini.generate_quiz('Some content about closures')
        assert quiz['questions'][0]['correctAnswer'] == 'A'

    @patch('chiral.services.gemini.requests.post')
    def test_learning_path_falls_back_to_text(self, mock_post, app):
        mock_post.return_value = _gemini_response('Step 1: read the docs')
        result = gemini.generate_learning_path('rust')
        assert result == {'topic': 'rust', 'suggestions': 'Step 1: read the docs', 'format': 'text'}

    @patch('chiral.services.gemini.requests.post')
    def test_summary_reports_compression(self, mock_post, app):
        mock_post.return_value = _gemini_response('short')
        result = gemini.summarize_content('x' * 100)
        assert result['summaryLength'] == 5
        assert result['compressionRatio'] == 95


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

class TestExplainEndpoint:
    """POST /api/gemini/explain"""

    @patch('chiral.services.gemini.explain_text', return_value='Simple words')
    def test_explain(self, mock_explain, auth_headers, post_json):
        resp = post_json(
            '/api/gemini/explain',
            {'highlightedText': ' closure ', 'context': ' js '},
            auth_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json() == {
            'highlightedText': 'closure',
            'explanation': 'Simple words',
            'context': 'js',
        }
        mock_explain.assert_called_once_with('closure', 'js')

    def test_oversize_text_returns_400(self, auth_headers, post_json):
        resp = post_json('/api/gemini/explain', {'highlightedText': 'a' * 5001}, auth_headers)
        assert resp.status_code == 400

    def test_oversize_context_returns_400(self, auth_headers, post_json):
        resp = post_json(
            '/api/gemini/explain',
            {'highlightedText': 'a', 'context': 'c' * 10001},
            auth_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'Context is too long (max 10000 characters)'

    def test_blank_text_returns_400(self, auth_headers, post_json):
        resp = post_json('/api/gemini/explain', {'highlightedText': '   '}, auth_headers)
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'Highlighted text cannot be empty'

    @patch('chiral.services.gemini.explain_text')
    def test_generic_failure_returns_500(self, mock_explain, auth_headers, post_json):
        mock_explain.side_effect = ExplanationError(
            ExplanationFailure.FAILED, 'Failed to generate explanation'
        )
        resp = post_json('/api/gemini/explain', {'highlightedText': 'a'}, auth_headers)
        assert resp.status_code == 500
        assert resp.get_json()['message'] == 'Failed to generate explanation'

    @patch('chiral.services.gemini.explain_text')
    def test_rate_limit_returns_503(self, mock_explain, auth_headers, post_json):
        mock_explain.side_effect = ExplanationError(
            ExplanationFailure.RATE_LIMITED, 'AI service rate limit exceeded'
        )
        resp = post_json('/api/gemini/explain', {'highlightedText': 'a'}, auth_headers)
        assert resp.status_code == 503

    def test_requires_auth(self, app, post_json):
        resp = post_json('/api/gemini/explain', {'highlightedText': 'a'})
        assert resp.status_code == 401


class TestStudyEndpoints:

    @patch('chiral.services.gemini.generate_quiz', return_value={'questions': []})
    def test_quiz(self, mock_quiz, auth_headers, post_json):
        resp = post_json('/api/gemini/quiz', {'content': 'text', 'difficulty': 'hard'}, auth_headers)
        assert resp.status_code == 200
        mock_quiz.assert_called_once_with('text', 'hard')

    def test_quiz_rejects_unknown_difficulty(self, auth_headers, post_json):
        resp = post_json('/api/gemini/quiz', {'content': 'text', 'difficulty': 'insane'}, auth_headers)
        assert resp.status_code == 400

    @patch('chiral.services.gemini.summarize_content', return_value={'summary': 's'})
    def test_summarize(self, mock_summary, auth_headers, post_json):
        resp = post_json('/api/gemini/summarize', {'content': 'long text'}, auth_headers)
        assert resp.get_json() == {'summary': 's'}
        mock_summary.assert_called_once_with('long text', 'medium')

    def test_suggestions_require_topic(self, auth_headers, post_json):
        resp = post_json('/api/gemini/suggestions', {}, auth_headers)
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'Topic is required'
