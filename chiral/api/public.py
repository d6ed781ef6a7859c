from datetime import datetime, timezone

from flask import Blueprint, jsonify, current_app
from chiral.extensions import db
from chiral.services import devto

bp = Blueprint('public', __name__)

VERSION = '1.0.0'


@bp.route('/', methods=['GET'])
@bp.route('/api/health', methods=['GET'])
def health():
    return jsonify({
        'message': 'Chiral server is running!',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'version': VERSION,
    })


@bp.route('/healthz', methods=['GET'])
def health_check():
    """Database liveness probe for container platforms."""
    try:
        db.session.execute(db.text('SELECT 1'))
        return jsonify(status='healthy'), 200
    except Exception:
        current_app.logger.exception('Health check failed')
        return jsonify(status='unhealthy'), 503


@bp.route('/api/tags', methods=['GET'])
def list_tags():
    tags = devto.list_tags()
    return jsonify({'tags': tags, 'total': len(tags)})
