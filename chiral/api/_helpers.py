import math

from flask import request

from chiral.errors import BadRequest

MAX_PAGE_SIZE = 100


def json_body():
    """The request's JSON object, or BadRequest."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest('Request body is required')
    return data


def pagination_args(default_limit=20):
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', default_limit, type=int)
    page = max(page, 1)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    return page, limit


def paginate(query, page, limit):
    """Run ``query`` for one page. Returns (rows, total, total_pages)."""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, total, math.ceil(total / limit)


def optional_string(data, key, label):
    """Trimmed string value for ``key``, None when absent or blank."""
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise BadRequest(f'{label} must be a string')
    return value.strip() or None


def isoformat(value):
    return value.isoformat() if value else None
