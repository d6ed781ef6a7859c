from datetime import datetime

from flask import Blueprint, request, jsonify, g, current_app
from chiral.extensions import db
from chiral.errors import BadRequest, NotFound
from chiral.models.article import Article
from chiral.middleware.auth import require_auth
from chiral.services import devto
from chiral.api._helpers import json_body, pagination_args, paginate, isoformat

bp = Blueprint('articles', __name__, url_prefix='/api/articles')


def _saved_article_to_dict(article):
    return {
        'id': article.id,
        'userId': article.user_id,
        'title': article.title,
        'url': article.url,
        'content': article.content,
        'author': article.author,
        'publishedAt': isoformat(article.published_at),
        'tags': article.tags,
        'devToId': article.dev_to_id,
        'createdAt': isoformat(article.created_at),
    }


def _parse_published_at(value):
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise BadRequest('publishedAt must be an ISO 8601 date')


@bp.route('', methods=['GET'])
def list_articles():
    """Public dev.to feed of the last week.

    Query params:
        tag: dev.to tag (default: programming), lower-cased
        per_page: 1..20 (default: 10)
    """
    articles = devto.list_articles(
        tag=request.args.get('tag') or 'programming',
        per_page=request.args.get('per_page', 10),
    )
    return jsonify({'articles': articles, 'total': len(articles)})


@bp.route('/recommendations', methods=['GET'])
@require_auth
def recommendations():
    """Recent articles across all of the user's learning interests."""
    interests = g.user.learning_interests or []
    if not interests:
        raise BadRequest('No learning interests set')

    limit = devto.clamp_page_size(request.args.get('per_page'), 20, devto.MAX_PUBLIC_PAGE_SIZE)
    articles, total = devto.articles_for_interests(interests, limit=limit)
    return jsonify({'articles': articles, 'total': total})


@bp.route('/search', methods=['GET'])
@require_auth
def search_articles():
    q = request.args.get('q')
    tag = request.args.get('tag')
    if not q and not tag:
        raise BadRequest('Query or tag parameter is required')

    articles = devto.search_articles(q=q, tag=tag, per_page=request.args.get('per_page', 10))
    return jsonify({'articles': articles, 'total': len(articles)})


@bp.route('/<int:article_id>', methods=['GET'])
@require_auth
def get_article(article_id):
    article = devto.get_article(article_id)
    article['readingStats'] = devto.reading_stats(
        article.get('body_html'), wpm=current_app.config['WORDS_PER_MINUTE']
    )
    return jsonify({'article': article})


@bp.route('/saved', methods=['POST'])
@require_auth
def save_article():
    """Save a dev.to article to the user's reading list (once per devToId)."""
    data = json_body()

    dev_to_id = data.get('devToId')
    if dev_to_id is not None:
        try:
            dev_to_id = int(dev_to_id)
        except (TypeError, ValueError):
            raise BadRequest('devToId must be an integer')
        existing = Article.query.filter_by(user_id=g.user_id, dev_to_id=dev_to_id).first()
        if existing:
            raise BadRequest('Article already saved')

    tags = data.get('tags')
    article = Article(
        user_id=g.user_id,
        title=data.get('title'),
        url=data.get('url'),
        content=data.get('content'),
        author=data.get('author'),
        published_at=_parse_published_at(data.get('publishedAt')),
        tags=','.join(tags) if isinstance(tags, list) else tags,
        dev_to_id=dev_to_id,
    )
    db.session.add(article)
    db.session.commit()

    return jsonify({
        'message': 'Article saved successfully',
        'article': _saved_article_to_dict(article),
    }), 201


@bp.route('/saved', methods=['GET'])
@require_auth
def list_saved_articles():
    page, limit = pagination_args(default_limit=10)
    query = Article.query.filter_by(user_id=g.user_id).order_by(Article.created_at.desc())
    articles, total, total_pages = paginate(query, page, limit)

    return jsonify({
        'articles': [_saved_article_to_dict(a) for a in articles],
        'total': total,
        'currentPage': page,
        'totalPages': total_pages,
    })


@bp.route('/saved/<saved_id>', methods=['DELETE'])
@require_auth
def delete_saved_article(saved_id):
    article = Article.query.filter_by(id=saved_id, user_id=g.user_id).first()
    if not article:
        raise NotFound('Article not found')

    db.session.delete(article)
    db.session.commit()

    return jsonify({'message': 'Article deleted successfully'})
