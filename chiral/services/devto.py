"""Thin client for the public dev.to article API.

Nothing is cached or persisted here; every call is one GET.
"""

import logging

import requests
from bs4 import BeautifulSoup
from flask import current_app

from chiral.errors import NotFound, UpstreamError

logger = logging.getLogger(__name__)

MAX_PUBLIC_PAGE_SIZE = 20
MAX_SEARCH_PAGE_SIZE = 50
RECENT_DAYS = 7


def clamp_page_size(value, default, maximum):
    try:
        size = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(size, maximum))


def _get(path, params=None):
    config = current_app.config
    headers = {'Accept': 'application/vnd.forem.api-v1+json'}
    if config.get('DEV_TO_API_KEY'):
        headers['api-key'] = config['DEV_TO_API_KEY']
    resp = requests.get(
        f"{config['DEV_TO_API_URL']}{path}",
        params=params,
        headers=headers,
        timeout=config['DEV_TO_REQUEST_TIMEOUT'],
    )
    resp.raise_for_status()
    return resp.json()


def list_articles(tag='programming', per_page=10):
    params = {
        'tag': tag.lower(),
        'per_page': clamp_page_size(per_page, 10, MAX_PUBLIC_PAGE_SIZE),
        'top': RECENT_DAYS,
    }
    try:
        return _get('/articles', params)
    except requests.RequestException as e:
        logger.error('dev.to article listing failed: %s', e)
        raise UpstreamError('Failed to fetch articles')


def search_articles(q=None, tag=None, per_page=10):
    params = {'per_page': clamp_page_size(per_page, 10, MAX_SEARCH_PAGE_SIZE)}
    if q:
        params['q'] = q
    if tag:
        params['tag'] = tag
    try:
        return _get('/articles', params)
    except requests.RequestException as e:
        logger.error('dev.to article search failed: %s', e)
        raise UpstreamError('Failed to fetch articles')


def get_article(article_id):
    try:
        return _get(f'/articles/{article_id}')
    except requests.HTTPError as e:
        if e.response is not None and e.response.status_code == 404:
            raise NotFound('Article not found')
        logger.error('dev.to article %s failed: %s', article_id, e)
        raise UpstreamError('Failed to fetch article')
    except requests.RequestException as e:
        logger.error('dev.to article %s failed: %s', article_id, e)
        raise UpstreamError('Failed to fetch article')


def list_tags(per_page=50):
    try:
        return _get('/tags', {'per_page': per_page})
    except requests.RequestException as e:
        logger.error('dev.to tag listing failed: %s', e)
        raise UpstreamError('Failed to fetch tags')


def articles_for_interests(interests, limit=20):
    """Fan out one request per interest tag and merge the results.

    Tags are fetched one after another. A failing tag is logged and skipped.
    Results are deduplicated by article id and ordered newest first.
    """
    seen = set()
    merged = []
    for interest in interests:
        try:
            articles = _get('/articles', {
                'tag': interest.lower(),
                'per_page': 10,
                'top': RECENT_DAYS,
            })
        except requests.RequestException as e:
            logger.warning('Error fetching articles for %s: %s', interest, e)
            continue
        for article in articles:
            if article.get('id') in seen:
                continue
            seen.add(article.get('id'))
            merged.append(article)

    merged.sort(key=lambda a: a.get('published_at') or '', reverse=True)
    return merged[:limit], len(merged)


def reading_stats(html, wpm=225):
    """Word count and estimated reading time for an article body."""
    text = BeautifulSoup(html or '', 'html.parser').get_text(separator=' ')
    words = len(text.split())
    return {
        'wordCount': words,
        'readingTimeMinutes': max(1, round(words / wpm)),
    }
