"""
Slug generation for news articles.

Slugs are unique across every row, soft-deleted ones included. The check
here is only a fast path: the ``news_slug_unique`` constraint is what
actually guarantees uniqueness under concurrent inserts.
"""

import re
import time
import unicodedata

from .models import News

SLUG_SOURCE_LENGTH = 100
MAX_SUFFIX = 1000


def slugify(text):
    """Lowercase, ASCII-only, hyphen-separated. slugify(slugify(x)) == slugify(x)."""
    text = unicodedata.normalize('NFKD', text or '')
    text = text.encode('ascii', 'ignore').decode('ascii')
    text = re.sub(r'[^a-z0-9]+', '-', text.lower())
    return text.strip('-')


def base_slug(title):
    """Slug of the first 100 characters of title, or a timestamp fallback"""
    slug = slugify((title or '')[:SLUG_SOURCE_LENGTH])
    return slug or f"noticia-{int(time.time())}"


def slug_exists(slug):
    """Check every row, soft-deleted included"""
    return News.with_trashed().filter_by(slug=slug).first() is not None


def generate_unique_slug(title, exists=None):
    """Create URL-friendly slug with uniqueness checking"""
    if exists is None:
        exists = slug_exists
    base = base_slug(title)
    slug = base
    counter = 1

    while exists(slug):
        # -1 .. -MAX_SUFFIX are all taken
        if counter > MAX_SUFFIX:
            slug = f"{base}-{int(time.time())}-{counter}"
            break
        slug = f"{base}-{counter}"
        counter += 1

    return slug
