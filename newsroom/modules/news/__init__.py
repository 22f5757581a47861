"""
News Module
===========

JSON API for news articles.

Provides:
- Paginated listing, top 10 visible, show
- Create, update, soft-delete, restore and permanent delete
- Image upload (multipart or base64), alone or together with a new article
"""

from flask import Blueprint

news_bp = Blueprint('news', __name__)

from . import routes
from .models import News

__all__ = ['news_bp', 'News']
