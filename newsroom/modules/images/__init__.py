"""
Images Module
=============

Public image routes, mounted at the app root:
- /images/<slug>   - proxy the image of an active news article
- /storage/<path>  - raw files from the local storage root
"""

from flask import Blueprint

images_bp = Blueprint('images', __name__)

from . import routes
from .proxy import ImageResolver

__all__ = ['images_bp', 'ImageResolver']
