"""
Webs-Views Module
=================

Passthrough to the webs-views resource of the external auth API.

Provides:
- List, create, update and delete webs-views
- Show, create, update and delete webs-views details (with file uploads)
- external_token_required decorator (X-External-Token checked upstream)
"""

from flask import Blueprint

webs_views_bp = Blueprint('webs_views', __name__)

from . import routes
from .utils import external_token_required

__all__ = ['webs_views_bp', 'external_token_required']
