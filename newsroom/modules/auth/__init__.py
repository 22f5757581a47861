"""
Newsroom Auth Module

Provides API authentication:
- Login through the external auth API (local user mirror + access token)
- Local registration
- Current user, logout and logout from all devices
- login_required decorator for the other modules
"""

from flask import Blueprint

auth_bp = Blueprint('auth', __name__)

from . import routes
from .external import AuthApiService
from .models import AccessToken, User
from .utils import login_required, current_user

__all__ = ['auth_bp', 'AuthApiService', 'AccessToken', 'User', 'login_required', 'current_user']
