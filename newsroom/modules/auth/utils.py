import re
from functools import wraps

from flask import g, request, session

from ...core.database import db
from ...core.errors import AuthError
from .models import AccessToken, User

# Email validation regex: rejects consecutive dots, leading/trailing dots
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9_%+-]+(\.[a-zA-Z0-9_%+-]+)*@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$')

MIN_PASSWORD_LENGTH = 6


def is_valid_email(email):
    return bool(email) and len(email) <= 255 and bool(EMAIL_REGEX.match(email))


def bearer_token():
    """Token from an ``Authorization: Bearer`` header, if any"""
    header = request.headers.get('Authorization', '')
    if header[:7].lower() == 'bearer ':
        return header[7:].strip() or None
    return None


def login_required(f):
    """Decorator to require a bearer token or a logged-in session"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = None
        g.access_token = None

        token = bearer_token()
        if token:
            access = AccessToken.find_valid(token)
            if access is not None:
                g.access_token = access
                user = access.user
        elif 'user_id' in session:
            user = db.session.get(User, session['user_id'])

        if user is None:
            raise AuthError('No autenticado')

        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function


def current_user():
    return g.get('current_user')
