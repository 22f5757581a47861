from functools import wraps

from flask import current_app, g, request

from ...core.errors import AuthError
from ...core.logging_service import LoggingService

EXTERNAL_TOKEN_HEADER = 'X-External-Token'


def external_token_required(f):
    """Decorator to require an X-External-Token the external API accepts"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = (request.headers.get(EXTERNAL_TOKEN_HEADER) or '').strip()
        if not token:
            raise AuthError('Token externo requerido')

        # AuthServiceUnavailable (503) propagates when the API is down
        if not current_app.extensions['newsroom'].auth_api.validate_token(token):
            LoggingService.info('webs_views', 'Invalid external token')
            raise AuthError('Token inválido o expirado')

        g.external_token = token
        return f(*args, **kwargs)
    return decorated_function


def external_token():
    return g.get('external_token')
