"""
Logging for the Newsroom backend.

Every record goes to the ``newsroom.<source>`` logger with the request's
IP, user agent and path attached (as ``extra`` and in the message text),
so routes, services and transports all log the same way:

    LoggingService.warning('uploads', 'FTP login failed', {'host': host})
"""

import json
import logging
import traceback

from flask import has_request_context, request

_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL,
}


def _client_ip():
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr


def request_context():
    """IP, user agent and path of the current request ({} outside a request)"""
    if not has_request_context():
        return {}
    return {
        'ip_address': _client_ip(),
        'user_agent': request.headers.get('User-Agent', ''),
        'request_path': request.path,
    }


class LoggingService:
    """Structured logging helpers, one logger per source component"""

    @staticmethod
    def log(level, source, message, details=None, user_id=None):
        """
        Emit one record on ``newsroom.<source>``.

        Args:
            level (str): DEBUG, INFO, WARNING, ERROR or CRITICAL
            source (str): component name (news, uploads, images, auth, ...)
            message (str): human readable summary, in English
            details (dict/str): extra context; dicts are JSON-encoded
            user_id (int): acting user, when known
        """
        context = request_context()
        if isinstance(details, dict):
            details = json.dumps(details, default=str, sort_keys=True)

        parts = [f"[{source}] {message}"]
        if details:
            parts.append(details)
        if context:
            parts.append(f"path={context['request_path']} ip={context['ip_address']}")

        logging.getLogger(f"newsroom.{source}").log(
            _LEVELS.get(level.upper(), logging.INFO),
            ' | '.join(parts),
            extra=dict(context, source=source, details=details, user_id=user_id),
        )

    @staticmethod
    def info(source, message, details=None, user_id=None):
        LoggingService.log('INFO', source, message, details, user_id)

    @staticmethod
    def warning(source, message, details=None, user_id=None):
        LoggingService.log('WARNING', source, message, details, user_id)

    @staticmethod
    def error(source, message, details=None, user_id=None):
        LoggingService.log('ERROR', source, message, details, user_id)

    @staticmethod
    def log_user_action(source, action, user_id=None, details=None):
        """Things a user did: login, register, create, upload-and-save..."""
        LoggingService.info(source, f"User action: {action}", details, user_id)

    @staticmethod
    def log_api_call(source, endpoint, method='GET', status_code=200, details=None):
        """Outbound call to a third-party API; level follows the status code"""
        if status_code >= 500:
            level = 'ERROR'
        elif status_code >= 400:
            level = 'WARNING'
        else:
            level = 'INFO'
        LoggingService.log(level, source, f"{method} {endpoint} -> {status_code}", details)

    @staticmethod
    def log_exception(source, error, details=None):
        """ERROR record carrying the active traceback"""
        payload = dict(details or {})
        payload.update({
            'error_type': type(error).__name__,
            'error': str(error),
            'traceback': traceback.format_exc(),
        })
        LoggingService.error(source, f"Unhandled {type(error).__name__}", payload)

    @staticmethod
    def log_security_event(message, details=None):
        LoggingService.warning('security', message, details)
