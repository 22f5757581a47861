"""
Error Taxonomy
==============

Every failure the API reports on purpose is a NewsroomError subclass.
register_error_handlers() turns them into the JSON envelope
{success: false, message, errors?}.
"""

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError

from .database import db
from .logging_service import LoggingService

CONNECTION_ERROR_MESSAGE = 'Error de conexión'


class NewsroomError(Exception):
    """Base class for errors that map onto an HTTP status."""
    status_code = 500
    message = 'Error interno del servidor'

    def __init__(self, message=None, status_code=None, payload=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self):
        body = {'success': False, 'message': self.message}
        body.update(self.payload)
        return body


class ValidationError(NewsroomError):
    """Malformed or missing input. Carries a field -> [messages] dict."""
    status_code = 422
    message = 'Error de validación'

    def __init__(self, errors=None, message=None):
        if isinstance(errors, str):
            errors = {'file': [errors]}
        self.errors = errors or {}
        super().__init__(message)

    def to_dict(self):
        body = super().to_dict()
        body['errors'] = self.errors
        return body


class UnsupportedFormat(ValidationError):
    """Base64 payload whose content type could not be mapped to an extension."""


class NotFoundError(NewsroomError):
    status_code = 404
    message = 'Recurso no encontrado'


class AuthError(NewsroomError):
    status_code = 401
    message = 'No autenticado'


class NotDeletedError(NewsroomError):
    status_code = 400
    message = 'La noticia no está eliminada'


class ConflictError(NewsroomError):
    status_code = 409
    message = 'Conflicto con el estado actual del recurso'


class ConfigurationError(NewsroomError):
    """Missing or invalid configuration. Raised before any I/O is attempted."""
    status_code = 500
    message = 'Error de configuración del servidor'


class TransportError(NewsroomError):
    """A remote service failed. The detail is logged, never returned."""
    status_code = 500
    message = CONNECTION_ERROR_MESSAGE


class UploadError(TransportError):
    """The selected upload transport could not store the file."""


class AuthServiceUnavailable(TransportError):
    """An external token could not be checked because the auth API is down."""
    status_code = 503
    message = 'Error de conexión con el servidor de autenticación'


class ExternalApiError(NewsroomError):
    """The external API answered a forwarded request with a non-2xx status."""
    status_code = 500
    message = 'Error en la API externa'


class RateLimitError(NewsroomError):
    status_code = 429
    message = 'Demasiadas solicitudes, intenta de nuevo más tarde'


def register_error_handlers(app):
    """Attach JSON handlers for the taxonomy above to a Flask app."""

    @app.errorhandler(NewsroomError)
    def handle_newsroom_error(error):
        if isinstance(error, (TransportError, ConfigurationError)):
            # Internal detail stays in the log
            LoggingService.error('errors', type(error).__name__, {'error': str(error)})
            body = {'success': False, 'message': type(error).message}
        else:
            body = error.to_dict()
        return jsonify(body), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        LoggingService.log_exception('errors', error)
        return jsonify({'success': False, 'message': 'Error de base de datos'}), 500

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'success': False, 'message': 'Recurso no encontrado'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({'success': False, 'message': 'Método no permitido'}), 405
