from flask import current_app, jsonify, send_from_directory
from werkzeug.exceptions import NotFound as WerkzeugNotFound

from . import images_bp
from .proxy import CACHE_CONTROL, ImageResolver, NotFound, to_response
from ..news.models import News


@images_bp.route('/images/<slug>', methods=['GET'])
def show(slug):
    """Serve the image of an active news article, or a placeholder"""
    news = News.active().filter_by(slug=slug).first()
    if news is None:
        return to_response(NotFound('Noticia no encontrada'))

    resolver = ImageResolver.from_config(current_app.config)
    return to_response(resolver.resolve(news.ruta))


@images_bp.route('/storage/<path:path>', methods=['GET'])
def storage(path):
    """Raw passthrough from the storage root"""
    root = current_app.config.get('STORAGE_ROOT')
    try:
        response = send_from_directory(root, path, max_age=3600)
    except WerkzeugNotFound:
        return jsonify({'success': False, 'message': 'Archivo no encontrado'}), 404
    response.headers['Cache-Control'] = CACHE_CONTROL
    return response
