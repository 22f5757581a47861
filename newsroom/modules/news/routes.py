"""
News Routes
===========

Thin HTTP layer over the lifecycle functions in service.py. Every failure
is raised as a NewsroomError and rendered by the app's error handlers.
"""

from flask import current_app, jsonify, request, url_for

from . import news_bp
from . import service
from ..auth.utils import current_user, login_required
from ...core.errors import ValidationError
from ...core.throttle import throttle


def _json_body():
    return request.get_json(silent=True) or {}


def _page_arg():
    return request.args.get('page', 1, type=int) or 1


def _page_url(page):
    return url_for(request.endpoint, page=page, _external=True)


def _paginated(pagination):
    """Items plus the pagination block the frontend expects"""
    items = pagination.items
    first = (pagination.page - 1) * pagination.per_page + 1 if items else None
    last = first + len(items) - 1 if items else None
    return {
        'success': True,
        'data': [news.to_dict() for news in items],
        'pagination': {
            'current_page': pagination.page,
            'last_page': max(pagination.pages, 1),
            'per_page': pagination.per_page,
            'total': pagination.total,
            'from': first,
            'to': last,
            'has_more_pages': pagination.has_next,
            'next_page_url': _page_url(pagination.next_num) if pagination.has_next else None,
            'prev_page_url': _page_url(pagination.prev_num) if pagination.has_prev else None,
        },
    }


def _uploads():
    return current_app.extensions['newsroom'].uploads


def _multipart_file():
    file = request.files.get('file')
    if file is None or not file.filename:
        raise ValidationError({'file': ['El archivo es obligatorio']})
    return file


def _base64_file(data):
    content = data.get('file')
    if not isinstance(content, str) or not content.strip():
        raise ValidationError({'file': ['El archivo es obligatorio']})
    return content


# ===== Public reads =====

@news_bp.route('', methods=['GET'])
@throttle('news')
def index():
    return jsonify(_paginated(service.paginate_news(_page_arg())))


@news_bp.route('/top10', methods=['GET'])
@throttle('news')
def top10():
    news = service.top_visible_news()
    return jsonify({'success': True, 'data': [item.to_dict() for item in news]})


@news_bp.route('/<int:news_id>', methods=['GET'])
@throttle('news')
def show(news_id):
    return jsonify({'success': True, 'data': service.get_news(news_id).to_dict()})


# ===== Writes =====

@news_bp.route('', methods=['POST'])
@throttle('api')
@login_required
def store():
    news = service.create_news(_json_body(), current_user())
    return jsonify({
        'success': True,
        'message': 'Noticia creada exitosamente',
        'data': news.to_dict(),
    }), 201


@news_bp.route('/<int:news_id>', methods=['PUT'])
@throttle('api')
@login_required
def update(news_id):
    news = service.update_news(news_id, _json_body())
    return jsonify({
        'success': True,
        'message': 'Noticia actualizada exitosamente',
        'data': news.to_dict(),
    })


@news_bp.route('/<int:news_id>', methods=['DELETE'])
@throttle('api')
@login_required
def destroy(news_id):
    news = service.soft_delete_news(news_id)
    return jsonify({
        'success': True,
        'message': 'Noticia eliminada exitosamente',
        'data': {
            'id': news.id,
            'titulo': news.titulo,
            'deleted_at': news.deleted_at.isoformat(),
        },
    })


@news_bp.route('/trashed', methods=['GET'])
@throttle('api')
@login_required
def trashed():
    return jsonify(_paginated(service.paginate_trashed(_page_arg())))


@news_bp.route('/<int:news_id>/restore', methods=['POST'])
@throttle('api')
@login_required
def restore(news_id):
    news = service.restore_news(news_id)
    return jsonify({
        'success': True,
        'message': 'Noticia restaurada exitosamente',
        'data': news.to_dict(),
    })


@news_bp.route('/<int:news_id>/force', methods=['DELETE'])
@throttle('api')
@login_required
def force_destroy(news_id):
    removed_file = service.force_delete_news(news_id, current_app.config.get('STORAGE_ROOT'))
    return jsonify({
        'success': True,
        'message': 'Noticia eliminada permanentemente',
        'data': {'id': news_id, 'file_removed': removed_file},
    })


# ===== Uploads =====

@news_bp.route('/upload', methods=['POST'])
@throttle('api')
@login_required
def upload():
    """Upload an image (multipart) without creating a news row"""
    result = _uploads().upload(_multipart_file(), request.form.get('filename') or None)
    return jsonify({
        'success': True,
        'message': 'Archivo subido exitosamente',
        'data': result,
    })


@news_bp.route('/upload-base64', methods=['POST'])
@throttle('api')
@login_required
def upload_base64():
    """Upload a base64 image (optionally a data URL) without creating a news row"""
    data = _json_body()
    result = _uploads().upload(_base64_file(data), data.get('filename') or None)
    return jsonify({
        'success': True,
        'message': 'Archivo subido exitosamente',
        'data': result,
    })


@news_bp.route('/upload-and-save', methods=['POST'])
@throttle('api')
@login_required
def upload_and_save():
    """Multipart upload plus news metadata in one request"""
    data = request.form.to_dict()
    news, result = service.create_news_with_upload(
        data,
        request.files.get('file'),
        data.get('filename'),
        current_user(),
        _uploads(),
    )
    return jsonify({
        'success': True,
        'message': 'Noticia creada exitosamente',
        'data': {'news': news.to_dict(), 'upload': result},
    }), 201


@news_bp.route('/upload-base64-and-save', methods=['POST'])
@throttle('api')
@login_required
def upload_base64_and_save():
    """Base64 upload plus news metadata in one JSON request"""
    data = _json_body()
    news, result = service.create_news_with_upload(
        data,
        data.get('file'),
        data.get('filename'),
        current_user(),
        _uploads(),
    )
    return jsonify({
        'success': True,
        'message': 'Noticia creada exitosamente',
        'data': {'news': news.to_dict(), 'upload': result},
    }), 201
