"""
Webs-Views Routes
=================

GET    /webs-views                   - list (external API)
POST   /webs-views                   - create
PUT    /webs-views/<id>              - update
DELETE /webs-views/<id>              - delete
GET    /webs-views-detail/<web_id>   - details of one web-view
POST   /webs-views-detail            - create a detail (multipart)
PUT    /webs-views-detail/<id>       - update a detail (multipart)
DELETE /webs-views-detail/<id>       - delete a detail

Every route needs a local login and an X-External-Token.
"""

from flask import jsonify, request

from . import webs_views_bp
from . import service
from .utils import external_token, external_token_required
from ..auth.utils import login_required
from ...core.throttle import throttle


def _json_body():
    return request.get_json(silent=True) or {}


# ===== Webs-views =====

@webs_views_bp.route('/webs-views', methods=['GET'])
@throttle('api')
@login_required
@external_token_required
def index():
    data = service.forward('GET', '/webs-views', external_token())
    return jsonify({'success': True, 'data': data})


@webs_views_bp.route('/webs-views', methods=['POST'])
@throttle('api')
@login_required
@external_token_required
def store():
    payload = service.validate_web_view(_json_body())
    data = service.forward('POST', '/webs-views', external_token(), json=payload)
    return jsonify({'success': True, 'data': data}), 201


@webs_views_bp.route('/webs-views/<web_view_id>', methods=['PUT'])
@throttle('api')
@login_required
@external_token_required
def update(web_view_id):
    payload = service.validate_web_view(_json_body(), require_id=True)
    data = service.forward('PUT', f'/webs-views/{web_view_id}', external_token(), json=payload)
    return jsonify({'success': True, 'data': data})


@webs_views_bp.route('/webs-views/<web_view_id>', methods=['DELETE'])
@throttle('api')
@login_required
@external_token_required
def destroy(web_view_id):
    service.forward('DELETE', f'/webs-views/{web_view_id}', external_token())
    return jsonify({'success': True, 'message': 'Web-view eliminada exitosamente'})


# ===== Webs-views details =====

@webs_views_bp.route('/webs-views-detail/<web_id>', methods=['GET'])
@throttle('api')
@login_required
@external_token_required
def show_detail(web_id):
    data = service.forward('GET', f'/webs-views-detail/{web_id}', external_token())
    return jsonify({'success': True, 'data': data})


@webs_views_bp.route('/webs-views-detail', methods=['POST'])
@throttle('api')
@login_required
@external_token_required
def store_detail():
    """Multipart form; det_video / det_image files are streamed upstream"""
    form = service.validate_web_view_detail(request.form.to_dict(), request.files)
    data = service.forward('POST', '/webs-views-detail', external_token(),
                           data=form, files=service.files_payload(request.files))
    return jsonify({'success': True, 'data': data}), 201


@webs_views_bp.route('/webs-views-detail/<detail_id>', methods=['PUT'])
@throttle('api')
@login_required
@external_token_required
def update_detail(detail_id):
    form = service.validate_web_view_detail(request.form.to_dict(), request.files,
                                            require_files=False)
    data = service.forward('PUT', f'/webs-views-detail/{detail_id}', external_token(),
                           data=form, files=service.files_payload(request.files))
    return jsonify({'success': True, 'data': data})


@webs_views_bp.route('/webs-views-detail/<detail_id>', methods=['DELETE'])
@throttle('api')
@login_required
@external_token_required
def destroy_detail(detail_id):
    service.forward('DELETE', f'/webs-views-detail/{detail_id}', external_token())
    return jsonify({'success': True, 'message': 'Detalle de web-view eliminado exitosamente'})
