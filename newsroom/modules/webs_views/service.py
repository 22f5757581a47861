"""
Webs-Views Passthrough
======================

Validates webs-views input locally, then forwards it to the external API
with the caller's external token. Nothing is stored here.
"""

import re

from flask import current_app

from ...core.errors import ExternalApiError, ValidationError
from ...core.logging_service import LoggingService

DETAIL_TYPES = ('url', 'video', 'image')
STATUS_VALUES = (0, 1)

_INTEGER = re.compile(r'^-?\d+$')


def parse_int(value):
    """Integer from JSON or form input. Raises ValueError."""
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER.match(value.strip()):
        return int(value.strip())
    raise ValueError(f"not an integer: {value!r}")


def _required_string(data, field, errors):
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        errors[field] = [f'El campo {field} es obligatorio']


def _required_int(data, field, errors, choices=None):
    try:
        value = parse_int(data.get(field))
    except ValueError:
        errors[field] = [f'El campo {field} debe ser un número entero']
        return
    if choices is not None and value not in choices:
        allowed = ', '.join(str(c) for c in choices)
        errors[field] = [f'El campo {field} debe ser uno de: {allowed}']


def validate_web_view(data, require_id=False):
    """Create (and, with require_id, update) input for a web-view"""
    data = data or {}
    errors = {}

    if require_id:
        _required_string(data, 'web_id', errors)
    for field in ('web_url', 'web_name', 'web_descri'):
        _required_string(data, field, errors)

    roles = data.get('web_roles')
    if not isinstance(roles, list) or not roles:
        errors['web_roles'] = ['El campo web_roles debe ser una lista']

    _required_int(data, 'web_site', errors)
    _required_int(data, 'web_status', errors, STATUS_VALUES)

    if errors:
        raise ValidationError(errors)
    return data


def validate_web_view_detail(data, files, require_files=True):
    """
    Input for a web-view detail.

    The det_type decides what else is required: det_url for 'url', a
    det_video file plus its extension for 'video', a det_image file plus its
    extension for 'image'. On update (require_files=False) the files may be
    omitted but the extensions are still required.
    """
    data = data or {}
    errors = {}

    _required_string(data, 'web_id', errors)

    det_type = data.get('det_type')
    if det_type not in DETAIL_TYPES:
        errors['det_type'] = [f"El campo det_type debe ser uno de: {', '.join(DETAIL_TYPES)}"]

    if det_type == 'url':
        _required_string(data, 'det_url', errors)
    elif 'det_url' in data and not isinstance(data['det_url'], str):
        errors['det_url'] = ['El campo det_url debe ser texto']

    for field in ('det_timer', 'det_order'):
        _required_int(data, field, errors)
    _required_int(data, 'det_status', errors, STATUS_VALUES)

    for kind in ('video', 'image'):
        file_field = f'det_{kind}'
        upload = files.get(file_field)
        if upload is not None and not upload.filename:
            upload = None
        if det_type == kind:
            if upload is None and require_files:
                errors[file_field] = [f'El campo {file_field} es obligatorio']
            _required_string(data, f'{file_field}_extension', errors)

    if errors:
        raise ValidationError(errors)
    return data


def files_payload(files):
    """Uploaded werkzeug files as a requests ``files`` mapping"""
    return {
        name: (upload.filename, upload.stream, upload.mimetype)
        for name, upload in files.items()
        if upload is not None and upload.filename
    }


def forward(method, path, token, **kwargs):
    """
    Send a request to the external API and return its JSON body.

    Raises ExternalApiError on a non-2xx answer and TransportError when the
    API cannot be reached.
    """
    auth_api = current_app.extensions['newsroom'].auth_api
    response = auth_api.request(method, path, token=token, **kwargs)

    if not 200 <= response.status_code < 300:
        LoggingService.warning('webs_views', 'External API rejected request', {
            'method': method,
            'path': path,
            'status': response.status_code,
        })
        raise ExternalApiError()

    try:
        return response.json()
    except ValueError:
        return None
