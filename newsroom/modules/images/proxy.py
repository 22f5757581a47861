"""
Image Proxy
===========

Resolve a stored ``ruta`` to image bytes, then turn the outcome into a
response. Resolution never raises: every failure becomes a NotFound or
UpstreamError result, which is served as a transparent placeholder PNG.
"""

import base64
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

import requests
from flask import Response
from werkzeug.http import http_date

from ...core.logging_service import LoggingService
from ...core.storage import is_local_url, local_path_for

# 1x1 transparent PNG
PLACEHOLDER_PNG = base64.b64decode(
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII='
)

MIME_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'svg': 'image/svg+xml',
    'bmp': 'image/bmp',
    'ico': 'image/x-icon',
}
DEFAULT_MIME = 'image/jpeg'

CACHE_CONTROL = 'public, max-age=3600'
USER_AGENT = 'Newsroom Image Proxy/1.0'


def mime_type_for(path):
    """Content type from the file extension, defaulting to JPEG"""
    extension = os.path.splitext(path or '')[1].lstrip('.').lower()
    return MIME_TYPES.get(extension, DEFAULT_MIME)


@dataclass
class Found:
    content: bytes
    content_type: str
    source: str  # 'local' or 'success'
    original_url: Optional[str] = None
    last_modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class NotFound:
    message: str
    original_url: Optional[str] = None


@dataclass
class UpstreamError:
    message: str
    original_url: Optional[str] = None
    status_code: Optional[int] = None


class ImageResolver:
    """Reads local files under storage_root, fetches everything else over HTTP"""

    def __init__(self, storage_root, timeout=30):
        self.storage_root = storage_root
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(config.get('STORAGE_ROOT'), timeout=int(config.get('UPLOAD_TIMEOUT') or 30))

    def resolve(self, ruta):
        if not ruta:
            return NotFound('La noticia no tiene imagen')
        if is_local_url(ruta):
            return self._resolve_local(ruta)
        return self._resolve_remote(ruta)

    def _resolve_local(self, ruta):
        path = local_path_for(ruta, self.storage_root)
        if not path or not os.path.isfile(path):
            return NotFound('Imagen local no encontrada', original_url=ruta)

        try:
            with open(path, 'rb') as f:
                content = f.read()
            modified = datetime.fromtimestamp(os.path.getmtime(path), tz=timezone.utc)
        except OSError as e:
            LoggingService.warning('images', 'Could not read local image', {
                'ruta': ruta,
                'error': str(e),
            })
            return NotFound('Imagen local no disponible', original_url=ruta)

        return Found(content, mime_type_for(path), 'local', ruta, modified)

    def _resolve_remote(self, url):
        try:
            response = requests.get(
                url,
                timeout=self.timeout,
                allow_redirects=True,
                headers={'User-Agent': USER_AGENT},
            )
        except requests.RequestException as e:
            LoggingService.warning('images', 'Remote image fetch failed', {
                'url': url,
                'error': str(e),
            })
            return UpstreamError('Error al obtener la imagen remota', original_url=url)

        if response.status_code != 200:
            LoggingService.warning('images', 'Remote image returned an error status', {
                'url': url,
                'status': response.status_code,
            })
            return UpstreamError(
                f'La imagen remota respondió con estado {response.status_code}',
                original_url=url,
                status_code=response.status_code,
            )

        return Found(response.content, mime_type_for(urlparse(url).path), 'success', url)


def _ascii_header(value):
    return (value or '').encode('ascii', 'ignore').decode('ascii')


def placeholder_response(result):
    """404 carrying the transparent placeholder and the failure details"""
    response = Response(PLACEHOLDER_PNG, status=404, mimetype='image/png')
    response.headers['Cache-Control'] = 'no-cache'
    response.headers['X-Proxy-Status'] = (
        'upstream-error' if isinstance(result, UpstreamError) else 'not-found'
    )
    response.headers['X-Error-Message'] = _ascii_header(result.message)
    if result.original_url:
        response.headers['X-Original-URL'] = _ascii_header(result.original_url)
    return response


def to_response(result):
    """Turn a resolver result into the HTTP response"""
    if not isinstance(result, Found):
        return placeholder_response(result)

    response = Response(result.content, status=200, content_type=result.content_type)
    response.headers['Content-Length'] = str(len(result.content))
    response.headers['Cache-Control'] = CACHE_CONTROL
    response.headers['Last-Modified'] = http_date(result.last_modified)
    response.headers['X-Proxy-Status'] = result.source
    if result.original_url:
        response.headers['X-Original-URL'] = _ascii_header(result.original_url)
    return response
