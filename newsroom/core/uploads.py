"""
Upload Service
==============

Turns an uploaded image (multipart file or base64 string) into a durable,
externally fetchable URL through the configured transport.

Every upload goes through the same steps, whatever the transport:
    1. stage the file (base64 payloads are decoded into a temp file)
    2. validate size, extension, MIME type, image structure and dimensions
    3. pick the final filename
    4. hand the bytes to the transport
Temp files are removed on every exit path.
"""

import base64
import binascii
import io
import mimetypes
import os
import secrets
import string
import struct
import tempfile
from datetime import datetime

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from .errors import UnsupportedFormat, UploadError, ValidationError
from .logging_service import LoggingService
from .storage import build_transport

# Formats accepted when sniffing a base64 payload
SNIFFED_EXTENSIONS = {
    'JPEG': 'jpg',
    'PNG': 'png',
    'GIF': 'gif',
    'WEBP': 'webp',
}

EXTENSION_MIME = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
}

_IMAGE_ERRORS = (UnidentifiedImageError, OSError, SyntaxError, ValueError, struct.error,
                 Image.DecompressionBombError)


def file_extension(name):
    """Lowercase extension of a filename, '' if it has none"""
    if not name or '.' not in name:
        return ''
    return name.rsplit('.', 1)[1].lower()


def sniff_format(content):
    """Return the Pillow format name of raw bytes, or None"""
    try:
        with Image.open(io.BytesIO(content)) as img:
            return img.format
    except _IMAGE_ERRORS:
        return None


def sniff_extension(content):
    """Map sniffed image content onto one of the allowed base64 extensions"""
    return SNIFFED_EXTENSIONS.get(sniff_format(content) or '')


def generate_unique_filename(extension):
    """<timestamp>_<8 random chars>.<ext>"""
    timestamp = datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
    alphabet = string.ascii_letters + string.digits
    random_part = ''.join(secrets.choice(alphabet) for _ in range(8))
    return f"{timestamp}_{random_part}.{extension}"


class PendingFile:
    """A file staged for upload: bytes in memory or in a temp file."""

    def __init__(self, client_name, content=None, path=None, declared_mime=None):
        self.client_name = client_name or ''
        self.path = path
        self.declared_mime = declared_mime
        self._content = content
        self._mime_type = None

    @property
    def extension(self):
        return file_extension(self.client_name)

    @property
    def size(self):
        if self._content is None and self.path:
            return os.path.getsize(self.path)
        return len(self._content or b'')

    def read(self):
        if self._content is None:
            with open(self.path, 'rb') as f:
                self._content = f.read()
        return self._content

    @property
    def mime_type(self):
        """Sniffed from the bytes when possible, else declared or guessed from the name"""
        if self._mime_type is None:
            image_format = sniff_format(self.read())
            self._mime_type = (
                Image.MIME.get(image_format) if image_format else None
            ) or self.declared_mime or mimetypes.guess_type(self.client_name)[0] or ''
        return self._mime_type

    def cleanup(self):
        if self.path and os.path.exists(self.path):
            os.unlink(self.path)
        self.path = None


def check_extension(extension, settings, field):
    if extension not in settings.allowed_extensions:
        allowed = ', '.join(settings.allowed_extensions)
        raise ValidationError(
            {field: [f"Tipo de archivo no permitido. Tipos permitidos: {allowed}"]}
        )


def validate_image(pending, settings):
    """Reject anything that is not a reasonably sized image. Raises ValidationError."""
    max_mb = settings.max_file_size // (1024 * 1024)
    if pending.size > settings.max_file_size:
        raise ValidationError(
            {'file': [f"El archivo excede el tamaño máximo permitido de {max_mb}MB"]}
        )

    check_extension(pending.extension, settings, 'file')

    if not pending.mime_type.startswith('image/'):
        raise ValidationError({'file': ['El archivo debe ser una imagen']})

    try:
        with Image.open(io.BytesIO(pending.read())) as img:
            width, height = img.size
            img.verify()
    except _IMAGE_ERRORS:
        raise ValidationError({'file': ['El archivo no es una imagen válida']})

    if width > settings.max_width or height > settings.max_height:
        raise ValidationError({'file': [
            f"Las dimensiones de la imagen exceden el máximo permitido de "
            f"{settings.max_width}x{settings.max_height}px"
        ]})


class UploadService:
    """Validates uploads and stores them through one transport."""

    def __init__(self, settings, transport=None):
        self.settings = settings
        self.transport = transport or build_transport(settings)

    @property
    def method(self):
        return self.transport.name

    def upload(self, file, filename=None):
        """
        Upload a file and return {filename, url, size, mime_type}.

        Args:
            file: a werkzeug FileStorage (or any object with read() and
                filename) or a base64 string, optionally a data URL
            filename: target filename; generated when omitted

        Raises:
            ConfigurationError: the selected transport is missing settings
            ConflictError: a local file with that name already exists
            ValidationError: the file is not an acceptable image
            UploadError: the transport failed
        """
        # Fail fast, before touching the payload or the network
        self.transport.check_configuration()

        pending = None
        try:
            if isinstance(file, str):
                pending = self._stage_base64(file, filename)
            else:
                pending = self._stage_file(file)

            validate_image(pending, self.settings)
            final_name = self._final_filename(filename, pending)
            size, mime_type = pending.size, pending.mime_type

            try:
                url = self.transport.store(pending.read(), final_name)
            except UploadError as e:
                LoggingService.error('uploads', 'Upload failed', {
                    'method': self.method,
                    'filename': final_name,
                    'error': str(e),
                })
                raise
        finally:
            if pending is not None:
                pending.cleanup()

        LoggingService.info('uploads', 'File uploaded', {
            'method': self.method,
            'filename': final_name,
            'size': size,
        })
        return {
            'filename': final_name,
            'url': url,
            'size': size,
            'mime_type': mime_type,
        }

    def delete(self, url):
        """Best-effort removal of an uploaded file. Never raises."""
        try:
            return self.transport.delete(url)
        except OSError as e:
            LoggingService.warning('uploads', 'Could not remove uploaded file',
                                   {'url': url, 'error': str(e)})
            return False

    def _stage_file(self, file):
        if file is None or not hasattr(file, 'read'):
            raise ValidationError({'file': ['El archivo es obligatorio']})
        content = file.read()
        return PendingFile(
            client_name=getattr(file, 'filename', '') or '',
            content=content,
            declared_mime=getattr(file, 'mimetype', None),
        )

    def _stage_base64(self, data, filename=None):
        # Remove data URL prefix if present
        if data.startswith('data:'):
            data = data.split(',', 1)[1] if ',' in data else ''
        data = ''.join(data.split())

        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            raw = b''
        if not raw:
            raise ValidationError({'file': ['Datos base64 inválidos']})

        fd, temp_path = tempfile.mkstemp(prefix='upload_')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(raw)

            extension = file_extension(filename) or sniff_extension(raw)
            if not extension:
                raise UnsupportedFormat(
                    {'file': ['No se pudo determinar la extensión del archivo']}
                )
        except Exception:
            os.unlink(temp_path)
            raise

        client_name = filename if file_extension(filename) else f"file.{extension}"
        return PendingFile(
            client_name=client_name,
            path=temp_path,
            declared_mime=EXTENSION_MIME.get(extension),
        )

    def _final_filename(self, filename, pending):
        """The stored name must carry an allowed extension, whatever the client sent"""
        if not filename:
            return generate_unique_filename(pending.extension)
        name = secure_filename(filename)
        if not name:
            raise ValidationError({'filename': ['Nombre de archivo inválido']})
        if not file_extension(name):
            return f"{name}.{pending.extension}"
        check_extension(file_extension(name), self.settings, 'filename')
        return name
