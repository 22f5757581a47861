"""
Storage Transports
==================

Upload transports for local disk, FTP and a remote HTTP upload endpoint.
build_transport() picks one from UploadSettings once, at startup.

Local files live under ``<storage_root>/images`` and are addressed as
``/storage/images/<filename>``; any URL containing ``/storage/`` is treated
as local everywhere else in the app.
"""

import ftplib
import io
import os
from contextlib import contextmanager
from urllib.parse import urlparse

import requests
from werkzeug.security import safe_join

from .errors import ConfigurationError, ConflictError, UploadError
from .logging_service import LoggingService

LOCAL_MARKER = '/storage/'
IMAGES_SUBFOLDER = 'images'
FILE_EXISTS_MESSAGE = 'Ya existe un archivo con ese nombre'


def is_local_url(url):
    """Check whether a stored ``ruta`` points at local storage"""
    return bool(url) and LOCAL_MARKER in url


def local_path_for(url, storage_root):
    """Map a /storage/... URL back to a path under storage_root.

    Returns None when the URL is not local or would escape the storage root.
    """
    if not is_local_url(url) or not storage_root:
        return None
    path = urlparse(url).path
    if LOCAL_MARKER not in path:
        return None
    relative = path.split(LOCAL_MARKER, 1)[1]
    if not relative:
        return None
    return safe_join(storage_root, relative)


def delete_local_file(url, storage_root):
    """Delete a local file by its URL. Returns True if a file was removed."""
    full_path = local_path_for(url, storage_root)
    if full_path and os.path.isfile(full_path):
        os.unlink(full_path)
        return True
    return False


class Transport:
    """Base upload transport"""
    name = None

    def __init__(self, settings):
        self.settings = settings

    def check_configuration(self):
        """Raise ConfigurationError if a required setting is missing."""

    def store(self, content, filename):
        """Persist bytes under filename and return the public URL"""
        raise NotImplementedError

    def delete(self, url):
        """Best-effort removal of a stored file. Remote files are never deleted."""
        return False

    def _require(self, **values):
        for setting, value in values.items():
            if not value:
                raise ConfigurationError(
                    f"{setting} is required for {self.name.upper()} upload method"
                )

    def _remote_url(self, filename):
        return f"{self.settings.remote_base_url.rstrip('/')}/{filename}"


class LocalTransport(Transport):
    """Write into the public storage directory."""
    name = 'local'

    def check_configuration(self):
        self._require(STORAGE_ROOT=self.settings.storage_root)

    def store(self, content, filename):
        """Write a new file; an existing file with the same name is never replaced"""
        upload_dir = os.path.join(self.settings.storage_root, IMAGES_SUBFOLDER)
        try:
            os.makedirs(upload_dir, exist_ok=True)
            with open(os.path.join(upload_dir, filename), 'xb') as f:
                f.write(content)
        except FileExistsError:
            raise ConflictError(FILE_EXISTS_MESSAGE, payload={'error_type': 'file_exists'})
        except OSError as e:
            raise UploadError(f"Could not write file to local storage: {e}") from e
        return f"{self.settings.public_prefix.rstrip('/')}/{IMAGES_SUBFOLDER}/{filename}"

    def delete(self, url):
        return delete_local_file(url, self.settings.storage_root)


class FtpTransport(Transport):
    """Upload over FTP in binary mode.

    With ``ftp_native`` the session changes into the target directory
    (creating the tree if absent) before STOR. Otherwise a single-pass
    transfer stores to the absolute target path, creating missing
    directories on the way, for servers that refuse CWD.
    """
    name = 'ftp'

    def check_configuration(self):
        s = self.settings
        self._require(
            REMOTE_SERVER_FTP_HOST=s.ftp_host,
            REMOTE_SERVER_FTP_USERNAME=s.ftp_username,
            REMOTE_SERVER_FTP_PASSWORD=s.ftp_password,
            REMOTE_SERVER_BASE_URL=s.remote_base_url,
        )

    def store(self, content, filename):
        if self.settings.ftp_native:
            self._store_native(content, filename)
        else:
            self._store_single_pass(content, filename)
        return self._remote_url(filename)

    @contextmanager
    def _session(self):
        s = self.settings
        ftp = ftplib.FTP(timeout=s.timeout)
        try:
            ftp.connect(s.ftp_host, s.ftp_port)
        except ftplib.all_errors as e:
            raise UploadError(f"Could not connect to FTP server {s.ftp_host}:{s.ftp_port}: {e}") from e

        try:
            try:
                ftp.login(s.ftp_username, s.ftp_password)
            except ftplib.all_errors as e:
                raise UploadError(f"FTP login failed: {e}") from e
            ftp.set_pasv(True)
            yield ftp
        finally:
            try:
                ftp.quit()
            except ftplib.all_errors:
                ftp.close()

    def _store_native(self, content, filename):
        directory = self.settings.ftp_directory
        with self._session() as ftp:
            try:
                try:
                    ftp.cwd(directory)
                except ftplib.error_perm:
                    self._create_directory(ftp, directory)
                    ftp.cwd(directory)
                ftp.storbinary(f'STOR {filename}', io.BytesIO(content))
            except ftplib.all_errors as e:
                raise UploadError(f"FTP upload error: {e}") from e

    def _store_single_pass(self, content, filename):
        directory = '/' + self.settings.ftp_directory.strip('/')
        target = f"{directory.rstrip('/')}/{filename}"
        with self._session() as ftp:
            try:
                current = ''
                for part in [p for p in directory.split('/') if p]:
                    current += '/' + part
                    try:
                        ftp.mkd(current)
                    except ftplib.error_perm:
                        pass  # already exists
                ftp.storbinary(f'STOR {target}', io.BytesIO(content))
            except ftplib.all_errors as e:
                raise UploadError(f"FTP single-pass upload error: {e}") from e

    @staticmethod
    def _create_directory(ftp, directory):
        """Create an FTP directory tree one segment at a time"""
        current = ''
        for part in [p for p in directory.strip('/').split('/') if p]:
            current += '/' + part
            try:
                ftp.cwd(current)
            except ftplib.error_perm:
                try:
                    ftp.mkd(current)
                except ftplib.error_perm as e:
                    raise UploadError(f"Could not create directory: {current}") from e


class HttpTransport(Transport):
    """Multipart upload to a remote ``upload.php`` endpoint.

    Only the remote success flag is trusted; the public URL is always built
    from REMOTE_SERVER_BASE_URL.
    """
    name = 'http'

    def check_configuration(self):
        s = self.settings
        self._require(
            REMOTE_SERVER_URL=s.remote_server_url,
            REMOTE_SERVER_API_KEY=s.remote_api_key,
            REMOTE_SERVER_BASE_URL=s.remote_base_url,
        )

    def store(self, content, filename):
        endpoint = f"{self.settings.remote_server_url.rstrip('/')}/upload.php"
        try:
            response = requests.post(
                endpoint,
                headers={
                    'Authorization': f'Bearer {self.settings.remote_api_key}',
                    'Accept': 'application/json',
                },
                files={'file': (filename, content)},
                timeout=self.settings.timeout,
            )
        except requests.RequestException as e:
            raise UploadError(f"Failed to reach remote server {endpoint}: {e}") from e

        LoggingService.log_api_call('uploads', endpoint, 'POST', response.status_code,
                                    {'filename': filename})

        if not 200 <= response.status_code < 300:
            raise UploadError(f"Remote server rejected upload with HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise UploadError('Remote server returned an invalid JSON response') from e

        if not isinstance(data, dict) or not data.get('success'):
            raise UploadError('Remote server upload failed')

        return self._remote_url(filename)


TRANSPORTS = {
    LocalTransport.name: LocalTransport,
    FtpTransport.name: FtpTransport,
    HttpTransport.name: HttpTransport,
}


def build_transport(settings):
    """Select the transport for settings.method"""
    transport_class = TRANSPORTS.get(settings.method)
    if transport_class is None:
        raise ConfigurationError('Invalid upload method. Must be "http", "ftp" or "local"')
    return transport_class(settings)
