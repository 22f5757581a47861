import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv(override=True)


def as_bool(value, default=False):
    """Coerce a config value to bool; strings such as "false" or "0" are False"""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _env_bool(name, default):
    return as_bool(os.getenv(name), default)


class Config:
    """
    Base configuration for the Newsroom backend.
    Every value can be overridden from the environment (or a .env file).
    """
    # Flask settings
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    API_PREFIX = os.getenv('API_PREFIX', '/api')
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))

    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///' + os.path.join(DB_DIR, 'newsroom.db'),
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Public storage root, served under /storage/
    STORAGE_ROOT = os.getenv('STORAGE_ROOT', os.path.join(os.getcwd(), 'storage', 'public'))

    # Upload transport: local, ftp or http
    UPLOAD_METHOD = os.getenv('UPLOAD_METHOD', 'local')
    UPLOAD_TIMEOUT = int(os.getenv('UPLOAD_TIMEOUT', '30'))

    # Remote server (http and ftp transports)
    REMOTE_SERVER_URL = os.getenv('REMOTE_SERVER_URL')
    REMOTE_SERVER_API_KEY = os.getenv('REMOTE_SERVER_API_KEY')
    REMOTE_SERVER_BASE_URL = os.getenv('REMOTE_SERVER_BASE_URL')
    REMOTE_SERVER_FTP_HOST = os.getenv('REMOTE_SERVER_FTP_HOST')
    REMOTE_SERVER_FTP_USERNAME = os.getenv('REMOTE_SERVER_FTP_USERNAME')
    REMOTE_SERVER_FTP_PASSWORD = os.getenv('REMOTE_SERVER_FTP_PASSWORD')
    REMOTE_SERVER_FTP_PORT = int(os.getenv('REMOTE_SERVER_FTP_PORT', '21'))
    REMOTE_SERVER_FTP_DIRECTORY = os.getenv('REMOTE_SERVER_FTP_DIRECTORY', '/public_html/images')
    REMOTE_SERVER_FTP_NATIVE = _env_bool('REMOTE_SERVER_FTP_NATIVE', True)

    # External auth API
    AUTH_API_BASE_URL = os.getenv('AUTH_API_BASE_URL')
    AUTH_API_TIMEOUT = int(os.getenv('AUTH_API_TIMEOUT', '30'))
    AUTH_API_VERIFY_SSL = _env_bool('AUTH_API_VERIFY_SSL', True)

    # Rate limits per bucket, "requests,minutes"
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', True)
    RATE_LIMITS = {
        'api': os.getenv('RATE_LIMIT_API', '60,1'),
        'news': os.getenv('RATE_LIMIT_NEWS', '300,1'),
        'auth': os.getenv('RATE_LIMIT_AUTH', '10,1'),
    }

    # Port for local server (optional)
    port = int(os.getenv('PORT', '5000'))


@dataclass(frozen=True)
class UploadSettings:
    """Immutable upload configuration, built once and injected into UploadService."""
    method: str = 'local'
    storage_root: str = ''
    public_prefix: str = '/storage'
    timeout: int = 30

    remote_server_url: Optional[str] = None
    remote_api_key: Optional[str] = None
    remote_base_url: Optional[str] = None

    ftp_host: Optional[str] = None
    ftp_username: Optional[str] = None
    ftp_password: Optional[str] = None
    ftp_port: int = 21
    ftp_directory: str = '/'
    ftp_native: bool = True

    max_file_size: int = 5 * 1024 * 1024
    allowed_extensions: Tuple[str, ...] = ('jpg', 'jpeg', 'png', 'gif')
    max_width: int = 4000
    max_height: int = 4000

    @classmethod
    def from_config(cls, config):
        """Build settings from a Flask config mapping."""
        return cls(
            method=(config.get('UPLOAD_METHOD') or 'local').strip().lower(),
            storage_root=config.get('STORAGE_ROOT') or '',
            timeout=int(config.get('UPLOAD_TIMEOUT') or 30),
            remote_server_url=config.get('REMOTE_SERVER_URL'),
            remote_api_key=config.get('REMOTE_SERVER_API_KEY'),
            remote_base_url=config.get('REMOTE_SERVER_BASE_URL'),
            ftp_host=config.get('REMOTE_SERVER_FTP_HOST'),
            ftp_username=config.get('REMOTE_SERVER_FTP_USERNAME'),
            ftp_password=config.get('REMOTE_SERVER_FTP_PASSWORD'),
            ftp_port=int(config.get('REMOTE_SERVER_FTP_PORT') or 21),
            ftp_directory=config.get('REMOTE_SERVER_FTP_DIRECTORY') or '/',
            ftp_native=as_bool(config.get('REMOTE_SERVER_FTP_NATIVE'), True),
        )
