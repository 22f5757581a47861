"""
Newsroom Core
=============

Core utilities shared by the Newsroom modules: configuration, database,
error taxonomy, logging, rate limiting and the upload pipeline.
"""

from .config import Config, UploadSettings
from .database import db
from .logging_service import LoggingService
from .uploads import UploadService

__all__ = ['Config', 'UploadSettings', 'db', 'LoggingService', 'UploadService']
