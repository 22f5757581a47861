"""
Newsroom Flask extension.

    app = Flask(__name__)
    newsroom = Newsroom(app)

Registers the auth, news, webs-views and images blueprints, the JSON error handlers
and the shared services (upload service, auth API client, rate limiter).
The instance is stored in ``app.extensions['newsroom']``.
"""

import os

from flask_cors import CORS

from .core.config import Config, UploadSettings
from .core.database import db, ensure_sqlite_dir
from .core.errors import register_error_handlers
from .core.logging_service import LoggingService
from .core.throttle import RateLimiter
from .core.uploads import UploadService


class Newsroom:
    """Wires the Newsroom modules into a Flask app."""

    def __init__(self, app=None, config=None):
        self._config = config or {}
        self._registered_modules = []
        self.uploads = None
        self.auth_api = None
        self.rate_limiter = RateLimiter()
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self._apply_config(app)
        self._setup_database_dir(app)

        db.init_app(app)
        CORS(app, resources={
            f"{app.config['API_PREFIX']}/*": {"origins": app.config['CORS_ORIGINS']},
        })

        # Services are built once; UploadSettings is immutable from here on
        from .modules.auth.external import AuthApiService
        self.uploads = UploadService(UploadSettings.from_config(app.config))
        self.auth_api = AuthApiService.from_config(app.config)

        self._register_modules(app)
        register_error_handlers(app)

        app.extensions['newsroom'] = self

        with app.app_context():
            db.create_all()

        LoggingService.info('newsroom', 'Newsroom initialised', {
            'modules': self._registered_modules,
            'upload_method': self.uploads.method,
        })

    def _apply_config(self, app):
        """Defaults from Config, then app.config, then the dict passed in"""
        for key in dir(Config):
            if key.isupper():
                app.config.setdefault(key, getattr(Config, key))
        for key, value in self._config.items():
            app.config[key] = value

    @staticmethod
    def _setup_database_dir(app):
        db_dir = app.config.get('DB_DIR')
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        ensure_sqlite_dir(app.config['SQLALCHEMY_DATABASE_URI'])

    def _register_modules(self, app):
        from .modules.auth import auth_bp
        from .modules.images import images_bp
        from .modules.news import news_bp
        from .modules.webs_views import webs_views_bp

        prefix = app.config['API_PREFIX'].rstrip('/')
        app.register_blueprint(auth_bp, url_prefix=prefix or None)
        app.register_blueprint(news_bp, url_prefix=f"{prefix}/news")
        app.register_blueprint(webs_views_bp, url_prefix=prefix or None)
        app.register_blueprint(images_bp)
        self._registered_modules = ['auth', 'news', 'webs_views', 'images']

    def get_registered_modules(self):
        return list(self._registered_modules)
