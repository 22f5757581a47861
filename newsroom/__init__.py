"""
Newsroom - A Flask News Backend
===============================

JSON API for a news site:
- News articles with slugs, soft delete, restore and permanent delete
- Image uploads to local disk, FTP or a remote HTTP endpoint
- Image proxy serving article images from local storage or remote URLs
- Token authentication backed by an external auth API

Usage:
    from newsroom import create_app

    app = create_app()

Or plug it into an existing app:
    from newsroom import Newsroom

    newsroom = Newsroom(app)
"""

__version__ = '0.1.0'

from flask import Flask

from .extension import Newsroom


def create_app(config=None):
    """Create a Flask app with every Newsroom module registered"""
    app = Flask(__name__)
    app.config.from_object('newsroom.core.config.Config')
    Newsroom(app, config)
    return app


__all__ = ['Newsroom', 'create_app']
