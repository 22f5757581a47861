"""
Newsroom development server
===========================

Run with:
    python app.py

Visit:
    http://localhost:5000/api/news         - News listing
    http://localhost:5000/images/<slug>    - Article image
"""

from newsroom import create_app
from newsroom.core.config import Config

app = create_app()


if __name__ == '__main__':
    print("\n" + "=" * 60)
    print("Newsroom")
    print("=" * 60)
    print(f"News API:        http://localhost:{Config.port}{Config.API_PREFIX}/news")
    print(f"Upload method:   {app.config['UPLOAD_METHOD']}")
    print(f"Storage root:    {app.config['STORAGE_ROOT']}")
    print("=" * 60 + "\n")

    app.run(host='0.0.0.0', port=Config.port, debug=True)
