"""
=============================================================================
NAMESITE
=============================================================================

A small website on a from-scratch HTTP/1.1 server: three pages, a
not-found page, a static asset mount and a JSON API that reads and writes
one stored name.

    from namesite import create_app, AppConfig

    app = create_app(AppConfig(port=3000))
    app.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import AppConfig
from .controllers import NameStore
from .server import HTTPServer
from .app import create_app

__all__ = ["AppConfig", "HTTPServer", "NameStore", "create_app", "__version__"]
