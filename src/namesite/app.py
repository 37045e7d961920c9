"""
=============================================================================
APPLICATION FACTORY
=============================================================================

Builds a ready-to-run HTTPServer with namesite's middleware and routes.

    create_app(config)
        │
        ├── use(LoggingMiddleware)          access log
        ├── use(StaticFiles("/assets"))     client/ directory
        ├── use(CompressionMiddleware)      gzip
        ├── use(BodyParser)                 request.form
        ├── use(FaviconMiddleware)          /favicon.ico
        └── install_routes(router)          pages + name API

The order is fixed; see middleware/base.py for what it implies.

=============================================================================
"""

import logging
from typing import Optional

from .config import AppConfig
from .controllers import Controllers, NameStore
from .middleware import (
    LoggingMiddleware,
    StaticFiles,
    CompressionMiddleware,
    BodyParser,
    FaviconMiddleware,
)
from .routes import install_routes
from .server import HTTPServer


logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[NameStore] = None,
) -> HTTPServer:
    """
    Create the namesite server.

    Args:
        config: Settings, AppConfig.from_env() when omitted
        store: Name storage; a fresh NameStore ("unknown") when omitted

    Raises:
        ValueError: invalid configuration
        FileNotFoundError: the favicon file is missing
    """
    config = config or AppConfig.from_env()
    server = HTTPServer(config)

    server.use(LoggingMiddleware(log_format=config.log_format))
    server.use(StaticFiles(config.client_dir, prefix=config.assets_prefix))
    server.use(CompressionMiddleware())
    server.use(BodyParser(extended=True, limit=config.body_limit))
    server.use(FaviconMiddleware(config.favicon_path))

    controllers = Controllers(config.views_dir, store or NameStore())
    install_routes(server.router, controllers)

    logger.debug(
        f"App created: middleware={server.middleware.names()} "
        f"routes={len(server.router)}"
    )
    return server
