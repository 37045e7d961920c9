"""
=============================================================================
APPLICATION CONFIGURATION
=============================================================================

All runtime settings in one dataclass, with environment overrides.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    PORT             listen port
    NODE_PORT        listen port when PORT is unset
    HTTP_HOST        bind address              (default 0.0.0.0)
    HTTP_WORKERS     max worker threads        (default 16)
    HTTP_LOG_LEVEL   DEBUG, INFO, ...          (default INFO)
    HTTP_LOG_FORMAT  text or json access log   (default text)

Port resolution walks a chain and takes the first non-empty value:

    PORT ──unset──► NODE_PORT ──unset──► 3000

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


PACKAGE_DIR = Path(__file__).resolve().parent

DEFAULT_PORT = 3000

PORT_VARIABLES = ("PORT", "NODE_PORT")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def resolve_port(environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Pick the listen port from the environment.

        >>> resolve_port({"PORT": "8080", "NODE_PORT": "9090"})
        8080
        >>> resolve_port({"NODE_PORT": "9090"})
        9090
        >>> resolve_port({})
        3000

    Empty values count as unset.

    Raises:
        ValueError: The chosen value is not an integer.
    """
    environ = os.environ if environ is None else environ
    for name in PORT_VARIABLES:
        value = environ.get(name, "").strip()
        if value:
            try:
                return int(value)
            except ValueError:
                raise ValueError(f"{name} is not a valid port: {value!r}") from None
    return DEFAULT_PORT


@dataclass
class AppConfig:
    """
    Configuration for the server and the application.

    =========================================================================
    GROUPS
    =========================================================================

        network      host, port, backlog, buffer_size, timeout
        http         keep_alive, keep_alive_timeout, max_request_size
        workers      min_workers, max_workers
        application  views_dir, client_dir, favicon_path, assets_prefix,
                     body_limit
        logging      log_level, log_format
        identity     server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    backlog: int = 128
    buffer_size: int = 8192
    timeout: float = 30.0

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    # ─────────────────────────────────────────────────────────────────────
    # WORKERS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    views_dir: Optional[str] = None
    """HTML views; defaults to the views/ directory inside the package."""

    client_dir: Optional[str] = None
    """Directory mounted at assets_prefix; defaults to the packaged client/."""

    favicon_path: Optional[str] = None
    """Defaults to <client_dir>/img/favicon.png."""

    assets_prefix: str = "/assets"
    body_limit: int = 100 * 1024

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"

    server_name: str = "namesite"

    def __post_init__(self):
        # Paths are fixed at startup, independent of the working directory
        if self.views_dir is None:
            self.views_dir = str(PACKAGE_DIR / "views")
        if self.client_dir is None:
            self.client_dir = str(PACKAGE_DIR / "client")
        if self.favicon_path is None:
            self.favicon_path = str(Path(self.client_dir) / "img" / "favicon.png")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "AppConfig":
        """
        Build a config from environment variables.

        Keyword overrides (e.g. from the command line) win over the
        environment.

            AppConfig.from_env()                      # PORT / NODE_PORT / 3000
            AppConfig.from_env(port=8080)             # --port 8080
        """
        environ = os.environ if environ is None else environ
        values = dict(
            host=environ.get("HTTP_HOST", "0.0.0.0"),
            port=resolve_port(environ),
            max_workers=int(environ.get("HTTP_WORKERS", "16")),
            log_level=environ.get("HTTP_LOG_LEVEL", "INFO").upper(),
            log_format=environ.get("HTTP_LOG_FORMAT", "text").lower(),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**values)
        config.min_workers = min(config.min_workers, config.max_workers)
        return config

    def validate(self) -> None:
        """
        Check values at startup.

        Port 0 is accepted and lets the OS pick a free port.

        Raises:
            ValueError: describing the first bad setting
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout <= 0 or self.keep_alive_timeout <= 0:
            raise ValueError("timeouts must be > 0")

        if self.body_limit > self.max_request_size:
            raise ValueError("body_limit must not exceed max_request_size")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        if not self.assets_prefix.startswith("/"):
            raise ValueError("assets_prefix must start with '/'")

        if not Path(self.views_dir).is_dir():
            raise ValueError(f"views_dir does not exist: {self.views_dir}")

        if not Path(self.client_dir).is_dir():
            raise ValueError(f"client_dir does not exist: {self.client_dir}")
