"""
=============================================================================
DEVELOPMENT SERVER CONFIGURATION
=============================================================================

Settings for routekit.server.DevServer and the `python -m routekit` CLI.

Router settings (home, host, shutdown, logger) are not here. They belong
to each Router and are passed through Application. Persistent application
settings live in a ConfigStore (store.py).

    Development:
        ServerConfig(host="127.0.0.1", port=8000, log_level="DEBUG")

    From the environment:
        ROUTEKIT_PORT=9000 ROUTEKIT_LOG_LEVEL=INFO python -m routekit app:setup
=============================================================================
"""

from dataclasses import dataclass
from typing import Optional
import os


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class ServerConfig:
    """Development server settings."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 8000
    """0 lets the OS pick a free port; read it back from DevServer.port."""

    backlog: int = 16
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    """Per-connection socket timeout in seconds. None blocks forever."""

    max_request_size: int = 10 * 1024 * 1024

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    home: Optional[str] = None
    """Path prefix the application is mounted under, "/" when None."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_file: Optional[str] = None
    """Router log file. The router logs to stderr when None."""

    server_name: str = "routekit"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from ROUTEKIT_* environment variables.

            ROUTEKIT_HOST       bind address (127.0.0.1)
            ROUTEKIT_PORT       port (8000)
            ROUTEKIT_TIMEOUT    socket timeout in seconds (30)
            ROUTEKIT_HOME       mount prefix (none)
            ROUTEKIT_LOG_LEVEL  DEBUG, INFO, WARNING or ERROR (INFO)
            ROUTEKIT_LOG_FILE   router log file (stderr)
        """
        return cls(
            host=os.getenv("ROUTEKIT_HOST", "127.0.0.1"),
            port=int(os.getenv("ROUTEKIT_PORT", "8000")),
            timeout=float(os.getenv("ROUTEKIT_TIMEOUT", "30")),
            home=os.getenv("ROUTEKIT_HOME") or None,
            log_level=os.getenv("ROUTEKIT_LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("ROUTEKIT_LOG_FILE") or None,
        )

    def validate(self) -> None:
        """Fail fast on settings the server cannot start with."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")
        if self.home is not None and not self.home.startswith("/"):
            raise ValueError(f"home must start with '/': {self.home}")
