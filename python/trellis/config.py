"""
Trellis configuration: all environment variables in one place.

Settings are read from the environment when ``Settings.from_env()`` is
called; command-line flags given to ``python -m trellis`` override them.
"""

from typing import Mapping, Optional
from dataclasses import dataclass
import logging
import os

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    """Application settings."""

    host: str = "127.0.0.1"
    port: int = 4567
    log_level: str = "INFO"
    websocket_path: str = "/websocket"
    title: str = "Trellis"
    max_message_bytes: int = 1024 * 1024
    heartbeat_s: int = 30

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            host=env.get("TRELLIS_HOST", defaults.host),
            port=_int(env, "TRELLIS_PORT", defaults.port),
            log_level=env.get("TRELLIS_LOG_LEVEL", defaults.log_level).upper(),
            websocket_path=env.get("TRELLIS_WEBSOCKET_PATH", defaults.websocket_path),
            title=env.get("TRELLIS_TITLE", defaults.title),
            max_message_bytes=_int(env, "TRELLIS_MAX_MESSAGE_BYTES", defaults.max_message_bytes),
            heartbeat_s=_int(env, "TRELLIS_HEARTBEAT_S", defaults.heartbeat_s),
        )


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %d", name, raw, default)
        return default


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler used by the server and the CLI."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
