"""
Command-line entry point.

Run: python -m trellis examples/showcase.py --port 4567
"""

from typing import List, Optional
import argparse
import importlib.util
import logging
import sys
from pathlib import Path

from .config import Settings, configure_logging
from .server import App

logger = logging.getLogger(__name__)


def load_app(path: str, attr: str = "app") -> App:
    """Import the file at ``path`` and return its ``App`` instance."""
    file = Path(path)
    if not file.is_file():
        raise FileNotFoundError(f"no such file: {path}")
    spec = importlib.util.spec_from_file_location(file.stem, file)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot load {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)

    app = getattr(module, attr, None)
    if not isinstance(app, App):
        raise LookupError(f"{path} defines no trellis App named {attr!r}")
    return app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trellis", description="Run a Trellis app.")
    parser.add_argument("path", help="Python file defining the app")
    parser.add_argument("--attr", default="app", help="name of the App instance (default: app)")
    parser.add_argument("--host", default=None, help="bind address (env TRELLIS_HOST)")
    parser.add_argument("--port", type=int, default=None, help="port (env TRELLIS_PORT)")
    parser.add_argument("--log-level", default=None, help="logging level (env TRELLIS_LOG_LEVEL)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    configure_logging(args.log_level or settings.log_level)

    try:
        app = load_app(args.path, args.attr)
    except (FileNotFoundError, ImportError, LookupError) as e:
        logger.error("%s", e)
        return 2

    app.run(host=args.host, port=args.port)
    return 0
