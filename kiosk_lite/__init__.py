"""kiosk_lite - periodic data-source fetcher and polling API for kiosk dashboards.

The package keeps imports light at the top level so it can be inspected without
pulling in aiohttp or the fetcher stack. Runtime pieces live in submodules.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    This sets a sensible default formatter and level so that import-time errors
    and early startup messages are visible on the console. Callers may adjust
    the level later (e.g. from config).

    The KIOSK_DEBUG environment variable (truthy values: "1", "true", "yes", "on")
    forces DEBUG verbosity so fetcher logs surface without changing code.
    """
    import logging
    import os
    import sys

    from .lite_logging import env_debug_enabled

    if env_debug_enabled():
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure basic handler if no handlers are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        try:
            from colorlog import ColoredFormatter  # type: ignore[import-not-found]

            # HH:MM:SS  LEVEL   logger.name: message
            fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
            log_colors = {
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            }
            formatter = ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors)
        except ImportError:
            fmt = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
            formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")

        handler.setFormatter(formatter)
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Load configuration, apply command line overrides and run the server.

    Args:
        args: Optional argparse namespace with ``config``, ``port`` and ``debug``

    Blocks until SIGINT/SIGTERM. Configuration errors propagate to the caller
    so the CLI can report them and exit non-zero.
    """
    import logging
    import os

    _init_logging(os.environ.get("KIOSK_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from pydantic import ValidationError

    from .config_loader import ConfigError, load_config
    from .server import start_server

    config_path = getattr(args, "config", None) or os.environ.get(
        "KIOSK_CONFIG_PATH", "config.yaml"
    )
    config = load_config(config_path)

    port = getattr(args, "port", None)
    if port is not None:
        try:
            config.server.port = int(port)
        except ValidationError as e:
            raise ConfigError(f"invalid --port {port}: {e}") from e
        logger.debug("Applied command line port override: %d", config.server.port)

    debug_mode = bool(getattr(args, "debug", False))
    logger.info(
        "Starting kiosk_lite with %d section(s) on %s:%d",
        len(config.sections),
        config.server.host,
        config.server.port,
    )
    start_server(config, debug_mode=debug_mode)
