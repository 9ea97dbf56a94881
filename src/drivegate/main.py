# main.py
import argparse
import logging

import uvicorn

from .app import create_app
from .config import get_settings


def setup_logging(settings):
    """Configures logging to file and console explicitly."""
    log_level_name = settings.LOG_LEVEL.upper()

    # Get the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_name)

    # Clear any existing handlers to prevent duplicate logs on re-runs or implicit configs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    try:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except IOError as e:
        # Log to console if file logging fails (e.g., permissions)
        root_logger.error(f"Failed to set up file logging to {settings.LOG_FILE}: {e}")

    # Reducing "noise" from third-party libraries
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main(argv=None):
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Serve cloud storage providers over HTTP."
    )
    parser.add_argument("--host", default=settings.HOST, help="Interface to bind to.")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Port to listen on.")
    parser.add_argument(
        "--reload", action="store_true", help="Restart the server when the code changes."
    )
    args = parser.parse_args(argv)

    setup_logging(settings)
    logging.info(f"Starting drivegate on {args.host}:{args.port}.")

    if args.reload:
        # Reloading needs an import string instead of an app instance
        uvicorn.run(
            "drivegate.app:create_app",
            factory=True,
            host=args.host,
            port=args.port,
            reload=True,
            log_config=None,
        )
    else:
        uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
