import logging
import sys

import config


def setup_logging(level: str | None = None) -> None:
    """
    Configure the root logger with a single stderr handler.
    Call once at startup, before the first log line.
    """
    root = logging.getLogger()
    root.setLevel(level or config.LOG_LEVEL)

    # Avoid duplicate output when uvicorn reloads the module
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(handler)

    # The SDK's HTTP client logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
