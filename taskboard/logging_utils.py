import logging
import sys

# taskboard.request already writes one access line per request
_QUIET_LOGGERS = ("uvicorn.access",)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the service.

    Format: time level logger message k=v ...
    When a handler is already installed (e.g. by uvicorn) only the level is aligned.
    """
    level = level.upper()
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root.addHandler(handler)
