"""
wiki_elastic.log — Logging setup shared by every module.

    from wiki_elastic.log import get_logger
    logger = get_logger(__name__)
"""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s — %(message)s"


def configure_logging(level: int = logging.INFO, fmt: str = DEFAULT_FORMAT, stream=sys.stdout):
    """
    Configure the root handler once, early (e.g. from a script entrypoint).
    Calling it again only changes the level; handlers are never duplicated.
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(handler)

    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
