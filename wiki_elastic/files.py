"""
wiki_elastic.files — Dump and resource file helpers.
"""

import bz2
from pathlib import Path
from typing import IO, Optional

from wiki_elastic.log import get_logger

logger = get_logger(__name__)


def open_compressed_file(path) -> IO[bytes]:
    """
    Open a ``.bz2`` Wikipedia dump for reading.  ``bz2`` handles both single
    and multistream dumps (concatenated streams) transparently.
    """
    logger.debug("Opening compressed input stream %s", path)
    return bz2.open(path, "rb")


def close_compressed_file(stream: Optional[IO[bytes]]) -> None:
    if stream is not None:
        logger.debug("Closing compressed input stream")
        stream.close()


def get_file_content(path) -> Optional[str]:
    """Return the UTF-8 text of ``path``, or None (logged) when it cannot be read."""
    if path is None:
        return None
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Failed loading file %s: %s", path, e)
        return None
