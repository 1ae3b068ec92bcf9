"""
Logging setup shared by the CLI and the HTTP server.
"""

import logging
from typing import Union

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level: Union[str, int] = logging.WARNING) -> None:
    """Set up logging configuration for the application."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        force=True,
    )
