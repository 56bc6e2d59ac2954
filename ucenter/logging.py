"""
Logging for the UCenter gateway.

Provides :func:`getLogger`, a thin wrapper around the standard library
logger that attaches a JSON formatter and picks up the log level from the
``LOGLEVEL`` setting. Use it the same way you would use
:func:`logging.getLogger`:

.. code-block:: python

   from ucenter import logging
   logger = logging.getLogger(__name__)

"""

import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from . import config

FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'
RENAME_FIELDS = {'levelname': 'level', 'asctime': 'timestamp'}


def _get_level() -> int:
    try:
        return int(config.LOGLEVEL)
    except (TypeError, ValueError):
        return logging.getLevelName(str(config.LOGLEVEL).upper())


def getLogger(name: str, stream: Optional[object] = None) -> logging.Logger:
    """
    Get a logger with JSON formatting.

    Parameters
    ----------
    name : str
        Dotted name of the logger, usually ``__name__``.
    stream : file-like
        Where to write records. Defaults to ``sys.stderr``.

    Returns
    -------
    :class:`logging.Logger`

    """
    logger = logging.getLogger(name)
    if not any(getattr(h, '_ucenter', False) for h in logger.handlers):
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(
            jsonlogger.JsonFormatter(FORMAT, rename_fields=RENAME_FIELDS)
        )
        handler._ucenter = True     # type: ignore
        logger.addHandler(handler)
    logger.setLevel(_get_level())
    logger.propagate = False
    return logger


def redact(value: Optional[str], keep: int = 4) -> str:
    """Shorten an identifier for log output."""
    if not value:
        return ''
    value = str(value)
    if len(value) <= keep:
        return '*' * len(value)
    return value[:keep] + '*' * min(len(value) - keep, 8)
