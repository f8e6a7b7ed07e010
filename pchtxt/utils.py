"""General utility functions."""
from __future__ import annotations

import logging

LOG_FORMAT = "[%(levelname)s] %(name)s - %(message)s"


def enable_logging( level: str = "WARNING" ) -> None:
    """Enable sending logs to stderr. Useful for shell sessions.

    level
        Logging threshold, as defined in the logging module of the Python
        standard library. Defaults to 'WARNING'.
    """
    log = logging.getLogger( "pchtxt" )
    log.setLevel( level )
    out = logging.StreamHandler()
    out.setLevel( level )
    form = logging.Formatter( LOG_FORMAT )
    out.setFormatter( form )
    log.addHandler( out )
