# meditrack/logging_config.py
"""
Structured (JSON) logging for the console.
One record per line on stdout, ready for any log shipper.
"""

import logging
import sys
from pythonjsonlogger import jsonlogger

from meditrack.config import settings


def setup_logging():
    """Configure JSON logging on the root logger"""

    logHandler = logging.StreamHandler(sys.stdout)

    formatter = jsonlogger.JsonFormatter(
        fmt='%(asctime)s %(name)s %(levelname)s %(message)s %(pathname)s %(lineno)d',
        datefmt='%Y-%m-%dT%H:%M:%S'
    )

    logHandler.setFormatter(formatter)

    logger = logging.getLogger()
    if not any(isinstance(h.formatter, jsonlogger.JsonFormatter) for h in logger.handlers):
        logger.addHandler(logHandler)
    logger.setLevel(settings.log_level.upper())

    # Quiet down third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return logger


logger = setup_logging()
