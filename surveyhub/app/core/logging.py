"""Setting up the file logger for the service.

Attaches a UTF-8 file handler at `{logging_dir}/{filename}` to the package
logger once; module loggers (`logging.getLogger(__name__)`) inherit it.
"""
import os
from logging import FileHandler, Formatter, getLogger, INFO
from surveyhub.app.core.config import settings


def configure_logging(logging_dir=settings.LOG_PATH, filename='surveyhub.log'):
    logger = getLogger("surveyhub")

    if logger.handlers:
        return logger

    os.makedirs(logging_dir, exist_ok=True)
    log_path = os.path.join(logging_dir, filename)

    logger.setLevel(INFO)

    handler = FileHandler(log_path, mode="a", encoding="utf-8", delay=True)
    handler.setFormatter(Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)

    return logger
