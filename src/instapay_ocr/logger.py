import logging
import os
from datetime import datetime

LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.getcwd(), "logs"))
LOG_FILE = f"{datetime.now().strftime('%Y_%m_%d_%H_%M_%S')}.log"
LOG_FORMAT = "[ %(asctime)s ] %(lineno)d %(name)s - %(levelname)s - %(message)s"

_configured = False


def _configure_root():
    global _configured
    if _configured:
        return

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    handlers = [logging.StreamHandler()]
    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(LOG_DIR, LOG_FILE)))
    except OSError:
        # Read-only working directory: console logging only
        pass

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Returns a module logger; the first call configures console + file output."""
    _configure_root()
    return logging.getLogger(name)
