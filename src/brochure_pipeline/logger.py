import logging
import os
from pathlib import Path
import sys
import tempfile

from dotenv import load_dotenv

load_dotenv()

_loggers = {}

LOG_FORMAT = "[%(asctime)s] - %(name)s %(levelname)s %(message)s"


def setup_logger(name="brochure_pipeline", level=logging.INFO, tofile=False, filename=None):
    """
    Configure a named logger once and return it on every later call.
    The logger stops propagating so records are not printed twice

    Args
        name: name of the logger
        level: level name or number
        tofile: also write to a file
        filename: log file name, falls back to LOG_FILE_PATH
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    numeric_level = level if isinstance(level, int) else getattr(logging, str(level).upper(), logging.INFO)
    logger.setLevel(numeric_level)
    formatter = logging.Formatter(LOG_FORMAT)

    if logger.handlers:
        _loggers[name] = logger
        return logger

    env_to_file = os.getenv("LOG_TO_FILE", "false").lower() in {"1", "true", "yes", "on"}
    target_file = filename or os.getenv("LOG_FILE_PATH", "brochure_pipeline.log")

    if (tofile or env_to_file) and target_file:
        final_path = _writable_log_path(Path(target_file))
        if final_path is None:
            logger.error("File logging disabled: no writable directory found for %s", target_file)
        else:
            try:
                file_handler = logging.FileHandler(final_path)
                file_handler.setFormatter(formatter)
                logger.addHandler(file_handler)
            except OSError:
                logger.exception("File logging disabled: cannot open %s", final_path)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    logger.propagate = False

    _loggers[name] = logger
    return logger


def _writable_log_path(target: Path):
    """Pick the first writable directory for the log file."""
    if target.is_absolute() and os.access(target.parent, os.W_OK):
        return target
    for candidate in (target.parent, Path("."), Path(tempfile.gettempdir())):
        if candidate.is_dir() and os.access(candidate, os.W_OK):
            return candidate / target.name
    return None
