import logging
import sys

logger = logging.getLogger("dopri")
logger.addHandler(logging.NullHandler())


def setup_logging(level=logging.INFO, format_string='%(asctime)s - %(name)s - %(levelname)s - %(message)s'):
    """Configures the package logger to write to stdout."""
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)  # Explicitly set stream to stdout
        handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
