# secureshare/logger.py
import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
PACKAGE_LOGGER = "secureshare"


def get_logger(name: str) -> logging.Logger:
    """
    Return a module logger. Handlers are configured once by configure_logging().
    """
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """
    Install the console handler on first call and apply the level from Settings
    to the package loggers.
    """
    if not logging.getLogger().handlers:
        logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger(PACKAGE_LOGGER).setLevel(level.upper())
