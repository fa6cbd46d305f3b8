import logging

from learnlite.core.exceptions import ConfigurationError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def configure_logging(level: str = "info") -> None:
    """Configures the root logger once for the whole process."""
    try:
        resolved = _LEVELS[level.strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Invalid LOG_LEVEL value: {level}. Valid values are: error, warning, info, debug"
        ) from None

    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # SQLAlchemy echoes every statement at INFO
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
