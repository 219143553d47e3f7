# core/log_config.py

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = logging.WARNING) -> None:
    """
    Configures root logging for the CLI.

    Args:
        level (str | int): A level name such as "INFO" or a `logging` level constant.

    Raises:
        ValueError: If `level` is an unknown level name.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())

        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")

        level = resolved

    logging.basicConfig(level=level, format=LOG_FORMAT)
    # urllib3 is noisy at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
