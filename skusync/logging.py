import sys
from loguru import logger
from skusync.config import get_config

_configured_level = None

class AppLogger:
    """Global logger configuration for the application.

    Sets the log level from get_config().log_level. The sink is only
    replaced when the configured level changes, so handlers added by callers
    (tests, hosts) survive repeated get_logger() calls.
    """
    def __init__(self) -> None:
        global _configured_level
        log_level = get_config().log_level.upper()
        if _configured_level != log_level:
            logger.remove()
            logger.add(
                sink=sys.stderr,
                level=log_level,
                format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
            )
            _configured_level = log_level
        self.logger = logger

    def get_logger(self, name: str = None):
        """Get the configured logger instance.

        Args:
            name (str, optional): Name for the logger context. Defaults to None.
        Returns:
            loguru.Logger: The configured logger instance.
        """
        if name:
            return self.logger.bind(name=name)
        return self.logger

def get_logger(name: str = None):
    """Get an application logger using the latest config."""
    return AppLogger().get_logger(name)
