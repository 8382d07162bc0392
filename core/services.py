"""
Base service class.
Services hold the lease and billing rules and call repositories for data access.
"""
import logging


class BaseService:
    """Shared logging helpers; the logger is named after the service's module"""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__module__)

    def log_info(self, message: str, **context):
        self.logger.info(f"{message} | Context: {context}")

    def log_warning(self, message: str, **context):
        self.logger.warning(f"{message} | Context: {context}")

    def log_error(self, message: str, error: Exception = None, **context):
        """Log error message with context; pass error to include the traceback"""
        if error:
            self.logger.error(f"{message} | Context: {context}", exc_info=error)
        else:
            self.logger.error(f"{message} | Context: {context}")
