import json
import logging
import logging.handlers
from pathlib import Path

from inventory_ledger.config import config

ROOT_NAME = 'inventory_ledger'
AUDIT_NAME = f'{ROOT_NAME}.audit'

class AuditContextFilter(logging.Filter):
    """Fill the audit fields for records logged without them."""

    def filter(self, record):
        if not hasattr(record, 'user_id') or record.user_id is None:
            record.user_id = 'system'
        if not hasattr(record, 'action'):
            record.action = '-'
        return True

class Logger:
    """Logging manager for the Inventory Ledger.

    Module loggers live under the ``inventory_ledger`` namespace. Each one
    writes its own rotating file and propagates to the namespace logger,
    which owns the console handler. The audit trail is a separate logger
    with its own file and format that does not propagate.
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the logger if not already initialized."""
        if self._initialized:
            return

        self._log_config = config.log_config
        self._log_dir = Path(self._log_config['directory'])

        self._configure_namespace()
        self._audit_logger = self._configure_audit_logger()
        self._app_logger = self.get_logger('app')

        self._initialized = True

    def _level(self):
        level_name = self._log_config['level'].upper()
        return getattr(logging, level_name, logging.INFO)

    def _rotating_handler(self, filename, fmt, directory=None):
        directory = Path(directory) if directory is not None else self._log_dir
        directory.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            directory / filename,
            maxBytes=self._log_config['max_size_mb'] * 1024 * 1024,
            backupCount=self._log_config['backup_count']
        )
        handler.setFormatter(logging.Formatter(fmt))
        return handler

    def _configure_namespace(self):
        """Attach the console handler to the package namespace logger."""
        namespace = logging.getLogger(ROOT_NAME)
        namespace.setLevel(self._level())
        namespace.propagate = False

        for handler in namespace.handlers[:]:
            namespace.removeHandler(handler)

        if self._log_config['console_output']:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(self._log_config['format']))
            namespace.addHandler(console_handler)

    def build_audit_handler(self, directory=None):
        """Create the audit trail file handler.

        Args:
            directory: Log directory, defaults to the configured one

        Returns:
            RotatingFileHandler writing LOGGING.audit_file in the audit format
        """
        handler = self._rotating_handler(
            self._log_config['audit_file'], self._log_config['audit_format'], directory
        )
        handler.addFilter(AuditContextFilter())
        return handler

    def _configure_audit_logger(self):
        audit = logging.getLogger(AUDIT_NAME)
        audit.setLevel(logging.INFO)
        audit.propagate = False

        for handler in audit.handlers[:]:
            audit.removeHandler(handler)

        if self._log_config['file_output'] and self._log_config['audit_file']:
            audit.addHandler(self.build_audit_handler())
        else:
            # No audit file, keep the trail on the console
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(self._log_config['audit_format']))
            handler.addFilter(AuditContextFilter())
            audit.addHandler(handler)

        return audit

    def get_logger(self, name):
        """Get a logger with the specified name.

        Args:
            name: Short module name, e.g. 'inventory_service'

        Returns:
            Logger named ``inventory_ledger.<name>``
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(f'{ROOT_NAME}.{name}')
        logger.setLevel(self._level())

        for handler in logger.handlers[:]:
            logger.removeHandler(handler)

        if self._log_config['file_output']:
            logger.addHandler(self._rotating_handler(f"{name}.log", self._log_config['format']))

        # Console output comes from the namespace logger
        logger.propagate = True

        self._loggers[name] = logger
        return logger

    def audit(self, user_id, action, details=None):
        """Write one entry to the audit trail.

        Args:
            user_id: Acting user ID, None for system jobs
            action: Action name
            details: JSON-serialisable details
        """
        self._audit_logger.info(
            json.dumps(details or {}, sort_keys=True, default=str),
            extra={'user_id': user_id, 'action': action}
        )

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception with its stack trace.

        Args:
            logger_name: Logger name
            exception: Exception object
            message: Optional message to include
        """
        logger = self.get_logger(logger_name)
        text = f"{message}: {exception}" if message else str(exception)
        logger.error(text, exc_info=(type(exception), exception, exception.__traceback__))

    @property
    def app_logger(self):
        """Get the application logger."""
        return self._app_logger

    @property
    def audit_logger(self):
        """Get the audit trail logger."""
        return self._audit_logger

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)

def audit_logger():
    """Get the audit trail logger."""
    return logger.audit_logger

def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    logger.log_exception(logger_name, exception, message)
