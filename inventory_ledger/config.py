import os
import configparser
import urllib.parse
from pathlib import Path

from inventory_ledger.exceptions import ConfigError

class Config:
    """Configuration manager for the Inventory Ledger."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_path = Path(os.environ.get('INVENTORY_LEDGER_CONFIG', 'config/settings.ini'))
        self._config = configparser.ConfigParser(interpolation=None)

        # Defaults first, the settings file overrides them
        self._load_defaults()
        if self._config_path.exists():
            self._config.read(self._config_path)

        self._initialized = True

    def _load_defaults(self):
        """Load default configuration values."""
        self._config['DATABASE'] = {
            'engine': 'postgresql',
            'host': 'localhost',
            'port': '5432',
            'database': 'motorcycle_parts_db',
            'username': 'postgres',
            'password': 'postgres',
            'pool_size': '10',
            'max_overflow': '20',
            'pool_timeout': '30',
            'pool_recycle': '1800',
            'echo': 'False'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True',
            'file_output': 'True',
            'audit_file': 'audit.log',
            'audit_format': '%(asctime)s user=%(user_id)s action=%(action)s %(message)s'
        }

        self._config['INVENTORY'] = {
            'default_low_stock_threshold': '10',
            'alert_cooldown_days': '1'
        }

        self._config['API'] = {
            'host': '127.0.0.1',
            'port': '5000',
            'user_header': 'X-User-Id'
        }

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_db_url(self):
        """Generate SQLAlchemy database URL.

        The DATABASE_URL environment variable, then DATABASE.url, take
        precedence over the individual connection settings.

        Raises:
            ConfigError: If DATABASE.engine is neither PostgreSQL nor SQLite
        """
        url = os.environ.get('DATABASE_URL') or self.get('DATABASE', 'url')
        if url:
            return url

        engine = self.get('DATABASE', 'engine', 'postgresql')
        database = self.get('DATABASE', 'database', 'motorcycle_parts_db')

        # sqlite needs only a file path
        if engine == 'sqlite':
            return f"sqlite:///{database}"
        if not engine.startswith('postgresql'):
            raise ConfigError(
                f"Unsupported database engine: {engine}",
                details={'section': 'DATABASE', 'key': 'engine', 'value': engine}
            )

        username = self.get('DATABASE', 'username', 'postgres')
        # URL encode the password to handle special characters
        password = urllib.parse.quote_plus(self.get('DATABASE', 'password', 'postgres'))
        host = self.get('DATABASE', 'host', 'localhost')
        port = self.get('DATABASE', 'port', '5432')

        return f"{engine}://{username}:{password}@{host}:{port}/{database}"

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True),
            'file_output': self.get_boolean('LOGGING', 'file_output', True),
            'audit_file': self.get('LOGGING', 'audit_file', 'audit.log'),
            'audit_format': self.get(
                'LOGGING', 'audit_format', '%(asctime)s user=%(user_id)s action=%(action)s %(message)s'
            )
        }

    @property
    def inventory_rules(self):
        """Get inventory business rules."""
        return {
            'default_low_stock_threshold': self.get_int('INVENTORY', 'default_low_stock_threshold', 10),
            'alert_cooldown_days': self.get_int('INVENTORY', 'alert_cooldown_days', 1)
        }

    @property
    def api_config(self):
        """Get API server configuration."""
        return {
            'host': self.get('API', 'host', '127.0.0.1'),
            'port': self.get_int('API', 'port', 5000),
            'user_header': self.get('API', 'user_header', 'X-User-Id')
        }

# Global config instance
config = Config()
