"""
Tests for configuration and error payloads.
"""
import json
import logging
import os
import tempfile
import unittest
from unittest.mock import patch

from inventory_ledger.config import config
from inventory_ledger.db import Database
from inventory_ledger.logging_setup import AUDIT_NAME, logger as log_manager, get_logger, audit_logger
from inventory_ledger.exceptions import (
    InsufficientStockError, NotFoundError, ValidationError, TransactionFailureError, InvalidThresholdError,
    ConfigError, DatabaseError
)


class TestConfig(unittest.TestCase):
    def test_database_url_env_override(self):
        with patch.dict(os.environ, {'DATABASE_URL': 'sqlite:///ledger.db'}):
            self.assertEqual(config.get_db_url(), 'sqlite:///ledger.db')

    def test_database_url_quotes_password(self):
        env = {k: v for k, v in os.environ.items() if k != 'DATABASE_URL'}
        with patch.dict(os.environ, env, clear=True), \
             patch.object(config, 'get', side_effect=lambda section, key, default=None: {
                 'password': 'p@ss:word'
             }.get(key, default)):
            self.assertIn('p%40ss%3Aword@', config.get_db_url())

    def test_inventory_rules(self):
        rules = config.inventory_rules
        self.assertEqual(rules['default_low_stock_threshold'], 10)
        self.assertEqual(rules['alert_cooldown_days'], 1)

    def test_typed_getters(self):
        self.assertEqual(config.get_int('API', 'port'), 5000)
        self.assertEqual(config.get_int('API', 'missing', 3), 3)
        self.assertFalse(config.get_boolean('DATABASE', 'echo'))

    def database_settings(self, **overrides):
        settings = dict(overrides)
        return patch.object(config, 'get', side_effect=lambda section, key, default=None: settings.get(key, default))

    def test_sqlite_engine_uses_database_as_path(self):
        env = {k: v for k, v in os.environ.items() if k != 'DATABASE_URL'}
        with patch.dict(os.environ, env, clear=True), self.database_settings(engine='sqlite', database='ledger.db'):
            self.assertEqual(config.get_db_url(), 'sqlite:///ledger.db')

    def test_postgresql_driver_variant(self):
        env = {k: v for k, v in os.environ.items() if k != 'DATABASE_URL'}
        with patch.dict(os.environ, env, clear=True), self.database_settings(engine='postgresql+psycopg2'):
            self.assertTrue(config.get_db_url().startswith('postgresql+psycopg2://postgres:'))

    def test_unsupported_engine_is_config_error(self):
        env = {k: v for k, v in os.environ.items() if k != 'DATABASE_URL'}
        with patch.dict(os.environ, env, clear=True), self.database_settings(engine='oracle'):
            with self.assertRaises(ConfigError) as ctx:
                config.get_db_url()
        self.assertEqual(ctx.exception.code, 'CONFIG_ERROR')
        self.assertEqual(ctx.exception.details['value'], 'oracle')

    def test_log_config_has_audit_file(self):
        self.assertEqual(config.log_config['audit_file'], 'audit.log')
        self.assertIn('%(action)s', config.log_config['audit_format'])


class TestDatabaseInitialize(unittest.TestCase):
    def test_unknown_dialect_is_database_error(self):
        database = Database()
        with self.assertRaises(DatabaseError) as ctx:
            database.initialize('nosuchdialect://localhost/ledger')
        self.assertEqual(ctx.exception.code, 'DATABASE_ERROR')
        self.assertIsNotNone(ctx.exception.__cause__)


class TestAuditTrail(unittest.TestCase):
    def test_audit_entries_carry_user_and_action(self):
        with self.assertLogs(AUDIT_NAME, level='INFO') as captured:
            log_manager.audit(7, 'INVENTORY_ADJUSTED', {'inventory_id': 3, 'reason': 'count'})
            log_manager.audit(None, 'LOW_STOCK_ALERT_SENT')

        first, second = captured.records
        self.assertEqual(first.user_id, 7)
        self.assertEqual(first.action, 'INVENTORY_ADJUSTED')
        self.assertEqual(json.loads(first.getMessage()), {'inventory_id': 3, 'reason': 'count'})
        self.assertIsNone(second.user_id)
        self.assertEqual(second.getMessage(), '{}')

    def test_audit_file_format(self):
        with tempfile.TemporaryDirectory() as directory:
            handler = log_manager.build_audit_handler(directory)
            audit = logging.getLogger(f'{AUDIT_NAME}.file_check')
            audit.propagate = False
            audit.addHandler(handler)
            try:
                audit.info('{"sku": "BP-100"}', extra={'action': 'PRODUCT_CREATED', 'user_id': None})
                audit.info('plain')
            finally:
                audit.removeHandler(handler)
                handler.close()

            with open(os.path.join(directory, config.log_config['audit_file'])) as f:
                lines = f.read().splitlines()

        self.assertTrue(lines[0].endswith('user=system action=PRODUCT_CREATED {"sku": "BP-100"}'))
        self.assertTrue(lines[1].endswith('user=system action=- plain'))

    def test_module_loggers_are_namespaced(self):
        self.assertEqual(get_logger('db').name, 'inventory_ledger.db')
        self.assertEqual(audit_logger().name, AUDIT_NAME)



class TestErrorPayloads(unittest.TestCase):
    def test_insufficient_stock_payload(self):
        error = InsufficientStockError(42, 15, 20)
        self.assertEqual(error.http_status, 409)
        self.assertEqual(error.to_dict(), {
            'error': 'InsufficientStockError',
            'message': 'Insufficient inventory for product ID 42. Available: 15, Required: 20',
            'code': 'INSUFFICIENT_STOCK',
            'details': {'product_id': 42, 'available': 15, 'required': 20}
        })

    def test_status_codes(self):
        self.assertEqual(ValidationError().http_status, 400)
        self.assertEqual(InvalidThresholdError().http_status, 400)
        self.assertEqual(NotFoundError().http_status, 404)
        self.assertEqual(TransactionFailureError().http_status, 500)
        self.assertEqual(TransactionFailureError().message, 'Internal server error')


if __name__ == '__main__':
    unittest.main()
