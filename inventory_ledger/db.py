from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool

from inventory_ledger.config import config
from inventory_ledger.exceptions import LedgerError, DatabaseError, TransactionFailureError
from inventory_ledger.logging_setup import get_logger

logger = get_logger('db')

def _enable_sqlite_savepoints(engine):
    """Let pysqlite honour SAVEPOINT by taking over BEGIN from the driver."""

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

def create_db_engine(connection_string, echo=False):
    """Create an engine for the given URL.

    PostgreSQL gets the configured connection pool. SQLite gets working
    savepoints, and an in-memory database is shared through a single
    connection so every session sees the same tables.
    """
    url = make_url(connection_string)

    if url.get_backend_name() == 'sqlite':
        kwargs = {'connect_args': {'check_same_thread': False}}
        if url.database in (None, '', ':memory:'):
            kwargs['poolclass'] = StaticPool
        engine = create_engine(connection_string, echo=echo, **kwargs)
        _enable_sqlite_savepoints(engine)
        return engine

    return create_engine(
        connection_string,
        echo=echo,
        pool_size=config.get_int('DATABASE', 'pool_size', 10),
        max_overflow=config.get_int('DATABASE', 'max_overflow', 20),
        pool_timeout=config.get_int('DATABASE', 'pool_timeout', 30),
        pool_recycle=config.get_int('DATABASE', 'pool_recycle', 1800),
        pool_pre_ping=True
    )

class Database:
    """Database connection manager for the Inventory Ledger."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Database, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the database connection if not already initialized."""
        if self._initialized:
            return

        self._engine = None
        self._session_factory = None
        self._session = None
        self._initialized = True

    def initialize(self, connection_string=None):
        """Initialize database connection.

        Args:
            connection_string: Optional database connection string.
                              If not provided, will use configuration.

        Raises:
            DatabaseError: If no engine can be built for the URL
        """
        if connection_string is None:
            connection_string = config.get_db_url()

        echo = config.get_boolean('DATABASE', 'echo', False)

        try:
            engine = create_db_engine(connection_string, echo=echo)
        except SQLAlchemyError as e:
            logger.error(f"Cannot create database engine: {str(e)}")
            raise DatabaseError(f"Cannot create database engine: {type(e).__name__}") from e

        # The previous engine stays usable until the new one exists
        if self._session is not None:
            self._session.remove()
        if self._engine is not None:
            self._engine.dispose()

        self._engine = engine
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        self._session = scoped_session(self._session_factory)

        logger.info(f"Database initialized: {make_url(connection_string).render_as_string(hide_password=True)}")

    def create_all_tables(self):
        """Create all tables defined in the models."""
        from inventory_ledger.models import Base
        Base.metadata.create_all(self.engine)

    def drop_all_tables(self):
        """Drop all tables from the database."""
        from inventory_ledger.models import Base
        Base.metadata.drop_all(self.engine)

    @property
    def session(self):
        """Get the scoped session registry."""
        if self._session is None:
            self.initialize()
        return self._session

    @property
    def engine(self):
        """Get the database engine."""
        if self._engine is None:
            self.initialize()
        return self._engine

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

# Global database instance
db = Database()

@contextmanager
def session_scope():
    """Session scope context manager."""
    with db.session_scope() as session:
        yield session

@contextmanager
def atomic(session, operation=None):
    """Run a multi-step ledger operation inside a savepoint.

    On any error everything staged since the savepoint is rolled back, so
    the session is left exactly as it was before the operation. Ledger
    errors propagate unchanged. Store errors are logged and surfaced as
    TransactionFailureError without their diagnostics.

    Args:
        session: Database session
        operation: Optional operation name for logging
    """
    savepoint = session.begin_nested()
    try:
        yield session
        savepoint.commit()
    except LedgerError:
        savepoint.rollback()
        raise
    except SQLAlchemyError as e:
        savepoint.rollback()
        logger.error(f"Store error during {operation or 'ledger operation'}, rolled back: {str(e)}")
        raise TransactionFailureError(details={'operation': operation} if operation else None) from e
    except Exception:
        savepoint.rollback()
        raise
