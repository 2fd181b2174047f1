"""Database configuration and initialization."""
from sqlalchemy import create_engine, BigInteger, Integer
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# BIGINT ids on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine = create_engine(
        database_uri,
        echo=app.config.get('SQLALCHEMY_ECHO', False),
        **app.config.get('SQLALCHEMY_ENGINE_OPTIONS', {})
    )

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_tables():
    """Create every table known to the models (used by `flask init-db` and tests)."""
    import deepstaq.models  # noqa: F401  (registers mappers)
    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drop every table known to the models."""
    import deepstaq.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def is_missing_table_error(error: Exception) -> bool:
    """
    Check whether a datastore error means the schema has not been applied yet.

    PostgreSQL reports SQLSTATE 42P01 (undefined_table); SQLite says "no such table".
    """
    if not isinstance(error, (OperationalError, ProgrammingError)):
        return False
    orig = getattr(error, 'orig', None)
    if getattr(orig, 'sqlstate', None) == '42P01' or getattr(orig, 'pgcode', None) == '42P01':
        return True
    message = str(error).lower()
    return 'no such table' in message or ('relation' in message and 'does not exist' in message)


def get_session():
    """Get database session."""
    return db_session
