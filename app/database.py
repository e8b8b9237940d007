"""Database configuration and initialization."""
from sqlalchemy import create_engine, text
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = None


def _engine_options(app):
    """Pool/driver options depending on the backend."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }
    if database_uri.startswith('sqlite'):
        # Lock waits are bounded by the commit timeout
        options['connect_args'] = {
            'check_same_thread': False,
            'timeout': app.config.get('ORDER_COMMIT_TIMEOUT', 10),
        }
    else:
        options['pool_size'] = 10
        options['max_overflow'] = 20
    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], **_engine_options(app))

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
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
    """Create all tables known to the metadata."""
    # Import models so every table is registered on Base.metadata
    import app.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def ping():
    """Run a trivial query; raises if the database is unreachable."""
    return db_session.execute(text("SELECT 1")).scalar()


def get_session():
    """Get database session."""
    return db_session
