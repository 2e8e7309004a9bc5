"""
SQL store connections for the pizza sales pipeline.

The store is SQLite by default. PostgreSQL is reached through SQLAlchemy's
psycopg2 dialect.
"""
import os
import logging
from sqlalchemy import create_engine
from config import Config

logger = logging.getLogger(__name__)

POSTGRES_TYPES = ('postgresql', 'postgres')


def create_db_engine(config=None):
    """
    Build the engine the snapshot and report tables are written through.

    Raises:
        ValueError: when ``DATABASE.type`` is neither sqlite nor postgresql
    """
    try:
        if config is None:
            config = Config()

        db_config = config.get_database_config()
        engine = create_engine(_connection_url(db_config))
        logger.info(f"Store engine ready: {db_config['type']} database {db_config['name']}")
        return engine
    except Exception as e:
        logger.error(f"Could not create store engine: {str(e)}")
        raise


def _connection_url(db_config):
    db_type = db_config['type']

    if db_type == 'sqlite':
        # SQLite creates the file but not its directory
        db_dir = os.path.dirname(db_config['name'])
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        return f"sqlite:///{db_config['name']}"

    if db_type in POSTGRES_TYPES:
        return (
            f"postgresql+psycopg2://{db_config['user']}:{db_config['password']}"
            f"@{db_config['host']}:{db_config['port']}/{db_config['name']}"
        )

    raise ValueError(f"Unsupported database type: {db_type}")


def init_db(engine, base):
    """Create the source tables that do not exist yet."""
    base.metadata.create_all(engine)
    logger.info(f"Store tables ready: {', '.join(base.metadata.tables)}")
