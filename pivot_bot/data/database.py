from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from ..app.config import Config
from ..utils.logger import logger


def make_engine(url: str):
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


# Create the SQLAlchemy engine
engine = make_engine(Config.DATABASE_URL)

# Create a configured "Session" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create a base class for our models
Base = declarative_base()


def create_tables(bind=None):
    """Create all tables in the database."""
    # Import the models so they are registered with the Base metadata
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
    logger.info("[DB] Database tables ready")


def make_session_factory(url: str) -> sessionmaker:
    """Build a session factory for another database URL (tests, scripts)."""
    other = make_engine(url)
    create_tables(other)
    return sessionmaker(autocommit=False, autoflush=False, bind=other)


if __name__ == "__main__":
    create_tables()
