# Database Configuration and Session Management

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from functools import wraps
import logging

from config.app_config import DATABASE_URL
from core.errors import Internal

logger = logging.getLogger(__name__)


def build_engine(url: str = DATABASE_URL):
    """Create an engine; SQLite (used in tests and local runs) gets a shared connection."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=False  # Set to True for SQL query logging
    )


# Create engine
engine = build_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Dependency for FastAPI
def get_db() -> Session:
    """
    FastAPI dependency to get database session.
    Usage: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


_UOW_DEPTH = "uow_depth"


def transactional(method=None, *, retry: bool = True):
    """
    Run a service method as one unit of work on ``self.db``.

    Commits when the outermost call returns and rolls back on any exception.
    Calls made while a unit of work is already open join it instead of
    committing early. A dropped connection is retried once; any other storage
    failure surfaces as Internal.

    Methods that call the payment gateway use ``@transactional(retry=False)``:
    running them again would repeat the gateway call.
    """
    if method is None:
        return lambda m: transactional(m, retry=retry)

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        db: Session = self.db
        depth = db.info.get(_UOW_DEPTH, 0)
        if depth:
            db.info[_UOW_DEPTH] = depth + 1
            try:
                return method(self, *args, **kwargs)
            finally:
                db.info[_UOW_DEPTH] = depth

        for attempt in (1, 2):
            db.info[_UOW_DEPTH] = 1
            try:
                result = method(self, *args, **kwargs)
                db.commit()
                return result
            except DBAPIError as e:
                db.rollback()
                if retry and e.connection_invalidated and attempt == 1:
                    logger.warning(f"Connection dropped during {method.__name__}, retrying once")
                    continue
                logger.error(f"Storage failure in {method.__name__}: {e}")
                raise Internal("Storage failure, please retry later") from e
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Storage failure in {method.__name__}: {e}")
                raise Internal("Storage failure, please retry later") from e
            except Exception:
                db.rollback()
                raise
            finally:
                db.info[_UOW_DEPTH] = 0

    return wrapper


def init_db(bind=None):
    """
    Initialize database tables.
    Run this once to create all tables.
    """
    from database.models import Base
    from database import marketplace_models  # noqa: F401  registers lifecycle tables
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created successfully")

if __name__ == "__main__":
    # Create tables when run directly
    init_db()
