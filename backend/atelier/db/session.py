"""
Database session management
"""
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from atelier.core.settings import settings

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if settings.is_sqlite else {}

engine = create_engine(
    settings.database_url,
    echo=False,  # Set to True for SQL query logging
    pool_pre_ping=True,
    connect_args=connect_args,
)

if settings.is_sqlite:
    @event.listens_for(engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency for getting database session

    Usage in FastAPI endpoints:
        @router.get("/bespoke-orders")
        def list_orders(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_models() -> None:
    """Create any missing tables. Development convenience only."""
    import atelier.models  # noqa: F401 - registers tables on Base.metadata
    from atelier.db.base import Base

    logger.info("Creating missing database tables")
    Base.metadata.create_all(bind=engine)
