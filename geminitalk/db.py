import logging
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session, declarative_base
from .config import Config

logger = logging.getLogger(__name__)

engine = None
SessionLocal = scoped_session(sessionmaker(autoflush=False))
Base = declarative_base()

def init_db(url=None):
    """Bind the session factory to ``url`` and create missing tables."""
    global engine
    url = url or Config.SQLALCHEMY_DATABASE_URI
    if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    # import for side effect: registers the tables on Base.metadata
    from . import models  # noqa: F401

    SessionLocal.remove()
    if engine is not None:
        engine.dispose()
    engine = create_engine(url, future=True, echo=False, pool_pre_ping=True)
    SessionLocal.configure(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))
    return engine
