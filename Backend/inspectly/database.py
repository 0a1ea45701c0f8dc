import os
import urllib.parse
import logging
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.pool import StaticPool

from inspectly.realtime import ChangeFeed, bind_session_events

load_dotenv()

# Database configuration (env defaults)
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_USER = os.getenv("DB_USER", "root")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_NAME = os.getenv("DB_NAME", "inspectly")
DB_PORT = int(os.getenv("DB_PORT", 3306))

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

password_enc = urllib.parse.quote_plus(DB_PASSWORD)
SQLALCHEMY_DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"mysql+pymysql://{DB_USER}:{password_enc}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)


def build_engine(url: str):
    """Create the engine; SQLite URLs get a shared single connection for in-memory use."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(
        url,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )


engine = build_engine(SQLALCHEMY_DATABASE_URL)

Base = declarative_base()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

# Change notifications for committed rows; stores subscribe per organization.
feed = ChangeFeed()
bind_session_events(feed, SessionLocal)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create every ORM table that is missing."""
    # models register themselves on Base.metadata when imported
    from inspectly.models import (  # noqa: F401
        organization_model,
        user_model,
        login_session_model,
        password_reset_model,
        template_model,
        configuration_model,
        inspection_model,
    )

    target = bind or engine
    try:
        Base.metadata.create_all(bind=target)
        logger.info("Database tables ensured (%s).", target.url.render_as_string(hide_password=True))
    except Exception:
        logger.exception("ERROR: Could not create database tables.")
        raise
