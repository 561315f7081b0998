"""SQLAlchemy engine, session factory and declarative base.

SQLite (the default and the test backend) gets WAL journaling and foreign
keys on every connection; server databases such as PostgreSQL get
``pool_pre_ping`` so stale pooled connections are replaced transparently.
Tables are created from ORM metadata at startup.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from mvp_studio.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


def enable_sqlite_pragmas(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()


def build_engine(url: str, *, echo: bool = False, **engine_kwargs) -> Engine:
    """Create an engine for *url* with the per-backend connection settings.

    Extra keyword arguments (``poolclass`` for in-memory test databases, for
    example) go straight to ``create_engine``.
    """
    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    if not is_sqlite:
        engine_kwargs.setdefault("pool_pre_ping", True)

    engine = create_engine(url, connect_args=connect_args, echo=echo, **engine_kwargs)
    if is_sqlite:
        enable_sqlite_pragmas(engine)
    return engine


_settings = get_settings()
engine = build_engine(_settings.DATABASE_URL, echo=_settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency that yields a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind: Engine | None = None):
    """Create every table registered on ``Base`` (idempotent)."""
    import mvp_studio.models  # noqa: F401  (registers every mapper on Base)

    Base.metadata.create_all(bind=bind or engine)
