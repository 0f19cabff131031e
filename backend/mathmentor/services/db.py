# mathmentor/services/db.py
import logging
from contextlib import contextmanager
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.engine import URL, make_url

from mathmentor.config import settings

logger = logging.getLogger(__name__)

# ---- Single source of truth for Base (models must import from here)
Base = declarative_base()

def _build_url() -> URL:
    if settings.DATABASE_URL:
        return make_url(settings.DATABASE_URL)
    # Fail fast if host is blank
    if not settings.DB_HOST:
        raise RuntimeError("[DB] DB_HOST is empty! Check backend/.env")
    # Build URL safely (handles '@' in password)
    return URL.create(
        drivername="postgresql+psycopg",   # psycopg3
        username=settings.DB_USER,
        password=settings.DB_PASSWORD,
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
    )

def _mask(u: URL) -> str:
    user = (u.username or "") + (":" if u.username else "")
    host = u.host or "<NONE>"
    port = f":{u.port}" if u.port else ""
    db = f"/{u.database}" if u.database else ""
    return f"{u.drivername}://{user}****@{host}{port}{db}"

url = _build_url()
logger.info("[DB] Using %s", _mask(url))

engine = create_engine(url, pool_pre_ping=True, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)

if url.get_backend_name() == "sqlite":
    # sqlite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    @event.listens_for(engine, "connect")
    def _sqlite_fk_on(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

@contextmanager
def get_session():
    """Yield a SQLAlchemy session as a context manager."""
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()

def init_db():
    """Ping DB, import models to register metadata, then create tables."""
    logger.info("[DB] init_db: starting connection test…")
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("[DB] init_db: connection OK, creating tables if missing…")

    # IMPORTANT: import models INSIDE this function to avoid circular imports
    import mathmentor.models.document  # noqa: F401
    import mathmentor.models.question  # noqa: F401
    import mathmentor.models.answer  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("[DB] init_db: tables ensured.")
