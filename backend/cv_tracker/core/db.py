from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .config import get_settings

settings = get_settings()


def make_engine(url: str):
    # Queued work runs in worker threads, so SQLite must not pin connections
    # to the thread that opened them.
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)
# Queued tasks close their session before the route serializes the result,
# so loaded attributes must survive the commit.
SessionLocal = sessionmaker(
    bind=engine, autoflush=False, autocommit=False, expire_on_commit=False
)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """
    Session factory used by queued tasks, which open their own session
    inside the admission queue worker instead of borrowing the request's.
    """
    return SessionLocal
