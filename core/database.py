from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from core.config import settings


def build_engine(url: str, echo: bool = False):
    if url.startswith("sqlite"):
        # sessions are handed across the threadpool FastAPI runs sync routes in
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False, "timeout": 5})
    return create_engine(url, echo=echo, pool_pre_ping=True, pool_size=10, max_overflow=20)


engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
