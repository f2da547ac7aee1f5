from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from cosmic_mind.core.config import settings


def make_engine(database_url: str):
    """Create an engine, relaxing SQLite's same-thread check for the threadpool"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
