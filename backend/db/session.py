"""Database session factory for the sql store. DATABASE_URL selects the database."""
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def make_sessionmaker(database_url: str, create_tables: bool = False) -> sessionmaker:
    """Session factory bound to database_url; create_tables is for sqlite files and tests."""
    engine = create_engine(database_url, pool_pre_ping=True)
    if create_tables:
        Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
