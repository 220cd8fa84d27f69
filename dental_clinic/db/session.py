# dental_clinic/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from dental_clinic.core.config import settings


def build_engine(db_uri: str) -> Engine:
    if db_uri.startswith("sqlite"):
        return create_engine(
            db_uri,
            connect_args={"check_same_thread": False},
            echo=settings.SQL_ECHO,
            future=True,
        )
    return create_engine(
        db_uri,
        pool_pre_ping=True,
        pool_recycle=280,
        pool_size=10,
        max_overflow=20,
        echo=settings.SQL_ECHO,
        future=True,
    )


engine: Engine = build_engine(settings.SQLALCHEMY_DATABASE_URI)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)
