"""
Database configuration and session management using SQLAlchemy.
"""

import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Load environment variables
load_dotenv()

# Database URL from environment
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pixelgrid.db")

# Base class for models
Base = declarative_base()


def make_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine, with pooling options for server databases."""
    echo = os.getenv("DEBUG", "false").lower() == "true"

    if url.startswith("sqlite"):
        return create_engine(
            url, echo=echo, connect_args={"check_same_thread": False}
        )

    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=20,
        echo=echo,
    )


engine = make_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    """
    Initialize the database by creating all tables.

    Called on application startup when no store is injected.
    """
    # Register the ORM tables on Base.metadata
    import pixelgrid.db_models  # noqa: F401

    Base.metadata.create_all(bind=bind)
