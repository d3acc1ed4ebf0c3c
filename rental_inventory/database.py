# rental_inventory/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from flask import g

from rental_inventory.config import Config


def build_engine(url: str = Config.DATABASE_URL, **overrides):
    engine_kwargs = {
        "echo": Config.SQL_ECHO,
        "future": True,
        "pool_pre_ping": True,
    }
    if url.startswith("sqlite"):
        # Bounded wait on the database write lock instead of failing fast
        engine_kwargs["connect_args"] = {
            "timeout": Config.DB_LOCK_TIMEOUT_SECONDS,
            "check_same_thread": False,
        }
    else:
        engine_kwargs["pool_size"] = Config.DB_POOL_SIZE
        engine_kwargs["max_overflow"] = Config.DB_MAX_OVERFLOW
    engine_kwargs.update(overrides)
    return create_engine(url, **engine_kwargs)


engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)

Base = declarative_base()

def get_db():
    if 'db' not in g:
        g.db = SessionLocal()
    return g.db

def close_db(e=None):
    try:
        db = g.pop('db', None)
        if db is not None:
            db.close()
    except RuntimeError:
        # Outside of an application context, e.g. during test teardown
        pass
