from __future__ import annotations

from typing import Dict

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from rental_inventory.database import engine as default_engine


def check_database_health(engine: Engine = default_engine) -> Dict[str, str]:
    """Run a trivial query to confirm the stock tables are reachable."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return {"status": "UP"}
    except SQLAlchemyError as exc:
        return {"status": "DOWN", "detail": str(exc)}
