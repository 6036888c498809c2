from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db_session
from .store import SqlStore, Store


def get_db() -> Session:
    yield from get_db_session()


def get_store(db: Session = Depends(get_db)) -> Store:
    return SqlStore(db)
