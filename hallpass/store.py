from __future__ import annotations

"""
Store access layer: the three primitives every component talks to.

Components take a ``Store`` argument instead of reaching for a global session, so
tests can hand them a store bound to an in-memory SQLite engine.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, NoReturn, Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.base import Executable

from .errors import ConstraintViolation, InternalFailure


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecResult:
    id: Optional[int]
    changes: int


class Store(Protocol):
    def execute(self, stmt: Executable) -> ExecResult:
        ...

    def fetch_one(self, stmt: Executable) -> Optional[Dict[str, Any]]:
        ...

    def fetch_many(self, stmt: Executable) -> List[Dict[str, Any]]:
        ...


class SqlStore:
    """``Store`` backed by a SQLAlchemy session. Each ``execute`` commits on its own."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def execute(self, stmt: Executable) -> ExecResult:
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except SQLAlchemyError as exc:
            self._fail(exc)
        new_id: Optional[int] = None
        if result.is_insert and result.inserted_primary_key:
            new_id = result.inserted_primary_key[0]
        return ExecResult(id=new_id, changes=result.rowcount)

    def fetch_one(self, stmt: Executable) -> Optional[Dict[str, Any]]:
        try:
            row = self.session.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            self._fail(exc)
        return dict(row) if row is not None else None

    def fetch_many(self, stmt: Executable) -> List[Dict[str, Any]]:
        try:
            rows = self.session.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            self._fail(exc)
        return [dict(r) for r in rows]

    def _fail(self, exc: SQLAlchemyError) -> NoReturn:
        self.session.rollback()
        if isinstance(exc, IntegrityError):
            logger.warning("Constraint violated: %s", exc.orig)
            raise ConstraintViolation() from exc
        logger.exception("Store access failed: %s", exc.__class__.__name__)
        raise InternalFailure() from exc
