"""
Document store operations with optimistic concurrency.

Tournaments and wallets carry a version column; SQLAlchemy makes every
UPDATE/DELETE of such a row conditional on the version that was read. A
lost race surfaces as StaleDataError, which is reported here either as an
UpdateOutcome.CONFLICT result or as a WriteConflict exception.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from arena.core.errors import ConcurrencyError, WriteConflict

logger = logging.getLogger(__name__)

M = TypeVar("M")
R = TypeVar("R")


class UpdateOutcome(str, Enum):
    APPLIED = "applied"
    CONFLICT = "conflict"
    MISSING = "missing"


@dataclass
class UpdateResult:
    outcome: UpdateOutcome
    document: Optional[Any] = None

    @property
    def applied(self) -> bool:
        return self.outcome == UpdateOutcome.APPLIED


@contextmanager
def unit_of_work(db: Session):
    """Commit everything done in the block, or roll all of it back"""
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise WriteConflict(str(e)) from e
    except Exception:
        db.rollback()
        raise


class DocumentStore:
    """Get, query and conditionally update/delete documents"""

    def get(self, db: Session, model: Type[M], ident: Any) -> Optional[M]:
        """Fresh read of one document, bypassing the identity map cache"""
        return db.get(model, ident, populate_existing=True)

    def query_by_field(
        self,
        db: Session,
        model: Type[M],
        field: str,
        value: Any,
        limit: Optional[int] = None
    ) -> List[M]:
        query = db.query(model).filter(getattr(model, field) == value)
        if limit:
            query = query.limit(limit)
        return query.all()

    def atomic_update(
        self,
        db: Session,
        model: Type[M],
        ident: Any,
        precondition: Callable[[M], None],
        mutator: Callable[[M], None]
    ) -> UpdateResult:
        """
        Read the current version, validate it, mutate it and write it back
        only if nobody else wrote in between.

        precondition raises an ArenaError to reject the update; nothing is
        written in that case.
        """
        try:
            with unit_of_work(db):
                document = self.get(db, model, ident)
                if document is None:
                    return UpdateResult(UpdateOutcome.MISSING)
                precondition(document)
                mutator(document)
        except WriteConflict:
            logger.info(f"Conflicting write on {model.__tablename__}/{ident}")
            return UpdateResult(UpdateOutcome.CONFLICT)
        return UpdateResult(UpdateOutcome.APPLIED, document)

    def atomic_delete(
        self,
        db: Session,
        model: Type[M],
        ident: Any,
        precondition: Optional[Callable[[M], None]] = None,
        cascade: Optional[Callable[[Session, M], None]] = None
    ) -> UpdateResult:
        try:
            with unit_of_work(db):
                document = self.get(db, model, ident)
                if document is None:
                    return UpdateResult(UpdateOutcome.MISSING)
                if precondition:
                    precondition(document)
                if cascade:
                    cascade(db, document)
                db.delete(document)
        except WriteConflict:
            logger.info(f"Conflicting delete on {model.__tablename__}/{ident}")
            return UpdateResult(UpdateOutcome.CONFLICT)
        return UpdateResult(UpdateOutcome.APPLIED, document)

    def run_atomically(
        self,
        db: Session,
        operation: Callable[[], R],
        retries: int = 0,
        label: str = "operation"
    ) -> R:
        """
        Run a multi-document operation as one transaction, re-running it from
        the read step when it loses a write race. Fails with ConcurrencyError
        once the retries are used up.
        """
        for attempt in range(retries + 1):
            try:
                with unit_of_work(db):
                    return operation()
            except WriteConflict:
                logger.warning(f"{label}: write conflict on attempt {attempt + 1}/{retries + 1}")
        raise ConcurrencyError(
            f"{label} could not be completed because of concurrent updates. Please try again."
        )


document_store = DocumentStore()
