"""
Helpers shared by the inspection services: loading, version touch, commit.
"""
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import ConflictError, NotFoundError
from app.db.base import utcnow
from app.models.inspection import Inspection

logger = logging.getLogger(__name__)


def load_inspection(db: Session, inspection_id: uuid.UUID) -> Inspection:
    inspection = (
        db.query(Inspection)
        .options(
            selectinload(Inspection.items),
            selectinload(Inspection.corrective_actions),
            selectinload(Inspection.signoffs),
        )
        .filter(Inspection.id == inspection_id)
        .first()
    )
    if not inspection:
        raise NotFoundError("Inspection not found")
    return inspection


def touch(inspection: Inspection) -> None:
    """
    Force an UPDATE of the inspection row so its version check runs even when
    only owned rows changed.
    """
    inspection.updated_at = utcnow()


def commit_or_conflict(db: Session, operation: str) -> None:
    """
    Commit the unit of work. A stale version or a unique-key race rolls back
    and surfaces as ConflictError.
    """
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"[TX] {operation}: concurrent modification detected ({e})")
        raise ConflictError("The inspection was modified concurrently. Reload it and retry.")
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"[TX] {operation}: integrity conflict ({e.orig})")
        raise ConflictError("The change conflicts with another record. Reload and retry.")
