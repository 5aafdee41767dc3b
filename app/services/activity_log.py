"""
Inspection Activity Log
Append-only audit trail. One row per successful state-changing operation.
Rows are never updated or deleted and no business rule reads them.
"""
import logging
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.models.inspection import ActivityAction, Inspection, InspectionActivity

logger = logging.getLogger(__name__)

Scalar = Union[str, int, float, bool, None]

# Closed set of recognized metadata keys per action tag
ACTIVITY_METADATA_KEYS: Dict[ActivityAction, frozenset] = {
    ActivityAction.CREATED: frozenset({"template_id", "reinspection_of_id", "item_count"}),
    ActivityAction.UPDATED: frozenset({"fields"}),
    ActivityAction.STARTED: frozenset(),
    ActivityAction.COMPLETED: frozenset(
        {"overall_score", "overall_rating", "failed_item_count", "corrective_action_count"}
    ),
    ActivityAction.CANCELED: frozenset({"reason"}),
    ActivityAction.ITEM_ADDED: frozenset({"item_id", "category"}),
    ActivityAction.ITEM_UPDATED: frozenset({"item_id"}),
    ActivityAction.CORRECTIVE_ACTION_CREATED: frozenset({"action_id", "severity", "inspection_item_id"}),
    ActivityAction.CORRECTIVE_ACTION_UPDATED: frozenset({"action_id", "from_status", "to_status", "fields"}),
    ActivityAction.CORRECTIVE_ACTION_VERIFIED: frozenset({"action_id"}),
    ActivityAction.SIGNOFF_CREATED: frozenset({"signoff_id", "signer_type", "signer_name"}),
    ActivityAction.REINSPECTION_CREATED: frozenset({"reinspection_id", "item_count"}),
}


def _to_scalar(key: str, value) -> Scalar:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "value"):  # str Enum
        return value.value
    raise ValueError(f"Activity metadata '{key}' must be a scalar, got {type(value).__name__}")


def build_metadata(action: ActivityAction, **values) -> Dict[str, Scalar]:
    """
    Validate metadata against the keys recognized for *action*.
    None values are dropped. Unknown keys raise ValueError.
    """
    allowed = ACTIVITY_METADATA_KEYS[action]
    unknown = set(values) - allowed
    if unknown:
        raise ValueError(f"Unrecognized metadata for '{action.value}': {', '.join(sorted(unknown))}")
    return {key: _to_scalar(key, value) for key, value in values.items() if value is not None}


def record_activity(
    db: Session,
    inspection: Inspection,
    action: ActivityAction,
    performed_by_id: Optional[uuid.UUID] = None,
    **metadata,
) -> InspectionActivity:
    """
    Append an activity row to *inspection* within the caller's transaction.
    The caller commits.
    """
    activity = InspectionActivity(
        inspection_id=inspection.id,
        action=action.value,
        performed_by_id=performed_by_id,
        details=build_metadata(action, **metadata),
    )
    inspection.activities.append(activity)
    db.add(activity)
    logger.debug(f"[ACTIVITY] {inspection.inspection_number}: {action.value}")
    return activity


def list_activities(db: Session, inspection_id: uuid.UUID) -> List[InspectionActivity]:
    """Activities for an inspection, newest first."""
    return (
        db.query(InspectionActivity)
        .filter(InspectionActivity.inspection_id == inspection_id)
        .order_by(desc(InspectionActivity.created_at))
        .all()
    )
