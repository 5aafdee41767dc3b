"""
Corrective Action Tracker
Severity-tagged remediation items raised against an inspection, optionally
linked to the failed item they came from.

Status workflow:
    open -> in_progress -> resolved -> verified
    open | in_progress | resolved -> canceled
    resolved | verified | canceled -> open   (reopen)

Actions are not coupled to the parent inspection's status: they survive
inspection cancellation untouched, and field edits are allowed at any status.
"""
import logging
import uuid
from datetime import date
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.db.base import utcnow
from app.models.inspection import (
    ActivityAction, CorrectiveActionSeverity, CorrectiveActionStatus as S,
    Inspection, InspectionCorrectiveAction, InspectionStatus,
)
from app.schemas.inspection import CorrectiveActionCreate, CorrectiveActionUpdate
from app.services.activity_log import record_activity
from app.services.common import commit_or_conflict, load_inspection, touch

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[S, FrozenSet[S]] = {
    S.OPEN: frozenset({S.IN_PROGRESS, S.CANCELED}),
    S.IN_PROGRESS: frozenset({S.RESOLVED, S.CANCELED}),
    S.RESOLVED: frozenset({S.VERIFIED, S.CANCELED, S.OPEN}),
    S.VERIFIED: frozenset({S.OPEN}),
    S.CANCELED: frozenset({S.OPEN}),
}

SEVERITIES = {s.value for s in CorrectiveActionSeverity}


def can_transition(current: str, target: str) -> bool:
    try:
        return S(target) in ALLOWED_TRANSITIONS[S(current)]
    except ValueError:
        return False


def build_corrective_action(
    inspection: Inspection,
    title: Optional[str],
    severity,
    user_id: Optional[uuid.UUID] = None,
    description: Optional[str] = None,
    due_date: Optional[date] = None,
    inspection_item_id: Optional[uuid.UUID] = None,
    assignee_id: Optional[uuid.UUID] = None,
) -> InspectionCorrectiveAction:
    """
    Validate and attach a new open action to *inspection*. No commit and no
    activity row; callers own both.
    """
    if inspection.status == InspectionStatus.CANCELED.value:
        raise InvalidStateError("Cannot add corrective actions to a canceled inspection")

    title = (title or "").strip()
    if not title:
        raise ValidationError("Corrective action title is required")

    severity = getattr(severity, "value", severity)
    if severity not in SEVERITIES:
        raise ValidationError("Corrective action severity must be one of critical, major, minor")

    if inspection_item_id is not None and not any(i.id == inspection_item_id for i in inspection.items):
        raise ValidationError("Inspection item does not belong to this inspection")

    action = InspectionCorrectiveAction(
        id=uuid.uuid4(),
        inspection_id=inspection.id,
        inspection_item_id=inspection_item_id,
        title=title[:255],
        description=description,
        severity=severity,
        status=S.OPEN.value,
        due_date=due_date,
        assignee_id=assignee_id,
        created_by_id=user_id,
    )
    inspection.corrective_actions.append(action)
    return action


class CorrectiveActionService:
    """Create, edit, transition and verify corrective actions."""

    def __init__(self, db: Session):
        self.db = db

    def list_actions(self, inspection_id: uuid.UUID) -> List[InspectionCorrectiveAction]:
        return list(load_inspection(self.db, inspection_id).corrective_actions)

    def _get_action(self, inspection: Inspection, action_id: uuid.UUID) -> InspectionCorrectiveAction:
        action = next((a for a in inspection.corrective_actions if a.id == action_id), None)
        if action is None:
            raise NotFoundError("Corrective action not found")
        return action

    def create_action(
        self,
        inspection_id: uuid.UUID,
        data: CorrectiveActionCreate,
        user_id: Optional[uuid.UUID] = None,
    ) -> InspectionCorrectiveAction:
        inspection = load_inspection(self.db, inspection_id)
        action = build_corrective_action(
            inspection,
            title=data.title,
            severity=data.severity,
            user_id=user_id,
            description=data.description,
            due_date=data.due_date,
            inspection_item_id=data.inspection_item_id,
            assignee_id=data.assignee_id,
        )
        record_activity(
            self.db, inspection, ActivityAction.CORRECTIVE_ACTION_CREATED, user_id,
            action_id=action.id,
            severity=action.severity,
            inspection_item_id=action.inspection_item_id,
        )
        touch(inspection)
        commit_or_conflict(self.db, "create_corrective_action")
        self.db.refresh(action)

        logger.info(
            f"[ACTION] Created {action.severity} action '{action.title}' on {inspection.inspection_number}"
        )
        return action

    def _transition(
        self, action: InspectionCorrectiveAction, target: S, user_id: Optional[uuid.UUID]
    ) -> None:
        if not can_transition(action.status, target.value):
            logger.warning(f"[ACTION] Rejected {action.status} -> {target.value} on {action.id}")
            raise InvalidStateError(
                f"Cannot change corrective action from '{action.status}' to '{target.value}'"
            )

        now = utcnow()
        if target == S.RESOLVED:
            action.resolved_by_id = user_id
            action.resolved_at = now
        elif target == S.VERIFIED:
            action.verified_by_id = user_id
            action.verified_at = now
        elif target == S.OPEN:
            # Reopened: earlier resolution/verification no longer holds
            action.resolved_by_id = None
            action.resolved_at = None
            action.verified_by_id = None
            action.verified_at = None
            action.verification_notes = None
        action.status = target.value

    def update_action(
        self,
        inspection_id: uuid.UUID,
        action_id: uuid.UUID,
        data: CorrectiveActionUpdate,
        user_id: Optional[uuid.UUID] = None,
    ) -> InspectionCorrectiveAction:
        """Patch fields and optionally move the action along its workflow."""
        inspection = load_inspection(self.db, inspection_id)
        action = self._get_action(inspection, action_id)
        fields = data.model_fields_set - {"status"}

        if "title" in fields:
            title = (data.title or "").strip()
            if not title:
                raise ValidationError("Corrective action title is required")
            action.title = title
        if "severity" in fields:
            if data.severity is None:
                raise ValidationError("Corrective action severity is required")
            action.severity = data.severity.value
        for name in ("description", "due_date", "assignee_id", "resolution_notes"):
            if name in fields:
                setattr(action, name, getattr(data, name))

        from_status = action.status
        if data.status is not None and data.status.value != action.status:
            self._transition(action, data.status, user_id)

        record_activity(
            self.db, inspection, ActivityAction.CORRECTIVE_ACTION_UPDATED, user_id,
            action_id=action.id,
            from_status=from_status,
            to_status=action.status,
            fields=",".join(sorted(fields)) or None,
        )
        touch(inspection)
        commit_or_conflict(self.db, "update_corrective_action")
        self.db.refresh(action)

        logger.info(f"[ACTION] Updated {action.id} ({from_status} -> {action.status})")
        return action

    def verify_action(
        self,
        inspection_id: uuid.UUID,
        action_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> InspectionCorrectiveAction:
        """Move a resolved action to verified, stamping verifier and time."""
        inspection = load_inspection(self.db, inspection_id)
        action = self._get_action(inspection, action_id)

        self._transition(action, S.VERIFIED, user_id)
        action.verification_notes = (notes or "").strip() or None

        record_activity(
            self.db, inspection, ActivityAction.CORRECTIVE_ACTION_VERIFIED, user_id,
            action_id=action.id,
        )
        touch(inspection)
        commit_or_conflict(self.db, "verify_corrective_action")
        self.db.refresh(action)

        logger.info(f"[ACTION] Verified {action.id} on {inspection.inspection_number}")
        return action
