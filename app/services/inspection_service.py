"""
Inspection Lifecycle Service
Instantiates inspections from templates or ad hoc items, drives the
scheduled -> in_progress -> completed | canceled state machine, scores
completed inspections and spawns re-inspections of failed items.

Every mutating operation validates, mutates, appends one activity row per
affected inspection and commits once. Nothing is written when validation
fails.
"""
import logging
import uuid
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    InvalidStateError, NotFoundError, UpstreamError, ValidationError
)
from app.db.base import utcnow
from app.models.inspection import (
    ActivityAction, CorrectiveActionStatus, Inspection, InspectionItem,
    InspectionStatus, InspectionTemplate, ItemScore,
)
from app.schemas.inspection import (
    InspectionCompleteRequest, InspectionCreate, InspectionItemCreate,
    InspectionItemUpdate, InspectionUpdate, ReinspectionCreate,
)
from app.services import activity_log
from app.services.activity_log import record_activity
from app.services.common import commit_or_conflict, load_inspection, touch
from app.services.corrective_action_service import build_corrective_action
from app.services.directory import (
    AreaGuidanceProvider, FacilityDirectory, UserDirectory
)
from app.services.scoring import (
    CategoryAggregate, RatingBands, build_rating_bands,
    calculate_overall_score, summarize_categories,
)

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (InspectionStatus.SCHEDULED.value, InspectionStatus.IN_PROGRESS.value)
OPEN_ACTION_STATUSES = (
    CorrectiveActionStatus.OPEN.value,
    CorrectiveActionStatus.IN_PROGRESS.value,
    CorrectiveActionStatus.RESOLVED.value,
)


class InspectionService:
    """Lifecycle operations on inspections and their items."""

    def __init__(
        self,
        db: Session,
        facilities: Optional[FacilityDirectory] = None,
        users: Optional[UserDirectory] = None,
        bands: Optional[RatingBands] = None,
    ):
        self.db = db
        self.facilities = facilities
        self.users = users
        self.bands = bands or build_rating_bands(settings.RATING_BANDS)

    # ──────────────────────────── Queries ────────────────────────────

    def get_inspection(self, inspection_id: uuid.UUID) -> Inspection:
        return load_inspection(self.db, inspection_id)

    def list_inspections(
        self,
        facility_id: Optional[uuid.UUID] = None,
        account_id: Optional[uuid.UUID] = None,
        contract_id: Optional[uuid.UUID] = None,
        job_id: Optional[uuid.UUID] = None,
        inspector_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        min_score: Optional[int] = None,
        max_score: Optional[int] = None,
        reinspection_of_id: Optional[uuid.UUID] = None,
        page: int = 1,
        size: int = 20,
    ) -> Tuple[List[Inspection], int]:
        query = self.db.query(Inspection)

        if facility_id:
            query = query.filter(Inspection.facility_id == facility_id)
        if account_id:
            query = query.filter(Inspection.account_id == account_id)
        if contract_id:
            query = query.filter(Inspection.contract_id == contract_id)
        if job_id:
            query = query.filter(Inspection.job_id == job_id)
        if inspector_id:
            query = query.filter(Inspection.inspector_id == inspector_id)
        if status:
            query = query.filter(Inspection.status == status)
        if date_from:
            query = query.filter(Inspection.scheduled_date >= date_from)
        if date_to:
            query = query.filter(Inspection.scheduled_date <= date_to)
        if min_score is not None:
            query = query.filter(Inspection.overall_score >= min_score)
        if max_score is not None:
            query = query.filter(Inspection.overall_score <= max_score)
        if reinspection_of_id:
            query = query.filter(Inspection.reinspection_of_id == reinspection_of_id)

        total = query.count()
        inspections = (
            query.order_by(desc(Inspection.scheduled_date), desc(Inspection.created_at))
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return inspections, total

    def list_activities(self, inspection_id: uuid.UUID):
        load_inspection(self.db, inspection_id)
        return activity_log.list_activities(self.db, inspection_id)

    def get_category_summary(self, inspection_id: uuid.UUID) -> List[CategoryAggregate]:
        return summarize_categories(load_inspection(self.db, inspection_id).items)

    def get_guidance(
        self, inspection_id: uuid.UUID, provider: Optional[AreaGuidanceProvider]
    ) -> Dict[str, List[str]]:
        """Checklist hints per category. Absent provider or failure -> {}."""
        inspection = load_inspection(self.db, inspection_id)
        if provider is None:
            return {}
        return provider.get_guidance(item.category for item in inspection.items)

    def display_names(self, inspection: Inspection) -> Dict[str, Optional[str]]:
        """Facility and inspector names for display. Best-effort."""
        names = {"facility_name": None, "inspector_name": None}
        if self.facilities is not None:
            try:
                facility = self.facilities.get_facility(inspection.facility_id)
                names["facility_name"] = facility.name if facility else None
            except UpstreamError as e:
                logger.warning(f"[DIRECTORY] Facility name unavailable for {inspection.inspection_number}: {e}")
        if self.users is not None:
            try:
                inspector = self.users.get_user(inspection.inspector_id)
                names["inspector_name"] = inspector.full_name if inspector else None
            except UpstreamError as e:
                logger.warning(f"[DIRECTORY] Inspector name unavailable for {inspection.inspection_number}: {e}")
        return names

    # ─────────────────────────── Helpers ───────────────────────────

    def _next_inspection_number(self) -> str:
        prefix = f"{settings.INSPECTION_NUMBER_PREFIX}-{date.today().year}-"
        latest = (
            self.db.query(Inspection.inspection_number)
            .filter(Inspection.inspection_number.like(f"{prefix}%"))
            .order_by(desc(func.length(Inspection.inspection_number)), desc(Inspection.inspection_number))
            .first()
        )
        next_num = 1
        if latest:
            try:
                next_num = int(latest[0][len(prefix):]) + 1
            except ValueError:
                next_num = 1
        return f"{prefix}{next_num:04d}"

    def _require_inspector(self, inspector_id: uuid.UUID) -> None:
        if self.users is not None and self.users.get_user(inspector_id) is None:
            raise NotFoundError("Inspector not found")

    @staticmethod
    def _require_active(inspection: Inspection, operation: str) -> None:
        if inspection.status not in ACTIVE_STATUSES:
            logger.warning(
                f"[INSPECTION] Rejected {operation} on {inspection.inspection_number} ({inspection.status})"
            )
            raise InvalidStateError(
                f"Cannot {operation} a {inspection.status} inspection"
            )

    @staticmethod
    def _get_item(inspection: Inspection, item_id: uuid.UUID) -> InspectionItem:
        item = next((i for i in inspection.items if i.id == item_id), None)
        if item is None:
            raise NotFoundError("Inspection item not found")
        return item

    # ─────────────────────────── Creation ───────────────────────────

    def create_inspection(self, data: InspectionCreate, user_id: Optional[uuid.UUID] = None) -> Inspection:
        """
        Create a scheduled inspection. Template items are copied, never
        referenced, so later template edits do not reach this inspection.
        Ad hoc items are appended after template items.
        """
        account_id = data.account_id
        if self.facilities is not None:
            facility = self.facilities.get_facility(data.facility_id)
            if facility is None:
                raise NotFoundError("Facility not found")
            account_id = account_id or facility.account_id
        self._require_inspector(data.inspector_id)

        items: List[InspectionItem] = []
        if data.template_id:
            template = self.db.query(InspectionTemplate).filter(
                InspectionTemplate.id == data.template_id
            ).first()
            if not template:
                raise NotFoundError("Inspection template not found")
            if template.is_archived:
                raise InvalidStateError("Cannot create an inspection from an archived template")
            items.extend(
                InspectionItem(
                    template_item_id=t.id,
                    category=t.category,
                    item_text=t.item_text,
                    weight=t.weight,
                    sort_order=t.sort_order,
                )
                for t in template.items
            )

        next_order = max((i.sort_order for i in items), default=-1) + 1
        for offset, item in enumerate(data.items):
            items.append(self._new_item(item, next_order + offset))
        if not items:
            raise ValidationError("An inspection needs at least one item")

        inspection = Inspection(
            id=uuid.uuid4(),
            inspection_number=self._next_inspection_number(),
            status=InspectionStatus.SCHEDULED.value,
            facility_id=data.facility_id,
            account_id=account_id,
            inspector_id=data.inspector_id,
            contract_id=data.contract_id,
            job_id=data.job_id,
            appointment_id=data.appointment_id,
            template_id=data.template_id,
            scheduled_date=data.scheduled_date,
            notes=data.notes,
            created_by_id=user_id,
            items=items,
        )
        self.db.add(inspection)
        record_activity(
            self.db, inspection, ActivityAction.CREATED, user_id,
            template_id=data.template_id,
            item_count=len(items),
        )
        commit_or_conflict(self.db, "create_inspection")
        self.db.refresh(inspection)

        logger.info(
            f"[INSPECTION] Created {inspection.inspection_number} with {len(items)} items"
        )
        return inspection

    @staticmethod
    def _new_item(data: InspectionItemCreate, sort_order: int) -> InspectionItem:
        category = data.category.strip()
        item_text = data.item_text.strip()
        if not category or not item_text:
            raise ValidationError("Item category and text are required")
        return InspectionItem(
            id=uuid.uuid4(),
            template_item_id=data.template_item_id,
            category=category,
            item_text=item_text,
            weight=data.weight,
            sort_order=data.sort_order if data.sort_order is not None else sort_order,
        )

    def update_inspection(
        self, inspection_id: uuid.UUID, data: InspectionUpdate, user_id: Optional[uuid.UUID] = None
    ) -> Inspection:
        inspection = load_inspection(self.db, inspection_id)
        self._require_active(inspection, "edit")

        fields = sorted(data.model_fields_set)
        if "inspector_id" in fields:
            if data.inspector_id is None:
                raise ValidationError("Inspector is required")
            self._require_inspector(data.inspector_id)
            inspection.inspector_id = data.inspector_id
        if "scheduled_date" in fields:
            if data.scheduled_date is None:
                raise ValidationError("Scheduled date is required")
            inspection.scheduled_date = data.scheduled_date
        if "notes" in fields:
            inspection.notes = data.notes

        record_activity(
            self.db, inspection, ActivityAction.UPDATED, user_id,
            fields=",".join(fields) or None,
        )
        touch(inspection)
        commit_or_conflict(self.db, "update_inspection")
        self.db.refresh(inspection)
        return inspection

    # ───────────────────────── Transitions ─────────────────────────

    def start_inspection(self, inspection_id: uuid.UUID, user_id: Optional[uuid.UUID] = None) -> Inspection:
        """scheduled -> in_progress"""
        inspection = load_inspection(self.db, inspection_id)
        if inspection.status != InspectionStatus.SCHEDULED.value:
            logger.warning(f"[INSPECTION] Rejected start on {inspection.inspection_number} ({inspection.status})")
            raise InvalidStateError(
                f"Inspection can only be started from scheduled status (current: {inspection.status})"
            )

        inspection.status = InspectionStatus.IN_PROGRESS.value
        record_activity(self.db, inspection, ActivityAction.STARTED, user_id)
        touch(inspection)
        commit_or_conflict(self.db, "start_inspection")
        self.db.refresh(inspection)

        logger.info(f"[INSPECTION] Started {inspection.inspection_number}")
        return inspection

    def _merge_scores(
        self, inspection: Inspection, data: InspectionCompleteRequest
    ) -> Dict[uuid.UUID, dict]:
        """
        Resolve the score/rating/notes to store per item. Category entries fan
        out to every item in the category; per-item entries override them
        field by field.
        """
        entries: Dict[uuid.UUID, dict] = {item.id: {} for item in inspection.items}
        categories = {item.category for item in inspection.items}

        for entry in data.categories:
            if entry.category not in categories:
                raise ValidationError(f"Unknown category '{entry.category}' for this inspection")
            values = {name: getattr(entry, name) for name in entry.model_fields_set - {"category"}}
            for item in inspection.items:
                if item.category == entry.category:
                    entries[item.id].update(values)

        for entry in data.items:
            if entry.id not in entries:
                raise ValidationError(f"Item {entry.id} does not belong to this inspection")
            entries[entry.id].update(
                {name: getattr(entry, name) for name in entry.model_fields_set - {"id"}}
            )

        missing = [item for item in inspection.items if entries[item.id].get("score") is None]
        if missing:
            raise ValidationError(
                f"Every item needs a score before completion ({len(missing)} missing)"
            )
        return entries

    def complete_inspection(
        self,
        inspection_id: uuid.UUID,
        data: InspectionCompleteRequest,
        user_id: Optional[uuid.UUID] = None,
    ) -> Inspection:
        """
        scheduled | in_progress -> completed. Stores every item's result,
        computes the overall score and rating, and optionally raises one
        corrective action per failed item, all in one transaction.
        """
        inspection = load_inspection(self.db, inspection_id)
        if inspection.status not in ACTIVE_STATUSES:
            logger.warning(f"[INSPECTION] Rejected complete on {inspection.inspection_number} ({inspection.status})")
            raise InvalidStateError(
                f"Inspection can only be completed from scheduled or in_progress status (current: {inspection.status})"
            )

        entries = self._merge_scores(inspection, data)
        for item in inspection.items:
            entry = entries[item.id]
            item.score = ItemScore(entry["score"]).value
            item.rating = entry.get("rating")
            if "notes" in entry:
                item.notes = entry["notes"]

        result = calculate_overall_score(inspection.items, self.bands)
        failed_items = [i for i in inspection.items if i.score == ItemScore.FAIL.value]

        inspection.status = InspectionStatus.COMPLETED.value
        inspection.completed_at = utcnow()
        inspection.overall_score = result.overall_score
        inspection.overall_rating = result.overall_rating
        inspection.summary = data.summary

        created_actions = 0
        if data.create_corrective_actions:
            for item in failed_items:
                build_corrective_action(
                    inspection,
                    title=f"{item.category}: {item.item_text}",
                    severity=data.default_action_severity,
                    user_id=user_id,
                    description=item.notes,
                    due_date=data.default_action_due_date,
                    inspection_item_id=item.id,
                )
                created_actions += 1

        record_activity(
            self.db, inspection, ActivityAction.COMPLETED, user_id,
            overall_score=result.overall_score,
            overall_rating=result.overall_rating,
            failed_item_count=len(failed_items),
            corrective_action_count=created_actions,
        )
        touch(inspection)
        commit_or_conflict(self.db, "complete_inspection")
        self.db.refresh(inspection)

        logger.info(
            f"[INSPECTION] Completed {inspection.inspection_number}: "
            f"score={inspection.overall_score} rating={inspection.overall_rating} "
            f"failed={len(failed_items)}"
        )
        return inspection

    def cancel_inspection(
        self,
        inspection_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
    ) -> Inspection:
        """
        scheduled | in_progress -> canceled. Existing corrective actions are
        left as they are.
        """
        inspection = load_inspection(self.db, inspection_id)
        if inspection.status not in ACTIVE_STATUSES:
            logger.warning(f"[INSPECTION] Rejected cancel on {inspection.inspection_number} ({inspection.status})")
            raise InvalidStateError(f"Cannot cancel a {inspection.status} inspection")

        reason = (reason or "").strip() or None
        inspection.status = InspectionStatus.CANCELED.value
        if reason:
            inspection.notes = f"{inspection.notes or ''}\n[Canceled] {reason}".strip()

        record_activity(self.db, inspection, ActivityAction.CANCELED, user_id, reason=reason)
        touch(inspection)
        commit_or_conflict(self.db, "cancel_inspection")
        self.db.refresh(inspection)

        logger.info(f"[INSPECTION] Canceled {inspection.inspection_number}")
        return inspection

    # ───────────────────────── Item management ─────────────────────────

    def add_item(
        self,
        inspection_id: uuid.UUID,
        data: InspectionItemCreate,
        user_id: Optional[uuid.UUID] = None,
    ) -> InspectionItem:
        inspection = load_inspection(self.db, inspection_id)
        self._require_active(inspection, "add items to")

        next_order = max((i.sort_order for i in inspection.items), default=-1) + 1
        item = self._new_item(data, next_order)
        inspection.items.append(item)

        record_activity(
            self.db, inspection, ActivityAction.ITEM_ADDED, user_id,
            item_id=item.id, category=item.category,
        )
        touch(inspection)
        commit_or_conflict(self.db, "add_item")
        self.db.refresh(item)
        return item

    def update_item(
        self,
        inspection_id: uuid.UUID,
        item_id: uuid.UUID,
        data: InspectionItemUpdate,
        user_id: Optional[uuid.UUID] = None,
    ) -> InspectionItem:
        """Edit an unscored checklist line (category, text, weight, order)."""
        inspection = load_inspection(self.db, inspection_id)
        self._require_active(inspection, "edit items of")
        item = self._get_item(inspection, item_id)

        for name in ("category", "item_text"):
            if name in data.model_fields_set:
                value = (getattr(data, name) or "").strip()
                if not value:
                    raise ValidationError(f"Item {name.replace('_', ' ')} is required")
                setattr(item, name, value)
        for name in ("weight", "sort_order"):
            if name in data.model_fields_set:
                value = getattr(data, name)
                if value is None:
                    raise ValidationError(f"Item {name.replace('_', ' ')} is required")
                setattr(item, name, value)

        record_activity(self.db, inspection, ActivityAction.ITEM_UPDATED, user_id, item_id=item.id)
        touch(inspection)
        commit_or_conflict(self.db, "update_item")
        self.db.refresh(item)
        return item

    # ───────────────────────── Re-inspection ─────────────────────────

    def create_reinspection(
        self,
        source_id: uuid.UUID,
        data: Optional[ReinspectionCreate] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> Inspection:
        """
        Spawn a scheduled follow-up inspection holding only the items that
        failed in the completed source. The source is never reopened.
        """
        data = data or ReinspectionCreate()
        source = load_inspection(self.db, source_id)
        if source.status != InspectionStatus.COMPLETED.value:
            raise InvalidStateError(
                f"Only completed inspections can be re-inspected (current: {source.status})"
            )

        failed = [i for i in source.items if i.score == ItemScore.FAIL.value]
        if not failed:
            raise InvalidStateError("Inspection has no failed items to re-inspect")

        inspector_id = data.inspector_id or source.inspector_id
        if data.inspector_id:
            self._require_inspector(data.inspector_id)

        reinspection = Inspection(
            id=uuid.uuid4(),
            inspection_number=self._next_inspection_number(),
            status=InspectionStatus.SCHEDULED.value,
            facility_id=source.facility_id,
            account_id=source.account_id,
            contract_id=source.contract_id,
            template_id=source.template_id,
            inspector_id=inspector_id,
            scheduled_date=data.scheduled_date or date.today(),
            notes=data.notes or f"Re-inspection of {source.inspection_number}",
            reinspection_of_id=source.id,
            created_by_id=user_id,
            items=[
                InspectionItem(
                    template_item_id=item.template_item_id,
                    category=item.category,
                    item_text=item.item_text,
                    weight=item.weight,
                    sort_order=index,
                )
                for index, item in enumerate(failed)
            ],
        )
        self.db.add(reinspection)

        for action in source.corrective_actions:
            if action.status in OPEN_ACTION_STATUSES:
                action.follow_up_inspection_id = reinspection.id

        record_activity(
            self.db, reinspection, ActivityAction.CREATED, user_id,
            template_id=source.template_id,
            reinspection_of_id=source.id,
            item_count=len(failed),
        )
        record_activity(
            self.db, source, ActivityAction.REINSPECTION_CREATED, user_id,
            reinspection_id=reinspection.id,
            item_count=len(failed),
        )
        touch(source)
        commit_or_conflict(self.db, "create_reinspection")
        self.db.refresh(reinspection)

        logger.info(
            f"[INSPECTION] Re-inspection {reinspection.inspection_number} of "
            f"{source.inspection_number} ({len(failed)} items)"
        )
        return reinspection
