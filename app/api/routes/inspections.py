"""
Inspection Routes - Inspection lifecycle, scoring and follow-up
Create, list, detail, start/complete/cancel, item management, corrective
actions, sign-offs, re-inspections and the activity log.
"""
import logging
import math
import uuid as uuid_module
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_user_id
from app.database import get_db
from app.models.inspection import Inspection, InspectionStatus
from app.schemas.inspection import (
    ActivityResponse, CategoryAggregateResponse, CorrectiveActionCreate,
    CorrectiveActionResponse, CorrectiveActionUpdate, CorrectiveActionVerify,
    InspectionCancelRequest, InspectionCompleteRequest, InspectionCreate,
    InspectionItemCreate, InspectionItemResponse, InspectionItemUpdate,
    InspectionListResponse, InspectionUpdate, ReinspectionCreate,
    SignoffCreate, SignoffResponse,
)
from app.services.corrective_action_service import CorrectiveActionService
from app.services.directory import (
    AreaGuidanceProvider, FacilityDirectory, UserDirectory,
    get_facility_directory, get_guidance_provider, get_user_directory,
)
from app.services.inspection_service import InspectionService
from app.services.signoff_service import SignoffService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["inspections"])


def get_inspection_service(
    db: Session = Depends(get_db),
    facilities: Optional[FacilityDirectory] = Depends(get_facility_directory),
    users: Optional[UserDirectory] = Depends(get_user_directory),
) -> InspectionService:
    return InspectionService(db, facilities=facilities, users=users)


def build_inspection_list_response(inspection: Inspection) -> dict:
    return InspectionListResponse.model_validate(inspection).model_dump()


def build_inspection_detail_response(inspection: Inspection, service: InspectionService) -> dict:
    """Build detail response dict with owned records and display fields."""
    response = build_inspection_list_response(inspection)
    response.update({
        "contract_id": inspection.contract_id,
        "job_id": inspection.job_id,
        "appointment_id": inspection.appointment_id,
        "created_by_id": inspection.created_by_id,
        "notes": inspection.notes,
        "summary": inspection.summary,
        "items": [
            InspectionItemResponse.model_validate(i).model_dump() for i in inspection.items
        ],
        "corrective_actions": [
            CorrectiveActionResponse.model_validate(a).model_dump() for a in inspection.corrective_actions
        ],
        "signoffs": [
            SignoffResponse.model_validate(s).model_dump() for s in inspection.signoffs
        ],
        "activities": [
            ActivityResponse.model_validate(a).model_dump() for a in inspection.activities
        ],
    })
    response.update(service.display_names(inspection))
    return response


# === Inspections ===

@router.get("/")
def list_inspections(
    facility_id: Optional[uuid_module.UUID] = None,
    account_id: Optional[uuid_module.UUID] = None,
    contract_id: Optional[uuid_module.UUID] = None,
    job_id: Optional[uuid_module.UUID] = None,
    inspector_id: Optional[uuid_module.UUID] = None,
    status_filter: Optional[InspectionStatus] = Query(None, alias="status"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    min_score: Optional[int] = Query(None, ge=0, le=100),
    max_score: Optional[int] = Query(None, ge=0, le=100),
    reinspection_of_id: Optional[uuid_module.UUID] = None,
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    """List inspections, newest scheduled date first."""
    size = min(size, settings.MAX_PAGE_SIZE)
    inspections, total = service.list_inspections(
        facility_id=facility_id,
        account_id=account_id,
        contract_id=contract_id,
        job_id=job_id,
        inspector_id=inspector_id,
        status=status_filter.value if status_filter else None,
        date_from=date_from,
        date_to=date_to,
        min_score=min_score,
        max_score=max_score,
        reinspection_of_id=reinspection_of_id,
        page=page,
        size=size,
    )
    return {
        "items": [build_inspection_list_response(i) for i in inspections],
        "total": total,
        "page": page,
        "size": size,
        "pages": math.ceil(total / size) if size > 0 else 0,
    }


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_inspection(
    request: InspectionCreate,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    """Create a scheduled inspection from a template and/or ad hoc items."""
    inspection = service.create_inspection(request, current_user_id)
    return build_inspection_detail_response(inspection, service)


@router.get("/{inspection_id}/")
def get_inspection_detail(
    inspection_id: uuid_module.UUID,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    inspection = service.get_inspection(inspection_id)
    return build_inspection_detail_response(inspection, service)


@router.patch("/{inspection_id}/")
def update_inspection(
    inspection_id: uuid_module.UUID,
    request: InspectionUpdate,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    inspection = service.update_inspection(inspection_id, request, current_user_id)
    return build_inspection_detail_response(inspection, service)


# === Transitions ===

@router.post("/{inspection_id}/start/")
def start_inspection(
    inspection_id: uuid_module.UUID,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    inspection = service.start_inspection(inspection_id, current_user_id)
    return build_inspection_detail_response(inspection, service)


@router.post("/{inspection_id}/complete/")
def complete_inspection(
    inspection_id: uuid_module.UUID,
    request: InspectionCompleteRequest,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    """Score every item and complete. All-or-nothing."""
    inspection = service.complete_inspection(inspection_id, request, current_user_id)
    return build_inspection_detail_response(inspection, service)


@router.post("/{inspection_id}/cancel/")
def cancel_inspection(
    inspection_id: uuid_module.UUID,
    request: Optional[InspectionCancelRequest] = None,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    reason = request.reason if request else None
    inspection = service.cancel_inspection(inspection_id, current_user_id, reason)
    return build_inspection_detail_response(inspection, service)


# === Categories & guidance ===

@router.get("/{inspection_id}/categories/", response_model=List[CategoryAggregateResponse])
def get_category_summary(
    inspection_id: uuid_module.UUID,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    return [aggregate._asdict() for aggregate in service.get_category_summary(inspection_id)]


@router.get("/{inspection_id}/guidance/")
def get_inspection_guidance(
    inspection_id: uuid_module.UUID,
    service: InspectionService = Depends(get_inspection_service),
    provider: Optional[AreaGuidanceProvider] = Depends(get_guidance_provider),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    """Checklist hints per category. Empty when guidance is unavailable."""
    return service.get_guidance(inspection_id, provider)


# === Items ===

@router.post("/{inspection_id}/items/", status_code=status.HTTP_201_CREATED)
def add_inspection_item(
    inspection_id: uuid_module.UUID,
    request: InspectionItemCreate,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    item = service.add_item(inspection_id, request, current_user_id)
    return InspectionItemResponse.model_validate(item).model_dump()


@router.patch("/{inspection_id}/items/{item_id}/")
def update_inspection_item(
    inspection_id: uuid_module.UUID,
    item_id: uuid_module.UUID,
    request: InspectionItemUpdate,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    item = service.update_item(inspection_id, item_id, request, current_user_id)
    return InspectionItemResponse.model_validate(item).model_dump()


# === Corrective actions ===

@router.get("/{inspection_id}/actions/")
def list_corrective_actions(
    inspection_id: uuid_module.UUID,
    db: Session = Depends(get_db),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    actions = CorrectiveActionService(db).list_actions(inspection_id)
    return [CorrectiveActionResponse.model_validate(a).model_dump() for a in actions]


@router.post("/{inspection_id}/actions/", status_code=status.HTTP_201_CREATED)
def create_corrective_action(
    inspection_id: uuid_module.UUID,
    request: CorrectiveActionCreate,
    db: Session = Depends(get_db),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    action = CorrectiveActionService(db).create_action(inspection_id, request, current_user_id)
    return CorrectiveActionResponse.model_validate(action).model_dump()


@router.patch("/{inspection_id}/actions/{action_id}/")
def update_corrective_action(
    inspection_id: uuid_module.UUID,
    action_id: uuid_module.UUID,
    request: CorrectiveActionUpdate,
    db: Session = Depends(get_db),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    action = CorrectiveActionService(db).update_action(inspection_id, action_id, request, current_user_id)
    return CorrectiveActionResponse.model_validate(action).model_dump()


@router.post("/{inspection_id}/actions/{action_id}/verify/")
def verify_corrective_action(
    inspection_id: uuid_module.UUID,
    action_id: uuid_module.UUID,
    request: Optional[CorrectiveActionVerify] = None,
    db: Session = Depends(get_db),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    notes = request.notes if request else None
    action = CorrectiveActionService(db).verify_action(inspection_id, action_id, current_user_id, notes)
    return CorrectiveActionResponse.model_validate(action).model_dump()


# === Sign-offs ===

@router.get("/{inspection_id}/signoffs/")
def list_signoffs(
    inspection_id: uuid_module.UUID,
    db: Session = Depends(get_db),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    signoffs = SignoffService(db).list_signoffs(inspection_id)
    return [SignoffResponse.model_validate(s).model_dump() for s in signoffs]


@router.post("/{inspection_id}/signoffs/", status_code=status.HTTP_201_CREATED)
def create_signoff(
    inspection_id: uuid_module.UUID,
    request: SignoffCreate,
    db: Session = Depends(get_db),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    signoff = SignoffService(db).create_signoff(inspection_id, request, current_user_id)
    return SignoffResponse.model_validate(signoff).model_dump()


# === Re-inspection ===

@router.post("/{inspection_id}/reinspect/", status_code=status.HTTP_201_CREATED)
def create_reinspection(
    inspection_id: uuid_module.UUID,
    request: Optional[ReinspectionCreate] = None,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    """Schedule a follow-up inspection covering only the failed items."""
    reinspection = service.create_reinspection(inspection_id, request, current_user_id)
    return build_inspection_detail_response(reinspection, service)


# === Activity log ===

@router.get("/{inspection_id}/activities/")
def list_activities(
    inspection_id: uuid_module.UUID,
    service: InspectionService = Depends(get_inspection_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    """Audit trail, newest first."""
    activities = service.list_activities(inspection_id)
    return [ActivityResponse.model_validate(a).model_dump() for a in activities]
