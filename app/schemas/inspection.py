"""
Inspection Schemas - Pydantic validation for the Inspection Lifecycle Engine
Templates, inspections, completion scoring, corrective actions, sign-offs,
re-inspections and the activity log.
"""
from datetime import date, datetime
from typing import Dict, List, Optional, Union
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.inspection import (
    CorrectiveActionSeverity, CorrectiveActionStatus, ItemScore, SignerType
)


# ============================================
# REQUEST SCHEMAS
# ============================================

# --- Template Schemas ---

class TemplateItemInput(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    item_text: str = Field(..., min_length=1, max_length=500)
    sort_order: Optional[int] = Field(None, ge=0)
    weight: int = Field(1, ge=1, le=5)


class InspectionTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    facility_type_filter: Optional[str] = Field(None, max_length=50)
    contract_id: Optional[UUID] = None
    items: List[TemplateItemInput] = []


class InspectionTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    facility_type_filter: Optional[str] = Field(None, max_length=50)
    items: Optional[List[TemplateItemInput]] = None


# --- Inspection Schemas ---

class InspectionItemCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    item_text: str = Field(..., min_length=1, max_length=500)
    weight: int = Field(1, ge=1, le=5)
    sort_order: Optional[int] = Field(None, ge=0)
    template_item_id: Optional[UUID] = None


class InspectionCreate(BaseModel):
    facility_id: UUID
    inspector_id: UUID
    scheduled_date: date
    template_id: Optional[UUID] = None
    account_id: Optional[UUID] = None
    contract_id: Optional[UUID] = None
    job_id: Optional[UUID] = None
    appointment_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=2000)
    items: List[InspectionItemCreate] = []


class InspectionUpdate(BaseModel):
    inspector_id: Optional[UUID] = None
    scheduled_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class InspectionItemUpdate(BaseModel):
    """Checklist edits only. Results are recorded by completion."""
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    item_text: Optional[str] = Field(None, min_length=1, max_length=500)
    weight: Optional[int] = Field(None, ge=1, le=5)
    sort_order: Optional[int] = Field(None, ge=0)


class ItemScoreInput(BaseModel):
    id: UUID
    score: Optional[ItemScore] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = Field(None, max_length=1000)


class CategoryScoreInput(BaseModel):
    """Applies score/rating/notes to every item sharing the category."""
    category: str = Field(..., min_length=1, max_length=100)
    score: Optional[ItemScore] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = Field(None, max_length=1000)


class InspectionCompleteRequest(BaseModel):
    summary: Optional[str] = Field(None, max_length=5000)
    items: List[ItemScoreInput] = []
    categories: List[CategoryScoreInput] = []
    create_corrective_actions: bool = False
    default_action_severity: CorrectiveActionSeverity = CorrectiveActionSeverity.MAJOR
    default_action_due_date: Optional[date] = None


class InspectionCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


# --- Corrective Action Schemas ---

class CorrectiveActionCreate(BaseModel):
    title: str = Field(..., max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    severity: CorrectiveActionSeverity
    due_date: Optional[date] = None
    inspection_item_id: Optional[UUID] = None
    assignee_id: Optional[UUID] = None


class CorrectiveActionUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    severity: Optional[CorrectiveActionSeverity] = None
    due_date: Optional[date] = None
    status: Optional[CorrectiveActionStatus] = None
    assignee_id: Optional[UUID] = None
    resolution_notes: Optional[str] = Field(None, max_length=5000)


class CorrectiveActionVerify(BaseModel):
    notes: Optional[str] = Field(None, max_length=5000)


# --- Sign-off Schemas ---

class SignoffCreate(BaseModel):
    signer_type: SignerType
    signer_name: str = Field(..., max_length=255)
    signer_title: Optional[str] = Field(None, max_length=255)
    comments: Optional[str] = Field(None, max_length=5000)


# --- Re-inspection Schemas ---

class ReinspectionCreate(BaseModel):
    scheduled_date: Optional[date] = None
    inspector_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=2000)


# ============================================
# RESPONSE SCHEMAS
# ============================================

class TemplateItemResponse(BaseModel):
    id: UUID
    category: str
    item_text: str
    sort_order: int
    weight: int

    class Config:
        from_attributes = True


class InspectionTemplateResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    facility_type_filter: Optional[str] = None
    contract_id: Optional[UUID] = None
    created_by_id: Optional[UUID] = None
    archived_at: Optional[datetime] = None
    is_archived: bool
    items: List[TemplateItemResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InspectionItemResponse(BaseModel):
    id: UUID
    inspection_id: UUID
    template_item_id: Optional[UUID] = None
    category: str
    item_text: str
    weight: int
    score: Optional[str] = None
    rating: Optional[int] = None
    notes: Optional[str] = None
    sort_order: int

    class Config:
        from_attributes = True


class CorrectiveActionResponse(BaseModel):
    id: UUID
    inspection_id: UUID
    inspection_item_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    severity: str
    status: str
    due_date: Optional[date] = None
    assignee_id: Optional[UUID] = None
    created_by_id: Optional[UUID] = None
    resolved_by_id: Optional[UUID] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    verified_by_id: Optional[UUID] = None
    verified_at: Optional[datetime] = None
    verification_notes: Optional[str] = None
    follow_up_inspection_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SignoffResponse(BaseModel):
    id: UUID
    inspection_id: UUID
    signer_type: str
    signer_name: str
    signer_title: Optional[str] = None
    comments: Optional[str] = None
    signed_by_id: Optional[UUID] = None
    signed_at: datetime

    class Config:
        from_attributes = True


class ActivityResponse(BaseModel):
    id: UUID
    inspection_id: UUID
    action: str
    performed_by_id: Optional[UUID] = None
    metadata: Dict[str, Union[str, int, float, bool, None]] = Field(
        default_factory=dict, validation_alias="details"
    )
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryAggregateResponse(BaseModel):
    category: str
    score: Optional[str] = None
    rating: Optional[float] = None
    notes: Optional[str] = None
    item_count: int
    scored_count: int


class InspectionListResponse(BaseModel):
    id: UUID
    inspection_number: str
    status: str
    facility_id: UUID
    account_id: Optional[UUID] = None
    inspector_id: UUID
    template_id: Optional[UUID] = None
    reinspection_of_id: Optional[UUID] = None
    scheduled_date: date
    completed_at: Optional[datetime] = None
    overall_score: Optional[int] = None
    overall_rating: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InspectionDetailResponse(InspectionListResponse):
    contract_id: Optional[UUID] = None
    job_id: Optional[UUID] = None
    appointment_id: Optional[UUID] = None
    created_by_id: Optional[UUID] = None
    notes: Optional[str] = None
    summary: Optional[str] = None
    items: List[InspectionItemResponse] = []
    corrective_actions: List[CorrectiveActionResponse] = []
    signoffs: List[SignoffResponse] = []
    activities: List[ActivityResponse] = []
    # Display fields
    facility_name: Optional[str] = None
    inspector_name: Optional[str] = None


class PaginatedInspectionResponse(BaseModel):
    items: List[InspectionListResponse]
    total: int
    page: int
    size: int
    pages: int


class PaginatedTemplateResponse(BaseModel):
    items: List[InspectionTemplateResponse]
    total: int
    page: int
    size: int
    pages: int
