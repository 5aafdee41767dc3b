"""
Inspection Models - Inspection Lifecycle and Scoring Engine
Templates, inspections with weighted items, corrective actions,
sign-offs and the append-only activity log.
"""
from enum import Enum
from sqlalchemy import (
    Column, String, Date, DateTime, Integer, Text, Uuid,
    ForeignKey, Index, JSON, CheckConstraint
)
from sqlalchemy.orm import relationship
import uuid

from app.db.base import Base, TimestampMixin, utcnow


# ============================================
# ENUMS
# ============================================

class InspectionStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"


class ItemScore(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    NA = "na"


class CorrectiveActionSeverity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class CorrectiveActionStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    VERIFIED = "verified"
    CANCELED = "canceled"


class SignerType(str, Enum):
    SUPERVISOR = "supervisor"
    CLIENT = "client"


class ActivityAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELED = "canceled"
    ITEM_ADDED = "item_added"
    ITEM_UPDATED = "item_updated"
    CORRECTIVE_ACTION_CREATED = "corrective_action_created"
    CORRECTIVE_ACTION_UPDATED = "corrective_action_updated"
    CORRECTIVE_ACTION_VERIFIED = "corrective_action_verified"
    SIGNOFF_CREATED = "signoff_created"
    REINSPECTION_CREATED = "reinspection_created"


# ============================================
# INSPECTION TEMPLATE
# ============================================

class InspectionTemplate(Base, TimestampMixin):
    __tablename__ = "inspection_templates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    facility_type_filter = Column(String(50), nullable=True)
    contract_id = Column(Uuid, nullable=True)  # external contract service
    created_by_id = Column(Uuid, nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)  # soft delete

    # Relationships
    items = relationship(
        "InspectionTemplateItem",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="InspectionTemplateItem.sort_order",
    )
    inspections = relationship("Inspection", back_populates="template")

    __table_args__ = (
        Index("idx_templates_contract", "contract_id"),
        Index("idx_templates_archived", "archived_at"),
    )

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None


class InspectionTemplateItem(Base):
    __tablename__ = "inspection_template_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id = Column(Uuid, ForeignKey("inspection_templates.id", ondelete="CASCADE"), nullable=False)
    category = Column(String(100), nullable=False)
    item_text = Column(String(500), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    weight = Column(Integer, nullable=False, default=1)

    # Relationships
    template = relationship("InspectionTemplate", back_populates="items")

    __table_args__ = (
        Index("idx_template_items_template", "template_id"),
        CheckConstraint("weight >= 1", name="ck_template_items_weight"),
    )


# ============================================
# INSPECTION
# ============================================

class Inspection(Base, TimestampMixin):
    __tablename__ = "inspections"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    inspection_number = Column(String(30), unique=True, nullable=False)
    status = Column(String(20), nullable=False, default=InspectionStatus.SCHEDULED.value)

    # External references (facility/user/contract services own these rows)
    facility_id = Column(Uuid, nullable=False)
    account_id = Column(Uuid, nullable=True)
    inspector_id = Column(Uuid, nullable=False)
    contract_id = Column(Uuid, nullable=True)
    job_id = Column(Uuid, nullable=True)
    appointment_id = Column(Uuid, nullable=True)
    created_by_id = Column(Uuid, nullable=True)

    template_id = Column(Uuid, ForeignKey("inspection_templates.id", ondelete="SET NULL"), nullable=True)
    reinspection_of_id = Column(Uuid, ForeignKey("inspections.id", ondelete="SET NULL"), nullable=True)

    scheduled_date = Column(Date, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)

    # Both null until completed; both null when every item is 'na'
    overall_score = Column(Integer, nullable=True)
    overall_rating = Column(String(20), nullable=True)

    # Optimistic lock: concurrent writers to one inspection serialize on this
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    items = relationship(
        "InspectionItem",
        back_populates="inspection",
        cascade="all, delete-orphan",
        order_by="InspectionItem.sort_order",
    )
    corrective_actions = relationship(
        "InspectionCorrectiveAction",
        back_populates="inspection",
        cascade="all, delete-orphan",
        foreign_keys="InspectionCorrectiveAction.inspection_id",
        order_by="InspectionCorrectiveAction.created_at",
    )
    signoffs = relationship(
        "InspectionSignoff",
        back_populates="inspection",
        cascade="all, delete-orphan",
        order_by="InspectionSignoff.signed_at",
    )
    activities = relationship(
        "InspectionActivity",
        back_populates="inspection",
        cascade="all, delete-orphan",
        order_by="InspectionActivity.created_at",
    )
    template = relationship("InspectionTemplate", back_populates="inspections")
    reinspection_of = relationship("Inspection", remote_side=[id])

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_inspections_facility", "facility_id"),
        Index("idx_inspections_inspector", "inspector_id"),
        Index("idx_inspections_status", "status"),
        Index("idx_inspections_scheduled_date", "scheduled_date"),
        Index("idx_inspections_reinspection_of", "reinspection_of_id"),
        CheckConstraint(
            "(overall_score IS NULL AND overall_rating IS NULL) OR "
            "(overall_score IS NOT NULL AND overall_rating IS NOT NULL)",
            name="ck_inspections_score_rating",
        ),
    )


# ============================================
# INSPECTION ITEM
# ============================================

class InspectionItem(Base, TimestampMixin):
    __tablename__ = "inspection_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    inspection_id = Column(Uuid, ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False)
    template_item_id = Column(Uuid, nullable=True)  # copied from, not linked to
    category = Column(String(100), nullable=False)
    item_text = Column(String(500), nullable=False)
    weight = Column(Integer, nullable=False, default=1)
    score = Column(String(10), nullable=True)  # pass | fail | na
    rating = Column(Integer, nullable=True)  # 1-5
    notes = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    # Relationships
    inspection = relationship("Inspection", back_populates="items")

    __table_args__ = (
        Index("idx_inspection_items_inspection", "inspection_id"),
        CheckConstraint("weight >= 1", name="ck_inspection_items_weight"),
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_inspection_items_rating"),
    )


# ============================================
# CORRECTIVE ACTION
# ============================================

class InspectionCorrectiveAction(Base, TimestampMixin):
    __tablename__ = "inspection_corrective_actions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    inspection_id = Column(Uuid, ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False)
    inspection_item_id = Column(Uuid, ForeignKey("inspection_items.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    severity = Column(String(20), nullable=False, default=CorrectiveActionSeverity.MAJOR.value)
    status = Column(String(30), nullable=False, default=CorrectiveActionStatus.OPEN.value)
    due_date = Column(Date, nullable=True)
    assignee_id = Column(Uuid, nullable=True)
    created_by_id = Column(Uuid, nullable=True)
    resolved_by_id = Column(Uuid, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    verified_by_id = Column(Uuid, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_notes = Column(Text, nullable=True)
    follow_up_inspection_id = Column(Uuid, ForeignKey("inspections.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    inspection = relationship(
        "Inspection", back_populates="corrective_actions", foreign_keys=[inspection_id]
    )
    inspection_item = relationship("InspectionItem")

    __table_args__ = (
        Index("idx_corrective_actions_inspection", "inspection_id"),
        Index("idx_corrective_actions_item", "inspection_item_id"),
        Index("idx_corrective_actions_status", "status"),
        Index("idx_corrective_actions_severity", "severity"),
        Index("idx_corrective_actions_due_date", "due_date"),
    )


# ============================================
# SIGN-OFF (append-only)
# ============================================

class InspectionSignoff(Base):
    __tablename__ = "inspection_signoffs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    inspection_id = Column(Uuid, ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False)
    signer_type = Column(String(20), nullable=False)  # supervisor | client
    signer_name = Column(String(255), nullable=False)
    signer_title = Column(String(255), nullable=True)
    comments = Column(Text, nullable=True)
    signed_by_id = Column(Uuid, nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    inspection = relationship("Inspection", back_populates="signoffs")

    __table_args__ = (
        Index("idx_signoffs_inspection", "inspection_id"),
        Index("idx_signoffs_signer_type", "signer_type"),
    )


# ============================================
# ACTIVITY LOG (append-only)
# ============================================

class InspectionActivity(Base):
    __tablename__ = "inspection_activities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    inspection_id = Column(Uuid, ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(50), nullable=False)
    performed_by_id = Column(Uuid, nullable=True)  # null = system
    details = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    inspection = relationship("Inspection", back_populates="activities")

    __table_args__ = (
        Index("idx_activities_inspection", "inspection_id"),
        Index("idx_activities_action", "action"),
    )
