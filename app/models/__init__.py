# Import all models so they're registered with Base
from app.models.inspection import (
    ActivityAction,
    CorrectiveActionSeverity,
    CorrectiveActionStatus,
    Inspection,
    InspectionActivity,
    InspectionCorrectiveAction,
    InspectionItem,
    InspectionSignoff,
    InspectionStatus,
    InspectionTemplate,
    InspectionTemplateItem,
    ItemScore,
    SignerType,
)

__all__ = [
    "ActivityAction",
    "CorrectiveActionSeverity",
    "CorrectiveActionStatus",
    "Inspection",
    "InspectionActivity",
    "InspectionCorrectiveAction",
    "InspectionItem",
    "InspectionSignoff",
    "InspectionStatus",
    "InspectionTemplate",
    "InspectionTemplateItem",
    "ItemScore",
    "SignerType",
]
