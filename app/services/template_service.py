"""
Inspection Template Store
Reusable checklists (category + item text + weight) that inspections copy
their items from. Archiving is a soft delete; edits never reach inspections
that were already instantiated.
"""
import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import NotFoundError, ValidationError
from app.db.base import utcnow
from app.models.inspection import InspectionTemplate, InspectionTemplateItem
from app.schemas.inspection import (
    InspectionTemplateCreate, InspectionTemplateUpdate, TemplateItemInput
)
from app.services.directory import ContractDirectory
from app.services.common import commit_or_conflict

logger = logging.getLogger(__name__)

HYGIEIA_STANDARD_LABEL = "Hygieia Standard Area Care"
HYGIEIA_STANDARD_PROMISE = "Area is clean, maintained, stocked, and safe per Hygieia Standard."
AUTO_TEMPLATE_ITEM_WEIGHT = 2


class TemplateService:
    """Create, edit, archive and look up inspection templates."""

    def __init__(self, db: Session, contracts: Optional[ContractDirectory] = None):
        self.db = db
        self.contracts = contracts

    # ──────────────────────────── Queries ────────────────────────────

    def get_template(self, template_id: uuid.UUID) -> InspectionTemplate:
        template = (
            self.db.query(InspectionTemplate)
            .options(selectinload(InspectionTemplate.items))
            .filter(InspectionTemplate.id == template_id)
            .first()
        )
        if not template:
            raise NotFoundError("Inspection template not found")
        return template

    def list_templates(
        self,
        facility_type_filter: Optional[str] = None,
        contract_id: Optional[uuid.UUID] = None,
        include_archived: bool = False,
        page: int = 1,
        size: int = 20,
    ) -> Tuple[List[InspectionTemplate], int]:
        query = self.db.query(InspectionTemplate).options(selectinload(InspectionTemplate.items))
        if not include_archived:
            query = query.filter(InspectionTemplate.archived_at.is_(None))
        if facility_type_filter:
            query = query.filter(InspectionTemplate.facility_type_filter == facility_type_filter)
        if contract_id:
            query = query.filter(InspectionTemplate.contract_id == contract_id)

        total = query.count()
        templates = (
            query.order_by(desc(InspectionTemplate.created_at))
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )
        return templates, total

    def get_template_for_contract(
        self, contract_id: uuid.UUID, user_id: Optional[uuid.UUID] = None
    ) -> InspectionTemplate:
        """
        Newest non-archived template bound to the contract. When there is none
        and the contract service is available, generate the standard
        area-care template from the contract's areas.
        """
        existing = (
            self.db.query(InspectionTemplate)
            .filter(
                InspectionTemplate.contract_id == contract_id,
                InspectionTemplate.archived_at.is_(None),
            )
            .order_by(desc(InspectionTemplate.created_at))
            .first()
        )
        if existing:
            return existing

        if self.contracts is None:
            raise NotFoundError("No inspection template for this contract")

        contract = self.contracts.get_contract(contract_id)
        if contract is None:
            raise NotFoundError("Contract not found")

        area_names = list(dict.fromkeys(contract.area_names))
        if not area_names:
            raise NotFoundError("Contract has no areas to build a template from")

        subject = contract.facility_name or contract.title or "Facility"
        name = f"{contract.account_name} - {subject} Inspection" if contract.account_name else f"{subject} Inspection"
        data = InspectionTemplateCreate(
            name=name[:255],
            description=(
                f"{HYGIEIA_STANDARD_LABEL}. Area-first workflow focused on cleanliness, "
                "maintenance, stocking, and safety."
            ),
            contract_id=contract_id,
            items=[
                TemplateItemInput(
                    category=area[:100],
                    item_text=HYGIEIA_STANDARD_PROMISE,
                    sort_order=index,
                    weight=AUTO_TEMPLATE_ITEM_WEIGHT,
                )
                for index, area in enumerate(area_names)
            ],
        )
        logger.info(f"[TEMPLATE] Generating standard template for contract {contract_id}")
        return self.create_template(data, user_id)

    # ─────────────────────────── Mutations ───────────────────────────

    @staticmethod
    def _build_items(items: List[TemplateItemInput]) -> List[InspectionTemplateItem]:
        if not items:
            raise ValidationError("A template must have at least one item")
        return [
            InspectionTemplateItem(
                category=item.category.strip(),
                item_text=item.item_text.strip(),
                sort_order=item.sort_order if item.sort_order is not None else index,
                weight=item.weight,
            )
            for index, item in enumerate(items)
        ]

    def create_template(
        self, data: InspectionTemplateCreate, user_id: Optional[uuid.UUID] = None
    ) -> InspectionTemplate:
        if not data.name.strip():
            raise ValidationError("Template name is required")

        template = InspectionTemplate(
            name=data.name.strip(),
            description=data.description,
            facility_type_filter=data.facility_type_filter,
            contract_id=data.contract_id,
            created_by_id=user_id,
            items=self._build_items(data.items),
        )
        self.db.add(template)
        commit_or_conflict(self.db, "create_template")
        self.db.refresh(template)

        logger.info(f"[TEMPLATE] Created '{template.name}' ({len(template.items)} items)")
        return template

    def update_template(self, template_id: uuid.UUID, data: InspectionTemplateUpdate) -> InspectionTemplate:
        """
        Edit a template. A new item list replaces the old one wholesale;
        inspections created earlier keep their copied items.
        """
        template = self.get_template(template_id)
        fields = data.model_fields_set

        if "name" in fields:
            if not data.name or not data.name.strip():
                raise ValidationError("Template name is required")
            template.name = data.name.strip()
        if "description" in fields:
            template.description = data.description
        if "facility_type_filter" in fields:
            template.facility_type_filter = data.facility_type_filter
        if "items" in fields:
            new_items = self._build_items(data.items or [])
            template.items.clear()
            self.db.flush()
            template.items.extend(new_items)

        template.updated_at = utcnow()
        commit_or_conflict(self.db, "update_template")
        self.db.refresh(template)

        logger.info(f"[TEMPLATE] Updated '{template.name}'")
        return template

    def archive_template(self, template_id: uuid.UUID) -> InspectionTemplate:
        """Soft delete. Archiving an archived template is a no-op."""
        template = self.get_template(template_id)
        if template.archived_at is None:
            template.archived_at = utcnow()
            commit_or_conflict(self.db, "archive_template")
            self.db.refresh(template)
            logger.info(f"[TEMPLATE] Archived '{template.name}'")
        return template

    def restore_template(self, template_id: uuid.UUID) -> InspectionTemplate:
        """Undo archive. Restoring an active template is a no-op."""
        template = self.get_template(template_id)
        if template.archived_at is not None:
            template.archived_at = None
            commit_or_conflict(self.db, "restore_template")
            self.db.refresh(template)
            logger.info(f"[TEMPLATE] Restored '{template.name}'")
        return template
