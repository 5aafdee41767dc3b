"""
Inspection Template Routes
Create, list, edit, archive/restore templates and resolve the template for
a contract.
"""
import logging
import math
import uuid as uuid_module
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_user_id
from app.database import get_db
from app.models.inspection import InspectionTemplate
from app.schemas.inspection import (
    InspectionTemplateCreate, InspectionTemplateResponse, InspectionTemplateUpdate
)
from app.services.directory import ContractDirectory, get_contract_directory
from app.services.template_service import TemplateService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["inspection-templates"])


def get_template_service(
    db: Session = Depends(get_db),
    contracts: Optional[ContractDirectory] = Depends(get_contract_directory),
) -> TemplateService:
    return TemplateService(db, contracts=contracts)


def build_template_response(template: InspectionTemplate) -> dict:
    return InspectionTemplateResponse.model_validate(template).model_dump()


@router.get("/")
def list_templates(
    facility_type_filter: Optional[str] = None,
    contract_id: Optional[uuid_module.UUID] = None,
    include_archived: bool = False,
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    service: TemplateService = Depends(get_template_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    size = min(size, settings.MAX_PAGE_SIZE)
    templates, total = service.list_templates(
        facility_type_filter=facility_type_filter,
        contract_id=contract_id,
        include_archived=include_archived,
        page=page,
        size=size,
    )
    return {
        "items": [build_template_response(t) for t in templates],
        "total": total,
        "page": page,
        "size": size,
        "pages": math.ceil(total / size) if size > 0 else 0,
    }


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_template(
    request: InspectionTemplateCreate,
    service: TemplateService = Depends(get_template_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    return build_template_response(service.create_template(request, current_user_id))


@router.get("/by-contract/{contract_id}/")
def get_template_for_contract(
    contract_id: uuid_module.UUID,
    service: TemplateService = Depends(get_template_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    """Contract's template, generating the standard area-care one if missing."""
    return build_template_response(service.get_template_for_contract(contract_id, current_user_id))


@router.get("/{template_id}/")
def get_template(
    template_id: uuid_module.UUID,
    service: TemplateService = Depends(get_template_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    return build_template_response(service.get_template(template_id))


@router.patch("/{template_id}/")
def update_template(
    template_id: uuid_module.UUID,
    request: InspectionTemplateUpdate,
    service: TemplateService = Depends(get_template_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    return build_template_response(service.update_template(template_id, request))


@router.post("/{template_id}/archive/")
def archive_template(
    template_id: uuid_module.UUID,
    service: TemplateService = Depends(get_template_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    return build_template_response(service.archive_template(template_id))


@router.post("/{template_id}/restore/")
def restore_template(
    template_id: uuid_module.UUID,
    service: TemplateService = Depends(get_template_service),
    current_user_id: uuid_module.UUID = Depends(get_current_user_id),
):
    return build_template_response(service.restore_template(template_id))
