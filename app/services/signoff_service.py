"""
Sign-off Ledger
Append-only attestations on completed inspections. No update or delete
operation exists.
"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidStateError, ValidationError
from app.models.inspection import (
    ActivityAction, InspectionSignoff, InspectionStatus, SignerType
)
from app.schemas.inspection import SignoffCreate
from app.services.activity_log import record_activity
from app.services.common import commit_or_conflict, load_inspection, touch

logger = logging.getLogger(__name__)

SIGNER_TYPES = {s.value for s in SignerType}


class SignoffService:

    def __init__(self, db: Session):
        self.db = db

    def list_signoffs(self, inspection_id: uuid.UUID) -> List[InspectionSignoff]:
        return list(load_inspection(self.db, inspection_id).signoffs)

    def create_signoff(
        self,
        inspection_id: uuid.UUID,
        data: SignoffCreate,
        user_id: Optional[uuid.UUID] = None,
    ) -> InspectionSignoff:
        """
        Record a supervisor or client sign-off. Any number per inspection,
        including several of the same signer type.
        """
        inspection = load_inspection(self.db, inspection_id)
        if inspection.status != InspectionStatus.COMPLETED.value:
            raise InvalidStateError(
                f"Only completed inspections can be signed off (current: {inspection.status})"
            )

        signer_name = (data.signer_name or "").strip()
        if not signer_name:
            raise ValidationError("Signer name is required")
        signer_type = getattr(data.signer_type, "value", data.signer_type)
        if signer_type not in SIGNER_TYPES:
            raise ValidationError("Signer type must be supervisor or client")

        signoff = InspectionSignoff(
            id=uuid.uuid4(),
            inspection_id=inspection.id,
            signer_type=signer_type,
            signer_name=signer_name,
            signer_title=(data.signer_title or "").strip() or None,
            comments=data.comments,
            signed_by_id=user_id,
        )
        inspection.signoffs.append(signoff)

        record_activity(
            self.db, inspection, ActivityAction.SIGNOFF_CREATED, user_id,
            signoff_id=signoff.id,
            signer_type=signer_type,
            signer_name=signer_name,
        )
        touch(inspection)
        commit_or_conflict(self.db, "create_signoff")
        self.db.refresh(signoff)

        logger.info(f"[SIGNOFF] {signer_type} '{signer_name}' signed {inspection.inspection_number}")
        return signoff
