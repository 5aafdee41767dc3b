import uuid
from datetime import date

import pytest

from app.core.exceptions import InvalidStateError, NotFoundError
from app.schemas.inspection import (
    CorrectiveActionUpdate, InspectionCompleteRequest, InspectionItemCreate, ItemScoreInput, ReinspectionCreate
)
from app.services.corrective_action_service import CorrectiveActionService
from tests.conftest import INSPECTOR_ID, USER_ID


def complete(inspection_service, inspection, scores, **kwargs):
    return inspection_service.complete_inspection(
        inspection.id,
        InspectionCompleteRequest(
            items=[ItemScoreInput(id=item.id, score=scores[item.category]) for item in inspection.items],
            **kwargs,
        ),
        USER_ID,
    )


def test_reinspection_carries_only_failed_items(inspection_service, make_inspection):
    source = make_inspection(items=[InspectionItemCreate(category="Lobby", item_text="Mats")])
    complete(inspection_service, source, {"Kitchen": "pass", "Restroom": "fail", "Lobby": "fail"})

    follow_up = inspection_service.create_reinspection(source.id, user_id=USER_ID)

    assert follow_up.status == "scheduled"
    assert follow_up.reinspection_of_id == source.id
    assert follow_up.facility_id == source.facility_id
    assert follow_up.template_id == source.template_id
    assert follow_up.inspector_id == INSPECTOR_ID
    assert follow_up.scheduled_date == date.today()
    assert [(i.category, i.score) for i in follow_up.items] == [("Restroom", None), ("Lobby", None)]
    assert follow_up.inspection_number != source.inspection_number


def test_source_is_left_completed(inspection_service, make_inspection):
    source = make_inspection()
    complete(inspection_service, source, {"Kitchen": "pass", "Restroom": "fail"})
    inspection_service.create_reinspection(source.id)

    reloaded = inspection_service.get_inspection(source.id)
    assert reloaded.status == "completed"
    assert reloaded.overall_score == 67


def test_reinspection_options(inspection_service, make_inspection):
    source = make_inspection()
    complete(inspection_service, source, {"Kitchen": "fail", "Restroom": "fail"})

    follow_up = inspection_service.create_reinspection(
        source.id,
        ReinspectionCreate(scheduled_date=date(2026, 5, 1), inspector_id=USER_ID, notes="Bring degreaser"),
    )
    assert follow_up.scheduled_date == date(2026, 5, 1)
    assert follow_up.inspector_id == USER_ID
    assert follow_up.notes == "Bring degreaser"


def test_reinspection_rejects_unknown_inspector(inspection_service, make_inspection):
    source = make_inspection()
    complete(inspection_service, source, {"Kitchen": "fail", "Restroom": "pass"})
    with pytest.raises(NotFoundError):
        inspection_service.create_reinspection(source.id, ReinspectionCreate(inspector_id=uuid.uuid4()))


def test_passing_inspection_cannot_be_reinspected(inspection_service, make_inspection):
    source = make_inspection()
    complete(inspection_service, source, {"Kitchen": "pass", "Restroom": "na"})
    with pytest.raises(InvalidStateError):
        inspection_service.create_reinspection(source.id)


def test_only_completed_inspections_can_be_reinspected(inspection_service, make_inspection):
    scheduled = make_inspection()
    with pytest.raises(InvalidStateError):
        inspection_service.create_reinspection(scheduled.id)

    inspection_service.cancel_inspection(scheduled.id)
    with pytest.raises(InvalidStateError):
        inspection_service.create_reinspection(scheduled.id)


def test_open_actions_point_at_follow_up(inspection_service, make_inspection, db_session):
    source = make_inspection()
    completed = complete(
        inspection_service, source, {"Kitchen": "fail", "Restroom": "fail"}, create_corrective_actions=True
    )
    first, second = completed.corrective_actions
    actions = CorrectiveActionService(db_session)
    actions.update_action(source.id, second.id, CorrectiveActionUpdate(status="canceled"))

    follow_up = inspection_service.create_reinspection(source.id)

    by_id = {a.id: a for a in actions.list_actions(source.id)}
    assert by_id[first.id].follow_up_inspection_id == follow_up.id
    assert by_id[second.id].follow_up_inspection_id is None


def test_reinspection_writes_one_activity_per_inspection(inspection_service, make_inspection):
    source = make_inspection()
    complete(inspection_service, source, {"Kitchen": "pass", "Restroom": "fail"})
    follow_up = inspection_service.create_reinspection(source.id, user_id=USER_ID)

    source_rows = inspection_service.list_activities(source.id)
    assert [r.action for r in source_rows] == ["reinspection_created", "completed", "created"]
    assert source_rows[0].details == {"reinspection_id": str(follow_up.id), "item_count": 1}

    follow_up_rows = inspection_service.list_activities(follow_up.id)
    assert [r.action for r in follow_up_rows] == ["created"]
    assert follow_up_rows[0].details["reinspection_of_id"] == str(source.id)


def test_list_follow_ups(inspection_service, make_inspection):
    source = make_inspection()
    complete(inspection_service, source, {"Kitchen": "fail", "Restroom": "pass"})
    follow_up = inspection_service.create_reinspection(source.id)

    items, total = inspection_service.list_inspections(reinspection_of_id=source.id)
    assert total == 1
    assert items[0].id == follow_up.id
