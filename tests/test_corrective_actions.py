import uuid
from datetime import date

import pytest

from app.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.schemas.inspection import CorrectiveActionCreate, CorrectiveActionUpdate
from app.services.corrective_action_service import (
    ALLOWED_TRANSITIONS, CorrectiveActionService, can_transition
)
from tests.conftest import USER_ID

INSPECTOR = uuid.UUID("66666666-6666-6666-6666-666666666666")


@pytest.fixture
def actions(db_session):
    return CorrectiveActionService(db_session)


@pytest.fixture
def open_action(actions, make_inspection, item_ids):
    inspection = make_inspection()
    return actions.create_action(
        inspection.id,
        CorrectiveActionCreate(
            title="Refill soap dispensers",
            severity="major",
            due_date=date(2026, 3, 9),
            inspection_item_id=item_ids(inspection)["Restroom"],
            assignee_id=INSPECTOR,
        ),
        USER_ID,
    )


def move(actions, action, status, user_id=USER_ID):
    return actions.update_action(
        action.inspection_id, action.id, CorrectiveActionUpdate(status=status), user_id
    )


def test_transition_table():
    assert can_transition("open", "in_progress")
    assert can_transition("resolved", "verified")
    assert can_transition("verified", "open")
    assert not can_transition("open", "verified")
    assert not can_transition("open", "resolved")
    assert not can_transition("verified", "canceled")
    assert not can_transition("open", "bogus")
    assert all(target != source for source, targets in ALLOWED_TRANSITIONS.items() for target in targets)


def test_create_action(open_action):
    assert open_action.status == "open"
    assert open_action.severity == "major"
    assert open_action.created_by_id == USER_ID
    assert open_action.assignee_id == INSPECTOR


def test_create_requires_title(actions, make_inspection):
    inspection = make_inspection()
    with pytest.raises(ValidationError):
        actions.create_action(inspection.id, CorrectiveActionCreate(title="   ", severity="minor"))


def test_item_must_belong_to_inspection(actions, make_inspection, item_ids):
    first = make_inspection()
    second = make_inspection()
    with pytest.raises(ValidationError):
        actions.create_action(
            first.id,
            CorrectiveActionCreate(
                title="Wrong item", severity="minor",
                inspection_item_id=item_ids(second)["Kitchen"],
            ),
        )


def test_cannot_create_on_canceled_inspection(actions, make_inspection, inspection_service):
    inspection = make_inspection()
    inspection_service.cancel_inspection(inspection.id)
    with pytest.raises(InvalidStateError):
        actions.create_action(inspection.id, CorrectiveActionCreate(title="Late", severity="minor"))


def test_open_to_verified_directly_fails(actions, open_action):
    with pytest.raises(InvalidStateError):
        actions.verify_action(open_action.inspection_id, open_action.id, USER_ID)
    with pytest.raises(InvalidStateError):
        move(actions, open_action, "verified")


def test_full_workflow_stamps_resolver_and_verifier(actions, open_action):
    move(actions, open_action, "in_progress")
    resolved = move(actions, open_action, "resolved", user_id=INSPECTOR)
    assert resolved.resolved_by_id == INSPECTOR
    assert resolved.resolved_at is not None

    verified = actions.verify_action(open_action.inspection_id, open_action.id, USER_ID, notes="Checked on site")
    assert verified.status == "verified"
    assert verified.verified_by_id == USER_ID
    assert verified.verified_at is not None
    assert verified.verification_notes == "Checked on site"


def test_verify_keeps_resolver_notes(actions, open_action):
    move(actions, open_action, "in_progress")
    actions.update_action(
        open_action.inspection_id,
        open_action.id,
        CorrectiveActionUpdate(status="resolved", resolution_notes="Replaced mop head, retrained crew"),
        INSPECTOR,
    )

    verified = actions.verify_action(open_action.inspection_id, open_action.id, USER_ID, notes="Looks good")
    assert verified.resolution_notes == "Replaced mop head, retrained crew"
    assert verified.verification_notes == "Looks good"


def test_reopen_clears_stamps(actions, open_action):
    move(actions, open_action, "in_progress")
    move(actions, open_action, "resolved")
    actions.verify_action(open_action.inspection_id, open_action.id, USER_ID)

    reopened = move(actions, open_action, "open")
    assert reopened.status == "open"
    assert reopened.resolved_at is None
    assert reopened.verified_at is None
    assert reopened.verified_by_id is None
    assert reopened.verification_notes is None


def test_cancel_and_reopen(actions, open_action):
    assert move(actions, open_action, "canceled").status == "canceled"
    with pytest.raises(InvalidStateError):
        move(actions, open_action, "in_progress")
    assert move(actions, open_action, "open").status == "open"


def test_field_edits_without_status_change(actions, open_action):
    updated = actions.update_action(
        open_action.inspection_id,
        open_action.id,
        CorrectiveActionUpdate(title="Refill all dispensers", severity="critical", due_date=None),
        USER_ID,
    )
    assert updated.title == "Refill all dispensers"
    assert updated.severity == "critical"
    assert updated.due_date is None
    assert updated.status == "open"


def test_edits_allowed_after_inspection_canceled(actions, open_action, inspection_service):
    inspection_service.cancel_inspection(open_action.inspection_id)
    updated = move(actions, open_action, "in_progress")
    assert updated.status == "in_progress"


def test_unknown_action(actions, open_action):
    with pytest.raises(NotFoundError):
        actions.verify_action(open_action.inspection_id, uuid.uuid4())


def test_update_activity_records_transition(actions, open_action, inspection_service):
    move(actions, open_action, "in_progress")
    latest = inspection_service.list_activities(open_action.inspection_id)[0]
    assert latest.action == "corrective_action_updated"
    assert latest.details["from_status"] == "open"
    assert latest.details["to_status"] == "in_progress"
    assert latest.details["action_id"] == str(open_action.id)


def test_list_actions_in_creation_order(actions, open_action):
    second = actions.create_action(
        open_action.inspection_id, CorrectiveActionCreate(title="Descale kettle", severity="minor")
    )
    assert [a.id for a in actions.list_actions(open_action.inspection_id)] == [open_action.id, second.id]
