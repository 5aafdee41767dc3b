import uuid

from jose import jwt

from app.core.config import settings
from tests.conftest import CONTRACT_ID, FACILITY_ID, INSPECTOR_ID, USER_ID


def create_template(client, auth_headers):
    response = client.post("/api/inspection-templates/", headers=auth_headers, json={
        "name": "Office Standard",
        "items": [
            {"category": "Kitchen", "item_text": "Counters wiped", "weight": 2},
            {"category": "Restroom", "item_text": "Fixtures cleaned"},
        ],
    })
    assert response.status_code == 201
    return response.json()


def create_inspection(client, auth_headers, template_id):
    response = client.post("/api/inspections/", headers=auth_headers, json={
        "facility_id": str(FACILITY_ID),
        "inspector_id": str(INSPECTOR_ID),
        "scheduled_date": "2026-03-02",
        "template_id": template_id,
    })
    assert response.status_code == 201
    return response.json()


def complete_body(inspection, restroom="fail", **extra):
    scores = {"Kitchen": "pass", "Restroom": restroom}
    body = {"items": [{"id": i["id"], "score": scores[i["category"]]} for i in inspection["items"]]}
    body.update(extra)
    return body


def test_system_endpoints(client):
    assert client.get("/").json()["success"] is True
    assert client.get("/api/version").json()["api_version"] == settings.VERSION


def test_requires_bearer_token(client):
    assert client.get("/api/inspections/").status_code == 401

    bad = jwt.encode({"sub": "not-a-uuid"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    response = client.get("/api/inspections/", headers={"Authorization": f"Bearer {bad}"})
    assert response.status_code == 401

    forged = jwt.encode({"sub": str(USER_ID)}, "wrong-secret", algorithm=settings.ALGORITHM)
    response = client.get("/api/inspections/", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401


def test_full_inspection_flow(client, auth_headers):
    template = create_template(client, auth_headers)
    inspection = create_inspection(client, auth_headers, template["id"])
    inspection_id = inspection["id"]

    assert inspection["status"] == "scheduled"
    assert inspection["facility_name"] == "Acme HQ"
    assert inspection["inspector_name"] == "Dana Inspector"
    assert inspection["overall_score"] is None

    response = client.post(f"/api/inspections/{inspection_id}/start/", headers=auth_headers)
    assert response.json()["status"] == "in_progress"

    response = client.post(
        f"/api/inspections/{inspection_id}/complete/",
        headers=auth_headers,
        json=complete_body(inspection, summary="Soap low", create_corrective_actions=True),
    )
    assert response.status_code == 200
    completed = response.json()
    assert completed["overall_score"] == 67
    assert completed["overall_rating"] == "fair"
    assert len(completed["corrective_actions"]) == 1
    action_id = completed["corrective_actions"][0]["id"]

    categories = client.get(f"/api/inspections/{inspection_id}/categories/", headers=auth_headers).json()
    assert [(c["category"], c["score"]) for c in categories] == [("Kitchen", "pass"), ("Restroom", "fail")]

    for status in ("in_progress", "resolved"):
        response = client.patch(
            f"/api/inspections/{inspection_id}/actions/{action_id}/",
            headers=auth_headers,
            json={"status": status},
        )
        assert response.json()["status"] == status
    response = client.post(
        f"/api/inspections/{inspection_id}/actions/{action_id}/verify/",
        headers=auth_headers,
        json={"notes": "Dispensers full"},
    )
    assert response.json()["verified_by_id"] == str(USER_ID)
    assert response.json()["verification_notes"] == "Dispensers full"

    response = client.post(f"/api/inspections/{inspection_id}/signoffs/", headers=auth_headers, json={
        "signer_type": "client", "signer_name": "Facility Manager",
    })
    assert response.status_code == 201

    response = client.post(f"/api/inspections/{inspection_id}/reinspect/", headers=auth_headers)
    assert response.status_code == 201
    follow_up = response.json()
    assert follow_up["reinspection_of_id"] == inspection_id
    assert [i["category"] for i in follow_up["items"]] == ["Restroom"]

    activities = client.get(f"/api/inspections/{inspection_id}/activities/", headers=auth_headers).json()
    assert activities[0]["action"] == "reinspection_created"
    assert activities[0]["metadata"]["reinspection_id"] == follow_up["id"]
    assert activities[-1]["action"] == "created"

    detail = client.get(f"/api/inspections/{inspection_id}/", headers=auth_headers).json()
    assert detail["status"] == "completed"
    assert len(detail["signoffs"]) == 1
    assert detail["corrective_actions"][0]["follow_up_inspection_id"] is None  # verified


def test_error_kinds_are_distinct(client, auth_headers):
    template = create_template(client, auth_headers)
    inspection = create_inspection(client, auth_headers, template["id"])
    inspection_id = inspection["id"]

    # Missing scores -> validation_error
    response = client.post(f"/api/inspections/{inspection_id}/complete/", headers=auth_headers, json={})
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"

    # Sign-off before completion -> invalid_state
    response = client.post(f"/api/inspections/{inspection_id}/signoffs/", headers=auth_headers, json={
        "signer_type": "supervisor", "signer_name": "Sam",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_state"

    # Unknown inspection -> not_found
    response = client.post(f"/api/inspections/{uuid.uuid4()}/start/", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"

    # No checklist items -> validation_error from the service
    response = client.post("/api/inspections/", headers=auth_headers, json={
        "facility_id": str(FACILITY_ID),
        "inspector_id": str(INSPECTOR_ID),
        "scheduled_date": "2026-03-02",
    })
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"

    # Malformed body -> validation_error from request parsing
    response = client.post(f"/api/inspections/{inspection_id}/actions/", headers=auth_headers, json={
        "title": "No severity",
    })
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_cancel_and_list(client, auth_headers):
    template = create_template(client, auth_headers)
    first = create_inspection(client, auth_headers, template["id"])
    create_inspection(client, auth_headers, template["id"])

    response = client.post(
        f"/api/inspections/{first['id']}/cancel/", headers=auth_headers, json={"reason": "Site closed"}
    )
    assert response.json()["status"] == "canceled"

    response = client.post(f"/api/inspections/{first['id']}/cancel/", headers=auth_headers)
    assert response.status_code == 400

    page = client.get("/api/inspections/?status=canceled", headers=auth_headers).json()
    assert page["total"] == 1
    assert page["items"][0]["id"] == first["id"]

    page = client.get("/api/inspections/?size=1", headers=auth_headers).json()
    assert (page["total"], page["size"], page["pages"]) == (2, 1, 2)


def test_item_routes(client, auth_headers):
    template = create_template(client, auth_headers)
    inspection = create_inspection(client, auth_headers, template["id"])
    base = f"/api/inspections/{inspection['id']}/items/"

    added = client.post(base, headers=auth_headers, json={"category": "Lobby", "item_text": "Mats"})
    assert added.status_code == 201
    item_id = added.json()["id"]

    response = client.patch(f"{base}{item_id}/", headers=auth_headers, json={"weight": 4})
    assert response.json()["weight"] == 4

    # Items only go away with their inspection
    response = client.delete(f"{base}{item_id}/", headers=auth_headers)
    assert response.status_code == 405

    detail = client.get(f"/api/inspections/{inspection['id']}/", headers=auth_headers).json()
    assert [i["category"] for i in detail["items"]] == ["Kitchen", "Restroom", "Lobby"]


def test_guidance_route(client, auth_headers):
    template = create_template(client, auth_headers)
    inspection = create_inspection(client, auth_headers, template["id"])
    guidance = client.get(f"/api/inspections/{inspection['id']}/guidance/", headers=auth_headers).json()
    assert guidance["Restroom"] == ["Restock paper goods"]


def test_template_routes(client, auth_headers):
    template = create_template(client, auth_headers)
    template_id = template["id"]

    response = client.patch(
        f"/api/inspection-templates/{template_id}/", headers=auth_headers, json={"name": "Renamed"}
    )
    assert response.json()["name"] == "Renamed"
    assert len(response.json()["items"]) == 2

    archived = client.post(f"/api/inspection-templates/{template_id}/archive/", headers=auth_headers).json()
    assert archived["is_archived"] is True
    assert client.get("/api/inspection-templates/", headers=auth_headers).json()["total"] == 0

    response = client.post("/api/inspections/", headers=auth_headers, json={
        "facility_id": str(FACILITY_ID),
        "inspector_id": str(INSPECTOR_ID),
        "scheduled_date": "2026-03-02",
        "template_id": template_id,
    })
    assert response.status_code == 400

    restored = client.post(f"/api/inspection-templates/{template_id}/restore/", headers=auth_headers).json()
    assert restored["is_archived"] is False

    generated = client.get(f"/api/inspection-templates/by-contract/{CONTRACT_ID}/", headers=auth_headers).json()
    assert generated["contract_id"] == str(CONTRACT_ID)
    assert [i["category"] for i in generated["items"]] == ["Lobby", "Restroom", "Break Room"]
