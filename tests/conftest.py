"""
Pytest Configuration and Fixtures

Per-test SQLite database, service fixtures with in-memory collaborator
fakes, and an authenticated TestClient.
"""
import os
import uuid
from datetime import date
from typing import Dict, Generator, Iterable, List

os.environ.setdefault("DATABASE_URL", "sqlite:///./hygieia_test.db")
os.environ.setdefault("TESTING", "true")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

import app.models  # noqa: F401
from app.core.config import settings
from app.database import get_db
from app.db.base import Base
from app.main import app
from app.schemas.inspection import (
    InspectionCreate, InspectionTemplateCreate, TemplateItemInput
)
from app.services.directory import (
    ContractRef, FacilityRef, UserRef, get_contract_directory,
    get_facility_directory, get_guidance_provider, get_user_directory,
)
from app.services.inspection_service import InspectionService
from app.services.template_service import TemplateService

USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
INSPECTOR_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
FACILITY_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")
ACCOUNT_ID = uuid.UUID("44444444-4444-4444-4444-444444444444")
CONTRACT_ID = uuid.UUID("55555555-5555-5555-5555-555555555555")


# =============================================================================
# Collaborator fakes
# =============================================================================

class FakeFacilityDirectory:
    def __init__(self, facilities: Dict[uuid.UUID, FacilityRef]):
        self.facilities = facilities

    def get_facility(self, facility_id):
        return self.facilities.get(facility_id)


class FakeUserDirectory:
    def __init__(self, users: Dict[uuid.UUID, UserRef]):
        self.users = users

    def get_user(self, user_id):
        return self.users.get(user_id)


class FakeContractDirectory:
    def __init__(self, contracts: Dict[uuid.UUID, ContractRef]):
        self.contracts = contracts

    def get_contract(self, contract_id):
        return self.contracts.get(contract_id)


class FakeGuidanceProvider:
    def __init__(self, guidance: Dict[str, List[str]]):
        self.guidance = guidance

    def get_guidance(self, categories: Iterable[str]):
        return {c: self.guidance[c] for c in set(categories) if c in self.guidance}


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database file per test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'inspections.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def facilities():
    return FakeFacilityDirectory({
        FACILITY_ID: FacilityRef(FACILITY_ID, "Acme HQ", "1 Main St", ACCOUNT_ID),
    })


@pytest.fixture
def users():
    return FakeUserDirectory({
        INSPECTOR_ID: UserRef(INSPECTOR_ID, "Dana Inspector"),
        USER_ID: UserRef(USER_ID, "Sam Supervisor"),
    })


@pytest.fixture
def contracts():
    return FakeContractDirectory({
        CONTRACT_ID: ContractRef(
            id=CONTRACT_ID,
            title="Janitorial Services",
            account_name="Acme Corp",
            facility_name="Acme HQ",
            area_names=["Lobby", "Restroom", "Lobby", "Break Room"],
        ),
    })


@pytest.fixture
def guidance():
    return FakeGuidanceProvider({
        "Kitchen": ["Degrease hood filters", "Sanitize prep surfaces"],
        "Restroom": ["Restock paper goods"],
    })


@pytest.fixture
def inspection_service(db_session, facilities, users) -> InspectionService:
    return InspectionService(db_session, facilities=facilities, users=users)


@pytest.fixture
def template_service(db_session, contracts) -> TemplateService:
    return TemplateService(db_session, contracts=contracts)


@pytest.fixture
def kitchen_template(template_service):
    """Kitchen weight 2, Restroom weight 1."""
    return template_service.create_template(
        InspectionTemplateCreate(
            name="Office Standard",
            items=[
                TemplateItemInput(category="Kitchen", item_text="Counters wiped", weight=2),
                TemplateItemInput(category="Restroom", item_text="Fixtures cleaned", weight=1),
            ],
        ),
        USER_ID,
    )


@pytest.fixture
def make_inspection(inspection_service, kitchen_template):
    """Factory for scheduled inspections built from the kitchen template."""
    def _make(**overrides):
        data = {
            "facility_id": FACILITY_ID,
            "inspector_id": INSPECTOR_ID,
            "scheduled_date": date(2026, 3, 2),
            "template_id": kitchen_template.id,
        }
        data.update(overrides)
        return inspection_service.create_inspection(InspectionCreate(**data), USER_ID)
    return _make


@pytest.fixture
def item_ids():
    """{category: item id} for an inspection."""
    def _ids(inspection):
        return {item.category: item.id for item in inspection.items}
    return _ids


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def auth_headers():
    token = jwt.encode({"sub": str(USER_ID)}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(session_factory, facilities, users, contracts, guidance) -> Generator[TestClient, None, None]:
    """TestClient bound to the per-test database and collaborator fakes."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_facility_directory] = lambda: facilities
    app.dependency_overrides[get_user_directory] = lambda: users
    app.dependency_overrides[get_contract_directory] = lambda: contracts
    app.dependency_overrides[get_guidance_provider] = lambda: guidance

    yield TestClient(app)

    app.dependency_overrides.clear()

