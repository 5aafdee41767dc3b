"""
Collaborator Directory Clients
Lookups against the external facility, user, contract and area-type services.

Clients are created per request and memoize lookups for their own lifetime;
there is no process-wide cache. Facility/user/contract lookups raise
UpstreamError when the service fails. Area guidance is best-effort: any
failure returns an empty mapping.
"""
import logging
import uuid
from typing import Dict, Iterable, List, NamedTuple, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class FacilityRef(NamedTuple):
    id: uuid.UUID
    name: Optional[str]
    address: Optional[str] = None
    account_id: Optional[uuid.UUID] = None


class UserRef(NamedTuple):
    id: uuid.UUID
    full_name: Optional[str]


class ContractRef(NamedTuple):
    id: uuid.UUID
    title: Optional[str]
    account_name: Optional[str]
    facility_name: Optional[str]
    area_names: List[str]


def _parse_uuid(value) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class _ServiceClient:
    """Shared GET-with-envelope logic for the collaborator services."""

    service_name = "collaborator"

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.COLLABORATOR_TIMEOUT_SECONDS
        self.transport = transport
        self.headers = {"Accept": "application/json"}
        if settings.COLLABORATOR_API_TOKEN:
            self.headers["Authorization"] = f"Bearer {settings.COLLABORATOR_API_TOKEN}"
        self._memo: Dict[str, Optional[dict]] = {}

    def _get_data(self, path: str, params: Optional[dict] = None) -> Optional[dict]:
        """GET {base}{path} and unwrap {"data": ...}. 404 -> None."""
        memo_key = f"{path}?{sorted((params or {}).items())}"
        if memo_key in self._memo:
            return self._memo[memo_key]

        with httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.headers,
            transport=self.transport,
        ) as client:
            response = client.get(path, params=params)

        if response.status_code == 404:
            data = None
        else:
            response.raise_for_status()
            data = response.json().get("data")

        self._memo[memo_key] = data
        return data

    def _lookup(self, path: str) -> Optional[dict]:
        try:
            return self._get_data(path)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[DIRECTORY] {self.service_name} lookup {path} failed: {e}")
            raise UpstreamError(f"{self.service_name.capitalize()} service unavailable")


class FacilityDirectory(_ServiceClient):
    service_name = "facility"

    def get_facility(self, facility_id: uuid.UUID) -> Optional[FacilityRef]:
        data = self._lookup(f"/facilities/{facility_id}")
        if data is None:
            return None
        return FacilityRef(
            id=facility_id,
            name=data.get("name"),
            address=data.get("address"),
            account_id=_parse_uuid(data.get("accountId")),
        )


class UserDirectory(_ServiceClient):
    service_name = "user"

    def get_user(self, user_id: uuid.UUID) -> Optional[UserRef]:
        data = self._lookup(f"/users/{user_id}")
        if data is None:
            return None
        return UserRef(id=user_id, full_name=data.get("fullName"))


class ContractDirectory(_ServiceClient):
    service_name = "contract"

    def get_contract(self, contract_id: uuid.UUID) -> Optional[ContractRef]:
        data = self._lookup(f"/contracts/{contract_id}")
        if data is None:
            return None
        return ContractRef(
            id=contract_id,
            title=data.get("title"),
            account_name=data.get("accountName"),
            facility_name=data.get("facilityName"),
            area_names=[name for name in data.get("areaNames") or [] if name],
        )


class AreaGuidanceProvider(_ServiceClient):
    service_name = "guidance"

    def get_guidance(self, categories: Iterable[str]) -> Dict[str, List[str]]:
        """
        Guidance text per category. Non-critical: failures and malformed
        payloads degrade to {} and never raise.
        """
        names = sorted({c for c in categories if c})
        if not names:
            return {}
        try:
            data = self._get_data("/area-types/guidance", params={"names": ",".join(names)})
        except Exception as e:
            logger.warning(f"[DIRECTORY] Guidance lookup failed, continuing without: {e}")
            return {}

        if not isinstance(data, dict):
            return {}
        return {
            category: [str(text) for text in texts]
            for category, texts in data.items()
            if isinstance(texts, list)
        }


# ==================== FastAPI dependencies ====================

def get_facility_directory() -> Optional[FacilityDirectory]:
    if not settings.FACILITY_SERVICE_URL:
        return None
    return FacilityDirectory(settings.FACILITY_SERVICE_URL)


def get_user_directory() -> Optional[UserDirectory]:
    if not settings.USER_SERVICE_URL:
        return None
    return UserDirectory(settings.USER_SERVICE_URL)


def get_contract_directory() -> Optional[ContractDirectory]:
    if not settings.CONTRACT_SERVICE_URL:
        return None
    return ContractDirectory(settings.CONTRACT_SERVICE_URL)


def get_guidance_provider() -> Optional[AreaGuidanceProvider]:
    if not settings.GUIDANCE_SERVICE_URL:
        return None
    return AreaGuidanceProvider(settings.GUIDANCE_SERVICE_URL)
