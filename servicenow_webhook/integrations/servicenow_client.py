from typing import Any, Dict, List, Optional, Protocol

import httpx
from loguru import logger

from servicenow_webhook.core.config import ServiceNowConfig
from servicenow_webhook.core.errors import ServiceNowError
from servicenow_webhook.core.schemas import Incident

SERVICENOW_BASE_URL = "https://{}.service-now.com"
TABLE_API = "/api/now/v2/table/{}"
INCIDENT_TABLE = "incident"


class IncidentClient(Protocol):
    """What the incident workflow needs from a ticketing system."""

    async def create_incident(self, incident: Incident) -> Incident: ...

    async def get_incidents(self, params: Dict[str, str]) -> List[Incident]: ...

    async def update_incident(self, incident: Incident, sys_id: str) -> Incident: ...


class ServiceNowClient:
    def __init__(
        self,
        instance_name: str,
        user_name: str,
        password: str,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not instance_name:
            raise ValueError("Missing instance_name")
        if not user_name:
            raise ValueError("Missing user_name")
        if not password:
            raise ValueError("Missing password")

        self.base_url = base_url or SERVICENOW_BASE_URL.format(instance_name)
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=(user_name, password),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: ServiceNowConfig) -> "ServiceNowClient":
        return cls(config.instance_name, config.user_name, config.password)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def create_incident(self, incident: Incident) -> Incident:
        logger.info(f"Creating a ServiceNow {INCIDENT_TABLE}")
        result = await self._request("POST", TABLE_API.format(INCIDENT_TABLE), json=dict(incident))
        return Incident.from_result(result)

    async def get_incidents(self, params: Dict[str, str]) -> List[Incident]:
        logger.info(f"Getting ServiceNow {INCIDENT_TABLE}s with params {params}")
        result = await self._request("GET", TABLE_API.format(INCIDENT_TABLE), params=params or {})
        if not isinstance(result, list):
            raise ServiceNowError(f"Unexpected ServiceNow query result: {result!r}")
        return [Incident.from_result(r) for r in result]

    async def update_incident(self, incident: Incident, sys_id: str) -> Incident:
        logger.info(f"Updating ServiceNow {INCIDENT_TABLE} {sys_id}")
        path = f"{TABLE_API.format(INCIDENT_TABLE)}/{sys_id}"
        result = await self._request("PUT", path, json=dict(incident))
        return Incident.from_result(result)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Error sending the request. {e}")
            raise ServiceNowError(f"{method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            raise ServiceNowError(
                f"{method} {resp.request.url} returned {resp.status_code}: {resp.text[:200]}"
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise ServiceNowError(f"{method} {resp.request.url} returned a non JSON body") from e

        if not isinstance(body, dict) or "result" not in body:
            raise ServiceNowError(f"{method} {resp.request.url} returned no result")
        return body["result"]
