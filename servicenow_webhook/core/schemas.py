from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from servicenow_webhook.core.errors import IncidentRecordError

class AlertmanagerAlert(BaseModel):
    status: str
    labels: Dict[str, str] = {}
    annotations: Dict[str, str] = {}
    startsAt: Optional[str] = None
    endsAt: Optional[str] = None
    generatorURL: Optional[str] = None
    fingerprint: Optional[str] = None

class AlertmanagerPayload(BaseModel):
    receiver: Optional[str] = None
    status: str
    alerts: List[AlertmanagerAlert] = []
    groupLabels: Dict[str, str] = {}
    commonLabels: Dict[str, str] = {}
    commonAnnotations: Dict[str, str] = {}
    externalURL: Optional[str] = None
    version: Optional[str] = None
    groupKey: Optional[str] = None
    truncatedAlerts: Optional[int] = None

class WebhookResponse(BaseModel):
    Status: int
    Message: str


class Incident(dict):
    """A ServiceNow incident record keyed by field name.

    The incident table schema is configured per instance, so fields are kept
    dynamic. Only the handful of fields the workflow relies on get accessors.
    """

    def get_sys_id(self) -> str:
        sys_id = self.get("sys_id")
        if not sys_id:
            raise IncidentRecordError(f"Incident record has no sys_id: {dict(self)}")
        return str(sys_id)

    def get_number(self) -> str:
        return str(self.get("number") or "")

    def get_state(self) -> str:
        state = self.get("state")
        if state is None:
            return ""
        return str(state)

    @classmethod
    def from_result(cls, result: Any) -> "Incident":
        if not isinstance(result, dict):
            raise IncidentRecordError(f"Unexpected incident record: {result!r}")
        return cls(result)
