from typing import Iterable, List, Optional

from loguru import logger

from servicenow_webhook.core.config import Config
from servicenow_webhook.core.group_key import get_group_key
from servicenow_webhook.core.schemas import AlertmanagerPayload, Incident
from servicenow_webhook.core.templating import apply_incident_template
from servicenow_webhook.core.validation import validate_incident
from servicenow_webhook.integrations.servicenow_client import IncidentClient


def filter_for_update(incident: Incident, update_fields: Iterable[str]) -> Incident:
    allowed = set(update_fields)
    return Incident({k: v for k, v in incident.items() if k in allowed})


def filter_updatable_incidents(incidents: List[Incident], no_update_states: Iterable[str]) -> List[Incident]:
    terminal = {str(s) for s in no_update_states}
    return [i for i in incidents if i.get_state() not in terminal]


class IncidentService:
    def __init__(self, config: Config, client: IncidentClient):
        self.config = config
        self.client = client

    @property
    def group_key_field(self) -> str:
        return self.config.workflow.incident_group_key_field

    async def handle_alert_group(self, data: AlertmanagerPayload) -> Optional[Incident]:
        """Create or update the ServiceNow incident for one alert group.

        Returns the record ServiceNow sent back, or None when nothing was
        written. ServiceNowError from the client is left to the caller.
        """
        logger.info(
            f"Received alert group: Status={data.status}, GroupLabels={data.groupLabels}, "
            f"CommonLabels={data.commonLabels}, CommonAnnotations={data.commonAnnotations}"
        )
        group_key = get_group_key(data.groupLabels)

        existing = await self.client.get_incidents({self.group_key_field: group_key})
        logger.info(f"Found {len(existing)} existing incident(s) for alert group key: {group_key}.")

        updatable = filter_updatable_incidents(existing, self.config.workflow.no_update_states)
        logger.info(f"Found {len(updatable)} updatable incident(s) for alert group key: {group_key}.")

        updatable_incident = None
        if updatable:
            updatable_incident = updatable[0]
            if len(updatable) > 1:
                logger.warning(
                    f"As multiple updatable incidents were found for alert group key: {group_key}, "
                    f"first one will be used: {updatable_incident.get_number()}"
                )

        if data.status == "firing":
            return await self.on_firing_group(data, group_key, updatable_incident)
        if data.status == "resolved":
            return await self.on_resolved_group(data, group_key, updatable_incident)

        logger.error(f"Unknown alert group status: {data.status}")
        return None

    async def on_firing_group(
        self, data: AlertmanagerPayload, group_key: str, updatable_incident: Optional[Incident]
    ) -> Incident:
        incident = self.alert_group_to_incident(data, group_key)

        if updatable_incident is None:
            logger.info(f"Found no updatable incident for firing alert group key: {group_key}")
            return await self.client.create_incident(incident)

        logger.info(
            f"Found updatable incident ({updatable_incident.get_number()}), with state "
            f"{updatable_incident.get_state()}, for firing alert group key: {group_key}"
        )
        return await self._update(incident, updatable_incident)

    async def on_resolved_group(
        self, data: AlertmanagerPayload, group_key: str, updatable_incident: Optional[Incident]
    ) -> Optional[Incident]:
        if updatable_incident is None:
            logger.info(
                f"Found no updatable incident for resolved alert group key: {group_key}. "
                f"No incident will be created/updated."
            )
            return None

        logger.info(
            f"Found updatable incident ({updatable_incident.get_number()}), with state "
            f"{updatable_incident.get_state()}, for resolved alert group key: {group_key}"
        )
        incident = self.alert_group_to_incident(data, group_key)
        return await self._update(incident, updatable_incident)

    async def _update(self, incident: Incident, existing: Incident) -> Incident:
        update = filter_for_update(incident, self.config.workflow.incident_update_fields)
        return await self.client.update_incident(update, existing.get_sys_id())

    def alert_group_to_incident(self, data: AlertmanagerPayload, group_key: Optional[str] = None) -> Incident:
        if group_key is None:
            group_key = get_group_key(data.groupLabels)

        incident = Incident({
            "caller_id": self.config.service_now.user_name,
            self.group_key_field: group_key,
        })
        incident.update(self.config.default_incident)

        apply_incident_template(incident, data)

        for error in validate_incident(incident):
            logger.warning(error)

        return incident
