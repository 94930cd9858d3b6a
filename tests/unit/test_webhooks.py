import os
import unittest
from unittest.mock import AsyncMock, Mock

from fastapi.testclient import TestClient

from servicenow_webhook.core.config import Config, ServiceNowConfig, WorkflowConfig
from servicenow_webhook.core.errors import ServiceNowError
from servicenow_webhook.core.incident import IncidentService
from servicenow_webhook.core.schemas import Incident
from servicenow_webhook.main import create_app

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "..", "fixtures")


def read_fixture(name: str) -> bytes:
    with open(os.path.join(FIXTURES_DIR, name), "rb") as f:
        return f.read()


class TestWebhookHandler(unittest.TestCase):
    def setUp(self) -> None:
        config = Config(
            service_now=ServiceNowConfig(instance_name="instance", user_name="SA", password="SA!"),
            workflow=WorkflowConfig(
                incident_group_key_field="u_other_reference_1",
                no_update_states=["6", "7"],
                incident_update_fields=["comments"],
            ),
            default_incident={"comments": "{{ status }}"},
        )
        self.sn = Mock()
        self.sn.get_incidents = AsyncMock(return_value=[])
        self.sn.create_incident = AsyncMock(return_value=Incident({"sys_id": "new"}))
        self.sn.update_incident = AsyncMock(side_effect=ServiceNowError("Update should not be called"))
        self.client = TestClient(create_app(IncidentService(config, self.sn)))

    def post(self, body: bytes):
        return self.client.post("/webhook", content=body, headers={"Content-Type": "application/json"})

    def test_firing_does_not_exist_ok(self) -> None:
        resp = self.post(read_fixture("alertmanager_firing.json"))

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"Status": 200, "Message": "Success"})
        self.sn.create_incident.assert_awaited_once()

    def test_firing_exists_update_ok(self) -> None:
        self.sn.get_incidents.return_value = [Incident({"state": "1", "number": "INC42", "sys_id": "42"})]
        self.sn.update_incident.side_effect = None
        self.sn.update_incident.return_value = Incident({"sys_id": "42"})

        resp = self.post(read_fixture("alertmanager_firing.json"))

        self.assertEqual(resp.status_code, 200)
        self.sn.update_incident.assert_awaited_once_with({"comments": "firing"}, "42")
        self.sn.create_incident.assert_not_awaited()

    def test_resolved_does_not_exist_ok(self) -> None:
        self.sn.create_incident.side_effect = ServiceNowError("Create should not be called")

        resp = self.post(read_fixture("alertmanager_resolved.json"))

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"Status": 200, "Message": "Success"})

    def test_bad_request_empty_body(self) -> None:
        resp = self.post(b"")

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(
            resp.json(),
            {"Status": 400, "Message": "Expecting value: line 1 column 1 (char 0)"},
        )
        self.sn.get_incidents.assert_not_awaited()

    def test_bad_request_wrong_shape(self) -> None:
        resp = self.post(b'{"alerts": "nope"}')

        self.assertEqual(resp.status_code, 400)
        message = resp.json()["Message"]
        self.assertIn("status", message)
        self.assertIn("alerts", message)
        self.sn.get_incidents.assert_not_awaited()

    def test_internal_server_error(self) -> None:
        self.sn.create_incident.side_effect = ServiceNowError("Error")

        resp = self.post(read_fixture("alertmanager_firing.json"))

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"Status": 500, "Message": "Error"})

    def test_unexpected_error_is_json(self) -> None:
        self.sn.get_incidents.side_effect = RuntimeError("boom")

        resp = self.post(read_fixture("alertmanager_firing.json"))

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"Status": 500, "Message": "boom"})

    def test_query_error(self) -> None:
        self.sn.get_incidents.side_effect = ServiceNowError("GET failed")

        resp = self.post(read_fixture("alertmanager_firing.json"))

        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["Message"], "GET failed")

    def test_homepage(self) -> None:
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("alertmanager-webhook-servicenow", resp.text)

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})


if __name__ == "__main__":
    unittest.main()
