"""Tests for API routes (routes.py + main.py)."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from ota_agent.models.config import AgentConfig
from ota_agent.models.events import InboundEvent, MODULE_PACKAGE_GET, MODULE_VERSION_REPORT
from ota_agent.services.agent import OtaAgent


@pytest.fixture
def agent(tmp_path, transport):
    config = AgentConfig(
        module="mcu",
        initial_version="v1.0.0",
        event_id="boot",
        package_save_path=tmp_path / "download",
        log_file=str(tmp_path / "logs" / "agent.log"),
    )
    return OtaAgent(config, transport=transport)


@pytest.fixture
def client(agent):
    """TestClient whose lifespan builds the prepared agent."""
    from ota_agent.main import app

    with patch("ota_agent.main.setup_logger") as mock_log:
        mock_log.return_value = MagicMock()
        with patch("ota_agent.main.OtaAgent", return_value=agent):
            with TestClient(app, raise_server_exceptions=True) as c:
                yield c


@pytest.mark.unit
class TestRoot:
    def test_health(self, client):
        resp = client.get("/")

        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_lifespan_creates_download_directory(self, client, tmp_path):
        assert (tmp_path / "download").is_dir()


@pytest.mark.unit
class TestPostEvent:
    """POST /api/v1.0/events"""

    def test_event_is_dispatched(self, client, agent, sample_package_data):
        with patch.object(agent.dispatcher, "dispatch", new_callable=AsyncMock) as mock_dispatch:
            resp = client.post(
                "/api/v1.0/events",
                json={
                    "serviceId": "$ota",
                    "eventType": "module_upgrade_notify",
                    "eventId": "e1",
                    "paras": sample_package_data,
                },
            )

        assert resp.json() == {"code": 200, "msg": "success", "data": None}
        (event,) = mock_dispatch.call_args.args
        assert isinstance(event, InboundEvent)
        assert event.event_type == "module_upgrade_notify"
        assert event.event_id == "e1"

    def test_malformed_envelope_returns_400_code(self, client, agent):
        with patch.object(agent.dispatcher, "dispatch", new_callable=AsyncMock) as mock_dispatch:
            resp = client.post("/api/v1.0/events", json={"paras": {}})

        assert resp.status_code == 200
        assert resp.json()["code"] == 400
        mock_dispatch.assert_not_called()

    def test_other_service_is_ignored(self, client, agent):
        with patch.object(agent.dispatcher, "dispatch", new_callable=AsyncMock) as mock_dispatch:
            resp = client.post(
                "/api/v1.0/events",
                json={"serviceId": "battery", "eventType": "module_upgrade_notify"},
            )

        assert resp.json()["msg"] == "ignored"
        mock_dispatch.assert_not_called()

    def test_acknowledgement_is_handled_inline(self, client, transport):
        resp = client.post(
            "/api/v1.0/events",
            json={"eventType": "module_progress_report_response", "eventId": "e1", "paras": {"code": 200}},
        )

        assert resp.json()["code"] == 200
        assert transport.events == []


@pytest.mark.unit
class TestPostConnection:
    """POST /api/v1.0/connection/{state}"""

    def test_complete_reports_version(self, client, transport):
        resp = client.post("/api/v1.0/connection/complete")

        assert resp.json()["code"] == 200
        (event,) = transport.of_type(MODULE_VERSION_REPORT)
        assert event.paras == {"module": "mcu", "version": "v1.0.0"}
        assert event.event_id == "boot"

    @pytest.mark.parametrize("state", ["lost", "fail"])
    def test_lost_and_fail(self, client, transport, state):
        resp = client.post(f"/api/v1.0/connection/{state}")

        assert resp.json()["code"] == 200
        assert transport.events == []

    def test_unknown_state(self, client):
        resp = client.post("/api/v1.0/connection/rebooting")

        assert resp.status_code == 200
        assert resp.json()["code"] == 404

    def test_transport_failure_returns_500_code(self, client, agent):
        with patch.object(agent.transport, "report_event", new_callable=AsyncMock) as mock_report:
            mock_report.side_effect = RuntimeError("broker down")
            resp = client.post("/api/v1.0/connection/complete")

        assert resp.json()["code"] == 500
        assert "broker down" in resp.json()["msg"]


@pytest.mark.unit
class TestPackageAndModules:
    def test_package_get(self, client, transport):
        resp = client.post("/api/v1.0/package/get")

        assert resp.json()["code"] == 200
        (event,) = transport.of_type(MODULE_PACKAGE_GET)
        assert event.paras == {"module": "mcu"}

    def test_modules(self, client):
        resp = client.get("/api/v1.0/modules")

        body = resp.json()
        assert body["code"] == 200
        assert body["data"] == {"module": "mcu", "version": "v1.0.0", "busy": False}
