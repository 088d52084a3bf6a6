"""Unit tests for HttpBridgeTransport."""

import json

import pytest
import httpx

from ota_agent.models.events import OutboundEvent
from ota_agent.services.transport import HttpBridgeTransport, TransportError


@pytest.mark.unit
class TestHttpBridgeTransport:
    """Test the HTTP bridge transport against httpx.MockTransport."""

    @pytest.fixture
    def event(self):
        return OutboundEvent(
            event_type="module_progress_report",
            event_time="20251019T081500Z",
            event_id="e1",
            paras={"result_code": -7, "progress": 0, "module": "mcu"},
        )

    @pytest.mark.asyncio
    async def test_posts_wire_payload(self, event):
        received = []

        def handler(request):
            received.append(json.loads(request.content))
            return httpx.Response(200, json={"code": 200})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            transport = HttpBridgeTransport("http://bridge/api/v1.0/events", client=client)
            await transport.report_event(event)

        assert received == [
            {
                "serviceId": "$ota",
                "eventType": "module_progress_report",
                "eventTime": "20251019T081500Z",
                "eventId": "e1",
                "paras": {"result_code": -7, "progress": 0, "module": "mcu"},
            }
        ]

    @pytest.mark.asyncio
    async def test_error_status_raises_transport_error(self, event):
        handler = lambda request: httpx.Response(503)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            transport = HttpBridgeTransport("http://bridge/api/v1.0/events", client=client)
            with pytest.raises(TransportError, match="module_progress_report"):
                await transport.report_event(event)

    @pytest.mark.asyncio
    async def test_connection_error_raises_transport_error(self, event):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            transport = HttpBridgeTransport(client=client)
            with pytest.raises(TransportError):
                await transport.report_event(event)
