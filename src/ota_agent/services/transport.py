"""Transport contract and the HTTP bridge transport."""

import logging
from typing import Optional, Protocol

import httpx

from ota_agent.models.events import OutboundEvent


class TransportError(RuntimeError):
    """Raised when an outbound event cannot be delivered."""


class Transport(Protocol):
    """Anything able to emit an outbound event towards the platform."""

    async def report_event(self, event: OutboundEvent) -> None:
        ...


class HttpBridgeTransport:
    """Posts outbound events as JSON to a platform bridge endpoint.

    Stands in for the MQTT client on rigs where the device talks to a local
    bridge process instead of the platform broker.
    """

    def __init__(
        self,
        platform_url: str = "http://localhost:9080/api/v1.0/events",
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize bridge transport.

        Args:
            platform_url: Endpoint that receives outbound events
            timeout: Request timeout in seconds
            client: Shared AsyncClient (a short-lived one is used per call if None)
        """
        self.logger = logging.getLogger("ota_agent.transport")
        self.platform_url = platform_url
        self.timeout = timeout
        self._client = client

    async def report_event(self, event: OutboundEvent) -> None:
        """Send one outbound event.

        Raises:
            TransportError: If the bridge is unreachable or rejects the event
        """
        payload = event.to_wire()
        self.logger.debug(
            f"Posting event: type={event.event_type}, event_id={event.event_id}"
        )

        try:
            if self._client is not None:
                response = await self._client.post(self.platform_url, json=payload)
                response.raise_for_status()
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.platform_url, json=payload)
                    response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(
                f"Failed to deliver {event.event_type} to {self.platform_url}: {e}"
            ) from e
