"""Report channel for ``$ota`` outbound events."""

import logging
from typing import Optional

from ota_agent.models.events import (
    MODULE_PACKAGE_GET,
    MODULE_PROGRESS_REPORT,
    MODULE_VERSION_REPORT,
    OTA_SERVICE_ID,
    UPGRADE_PROGRESS_REPORT,
    VERSION_REPORT,
    OutboundEvent,
    format_event_time,
)
from ota_agent.services.transport import Transport


def _check_progress(progress: int) -> None:
    if not 0 <= progress <= 100:
        raise ValueError(f"progress must be within 0-100, got {progress}")


class ReportService:
    """Builds version, status and package-pull events and emits them.

    Each call emits exactly one event; nothing is batched or deduplicated.
    Transport errors propagate to the caller.
    """

    def __init__(self, transport: Transport):
        """Initialize report service.

        Args:
            transport: Transport used to emit events
        """
        self.logger = logging.getLogger("ota_agent.reporter")
        self.transport = transport

    async def report_version(self, module: str, version: str, event_id: Optional[str]) -> None:
        """Report the current version of ``module``."""
        await self._emit(
            MODULE_VERSION_REPORT,
            {"module": module, "version": version},
            event_id=event_id,
        )

    async def report_ota_status(
        self,
        result: int,
        progress: int,
        module: str,
        event_id: Optional[str],
        description: Optional[str] = None,
    ) -> None:
        """Report the outcome or progress of a module upgrade.

        Args:
            result: OtaResultCode value; sent negated as ``result_code``
            progress: Percentage completion (0-100)
            module: Module the report is for
            event_id: Correlation id of the originating notification
            description: Optional failure description
        """
        _check_progress(progress)
        paras = {"result_code": -result, "progress": progress}
        if description is not None:
            paras["description"] = description
        paras["module"] = module

        self.logger.debug(
            f"Reporting status: module={module}, result={result}, progress={progress}%"
        )
        await self._emit(MODULE_PROGRESS_REPORT, paras, event_id=event_id)

    async def report_package_get(self, module: str, event_id: Optional[str]) -> None:
        """Ask the platform for a pending package for ``module``."""
        await self._emit(MODULE_PACKAGE_GET, {"module": module}, event_id=event_id)

    async def report_firmware_version(self, version: str) -> None:
        """Report the device firmware/software version (legacy, no event id)."""
        await self._emit(VERSION_REPORT, {"fw_version": version, "sw_version": version})

    async def report_firmware_status(
        self,
        result: int,
        progress: int,
        version: str,
        description: Optional[str] = None,
    ) -> None:
        """Report legacy firmware upgrade status.

        Unlike :meth:`report_ota_status`, ``result_code`` is sent as is.
        """
        _check_progress(progress)
        paras = {"result_code": result, "progress": progress}
        if description is not None:
            paras["description"] = description
        paras["version"] = version
        await self._emit(UPGRADE_PROGRESS_REPORT, paras)

    async def _emit(self, event_type: str, paras: dict, event_id: Optional[str] = None) -> None:
        event = OutboundEvent(
            service_id=OTA_SERVICE_ID,
            event_type=event_type,
            event_time=format_event_time(),
            event_id=event_id,
            paras=paras,
        )
        await self.transport.report_event(event)
        self.logger.debug(f"Event {event_type} sent")
