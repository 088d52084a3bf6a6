"""Module upgrade listener: module identity, current version and reconnect handling."""

import logging
from typing import Optional

from ota_agent.models.package import ModuleOTAPackage, ModuleOTAReportInfo
from ota_agent.services.dispatcher import OtaEventDispatcher
from ota_agent.services.listener import ConnectListener, ModuleOTAListener
from ota_agent.services.orchestrator import UpgradeOrchestrator
from ota_agent.services.reporter import ReportService


class ModuleOtaUpgrade(ModuleOTAListener, ConnectListener):
    """Upgrades one module and keeps the platform informed of its version.

    Registers itself as the dispatcher's module listener on construction.
    The version accepted by the last successful upgrade is announced again
    after every reconnect, since the platform has no other way to learn it.
    """

    def __init__(
        self,
        dispatcher: OtaEventDispatcher,
        reporter: ReportService,
        orchestrator: UpgradeOrchestrator,
        module: str,
        version: str,
        event_id: Optional[str] = None,
    ):
        """Initialize module upgrade listener.

        Args:
            dispatcher: Dispatcher this listener registers with
            reporter: Report channel for version reports and package requests
            orchestrator: Pipeline run for every new package
            module: Locally configured module name
            version: Currently installed version
            event_id: Event id attached to unsolicited version reports
        """
        self.logger = logging.getLogger("ota_agent.module_upgrade")
        self.reporter = reporter
        self.orchestrator = orchestrator
        self.module = module
        self.version = version
        self.event_id = event_id
        dispatcher.set_module_ota_listener(self)

    async def on_query_version(self, info: ModuleOTAReportInfo, event_id: Optional[str]) -> None:
        if not info.is_success:
            self.logger.error(f"Version report rejected: {info!r}, event_id={event_id}")

    async def on_new_package(self, package: ModuleOTAPackage, event_id: Optional[str]) -> None:
        self.logger.info(f"New package: {package!r}, event_id={event_id}")
        # The platform-supplied module name is not used for routing
        package = package.with_module(self.module)
        accepted = await self.orchestrator.run(package, event_id)
        if accepted is not None:
            self.logger.info(f"Module {self.module} version {self.version} -> {accepted}")
            self.version = accepted

    async def on_get_package(
        self,
        info: ModuleOTAReportInfo,
        package: ModuleOTAPackage,
        event_id: Optional[str],
    ) -> None:
        if not info.is_success:
            self.logger.error(f"Package get rejected: {info!r}, event_id={event_id}")
            return
        await self.on_new_package(package, event_id)

    async def on_progress(self, info: ModuleOTAReportInfo, event_id: Optional[str]) -> None:
        if not info.is_success:
            self.logger.error(f"Progress report rejected: {info!r}, event_id={event_id}")

    async def connection_lost(self) -> None:
        self.logger.warning(f"Connection lost (module={self.module})")

    async def connect_complete(self) -> None:
        self.logger.info(f"Connected, reporting {self.module} version {self.version}")
        await self.reporter.report_version(self.module, self.version, self.event_id)

    async def connect_fail(self) -> None:
        self.logger.warning(f"Connection failed (module={self.module})")

    async def request_package(self, event_id: Optional[str] = None) -> None:
        """Poll the platform for a pending package instead of waiting for a push."""
        await self.reporter.report_package_get(self.module, event_id or self.event_id)
