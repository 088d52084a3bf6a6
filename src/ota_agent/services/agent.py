"""Wiring of the OTA agent components for one device module."""

import logging
from typing import Optional

from ota_agent.models.config import AgentConfig
from ota_agent.services.dispatcher import OtaEventDispatcher
from ota_agent.services.download import DownloadService
from ota_agent.services.hooks import (
    InstallHook,
    PrecheckHook,
    combine_prechecks,
    log_install,
    storage_precheck,
)
from ota_agent.services.module_upgrade import ModuleOtaUpgrade
from ota_agent.services.orchestrator import UpgradeOrchestrator
from ota_agent.services.reporter import ReportService
from ota_agent.services.task_runner import ModuleLocks, TaskRunner
from ota_agent.services.transport import HttpBridgeTransport, Transport


class OtaAgent:
    """Owns the dispatcher, orchestrator and module listener for one module."""

    def __init__(
        self,
        config: AgentConfig,
        transport: Optional[Transport] = None,
        precheck: Optional[PrecheckHook] = None,
        install: InstallHook = log_install,
    ):
        """Build the component graph.

        Args:
            config: Agent configuration
            transport: Outbound transport (HTTP bridge to config.platform_url if None)
            precheck: Admission hook (free-space check from config if None)
            install: Install hook
        """
        self.logger = logging.getLogger("ota_agent.agent")
        self.config = config
        self.transport = transport or HttpBridgeTransport(
            platform_url=config.platform_url, timeout=config.report_timeout
        )
        self.reporter = ReportService(self.transport)
        self.task_runner = TaskRunner(max_workers=config.max_workers)
        self.module_locks = ModuleLocks()
        self.dispatcher = OtaEventDispatcher(task_runner=self.task_runner)
        self.download_service = DownloadService(
            package_save_path=config.package_save_path,
            timeout=config.download_timeout,
            verify_tls=config.verify_tls,
        )
        if precheck is None:
            precheck = combine_prechecks(
                storage_precheck(config.package_save_path, config.min_free_bytes)
            )
        self.orchestrator = UpgradeOrchestrator(
            reporter=self.reporter,
            download_service=self.download_service,
            precheck=precheck,
            install=install,
            module_locks=self.module_locks,
        )
        self.listener = ModuleOtaUpgrade(
            dispatcher=self.dispatcher,
            reporter=self.reporter,
            orchestrator=self.orchestrator,
            module=config.module,
            version=config.initial_version,
            event_id=config.event_id,
        )

    @property
    def module(self) -> str:
        return self.listener.module

    @property
    def version(self) -> str:
        return self.listener.version

    def is_busy(self) -> bool:
        return self.module_locks.is_busy(self.module)

    def start(self) -> None:
        """Prepare the download directory."""
        self.download_service.ensure_directory()
        self.logger.info(
            f"OTA agent ready: module={self.module}, version={self.version}, "
            f"download_dir={self.config.package_save_path}"
        )

    async def stop(self) -> None:
        """Cancel in-flight upgrade tasks."""
        await self.task_runner.shutdown()
