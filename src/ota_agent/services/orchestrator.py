"""Upgrade orchestrator: precheck, download, verify, install, report."""

import asyncio
import logging
from typing import Optional

import httpx

from ota_agent.models.attempt import UpgradeAttempt
from ota_agent.models.package import ModuleOTAPackage
from ota_agent.models.status import (
    AttemptStage,
    OtaFailure,
    OtaOutcome,
    OtaResultCode,
    OtaSuccess,
)
from ota_agent.services.download import DownloadService
from ota_agent.services.hooks import (
    InstallHook,
    OtaHookError,
    PrecheckHook,
    allow_all,
    call_hook,
    log_install,
)
from ota_agent.services.reporter import ReportService
from ota_agent.services.task_runner import ModuleLocks
from ota_agent.utils.verification import is_supported_sign_method, verify_sign


class UpgradeOrchestrator:
    """Drives one package through the upgrade pipeline.

    Stage flow:
    received → preChecked → downloaded → verified → installed → reported

    Every stage returns ``None`` to continue or an :class:`OtaFailure` that
    ends the attempt. Each attempt ends in exactly one status report and no
    exception leaves :meth:`run`. Cancellation is reported as INNER_ERROR
    and then re-raised.

    Attempts for the same module are serialized; they share the download path.
    """

    def __init__(
        self,
        reporter: ReportService,
        download_service: DownloadService,
        precheck: PrecheckHook = allow_all,
        install: InstallHook = log_install,
        module_locks: Optional[ModuleLocks] = None,
    ):
        """Initialize orchestrator.

        Args:
            reporter: Report channel for the final status
            download_service: Service fetching packages
            precheck: Admission hook run before downloading
            install: Hook applying a verified package
            module_locks: Per-module locks (private set if None)
        """
        self.logger = logging.getLogger("ota_agent.orchestrator")
        self.reporter = reporter
        self.download_service = download_service
        self.precheck = precheck
        self.install = install
        self.module_locks = module_locks or ModuleLocks()

    async def run(self, package: ModuleOTAPackage, event_id: Optional[str]) -> Optional[str]:
        """Run one upgrade attempt.

        Args:
            package: Package descriptor, already bound to the local module
            event_id: Correlation id of the notification

        Returns:
            The installed version on success, None otherwise
        """
        module = package.module or ""
        if self.module_locks.is_busy(module):
            self.logger.info(
                f"Upgrade already in progress for module {module}, waiting (event_id={event_id})"
            )

        attempt = UpgradeAttempt(
            module=module,
            event_id=event_id,
            package_save_path=self.download_service.package_save_path,
        )
        try:
            async with self.module_locks.hold(module):
                outcome = await self._execute(attempt, package)
                await self._report(attempt, outcome)
        except asyncio.CancelledError:
            if attempt.stage is not AttemptStage.REPORTED:
                self.logger.warning(
                    f"Upgrade of {module} cancelled at {attempt.stage.value} (event_id={event_id})"
                )
                cancelled = OtaFailure(
                    code=OtaResultCode.INNER_ERROR,
                    progress=0,
                    module=module,
                    description="upgrade cancelled",
                )
                await asyncio.shield(self._report(attempt, cancelled))
            raise

        if isinstance(outcome, OtaSuccess):
            return outcome.version
        return None

    async def _execute(self, attempt: UpgradeAttempt, package: ModuleOTAPackage) -> OtaOutcome:
        self.logger.info(
            f"Upgrade started: module={attempt.module}, version={package.version}, "
            f"event_id={attempt.event_id}"
        )
        stages = (
            (self._precheck, AttemptStage.PRE_CHECKED),
            (self._download, AttemptStage.DOWNLOADED),
            (self._verify, AttemptStage.VERIFIED),
            (self._install, AttemptStage.INSTALLED),
        )
        try:
            for stage, reached in stages:
                failure = await stage(attempt, package)
                if failure is not None:
                    return failure.for_module(attempt.module)
                attempt.stage = reached
                self.logger.debug(f"Module {attempt.module} reached {reached.value}")
        except Exception as e:
            self.logger.error(
                f"Upgrade of {attempt.module} failed at {attempt.stage.value}: {e}",
                exc_info=True,
            )
            return OtaFailure(
                code=OtaResultCode.INNER_ERROR,
                progress=0,
                module=attempt.module,
                description=str(e) or type(e).__name__,
            )

        attempt.resolved_version = package.version
        return OtaSuccess(version=package.version)

    async def _precheck(
        self, attempt: UpgradeAttempt, package: ModuleOTAPackage
    ) -> Optional[OtaFailure]:
        try:
            return await call_hook(self.precheck, package)
        except OtaHookError as e:
            return e.to_failure(attempt.module)

    async def _download(
        self, attempt: UpgradeAttempt, package: ModuleOTAPackage
    ) -> Optional[OtaFailure]:
        try:
            attempt.local_file_path = await self.download_service.download_package(package)
        except httpx.HTTPError as e:
            # Every transport-level failure is reported as a download timeout
            self.logger.error(f"Download failed: {e}")
            return OtaFailure(
                code=OtaResultCode.DOWNLOAD_TIMEOUT,
                progress=0,
                description=str(e) or type(e).__name__,
            )
        return None

    async def _verify(
        self, attempt: UpgradeAttempt, package: ModuleOTAPackage
    ) -> Optional[OtaFailure]:
        if package.sign is None:
            self.logger.warning("sign is empty, skipping verification")
            return None

        if not is_supported_sign_method(package.sign_method):
            self._discard(attempt)
            return OtaFailure(
                code=OtaResultCode.CHECK_FAIL,
                progress=0,
                description=f"unsupported sign method: {package.sign_method}",
            )

        matched = await asyncio.to_thread(
            verify_sign, attempt.local_file_path, package.sign, package.sign_method
        )
        if not matched:
            self._discard(attempt)
            return OtaFailure(
                code=OtaResultCode.CHECK_FAIL,
                progress=0,
                description="sign verify failed",
            )
        self.logger.info("sign check passed")
        return None

    def _discard(self, attempt: UpgradeAttempt) -> None:
        """Remove a package that failed its integrity check."""
        if attempt.local_file_path is not None:
            attempt.local_file_path.unlink(missing_ok=True)
            self.logger.info(f"Removed rejected package {attempt.local_file_path}")

    async def _install(
        self, attempt: UpgradeAttempt, package: ModuleOTAPackage
    ) -> Optional[OtaFailure]:
        try:
            return await call_hook(self.install, attempt.local_file_path, package)
        except OtaHookError as e:
            return e.to_failure(attempt.module)
        except Exception as e:
            self.logger.error(f"Install hook failed: {e}", exc_info=True)
            return OtaFailure(
                code=OtaResultCode.INSTALL_FAIL,
                progress=0,
                description=str(e) or type(e).__name__,
            )

    async def _report(self, attempt: UpgradeAttempt, outcome: OtaOutcome) -> None:
        try:
            if isinstance(outcome, OtaSuccess):
                await self.reporter.report_ota_status(
                    OtaResultCode.SUCCESS,
                    100,
                    attempt.module,
                    attempt.event_id,
                    "upgrade success",
                )
                self.logger.info(f"ota upgrade ok: module={attempt.module}, version={outcome.version}")
            else:
                await self.reporter.report_ota_status(
                    outcome.code,
                    outcome.progress,
                    outcome.module or attempt.module,
                    attempt.event_id,
                    outcome.description,
                )
                self.logger.error(
                    f"ota upgrade failed: module={attempt.module}, code={outcome.code}, "
                    f"description={outcome.description}"
                )
        except Exception as e:
            self.logger.error(
                f"Failed to report upgrade status for {attempt.module}: {e}",
                exc_info=True,
            )
        finally:
            attempt.stage = AttemptStage.REPORTED
