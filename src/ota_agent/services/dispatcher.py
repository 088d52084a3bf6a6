"""Dispatcher routing inbound ``$ota`` events to the registered listeners."""

import logging
from typing import Optional

from pydantic import ValidationError

from ota_agent.models.events import (
    FIRMWARE_UPGRADE,
    FIRMWARE_UPGRADE_V2,
    MODULE_PACKAGE_GET_RESPONSE,
    MODULE_PROGRESS_REPORT_RESPONSE,
    MODULE_UPGRADE_NOTIFY,
    MODULE_VERSION_REPORT_RESPONSE,
    OTA_SERVICE_ID,
    SOFTWARE_UPGRADE,
    SOFTWARE_UPGRADE_V2,
    VERSION_QUERY,
    InboundEvent,
)
from ota_agent.models.package import (
    ModuleOTAPackage,
    ModuleOTAReportInfo,
    OTAPackage,
    OTAPackageV2,
    OTAQueryInfo,
)
from ota_agent.services.listener import ModuleOTAListener, OTAListener
from ota_agent.services.task_runner import TaskRunner


class OtaEventDispatcher:
    """Single entry point for inbound ``$ota`` events.

    Acknowledgements are delivered inline. Package notifications, which
    download and install, are handed to the task runner so ``dispatch``
    returns without waiting for them.

    Events of unknown type, or for a listener family nobody registered, are
    ignored: a device only registers the family it uses.
    """

    def __init__(self, task_runner: Optional[TaskRunner] = None):
        """Initialize dispatcher.

        Args:
            task_runner: Runner for long callbacks (a 4-worker runner if None)
        """
        self.logger = logging.getLogger("ota_agent.dispatcher")
        self.task_runner = task_runner or TaskRunner()
        self._ota_listener: Optional[OTAListener] = None
        self._module_ota_listener: Optional[ModuleOTAListener] = None

    @property
    def service_id(self) -> str:
        return OTA_SERVICE_ID

    def set_ota_listener(self, listener: OTAListener) -> None:
        """Register the firmware/software listener, replacing any previous one."""
        self._ota_listener = listener

    def set_module_ota_listener(self, listener: ModuleOTAListener) -> None:
        """Register the module listener, replacing any previous one."""
        self._module_ota_listener = listener

    async def dispatch(self, event: InboundEvent) -> None:
        """Classify ``event`` and deliver it to the matching listener callback.

        Never raises: decode errors and failing inline callbacks are logged and
        the event is dropped.
        """
        try:
            await self._dispatch(event)
        except ValidationError as e:
            self.logger.error(
                f"Dropping {event.event_type} event {event.event_id}: invalid payload: {e}"
            )
        except Exception as e:
            self.logger.error(
                f"Failed to handle {event.event_type} event {event.event_id}: {e}",
                exc_info=True,
            )

    async def _dispatch(self, event: InboundEvent) -> None:
        event_type = event.event_type
        event_id = event.event_id
        paras = event.parameters
        ota_listener = self._ota_listener
        module_listener = self._module_ota_listener

        if event_type == VERSION_QUERY:
            if ota_listener is None:
                return self._ignore(event)
            await ota_listener.on_query_version(OTAQueryInfo.model_validate(paras))

        elif event_type in (FIRMWARE_UPGRADE, SOFTWARE_UPGRADE):
            if ota_listener is None:
                return self._ignore(event)
            package = OTAPackage.model_validate(paras)
            self._submit(event, lambda: ota_listener.on_new_package(package))

        elif event_type in (FIRMWARE_UPGRADE_V2, SOFTWARE_UPGRADE_V2):
            if ota_listener is None:
                return self._ignore(event)
            package_v2 = OTAPackageV2.model_validate(paras)
            self._submit(event, lambda: ota_listener.on_new_package_v2(package_v2))

        elif event_type == MODULE_VERSION_REPORT_RESPONSE:
            if module_listener is None:
                return self._ignore(event)
            info = ModuleOTAReportInfo.model_validate(paras)
            await module_listener.on_query_version(info, event_id)

        elif event_type == MODULE_UPGRADE_NOTIFY:
            if module_listener is None:
                return self._ignore(event)
            module_package = ModuleOTAPackage.model_validate(paras)
            self._submit(
                event, lambda: module_listener.on_new_package(module_package, event_id)
            )

        elif event_type == MODULE_PROGRESS_REPORT_RESPONSE:
            if module_listener is None:
                return self._ignore(event)
            info = ModuleOTAReportInfo.model_validate(paras)
            await module_listener.on_progress(info, event_id)

        elif event_type == MODULE_PACKAGE_GET_RESPONSE:
            if module_listener is None:
                return self._ignore(event)
            info = ModuleOTAReportInfo.model_validate(paras)
            if not info.is_success and "url" not in paras:
                # Rejections usually carry no package at all
                self.logger.error(
                    f"Package get rejected: code={info.code}, message={info.message}, "
                    f"event_id={event_id}"
                )
                return
            module_package = ModuleOTAPackage.model_validate(paras)
            self._submit(
                event,
                lambda: module_listener.on_get_package(info, module_package, event_id),
            )

        else:
            self._ignore(event)

    def _submit(self, event: InboundEvent, work) -> None:
        self.logger.info(f"Received {event.event_type} event {event.event_id}")
        self.task_runner.submit(f"{event.event_type}:{event.event_id}", work)

    def _ignore(self, event: InboundEvent) -> None:
        self.logger.debug(f"Ignoring {event.event_type} event {event.event_id}")
