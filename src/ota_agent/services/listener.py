"""Listener contracts through which decoded ``$ota`` events are delivered."""

from abc import ABC, abstractmethod
from typing import Optional

from ota_agent.models.package import (
    ModuleOTAPackage,
    ModuleOTAReportInfo,
    OTAPackage,
    OTAPackageV2,
    OTAQueryInfo,
)


class ModuleOTAListener(ABC):
    """Receives module-level OTA events."""

    @abstractmethod
    async def on_query_version(self, info: ModuleOTAReportInfo, event_id: Optional[str]) -> None:
        """Platform acknowledged a ``module_version_report``."""

    @abstractmethod
    async def on_new_package(self, package: ModuleOTAPackage, event_id: Optional[str]) -> None:
        """A new package was pushed for the module."""

    @abstractmethod
    async def on_get_package(
        self,
        info: ModuleOTAReportInfo,
        package: ModuleOTAPackage,
        event_id: Optional[str],
    ) -> None:
        """Platform answered a ``module_package_get`` request."""

    @abstractmethod
    async def on_progress(self, info: ModuleOTAReportInfo, event_id: Optional[str]) -> None:
        """Platform acknowledged a ``module_progress_report``."""


class OTAListener(ABC):
    """Receives device-level (firmware/software) OTA events."""

    @abstractmethod
    async def on_query_version(self, info: OTAQueryInfo) -> None:
        """Platform asked for the current firmware/software version."""

    @abstractmethod
    async def on_new_package(self, package: OTAPackage) -> None:
        """A firmware/software package was pushed."""

    @abstractmethod
    async def on_new_package_v2(self, package: OTAPackageV2) -> None:
        """A v2 firmware/software package was pushed."""


class ConnectListener(ABC):
    """Receives transport connection lifecycle notifications."""

    @abstractmethod
    async def connection_lost(self) -> None:
        ...

    @abstractmethod
    async def connect_complete(self) -> None:
        """Session (re)established; the platform needs the current version again."""

    @abstractmethod
    async def connect_fail(self) -> None:
        ...
