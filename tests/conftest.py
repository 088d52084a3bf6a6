"""Global pytest fixtures and configuration."""

import hashlib
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ota_agent.models.events import OutboundEvent  # noqa: E402
from ota_agent.models.package import ModuleOTAPackage  # noqa: E402


class RecordingTransport:
    """Transport double collecting every outbound event."""

    def __init__(self):
        self.events: list[OutboundEvent] = []

    async def report_event(self, event: OutboundEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[OutboundEvent]:
        return [e for e in self.events if e.event_type == event_type]


@pytest.fixture
def temp_dir(tmp_path):
    """Create a temporary directory for test files."""
    yield tmp_path


@pytest.fixture
def transport():
    """Recording transport."""
    return RecordingTransport()


@pytest.fixture
def package_content():
    """Bytes served as the package body."""
    return b"module firmware image v1.2.0" * 64


@pytest.fixture
def package_sha256(package_content):
    """SHA-256 hex digest of package_content."""
    return hashlib.sha256(package_content).hexdigest()


@pytest.fixture
def sample_package_data(package_sha256):
    """module_upgrade_notify parameters as sent by the platform."""
    return {
        "url": "https://obs.example.com/ota/mcu-v1.2.0.bin",
        "fileName": "mcu-v1.2.0.bin",
        "version": "v1.2.0",
        "module": "platform-module",
        "sign": package_sha256,
        "signMethod": "SHA256",
    }


@pytest.fixture
def sample_package(sample_package_data):
    """Package descriptor bound to the local module 'mcu'."""
    return ModuleOTAPackage.model_validate(sample_package_data).with_module("mcu")


@pytest.fixture
def mock_download_service(tmp_path, package_content):
    """DownloadService double that writes package_content into tmp_path."""
    service = MagicMock()
    service.package_save_path = tmp_path

    async def download(package):
        target = tmp_path / package.file_name
        target.write_bytes(package_content)
        return target

    service.download_package = AsyncMock(side_effect=download)
    return service
