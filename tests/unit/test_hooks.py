"""Unit tests for precheck and install hooks."""

import pytest
from collections import namedtuple
from unittest.mock import MagicMock, patch

from ota_agent.models.status import OtaFailure, OtaResultCode
from ota_agent.services.hooks import (
    OtaHookError,
    allow_all,
    call_hook,
    combine_prechecks,
    log_install,
    storage_precheck,
    version_precheck,
)

DiskUsage = namedtuple("DiskUsage", "total used free")


@pytest.mark.unit
class TestHooks:
    """Test the shipped hooks."""

    @pytest.mark.asyncio
    async def test_call_hook_sync_and_async(self, sample_package):
        async def async_hook(package):
            return OtaFailure(code=OtaResultCode.BUSY)

        assert await call_hook(allow_all, sample_package) is None
        assert (await call_hook(async_hook, sample_package)).code == OtaResultCode.BUSY

    def test_version_precheck_rejects_same_version(self, sample_package):
        check = version_precheck(lambda: "v1.2.0")

        failure = check(sample_package)

        assert failure.code == OtaResultCode.NO_NEED
        assert failure.module == "mcu"

    def test_version_precheck_allows_new_version(self, sample_package):
        assert version_precheck(lambda: "v1.0.0")(sample_package) is None

    def test_storage_precheck_low_space(self, tmp_path, sample_package):
        check = storage_precheck(tmp_path / "not-yet-created", min_free_bytes=1000)

        with patch("ota_agent.services.hooks.shutil.disk_usage", return_value=DiskUsage(10, 10, 10)):
            failure = check(sample_package)

        assert failure.code == OtaResultCode.LOW_SPACE

    def test_storage_precheck_enough_space(self, tmp_path, sample_package):
        check = storage_precheck(tmp_path, min_free_bytes=1000)

        with patch("ota_agent.services.hooks.shutil.disk_usage", return_value=DiskUsage(10**6, 0, 10**6)):
            assert check(sample_package) is None

    def test_storage_precheck_disabled(self, tmp_path, sample_package):
        with patch("ota_agent.services.hooks.shutil.disk_usage") as mock_usage:
            assert storage_precheck(tmp_path, 0)(sample_package) is None
            mock_usage.assert_not_called()

    @pytest.mark.asyncio
    async def test_combine_prechecks_stops_at_first_rejection(self, sample_package):
        first = MagicMock(return_value=None)
        second = MagicMock(return_value=OtaFailure(code=OtaResultCode.LOW_POWER))
        third = MagicMock(return_value=None)

        failure = await combine_prechecks(first, second, third)(sample_package)

        assert failure.code == OtaResultCode.LOW_POWER
        first.assert_called_once()
        third.assert_not_called()

    def test_hook_error_to_failure(self):
        failure = OtaHookError(OtaResultCode.LOW_MEMORY, "no RAM", progress=30).to_failure("mcu")

        assert failure == OtaFailure(code=9, progress=30, module="mcu", description="no RAM")

    def test_log_install(self, tmp_path, sample_package, caplog):
        with caplog.at_level("INFO", logger="ota_agent.install"):
            assert log_install(tmp_path / "pkg.bin", sample_package) is None
        assert "install package ok" in caplog.text
