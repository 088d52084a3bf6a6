"""Admission (precheck) and install hooks for module upgrades.

Hooks are plain callables, sync or async. They accept the attempt and return
``None`` to let it continue or an :class:`OtaFailure` to stop it. Hooks that
prefer raising may raise :class:`OtaHookError` with a platform result code.
"""

import inspect
import logging
import shutil
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from ota_agent.models.package import ModuleOTAPackage
from ota_agent.models.status import OtaFailure, OtaResultCode

HookResult = Optional[OtaFailure]
PrecheckHook = Callable[
    [ModuleOTAPackage], Union[HookResult, Awaitable[HookResult]]
]
InstallHook = Callable[
    [Path, ModuleOTAPackage], Union[HookResult, Awaitable[HookResult]]
]


class OtaHookError(Exception):
    """Raised by a hook to reject an attempt with a specific result code."""

    def __init__(self, code: int, description: str, progress: int = 0):
        super().__init__(description)
        self.code = code
        self.description = description
        self.progress = progress

    def to_failure(self, module: Optional[str] = None) -> OtaFailure:
        return OtaFailure(
            code=self.code,
            progress=self.progress,
            module=module,
            description=self.description,
        )


async def call_hook(hook: Callable, *args) -> HookResult:
    """Invoke a sync or async hook and return its result."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def allow_all(package: ModuleOTAPackage) -> HookResult:
    """Precheck that admits every package."""
    return None


def version_precheck(current_version: Callable[[], str]) -> PrecheckHook:
    """Reject packages whose version is already installed.

    Args:
        current_version: Returns the module's current version
    """

    def check(package: ModuleOTAPackage) -> HookResult:
        if package.version == current_version():
            return OtaFailure(
                code=OtaResultCode.NO_NEED,
                module=package.module,
                description=f"already at version {package.version}",
            )
        return None

    return check


def storage_precheck(path: Path, min_free_bytes: int) -> PrecheckHook:
    """Reject packages when the download volume has less than ``min_free_bytes`` free."""

    def check(package: ModuleOTAPackage) -> HookResult:
        if min_free_bytes <= 0:
            return None
        existing = Path(path)
        while not existing.exists() and existing != existing.parent:
            existing = existing.parent
        free = shutil.disk_usage(existing).free
        if free < min_free_bytes:
            return OtaFailure(
                code=OtaResultCode.LOW_SPACE,
                module=package.module,
                description=f"insufficient free space: {free} < {min_free_bytes} bytes",
            )
        return None

    return check


def combine_prechecks(*hooks: PrecheckHook) -> PrecheckHook:
    """Run prechecks in order, stopping at the first rejection."""

    async def check(package: ModuleOTAPackage) -> HookResult:
        for hook in hooks:
            failure = await call_hook(hook, package)
            if failure is not None:
                return failure
        return None

    return check


def log_install(local_path: Path, package: ModuleOTAPackage) -> HookResult:
    """Install hook for devices without an installer: logs and accepts."""
    logging.getLogger("ota_agent.install").info(
        f"install package ok: module={package.module}, file={local_path.name}"
    )
    return None
