"""Result codes, attempt stages and outcomes for module OTA upgrades."""

from enum import Enum, IntEnum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class OtaResultCode(IntEnum):
    """Platform-defined OTA result codes.

    The platform only understands these values (devices may extend the set
    where the platform documents it).
    """

    SUCCESS = 0
    BUSY = 1
    SIGNAL_BAD = 2
    NO_NEED = 3
    LOW_POWER = 4
    LOW_SPACE = 5
    DOWNLOAD_TIMEOUT = 6
    CHECK_FAIL = 7
    UNKNOWN_TYPE = 8
    LOW_MEMORY = 9
    INSTALL_FAIL = 10
    INNER_ERROR = 255


class AttemptStage(str, Enum):
    """Upgrade attempt stages.

    State transitions:
    received → preChecked → downloaded → verified → installed → reported
        ↓           ↓            ↓           ↓           ↓
        └───────────┴────────────┴───────────┴──→ reported (failure)
    """

    RECEIVED = "received"
    PRE_CHECKED = "preChecked"
    DOWNLOADED = "downloaded"
    VERIFIED = "verified"
    INSTALLED = "installed"
    REPORTED = "reported"


class OtaSuccess(BaseModel):
    """Terminal outcome of an attempt that installed the package."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., description="Version accepted by the device")


class OtaFailure(BaseModel):
    """Terminal outcome of a failed attempt.

    Also returned by every pipeline stage (and by precheck/install hooks) to
    short-circuit the attempt.
    """

    model_config = ConfigDict(frozen=True)

    code: int = Field(..., description="OtaResultCode value (or platform-accepted extension)")
    progress: int = Field(default=0, ge=0, le=100, description="Progress at failure (0-100)")
    module: Optional[str] = Field(None, description="Module the attempt was for")
    description: Optional[str] = Field(None, description="Human-readable failure reason")

    def for_module(self, module: str) -> "OtaFailure":
        """Return a copy bound to ``module`` (hooks usually leave it unset)."""
        if self.module == module:
            return self
        return self.model_copy(update={"module": module})


OtaOutcome = Union[OtaSuccess, OtaFailure]
