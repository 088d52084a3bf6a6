"""Per-attempt bookkeeping for a module upgrade."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from ota_agent.models.status import AttemptStage


class UpgradeAttempt(BaseModel):
    """One linear upgrade attempt. Lives for a single callback, never persisted."""

    module: str = Field(..., description="Locally configured module name")
    event_id: Optional[str] = Field(None, description="Correlation id of the notification")
    package_save_path: Path = Field(..., description="Download directory")
    local_file_path: Optional[Path] = Field(None, description="Set after download")
    resolved_version: Optional[str] = Field(None, description="Set on success")
    stage: AttemptStage = Field(default=AttemptStage.RECEIVED)
