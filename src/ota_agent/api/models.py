"""Pydantic models for the local HTTP ingress."""

from typing import Optional
from pydantic import BaseModel, Field


class ModuleStatus(BaseModel):
    """Module identity and version as currently known by the agent."""

    module: str = Field(..., description="Locally configured module name")
    version: str = Field(..., description="Most recently accepted version")
    busy: bool = Field(..., description="True while an upgrade attempt is running")


class ModuleStatusResponse(BaseModel):
    """GET /api/v1.0/modules response."""

    code: int = Field(default=200, description="Application-level status code")
    msg: str = Field(default="success")
    data: ModuleStatus


class SuccessResponse(BaseModel):
    """Success response for command endpoints."""

    code: int = Field(default=200, description="Application-level status code (200)")
    msg: str = Field(default="success", description="Success message")
    data: Optional[dict] = Field(None, description="Optional response data")


class ErrorResponse(BaseModel):
    """Error response for all endpoints.

    HTTP status code is always 200, real status in 'code' field.
    """

    code: int = Field(..., description="Application-level error code (400/404/500)")
    msg: str = Field(..., description="Error message")
