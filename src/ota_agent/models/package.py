"""Payload models decoded from inbound ``$ota`` events."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

SUCCESS_CODE = 200


class ModuleOTAPackage(BaseModel):
    """Upgrade package offered for a single module.

    Decoded from ``module_upgrade_notify`` and ``module_package_get_response``.
    Immutable; use :meth:`with_module` to bind the locally configured module.

    Example:
        {
            "url": "https://obs.example.com/mcu/mcu-1.2.0.bin",
            "fileName": "mcu-1.2.0.bin",
            "version": "v1.2.0",
            "module": "mcu",
            "sign": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
            "signMethod": "SHA256"
        }
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    url: str = Field(..., description="Download URL of the package")
    file_name: str = Field(
        ...,
        validation_alias=AliasChoices("fileName", "file_name"),
        serialization_alias="fileName",
        description="File name used for local storage",
    )
    version: str = Field(..., description="Target version offered by the platform")
    module: Optional[str] = Field(None, description="Module name sent by the platform")
    sign: Optional[str] = Field(None, description="Expected digest of the package")
    sign_method: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("signMethod", "sign_method"),
        serialization_alias="signMethod",
        description="Digest algorithm, e.g. SHA256",
    )

    @field_validator("file_name")
    @classmethod
    def no_directory_traversal(cls, v: str) -> str:
        """Keep the package inside the download directory."""
        if not v or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(f"Invalid package file name: {v!r}")
        return v

    def with_module(self, module: str) -> "ModuleOTAPackage":
        """Return a copy whose ``module`` is the locally configured one."""
        return self.model_copy(update={"module": module})


class ModuleOTAReportInfo(BaseModel):
    """Platform acknowledgement carried by ``module_*_response`` events."""

    model_config = ConfigDict(frozen=True, extra="allow")

    code: int = Field(..., description="200 on success, platform error code otherwise")
    message: Optional[str] = Field(None, description="Optional platform message")

    @property
    def is_success(self) -> bool:
        return self.code == SUCCESS_CODE


class OTAQueryInfo(BaseModel):
    """Legacy ``version_query`` payload."""

    model_config = ConfigDict(frozen=True, extra="allow")

    version: Optional[str] = None


class OTAPackage(BaseModel):
    """Legacy firmware/software package (``firmware_upgrade`` / ``software_upgrade``)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    version: str
    url: str
    file_size: Optional[int] = Field(None, ge=0)
    access_token: Optional[str] = None
    expires: Optional[int] = None
    sign: Optional[str] = None


class OTAPackageV2(BaseModel):
    """Legacy v2 package (``firmware_upgrade_v2`` / ``software_upgrade_v2``)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    version: str
    url: str
    expires: Optional[int] = None
    sign: Optional[str] = None
