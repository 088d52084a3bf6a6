"""Inbound and outbound ``$ota`` service events."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

OTA_SERVICE_ID = "$ota"

# Inbound event types
VERSION_QUERY = "version_query"
FIRMWARE_UPGRADE = "firmware_upgrade"
SOFTWARE_UPGRADE = "software_upgrade"
FIRMWARE_UPGRADE_V2 = "firmware_upgrade_v2"
SOFTWARE_UPGRADE_V2 = "software_upgrade_v2"
MODULE_VERSION_REPORT_RESPONSE = "module_version_report_response"
MODULE_UPGRADE_NOTIFY = "module_upgrade_notify"
MODULE_PROGRESS_REPORT_RESPONSE = "module_progress_report_response"
MODULE_PACKAGE_GET_RESPONSE = "module_package_get_response"

# Outbound event types
VERSION_REPORT = "version_report"
UPGRADE_PROGRESS_REPORT = "upgrade_progress_report"
MODULE_VERSION_REPORT = "module_version_report"
MODULE_PROGRESS_REPORT = "module_progress_report"
MODULE_PACKAGE_GET = "module_package_get"

EVENT_TIME_FORMAT = "%Y%m%dT%H%M%SZ"


def format_event_time(moment: Optional[datetime] = None) -> str:
    """Format a timestamp the way the platform expects (UTC, basic ISO 8601)."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(EVENT_TIME_FORMAT)


class InboundEvent(BaseModel):
    """Event delivered by the transport for the ``$ota`` service.

    Opaque until the dispatcher classifies it by ``event_type``.

    Example:
        {
            "eventType": "module_upgrade_notify",
            "eventId": "40cc9ab1-3579-488c-95c6-c18941c99eb4",
            "serviceId": "$ota",
            "eventTime": "20251019T081500Z",
            "paras": {"url": "...", "fileName": "mcu.bin", "version": "v1.1"}
        }
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    event_type: str = Field(..., validation_alias=AliasChoices("eventType", "event_type"))
    event_id: Optional[str] = Field(None, validation_alias=AliasChoices("eventId", "event_id"))
    service_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("serviceId", "service_id")
    )
    event_time: Optional[str] = Field(
        None, validation_alias=AliasChoices("eventTime", "event_time")
    )
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("paras", "parameters"),
    )


class OutboundEvent(BaseModel):
    """Event emitted towards the platform through the transport."""

    model_config = ConfigDict(populate_by_name=True)

    service_id: str = Field(default=OTA_SERVICE_ID, serialization_alias="serviceId")
    event_type: str = Field(..., serialization_alias="eventType")
    event_time: str = Field(default_factory=format_event_time, serialization_alias="eventTime")
    event_id: Optional[str] = Field(None, serialization_alias="eventId")
    paras: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with platform field names, omitting an absent ``eventId``."""
        data = self.model_dump(mode="json", by_alias=True)
        if data.get("eventId") is None:
            data.pop("eventId", None)
        return data
