"""API route handlers for the local event ingress."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ota_agent.api.models import ModuleStatus, ModuleStatusResponse, SuccessResponse
from ota_agent.models.events import OTA_SERVICE_ID, InboundEvent
from ota_agent.services.agent import OtaAgent

router = APIRouter(prefix="/api/v1.0")
logger = logging.getLogger("ota_agent.api")


def get_agent(request: Request) -> OtaAgent:
    """Return the agent built during application startup."""
    return request.app.state.agent


def _error(code: int, msg: str) -> JSONResponse:
    return JSONResponse(status_code=200, content={"code": code, "msg": msg})


@router.post("/events", response_model=SuccessResponse)
async def post_event(
    payload: dict[str, Any] = Body(...),
    agent: OtaAgent = Depends(get_agent),
):
    """POST /api/v1.0/events - Deliver one inbound platform event.

    Request format:
        {
            "serviceId": "$ota",
            "eventType": "module_upgrade_notify",
            "eventId": "40cc9ab1-...",
            "eventTime": "20251019T081500Z",
            "paras": {"url": "...", "fileName": "mcu.bin", "version": "v1.1"}
        }

    Returns:
        code 200 once the event is dispatched (upgrades continue in background),
        code 400 if the envelope is malformed
    """
    try:
        event = InboundEvent.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Rejected malformed event envelope: {e}")
        return _error(400, f"Invalid event: {e.error_count()} validation error(s)")

    if event.service_id not in (None, OTA_SERVICE_ID):
        logger.debug(f"Ignoring event for service {event.service_id}")
        return JSONResponse(
            status_code=200,
            content={"code": 200, "msg": "ignored", "data": None},
        )

    await agent.dispatcher.dispatch(event)
    return JSONResponse(
        status_code=200,
        content={"code": 200, "msg": "success", "data": None},
    )


@router.post("/connection/{state}", response_model=SuccessResponse)
async def post_connection(state: str, agent: OtaAgent = Depends(get_agent)):
    """POST /api/v1.0/connection/{lost|complete|fail} - Connection lifecycle notification."""
    handlers = {
        "lost": agent.listener.connection_lost,
        "complete": agent.listener.connect_complete,
        "fail": agent.listener.connect_fail,
    }
    handler = handlers.get(state)
    if handler is None:
        return _error(404, f"Unknown connection state: {state}")

    try:
        await handler()
    except Exception as e:
        logger.error(f"Connection handler '{state}' failed: {e}", exc_info=True)
        return _error(500, f"Connection handler failed: {e}")

    return JSONResponse(
        status_code=200,
        content={"code": 200, "msg": "success", "data": None},
    )


@router.post("/package/get", response_model=SuccessResponse)
async def post_package_get(agent: OtaAgent = Depends(get_agent)):
    """POST /api/v1.0/package/get - Ask the platform for a pending package."""
    try:
        await agent.listener.request_package()
    except Exception as e:
        logger.error(f"Package request failed: {e}", exc_info=True)
        return _error(500, f"Package request failed: {e}")

    return JSONResponse(
        status_code=200,
        content={"code": 200, "msg": "success", "data": None},
    )


@router.get("/modules", response_model=ModuleStatusResponse)
async def get_modules(agent: OtaAgent = Depends(get_agent)):
    """GET /api/v1.0/modules - Current module version."""
    return ModuleStatusResponse(
        data=ModuleStatus(module=agent.module, version=agent.version, busy=agent.is_busy())
    )
