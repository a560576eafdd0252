"""
Greenhouses Router - user-facing API

Provisioning, listing, readings and actuator control. Callers are
identified by the user id they pass; authenticating that id belongs to
the accounts layer in front of this API.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import Services, get_services
from ..schemas import (
    ActuatorUpdate,
    ControlStateSnapshot,
    Device,
    MessageResponse,
    ProvisionRequest,
    ProvisionResponse,
    Reading,
)

router = APIRouter(prefix="/api/v1", tags=["greenhouses"])


@router.post(
    "/greenhouses",
    response_model=ProvisionResponse,
    status_code=status.HTTP_201_CREATED
)
async def provision_greenhouse(
    body: ProvisionRequest,
    services: Services = Depends(get_services)
):
    """
    Provision a greenhouse for a user

    Creates the greenhouse, its control state (all actuators off) and an
    admin grant for the user atomically.

    Returns 409 when the device token is already registered.
    """
    device = await services.provisioning.provision(body.user_id, body.location_label, body.token)
    return ProvisionResponse(
        message="Greenhouse created and assigned",
        greenhouse_id=device.id
    )


@router.get("/users/{user_id}/greenhouses", response_model=List[Device])
async def list_user_greenhouses(user_id: int, services: Services = Depends(get_services)):
    """Greenhouses owned by a user, ordered by id (empty list when none)"""
    return await services.ledger.list_devices_for_user(user_id)


@router.get("/greenhouses/{greenhouse_id}/readings/latest", response_model=Reading)
async def latest_reading(greenhouse_id: int, services: Services = Depends(get_services)):
    """Most recent reading, 404 when the greenhouse never reported"""
    return await services.telemetry.latest(greenhouse_id)


@router.get("/greenhouses/{greenhouse_id}/readings", response_model=List[Reading])
async def reading_history(
    greenhouse_id: int,
    limit: Optional[int] = Query(None, description="Max readings, newest first (default 50, capped at 500)"),
    services: Services = Depends(get_services)
):
    """Reading history, newest first; 404 when there is none"""
    return await services.telemetry.history(greenhouse_id, limit)


@router.get("/greenhouses/{greenhouse_id}/control", response_model=ControlStateSnapshot)
async def get_control_state(greenhouse_id: int, services: Services = Depends(get_services)):
    """Current actuator flags"""
    return await services.control_states.get(greenhouse_id)


@router.put("/greenhouses/{greenhouse_id}/control", response_model=MessageResponse)
async def update_actuator(
    greenhouse_id: int,
    body: ActuatorUpdate,
    services: Services = Depends(get_services)
):
    """
    Set one actuator

    actuator: lights | irrigation | ventilation (luces | riego | ventilacion accepted)
    """
    await services.control_states.set_flag(greenhouse_id, body.actuator, body.value)
    return MessageResponse(message=f"{body.actuator} set to {str(body.value).lower()}")
