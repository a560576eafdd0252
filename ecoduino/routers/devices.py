"""
Devices Router - firmware-facing API

Greenhouse devices authenticate with their token only.
"""
from fastapi import APIRouter, Depends, status

from ..dependencies import Services, get_services
from ..exceptions import EcoduinoException
from ..metrics import track_control_poll
from ..schemas import DeviceControlResponse, MessageResponse, TelemetryIngest

router = APIRouter(prefix="/api/v1", tags=["devices"])


@router.post(
    "/telemetry",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED
)
async def ingest_telemetry(body: TelemetryIngest, services: Services = Depends(get_services)):
    """
    Store one sensor sample

    Body: {token, tempAmbiente, humAmbiente, humedadSuelo}
    Returns 401 when the token is unknown.
    """
    await services.telemetry.ingest(body.token, body.temp_ambient, body.hum_ambient, body.hum_soil)
    return MessageResponse(message="Reading stored")


@router.get("/control/{token}", response_model=DeviceControlResponse)
async def poll_control_state(token: str, services: Services = Depends(get_services)):
    """
    Actuator flags for the device holding this token

    Returns 401 for an unknown token, 404 when the greenhouse has no control state.
    """
    try:
        device = await services.registry.lookup_by_token(token)
        state = await services.control_states.get(device.id)
    except EcoduinoException as e:
        track_control_poll(e.error_code.lower())
        raise

    track_control_poll("ok")
    return DeviceControlResponse(
        lights=state.lights,
        irrigation=state.irrigation,
        ventilation=state.ventilation
    )
