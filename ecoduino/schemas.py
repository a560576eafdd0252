"""
Pydantic models for request/response validation
All models in one place for simplicity
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

# ============================================================
# Enums
# ============================================================

class Actuator(str, Enum):
    """Actuators a greenhouse exposes; value doubles as the column name"""
    LIGHTS = "lights"
    IRRIGATION = "irrigation"
    VENTILATION = "ventilation"

    @classmethod
    def parse(cls, value: Union[str, "Actuator", None]) -> "Actuator":
        """Resolve an actuator name (English or the firmware's Spanish name)"""
        # Local import keeps schemas free of an import cycle with exceptions users
        from .exceptions import InvalidActuator

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            key = LEGACY_ACTUATOR_NAMES.get(key, key)
            for member in cls:
                if member.value == key:
                    return member
        raise InvalidActuator(value, [member.value for member in cls])


LEGACY_ACTUATOR_NAMES = {
    "luces": Actuator.LIGHTS.value,
    "riego": Actuator.IRRIGATION.value,
    "ventilacion": Actuator.VENTILATION.value,
}


class OwnershipRole(str, Enum):
    """Role carried by an ownership grant"""
    ADMIN = "admin"


# Column widths of greenhouses.token and greenhouses.location_label
TOKEN_MAX_LENGTH = 128
LOCATION_LABEL_MAX_LENGTH = 150

# ============================================================
# Base Models
# ============================================================

class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

# ============================================================
# Domain Records
# ============================================================

class Device(CamelModel):
    """A registered greenhouse as seen by callers"""
    id: int = Field(..., alias="greenhouseId")
    location_label: str
    token: str
    last_contact: Optional[datetime] = None

    @computed_field(alias="deviceId")
    @property
    def device_id(self) -> int:
        return self.id


class ControlStateSnapshot(CamelModel):
    """Current actuator flags for one greenhouse"""
    greenhouse_id: int
    lights: bool = False
    irrigation: bool = False
    ventilation: bool = False
    updated_at: Optional[datetime] = None

    def flags(self) -> tuple:
        return (self.lights, self.irrigation, self.ventilation)


class Reading(CamelModel):
    """One immutable sensor sample"""
    greenhouse_id: int
    captured_at: datetime
    temp_ambient: float
    hum_ambient: float
    hum_soil: float

# ============================================================
# Requests
# ============================================================

class ProvisionRequest(CamelModel):
    """
    Create a greenhouse for a user

    Fields are optional here so that the provisioning workflow reports
    every missing field in one INCOMPLETE_PROVISIONING_REQUEST error.
    """
    user_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("userId", "user_id")
    )
    location_label: Optional[str] = Field(
        None,
        max_length=LOCATION_LABEL_MAX_LENGTH,
        validation_alias=AliasChoices("locationLabel", "location_label", "nombreUbicacion")
    )
    token: Optional[str] = Field(
        None,
        max_length=TOKEN_MAX_LENGTH,
        validation_alias=AliasChoices("token", "tokenDispositivo")
    )


class TelemetryIngest(BaseModel):
    """Payload posted by greenhouse firmware"""
    token: str = Field(..., min_length=1, max_length=TOKEN_MAX_LENGTH)
    temp_ambient: float = Field(
        ..., allow_inf_nan=False, validation_alias=AliasChoices("tempAmbiente", "tempAmbient")
    )
    hum_ambient: float = Field(
        ..., allow_inf_nan=False, validation_alias=AliasChoices("humAmbiente", "humAmbient")
    )
    hum_soil: float = Field(
        ..., allow_inf_nan=False, validation_alias=AliasChoices("humedadSuelo", "humSoil")
    )


class ActuatorUpdate(BaseModel):
    """Set one actuator flag; actuator is checked against the fixed set downstream"""
    actuator: str = Field(..., validation_alias=AliasChoices("actuator", "actuador"))
    value: bool = Field(..., validation_alias=AliasChoices("value", "estado"))


class RegisterRequest(BaseModel):
    """New account"""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Credentials"""
    email: Optional[str] = None
    password: Optional[str] = None

# ============================================================
# Responses
# ============================================================

class ProvisionResponse(CamelModel):
    message: str
    greenhouse_id: int

    @computed_field(alias="deviceId")
    @property
    def device_id(self) -> int:
        return self.greenhouse_id


class DeviceControlResponse(BaseModel):
    """Flags as the firmware reads them"""
    model_config = ConfigDict(populate_by_name=True)

    lights: bool = Field(..., alias="luces")
    irrigation: bool = Field(..., alias="riego")
    ventilation: bool = Field(..., alias="ventilacion")


class MessageResponse(BaseModel):
    message: str


class RegisterResponse(CamelModel):
    message: str
    user_id: int


class LoginResponse(CamelModel):
    message: str
    user_id: int
    token: str


class HealthStatus(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: datetime
    checks: dict = Field(default_factory=dict)
    stats: dict = Field(default_factory=dict)
