"""
Custom exceptions for better error handling

Every failure the core can produce maps to one of five families:
ValidationError, NotAuthorizedError, ConflictError, RecordNotFoundError
and DatabaseError (internal). The HTTP layer renders them with the
status code carried on the class.
"""
from typing import Optional, Any


class EcoduinoException(Exception):
    """Base exception for all greenhouse-related errors"""

    status_code = 400

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses"""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details
        }

# ============================================================
# Validation Exceptions
# ============================================================

class ValidationError(EcoduinoException):
    """Input validation error"""

    status_code = 400

    def __init__(self, field: str, message: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            message=f"Validation error for {field}: {message}",
            error_code=error_code,
            details={"field": field, "error": message}
        )
        self.field = field


class IncompleteProvisioningRequest(ValidationError):
    """userId, locationLabel and token are all required to provision"""

    def __init__(self, missing: list):
        super().__init__(
            field=", ".join(missing),
            message="required for provisioning",
            error_code="INCOMPLETE_PROVISIONING_REQUEST"
        )
        self.details["missing"] = list(missing)
        self.missing = list(missing)


class InvalidActuator(ValidationError):
    """Actuator name outside the fixed set"""

    def __init__(self, actuator: Any, allowed: list):
        super().__init__(
            field="actuator",
            message=f"'{actuator}' is not one of {allowed}",
            error_code="INVALID_ACTUATOR"
        )
        self.actuator = actuator

# ============================================================
# Authentication Exceptions
# ============================================================

class NotAuthorizedError(EcoduinoException):
    """Caller could not be authenticated"""

    status_code = 401

    def __init__(self, message: str = "Not authorized", error_code: str = "NOT_AUTHORIZED"):
        super().__init__(message=message, error_code=error_code)


class DeviceNotAuthorized(NotAuthorizedError):
    """Unknown device token (never says why)"""

    def __init__(self):
        super().__init__(
            message="Device token not authorized",
            error_code="DEVICE_NOT_AUTHORIZED"
        )


class InvalidCredentials(NotAuthorizedError):
    """Unknown email or wrong password"""

    def __init__(self):
        super().__init__(
            message="Invalid credentials",
            error_code="INVALID_CREDENTIALS"
        )

# ============================================================
# Conflict Exceptions
# ============================================================

class ConflictError(EcoduinoException):
    """Resource already exists"""

    status_code = 409

    def __init__(self, resource: str, identifier: Any, error_code: str = "DUPLICATE_RESOURCE"):
        super().__init__(
            message=f"{resource} already exists: {identifier}",
            error_code=error_code,
            details={"resource": resource, "identifier": str(identifier)}
        )


class TokenAlreadyRegistered(ConflictError):
    """Device token is already assigned to another greenhouse"""

    def __init__(self, masked_token: str):
        super().__init__("Device token", masked_token, error_code="TOKEN_ALREADY_REGISTERED")


class EmailAlreadyRegistered(ConflictError):
    """Email is already registered"""

    def __init__(self, email: str):
        super().__init__("User email", email, error_code="EMAIL_ALREADY_REGISTERED")

# ============================================================
# Not Found Exceptions
# ============================================================

class RecordNotFoundError(EcoduinoException):
    """Record not found in database"""

    status_code = 404

    def __init__(self, resource: str, identifier: Any, error_code: str = "RECORD_NOT_FOUND"):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code=error_code,
            details={"resource": resource, "identifier": str(identifier)}
        )


class DeviceNotFound(RecordNotFoundError):
    """Greenhouse not found"""

    def __init__(self, device_id: Any):
        super().__init__("Greenhouse", device_id, error_code="DEVICE_NOT_FOUND")
        self.device_id = device_id


class ControlStateUninitialized(RecordNotFoundError):
    """Greenhouse has no control state row"""

    def __init__(self, device_id: Any):
        super().__init__("Control state", device_id, error_code="CONTROL_STATE_UNINITIALIZED")
        self.device_id = device_id


class NoReadingsYet(RecordNotFoundError):
    """Greenhouse has never reported a reading"""

    def __init__(self, device_id: Any):
        super().__init__("Reading", device_id, error_code="NO_READINGS_YET")
        self.device_id = device_id


class NoHistoricalData(RecordNotFoundError):
    """History query returned no rows"""

    def __init__(self, device_id: Any):
        super().__init__("Historical data", device_id, error_code="NO_HISTORICAL_DATA")
        self.device_id = device_id

# ============================================================
# Internal Exceptions
# ============================================================

class DatabaseError(EcoduinoException):
    """Database connection, query or transaction error"""

    status_code = 500

    def __init__(self, message: str, error_code: str = "INTERNAL_ERROR", details: Optional[dict] = None):
        super().__init__(message=message, error_code=error_code, details=details)


class DuplicateControlState(DatabaseError):
    """A control state row already exists for this greenhouse"""

    def __init__(self, device_id: Any):
        super().__init__(
            message=f"Control state already initialized for greenhouse {device_id}",
            error_code="DUPLICATE_CONTROL_STATE",
            details={"greenhouse_id": str(device_id)}
        )
        self.device_id = device_id
