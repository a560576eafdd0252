"""
Core services

Each class is handed the Database it works against; none of them keep
state of their own between calls.
"""
from .registry import DeviceRegistry
from .ownership import OwnershipLedger
from .control_state import ControlStateStore
from .telemetry import TelemetryLog
from .provisioning import ProvisioningOrchestrator
from .accounts import AccountService

__all__ = [
    "DeviceRegistry",
    "OwnershipLedger",
    "ControlStateStore",
    "TelemetryLog",
    "ProvisioningOrchestrator",
    "AccountService",
]
