"""
Service wiring and FastAPI dependencies

Services are built once per application from the Database handle created
in the lifespan, then reached from handlers through request.app.state.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from .config import Settings, settings as default_settings
from .database import Database
from .services import (
    AccountService,
    ControlStateStore,
    DeviceRegistry,
    OwnershipLedger,
    ProvisioningOrchestrator,
    TelemetryLog,
)


@dataclass
class Services:
    db: Database
    registry: DeviceRegistry
    ledger: OwnershipLedger
    control_states: ControlStateStore
    telemetry: TelemetryLog
    provisioning: ProvisioningOrchestrator
    accounts: AccountService


def build_services(db: Database, config: Optional[Settings] = None) -> Services:
    config = config or default_settings
    registry = DeviceRegistry(db)
    ledger = OwnershipLedger(db)
    control_states = ControlStateStore(db)
    return Services(
        db=db,
        registry=registry,
        ledger=ledger,
        control_states=control_states,
        telemetry=TelemetryLog(db, registry, config),
        provisioning=ProvisioningOrchestrator(db, registry, control_states, ledger),
        accounts=AccountService(db, config),
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency"""
    return request.app.state.services
