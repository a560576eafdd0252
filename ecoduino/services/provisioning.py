"""
Provisioning orchestrator

Creates a greenhouse, its all-off control state and the requesting user's
admin grant in a single transaction. Either all three rows commit or none
of them do, and the caller only ever sees success, a token conflict, or an
internal failure.
"""
from typing import Any, Optional

from ..database import Database
from ..exceptions import (
    DatabaseError,
    EcoduinoException,
    IncompleteProvisioningRequest,
    TokenAlreadyRegistered,
    ValidationError,
)
from ..logging_config import get_logger
from ..metrics import MetricsTimer, provisioning_duration_seconds, track_provisioning
from ..schemas import LOCATION_LABEL_MAX_LENGTH, TOKEN_MAX_LENGTH, Device, OwnershipRole
from ..utils import is_blank, mask_sensitive_data
from .control_state import ControlStateStore
from .ownership import OwnershipLedger
from .registry import DeviceRegistry

logger = get_logger(__name__)


def _valid_user_id(user_id: Any) -> bool:
    return isinstance(user_id, int) and not isinstance(user_id, bool) and user_id > 0


class ProvisioningOrchestrator:
    """validate -> begin -> check token -> create -> init control -> grant -> commit"""

    def __init__(
        self,
        db: Database,
        registry: DeviceRegistry,
        control_states: ControlStateStore,
        ledger: OwnershipLedger
    ):
        self.db = db
        self.registry = registry
        self.control_states = control_states
        self.ledger = ledger

    @staticmethod
    def validate(user_id: Any, location_label: Optional[str], token: Optional[str]):
        missing = []
        if not _valid_user_id(user_id):
            missing.append("userId")
        if is_blank(location_label):
            missing.append("locationLabel")
        if is_blank(token):
            missing.append("token")
        if missing:
            raise IncompleteProvisioningRequest(missing)

        if len(location_label.strip()) > LOCATION_LABEL_MAX_LENGTH:
            raise ValidationError(
                "locationLabel", f"must be at most {LOCATION_LABEL_MAX_LENGTH} characters"
            )
        if len(token) > TOKEN_MAX_LENGTH:
            raise ValidationError("token", f"must be at most {TOKEN_MAX_LENGTH} characters")

    async def provision(self, user_id: int, location_label: str, token: str) -> Device:
        """
        Provision a greenhouse for a user

        Raises:
            IncompleteProvisioningRequest: a required input is missing or blank
            ValidationError: the label or token is longer than its column
            TokenAlreadyRegistered: the token belongs to another greenhouse,
                whether seen by the lookup or rejected by the unique constraint
            DatabaseError: anything else; the transaction has been rolled back
        """
        try:
            self.validate(user_id, location_label, token)
        except ValidationError:
            track_provisioning("invalid")
            raise

        location_label = location_label.strip()
        masked = mask_sensitive_data(token)

        try:
            with MetricsTimer(provisioning_duration_seconds):
                async with self.db.transaction() as session:
                    if await self.registry.find_by_token(token, session=session) is not None:
                        raise TokenAlreadyRegistered(masked)

                    device = await self.registry.create(token, location_label, session=session)
                    await self.control_states.initialize(device.id, session=session)
                    await self.ledger.grant(user_id, device.id, OwnershipRole.ADMIN, session=session)

        except TokenAlreadyRegistered:
            track_provisioning("conflict")
            logger.warning("provisioning_conflict", user_id=user_id, token=masked)
            raise

        except DatabaseError:
            track_provisioning("error")
            logger.error("provisioning_failed", user_id=user_id, token=masked, exc_info=True)
            raise

        except EcoduinoException as e:
            # Any other domain failure inside the transaction is internal too
            track_provisioning("error")
            logger.error(
                "provisioning_failed",
                user_id=user_id,
                token=masked,
                error=e.error_code
            )
            raise DatabaseError(f"Provisioning failed: {e.error_code}") from e

        track_provisioning("created")
        logger.info(
            "device_provisioned",
            greenhouse_id=device.id,
            user_id=user_id,
            location=location_label,
            token=masked
        )
        return device
