"""
Control state store: current actuator flags per greenhouse

Devices poll the flags, users overwrite them one at a time. set_flag is a
blind UPDATE of a single column, so writes to different actuators never
conflict and writes to the same actuator are last-write-wins in the
order the database applies them.
"""
from typing import Optional, Union

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import Database
from ..exceptions import ControlStateUninitialized, DuplicateControlState, ValidationError
from ..logging_config import get_logger
from ..metrics import track_actuator_update
from ..models import ControlState
from ..schemas import Actuator, ControlStateSnapshot
from ..utils import utcnow

logger = get_logger(__name__)


class ControlStateStore:
    """Owns the control_states table"""

    def __init__(self, db: Database):
        self.db = db

    async def initialize(self, device_id: int, session: Optional[AsyncSession] = None) -> ControlStateSnapshot:
        """Create the all-off row for a new greenhouse"""
        async with self.db.scoped(session) as s:
            if await s.get(ControlState, device_id) is not None:
                raise DuplicateControlState(device_id)

            state = ControlState(
                greenhouse_id=device_id,
                lights=False,
                irrigation=False,
                ventilation=False,
                updated_at=utcnow(),
            )
            s.add(state)
            try:
                await s.flush()
            except IntegrityError as e:
                raise DuplicateControlState(device_id) from e

            return ControlStateSnapshot.model_validate(state)

    async def get(self, device_id: int, session: Optional[AsyncSession] = None) -> ControlStateSnapshot:
        """Current flags; raises ControlStateUninitialized when the row is missing"""
        async with self.db.scoped(session) as s:
            state = await s.get(ControlState, device_id)
            if state is None:
                raise ControlStateUninitialized(device_id)
            return ControlStateSnapshot.model_validate(state)

    async def set_flag(self, device_id: int, actuator: Union[Actuator, str], value: bool):
        """Overwrite one actuator flag and refresh updated_at"""
        actuator = Actuator.parse(actuator)
        if not isinstance(value, bool):
            raise ValidationError("value", "must be a boolean")

        statement = (
            update(ControlState)
            .where(ControlState.greenhouse_id == device_id)
            .values({actuator.value: value, "updated_at": utcnow()})
        )
        async with self.db.transaction() as s:
            result = await s.execute(statement)
            if result.rowcount == 0:
                raise ControlStateUninitialized(device_id)

        track_actuator_update(actuator.value, value)
        logger.info(
            "actuator_updated",
            greenhouse_id=device_id,
            actuator=actuator.value,
            value=value
        )
