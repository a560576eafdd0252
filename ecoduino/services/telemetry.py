"""
Telemetry log: append-only sensor readings per greenhouse

Capture time is assigned here at ingestion, never taken from the device.
Readings are ordered by (captured_at, id) so equal timestamps still sort
deterministically.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, settings as default_settings
from ..database import Database
from ..exceptions import EcoduinoException, NoHistoricalData, NoReadingsYet, ValidationError
from ..logging_config import get_logger
from ..metrics import track_telemetry
from ..models import SensorReading
from ..schemas import Reading
from ..utils import utcnow
from .registry import DeviceRegistry

logger = get_logger(__name__)


class TelemetryLog:
    """Owns the sensor_readings table"""

    def __init__(self, db: Database, registry: DeviceRegistry, config: Optional[Settings] = None):
        self.db = db
        self.registry = registry
        self.config = config or default_settings

    async def append(
        self,
        device_id: int,
        temp_ambient: float,
        hum_ambient: float,
        hum_soil: float,
        captured_at: Optional[datetime] = None,
        session: Optional[AsyncSession] = None
    ) -> Reading:
        """Insert one reading and refresh the greenhouse's last_contact"""
        captured_at = captured_at or utcnow()
        async with self.db.scoped(session) as s:
            reading = SensorReading(
                greenhouse_id=device_id,
                captured_at=captured_at,
                temp_ambient=float(temp_ambient),
                hum_ambient=float(hum_ambient),
                hum_soil=float(hum_soil),
            )
            s.add(reading)
            await s.flush()
            await self.registry.touch(device_id, captured_at, session=s)
            return Reading.model_validate(reading)

    async def ingest(self, token: str, temp_ambient: float, hum_ambient: float, hum_soil: float) -> Reading:
        """Authenticate the device token and append its reading in one transaction"""
        try:
            async with self.db.transaction() as s:
                device = await self.registry.lookup_by_token(token, session=s)
                reading = await self.append(
                    device.id, temp_ambient, hum_ambient, hum_soil, session=s
                )
        except EcoduinoException as e:
            track_telemetry(e.error_code.lower())
            raise

        track_telemetry("stored")
        logger.info("telemetry_ingested", greenhouse_id=device.id)
        return reading

    def resolve_limit(self, limit: Optional[int]) -> int:
        """Default, validate and clamp a history limit"""
        if limit is None:
            return self.config.history_default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError("limit", "must be a positive integer")
        return min(limit, self.config.history_max_limit)

    async def latest(self, device_id: int) -> Reading:
        """Most recent reading; raises NoReadingsYet"""
        query = (
            select(SensorReading)
            .where(SensorReading.greenhouse_id == device_id)
            .order_by(SensorReading.captured_at.desc(), SensorReading.id.desc())
            .limit(1)
        )
        async with self.db.transaction() as s:
            row = (await s.execute(query)).scalar_one_or_none()
            if row is None:
                raise NoReadingsYet(device_id)
            return Reading.model_validate(row)

    async def history(self, device_id: int, limit: Optional[int] = None) -> List[Reading]:
        """Most recent readings first, at most `limit`; raises NoHistoricalData when empty"""
        limit = self.resolve_limit(limit)
        query = (
            select(SensorReading)
            .where(SensorReading.greenhouse_id == device_id)
            .order_by(SensorReading.captured_at.desc(), SensorReading.id.desc())
            .limit(limit)
        )
        async with self.db.transaction() as s:
            rows = (await s.execute(query)).scalars().all()
            if not rows:
                raise NoHistoricalData(device_id)
            return [Reading.model_validate(row) for row in rows]
