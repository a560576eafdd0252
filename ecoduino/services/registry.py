"""
Device registry: token to greenhouse resolution and greenhouse creation

Every device-facing call authenticates here. A token either resolves to a
greenhouse or the caller gets DeviceNotAuthorized; nothing else leaks.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import Database
from ..exceptions import DeviceNotAuthorized, DeviceNotFound, TokenAlreadyRegistered
from ..logging_config import get_logger
from ..models import Greenhouse
from ..schemas import Device
from ..utils import is_blank, mask_sensitive_data, token_digest, tokens_match

logger = get_logger(__name__)


class DeviceRegistry:
    """Owns the greenhouses table"""

    def __init__(self, db: Database):
        self.db = db

    async def _find_row(self, session: AsyncSession, token: str) -> Optional[Greenhouse]:
        result = await session.execute(
            select(Greenhouse).where(Greenhouse.token_digest == token_digest(token))
        )
        row = result.scalar_one_or_none()
        if row is None or not tokens_match(row.token, token):
            return None
        return row

    async def find_by_token(self, token: str, session: Optional[AsyncSession] = None) -> Optional[Device]:
        """Greenhouse for this token, or None"""
        if is_blank(token):
            return None

        async with self.db.scoped(session) as s:
            row = await self._find_row(s, token)
            return Device.model_validate(row) if row is not None else None

    async def lookup_by_token(self, token: str, session: Optional[AsyncSession] = None) -> Device:
        """Authenticate a device token; raises DeviceNotAuthorized when unknown"""
        device = await self.find_by_token(token, session=session)
        if device is None:
            logger.info("device_token_rejected", token=mask_sensitive_data(token or ""))
            raise DeviceNotAuthorized()
        return device

    async def lookup_by_id(self, device_id: int, session: Optional[AsyncSession] = None) -> Device:
        """Greenhouse by internal id; raises DeviceNotFound"""
        async with self.db.scoped(session) as s:
            row = await s.get(Greenhouse, device_id)
            if row is None:
                raise DeviceNotFound(device_id)
            return Device.model_validate(row)

    async def create(
        self,
        token: str,
        location_label: str,
        session: Optional[AsyncSession] = None
    ) -> Device:
        """
        Insert a greenhouse row

        The unique constraints on token/token_digest are the arbiter: a second
        insert of the same token fails here even if the caller's earlier
        lookup saw nothing, and is reported as TokenAlreadyRegistered.
        """
        async with self.db.scoped(session) as s:
            greenhouse = Greenhouse(
                location_label=location_label,
                token=token,
                token_digest=token_digest(token),
            )
            s.add(greenhouse)
            try:
                await s.flush()
            except IntegrityError as e:
                if "token" in str(e.orig).lower():
                    raise TokenAlreadyRegistered(mask_sensitive_data(token)) from e
                raise

            return Device.model_validate(greenhouse)

    async def touch(self, device_id: int, seen_at: datetime, session: Optional[AsyncSession] = None):
        """Refresh last_contact"""
        async with self.db.scoped(session) as s:
            await s.execute(
                update(Greenhouse)
                .where(Greenhouse.id == device_id)
                .values(last_contact=seen_at)
            )
