"""Ownership ledger: which users may manage which greenhouses"""

from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import Database
from ..models import Greenhouse, Ownership
from ..schemas import Device, OwnershipRole


class OwnershipLedger:
    """Owns the user_greenhouses table"""

    def __init__(self, db: Database):
        self.db = db

    async def grant(
        self,
        user_id: int,
        device_id: int,
        role: Union[OwnershipRole, str] = OwnershipRole.ADMIN,
        session: Optional[AsyncSession] = None
    ):
        """Insert one (user, greenhouse, role) grant"""
        role = OwnershipRole(role)
        async with self.db.scoped(session) as s:
            s.add(Ownership(user_id=user_id, greenhouse_id=device_id, role=role.value))
            await s.flush()

    async def list_devices_for_user(self, user_id: int) -> List[Device]:
        """Greenhouses the user owns, by id ascending; empty list when none"""
        query = (
            select(Greenhouse)
            .join(Ownership, Ownership.greenhouse_id == Greenhouse.id)
            .where(Ownership.user_id == user_id)
            .order_by(Greenhouse.id.asc())
        )
        async with self.db.transaction() as s:
            rows = (await s.execute(query)).scalars().all()
            return [Device.model_validate(row) for row in rows]

    async def roles_for(self, user_id: int, device_id: int) -> List[str]:
        """Roles a user holds on one greenhouse"""
        query = select(Ownership.role).where(
            Ownership.user_id == user_id,
            Ownership.greenhouse_id == device_id,
        )
        async with self.db.transaction() as s:
            return list((await s.execute(query)).scalars().all())
