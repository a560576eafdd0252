"""Greenhouse device, its ownership grants and its actuator control state"""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils import utcnow


class Greenhouse(Base):
    """A provisioned monitoring device, addressed by devices through its token"""
    __tablename__ = "greenhouses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    location_label = Column(String(150), nullable=False)

    # Opaque device token; uniqueness is enforced here, not only in code
    token = Column(String(128), nullable=False)
    token_digest = Column(String(64), nullable=False)

    last_contact = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    control_state = relationship("ControlState", back_populates="greenhouse", uselist=False)
    owners = relationship("Ownership", back_populates="greenhouse")

    __table_args__ = (
        UniqueConstraint("token", name="uq_greenhouses_token"),
        UniqueConstraint("token_digest", name="uq_greenhouses_token_digest"),
    )

    def __repr__(self):
        return f"<Greenhouse {self.id} {self.location_label!r}>"


class Ownership(Base):
    """(user, greenhouse, role) grant"""
    __tablename__ = "user_greenhouses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Users live in the accounts subsystem; no FK so the ledger stays independent
    user_id = Column(Integer, nullable=False, index=True)
    greenhouse_id = Column(
        Integer, ForeignKey("greenhouses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(String(20), nullable=False, default="admin")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    greenhouse = relationship("Greenhouse", back_populates="owners")

    __table_args__ = (
        UniqueConstraint("user_id", "greenhouse_id", name="uq_user_greenhouses_pair"),
    )

    def __repr__(self):
        return f"<Ownership user={self.user_id} greenhouse={self.greenhouse_id} role={self.role}>"


class ControlState(Base):
    """Desired on/off state of the three actuators; one row per greenhouse"""
    __tablename__ = "control_states"

    greenhouse_id = Column(
        Integer, ForeignKey("greenhouses.id", ondelete="CASCADE"), primary_key=True
    )
    lights = Column(Boolean, nullable=False, default=False)
    irrigation = Column(Boolean, nullable=False, default=False)
    ventilation = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    greenhouse = relationship("Greenhouse", back_populates="control_state")

    def __repr__(self):
        return (
            f"<ControlState greenhouse={self.greenhouse_id} lights={self.lights} "
            f"irrigation={self.irrigation} ventilation={self.ventilation}>"
        )
