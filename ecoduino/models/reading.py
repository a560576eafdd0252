"""Sensor reading model"""

from sqlalchemy import Column, Integer, BigInteger, Float, DateTime, ForeignKey, Index

from ..database import Base


class SensorReading(Base):
    """Immutable sample pushed by a greenhouse device"""
    __tablename__ = "sensor_readings"

    # BIGINT on PostgreSQL; SQLite only autoincrements INTEGER primary keys
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    greenhouse_id = Column(
        Integer, ForeignKey("greenhouses.id", ondelete="CASCADE"), nullable=False
    )

    # Server-assigned at ingestion
    captured_at = Column(DateTime(timezone=True), nullable=False)

    temp_ambient = Column(Float, nullable=False)
    hum_ambient = Column(Float, nullable=False)
    hum_soil = Column(Float, nullable=False)

    __table_args__ = (
        Index("ix_sensor_readings_greenhouse_captured", "greenhouse_id", "captured_at"),
    )

    def __repr__(self):
        return f"<SensorReading greenhouse={self.greenhouse_id} at={self.captured_at}>"
