from sqlalchemy import Column, String, Integer, Boolean, DateTime, Enum, Index
import enum
import uuid

from app.infrastructure.database import Base, utcnow


def gen_uuid():
    return str(uuid.uuid4())


class WardType(str, enum.Enum):
    GENERAL = "general"
    ICU = "icu"


ward_type_enum = Enum(WardType, values_callable=lambda types: [t.value for t in types])


class BedStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class Bed(Base):
    __tablename__ = "hospital_beds"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    bed_number = Column(Integer, unique=True, nullable=False, index=True)
    ward_type = Column(ward_type_enum, nullable=False, default=WardType.GENERAL)

    is_occupied = Column(Boolean, nullable=False, default=False)
    patient_name = Column(String(255), nullable=True)
    allocated_at = Column(DateTime(timezone=True), nullable=True)

    is_under_maintenance = Column(Boolean, nullable=False, default=False)
    maintenance_start_time = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)

    # A patient occupies at most one bed
    __table_args__ = (
        Index(
            "ux_hospital_beds_occupant",
            "patient_name",
            unique=True,
            sqlite_where=is_occupied.is_(True),
            postgresql_where=is_occupied.is_(True),
        ),
    )

    @property
    def status(self) -> BedStatus:
        if self.is_occupied:
            return BedStatus.OCCUPIED
        if self.is_under_maintenance:
            return BedStatus.MAINTENANCE
        return BedStatus.AVAILABLE


class BedHistory(Base):
    """One allocation episode. Not linked to Bed so it outlives bed removal."""
    __tablename__ = "bed_history"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    bed_number = Column(Integer, nullable=False)
    patient_name = Column(String(255), nullable=False)
    allocated_at = Column(DateTime(timezone=True), nullable=False)
    discharged_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    ward_type = Column(ward_type_enum, nullable=False, default=WardType.GENERAL)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_bed_history_open_episode", "bed_number", "patient_name", "is_active"),
        Index("ix_bed_history_allocated_at", "allocated_at"),
    )
