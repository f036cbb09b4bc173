from sqlalchemy import Column, String, Boolean, DateTime
import uuid

from app.infrastructure.database import Base, utcnow


def gen_uuid():
    return str(uuid.uuid4())


class Equipment(Base):
    __tablename__ = "equipment"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    name = Column(String(255), nullable=False)
    type = Column(String(100), nullable=False, index=True)
    # NULLs never collide in a unique index, so only present serials must be distinct
    serial_number = Column(String(64), unique=True, nullable=True)

    is_in_use = Column(Boolean, nullable=False, default=False)
    patient_name = Column(String(255), nullable=True, index=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
