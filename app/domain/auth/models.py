from sqlalchemy import Column, String, Boolean, DateTime, Enum
from app.infrastructure.database import Base, utcnow
import uuid
import enum


def gen_uuid():
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    """Roles that gate bed and equipment operations"""
    BED_MANAGER = "bedManager"
    EQUIPMENT_MANAGER = "equipmentManager"


class User(Base):
    """Staff account used to sign access tokens"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=gen_uuid)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=UserRole.BED_MANAGER,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def set_password(self, password: str):
        """Set password hash"""
        from app.core.security import get_password_hash
        self.password_hash = get_password_hash(password)

    def verify_password(self, password: str) -> bool:
        """Verify password"""
        from app.core.security import verify_password
        return verify_password(password, self.password_hash)
