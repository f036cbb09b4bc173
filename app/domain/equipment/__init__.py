# Equipment domain module
from app.domain.equipment.models import Equipment

__all__ = ["Equipment"]
