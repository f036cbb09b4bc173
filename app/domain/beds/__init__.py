# Beds domain module
from app.domain.beds.models import (
    Bed,
    BedHistory,
    BedStatus,
    WardType,
)

__all__ = [
    "Bed",
    "BedHistory",
    "BedStatus",
    "WardType",
]
