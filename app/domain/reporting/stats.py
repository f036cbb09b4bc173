"""
Occupancy and usage statistics.

Pure functions over a snapshot of records; nothing here touches the
database. Rates are whole percentages and are 0 for an empty snapshot.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List

from app.domain.beds.models import WardType


def percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    value = Decimal(part) * 100 / Decimal(total)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _bed_counts(beds: List[Any]) -> Dict[str, int]:
    total = len(beds)
    occupied = sum(1 for bed in beds if bed.is_occupied)
    # Storage does not enforce exclusivity; an occupied bed never counts twice
    maintenance = sum(1 for bed in beds if bed.is_under_maintenance and not bed.is_occupied)
    available = total - occupied - maintenance
    return {
        "totalBeds": total,
        "occupiedBeds": occupied,
        "availableBeds": available,
        "maintenanceBeds": maintenance,
        "occupancyRate": percentage(occupied, total),
        "availableRate": percentage(available, total),
        "maintenanceRate": percentage(maintenance, total),
    }


def compute_bed_stats(beds: Iterable[Any]) -> Dict[str, Any]:
    beds = list(beds)
    stats: Dict[str, Any] = _bed_counts(beds)
    stats["byWardType"] = {
        ward.value: _bed_counts([bed for bed in beds if bed.ward_type == ward])
        for ward in WardType
    }
    return stats


def compute_equipment_stats(equipment: Iterable[Any]) -> Dict[str, Any]:
    items = list(equipment)
    total = len(items)
    in_use = sum(1 for item in items if item.is_in_use)

    by_type: Dict[str, Dict[str, int]] = {}
    for item in items:
        bucket = by_type.setdefault(item.type, {"total": 0, "inUse": 0, "available": 0})
        bucket["total"] += 1
        if item.is_in_use:
            bucket["inUse"] += 1
        else:
            bucket["available"] += 1

    return {
        "totalEquipment": total,
        "inUseEquipment": in_use,
        "availableEquipment": total - in_use,
        "usageRate": percentage(in_use, total),
        "byType": by_type,
    }
