from datetime import datetime
from typing import Dict, List, Optional

from app.api.v1.base_schemas import APIModel


class EquipmentCreate(APIModel):
    name: str
    type: str
    serial_number: Optional[str] = None


class EquipmentAssign(APIModel):
    equipment_id: str
    patient_name: str


class EquipmentReturn(APIModel):
    equipment_id: str


class EquipmentResponse(APIModel):
    id: str
    name: str
    type: str
    serial_number: Optional[str] = None
    is_in_use: bool
    patient_name: Optional[str] = None
    assigned_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class EquipmentTypeCounts(APIModel):
    total: int
    in_use: int
    available: int


class EquipmentStats(APIModel):
    total_equipment: int
    in_use_equipment: int
    available_equipment: int
    usage_rate: int
    by_type: Dict[str, EquipmentTypeCounts]


class EquipmentListResponse(APIModel):
    equipment: List[EquipmentResponse]
    stats: EquipmentStats


class EquipmentActionResponse(APIModel):
    message: str
    equipment: EquipmentResponse


class PatientEquipmentResponse(APIModel):
    count: int
    equipment: List[EquipmentResponse]
