from datetime import datetime
from typing import Dict, List, Optional

from app.api.v1.base_schemas import APIModel
from app.domain.beds.models import BedStatus, WardType


class BedCreateRequest(APIModel):
    count: int
    ward_type: WardType = WardType.GENERAL


class AllocateRequest(APIModel):
    patient_name: str
    ward_type: Optional[WardType] = None


class DischargeRequest(APIModel):
    patient_name: str


class MaintenanceRequest(APIModel):
    bed_number: int


class BedResponse(APIModel):
    id: str
    bed_number: int
    ward_type: WardType
    status: BedStatus
    is_occupied: bool
    patient_name: Optional[str] = None
    allocated_at: Optional[datetime] = None
    is_under_maintenance: bool
    maintenance_start_time: Optional[datetime] = None
    created_at: Optional[datetime] = None


class BedCounts(APIModel):
    total_beds: int
    occupied_beds: int
    available_beds: int
    maintenance_beds: int
    occupancy_rate: int
    available_rate: int
    maintenance_rate: int


class BedStats(BedCounts):
    by_ward_type: Dict[str, BedCounts]


class BedListResponse(APIModel):
    beds: List[BedResponse]
    stats: BedStats


class BedCreateResponse(APIModel):
    message: str
    start_number: int
    end_number: int
    beds: List[BedResponse]


class BedRemoveResponse(APIModel):
    message: str
    removed_bed: BedResponse


class BedActionResponse(APIModel):
    message: str
    bed: BedResponse


class BedHistoryRecord(APIModel):
    id: str
    bed_number: int
    patient_name: str
    allocated_at: datetime
    discharged_at: Optional[datetime] = None
    is_active: bool
    ward_type: WardType


class BedHistoryResponse(APIModel):
    history: List[BedHistoryRecord]
