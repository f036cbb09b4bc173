from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_principal, require_bed_manager
from app.api.v1.beds.schemas import (
    AllocateRequest,
    BedActionResponse,
    BedCreateRequest,
    BedCreateResponse,
    BedHistoryResponse,
    BedListResponse,
    BedRemoveResponse,
    DischargeRequest,
    MaintenanceRequest,
)
from app.core.permissions import Principal
from app.domain.beds.service import BedService
from app.infrastructure.database import get_db

router = APIRouter(prefix="/beds", tags=["Beds"])


@router.get("", response_model=BedListResponse)
async def list_beds(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """All beds with occupancy statistics"""
    beds, stats = await BedService(db).overview()
    return {"beds": beds, "stats": stats}


@router.post("", response_model=BedCreateResponse, status_code=status.HTTP_201_CREATED)
async def add_beds(
    bed_in: BedCreateRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_bed_manager),
):
    beds = await BedService(db).add_beds(bed_in.count, bed_in.ward_type)
    start, end = beds[0].bed_number, beds[-1].bed_number
    return {
        "message": f"Added {len(beds)} new beds (numbers {start}-{end})",
        "start_number": start,
        "end_number": end,
        "beds": beds,
    }


@router.get("/history", response_model=BedHistoryResponse)
async def bed_history(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Most recent allocation episodes, newest first"""
    return {"history": await BedService(db).history()}


@router.post("/allocate", response_model=BedActionResponse)
async def allocate_bed(
    allocation: AllocateRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_bed_manager),
):
    bed = await BedService(db).allocate(allocation.patient_name, allocation.ward_type)
    return {"message": f"Bed {bed.bed_number} allocated to {bed.patient_name}", "bed": bed}


@router.post("/discharge", response_model=BedActionResponse)
async def discharge_patient(
    discharge: DischargeRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_bed_manager),
):
    patient_name = discharge.patient_name.strip()
    bed = await BedService(db).discharge(patient_name)
    return {"message": f"{patient_name} discharged from bed {bed.bed_number}", "bed": bed}


@router.post("/maintenance", response_model=BedActionResponse)
async def start_maintenance(
    request: MaintenanceRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_bed_manager),
):
    bed = await BedService(db).start_maintenance(request.bed_number)
    return {"message": f"Bed {bed.bed_number} is now under maintenance", "bed": bed}


@router.post("/return-from-maintenance", response_model=BedActionResponse)
async def return_from_maintenance(
    request: MaintenanceRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_bed_manager),
):
    bed = await BedService(db).end_maintenance(request.bed_number)
    return {"message": f"Bed {bed.bed_number} returned from maintenance", "bed": bed}


@router.delete("/{bed_number}", response_model=BedRemoveResponse)
async def remove_bed(
    bed_number: int,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_bed_manager),
):
    bed = await BedService(db).remove_bed(bed_number)
    return {"message": f"Bed {bed_number} has been removed from the system", "removed_bed": bed}
