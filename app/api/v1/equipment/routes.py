from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_principal, require_equipment_staff
from app.api.v1.equipment.schemas import (
    EquipmentActionResponse,
    EquipmentAssign,
    EquipmentCreate,
    EquipmentListResponse,
    EquipmentReturn,
    PatientEquipmentResponse,
)
from app.core.permissions import Principal
from app.domain.equipment.service import EquipmentService
from app.infrastructure.database import get_db

router = APIRouter(prefix="/equipment", tags=["Equipment"])


@router.get("", response_model=EquipmentListResponse)
async def list_equipment(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    equipment, stats = await EquipmentService(db).overview()
    return {"equipment": equipment, "stats": stats}


@router.post("", response_model=EquipmentActionResponse, status_code=status.HTTP_201_CREATED)
async def add_equipment(
    equipment_in: EquipmentCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_equipment_staff),
):
    equipment = await EquipmentService(db).add_equipment(
        equipment_in.name, equipment_in.type, equipment_in.serial_number
    )
    return {"message": "New equipment added successfully", "equipment": equipment}


@router.post("/assign", response_model=EquipmentActionResponse)
async def assign_equipment(
    assignment: EquipmentAssign,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_equipment_staff),
):
    equipment = await EquipmentService(db).assign(assignment.equipment_id, assignment.patient_name)
    return {
        "message": f"{equipment.name} assigned to {equipment.patient_name}",
        "equipment": equipment,
    }


@router.post("/return", response_model=EquipmentActionResponse)
async def return_equipment(
    equipment_return: EquipmentReturn,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_equipment_staff),
):
    equipment, patient_name = await EquipmentService(db).return_equipment(equipment_return.equipment_id)
    return {"message": f"{equipment.name} returned from {patient_name}", "equipment": equipment}


@router.get("/by-patient/{patient_name}", response_model=PatientEquipmentResponse)
async def equipment_by_patient(
    patient_name: str,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    equipment = await EquipmentService(db).by_patient(patient_name)
    return {"count": len(equipment), "equipment": equipment}
