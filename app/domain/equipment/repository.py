from typing import Optional, List
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from app.domain.equipment.models import Equipment


class EquipmentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: dict) -> Equipment:
        equipment = Equipment(**data)
        self.db.add(equipment)
        await self.db.commit()
        await self.db.refresh(equipment)
        return equipment

    async def get(self, equipment_id: str) -> Optional[Equipment]:
        result = await self.db.execute(
            select(Equipment)
            .where(Equipment.id == equipment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_serial(self, serial_number: str) -> Optional[Equipment]:
        result = await self.db.execute(
            select(Equipment).where(Equipment.serial_number == serial_number)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[Equipment]:
        result = await self.db.execute(select(Equipment).order_by(Equipment.created_at))
        return list(result.scalars().all())

    async def list_by_patient(self, patient_name: str) -> List[Equipment]:
        result = await self.db.execute(
            select(Equipment)
            .where(Equipment.patient_name == patient_name)
            .order_by(Equipment.assigned_at)
        )
        return list(result.scalars().all())

    async def claim_for_patient(self, equipment_id: str, patient_name: str, assigned_at: datetime) -> bool:
        """Mark in use only if it is still free; does not commit"""
        result = await self.db.execute(
            update(Equipment)
            .where(Equipment.id == equipment_id, Equipment.is_in_use.is_(False))
            .values(is_in_use=True, patient_name=patient_name, assigned_at=assigned_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release(self, equipment_id: str) -> bool:
        """Mark available only if it is currently in use; does not commit"""
        result = await self.db.execute(
            update(Equipment)
            .where(Equipment.id == equipment_id, Equipment.is_in_use.is_(True))
            .values(is_in_use=False, patient_name=None, assigned_at=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
