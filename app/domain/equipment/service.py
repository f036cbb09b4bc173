from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import secrets

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.equipment.models import Equipment
from app.domain.equipment.repository import EquipmentRepository
from app.domain.reporting.stats import compute_equipment_stats
from app.infrastructure.database import utcnow

logger = logging.getLogger(__name__)


class EquipmentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = EquipmentRepository(db)

    def _generate_serial_number(self) -> str:
        # Format: EQ-YYYYMMDD-6 hex chars
        return f"EQ-{utcnow():%Y%m%d}-{secrets.token_hex(3).upper()}"

    async def _unused_serial_number(self) -> str:
        serial = self._generate_serial_number()
        while await self.repo.get_by_serial(serial):
            serial = self._generate_serial_number()
        return serial

    async def _get(self, equipment_id: str) -> Equipment:
        equipment = await self.repo.get(equipment_id)
        if not equipment:
            raise NotFoundError("Equipment not found")
        return equipment

    async def overview(self) -> Tuple[List[Equipment], Dict[str, Any]]:
        equipment = await self.repo.list_all()
        return equipment, compute_equipment_stats(equipment)

    async def add_equipment(self, name: str, equipment_type: str, serial_number: Optional[str] = None) -> Equipment:
        name = (name or "").strip()
        equipment_type = (equipment_type or "").strip()
        if not name or not equipment_type:
            raise ValidationError("Please provide equipment name and type")

        serial_number = (serial_number or "").strip()
        if serial_number:
            if await self.repo.get_by_serial(serial_number):
                raise ConflictError(f"Equipment with serial number {serial_number} already exists")
        else:
            serial_number = await self._unused_serial_number()

        try:
            equipment = await self.repo.create({
                "name": name,
                "type": equipment_type,
                "serial_number": serial_number,
                "is_in_use": False,
            })
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Duplicate equipment serial number. Please use a unique serial number.")

        logger.info(f"Added equipment {equipment.name} ({equipment.serial_number})")
        return equipment

    async def assign(self, equipment_id: str, patient_name: str) -> Equipment:
        patient_name = (patient_name or "").strip()
        if not equipment_id or not patient_name:
            raise ValidationError("Please provide equipment ID and patient name")

        equipment = await self._get(equipment_id)
        if equipment.is_in_use or not await self.repo.claim_for_patient(equipment.id, patient_name, utcnow()):
            await self.db.rollback()
            raise ConflictError("Equipment already in use")

        await self.db.commit()
        logger.info(f"{equipment.name} assigned to {patient_name}")
        return await self.repo.get(equipment.id)

    async def return_equipment(self, equipment_id: str) -> Tuple[Equipment, str]:
        """Release equipment; returns it with the patient it was returned from"""
        if not equipment_id:
            raise ValidationError("Please provide equipment ID")

        equipment = await self._get(equipment_id)
        patient_name = equipment.patient_name
        if not equipment.is_in_use or not await self.repo.release(equipment.id):
            await self.db.rollback()
            raise ConflictError("Equipment is not currently in use")

        await self.db.commit()
        logger.info(f"{equipment.name} returned from {patient_name}")
        return await self.repo.get(equipment.id), patient_name

    async def by_patient(self, patient_name: str) -> List[Equipment]:
        patient_name = (patient_name or "").strip()
        if not patient_name:
            raise ValidationError("Please provide a patient name")
        return await self.repo.list_by_patient(patient_name)
