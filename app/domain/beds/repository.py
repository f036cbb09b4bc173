from typing import Optional, List
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select, update, func
from app.domain.beds.models import Bed, BedHistory, WardType


class BedRepository:
    """Data access for beds.

    The ``claim_*``/``release_*`` methods and ``delete_if_free`` are conditional
    single-row statements: they only touch the row if it is still in the
    expected state and return whether they did. They do not commit, so a
    transition and its history entry land in the same transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_all(self) -> List[Bed]:
        result = await self.db.execute(select(Bed).order_by(Bed.bed_number))
        return list(result.scalars().all())

    async def get_by_id(self, bed_id: str) -> Optional[Bed]:
        result = await self.db.execute(
            select(Bed)
            .where(Bed.id == bed_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_number(self, bed_number: int) -> Optional[Bed]:
        result = await self.db.execute(select(Bed).where(Bed.bed_number == bed_number))
        return result.scalar_one_or_none()

    async def max_bed_number(self) -> int:
        result = await self.db.execute(select(func.max(Bed.bed_number)))
        return result.scalar() or 0

    async def create_range(self, start: int, count: int, ward_type: WardType) -> List[Bed]:
        beds = [
            Bed(bed_number=number, ward_type=ward_type, is_occupied=False, is_under_maintenance=False)
            for number in range(start, start + count)
        ]
        self.db.add_all(beds)
        await self.db.commit()
        return beds

    async def list_available(self, ward_type: Optional[WardType] = None) -> List[Bed]:
        query = select(Bed).where(
            Bed.is_occupied.is_(False),
            Bed.is_under_maintenance.is_(False),
        )
        if ward_type:
            query = query.where(Bed.ward_type == ward_type)
        result = await self.db.execute(query.order_by(Bed.bed_number))
        return list(result.scalars().all())

    async def find_occupied_by_patient(self, patient_name: str) -> Optional[Bed]:
        result = await self.db.execute(
            select(Bed)
            .where(Bed.is_occupied.is_(True), Bed.patient_name == patient_name)
            .order_by(Bed.bed_number)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _conditional_update(self, bed_id: str, conditions: list, values: dict) -> bool:
        result = await self.db.execute(
            update(Bed)
            .where(Bed.id == bed_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def claim_for_patient(self, bed_id: str, patient_name: str, allocated_at: datetime) -> bool:
        return await self._conditional_update(
            bed_id,
            [Bed.is_occupied.is_(False), Bed.is_under_maintenance.is_(False)],
            {"is_occupied": True, "patient_name": patient_name, "allocated_at": allocated_at},
        )

    async def release_patient(self, bed_id: str, patient_name: str) -> bool:
        return await self._conditional_update(
            bed_id,
            [Bed.is_occupied.is_(True), Bed.patient_name == patient_name],
            {"is_occupied": False, "patient_name": None, "allocated_at": None},
        )

    async def claim_for_maintenance(self, bed_id: str, started_at: datetime) -> bool:
        return await self._conditional_update(
            bed_id,
            [Bed.is_occupied.is_(False), Bed.is_under_maintenance.is_(False)],
            {"is_under_maintenance": True, "maintenance_start_time": started_at},
        )

    async def release_from_maintenance(self, bed_id: str) -> bool:
        return await self._conditional_update(
            bed_id,
            [Bed.is_under_maintenance.is_(True)],
            {"is_under_maintenance": False, "maintenance_start_time": None},
        )

    async def delete_if_free(self, bed: Bed) -> bool:
        """Delete the bed only if it is still neither occupied nor under maintenance"""
        result = await self.db.execute(
            delete(Bed)
            .where(
                Bed.id == bed.id,
                Bed.is_occupied.is_(False),
                Bed.is_under_maintenance.is_(False),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        self.db.expunge(bed)
        return True


class BedHistoryRepository:
    """Append/close access to the bed allocation ledger. Records are never deleted."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def open_episode(
        self,
        bed_number: int,
        patient_name: str,
        allocated_at: datetime,
        ward_type: WardType,
    ) -> BedHistory:
        record = BedHistory(
            bed_number=bed_number,
            patient_name=patient_name,
            allocated_at=allocated_at,
            ward_type=ward_type,
            is_active=True,
        )
        self.db.add(record)
        return record

    async def find_open_episode(self, bed_number: int, patient_name: str) -> Optional[BedHistory]:
        result = await self.db.execute(
            select(BedHistory)
            .where(
                BedHistory.bed_number == bed_number,
                BedHistory.patient_name == patient_name,
                BedHistory.is_active.is_(True),
            )
            .order_by(BedHistory.allocated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def close_episode(self, record: BedHistory, discharged_at: datetime) -> BedHistory:
        record.is_active = False
        record.discharged_at = discharged_at
        self.db.add(record)
        return record

    async def list_recent(self, limit: int = 100) -> List[BedHistory]:
        result = await self.db.execute(
            select(BedHistory)
            .order_by(BedHistory.allocated_at.desc(), BedHistory.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
