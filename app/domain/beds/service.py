from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.beds.models import Bed, BedHistory, WardType
from app.domain.beds.repository import BedRepository, BedHistoryRepository
from app.domain.reporting.stats import compute_bed_stats
from app.infrastructure.database import utcnow

logger = logging.getLogger(__name__)


def _clean_patient_name(patient_name: Optional[str]) -> str:
    name = (patient_name or "").strip()
    if not name:
        raise ValidationError("Please provide a patient name")
    return name


class BedService:
    """Bed lifecycle: available <-> occupied, available <-> maintenance.

    Allocation and discharge also write the history ledger in the same
    transaction as the bed change.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = BedRepository(db)
        self.history_repo = BedHistoryRepository(db)

    async def list_beds(self) -> List[Bed]:
        return await self.repo.list_all()

    async def overview(self) -> Tuple[List[Bed], Dict[str, Any]]:
        beds = await self.repo.list_all()
        return beds, compute_bed_stats(beds)

    async def _get_bed(self, bed_number: int) -> Bed:
        bed = await self.repo.get_by_number(bed_number)
        if not bed:
            raise NotFoundError(f"Bed {bed_number} not found")
        return bed

    async def add_beds(self, count: int, ward_type: WardType = WardType.GENERAL) -> List[Bed]:
        """Create ``count`` beds numbered after the current highest bed number"""
        if count < 1:
            raise ValidationError("Bed count must be a positive number")
        if count > settings.MAX_BEDS_PER_REQUEST:
            raise ValidationError(
                f"Cannot add more than {settings.MAX_BEDS_PER_REQUEST} beds at once"
            )

        start = await self.repo.max_bed_number() + 1
        try:
            beds = await self.repo.create_range(start, count, ward_type)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Bed numbers changed while adding beds, please retry")

        logger.info(f"Added {count} {ward_type.value} beds numbered {start}-{start + count - 1}")
        return beds

    async def remove_bed(self, bed_number: int) -> Bed:
        bed = await self._get_bed(bed_number)

        if bed.is_occupied:
            raise ConflictError("Cannot remove an occupied bed. Please discharge the patient first.")
        if bed.is_under_maintenance:
            raise ConflictError(
                "Cannot remove a bed under maintenance. Please return it from maintenance first."
            )

        if not await self.repo.delete_if_free(bed):
            await self.db.rollback()
            raise ConflictError(f"Bed {bed_number} was allocated or put under maintenance, it was not removed")

        await self.db.commit()
        logger.info(f"Removed bed {bed_number}")
        return bed

    async def allocate(self, patient_name: str, ward_type: Optional[WardType] = None) -> Bed:
        name = _clean_patient_name(patient_name)

        current = await self.repo.find_occupied_by_patient(name)
        if current:
            raise ConflictError(f"{name} is already allocated to bed {current.bed_number}")

        now = utcnow()
        for candidate in await self.repo.list_available(ward_type):
            try:
                claimed = await self.repo.claim_for_patient(candidate.id, name, now)
            except IntegrityError:
                # A concurrent request placed the same patient in another bed
                await self.db.rollback()
                raise ConflictError(f"{name} is already allocated to a bed")
            if not claimed:
                # Taken by a concurrent request since we listed it
                logger.info(f"Bed {candidate.bed_number} was claimed concurrently, trying next")
                continue

            self.history_repo.open_episode(candidate.bed_number, name, now, candidate.ward_type)
            await self.db.commit()

            bed = await self.repo.get_by_id(candidate.id)
            logger.info(f"Allocated bed {bed.bed_number} to {name}")
            return bed

        await self.db.rollback()
        if ward_type:
            raise ConflictError(f"No {ward_type.value} beds available")
        raise ConflictError("No beds available")

    async def discharge(self, patient_name: str) -> Bed:
        name = _clean_patient_name(patient_name)

        bed = await self.repo.find_occupied_by_patient(name)
        if not bed or not await self.repo.release_patient(bed.id, name):
            await self.db.rollback()
            raise NotFoundError(f"No occupied bed found for patient {name}")

        episode = await self.history_repo.find_open_episode(bed.bed_number, name)
        if episode:
            self.history_repo.close_episode(episode, utcnow())
        else:
            logger.warning(f"No active history record for {name} on bed {bed.bed_number}")

        await self.db.commit()
        bed = await self.repo.get_by_id(bed.id)
        logger.info(f"Discharged {name} from bed {bed.bed_number}")
        return bed

    async def start_maintenance(self, bed_number: int) -> Bed:
        bed = await self._get_bed(bed_number)

        if bed.is_occupied:
            raise ConflictError("Cannot put an occupied bed under maintenance")
        if bed.is_under_maintenance:
            raise ConflictError(f"Bed {bed_number} is already under maintenance")

        if not await self.repo.claim_for_maintenance(bed.id, utcnow()):
            await self.db.rollback()
            raise ConflictError(f"Bed {bed_number} is no longer available")

        await self.db.commit()
        logger.info(f"Bed {bed_number} moved to maintenance")
        return await self.repo.get_by_id(bed.id)

    async def end_maintenance(self, bed_number: int) -> Bed:
        bed = await self._get_bed(bed_number)

        if not bed.is_under_maintenance or not await self.repo.release_from_maintenance(bed.id):
            await self.db.rollback()
            raise ConflictError(f"Bed {bed_number} is not under maintenance")

        await self.db.commit()
        logger.info(f"Bed {bed_number} returned from maintenance")
        return await self.repo.get_by_id(bed.id)

    async def history(self, limit: Optional[int] = None) -> List[BedHistory]:
        return await self.history_repo.list_recent(limit or settings.HISTORY_LIMIT)
