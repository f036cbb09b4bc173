import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.domain.beds.models import Bed, BedHistory, WardType
from app.domain.beds.repository import BedRepository
from app.domain.beds.service import BedService
from app.infrastructure.database import utcnow


@pytest.fixture
async def bed_service(db_session: AsyncSession) -> BedService:
    """Bed service fixture"""
    return BedService(db_session)


async def all_beds(db_session: AsyncSession):
    result = await db_session.execute(
        select(Bed).order_by(Bed.bed_number).execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def all_history(db_session: AsyncSession):
    result = await db_session.execute(
        select(BedHistory).execution_options(populate_existing=True)
    )
    return result.scalars().all()


@pytest.mark.beds
@pytest.mark.asyncio
class TestAddAndRemoveBeds:
    async def test_first_beds_start_at_one(self, bed_service: BedService):
        beds = await bed_service.add_beds(3)
        assert [b.bed_number for b in beds] == [1, 2, 3]
        assert all(b.ward_type == WardType.GENERAL for b in beds)

    async def test_numbering_continues_after_highest(self, bed_service: BedService, db_session: AsyncSession):
        db_session.add(Bed(bed_number=7))
        await db_session.commit()

        beds = await bed_service.add_beds(5, WardType.ICU)

        assert [b.bed_number for b in beds] == [8, 9, 10, 11, 12]
        assert all(b.ward_type == WardType.ICU for b in beds)

    async def test_numbers_of_removed_beds_below_max_are_not_reissued(self, bed_service: BedService):
        await bed_service.add_beds(3)
        await bed_service.remove_bed(2)

        beds = await bed_service.add_beds(1)
        assert beds[0].bed_number == 4

    @pytest.mark.parametrize("count", [0, -3])
    async def test_count_must_be_positive(self, bed_service: BedService, count: int):
        with pytest.raises(ValidationError):
            await bed_service.add_beds(count)

    async def test_count_is_capped(self, bed_service: BedService):
        with pytest.raises(ValidationError):
            await bed_service.add_beds(10_000)

    async def test_remove_available_bed(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(2)

        removed = await bed_service.remove_bed(1)

        assert removed.bed_number == 1
        assert [b.bed_number for b in await all_beds(db_session)] == [2]

    async def test_remove_unknown_bed(self, bed_service: BedService):
        with pytest.raises(NotFoundError):
            await bed_service.remove_bed(99)

    async def test_remove_occupied_bed_is_rejected(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(1)
        await bed_service.allocate("Alice")

        with pytest.raises(ConflictError):
            await bed_service.remove_bed(1)

        (bed,) = await all_beds(db_session)
        assert bed.is_occupied is True
        assert bed.patient_name == "Alice"

    async def test_remove_bed_under_maintenance_is_rejected(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(1)
        await bed_service.start_maintenance(1)

        with pytest.raises(ConflictError):
            await bed_service.remove_bed(1)

        (bed,) = await all_beds(db_session)
        assert bed.is_under_maintenance is True

    async def test_history_survives_bed_removal(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(1)
        await bed_service.allocate("Alice")
        await bed_service.discharge("Alice")

        await bed_service.remove_bed(1)

        (record,) = await all_history(db_session)
        assert record.bed_number == 1
        assert record.patient_name == "Alice"


@pytest.mark.beds
@pytest.mark.asyncio
class TestAllocateAndDischarge:
    async def test_allocate_sets_patient_and_opens_history(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(2)

        bed = await bed_service.allocate("Alice")

        assert bed.bed_number == 1
        assert bed.is_occupied is True
        assert bed.patient_name == "Alice"
        assert bed.allocated_at is not None
        (record,) = await all_history(db_session)
        assert record.is_active is True
        assert record.bed_number == 1
        assert record.discharged_at is None

    async def test_allocate_picks_lowest_available_bed(self, bed_service: BedService):
        await bed_service.add_beds(3)
        await bed_service.start_maintenance(1)

        bed = await bed_service.allocate("Alice")
        assert bed.bed_number == 2

    async def test_allocate_honours_ward_type(self, bed_service: BedService):
        await bed_service.add_beds(2, WardType.GENERAL)
        await bed_service.add_beds(1, WardType.ICU)

        bed = await bed_service.allocate("Bob", WardType.ICU)

        assert bed.bed_number == 3
        assert bed.ward_type == WardType.ICU

    async def test_no_beds_available(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(1)
        await bed_service.allocate("Alice")

        with pytest.raises(ConflictError, match="No beds available"):
            await bed_service.allocate("Bob")

        beds = await all_beds(db_session)
        assert [b.patient_name for b in beds] == ["Alice"]
        assert len(await all_history(db_session)) == 1

    async def test_empty_pool(self, bed_service: BedService, db_session: AsyncSession):
        with pytest.raises(ConflictError, match="No beds available"):
            await bed_service.allocate("Alice")
        assert await all_history(db_session) == []

    async def test_no_beds_of_requested_ward(self, bed_service: BedService):
        await bed_service.add_beds(2, WardType.GENERAL)

        with pytest.raises(ConflictError, match="No icu beds available"):
            await bed_service.allocate("Bob", WardType.ICU)

    async def test_blank_patient_name(self, bed_service: BedService):
        await bed_service.add_beds(1)
        with pytest.raises(ValidationError):
            await bed_service.allocate("   ")

    async def test_patient_cannot_hold_two_beds(self, bed_service: BedService):
        await bed_service.add_beds(2)
        await bed_service.allocate("Alice")

        with pytest.raises(ConflictError, match="already allocated"):
            await bed_service.allocate("Alice")

    async def test_allocate_then_discharge_closes_episode(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(1)
        await bed_service.allocate("Alice")

        bed = await bed_service.discharge("Alice")

        assert bed.is_occupied is False
        assert bed.patient_name is None
        assert bed.allocated_at is None
        (record,) = await all_history(db_session)
        assert record.is_active is False
        assert record.discharged_at is not None

    async def test_discharge_unknown_patient(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(1)
        await bed_service.allocate("Alice")

        with pytest.raises(NotFoundError):
            await bed_service.discharge("Bob")

        (record,) = await all_history(db_session)
        assert record.is_active is True
        assert record.discharged_at is None

    async def test_discharge_without_history_record_still_frees_bed(self, bed_service: BedService, db_session: AsyncSession):
        db_session.add(Bed(bed_number=1, is_occupied=True, patient_name="Legacy", allocated_at=utcnow()))
        await db_session.commit()

        bed = await bed_service.discharge("Legacy")

        assert bed.is_occupied is False
        assert await all_history(db_session) == []

    async def test_readmission_opens_new_episode(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(1)
        await bed_service.allocate("Alice")
        await bed_service.discharge("Alice")
        await bed_service.allocate("Alice")

        records = await all_history(db_session)
        assert len(records) == 2
        assert sum(1 for r in records if r.is_active) == 1

    async def test_history_is_newest_first_and_limited(self, bed_service: BedService):
        await bed_service.add_beds(3)
        for name in ["Alice", "Bob", "Carol"]:
            await bed_service.allocate(name)

        history = await bed_service.history(limit=2)

        assert [r.patient_name for r in history] == ["Carol", "Bob"]


@pytest.mark.beds
@pytest.mark.asyncio
class TestMaintenance:
    async def test_start_and_end_maintenance(self, bed_service: BedService):
        await bed_service.add_beds(1)

        bed = await bed_service.start_maintenance(1)
        assert bed.is_under_maintenance is True
        assert bed.maintenance_start_time is not None

        bed = await bed_service.end_maintenance(1)
        assert bed.is_under_maintenance is False
        assert bed.maintenance_start_time is None

    async def test_occupied_bed_cannot_enter_maintenance(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(1)
        await bed_service.allocate("Alice")

        with pytest.raises(ConflictError):
            await bed_service.start_maintenance(1)

        (bed,) = await all_beds(db_session)
        assert bed.is_occupied and not bed.is_under_maintenance

    async def test_maintenance_twice(self, bed_service: BedService):
        await bed_service.add_beds(1)
        await bed_service.start_maintenance(1)

        with pytest.raises(ConflictError):
            await bed_service.start_maintenance(1)

    async def test_end_maintenance_when_not_in_maintenance(self, bed_service: BedService):
        await bed_service.add_beds(1)
        with pytest.raises(ConflictError):
            await bed_service.end_maintenance(1)

    async def test_unknown_bed(self, bed_service: BedService):
        with pytest.raises(NotFoundError):
            await bed_service.start_maintenance(42)
        with pytest.raises(NotFoundError):
            await bed_service.end_maintenance(42)

    async def test_bed_under_maintenance_is_never_allocated(self, bed_service: BedService, db_session: AsyncSession):
        await bed_service.add_beds(1)
        await bed_service.start_maintenance(1)

        with pytest.raises(ConflictError):
            await bed_service.allocate("Alice")

        for bed in await all_beds(db_session):
            assert not (bed.is_occupied and bed.is_under_maintenance)


@pytest.mark.beds
@pytest.mark.asyncio
class TestConditionalUpdates:
    async def test_second_claim_on_same_bed_fails(self, bed_service: BedService, db_session: AsyncSession):
        (bed,) = await bed_service.add_beds(1)
        repo = BedRepository(db_session)

        assert await repo.claim_for_patient(bed.id, "Alice", utcnow()) is True
        assert await repo.claim_for_patient(bed.id, "Bob", utcnow()) is False
        assert await repo.claim_for_maintenance(bed.id, utcnow()) is False
        await db_session.commit()

        (stored,) = await all_beds(db_session)
        assert stored.patient_name == "Alice"

    async def test_release_requires_matching_patient(self, bed_service: BedService, db_session: AsyncSession):
        (bed,) = await bed_service.add_beds(1)
        await bed_service.allocate("Alice")
        repo = BedRepository(db_session)

        assert await repo.release_patient(bed.id, "Bob") is False
        assert await repo.release_patient(bed.id, "Alice") is True

    async def test_bed_allocated_during_removal_is_kept(
        self, bed_service: BedService, db_session: AsyncSession, session_factory, monkeypatch
    ):
        await bed_service.add_beds(1)
        lookup = bed_service.repo.get_by_number

        async def lookup_then_allocate(bed_number: int):
            bed = await lookup(bed_number)
            # Another request allocates the bed after removal has read it
            async with session_factory() as other:
                await BedService(other).allocate("Alice")
            return bed

        monkeypatch.setattr(bed_service.repo, "get_by_number", lookup_then_allocate)

        with pytest.raises(ConflictError):
            await bed_service.remove_bed(1)

        (bed,) = await all_beds(db_session)
        assert bed.is_occupied is True
        assert bed.patient_name == "Alice"
        (record,) = await all_history(db_session)
        assert record.is_active is True

    async def test_same_patient_cannot_be_claimed_into_second_bed(
        self, bed_service: BedService, db_session: AsyncSession, monkeypatch
    ):
        await bed_service.add_beds(2)
        await bed_service.allocate("Alice")

        async def not_allocated(patient_name: str):
            return None

        # As if a concurrent request passed the duplicate check first
        monkeypatch.setattr(bed_service.repo, "find_occupied_by_patient", not_allocated)

        with pytest.raises(ConflictError, match="already allocated"):
            await bed_service.allocate("Alice")

        beds = await all_beds(db_session)
        assert [b.patient_name for b in beds] == ["Alice", None]
        assert len(await all_history(db_session)) == 1
