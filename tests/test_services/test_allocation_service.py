"""Tests for the allocation ledger service."""

import asyncio
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from slotmanager.models import ResourceKind
from slotmanager.models.base import utcnow
from slotmanager.schemas import AllocationCreate
from slotmanager.services.allocation_service import AllocationService
from slotmanager.services.errors import (
    AllocationConflict,
    AllocationNotFound,
    CapacityExceeded,
    InvalidCount,
    InvalidResourceReference,
    ResourceNotFound,
)
from slotmanager.services.usage_service import UsageService

REFERENCE = datetime(2026, 10, 17, 10, 0, tzinfo=ZoneInfo("Asia/Shanghai"))


async def phone_usage(session, phone_id, reference=None) -> int:
    return await UsageService().usage_for(
        session, ResourceKind.PHONE, phone_id, reference=reference
    )


class TestCreateAllocation:
    """Tests for AllocationService.create_allocation."""

    @pytest.mark.asyncio
    async def test_create_stores_naive_utc(self, db_session, test_phone):
        phone_id = test_phone.id
        allocation = await AllocationService().create_allocation(
            db_session,
            AllocationCreate(phone_id=phone_id, count=2, used_at=REFERENCE),
        )

        assert allocation.id
        assert allocation.phone_id == phone_id
        assert allocation.ip_id is None
        assert allocation.count == 2
        assert allocation.used_at == datetime(2026, 10, 17, 2, 0)
        assert await phone_usage(db_session, phone_id, REFERENCE) == 2

    @pytest.mark.asyncio
    async def test_used_at_defaults_to_now(self, db_session, test_ip):
        allocation = await AllocationService().create_allocation(
            db_session, AllocationCreate(ip_id=test_ip.id)
        )

        assert utcnow() - allocation.used_at < timedelta(minutes=1)

    @pytest.mark.asyncio
    async def test_fill_to_limit_then_reject(self, db_session, test_phone):
        """Four single allocations fit, the fifth is refused."""
        phone_id = test_phone.id
        service = AllocationService()
        for _ in range(4):
            await service.create_allocation(
                db_session, AllocationCreate(phone_id=phone_id)
            )

        with pytest.raises(CapacityExceeded) as exc_info:
            await service.create_allocation(
                db_session, AllocationCreate(phone_id=phone_id)
            )

        assert str(exc_info.value) == (
            "Allocation blocked. Phone would exceed limit "
            "(Current: 4, Adding: 1, Limit: 4)"
        )
        assert await phone_usage(db_session, phone_id) == 4
        assert await service.count_allocations(db_session) == 4

    @pytest.mark.asyncio
    async def test_oversized_request_leaves_usage_unchanged(
        self, db_session, test_phone, add_allocation
    ):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, count=3)

        with pytest.raises(CapacityExceeded):
            await AllocationService().create_allocation(
                db_session, AllocationCreate(phone_id=phone_id, count=2)
            )

        assert await phone_usage(db_session, phone_id) == 3

    @pytest.mark.asyncio
    async def test_expired_allocations_free_capacity(
        self, db_session, test_phone, add_allocation
    ):
        phone_id = test_phone.id
        for _ in range(4):
            await add_allocation(phone_id=phone_id, days_ago=16)

        allocation = await AllocationService().create_allocation(
            db_session, AllocationCreate(phone_id=phone_id)
        )

        assert allocation.count == 1
        assert await phone_usage(db_session, phone_id) == 1

    @pytest.mark.asyncio
    async def test_rejections(self, db_session, test_phone):
        phone_id = test_phone.id
        service = AllocationService()

        with pytest.raises(InvalidResourceReference):
            await service.create_allocation(db_session, AllocationCreate())
        with pytest.raises(InvalidResourceReference):
            await service.create_allocation(
                db_session, AllocationCreate(phone_id=phone_id, ip_id="x")
            )
        with pytest.raises(InvalidCount):
            await service.create_allocation(
                db_session, AllocationCreate(phone_id=phone_id, count=0)
            )
        with pytest.raises(ResourceNotFound, match="Phone not found"):
            await service.create_allocation(
                db_session, AllocationCreate(phone_id="missing")
            )

        assert await service.count_allocations(db_session) == 0


class TestConcurrency:
    """Concurrent admissions against one resource."""

    @staticmethod
    async def attempt(session_factory, phone_id: str, count: int) -> bool:
        async with session_factory() as session:
            try:
                await AllocationService().create_allocation(
                    session, AllocationCreate(phone_id=phone_id, count=count)
                )
            except (CapacityExceeded, AllocationConflict):
                return False
            return True

    @pytest.mark.asyncio
    async def test_one_slot_left_admits_exactly_one(
        self, session_factory, db_session, test_phone, add_allocation
    ):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, count=3)
        await db_session.close()

        results = await asyncio.gather(
            self.attempt(session_factory, phone_id, 1),
            self.attempt(session_factory, phone_id, 1),
        )

        assert sorted(results) == [False, True]
        async with session_factory() as session:
            assert await phone_usage(session, phone_id) == 4

    @pytest.mark.asyncio
    async def test_two_large_requests_never_exceed_limit(
        self, session_factory, db_session, test_phone, add_allocation
    ):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, count=1)
        await db_session.close()

        results = await asyncio.gather(
            self.attempt(session_factory, phone_id, 3),
            self.attempt(session_factory, phone_id, 3),
        )

        assert results.count(True) == 1
        async with session_factory() as session:
            assert await phone_usage(session, phone_id) == 4

    @pytest.mark.asyncio
    async def test_requests_of_three_at_usage_two(
        self, session_factory, db_session, test_phone, add_allocation
    ):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, count=2)
        await db_session.close()

        await asyncio.gather(
            self.attempt(session_factory, phone_id, 3),
            self.attempt(session_factory, phone_id, 3),
        )

        async with session_factory() as session:
            assert await phone_usage(session, phone_id) <= 4


class TestReadAndDelete:
    """Tests for ledger listing and deletion."""

    @pytest.mark.asyncio
    async def test_delete_frees_capacity(self, db_session, test_phone):
        phone_id = test_phone.id
        service = AllocationService()
        allocation = await service.create_allocation(
            db_session, AllocationCreate(phone_id=phone_id, count=4)
        )
        allocation_id = allocation.id

        await service.delete_allocation(db_session, allocation_id)

        assert await phone_usage(db_session, phone_id) == 0
        with pytest.raises(AllocationNotFound):
            await service.get_allocation(db_session, allocation_id)

    @pytest.mark.asyncio
    async def test_delete_missing(self, db_session):
        with pytest.raises(AllocationNotFound):
            await AllocationService().delete_allocation(db_session, "missing")

    @pytest.mark.asyncio
    async def test_list_includes_expired_unless_active_only(
        self, db_session, test_phone, add_allocation
    ):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, used_at=REFERENCE)
        await add_allocation(phone_id=phone_id, used_at=REFERENCE - timedelta(days=30))

        service = AllocationService()
        everything = await service.list_allocations(db_session, reference=REFERENCE)
        active = await service.list_allocations(
            db_session, active_only=True, reference=REFERENCE
        )

        assert len(everything) == 2
        assert len(active) == 1
        assert await service.count_allocations(
            db_session, active_only=True, reference=REFERENCE
        ) == 1

    @pytest.mark.asyncio
    async def test_list_newest_first(self, db_session, test_phone, add_allocation):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, used_at=REFERENCE - timedelta(days=2))
        await add_allocation(phone_id=phone_id, used_at=REFERENCE)
        await add_allocation(phone_id=phone_id, used_at=REFERENCE - timedelta(days=1))

        allocations = await AllocationService().list_allocations(db_session)
        used = [a.used_at for a in allocations]

        assert used == sorted(used, reverse=True)

    @pytest.mark.asyncio
    async def test_filter_by_kind_and_resource(
        self, db_session, test_phone, test_ip, add_allocation
    ):
        phone_id, ip_id = test_phone.id, test_ip.id
        await add_allocation(phone_id=phone_id)
        await add_allocation(ip_id=ip_id)
        await add_allocation(ip_id=ip_id)

        service = AllocationService()
        assert len(await service.list_allocations(db_session, kind=ResourceKind.IP)) == 2
        phone_rows = await service.list_for_resource(
            db_session, ResourceKind.PHONE, phone_id
        )
        assert [a.phone_id for a in phone_rows] == [phone_id]

    @pytest.mark.asyncio
    async def test_pagination(self, db_session, test_phone, add_allocation):
        for days in range(5):
            await add_allocation(phone_id=test_phone.id, days_ago=days)

        page = await AllocationService().list_allocations(db_session, offset=2, limit=2)
        assert len(page) == 2
