"""Tests for usage aggregation."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import text

from slotmanager.models import ResourceKind
from slotmanager.services.usage_service import UsageService, summarize

REFERENCE = datetime(2026, 10, 17, 10, 0, tzinfo=ZoneInfo("Asia/Shanghai"))


class TestUsageFor:
    """Tests for UsageService.usage_for."""

    @pytest.mark.asyncio
    async def test_no_allocations_is_zero(self, db_session, test_phone):
        usage = await UsageService().usage_for(
            db_session, ResourceKind.PHONE, test_phone.id, reference=REFERENCE
        )
        assert usage == 0

    @pytest.mark.asyncio
    async def test_sums_counts_inside_window(self, db_session, test_phone, add_allocation):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, count=2, used_at=REFERENCE)
        await add_allocation(
            phone_id=phone_id, count=1, used_at=REFERENCE - timedelta(days=14)
        )

        usage = await UsageService().usage_for(
            db_session, ResourceKind.PHONE, phone_id, reference=REFERENCE
        )
        assert usage == 3

    @pytest.mark.asyncio
    async def test_ignores_rows_outside_window(
        self, db_session, test_phone, add_allocation
    ):
        phone_id = test_phone.id
        await add_allocation(
            phone_id=phone_id, count=4, used_at=REFERENCE - timedelta(days=16)
        )
        await add_allocation(
            phone_id=phone_id, count=4, used_at=REFERENCE + timedelta(days=1)
        )

        usage = await UsageService().usage_for(
            db_session, ResourceKind.PHONE, phone_id, reference=REFERENCE
        )
        assert usage == 0

    @pytest.mark.asyncio
    async def test_scoped_to_one_resource(
        self, db_session, test_phone, test_ip, add_allocation
    ):
        phone_id, ip_id = test_phone.id, test_ip.id
        await add_allocation(phone_id=phone_id, count=3, used_at=REFERENCE)
        await add_allocation(ip_id=ip_id, count=1, used_at=REFERENCE)

        service = UsageService()
        assert await service.usage_for(
            db_session, ResourceKind.PHONE, phone_id, reference=REFERENCE
        ) == 3
        assert await service.usage_for(
            db_session, ResourceKind.IP, ip_id, reference=REFERENCE
        ) == 1

    @pytest.mark.asyncio
    async def test_idempotent(self, db_session, test_phone, add_allocation):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, count=2, used_at=REFERENCE)

        service = UsageService()
        first = await service.usage_for(
            db_session, ResourceKind.PHONE, phone_id, reference=REFERENCE
        )
        second = await service.usage_for(
            db_session, ResourceKind.PHONE, phone_id, reference=REFERENCE
        )
        assert first == second == 2

    @pytest.mark.asyncio
    async def test_defaults_to_now(self, db_session, test_phone, add_allocation):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, count=2)

        usage = await UsageService().usage_for(db_session, ResourceKind.PHONE, phone_id)
        assert usage == 2

    @pytest.mark.asyncio
    async def test_missing_count_counts_as_one(self, db_session, test_phone):
        """Rows inserted without a count use the column default of 1."""
        phone_id = test_phone.id
        await db_session.execute(
            text(
                "INSERT INTO allocations (id, phone_id, used_at, created_at) "
                "VALUES ('legacy-1', :phone_id, :used_at, :used_at)"
            ),
            {"phone_id": phone_id, "used_at": "2026-10-17 02:00:00.000000"},
        )
        await db_session.commit()

        usage = await UsageService().usage_for(
            db_session, ResourceKind.PHONE, phone_id, reference=REFERENCE
        )
        assert usage == 1


class TestUsageByResource:
    """Tests for the grouped usage query."""

    @pytest.mark.asyncio
    async def test_groups_by_resource(self, db_session, test_phone, add_allocation):
        phone_id = test_phone.id
        await add_allocation(phone_id=phone_id, count=1, used_at=REFERENCE)
        await add_allocation(phone_id=phone_id, count=2, used_at=REFERENCE)
        await add_allocation(
            phone_id=phone_id, count=4, used_at=REFERENCE - timedelta(days=20)
        )

        usage = await UsageService().usage_by_resource(
            db_session, ResourceKind.PHONE, reference=REFERENCE
        )
        assert usage == {phone_id: 3}

    @pytest.mark.asyncio
    async def test_other_kind_is_not_included(self, db_session, test_ip, add_allocation):
        await add_allocation(ip_id=test_ip.id, count=1, used_at=REFERENCE)

        usage = await UsageService().usage_by_resource(
            db_session, ResourceKind.PHONE, reference=REFERENCE
        )
        assert usage == {}


class TestSummarize:
    """Tests for usage summary figures."""

    def test_partial_usage(self):
        summary = summarize(1, limit=4)
        assert summary.remaining == 3
        assert summary.percentage == 25.0
        assert summary.at_capacity is False

    def test_at_capacity(self):
        summary = summarize(4, limit=4)
        assert summary.remaining == 0
        assert summary.percentage == 100.0
        assert summary.at_capacity is True

    def test_over_capacity_is_clamped(self):
        summary = summarize(6, limit=4)
        assert summary.remaining == 0
        assert summary.percentage == 100.0

    def test_default_limit_from_settings(self):
        assert summarize(0).limit == 4
