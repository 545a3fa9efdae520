"""Tests for table efficiency and turnover analysis."""
from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import FakeClock
from tablequeue.models.table_type import TableType
from tablequeue.models.waitlist import WaitlistEntry
from tablequeue.services.errors import NotFoundError
from tablequeue.services.table_metrics import (
    TableMetricsService,
    analyze_turnover,
    efficiency_advice,
    summarize_table_type,
    turnover_confidence,
    turnover_gaps,
)


OPENING = datetime(2026, 3, 14, 11, 0)


def table_type(capacity: int = 4, turnover: int = 60, count: int = 2) -> TableType:
    return TableType(
        id=uuid4(),
        restaurant_id=uuid4(),
        name=f"{capacity}-top",
        capacity=capacity,
        count=count,
        estimated_turnover_time=turnover,
        is_active=True,
    )


def seated(table: TableType, seated_at: datetime, party_size: int = 2) -> WaitlistEntry:
    return WaitlistEntry(
        id=uuid4(),
        restaurant_id=table.restaurant_id,
        customer_name="Seated",
        party_size=party_size,
        status="seated",
        queue_position=1,
        table_type_id=table.id,
        seated_at=seated_at,
    )


def every(table: TableType, minutes: float, n: int) -> list[WaitlistEntry]:
    return [seated(table, OPENING + timedelta(minutes=minutes * i)) for i in range(n)]


class TestTurnoverGaps:
    """Tests for extracting gaps between seatings."""

    def test_gaps_are_sorted_before_differencing(self):
        times = [OPENING + timedelta(minutes=m) for m in (90, 0, 45)]

        assert turnover_gaps(times) == [45.0, 45.0]

    def test_window_is_exclusive(self):
        times = [OPENING + timedelta(minutes=m) for m in (0, 10, 20.5, 320.5)]

        # 10 min is too short, 300 min is a break in service
        assert turnover_gaps(times) == [10.5]

    def test_single_seating_has_no_gaps(self):
        assert turnover_gaps([OPENING]) == []


class TestAnalyzeTurnover:
    """Tests for turnover recommendations."""

    @pytest.mark.parametrize(
        "samples,expected",
        [(0, "low"), (14, "low"), (15, "medium"), (49, "medium"), (50, "high")],
    )
    def test_confidence(self, samples, expected):
        assert turnover_confidence(samples) == expected

    def test_faster_than_configured(self):
        four_top = table_type(turnover=60)

        analysis = analyze_turnover(four_top, every(four_top, 45, 16))

        assert analysis.observed_minutes == 45
        assert analysis.sample_size == 15
        assert analysis.confidence == "medium"
        assert analysis.recommendation.suggested_time == 45
        assert analysis.recommendation.percent_difference == -25

    def test_low_confidence_gives_no_recommendation(self):
        four_top = table_type(turnover=60)

        analysis = analyze_turnover(four_top, every(four_top, 45, 6))

        assert analysis.observed_minutes == 45
        assert analysis.confidence == "low"
        assert analysis.recommendation is None

    def test_close_to_configured_gives_no_recommendation(self):
        four_top = table_type(turnover=60)

        analysis = analyze_turnover(four_top, every(four_top, 66, 20))

        assert analysis.recommendation is None

    def test_other_table_types_are_ignored(self):
        four_top = table_type()
        booth = table_type(capacity=6)

        assert analyze_turnover(four_top, every(booth, 45, 20)) is None

    def test_no_usable_gaps(self):
        four_top = table_type()

        assert analyze_turnover(four_top, every(four_top, 5, 10)) is None


class TestEfficiencyAdvice:
    """Tests for the human-readable advice line."""

    def test_no_data(self):
        assert efficiency_advice(4, 0, 0.0, 0.0) == "Not enough data to make a recommendation"

    def test_low_utilization(self):
        assert efficiency_advice(6, 10, 50.0, 3.0) == "Consider using smaller tables or combining parties"

    def test_high_wastage(self):
        assert efficiency_advice(10, 10, 70.0, 3.0) == "Add more tables with capacity for 8 people"

    def test_two_tops_never_suggest_smaller(self):
        assert efficiency_advice(2, 10, 75.0, 2.5) == "Current allocation is optimal"

    def test_optimal(self):
        assert efficiency_advice(4, 10, 100.0, 0.0) == "Current allocation is optimal"


class TestSummarizeTableType:
    """Tests for one table type's efficiency row."""

    def test_wastage_and_utilization(self):
        four_top = table_type(capacity=4)
        history = [
            seated(four_top, OPENING, party_size=4),
            seated(four_top, OPENING + timedelta(hours=1), party_size=2),
            seated(four_top, OPENING + timedelta(hours=2), party_size=2),
        ]

        row = summarize_table_type(four_top, history, occupied_now=1)

        assert row.total_seatings == 3
        assert row.average_seat_wastage == 1.3
        assert row.average_efficiency == 73.3
        assert row.utilization_pct == 66.7
        assert row.occupied_now == 1
        assert row.available_now == 1
        assert row.advice == "Consider using smaller tables or combining parties"

    def test_unused_table_type(self):
        booth = table_type(capacity=6, count=1)

        row = summarize_table_type(booth, [], occupied_now=0)

        assert row.total_seatings == 0
        assert row.average_seat_wastage is None
        assert row.utilization_pct == 0.0
        assert row.observed_turnover_time is None
        assert row.advice == "Not enough data to make a recommendation"


async def add_seating(session: AsyncSession, table: TableType, size: int, seated_at, status="seated"):
    session.add(WaitlistEntry(
        restaurant_id=table.restaurant_id,
        customer_name="Guest",
        party_size=size,
        status=status,
        queue_position=1,
        table_type_id=table.id,
        created_at=seated_at - timedelta(minutes=15),
        seated_at=seated_at if status == "seated" else None,
    ))
    await session.commit()


class TestTableMetricsService:
    """Tests for the restaurant-wide efficiency report."""

    async def test_report(
        self,
        db_session: AsyncSession,
        advanced_restaurant,
        sample_table_types,
        clock: FakeClock,
    ):
        two_top, four_top, booth = sample_table_types
        now = clock()
        await add_seating(db_session, four_top, 4, now - timedelta(hours=3))
        await add_seating(db_session, four_top, 2, now - timedelta(hours=2))
        await add_seating(db_session, two_top, 2, now - timedelta(minutes=30))
        await add_seating(db_session, four_top, 4, now - timedelta(days=40))
        await add_seating(db_session, booth, 6, now - timedelta(hours=1), status="cancelled")

        service = TableMetricsService(db_session, clock=clock)
        report = await service.get_table_efficiency_metrics(advanced_restaurant.id)

        assert report.lookback_days == 28
        assert report.total_seatings == 3
        assert report.average_seat_wastage == 0.7
        assert report.average_efficiency == 86.7
        assert report.tables_needing_adjustment == 0

        rows = {row.table_name: row for row in report.table_types}
        assert list(rows) == ["Two-top", "Four-top", "Booth"]

        assert rows["Four-top"].total_seatings == 2
        assert rows["Four-top"].average_seat_wastage == 1.0
        assert rows["Four-top"].average_efficiency == 80.0
        assert rows["Four-top"].utilization_pct == 75.0
        assert rows["Four-top"].observed_turnover_time == 60
        assert rows["Four-top"].turnover_sample_size == 1
        assert rows["Four-top"].occupied_now == 0
        assert rows["Four-top"].advice == "Current allocation is optimal"

        assert rows["Two-top"].occupied_now == 1
        assert rows["Two-top"].available_now == 2

        assert rows["Booth"].total_seatings == 0

    async def test_lookback_override(
        self,
        db_session: AsyncSession,
        advanced_restaurant,
        sample_table_types,
        clock: FakeClock,
    ):
        four_top = sample_table_types[1]
        await add_seating(db_session, four_top, 4, clock() - timedelta(days=40))

        service = TableMetricsService(db_session, clock=clock)

        assert (await service.get_table_efficiency_metrics(advanced_restaurant.id)).total_seatings == 0
        report = await service.get_table_efficiency_metrics(advanced_restaurant.id, lookback_days=60)
        assert report.total_seatings == 1
        assert report.lookback_days == 60

    async def test_restaurant_without_history(
        self,
        db_session: AsyncSession,
        sample_restaurant,
    ):
        report = await TableMetricsService(db_session).get_table_efficiency_metrics(sample_restaurant.id)

        assert report.total_seatings == 0
        assert report.average_seat_wastage is None
        assert report.table_types == []

    async def test_unknown_restaurant(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await TableMetricsService(db_session).get_table_efficiency_metrics(uuid4())
