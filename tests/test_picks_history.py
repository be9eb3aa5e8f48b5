"""Tests for the picks-history read model."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
import pytest_asyncio
from sqlalchemy import delete

from weeklypicks.database.connection import get_session
from weeklypicks.database.orm import WeeklyReport
from weeklypicks.domain.report import PickSide
from weeklypicks.repositories.picks_history_orm import list_picks, refresh_picks_history
from weeklypicks.schemas.imports import ImportPayload
from weeklypicks.schemas.picks import PicksListQuery
from weeklypicks.services.importer import ReportImporter


async def _import(make_report, published_at: str, **overrides) -> ImportPayload:
    payload = ImportPayload.model_validate(make_report(fresh_ids=True, published_at=published_at, **overrides))
    result = await ReportImporter(refresher=None).import_report(payload, "2025-11-02report.json")
    assert result.succeeded
    return payload


class TestRefreshPicksHistory:
    """Tests for the wholesale rebuild."""

    @pytest.mark.asyncio
    async def test_projects_reports_joined_with_picks(self, db_engine, make_report):
        first = await _import(make_report, "2025-10-26T12:00:00Z")
        await _import(make_report, "2025-11-02T12:00:00Z")

        assert await refresh_picks_history() == 4

        page = await list_picks(PicksListQuery(sort="published_at", order="asc"))
        assert page["total_items"] == 4
        row = page["items"][0]
        assert row["report_id"] == first.report_id
        assert row["report_week"] == "2025-W43"
        assert row["published_at"] == datetime(2025, 10, 26, 12, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_rebuild_drops_stale_rows(self, db_engine, make_report):
        payload = await _import(make_report, "2025-11-02T12:00:00Z")
        await refresh_picks_history()

        async with get_session() as session:
            await session.execute(delete(WeeklyReport).where(WeeklyReport.report_id == payload.report_id))
            await session.commit()

        assert await refresh_picks_history() == 0
        page = await list_picks(PicksListQuery())
        assert page["items"] == []
        assert page["total_pages"] == 1


class TestListPicks:
    """Tests for filters, sorting and pagination."""

    @pytest_asyncio.fixture
    async def seeded(self, db_engine, make_report):
        await _import(make_report, "2025-10-26T12:00:00Z")
        await _import(make_report, "2025-11-02T12:00:00Z")
        await refresh_picks_history()

    @pytest.mark.asyncio
    async def test_ticker_filter_is_case_insensitive(self, seeded):
        page = await list_picks(PicksListQuery(ticker="nvda"))
        assert page["total_items"] == 2
        assert {item["ticker"] for item in page["items"]} == {"NVDA"}

    @pytest.mark.asyncio
    async def test_exchange_and_side_filters(self, seeded):
        page = await list_picks(PicksListQuery(exchange="nyse", side=PickSide.SHORT))
        assert page["total_items"] == 2
        assert all(item["side"] == "short" for item in page["items"])

    @pytest.mark.asyncio
    async def test_date_window(self, seeded):
        page = await list_picks(
            PicksListQuery(date_after=datetime(2025, 11, 1, tzinfo=UTC), date_before=datetime(2025, 11, 3, tzinfo=UTC))
        )
        assert page["total_items"] == 2
        assert all(item["report_week"] == "2025-W44" for item in page["items"])

    @pytest.mark.asyncio
    async def test_sort_by_target_change(self, seeded):
        page = await list_picks(PicksListQuery(sort="target_change_pct", order="asc"))
        values = [item["target_change_pct"] for item in page["items"]]
        assert values == sorted(values)
        assert values[0] == -4.25

    @pytest.mark.asyncio
    async def test_pagination(self, seeded):
        page = await list_picks(PicksListQuery(page=2, page_size=3))
        assert page["page"] == 2
        assert page["total_pages"] == 2
        assert len(page["items"]) == 1
