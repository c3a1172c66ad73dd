"""Tests for the ProfitReport state container."""

from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest

from pos_profit.branches import BranchCategory
from pos_profit.exceptions import ConfigError, ExtractionError, SessionError
from pos_profit.sales.api import FetchStatus, ProfitReport
from tests.factories import FakeErp


def _report(erp: FakeErp) -> ProfitReport:
    return ProfitReport(client_factory=lambda session: erp)


def test_initial_state() -> None:
    report = ProfitReport(client_factory=lambda s: FakeErp())
    assert report.status is FetchStatus.IDLE
    assert report.sales == ()
    assert report.stats_for().item_count == 0
    assert report.period is None


def test_successful_fetch_populates_state(fake_erp, session) -> None:
    report = _report(fake_erp)
    result = report.fetch(session, "2024-03-01", "2024-03-31")

    assert result.status is FetchStatus.OK
    assert result.committed
    assert result.sale_count == 3
    assert report.status is FetchStatus.OK
    assert len(report.sales) == 3
    assert report.period.start == "2024-03-01"
    assert report.last_synced is not None


def test_fetch_replaces_rather_than_merges(erp_tables, session) -> None:
    erp = FakeErp(erp_tables)
    report = _report(erp)
    report.fetch(session, "2024-03-01", "2024-03-31")

    erp.tables["pos.order"] = erp.tables["pos.order"][:1]
    report.fetch(session, "2024-03-01", "2024-03-31")
    assert len(report.sales) == 2


def test_no_orders_gives_no_data_status(session) -> None:
    report = _report(FakeErp({"pos.order": []}))
    result = report.fetch(session, "2024-03-01", "2024-03-31")
    assert result.status is FetchStatus.NO_DATA
    assert report.sales == ()


def test_failed_fetch_keeps_previous_sales(fake_erp, session) -> None:
    report = _report(fake_erp)
    report.fetch(session, "2024-03-01", "2024-03-31")
    before = report.sales

    fake_erp.fail_on = "product.product"
    result = report.fetch(session, "2024-04-01", "2024-04-30")

    assert result.status is FetchStatus.ERROR
    assert report.status is FetchStatus.ERROR
    assert "product.product unavailable" in report.message
    assert report.sales is before
    assert report.period.start == "2024-03-01"


def test_failed_fetch_can_raise(fake_erp, session) -> None:
    fake_erp.fail_on = "pos.order"
    with pytest.raises(ExtractionError):
        _report(fake_erp).fetch(session, "2024-03-01", "2024-03-31", raise_errors=True)


def test_invalid_session_changes_nothing(fake_erp, session) -> None:
    report = _report(fake_erp)
    result = report.fetch(replace(session, uid=0), "2024-03-01", "2024-03-31")

    assert not result.committed
    assert report.status is FetchStatus.IDLE
    assert fake_erp.calls == []
    with pytest.raises(SessionError):
        report.fetch(None, "2024-03-01", "2024-03-31", raise_errors=True)


def test_stale_fetch_is_discarded(erp_tables, session) -> None:
    """A fetch started earlier but finishing later must not overwrite newer data."""
    erp = FakeErp(erp_tables)
    report = _report(erp)
    newer: dict[str, Any] = {}

    original = erp.search_read

    def search_read(model: str, domain, fields, **kwargs):
        # The first fetch triggers a second one before its own orders return
        if model == "pos.order" and not newer:
            newer["tables"] = {"pos.order": []}
            newer["result"] = _report_second(report, session)
        return original(model, domain, fields, **kwargs)

    def _report_second(rep: ProfitReport, sess) -> Any:
        erp.tables = dict(erp.tables)
        saved = erp.tables["pos.order"]
        erp.tables["pos.order"] = saved[1:]
        try:
            return rep.fetch(sess, "2024-03-16", "2024-03-16")
        finally:
            erp.tables["pos.order"] = saved

    erp.search_read = search_read  # type: ignore[method-assign]
    first = report.fetch(session, "2024-03-01", "2024-03-31")

    assert newer["result"].committed
    assert not first.committed
    assert first.generation < newer["result"].generation
    assert len(report.sales) == 1
    assert report.period.start == "2024-03-16"


def test_queries_over_current_set(fake_erp, session) -> None:
    report = _report(fake_erp)
    report.fetch(session, "2024-03-01", "2024-03-31")

    surco = report.branch_predicate(BranchCategory.SURCO)
    assert len(report.lines_for(surco)) == 1
    assert report.stats_for(surco).net_revenue == 50.0
    assert report.stats_for().net_revenue == 170.0

    stats = report.branch_stats()
    assert stats[None].item_count == 3
    assert stats[BranchCategory.FEETCARE].item_count == 2


def test_export_range_filters_by_business_day(fake_erp, session) -> None:
    report = _report(fake_erp)
    report.fetch(session, "2024-03-01", "2024-03-31")

    wb = report.export_range("2024-03-15", "2024-03-15")
    assert wb["Summary"][1] == ["Period:", "2024-03-15 to 2024-03-15"]
    assert wb["Summary"][4][7] == 3

    empty = report.export_range("2024-03-20", "2024-03-10", label="reversed")
    assert empty["Summary"][4][7] == 0


def test_save_export(tmp_path: Path, fake_erp, session) -> None:
    report = _report(fake_erp)
    report.fetch(session, "2024-03-01", "2024-03-31")
    out = report.save_export("2024-03-01", "2024-03-31", tmp_path / "report.xlsx")
    assert out.exists()


def test_fetch_period(fake_erp, session) -> None:
    report = _report(fake_erp)
    result = report.fetch_period(session, "month", year=2024, month=2)
    assert result.status is FetchStatus.OK
    assert report.period.start == "2024-03-01"
    assert report.period.end == "2024-03-31"


def test_malformed_range_ends_in_error_status(fake_erp, session) -> None:
    report = _report(fake_erp)
    report.fetch(session, "2024-03-01", "2024-03-31")
    before = report.sales
    fake_erp.calls.clear()

    result = report.fetch(session, "March", "2024-03-31")

    assert result.status is FetchStatus.ERROR
    assert report.status is FetchStatus.ERROR
    assert "March" in report.message
    assert report.sales is before
    assert fake_erp.calls == []
    with pytest.raises(ConfigError):
        report.fetch(session, "2024-03-01", "31/03/2024", raise_errors=True)


def test_unexpected_error_is_recorded_and_propagates(session) -> None:
    def broken_factory(sess):
        raise RuntimeError("client exploded")

    report = ProfitReport(client_factory=broken_factory)
    with pytest.raises(RuntimeError):
        report.fetch(session, "2024-03-01", "2024-03-31")
    assert report.status is FetchStatus.ERROR
    assert "client exploded" in report.message


def test_previous_sales_readable_while_loading(erp_tables, session) -> None:
    erp = FakeErp(erp_tables)
    report = _report(erp)
    report.fetch(session, "2024-03-01", "2024-03-31")
    before = report.sales
    seen: dict[str, Any] = {}

    original = erp.search_read

    def search_read(model: str, domain, fields, **kwargs):
        if model == "pos.order" and not seen:
            seen["status"] = report.status
            seen["sales"] = report.sales
            seen["stats"] = report.stats_for()
        return original(model, domain, fields, **kwargs)

    erp.search_read = search_read  # type: ignore[method-assign]
    erp.tables["pos.order"] = erp.tables["pos.order"][:1]
    report.fetch(session, "2024-03-01", "2024-03-31")

    assert seen["status"] is FetchStatus.LOADING
    assert seen["sales"] is before
    assert seen["stats"].item_count == 3
    assert len(report.sales) == 2


def test_fetch_period_invalid_mode_reports_error(fake_erp, session) -> None:
    report = _report(fake_erp)
    report.fetch(session, "2024-03-01", "2024-03-31")
    before = report.sales

    result = report.fetch_period(session, "fortnight")

    assert result.status is FetchStatus.ERROR
    assert report.status is FetchStatus.ERROR
    assert "fortnight" in report.message
    assert report.sales is before
    with pytest.raises(ConfigError):
        report.fetch_period(session, "month", year=2024, month=12, raise_errors=True)
