"""
Tests for the console: live wiring, detail record, mutations and export.
"""

import asyncio

import pytest

from fakes import FakeStore, SAMPLE_ITEMS, client_error
from saferoute.models.report import FilterUpdate, ReportStatus
from saferoute.services.console import ReportsConsole
from saferoute.services.export import NothingToExport, to_csv
from saferoute.services.identity_cache import IdentityCache


def test_refresh_enriches_and_filters(console):
    view = console.composer.latest
    # super admin sees all pending reports, newest first; r4 has an unparseable date
    assert [r.id for r in view] == ["r2", "r1", "r4"]
    by_id = {r.id: r for r in view}
    assert by_id["r1"].reporter_name == "Juan Dela Cruz"
    assert by_id["r2"].reporter_name == "Ana Santos"
    assert by_id["r2"].reporter_address == "Linao East Office"
    assert by_id["r4"].reporter_name == "—"
    assert by_id["r4"].epoch_ms == 0


def test_restricted_role_is_scoped_by_query_not_by_filter(barangay_session, directory, store):
    console = ReportsConsole(barangay_session, directory, store, cache=IdentityCache())
    asyncio.run(console.refresh())

    assert store.scopes == ["Carig Sur"]
    assert {r.id for r in console.composer.latest} == {"r1", "r4"}
    # region scope is a no-op for this role
    console.composer.set_region_scope("Linao East")
    assert {r.id for r in console.composer.latest} == {"r1", "r4"}


def test_super_admin_region_scope(console, store):
    assert store.scopes == [None]
    assert [r.id for r in console.composer.set_region_scope("linao east")] == ["r2"]


def test_status_tab_and_search_flow(console):
    console.composer.set_status_tab(ReportStatus.resolved)
    assert [r.reporter_name for r in console.composer.latest] == ["maria_s"]
    console.composer.set_status_tab("pending")
    assert [r.id for r in console.composer.set_search_term("flood")] == ["r1", "r4"]


def test_detail_and_reporter_info(console):
    assert console.reporter_info().name == "—"
    report = console.open_detail("r1")
    assert report.id == "r1"
    info = console.reporter_info()
    assert (info.name, info.contact) == ("Juan Dela Cruz", "+639171234567")
    assert console.open_detail("missing") is None


def test_set_status_patches_open_record_only(console, store):
    console.open_detail("r1")

    notice = asyncio.run(console.set_status("r1", ReportStatus.verified))

    assert notice.message == "Marked verified."
    assert not notice.danger
    assert store.items["r1"]["status"] == "verified"
    assert console.selected.status == "verified"
    # the list waits for the next live batch
    assert "r1" in [r.id for r in console.composer.latest]

    asyncio.run(console.refresh())
    assert "r1" not in [r.id for r in console.composer.latest]


def test_set_status_failure_is_a_danger_notice(console, store):
    console.open_detail("r1")
    store.fail_with = client_error("AccessDeniedException", "User is not authorized", "UpdateItem")

    notice = asyncio.run(console.set_status("r1", ReportStatus.rejected))

    assert notice.danger
    assert notice.message == "User is not authorized"
    assert console.selected.status == "pending"


def test_delete_closes_detail(console, store):
    console.open_detail("r4")
    notice = asyncio.run(console.delete_report("r4"))
    assert notice.message == "Report deleted."
    assert console.selected is None
    assert "r4" not in store.items


def test_delete_failure_keeps_detail_open(console, store):
    console.open_detail("r4")
    store.fail_with = client_error("ProvisionedThroughputExceededException", "", "DeleteItem")
    notice = asyncio.run(console.delete_report("r4"))
    assert notice.danger
    assert notice.message == "Could not delete report."
    assert console.selected is not None


def test_export_document(console):
    console.composer.set_month_year("March", "2024")
    doc = console.export()

    assert doc.title == "SafeRoute Incident Report - March 2024"
    assert doc.barangay == "All Barangays"
    assert doc.status == "Pending"
    assert doc.total == 1
    row = doc.rows[0]
    assert (row.category, row.landmark, row.date) == ("Flooding", "—", "3/15/2024")

    lines = to_csv(doc).splitlines()
    assert lines[0] == "Category,Landmark,Barangay,Description,Date,Time"
    assert lines[1].startswith("Flooding,—,Carig Sur,Street under knee-deep water,3/15/2024,08:30 AM")


def test_export_heading_follows_period_filter(console):
    console.composer.apply(FilterUpdate(periodFilter="2024-03"))
    doc = console.export()

    assert doc.period == "March 2024"
    assert doc.title == "SafeRoute Incident Report - March 2024"
    assert [row.category for row in doc.rows] == ["Flooding"]

    console.composer.set_period_filter("")
    assert console.export().period == "All Time"


def test_export_uses_home_barangay_for_restricted_role(barangay_session, directory):
    console = ReportsConsole(barangay_session, directory, FakeStore(SAMPLE_ITEMS))
    asyncio.run(console.refresh())
    doc = console.export()
    assert doc.barangay == "Carig Sur"
    assert doc.period == "All Time"


def test_export_empty_view(console):
    console.composer.set_search_term("no such thing")
    with pytest.raises(NothingToExport, match="No reports to print"):
        console.export()


def test_start_and_stop_run_the_live_loop(super_session, directory, store):
    async def scenario():
        console = ReportsConsole(super_session, directory, store)
        console.start(poll_seconds=0.01)
        await asyncio.sleep(0.1)
        ids = [r.id for r in console.composer.latest]
        await console.stop()
        return ids

    assert asyncio.run(scenario()) == ["r2", "r1", "r4"]


def test_reset_identity_cache_forces_fresh_lookups(console, directory):
    assert directory.calls[("get_user", "u-juan-0001")] == 1
    assert "u-juan-0001" in console.cache

    notice = console.reset_identity_cache()

    assert notice.message.startswith("Cleared ")
    assert len(console.cache) == 0
    asyncio.run(console.refresh())
    assert directory.calls[("get_user", "u-juan-0001")] == 2
