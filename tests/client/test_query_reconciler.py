"""Tests for sequence-ordered query reconciliation."""

from __future__ import annotations

import logging

import pytest

from readlater.application.dto.query_dto import QueryResult, QueryStream
from readlater.client.query_reconciler import QueryReconciler
from readlater.domain.exceptions.domain_exceptions import TransientIOError


def _ids(items) -> list[str]:
    return [item.id for item in items]


@pytest.mark.asyncio
async def test_late_result_for_older_search_is_discarded(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)

    first = reconciler.issue_query("a", None, reset=True)
    second = reconciler.issue_query("ab", None, reset=True)
    await drain()
    assert (first, second) == (1, 2)

    query_service.resolve(1, ["Z"])
    await drain()
    query_service.resolve(0, ["X", "Y"])
    await drain()

    assert _ids(reconciler.visible_items) == ["Z"]
    assert reconciler.state.last_accepted_seq == 2


@pytest.mark.asyncio
async def test_in_order_results_are_all_applied(query_service, drain) -> None:
    seen: list[list[str]] = []
    reconciler = QueryReconciler(query_service, on_change=lambda items: seen.append(_ids(items)))

    reconciler.issue_query("c", None, reset=True)
    reconciler.issue_query("ca", None, reset=True)
    await drain()
    query_service.resolve(0, ["1"])
    await drain()
    query_service.resolve(1, ["2"])
    await drain()

    assert seen == [["1"], ["2"]]
    assert reconciler.state.active_query == "ca"


@pytest.mark.asyncio
async def test_pagination_appends_and_dedupes(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)

    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(0, ["1", "2"], next_cursor="c1")
    await drain()
    assert reconciler.cursor_for(QueryStream.BASE) == "c1"

    reconciler.issue_query("", "c1", reset=False)
    await drain()
    assert query_service.calls[1][:2] == ("", "c1")
    query_service.resolve(1, ["2", "3"], next_cursor=None)
    await drain()

    assert _ids(reconciler.visible_items) == ["1", "2", "3"]
    assert reconciler.cursor_for(QueryStream.BASE) is None
    assert reconciler.is_loaded(QueryStream.BASE)


@pytest.mark.asyncio
async def test_reset_replaces_list(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)

    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(0, ["1", "2"])
    await drain()

    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(1, ["3"])
    await drain()

    assert _ids(reconciler.visible_items) == ["3"]


@pytest.mark.asyncio
async def test_on_result_is_idempotent(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)
    seq = reconciler.issue_query("rust", None, reset=True)
    await drain()

    result = QueryResult(seq=seq, items=(), next_cursor="n1")
    assert reconciler.on_result(seq, result) is True
    before = reconciler.state

    assert reconciler.on_result(seq, result) is False
    assert reconciler.state == before

    # The dispatched call finishing later is a duplicate as well
    query_service.resolve(0, ["late"])
    await drain()
    assert reconciler.state == before


@pytest.mark.asyncio
async def test_failed_query_leaves_state_untouched(query_service, drain, caplog) -> None:
    reconciler = QueryReconciler(query_service)
    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(0, ["1"])
    await drain()

    reconciler.issue_query("", None, reset=True)
    await drain()
    with caplog.at_level(logging.WARNING, logger="readlater.client.query_reconciler"):
        query_service.fail(1, TransientIOError("connection reset"))
        await drain()

    assert _ids(reconciler.visible_items) == ["1"]
    assert reconciler.state.last_accepted_seq == 1
    assert any(record.getMessage() == "library_query_failed" for record in caplog.records)

    # A later query is unaffected
    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(2, ["2"])
    await drain()
    assert _ids(reconciler.visible_items) == ["2"]


@pytest.mark.asyncio
async def test_clear_search_restores_warm_base_list(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)
    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(0, ["1", "2"], next_cursor="b1")
    await drain()

    reconciler.issue_query("x", None, reset=True)
    await drain()
    query_service.resolve(1, ["9"])
    await drain()
    assert reconciler.active_stream is QueryStream.SEARCH
    assert _ids(reconciler.visible_items) == ["9"]

    restored = reconciler.clear_search()

    assert _ids(restored) == ["1", "2"]
    assert reconciler.active_stream is QueryStream.BASE
    assert reconciler.cursor_for(QueryStream.BASE) == "b1"
    assert reconciler.state.search_list == []
    assert len(query_service.calls) == 2


@pytest.mark.asyncio
async def test_clear_search_drops_in_flight_search(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)
    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(0, ["1"])
    await drain()

    reconciler.issue_query("y", None, reset=True)
    await drain()
    reconciler.clear_search()
    query_service.resolve(1, ["8"])
    await drain()

    assert _ids(reconciler.visible_items) == ["1"]
    assert reconciler.state.search_list == []


@pytest.mark.asyncio
async def test_late_base_result_after_search_is_discarded(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)
    reconciler.issue_query("", None, reset=True)
    reconciler.issue_query("go", None, reset=True)
    await drain()

    query_service.resolve(1, ["s1"])
    await drain()
    query_service.resolve(0, ["b1"])
    await drain()

    assert _ids(reconciler.visible_items) == ["s1"]
    assert not reconciler.is_loaded(QueryStream.BASE)


@pytest.mark.asyncio
async def test_removed_item_not_reintroduced_by_earlier_query(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)
    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(0, ["1", "2", "3"])
    await drain()

    reconciler.issue_query("", None, reset=True)
    await drain()
    assert reconciler.remove_item("2") is True
    assert _ids(reconciler.visible_items) == ["1", "3"]

    query_service.resolve(1, ["1", "2", "3"])
    await drain()
    assert _ids(reconciler.visible_items) == ["1", "3"]

    # A query issued after the removal reflects the server again
    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(2, ["1", "2"])
    await drain()
    assert _ids(reconciler.visible_items) == ["1", "2"]


@pytest.mark.asyncio
async def test_remove_item_drops_from_both_lists(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)
    reconciler.issue_query("", None, reset=True)
    reconciler.issue_query("q", None, reset=True)
    await drain()
    query_service.resolve(0, ["1", "2"])
    await drain()
    query_service.resolve(1, ["2", "5"])
    await drain()

    assert _ids(reconciler.state.base_list) == ["1", "2"]
    assert reconciler.remove_item("2") is True

    assert _ids(reconciler.state.base_list) == ["1"]
    assert _ids(reconciler.state.search_list) == ["5"]


@pytest.mark.asyncio
async def test_remove_unknown_item_does_not_emit(query_service) -> None:
    seen: list[list[str]] = []
    reconciler = QueryReconciler(query_service, on_change=lambda items: seen.append(_ids(items)))

    assert reconciler.remove_item("missing") is False
    assert seen == []


@pytest.mark.asyncio
async def test_listener_errors_do_not_break_reconciliation(query_service, drain) -> None:
    def broken_listener(_items) -> None:
        raise RuntimeError("render failed")

    reconciler = QueryReconciler(query_service, on_change=broken_listener)
    reconciler.issue_query("", None, reset=True)
    await drain()
    query_service.resolve(0, ["1"])
    await drain()

    assert _ids(reconciler.visible_items) == ["1"]


@pytest.mark.asyncio
async def test_wait_idle_returns_after_all_queries_complete(query_service, drain) -> None:
    reconciler = QueryReconciler(query_service)
    reconciler.issue_query("", None, reset=True)
    reconciler.issue_query("t", None, reset=True)
    await drain()
    query_service.resolve(0, ["1"])
    query_service.resolve(1, ["2"])

    await reconciler.wait_idle()

    assert reconciler.state.last_accepted_seq == 2
    assert _ids(reconciler.visible_items) == ["2"]


def test_issue_query_requires_running_loop(query_service) -> None:
    reconciler = QueryReconciler(query_service)
    with pytest.raises(RuntimeError):
        reconciler.issue_query("a")
