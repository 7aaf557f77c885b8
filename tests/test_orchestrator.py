"""Tests for the scan orchestrator."""

from __future__ import annotations

import threading

import pytest

from conftest import FakeBackend, StubScanner, make_candidate
from wincleaner.core import orchestrator
from wincleaner.core.backend import BackendUnavailable
from wincleaner.models.item import RetentionPolicy
from wincleaner.models.progress import ScanProgress, ScanStage, ScanUpdate


def _stub(scanner_id, count=2, **kwargs):
    candidates = [
        make_candidate(rf"C:\Users\User\AppData\Local\Temp\{scanner_id}_{n}.tmp", size=100 * n)
        for n in range(1, count + 1)
    ]
    return StubScanner(scanner_id, candidates, **kwargs)


def _run(scanners, context_for, **kwargs) -> list[ScanUpdate]:
    return list(orchestrator.run(scanners, context_for(FakeBackend()), RetentionPolicy(), **kwargs))


class TestRun:
    def test_three_categories_reach_exactly_100(self, context_for):
        updates = _run([_stub("a"), _stub("b"), _stub("c")], context_for)

        final = updates[-1]
        assert final.progress.stage is ScanStage.COMPLETED
        assert final.progress.current_units == 100
        assert len(final.results) == 6
        assert final.failed_scanners == ()

    def test_progress_is_monotonic_and_100_only_at_the_end(self, context_for):
        updates = _run([_stub("a", 3), _stub("b", 1), _stub("c", 5)], context_for)
        units = [u.progress.current_units for u in updates]

        assert units == sorted(units)
        assert all(u < 100 for u in units[:-1])
        assert units[-1] == 100
        assert [u.progress.stage.is_terminal for u in updates].count(True) == 1

    def test_category_windows(self, context_for):
        updates = _run([_stub("a", 4), _stub("b", 4)], context_for)
        for update in updates[1:-1]:
            item = update.new_item
            if item is None:
                continue
            if item.scanner_id == "a":
                assert 0 <= update.progress.current_units < 50
            else:
                assert 50 <= update.progress.current_units < 100

    def test_result_list_grows_one_item_at_a_time(self, context_for):
        updates = _run([_stub("a"), _stub("b")], context_for)
        analyzed = [u for u in updates if u.new_item is not None]

        assert [len(u.results) for u in analyzed] == [1, 2, 3, 4]
        for update in analyzed:
            assert update.progress.stage is ScanStage.ANALYZING
            assert update.results[-1] is update.new_item

    def test_item_ids_are_per_scanner(self, context_for):
        final = _run([_stub("a"), _stub("b", 1)], context_for)[-1]
        assert [item.id for item in final.results] == ["a-1", "a-2", "b-1"]

    def test_first_update_is_preparing(self, context_for):
        first = _run([_stub("a")], context_for)[0]
        assert first.progress.stage is ScanStage.PREPARING
        assert first.progress.current_units == 0

    def test_failing_scanner_is_isolated(self, context_for):
        scanners = [_stub("a"), _stub("broken", 1, error=RuntimeError("boom")), _stub("c")]
        final = _run(scanners, context_for)[-1]

        assert final.progress.stage is ScanStage.COMPLETED
        assert final.failed_scanners == ("broken",)
        assert {item.scanner_id for item in final.results} >= {"a", "c"}

    def test_all_scanners_failing_ends_in_error(self, context_for):
        scanners = [_stub("x", 0, error=RuntimeError("boom")), _stub("y", 0, error=OSError("gone"))]
        final = _run(scanners, context_for)[-1]

        assert final.progress.stage is ScanStage.ERROR
        assert final.progress.current_units == 100
        assert final.failed_scanners == ("x", "y")
        assert final.results == ()

    def test_no_scanners_completes(self, context_for):
        updates = _run([], context_for)
        assert updates[-1].progress.stage is ScanStage.COMPLETED
        assert updates[-1].progress.current_units == 100

    def test_backend_unavailable_propagates(self, context_for):
        scanners = [_stub("a"), _stub("b", 1, error=BackendUnavailable("gone"))]
        with pytest.raises(BackendUnavailable):
            _run(scanners, context_for)

    def test_floor_raises_starting_point(self, context_for):
        updates = _run([_stub("a"), _stub("b")], context_for, floor=40)
        units = [u.progress.current_units for u in updates]

        assert units[0] == 40
        assert units == sorted(units)
        assert units[-1] == 100


class TestCancel:
    def test_cancel_before_start(self, context_for):
        cancel = threading.Event()
        cancel.set()
        updates = _run([_stub("a"), _stub("b")], context_for, cancel=cancel)

        assert updates[-1].progress.stage is ScanStage.CANCELLED
        assert updates[-1].results == ()

    def test_cancel_stops_at_category_boundary(self, context_for):
        cancel = threading.Event()
        updates = []
        gen = orchestrator.run(
            [_stub("a"), _stub("b")], context_for(FakeBackend()), RetentionPolicy(), cancel=cancel
        )
        for update in gen:
            updates.append(update)
            if update.new_item is not None and update.new_item.scanner_id == "a":
                cancel.set()

        final = updates[-1]
        assert final.progress.stage is ScanStage.CANCELLED
        assert final.progress.current_units < 100
        assert [item.scanner_id for item in final.results] == ["a", "a"]


class TestDrain:
    def test_callbacks_see_every_step(self, context_for):
        progress, grown = [], []
        session = orchestrator.run_scan(
            [_stub("a"), _stub("b")],
            context_for(FakeBackend()),
            RetentionPolicy(),
            on_progress=progress.append,
            on_results_grow=grown.append,
        )

        assert len(session.items) == 4
        assert [len(r) for r in grown] == [1, 2, 3, 4]
        assert progress[-1].current_units == 100
        assert session.progress.stage is ScanStage.COMPLETED
        assert not session.simulated
        assert session.total_bytes == 600

    def test_fallback_update_resets_results(self, context_for):
        def updates():
            yield from orchestrator.run([_stub("a")], context_for(FakeBackend()), RetentionPolicy())
            yield ScanUpdate(progress=ScanProgress(ScanStage.FALLBACK, 50))
            yield from orchestrator.run([_stub("b", 1)], context_for(FakeBackend()), RetentionPolicy(), floor=50)

        grown = []
        session = orchestrator.drain(updates(), on_results_grow=grown.append)

        assert [] in grown
        assert grown[-1] == session.items
        assert [item.scanner_id for item in session.items] == ["b"]
        assert session.simulated
