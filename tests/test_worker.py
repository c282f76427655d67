from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime

from stashnav.controller.worker import AdapterWorker, RequestKind, thread_dispatch
from stashnav.diffs.models import DiffDocument, FileSummary
from stashnav.stash.models import StashEntry, StashList
from stashnav.util.observability import create_observability_manager
from stashnav.version_control.base import StashAdapter, StashCommandError, StashFailure


class RecordingAdapter(StashAdapter):
    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    def list_stashes(self) -> StashList:
        self.calls.append(("list", None))
        created = datetime(2024, 1, 1, tzinfo=UTC)
        return StashList((StashEntry(0, "main", "wip", "1 day ago", created, "abc"),))

    def show_diff(self, index: int) -> DiffDocument:
        self.calls.append(("diff", index))
        return DiffDocument()

    def show_files(self, index: int) -> FileSummary:
        self.calls.append(("files", index))
        raise StashCommandError(StashFailure.INDEX_GONE, "gone")

    def apply(self, index: int, *, drop: bool = False) -> str:
        self.calls.append(("pop" if drop else "apply", index))
        return "applied"

    def drop(self, index: int) -> str:
        self.calls.append(("drop", index))
        raise RuntimeError("unexpected crash")

    def create(self, message: str | None, *, include_untracked: bool = False) -> str:
        self.calls.append(("create", (message, include_untracked)))
        return "saved"


def _inline(job: Callable[[], None], mutating: bool) -> None:
    job()


def test_worker_delivers_responses_in_order() -> None:
    adapter = RecordingAdapter()
    worker = AdapterWorker(adapter, dispatch=_inline)

    first = worker.submit(RequestKind.LIST)
    second = worker.submit(RequestKind.DIFF, index=0)
    third = worker.submit(RequestKind.CREATE, message="msg", include_untracked=True)

    responses = worker.poll()

    assert [response.request for response in responses] == [first, second, third]
    assert first.request_id < second.request_id < third.request_id
    assert all(response.ok for response in responses)
    assert len(responses[0].value) == 1
    assert adapter.calls == [("list", None), ("diff", 0), ("create", ("msg", True))]
    assert worker.poll() == []


def test_worker_maps_apply_and_pop() -> None:
    adapter = RecordingAdapter()
    worker = AdapterWorker(adapter, dispatch=_inline)

    worker.submit(RequestKind.APPLY, index=2)
    worker.submit(RequestKind.POP, index=1)
    worker.poll()

    assert adapter.calls == [("apply", 2), ("pop", 1)]


def test_worker_reports_adapter_errors() -> None:
    worker = AdapterWorker(RecordingAdapter(), dispatch=_inline)

    worker.submit(RequestKind.FILES, index=0)
    (response,) = worker.poll()

    assert response.ok is False
    assert response.error is not None
    assert response.error.kind is StashFailure.INDEX_GONE


def test_worker_converts_unexpected_exceptions(caplog) -> None:
    worker = AdapterWorker(RecordingAdapter(), dispatch=_inline)

    worker.submit(RequestKind.DROP, index=0)
    (response,) = worker.poll()

    assert response.error is not None
    assert response.error.kind is StashFailure.EXEC_FAILED
    assert "unexpected crash" in response.error.message
    assert any("Unexpected failure" in record.message for record in caplog.records)


def test_worker_rejects_index_requests_without_index() -> None:
    worker = AdapterWorker(RecordingAdapter(), dispatch=_inline)

    worker.submit(RequestKind.DIFF)
    (response,) = worker.poll()

    assert response.error is not None
    assert response.error.kind is StashFailure.EXEC_FAILED


def test_worker_records_request_durations() -> None:
    observability = create_observability_manager()
    worker = AdapterWorker(RecordingAdapter(), dispatch=_inline, observability=observability)

    worker.submit(RequestKind.LIST)
    worker.poll()

    assert observability.metrics.snapshot()["durations"]["request.list"]["count"] == 1.0


def test_thread_dispatch_runs_job_on_background_thread() -> None:
    adapter = RecordingAdapter()
    dispatched: list[bool] = []

    def tracking_dispatch(job: Callable[[], None], mutating: bool) -> None:
        dispatched.append(mutating)
        thread_dispatch(job, mutating)

    worker = AdapterWorker(adapter, dispatch=tracking_dispatch)
    worker.submit(RequestKind.LIST)
    worker.submit(RequestKind.APPLY, index=0)

    responses = []
    for _ in range(200):
        responses.extend(worker.poll())
        if len(responses) == 2:
            break
        time.sleep(0.01)

    assert dispatched == [False, True]
    assert len(responses) == 2
