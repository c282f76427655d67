"""Background execution of adapter calls with a single result queue."""

from __future__ import annotations

import itertools
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any

from stashnav.util.logging import get_logger
from stashnav.util.observability import ObservabilityManager
from stashnav.version_control.base import StashAdapter, StashCommandError, StashFailure

_LOGGER = get_logger("stashnav.controller.worker")

Dispatch = Callable[[Callable[[], None], bool], None]


class RequestKind(str, Enum):
    """Adapter operation requested by the controller."""

    LIST = "list"
    DIFF = "diff"
    FILES = "files"
    APPLY = "apply"
    POP = "pop"
    DROP = "drop"
    CREATE = "create"

    @property
    def mutating(self) -> bool:
        """Return True for operations that change the stash stack or work tree."""

        return self in {RequestKind.APPLY, RequestKind.POP, RequestKind.DROP, RequestKind.CREATE}


@dataclass(frozen=True)
class AdapterRequest:
    """An adapter call submitted to the worker.

    Attributes:
        request_id: Monotonically increasing identifier.
        kind: Requested operation.
        index: Target stash index for index-based operations.
        message: Message for new stashes.
        include_untracked: Whether a new stash includes untracked files.
    """

    request_id: int
    kind: RequestKind
    index: int | None = None
    message: str | None = None
    include_untracked: bool = False


@dataclass(frozen=True)
class AdapterResponse:
    """Outcome of an adapter call, delivered on the result queue."""

    request: AdapterRequest
    value: Any = None
    error: StashCommandError | None = None
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


def thread_dispatch(job: Callable[[], None], mutating: bool) -> None:
    """Run ``job`` on a new thread.

    Mutating calls run on non-daemon threads so the interpreter waits for git
    to finish before exiting.
    """

    thread = threading.Thread(
        target=job,
        name="stashnav-mutation" if mutating else "stashnav-read",
        daemon=not mutating,
    )
    thread.start()


class AdapterWorker:
    """Runs adapter calls off the UI thread and queues their responses."""

    def __init__(
        self,
        adapter: StashAdapter,
        *,
        dispatch: Dispatch | None = None,
        observability: ObservabilityManager | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            adapter: Adapter used for every call.
            dispatch: Callable that schedules a job; defaults to one thread per job.
            observability: Optional metrics sink for call durations.
        """

        self._adapter = adapter
        self._dispatch = dispatch or thread_dispatch
        self._observability = observability
        self._results: queue.Queue[AdapterResponse] = queue.Queue()
        self._ids = itertools.count(1)

    def submit(
        self,
        kind: RequestKind,
        *,
        index: int | None = None,
        message: str | None = None,
        include_untracked: bool = False,
    ) -> AdapterRequest:
        """Schedule an adapter call and return the request describing it."""

        request = AdapterRequest(
            request_id=next(self._ids),
            kind=kind,
            index=index,
            message=message,
            include_untracked=include_untracked,
        )
        _LOGGER.debug("Submitting request %s (%s)", request.request_id, kind.value)
        self._dispatch(partial(self._execute, request), kind.mutating)
        return request

    def poll(self) -> list[AdapterResponse]:
        """Return every response queued so far without blocking."""

        responses: list[AdapterResponse] = []
        while True:
            try:
                responses.append(self._results.get_nowait())
            except queue.Empty:
                return responses

    def _execute(self, request: AdapterRequest) -> None:
        start = time.perf_counter()
        value: Any = None
        error: StashCommandError | None = None
        try:
            value = self._call(request)
        except StashCommandError as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001
            _LOGGER.exception("Unexpected failure in %s request", request.kind.value)
            error = StashCommandError(StashFailure.EXEC_FAILED, str(exc) or type(exc).__name__)
        duration = time.perf_counter() - start
        if self._observability is not None:
            metric = f"request.{request.kind.value}"
            self._observability.metrics.record_duration(metric, duration)
            self._observability.metrics.record_outcome(
                metric, "ok" if error is None else error.kind.value
            )
        self._results.put(
            AdapterResponse(request=request, value=value, error=error, duration_s=duration)
        )

    def _call(self, request: AdapterRequest) -> Any:
        kind = request.kind
        if kind is RequestKind.LIST:
            return self._adapter.list_stashes()
        if kind is RequestKind.CREATE:
            return self._adapter.create(
                request.message, include_untracked=request.include_untracked
            )
        index = _require_index(request)
        if kind is RequestKind.DIFF:
            return self._adapter.show_diff(index)
        if kind is RequestKind.FILES:
            return self._adapter.show_files(index)
        if kind is RequestKind.APPLY:
            return self._adapter.apply(index, drop=False)
        if kind is RequestKind.POP:
            return self._adapter.apply(index, drop=True)
        if kind is RequestKind.DROP:
            return self._adapter.drop(index)
        raise ValueError(f"Unsupported request kind: {kind}")


def _require_index(request: AdapterRequest) -> int:
    if request.index is None:
        raise ValueError(f"{request.kind.value} request requires a stash index")
    return request.index
