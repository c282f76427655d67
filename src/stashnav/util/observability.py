"""Structured events and metrics for git commands and worker requests."""

from __future__ import annotations

import json
import threading
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any

from stashnav.util.logging import get_logger, normalize_level


@dataclass(frozen=True)
class SessionEvent:
    """A machine-readable event emitted during a session.

    Attributes:
        event_type: Dotted event name, e.g. ``git.command``.
        session_id: Identifier shared by every event of one session.
        timestamp: Unix timestamp in seconds.
        payload: Structured data associated with the event.
    """

    event_type: str
    session_id: str
    timestamp: float
    payload: dict[str, Any]


class EventLogger:
    """Writes :class:`SessionEvent` records as single-line JSON."""

    def __init__(self, logger_name: str, session_id: str | None = None) -> None:
        self._logger = get_logger(logger_name)
        self._session_id = session_id or uuid.uuid4().hex[:12]

    @property
    def session_id(self) -> str:
        return self._session_id

    def log(self, event_type: str, payload: dict[str, Any], *, level: str = "INFO") -> None:
        """Emit an event at the given level name."""

        numeric_level = normalize_level(level)
        if not self._logger.isEnabledFor(numeric_level):
            return
        event = SessionEvent(
            event_type=event_type,
            session_id=self._session_id,
            timestamp=time.time(),
            payload=payload,
        )
        self._logger.log(numeric_level, json.dumps(asdict(event), sort_keys=True))


@dataclass
class MetricsCollector:
    """Counters and durations recorded from the UI and worker threads."""

    counters: dict[str, int] = field(default_factory=dict)
    durations: dict[str, list[float]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def increment(self, name: str, value: int = 1) -> None:
        with self._lock:
            self.counters[name] = self.counters.get(name, 0) + value

    def record_duration(self, name: str, duration_s: float) -> None:
        with self._lock:
            self.durations.setdefault(name, []).append(duration_s)

    def record_outcome(self, operation: str, outcome: str) -> None:
        """Count one ``operation`` finishing with ``outcome`` (``ok`` or a failure kind)."""

        self.increment(f"{operation}.{outcome}")

    def failures(self) -> int:
        """Return how many recorded outcomes were not ``ok``."""

        with self._lock:
            return sum(count for name, count in self.counters.items() if not name.endswith(".ok"))

    def snapshot(self) -> dict[str, Any]:
        """Return a JSON-compatible copy of the collected metrics.

        Durations are summarized per metric as count, total, average and maximum.
        """

        with self._lock:
            counters = dict(self.counters)
            durations = {name: list(values) for name, values in self.durations.items()}
        summary: dict[str, dict[str, float]] = {}
        for name, values in durations.items():
            total = sum(values)
            summary[name] = {
                "count": float(len(values)),
                "total_s": total,
                "avg_s": total / len(values) if values else 0.0,
                "max_s": max(values, default=0.0),
            }
        return {"counters": counters, "durations": summary}


@dataclass(frozen=True)
class ObservabilityManager:
    """Event logger and metrics shared by the adapter, worker and session."""

    events: EventLogger
    metrics: MetricsCollector

    def record_command(
        self,
        operation: str,
        command: list[str],
        *,
        exit_code: int | None,
        outcome: str,
        duration_s: float,
    ) -> None:
        """Record a finished git command as metrics plus a ``git.command`` event.

        Args:
            operation: Short operation name (``list``, ``show``, ``pop``, ...).
            command: Full argument vector that was executed.
            exit_code: Process exit code, or None when git never ran.
            outcome: ``ok`` or the failure kind.
            duration_s: Wall-clock duration in seconds.
        """

        self.metrics.record_outcome(f"git.{operation}", outcome)
        self.metrics.record_duration(f"git.{operation}", duration_s)
        self.events.log(
            "git.command",
            {
                "command": command,
                "exit_code": exit_code,
                "outcome": outcome,
                "duration_s": round(duration_s, 4),
            },
            level="DEBUG" if outcome == "ok" else "WARNING",
        )

    def log_summary(self) -> dict[str, Any]:
        """Emit the metrics snapshot as a ``session.metrics`` event and return it."""

        snapshot = self.metrics.snapshot()
        snapshot["failures"] = self.metrics.failures()
        self.events.log("session.metrics", snapshot)
        return snapshot


def create_observability_manager(session_id: str | None = None) -> ObservabilityManager:
    """Create the observability manager for one session."""

    return ObservabilityManager(
        events=EventLogger("stashnav.events", session_id=session_id),
        metrics=MetricsCollector(),
    )
