"""Execution monitoring: structured events, state metrics and activation spans."""
from __future__ import annotations

import logging
import time
from collections import defaultdict
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class ExecutionEvent(str, Enum):
    """Events emitted over the life of an execution"""
    EXECUTION_STARTED = "execution_started"
    EXECUTION_SUCCEEDED = "execution_succeeded"
    EXECUTION_FAILED = "execution_failed"
    STATE_ENTERED = "state_entered"
    STATE_EXITED = "state_exited"
    ERROR_CAUGHT = "error_caught"


EVENT_LEVELS: Dict[ExecutionEvent, int] = {
    ExecutionEvent.EXECUTION_STARTED: logging.INFO,
    ExecutionEvent.EXECUTION_SUCCEEDED: logging.INFO,
    ExecutionEvent.EXECUTION_FAILED: logging.ERROR,
    ExecutionEvent.STATE_ENTERED: logging.DEBUG,
    ExecutionEvent.STATE_EXITED: logging.DEBUG,
    ExecutionEvent.ERROR_CAUGHT: logging.INFO,
}


class MetricsRecorder:
    """In-memory counters and histograms keyed by metric name and labels."""

    def __init__(self) -> None:
        self.counters: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
        self.histograms: Dict[str, Dict[str, List[float]]] = defaultdict(dict)

    def inc(self, name: str, labels: Optional[Dict[str, str]] = None, value: float = 1) -> None:
        self.counters[name][self._labels_key(labels)] += value

    def observe(self, name: str, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        self.histograms[name].setdefault(self._labels_key(labels), []).append(value)

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        return self.counters[name].get(self._labels_key(labels), 0.0)

    def get_observations(self, name: str, labels: Optional[Dict[str, str]] = None) -> List[float]:
        return list(self.histograms[name].get(self._labels_key(labels), []))

    def record_activation(self, state_type: str, duration: float) -> None:
        labels = {"state_type": state_type}
        self.inc("states_executed", labels)
        self.observe("state_duration_seconds", duration, labels)

    def record_caught_error(self, state_type: str, error: str) -> None:
        self.inc("errors_caught", {"error": error})
        self.inc("errors_caught_by_state_type", {"state_type": state_type})

    def record_execution(self, status: str) -> None:
        self.inc("executions", {"status": status})

    def state_summary(self) -> Dict[str, Dict[str, float]]:
        """Activation count and total seconds per state type"""
        summary: Dict[str, Dict[str, float]] = {}
        for key, count in self.counters["states_executed"].items():
            state_type = key.split("=", 1)[1]
            durations = self.histograms["state_duration_seconds"].get(key, [])
            summary[state_type] = {"count": count, "total_seconds": sum(durations)}
        return summary

    def _labels_key(self, labels: Optional[Dict[str, str]]) -> str:
        if not labels:
            return "__no_labels__"
        return "|".join(f"{k}={v}" for k, v in sorted(labels.items()))


class TracingManager:
    """Debug-level spans around state activations."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("asl_runtime.tracing")

    @contextmanager
    def span(self, execution_id: str, state: str, state_type: str) -> Iterator[Dict[str, Any]]:
        """Yield the span attributes; ``duration`` is filled in when the span closes"""
        attrs: Dict[str, Any] = {"execution_id": execution_id, "state": state, "state_type": state_type}
        start = time.perf_counter()
        self.logger.debug(f"Span start {state}", extra={"span": "state", **attrs})
        try:
            yield attrs
        finally:
            attrs["duration"] = time.perf_counter() - start
            self.logger.debug(f"Span end {state}", extra={"span": "state", **attrs})


class EventLogger:
    """Structured execution events on the ``asl_runtime.events`` logger."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("asl_runtime.events")

    def log(
        self,
        event: ExecutionEvent,
        execution_id: str,
        state: Optional[str] = None,
        **payload: Any
    ) -> None:
        extra = {"event": event.value, "execution_id": execution_id, **payload}
        if state is not None:
            extra["state"] = state
        self.logger.log(EVENT_LEVELS[event], event.value, extra=extra)
