"""Pipeline progress reporting and cooperative cancellation.

Stages only move forward (``parsing -> validation -> optimization -> analysis
-> complete``) and the reported percentage never decreases, even when nested
steps report into a sub-range of the overall run.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


STAGES = ("parsing", "validation", "optimization", "analysis", "complete")


class AnalysisCancelled(RuntimeError):
    """Raised at a batch boundary once the run's token has been cancelled."""


@dataclass(frozen=True)
class ProgressEvent:
    stage: str
    progress: float
    current_item: int
    total_items: int
    message: str

    def as_dict(self) -> dict[str, object]:
        return {
            "stage": self.stage,
            "progress": round(self.progress, 2),
            "current_item": self.current_item,
            "total_items": self.total_items,
            "message": self.message,
        }


ProgressCallback = Callable[[ProgressEvent], None]


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False
        self.reason = ""

    def cancel(self, reason: str = "Analysis cancelled by caller") -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise AnalysisCancelled(self.reason or "Analysis cancelled")


class _TrackerState:
    def __init__(self, callback: ProgressCallback | None) -> None:
        self.callback = callback
        self.stage_index = 0
        self.progress = 0.0
        self.events: list[ProgressEvent] = []


class ProgressTracker:
    """Maps local 0-100 progress into ``[start, end]`` of the overall run."""

    def __init__(
        self,
        callback: ProgressCallback | None = None,
        *,
        start: float = 0.0,
        end: float = 100.0,
        _state: _TrackerState | None = None,
    ) -> None:
        if not 0.0 <= start <= end <= 100.0:
            raise ValueError("progress range must satisfy 0 <= start <= end <= 100")
        self.start = start
        self.end = end
        self._state = _state or _TrackerState(callback)

    @property
    def events(self) -> list[ProgressEvent]:
        return list(self._state.events)

    @property
    def last(self) -> ProgressEvent | None:
        return self._state.events[-1] if self._state.events else None

    def child(self, start: float, end: float) -> "ProgressTracker":
        """Tracker for a nested step occupying local ``[start, end]`` of this one."""
        span = self.end - self.start
        return ProgressTracker(
            start=self.start + span * max(0.0, min(start, 100.0)) / 100.0,
            end=self.start + span * max(0.0, min(end, 100.0)) / 100.0,
            _state=self._state,
        )

    def report(
        self,
        stage: str,
        progress: float,
        current_item: int = 0,
        total_items: int = 0,
        message: str = "",
    ) -> ProgressEvent:
        if stage not in STAGES:
            raise ValueError(f"Unknown progress stage '{stage}'")
        state = self._state
        local = max(0.0, min(float(progress), 100.0))
        overall = self.start + (self.end - self.start) * local / 100.0
        stage_index = max(state.stage_index, STAGES.index(stage))
        overall = max(state.progress, min(overall, 100.0))
        state.stage_index = stage_index
        state.progress = overall
        event = ProgressEvent(STAGES[stage_index], overall, int(current_item), int(total_items), message)
        state.events.append(event)
        if state.callback is not None:
            state.callback(event)
        return event
