"""Derived schedule and parser metrics, and the observer interfaces that receive them."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from threading import RLock
from typing import Optional, Protocol

from backend.domain.models import Schedule


HIGH_PRIORITY = 1


@dataclass(frozen=True)
class ScheduleMetrics:
    customers_processed: int
    total_demanded: int
    total_allocated: int
    total_unmet: int
    hours_with_unmet_demand: int
    high_priority_fully_satisfied: int
    high_priority_partially_satisfied: int
    high_priority_unsatisfied: int
    capacity_used: int
    duration_seconds: float
    unmet_by_priority: dict[int, int] = field(default_factory=dict)

    def to_api_dict(self) -> dict[str, object]:
        return {
            "customers_processed": self.customers_processed,
            "total_demanded": self.total_demanded,
            "total_allocated": self.total_allocated,
            "total_unmet": self.total_unmet,
            "hours_with_unmet_demand": self.hours_with_unmet_demand,
            "high_priority_fully_satisfied": self.high_priority_fully_satisfied,
            "high_priority_partially_satisfied": self.high_priority_partially_satisfied,
            "high_priority_unsatisfied": self.high_priority_unsatisfied,
            "capacity_used": self.capacity_used,
            "duration_seconds": self.duration_seconds,
            "unmet_by_priority": {
                str(priority): agents
                for priority, agents in sorted(self.unmet_by_priority.items())
            },
        }


@dataclass(frozen=True)
class ParseMetrics:
    """Outcome of one CSV parse attempt; ``error_type`` is the parse error reason."""

    records_parsed: int
    error_type: Optional[str]
    duration_seconds: float


@dataclass(frozen=True)
class ParserCounters:
    parses_recorded: int
    records_total: int
    errors_total: dict[str, int]
    duration_seconds_total: float
    last_duration_seconds: float

    def to_api_dict(self) -> dict[str, object]:
        return {
            "parses_recorded": self.parses_recorded,
            "records_total": self.records_total,
            "errors_total": dict(sorted(self.errors_total.items())),
            "duration_seconds_total": self.duration_seconds_total,
            "last_duration_seconds": self.last_duration_seconds,
        }


class ScheduleObserver(Protocol):
    def record_schedule(self, metrics: ScheduleMetrics) -> None:
        ...


class ParseObserver(Protocol):
    def record_parse(self, metrics: ParseMetrics) -> None:
        ...


def compute_schedule_metrics(
    schedule: Schedule,
    *,
    customers_processed: int,
    capacity_per_hour: Optional[int],
    duration_seconds: float = 0.0,
) -> ScheduleMetrics:
    """Recompute every counter from the finished schedule.

    Priority-1 entries are counted per hour slot: an entry listed as impacted
    with some allocation is partial, impacted with none is unsatisfied, and any
    other allocated priority-1 entry is fully satisfied.
    """
    total_allocated = 0
    high_priority_allocated = 0
    for requirements in schedule.hourly_requirements:
        for requirement in requirements:
            total_allocated += requirement.agents_needed
            if requirement.priority == HIGH_PRIORITY:
                high_priority_allocated += 1

    total_unmet = 0
    unmet_by_priority: defaultdict[int, int] = defaultdict(int)
    high_priority_outcomes: Counter[str] = Counter()
    for unmet in schedule.unmet_demands:
        total_unmet += unmet.unmet_agents
        for client in unmet.impacted_clients:
            unmet_by_priority[client.priority] += client.unmet_agents
            if client.priority != HIGH_PRIORITY:
                continue
            if client.allocated_agents > 0:
                high_priority_outcomes["partial"] += 1
            else:
                high_priority_outcomes["unsatisfied"] += 1

    capacity_used = total_allocated if capacity_per_hour and capacity_per_hour > 0 else 0
    return ScheduleMetrics(
        customers_processed=customers_processed,
        total_demanded=total_allocated + total_unmet,
        total_allocated=total_allocated,
        total_unmet=total_unmet,
        hours_with_unmet_demand=len(schedule.unmet_demands),
        high_priority_fully_satisfied=high_priority_allocated - high_priority_outcomes["partial"],
        high_priority_partially_satisfied=high_priority_outcomes["partial"],
        high_priority_unsatisfied=high_priority_outcomes["unsatisfied"],
        capacity_used=capacity_used,
        duration_seconds=duration_seconds,
        unmet_by_priority=dict(unmet_by_priority),
    )


class MetricsRecorder:
    """In-memory observer keeping the latest run's metrics and running parser totals."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._latest: ScheduleMetrics | None = None
        self._runs = 0
        self._parses = 0
        self._records_parsed = 0
        self._parse_errors: Counter[str] = Counter()
        self._parse_seconds = 0.0
        self._last_parse_seconds = 0.0

    def record_schedule(self, metrics: ScheduleMetrics) -> None:
        with self._lock:
            self._latest = metrics
            self._runs += 1

    def record_parse(self, metrics: ParseMetrics) -> None:
        with self._lock:
            self._parses += 1
            self._records_parsed += metrics.records_parsed
            if metrics.error_type is not None:
                self._parse_errors[metrics.error_type] += 1
            self._parse_seconds += metrics.duration_seconds
            self._last_parse_seconds = metrics.duration_seconds

    def parser_counters(self) -> ParserCounters:
        with self._lock:
            return ParserCounters(
                parses_recorded=self._parses,
                records_total=self._records_parsed,
                errors_total=dict(self._parse_errors),
                duration_seconds_total=self._parse_seconds,
                last_duration_seconds=self._last_parse_seconds,
            )

    @property
    def latest(self) -> ScheduleMetrics | None:
        with self._lock:
            return self._latest

    @property
    def runs_recorded(self) -> int:
        with self._lock:
            return self._runs
