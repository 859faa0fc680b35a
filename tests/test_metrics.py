from __future__ import annotations

from zoneinfo import ZoneInfo

from backend.domain.models import HOURS_PER_DAY, HourlyDemand, ImpactedClient, Schedule, UnmetDemand
from backend.services.metrics_service import MetricsRecorder, ParseMetrics, compute_schedule_metrics


UTC_ZONE = ZoneInfo("UTC")


def build_constrained_schedule() -> Schedule:
    hours: list[tuple[HourlyDemand, ...]] = [() for _ in range(HOURS_PER_DAY)]
    hours[9] = (
        HourlyDemand("Alpha", 6, UTC_ZONE, 1),
        HourlyDemand("Beta", 2, UTC_ZONE, 1),
    )
    hours[10] = (
        HourlyDemand("Alpha", 8, UTC_ZONE, 1),
    )
    return Schedule(
        hourly_requirements=tuple(hours),
        unmet_demands=(
            UnmetDemand(
                hour=9,
                total_demand=12,
                allocated_agents=8,
                unmet_agents=4,
                impacted_clients=(ImpactedClient("Beta", 6, 2, 4, 1),),
            ),
            UnmetDemand(
                hour=10,
                total_demand=15,
                allocated_agents=8,
                unmet_agents=7,
                impacted_clients=(
                    ImpactedClient("Beta", 4, 0, 4, 1),
                    ImpactedClient("Gamma", 3, 0, 3, 2),
                ),
            ),
        ),
    )


def test_metrics_are_derived_from_schedule():
    metrics = compute_schedule_metrics(
        build_constrained_schedule(),
        customers_processed=3,
        capacity_per_hour=8,
        duration_seconds=0.25,
    )

    assert metrics.customers_processed == 3
    assert metrics.total_allocated == 16
    assert metrics.total_unmet == 11
    assert metrics.total_demanded == 27
    assert metrics.hours_with_unmet_demand == 2
    assert metrics.high_priority_fully_satisfied == 2
    assert metrics.high_priority_partially_satisfied == 1
    assert metrics.high_priority_unsatisfied == 1
    assert metrics.unmet_by_priority == {1: 8, 2: 3}
    assert metrics.capacity_used == 16
    assert metrics.duration_seconds == 0.25


def test_unconstrained_run_reports_no_capacity_used():
    hours = [() for _ in range(HOURS_PER_DAY)]
    hours[3] = (HourlyDemand("Solo", 5, UTC_ZONE, 2),)
    schedule = Schedule(hourly_requirements=tuple(hours), unmet_demands=())

    metrics = compute_schedule_metrics(schedule, customers_processed=1, capacity_per_hour=0)

    assert metrics.total_demanded == metrics.total_allocated == 5
    assert metrics.total_unmet == 0
    assert metrics.capacity_used == 0
    assert metrics.high_priority_fully_satisfied == 0


def test_api_dict_stringifies_priority_keys():
    metrics = compute_schedule_metrics(
        build_constrained_schedule(),
        customers_processed=3,
        capacity_per_hour=8,
    )

    payload = metrics.to_api_dict()

    assert payload["unmet_by_priority"] == {"1": 8, "2": 3}
    assert payload["total_demanded"] == 27


def test_recorder_keeps_latest_metrics():
    recorder = MetricsRecorder()
    assert recorder.latest is None
    assert recorder.runs_recorded == 0

    first = compute_schedule_metrics(build_constrained_schedule(), customers_processed=1, capacity_per_hour=8)
    second = compute_schedule_metrics(build_constrained_schedule(), customers_processed=2, capacity_per_hour=8)
    recorder.record_schedule(first)
    recorder.record_schedule(second)

    assert recorder.latest is second
    assert recorder.runs_recorded == 2


def test_recorder_accumulates_parser_counters():
    recorder = MetricsRecorder()
    recorder.record_parse(ParseMetrics(records_parsed=4, error_type=None, duration_seconds=0.5))
    recorder.record_parse(ParseMetrics(records_parsed=0, error_type="invalid priority", duration_seconds=0.25))
    recorder.record_parse(ParseMetrics(records_parsed=0, error_type="invalid priority", duration_seconds=0.25))

    counters = recorder.parser_counters()

    assert counters.parses_recorded == 3
    assert counters.records_total == 4
    assert counters.errors_total == {"invalid priority": 2}
    assert counters.duration_seconds_total == 1.0
    assert counters.last_duration_seconds == 0.25
    assert recorder.runs_recorded == 0
