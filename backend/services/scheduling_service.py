"""Hourly aggregation and schedule assembly over all demand records."""

from __future__ import annotations

import time
from datetime import tzinfo
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from backend.domain.constraints import ScheduleConfig, validate_schedule_config
from backend.domain.models import HOURS_PER_DAY, DemandRecord, HourlyDemand, Schedule, UnmetDemand
from backend.services.allocation_service import allocate_with_capacity
from backend.services.decomposition_service import decompose
from backend.services.metrics_service import (
    ScheduleObserver,
    compute_schedule_metrics,
)
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class ScheduleValidationError(ValueError):
    """Raised when scheduling parameters violate the caller contract."""


def aggregate_hourly_demand(
    records: Iterable[DemandRecord],
    utilization: float,
    default_time_zone: Optional[tzinfo] = None,
) -> list[list[HourlyDemand]]:
    """Bucket every decomposed slice by local hour, in emission order."""
    buckets: list[list[HourlyDemand]] = [[] for _ in range(HOURS_PER_DAY)]
    for record in records:
        for hour_slice in decompose(record, utilization, default_time_zone):
            buckets[hour_slice.local_hour].append(hour_slice.demand)
    return buckets


def generate_schedule(
    records: Iterable[DemandRecord],
    utilization: float,
    capacity_per_hour: Optional[int] = 0,
    *,
    observer: Optional[ScheduleObserver] = None,
    default_time_zone: Optional[tzinfo] = None,
) -> Schedule:
    """Build the 24-hour staffing plan, rationing hours that exceed capacity.

    A capacity of 0 or ``None`` leaves every hour unconstrained.
    """
    config = ScheduleConfig(utilization=utilization, capacity_per_hour=capacity_per_hour)
    try:
        validate_schedule_config(config)
    except ValueError as exc:
        raise ScheduleValidationError(str(exc)) from exc

    started = time.perf_counter()
    record_list = list(records)
    buckets = aggregate_hourly_demand(record_list, utilization, default_time_zone)

    hourly_requirements: list[tuple[HourlyDemand, ...]] = []
    unmet_demands: list[UnmetDemand] = []
    for hour, demands in enumerate(buckets):
        if not config.is_capacity_constrained:
            hourly_requirements.append(tuple(demands))
            continue
        result = allocate_with_capacity(demands, config.capacity_per_hour, hour=hour)
        hourly_requirements.append(result.allocated)
        if result.unmet_demand is not None:
            unmet_demands.append(result.unmet_demand)
            logger.info(
                "Capacity exceeded | hour=%02d | demand=%s | capacity=%s | unmet=%s | impacted=%s",
                hour,
                result.unmet_demand.total_demand,
                result.unmet_demand.allocated_agents,
                result.unmet_demand.unmet_agents,
                len(result.unmet_demand.impacted_clients),
            )

    schedule = Schedule(
        hourly_requirements=tuple(hourly_requirements),
        unmet_demands=tuple(unmet_demands),
    )
    metrics = compute_schedule_metrics(
        schedule,
        customers_processed=len(record_list),
        capacity_per_hour=capacity_per_hour,
        duration_seconds=time.perf_counter() - started,
    )
    logger.info(
        (
            "Schedule generated | customers=%s | demanded=%s | allocated=%s | "
            "unmet=%s | hours_with_unmet=%s"
        ),
        metrics.customers_processed,
        metrics.total_demanded,
        metrics.total_allocated,
        metrics.total_unmet,
        metrics.hours_with_unmet_demand,
    )
    if observer is not None:
        observer.record_schedule(metrics)
    return schedule


def resolve_time_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ScheduleValidationError(f"unknown time zone: {name}") from exc


class SchedulingService:
    """Applies configured defaults around ``generate_schedule``."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        observer: Optional[ScheduleObserver] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._observer = observer

    @property
    def default_time_zone(self) -> ZoneInfo:
        return resolve_time_zone(self._settings.default_time_zone)

    def build_schedule(
        self,
        records: Iterable[DemandRecord],
        *,
        utilization: Optional[float] = None,
        capacity_per_hour: Optional[int] = None,
    ) -> Schedule:
        return generate_schedule(
            records,
            utilization if utilization is not None else self._settings.default_utilization,
            (
                capacity_per_hour
                if capacity_per_hour is not None
                else self._settings.default_capacity_per_hour
            ),
            observer=self._observer,
            default_time_zone=self.default_time_zone,
        )
