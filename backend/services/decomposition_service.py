"""Proportional decomposition of a call window into local-hour demand.

All instant arithmetic happens in UTC. Aware ``datetime`` objects that share a
``ZoneInfo`` subtract and add as naive wall-clock values, which silently drops
the DST offset change; converting to UTC first keeps every step an elapsed hour.
Only the bucket label is read back through the customer's home zone, so a
repeated fall-back hour maps two steps to one label and a skipped spring-forward
hour is never labelled at all.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from backend.domain.models import DemandRecord, HourlyDemand
from backend.utils.logger import get_logger


logger = get_logger(__name__)

ONE_HOUR = timedelta(hours=1)
OVERNIGHT_SHIFT = timedelta(hours=24)
SECONDS_PER_HOUR = 3600.0
_CEIL_PRECISION = 9


@dataclass(frozen=True)
class HourSlice:
    local_hour: int
    demand: HourlyDemand


def _ceil(value: float) -> int:
    # Fractional-hour products carry float noise (5.000000000001 must stay 5).
    return math.ceil(round(value, _CEIL_PRECISION))


def _elapsed_hours(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def _floor_to_clock_hour(moment: datetime) -> datetime:
    """Truncate to the clock hour in the instant's own zone, returned in UTC."""
    return moment.replace(minute=0, second=0, microsecond=0).astimezone(timezone.utc)


def agents_for_calls(calls: float, average_handle_time_seconds: int, utilization: float) -> int:
    """Agents needed to absorb ``calls`` within one hour at the given utilization."""
    raw_agents = _ceil(calls * average_handle_time_seconds / SECONDS_PER_HOUR)
    return _ceil(raw_agents / utilization)


def decompose(
    record: DemandRecord,
    utilization: float = 1.0,
    default_time_zone: Optional[tzinfo] = None,
) -> list[HourSlice]:
    """Split one demand record into per-elapsed-hour agent requirements.

    Utilization must already be validated to lie in (0, 1]. Records whose
    elapsed window is not positive contribute nothing. When the record has no
    home zone the label is read in ``default_time_zone``, falling back to the
    zone the start instant was expressed in.
    """
    start = record.start_time.astimezone(timezone.utc)
    end = record.end_time.astimezone(timezone.utc)
    if end < start:
        end = end + OVERNIGHT_SHIFT

    duration_hours = _elapsed_hours(start, end)
    if duration_hours <= 0:
        logger.debug(
            "Skipping zero-length window | customer=%s | start=%s | end=%s",
            record.customer_name,
            record.start_time.isoformat(),
            record.end_time.isoformat(),
        )
        return []

    calls_per_hour = max(0, record.number_of_calls) / duration_hours

    window_start = _floor_to_clock_hour(record.start_time)
    window_end = _floor_to_clock_hour(end.astimezone(record.end_time.tzinfo))
    if end > window_end:
        window_end = window_end + ONE_HOUR

    label_zone = record.home_time_zone or default_time_zone or record.start_time.tzinfo
    slices: list[HourSlice] = []
    step = window_start
    while step < window_end:
        step_end = step + ONE_HOUR
        overlap_hours = _elapsed_hours(max(start, step), min(end, step_end))
        if overlap_hours > 0:
            agents_needed = agents_for_calls(
                calls_per_hour * overlap_hours,
                record.average_handle_time_seconds,
                utilization,
            )
            slices.append(
                HourSlice(
                    local_hour=step.astimezone(label_zone).hour,
                    demand=HourlyDemand(
                        customer_name=record.customer_name,
                        agents_needed=agents_needed,
                        home_time_zone=record.home_time_zone,
                        priority=record.priority,
                    ),
                )
            )
        step = step_end

    return slices
