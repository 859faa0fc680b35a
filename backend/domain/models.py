"""Domain models for hourly staffing demand and capacity rationing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional


HOURS_PER_DAY = 24


@dataclass(frozen=True)
class DemandRecord:
    """One forecast call window for a customer."""

    customer_name: str
    average_handle_time_seconds: int
    start_time: datetime
    end_time: datetime
    home_time_zone: Optional[tzinfo]
    number_of_calls: int
    priority: int


@dataclass(frozen=True)
class HourlyDemand:
    customer_name: str
    agents_needed: int
    home_time_zone: Optional[tzinfo]
    priority: int


@dataclass(frozen=True)
class ImpactedClient:
    customer_name: str
    requested_agents: int
    allocated_agents: int
    unmet_agents: int
    priority: int


@dataclass(frozen=True)
class UnmetDemand:
    hour: int
    total_demand: int
    allocated_agents: int
    unmet_agents: int
    impacted_clients: tuple[ImpactedClient, ...]


@dataclass(frozen=True)
class Schedule:
    """Allocated demand per local hour plus every hour that breached capacity."""

    hourly_requirements: tuple[tuple[HourlyDemand, ...], ...]
    unmet_demands: tuple[UnmetDemand, ...]

    def total_for_hour(self, hour: int) -> int:
        return sum(item.agents_needed for item in self.hourly_requirements[hour])

    def unmet_for_hour(self, hour: int) -> Optional[UnmetDemand]:
        for unmet in self.unmet_demands:
            if unmet.hour == hour:
                return unmet
        return None
