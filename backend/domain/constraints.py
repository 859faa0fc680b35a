"""Domain-level validation rules for schedule generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ScheduleConfig:
    utilization: float
    capacity_per_hour: Optional[int] = None

    @property
    def is_capacity_constrained(self) -> bool:
        return self.capacity_per_hour is not None and self.capacity_per_hour > 0


def validate_schedule_config(config: ScheduleConfig) -> None:
    if not 0.0 < config.utilization <= 1.0:
        raise ValueError("utilization must be in (0, 1]")
    if config.capacity_per_hour is not None and config.capacity_per_hour < 0:
        raise ValueError("capacity_per_hour must be >= 0")
