"""Priority-ordered rationing of one hour's demand under a capacity ceiling."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence

from backend.domain.models import HourlyDemand, ImpactedClient, UnmetDemand


@dataclass(frozen=True)
class AllocationResult:
    allocated: tuple[HourlyDemand, ...]
    unmet_demand: Optional[UnmetDemand]


def allocate_with_capacity(
    demands: Sequence[HourlyDemand],
    capacity: Optional[int],
    *,
    hour: int = 0,
) -> AllocationResult:
    """Fill the hour greedily in priority order until capacity runs out.

    ``capacity=None`` means unlimited. Entries of equal priority keep the order
    they were aggregated in (``sorted`` is stable); there is no secondary key.
    Each entry is satisfied in full before the next one is considered, so the
    first entry that does not fit takes whatever is left and everything after
    it gets nothing.
    """
    if not demands:
        return AllocationResult(allocated=(), unmet_demand=None)

    total_demand = sum(demand.agents_needed for demand in demands)
    if capacity is None or capacity >= total_demand:
        return AllocationResult(allocated=tuple(demands), unmet_demand=None)

    ordered = sorted(demands, key=lambda demand: demand.priority)
    allocated: list[HourlyDemand] = []
    impacted: list[ImpactedClient] = []
    remaining = capacity

    for demand in ordered:
        if remaining >= demand.agents_needed:
            allocated.append(demand)
            remaining -= demand.agents_needed
        elif remaining > 0:
            allocated.append(replace(demand, agents_needed=remaining))
            impacted.append(
                ImpactedClient(
                    customer_name=demand.customer_name,
                    requested_agents=demand.agents_needed,
                    allocated_agents=remaining,
                    unmet_agents=demand.agents_needed - remaining,
                    priority=demand.priority,
                )
            )
            remaining = 0
        else:
            impacted.append(
                ImpactedClient(
                    customer_name=demand.customer_name,
                    requested_agents=demand.agents_needed,
                    allocated_agents=0,
                    unmet_agents=demand.agents_needed,
                    priority=demand.priority,
                )
            )

    if not impacted:
        return AllocationResult(allocated=tuple(allocated), unmet_demand=None)

    return AllocationResult(
        allocated=tuple(allocated),
        unmet_demand=UnmetDemand(
            hour=hour,
            total_demand=total_demand,
            allocated_agents=capacity,
            unmet_agents=total_demand - capacity,
            impacted_clients=tuple(impacted),
        ),
    )
