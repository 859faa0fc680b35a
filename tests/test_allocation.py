from __future__ import annotations

from zoneinfo import ZoneInfo

from backend.domain.models import HourlyDemand
from backend.services.allocation_service import allocate_with_capacity


UTC_ZONE = ZoneInfo("UTC")


def demand(name: str, agents: int, priority: int) -> HourlyDemand:
    return HourlyDemand(
        customer_name=name,
        agents_needed=agents,
        home_time_zone=UTC_ZONE,
        priority=priority,
    )


def allocated_by_name(result) -> dict[str, int]:
    return {item.customer_name: item.agents_needed for item in result.allocated}


def test_empty_hour_returns_empty_allocation():
    result = allocate_with_capacity([], 10, hour=3)

    assert result.allocated == ()
    assert result.unmet_demand is None


def test_fast_path_keeps_entries_unchanged():
    demands = [demand("b", 4, 2), demand("a", 6, 1)]

    result = allocate_with_capacity(demands, 10)

    assert list(result.allocated) == demands
    assert result.unmet_demand is None


def test_unlimited_capacity_never_rations():
    demands = [demand("a", 400, 3), demand("b", 600, 1)]

    result = allocate_with_capacity(demands, None)

    assert list(result.allocated) == demands
    assert result.unmet_demand is None


def test_partial_allocation_for_lower_priority():
    demands = [demand("HighPriority", 10, 1), demand("LowPriority", 10, 2)]

    result = allocate_with_capacity(demands, 15, hour=10)

    assert allocated_by_name(result) == {"HighPriority": 10, "LowPriority": 5}
    unmet = result.unmet_demand
    assert unmet is not None
    assert unmet.hour == 10
    assert unmet.total_demand == 20
    assert unmet.allocated_agents == 15
    assert unmet.unmet_agents == 5
    assert len(unmet.impacted_clients) == 1
    client = unmet.impacted_clients[0]
    assert client.customer_name == "LowPriority"
    assert (client.requested_agents, client.allocated_agents, client.unmet_agents) == (10, 5, 5)
    assert client.priority == 2


def test_sorted_by_priority_before_filling():
    demands = [demand("low", 8, 3), demand("mid", 5, 2), demand("top", 4, 1)]

    result = allocate_with_capacity(demands, 6)

    assert [item.customer_name for item in result.allocated] == ["top", "mid"]
    assert allocated_by_name(result) == {"top": 4, "mid": 2}
    impacted = result.unmet_demand.impacted_clients
    assert [client.customer_name for client in impacted] == ["mid", "low"]
    assert impacted[1].allocated_agents == 0
    assert impacted[1].unmet_agents == 8


def test_exhausted_capacity_drops_later_entries_from_allocation():
    demands = [demand("a", 5, 1), demand("b", 3, 2), demand("c", 2, 3)]

    result = allocate_with_capacity(demands, 5)

    assert allocated_by_name(result) == {"a": 5}
    assert [c.customer_name for c in result.unmet_demand.impacted_clients] == ["b", "c"]


def test_equal_priority_keeps_aggregation_order():
    demands = [demand("zeta", 6, 1), demand("alpha", 6, 1)]

    result = allocate_with_capacity(demands, 8)

    assert [(item.customer_name, item.agents_needed) for item in result.allocated] == [
        ("zeta", 6),
        ("alpha", 2),
    ]


def test_higher_priority_is_not_skipped_for_a_better_fit():
    demands = [demand("big", 10, 1), demand("small", 2, 2)]

    result = allocate_with_capacity(demands, 3)

    assert allocated_by_name(result) == {"big": 3}
    assert [c.customer_name for c in result.unmet_demand.impacted_clients] == ["big", "small"]


def test_zero_need_entries_are_never_impacted():
    demands = [demand("busy", 10, 1), demand("idle", 0, 2)]

    result = allocate_with_capacity(demands, 4)

    assert allocated_by_name(result) == {"busy": 4, "idle": 0}
    assert [c.customer_name for c in result.unmet_demand.impacted_clients] == ["busy"]


def test_fall_back_duplicates_are_rationed_independently():
    demands = [demand("dup", 3, 1), demand("dup", 3, 1)]

    result = allocate_with_capacity(demands, 4)

    assert [item.agents_needed for item in result.allocated] == [3, 1]
    (client,) = result.unmet_demand.impacted_clients
    assert (client.requested_agents, client.allocated_agents, client.unmet_agents) == (3, 1, 2)


def test_input_list_is_not_mutated():
    demands = [demand("low", 5, 2), demand("high", 5, 1)]
    snapshot = list(demands)

    allocate_with_capacity(demands, 6)

    assert demands == snapshot


def test_conservation_and_priority_monotonicity():
    demands = [
        demand("a", 7, 2),
        demand("b", 3, 1),
        demand("c", 9, 3),
        demand("d", 4, 2),
        demand("e", 1, 1),
    ]
    total = sum(item.agents_needed for item in demands)

    for capacity in range(1, total + 2):
        result = allocate_with_capacity(demands, capacity)
        allocated_total = sum(item.agents_needed for item in result.allocated)
        unmet_total = result.unmet_demand.unmet_agents if result.unmet_demand else 0

        assert allocated_total + unmet_total == total
        assert allocated_total <= capacity

        short = {c.priority for c in result.unmet_demand.impacted_clients} if result.unmet_demand else set()
        if short:
            worst_served = min(short)
            for client in result.unmet_demand.impacted_clients:
                if client.priority > worst_served:
                    assert client.allocated_agents == 0
            for item in result.allocated:
                if item.priority > worst_served:
                    assert item.agents_needed == 0
            for client in result.unmet_demand.impacted_clients:
                assert client.unmet_agents == client.requested_agents - client.allocated_agents
