"""Rendering of a finished schedule as text, JSON or CSV."""

from __future__ import annotations

import json
from datetime import tzinfo
from typing import Any, Optional

import pandas as pd

from backend.domain.models import Schedule, UnmetDemand


OUTPUT_FORMATS = ("text", "json", "csv")
UNKNOWN_ZONE = "UNKNOWN"
CSV_COLUMNS = [
    "Hour",
    "Total Agents",
    "Locations",
    "Customer Details",
    "Capacity Warning",
    "Total Demand",
    "Allocated",
    "Unmet",
    "Impacted Clients",
]


def zone_label(zone: Optional[tzinfo]) -> str:
    if zone is None:
        return UNKNOWN_ZONE
    return getattr(zone, "key", None) or str(zone)


def unmet_demand_view(unmet: UnmetDemand) -> dict[str, Any]:
    return {
        "total_demand": unmet.total_demand,
        "allocated_agents": unmet.allocated_agents,
        "unmet_agents": unmet.unmet_agents,
        "impacted_clients": [
            {
                "name": client.customer_name,
                "requested_agents": client.requested_agents,
                "allocated_agents": client.allocated_agents,
                "unmet_agents": client.unmet_agents,
                "priority": client.priority,
            }
            for client in unmet.impacted_clients
        ],
    }


def prepare_schedule_view(schedule: Schedule) -> list[dict[str, Any]]:
    """Group each hour's allocation by zone, summing repeated customer entries."""
    views: list[dict[str, Any]] = []
    for hour, requirements in enumerate(schedule.hourly_requirements):
        locations: dict[str, dict[str, Any]] = {}
        total = 0
        for requirement in requirements:
            group = locations.setdefault(
                zone_label(requirement.home_time_zone),
                {"total": 0, "customers": {}},
            )
            customers = group["customers"]
            customers[requirement.customer_name] = (
                customers.get(requirement.customer_name, 0) + requirement.agents_needed
            )
            group["total"] += requirement.agents_needed
            total += requirement.agents_needed

        view: dict[str, Any] = {"hour": hour, "total": total}
        if locations:
            view["locations"] = {
                name: {
                    "total": locations[name]["total"],
                    "customers": dict(sorted(locations[name]["customers"].items())),
                }
                for name in sorted(locations)
            }
        unmet = schedule.unmet_for_hour(hour)
        if unmet is not None:
            view["unmet_demand"] = unmet_demand_view(unmet)
        views.append(view)
    return views


def _format_text_line(view: dict[str, Any]) -> str:
    hour = view["hour"]
    if view["total"] == 0:
        return f"{hour:02d}:00 : total=0 ; none"

    parts = []
    for name, group in view["locations"].items():
        pieces = [f"total={group['total']}"]
        pieces.extend(f"{customer}={agents}" for customer, agents in group["customers"].items())
        parts.append(f"{name}: {', '.join(pieces)}")
    return f"{hour:02d}:00 : total={view['total']} ; [{', '.join(parts)}]"


def format_text(schedule: Schedule) -> str:
    lines: list[str] = []
    for view in prepare_schedule_view(schedule):
        lines.append(_format_text_line(view))
        unmet = view.get("unmet_demand")
        if unmet is None:
            continue
        lines.append(
            "  ⚠️  CAPACITY WARNING: "
            f"Demand={unmet['total_demand']}, "
            f"Allocated={unmet['allocated_agents']}, "
            f"Unmet={unmet['unmet_agents']}"
        )
        lines.append("  Impacted clients:")
        for client in unmet["impacted_clients"]:
            lines.append(
                f"    • {client['name']} [Priority {client['priority']}]: "
                f"Requested={client['requested_agents']}, "
                f"Allocated={client['allocated_agents']}, "
                f"Unmet={client['unmet_agents']}"
            )
    return "\n".join(lines) + "\n"


def format_json(schedule: Schedule) -> str:
    return json.dumps(prepare_schedule_view(schedule), indent=2, ensure_ascii=False)


def _csv_row(view: dict[str, Any]) -> list[str]:
    hour_label = f"{view['hour']:02d}:00"
    if view["total"] == 0:
        return [hour_label, "0", "", "", "No", "", "", "", ""]

    locations = view["locations"]
    details = [
        f"{customer}({name},agents={agents})"
        for name, group in locations.items()
        for customer, agents in group["customers"].items()
    ]
    row = [hour_label, str(view["total"]), "; ".join(locations), "; ".join(details)]

    unmet = view.get("unmet_demand")
    if unmet is None:
        return row + ["No", "", "", "", ""]
    impacted = "; ".join(
        f"{client['name']}(priority={client['priority']},requested={client['requested_agents']},"
        f"allocated={client['allocated_agents']},unmet={client['unmet_agents']})"
        for client in unmet["impacted_clients"]
    )
    return row + [
        "Yes",
        str(unmet["total_demand"]),
        str(unmet["allocated_agents"]),
        str(unmet["unmet_agents"]),
        impacted,
    ]


def format_csv(schedule: Schedule) -> str:
    frame = pd.DataFrame(
        [_csv_row(view) for view in prepare_schedule_view(schedule)],
        columns=CSV_COLUMNS,
    )
    return frame.to_csv(index=False, lineterminator="\n")


def format_schedule(schedule: Schedule, output_format: str) -> str:
    if output_format == "json":
        return format_json(schedule)
    if output_format == "csv":
        return format_csv(schedule)
    if output_format == "text":
        return format_text(schedule)
    raise ValueError(f"format must be one of: {', '.join(OUTPUT_FORMATS)} (got: {output_format})")
