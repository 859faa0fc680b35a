"""HTTP controller layer for staffing schedule generation."""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import (
    get_demand_repository,
    get_metrics_recorder,
    get_scheduling_service,
    require_admin,
)
from backend.domain.models import DemandRecord, Schedule
from backend.repository.demand_repository import (
    DemandParseError,
    DemandRepository,
    resolve_zone_code,
)
from backend.services.formatting_service import prepare_schedule_view, unmet_demand_view
from backend.services.metrics_service import MetricsRecorder
from backend.services.scheduling_service import SchedulingService, ScheduleValidationError
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["schedule"])


class DemandRecordRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    customer_name: str = Field(min_length=1)
    average_handle_time_seconds: int = Field(gt=0)
    start_time: datetime
    end_time: datetime
    time_zone: str | None = None
    number_of_calls: int = Field(ge=0)
    priority: int = Field(ge=1)

    @field_validator("customer_name")
    @classmethod
    def validate_customer_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("customer_name must be non-empty")
        return value.strip()

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_timezone_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("timestamps must include a UTC offset")
        return value

    @field_validator("time_zone")
    @classmethod
    def validate_time_zone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if resolve_zone_code(value) is None:
            raise ValueError(f"unknown time zone: {value}")
        return value.strip()

    def to_domain(self) -> DemandRecord:
        return DemandRecord(
            customer_name=self.customer_name,
            average_handle_time_seconds=self.average_handle_time_seconds,
            start_time=self.start_time,
            end_time=self.end_time,
            home_time_zone=resolve_zone_code(self.time_zone) if self.time_zone else None,
            number_of_calls=self.number_of_calls,
            priority=self.priority,
        )


class ScheduleRequest(BaseModel):
    records: list[DemandRecordRequest]
    utilization: float | None = Field(default=None, gt=0.0, le=1.0)
    capacity_per_hour: int | None = Field(default=None, ge=0)


class CsvScheduleRequest(BaseModel):
    csv_text: str = Field(min_length=1)
    schedule_date: date | None = None
    utilization: float | None = Field(default=None, gt=0.0, le=1.0)
    capacity_per_hour: int | None = Field(default=None, ge=0)


class LocationGroupResponse(BaseModel):
    total: int = Field(ge=0)
    customers: dict[str, int]


class ImpactedClientResponse(BaseModel):
    name: str
    requested_agents: int = Field(ge=0)
    allocated_agents: int = Field(ge=0)
    unmet_agents: int = Field(ge=0)
    priority: int = Field(ge=1)


class UnmetDemandResponse(BaseModel):
    total_demand: int = Field(ge=0)
    allocated_agents: int = Field(ge=0)
    unmet_agents: int = Field(ge=0)
    impacted_clients: list[ImpactedClientResponse]


class HourlyUnmetDemandResponse(UnmetDemandResponse):
    hour: int = Field(ge=0, le=23)


class HourlyScheduleResponse(BaseModel):
    hour: int = Field(ge=0, le=23)
    total: int = Field(ge=0)
    locations: dict[str, LocationGroupResponse] = Field(default_factory=dict)
    unmet_demand: UnmetDemandResponse | None = None


class ScheduleMetricsResponse(BaseModel):
    customers_processed: int = Field(ge=0)
    total_demanded: int = Field(ge=0)
    total_allocated: int = Field(ge=0)
    total_unmet: int = Field(ge=0)
    hours_with_unmet_demand: int = Field(ge=0, le=24)
    high_priority_fully_satisfied: int = Field(ge=0)
    high_priority_partially_satisfied: int = Field(ge=0)
    high_priority_unsatisfied: int = Field(ge=0)
    capacity_used: int = Field(ge=0)
    duration_seconds: float = Field(ge=0.0)
    unmet_by_priority: dict[str, int]


class ParserMetricsResponse(BaseModel):
    parses_recorded: int = Field(ge=0)
    records_total: int = Field(ge=0)
    errors_total: dict[str, int]
    duration_seconds_total: float = Field(ge=0.0)
    last_duration_seconds: float = Field(ge=0.0)


class ScheduleResponse(BaseModel):
    hours: list[HourlyScheduleResponse]
    unmet_demands: list[HourlyUnmetDemandResponse] = Field(default_factory=list)
    metrics: ScheduleMetricsResponse | None = None


def _to_response(schedule: Schedule, recorder: MetricsRecorder) -> ScheduleResponse:
    latest = recorder.latest
    return ScheduleResponse(
        hours=[HourlyScheduleResponse(**view) for view in prepare_schedule_view(schedule)],
        unmet_demands=[
            HourlyUnmetDemandResponse(hour=unmet.hour, **unmet_demand_view(unmet))
            for unmet in schedule.unmet_demands
        ],
        metrics=ScheduleMetricsResponse(**latest.to_api_dict()) if latest is not None else None,
    )


def _build(
    service: SchedulingService,
    records: list[DemandRecord],
    utilization: float | None,
    capacity_per_hour: int | None,
) -> Schedule:
    try:
        return service.build_schedule(
            records,
            utilization=utilization,
            capacity_per_hour=capacity_per_hour,
        )
    except ScheduleValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected scheduling failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate schedule",
        ) from exc


@router.post(
    "/schedule",
    response_model=ScheduleResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
def create_schedule(
    payload: ScheduleRequest,
    service: SchedulingService = Depends(get_scheduling_service),
    recorder: MetricsRecorder = Depends(get_metrics_recorder),
) -> ScheduleResponse:
    """Schedule JSON demand records and return the hourly plan."""
    schedule = _build(
        service,
        [record.to_domain() for record in payload.records],
        payload.utilization,
        payload.capacity_per_hour,
    )
    return _to_response(schedule, recorder)


@router.post(
    "/schedule/csv",
    response_model=ScheduleResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
def create_schedule_from_csv(
    payload: CsvScheduleRequest,
    service: SchedulingService = Depends(get_scheduling_service),
    repository: DemandRepository = Depends(get_demand_repository),
    recorder: MetricsRecorder = Depends(get_metrics_recorder),
) -> ScheduleResponse:
    """Parse forecast CSV text, then schedule it."""
    try:
        records = repository.parse_text(payload.csv_text, schedule_date=payload.schedule_date)
    except DemandParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    schedule = _build(service, records, payload.utilization, payload.capacity_per_hour)
    return _to_response(schedule, recorder)


@router.get(
    "/metrics",
    response_model=ScheduleMetricsResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
def latest_metrics(
    recorder: MetricsRecorder = Depends(get_metrics_recorder),
) -> ScheduleMetricsResponse:
    latest = recorder.latest
    if latest is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No schedule has been generated yet",
        )
    return ScheduleMetricsResponse(**latest.to_api_dict())


@router.get(
    "/metrics/parser",
    response_model=ParserMetricsResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
def parser_metrics(
    recorder: MetricsRecorder = Depends(get_metrics_recorder),
) -> ParserMetricsResponse:
    """Running CSV parser totals: records, errors by reason, parse time."""
    return ParserMetricsResponse(**recorder.parser_counters().to_api_dict())
