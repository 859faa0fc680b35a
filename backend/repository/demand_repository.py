"""Repository layer that turns forecast CSV input into demand records.

Input rows look like::

    # Customer, AverageCallDurationSeconds, StartTimeET, EndTimeET, NumberOfCalls, Priority
    Stanford Hospital, 300, 9:30AM, 7:30PM, 20000, 1

A ``#`` header whose third column is ``StartTime<CODE>`` selects the zone for
every row after it, until the next such header.
"""

from __future__ import annotations

import csv
import io
import re
import time
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from backend.domain.models import DemandRecord
from backend.services.metrics_service import ParseMetrics, ParseObserver
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

FIELD_COUNT = 6
START_TIME_HEADER_PREFIX = "StartTime"
TIME_ZONE_ALIASES = {
    "PT": "America/Los_Angeles",
    "ET": "America/New_York",
    "CT": "America/Chicago",
    "MT": "America/Denver",
    "UTC": "UTC",
}

_CLOCK_TIME_PATTERN = re.compile(
    r"(?P<hour>[0-9]{1,2})(?::(?P<minute>[0-9]{2}))?(?P<meridiem>AM|PM)"
)
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


class DemandParseError(Exception):
    """Raised when a CSV row cannot become a demand record."""

    reason = "invalid record"

    def __init__(self, line: int, record: Sequence[str], detail: str | None = None) -> None:
        self.line = line
        self.record = list(record)
        self.detail = detail
        message = f"parse error at line {line}: {self.reason}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(f"{message} (record: {self.record})")


class InvalidFieldCountError(DemandParseError):
    reason = "invalid field count"


class EmptyCustomerNameError(DemandParseError):
    reason = "empty customer name"


class InvalidHandleTimeError(DemandParseError):
    reason = "invalid duration"


class InvalidStartTimeError(DemandParseError):
    reason = "invalid start time"


class InvalidEndTimeError(DemandParseError):
    reason = "invalid end time"


class InvalidCallCountError(DemandParseError):
    reason = "invalid number of calls"


class InvalidPriorityError(DemandParseError):
    reason = "invalid priority"


class CsvReadError(DemandParseError):
    reason = "error reading CSV"


class InvalidEncodingError(DemandParseError):
    reason = "invalid text encoding"


def resolve_zone_code(code: str) -> Optional[ZoneInfo]:
    """Map a US shorthand (PT, ET, CT, MT, UTC) or IANA name to a zone."""
    name = code.strip()
    name = TIME_ZONE_ALIASES.get(name, name)
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def _parse_int(value: str) -> int:
    text = value.strip()
    if _INTEGER_PATTERN.fullmatch(text) is None:
        raise ValueError(f"not an integer: {value!r}")
    return int(text)


def _parse_clock_time(value: str, on_date: date, zone: tzinfo) -> datetime:
    match = _CLOCK_TIME_PATTERN.fullmatch(value.strip())
    if match is None:
        raise ValueError(f"expected 3PM or 3:04PM, got {value!r}")
    hour = int(match["hour"])
    minute = int(match["minute"] or 0)
    if not 1 <= hour <= 12 or minute > 59:
        raise ValueError(f"time out of range: {value!r}")
    hour %= 12
    if match["meridiem"] == "PM":
        hour += 12
    return datetime(on_date.year, on_date.month, on_date.day, hour, minute, tzinfo=zone)


def _zone_from_header(row: Sequence[str], default_time_zone: tzinfo) -> Optional[tzinfo]:
    if len(row) < 4:
        return None
    column = row[2].strip()
    if not column.startswith(START_TIME_HEADER_PREFIX):
        return None
    code = column[len(START_TIME_HEADER_PREFIX):]
    zone = resolve_zone_code(code)
    if zone is None:
        logger.warning(
            "Unknown time zone header, using default | code=%s | default=%s",
            code,
            default_time_zone,
        )
        return default_time_zone
    return zone


def _parse_row(row: list[str], line: int, zone: tzinfo, schedule_date: Optional[date]) -> DemandRecord:
    if len(row) != FIELD_COUNT:
        raise InvalidFieldCountError(line, row, f"expected {FIELD_COUNT} fields, got {len(row)}")

    customer_name = row[0].strip()
    if not customer_name:
        raise EmptyCustomerNameError(line, row)

    try:
        handle_time = _parse_int(row[1])
    except ValueError as exc:
        raise InvalidHandleTimeError(line, row, str(exc)) from exc
    if handle_time <= 0:
        raise InvalidHandleTimeError(line, row, "must be a positive number of seconds")

    on_date = schedule_date or datetime.now(zone).date()
    try:
        start_time = _parse_clock_time(row[2], on_date, zone)
    except ValueError as exc:
        raise InvalidStartTimeError(line, row, str(exc)) from exc
    try:
        end_time = _parse_clock_time(row[3], on_date, zone)
    except ValueError as exc:
        raise InvalidEndTimeError(line, row, str(exc)) from exc

    try:
        number_of_calls = _parse_int(row[4])
    except ValueError as exc:
        raise InvalidCallCountError(line, row, str(exc)) from exc
    if number_of_calls < 0:
        raise InvalidCallCountError(line, row, "must be >= 0")

    try:
        priority = _parse_int(row[5])
    except ValueError as exc:
        raise InvalidPriorityError(line, row, str(exc)) from exc
    if priority <= 0:
        raise InvalidPriorityError(line, row, "must be >= 1")

    return DemandRecord(
        customer_name=customer_name,
        average_handle_time_seconds=handle_time,
        start_time=start_time,
        end_time=end_time,
        home_time_zone=zone,
        number_of_calls=number_of_calls,
        priority=priority,
    )


def _read_rows(reader) -> Iterator[list[str]]:
    try:
        yield from reader
    except csv.Error as exc:
        raise CsvReadError(reader.line_num, [], str(exc)) from exc


def decode_demand_bytes(data: bytes) -> str:
    """Decode UTF-8 input (an optional BOM is dropped)."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        line = exc.object[: exc.start].count(b"\n") + 1
        raise InvalidEncodingError(line, [], f"{exc.reason} at byte {exc.start}") from exc


def parse_demand_csv(
    lines: Iterable[str],
    *,
    default_time_zone: tzinfo,
    schedule_date: Optional[date] = None,
) -> list[DemandRecord]:
    """Parse forecast rows; times are anchored to ``schedule_date`` (default: today)."""
    reader = csv.reader(lines, skipinitialspace=True)
    zone = default_time_zone
    records: list[DemandRecord] = []
    for row in _read_rows(reader):
        if not any(field.strip() for field in row):
            continue
        if row[0].lstrip().startswith("#"):
            zone = _zone_from_header(row, default_time_zone) or zone
            continue
        records.append(_parse_row(row, reader.line_num, zone, schedule_date))
    return records


class DemandRepository:
    """Loads demand records from CSV files or in-memory CSV text.

    Every parse attempt, successful or not, is reported to the optional
    ``observer`` with the record count, the error reason and the elapsed time.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        observer: Optional[ParseObserver] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._observer = observer

    @property
    def default_time_zone(self) -> ZoneInfo:
        zone = resolve_zone_code(self._settings.default_time_zone)
        if zone is None:
            raise ValueError(f"unknown default time zone: {self._settings.default_time_zone}")
        return zone

    def _report(self, started: float, records_parsed: int, error_type: str | None = None) -> None:
        if self._observer is None:
            return
        self._observer.record_parse(
            ParseMetrics(
                records_parsed=records_parsed,
                error_type=error_type,
                duration_seconds=time.perf_counter() - started,
            )
        )

    def _parse(self, source: str | bytes, schedule_date: Optional[date]) -> list[DemandRecord]:
        started = time.perf_counter()
        try:
            text = decode_demand_bytes(source) if isinstance(source, bytes) else source
            records = parse_demand_csv(
                io.StringIO(text, newline=""),
                default_time_zone=self.default_time_zone,
                schedule_date=schedule_date,
            )
        except DemandParseError as exc:
            self._report(started, 0, exc.reason)
            raise
        self._report(started, len(records))
        return records

    def parse_text(self, text: str, schedule_date: Optional[date] = None) -> list[DemandRecord]:
        return self._parse(text, schedule_date)

    def load_records(
        self,
        path: str | Path,
        schedule_date: Optional[date] = None,
    ) -> list[DemandRecord]:
        source = Path(path)
        data = source.read_bytes()
        try:
            records = self._parse(data, schedule_date)
        except DemandParseError as exc:
            logger.warning("Demand file rejected | path=%s | error=%s", source, exc)
            raise
        logger.info("Demand file loaded | path=%s | records=%s", source, len(records))
        return records
