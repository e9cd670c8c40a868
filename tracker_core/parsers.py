from __future__ import annotations

from dataclasses import fields
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence

from tracker_core.data import clean_cell, parse_date, to_number
from tracker_core.entities import (
    COMPANY_STATUSES,
    EXIT_STATUSES,
    FUND_STATUSES,
    SHIPMENT_STATUSES,
    VEHICLE_STATUSES,
    VEHICLE_TYPES,
    Assignment,
    Grade,
    Fund,
    PortfolioCompany,
    Shipment,
    Student,
    Vehicle,
)
from tracker_core.metrics import with_metrics
from tracker_core.settings import DEFAULT_SETTINGS, MetricSettings


class RejectReason(Enum):
    COLUMN_COUNT = "column_count"
    NON_NUMERIC = "non_numeric"
    INVALID_STATUS = "invalid_status"
    MISSING_CONDITIONAL = "missing_conditional"
    MISSING_FIELD = "missing_field"
    INVALID_DATE = "invalid_date"
    OUT_OF_RANGE = "out_of_range"
    DANGLING_REFERENCE = "dangling_reference"


class RowRejected(Exception):
    def __init__(self, reason: RejectReason, detail: str) -> None:
        super().__init__(f"{reason.value}: {detail}")
        self.reason = reason
        self.detail = detail


# Known ids per referenced kind: {"fund": {id: entity, ...}, ...}.
References = Mapping[str, Mapping[str, Any]]

NO_REFERENCES: References = MappingProxyType({})


def row_mapping(headers: Sequence[str], values: Sequence[str]) -> Dict[str, str]:
    if len(values) != len(headers):
        raise RowRejected(
            RejectReason.COLUMN_COUNT,
            f"expected {len(headers)} values, found {len(values)}",
        )
    return {h: clean_cell(v) for h, v in zip(headers, values)}


def _text(row: Mapping[str, Any], header: str, *, required: bool = True) -> Optional[str]:
    s = clean_cell(row.get(header))
    if not s:
        if required:
            raise RowRejected(RejectReason.MISSING_FIELD, f"'{header}' is required")
        return None
    return s


def _number(
    row: Mapping[str, Any],
    header: str,
    *,
    required: bool = True,
    signed: bool = False,
    maximum: Optional[float] = None,
    missing: RejectReason = RejectReason.MISSING_FIELD,
) -> Optional[float]:
    raw = clean_cell(row.get(header))
    if not raw:
        if required:
            raise RowRejected(missing, f"'{header}' is required")
        return None
    value = to_number(raw)
    if value is None:
        raise RowRejected(RejectReason.NON_NUMERIC, f"'{header}' is not a number: {raw!r}")
    if not signed and value < 0:
        raise RowRejected(RejectReason.OUT_OF_RANGE, f"'{header}' must not be negative: {raw}")
    if maximum is not None and value > maximum:
        raise RowRejected(RejectReason.OUT_OF_RANGE, f"'{header}' must not exceed {maximum:g}: {raw}")
    return value


def _integer(row: Mapping[str, Any], header: str) -> int:
    value = _number(row, header)
    if not float(value).is_integer():
        raise RowRejected(RejectReason.OUT_OF_RANGE, f"'{header}' must be a whole number: {value:g}")
    return int(value)


def _date(
    row: Mapping[str, Any],
    header: str,
    *,
    required: bool = True,
    missing: RejectReason = RejectReason.MISSING_FIELD,
) -> Optional[str]:
    raw = clean_cell(row.get(header))
    if not raw:
        if required:
            raise RowRejected(missing, f"'{header}' is required")
        return None
    parsed = parse_date(raw)
    if parsed is None:
        raise RowRejected(RejectReason.INVALID_DATE, f"'{header}' is not a date: {raw!r}")
    return parsed


def _choice(row: Mapping[str, Any], header: str, choices: Sequence[str]) -> str:
    raw = clean_cell(row.get(header))
    if raw not in choices:
        raise RowRejected(
            RejectReason.INVALID_STATUS,
            f"'{header}' must be one of {', '.join(choices)}; got {raw!r}",
        )
    return raw


def _reference(
    row: Mapping[str, Any],
    header: str,
    references: References,
    target: str,
    *,
    required: bool = True,
) -> Optional[str]:
    key = _text(row, header, required=required)
    if key is not None and key not in references.get(target, {}):
        raise RowRejected(RejectReason.DANGLING_REFERENCE, f"'{header}' {key!r} does not exist")
    return key


def parse_fund(
    row: Mapping[str, Any],
    *,
    references: References = NO_REFERENCES,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Fund:
    fund = Fund(
        name=_text(row, "name"),
        strategy=_text(row, "strategy"),
        status=_choice(row, "status", FUND_STATUSES),
        vintage=_integer(row, "vintage"),
        aum=_number(row, "aum"),
        irr=_number(row, "irr", signed=True),
        moic=_number(row, "moic"),
        commitments=_number(row, "commitments"),
        called=_number(row, "called"),
        distributed=_number(row, "distributed"),
        nav=_number(row, "nav"),
    )
    return with_metrics(fund, settings=settings)


def parse_company(
    row: Mapping[str, Any],
    *,
    references: References = NO_REFERENCES,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> PortfolioCompany:
    name = _text(row, "name")
    sector = _text(row, "sector")
    status = _choice(row, "status", COMPANY_STATUSES)
    investment_date = _date(row, "investmentDate")
    initial_investment = _number(row, "initialInvestment")
    ownership = _number(row, "ownership", maximum=100.0)
    revenue = _number(row, "revenue")
    ebitda = _number(row, "ebitda", signed=True)

    exit_date: Optional[str] = None
    exit_value: Optional[float] = None
    if status in EXIT_STATUSES:
        # currentValue is ignored for closed positions; they are valued at exit.
        exit_date = _date(row, "exitDate", missing=RejectReason.MISSING_CONDITIONAL)
        exit_value = _number(row, "exitValue", missing=RejectReason.MISSING_CONDITIONAL)
        current_value = exit_value
    else:
        current_value = _number(row, "currentValue", required=False) or 0.0

    fund_id = _reference(row, "fundId", references, "fund")

    company = PortfolioCompany(
        name=name,
        fund_id=fund_id,
        sector=sector,
        investment_date=investment_date,
        initial_investment=initial_investment,
        current_value=current_value,
        ownership=ownership,
        revenue=revenue,
        ebitda=ebitda,
        status=status,
        exit_date=exit_date,
        exit_value=exit_value,
    )
    return with_metrics(company, as_of=as_of, settings=settings)


def parse_student(
    row: Mapping[str, Any],
    *,
    references: References = NO_REFERENCES,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Student:
    return Student(
        first_name=_text(row, "firstName"),
        last_name=_text(row, "lastName"),
        class_id=_text(row, "classId"),
        email=_text(row, "email", required=False),
    )


def parse_assignment(
    row: Mapping[str, Any],
    *,
    references: References = NO_REFERENCES,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Assignment:
    return Assignment(
        title=_text(row, "title"),
        due_date=_date(row, "dueDate"),
        max_points=_integer(row, "maxPoints"),
        class_id=_text(row, "classId"),
        description=_text(row, "description", required=False),
    )


def parse_grade(
    row: Mapping[str, Any],
    *,
    references: References = NO_REFERENCES,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Grade:
    """Score one student on one assignment; the score is capped by the assignment's max points."""
    score = _number(row, "score")
    student_id = _reference(row, "studentId", references, "student")
    assignment_id = _reference(row, "assignmentId", references, "assignment")
    assignment = references.get("assignment", {}).get(assignment_id)
    max_points = getattr(assignment, "max_points", None)
    if max_points is not None and score > max_points:
        raise RowRejected(RejectReason.OUT_OF_RANGE, f"'score' must be between 0 and {max_points}: {score:g}")
    graded_date = _date(row, "gradedDate", required=False) or (as_of or date.today()).isoformat()
    return Grade(
        student_id=student_id,
        assignment_id=assignment_id,
        score=score,
        comments=_text(row, "comments", required=False),
        graded_date=graded_date,
    )


def parse_vehicle(
    row: Mapping[str, Any],
    *,
    references: References = NO_REFERENCES,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Vehicle:
    return Vehicle(
        plate_number=_text(row, "plateNumber"),
        type=_choice(row, "type", VEHICLE_TYPES),
        capacity=_text(row, "capacity"),
        status=_choice(row, "status", VEHICLE_STATUSES),
        driver_name=_text(row, "driverName", required=False),
    )


def parse_shipment(
    row: Mapping[str, Any],
    *,
    references: References = NO_REFERENCES,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> Shipment:
    return Shipment(
        origin=_text(row, "origin"),
        destination=_text(row, "destination"),
        cargo_description=_text(row, "cargoDescription"),
        customer_name=_text(row, "customerName"),
        status=_choice(row, "status", SHIPMENT_STATUSES),
        pickup_date=_date(row, "pickupDate"),
        expected_delivery_date=_date(row, "expectedDeliveryDate"),
        assigned_vehicle_id=_reference(row, "assignedVehicleId", references, "vehicle", required=False),
    )


def entity_to_row(entity: Any, columns: Mapping[str, str]) -> Dict[str, str]:
    """Inverse of the parsers: the raw header -> string mapping an entity was built from."""
    names = {f.name for f in fields(entity)}
    row: Dict[str, str] = {}
    for header, attr in columns.items():
        if attr not in names:
            continue
        value = getattr(entity, attr)
        row[header] = "" if value is None else str(value)
    return row
