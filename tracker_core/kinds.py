from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Type

from pydantic import BaseModel

from tracker_core import parsers, schemas
from tracker_core.entities import (
    ASSIGNMENT_COLUMNS,
    CLOSED_SHIPMENT_STATUSES,
    COMPANY_COLUMNS,
    FUND_COLUMNS,
    GRADE_COLUMNS,
    SHIPMENT_COLUMNS,
    STUDENT_COLUMNS,
    VEHICLE_COLUMNS,
    Assignment,
    Fund,
    Grade,
    PortfolioCompany,
    Shipment,
    Student,
    Vehicle,
)


@dataclass(frozen=True)
class Reference:
    attribute: str
    header: str
    target: str
    # "cascade" removes dependents with their parent, "detach" clears the link.
    on_delete: str = "cascade"
    detached_status: Optional[str] = None
    keep_status: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EntityKind:
    name: str
    entity_type: type
    model: Type[BaseModel]
    columns: Dict[str, str]
    required: Tuple[str, ...]
    parser: Callable
    collection_key: str
    references: Tuple[Reference, ...] = ()

    @property
    def optional(self) -> Tuple[str, ...]:
        return tuple(h for h in self.columns if h not in self.required)

    def header_for(self, name: str) -> Optional[str]:
        """Resolve either a CSV header or an attribute name to the CSV header."""
        if name in self.columns:
            return name
        for header, attr in self.columns.items():
            if attr == name:
                return header
        return None


KINDS: Dict[str, EntityKind] = {
    "fund": EntityKind(
        name="fund",
        entity_type=Fund,
        model=schemas.FundModel,
        columns=FUND_COLUMNS,
        required=tuple(FUND_COLUMNS),
        parser=parsers.parse_fund,
        collection_key="pe-funds",
    ),
    "company": EntityKind(
        name="company",
        entity_type=PortfolioCompany,
        model=schemas.PortfolioCompanyModel,
        columns=COMPANY_COLUMNS,
        required=(
            "name",
            "fundId",
            "sector",
            "investmentDate",
            "initialInvestment",
            "ownership",
            "revenue",
            "ebitda",
            "status",
        ),
        parser=parsers.parse_company,
        collection_key="pe-companies",
        references=(Reference(attribute="fund_id", header="fundId", target="fund"),),
    ),
    "student": EntityKind(
        name="student",
        entity_type=Student,
        model=schemas.StudentModel,
        columns=STUDENT_COLUMNS,
        required=("firstName", "lastName", "classId"),
        parser=parsers.parse_student,
        collection_key="spt-students",
    ),
    "assignment": EntityKind(
        name="assignment",
        entity_type=Assignment,
        model=schemas.AssignmentModel,
        columns=ASSIGNMENT_COLUMNS,
        required=("title", "dueDate", "maxPoints", "classId"),
        parser=parsers.parse_assignment,
        collection_key="spt-assignments",
    ),
    "grade": EntityKind(
        name="grade",
        entity_type=Grade,
        model=schemas.GradeModel,
        columns=GRADE_COLUMNS,
        required=("studentId", "assignmentId", "score"),
        parser=parsers.parse_grade,
        collection_key="spt-grades",
        references=(
            Reference(attribute="student_id", header="studentId", target="student"),
            Reference(attribute="assignment_id", header="assignmentId", target="assignment"),
        ),
    ),
    "vehicle": EntityKind(
        name="vehicle",
        entity_type=Vehicle,
        model=schemas.VehicleModel,
        columns=VEHICLE_COLUMNS,
        required=("plateNumber", "type", "capacity", "status"),
        parser=parsers.parse_vehicle,
        collection_key="tms-vehicles",
    ),
    "shipment": EntityKind(
        name="shipment",
        entity_type=Shipment,
        model=schemas.ShipmentModel,
        columns=SHIPMENT_COLUMNS,
        required=(
            "origin",
            "destination",
            "cargoDescription",
            "customerName",
            "status",
            "pickupDate",
            "expectedDeliveryDate",
        ),
        parser=parsers.parse_shipment,
        collection_key="tms-shipments",
        references=(
            Reference(
                attribute="assigned_vehicle_id",
                header="assignedVehicleId",
                target="vehicle",
                on_delete="detach",
                detached_status="Pending",
                keep_status=CLOSED_SHIPMENT_STATUSES,
            ),
        ),
    ),
}


def get_kind(kind: str | EntityKind) -> EntityKind:
    if isinstance(kind, EntityKind):
        return kind
    try:
        return KINDS[kind]
    except KeyError:
        raise KeyError(f"unknown entity kind {kind!r}; expected one of {', '.join(KINDS)}") from None


def dependents_of(target: str) -> Tuple[Tuple[EntityKind, Reference], ...]:
    """Every (kind, reference) pair whose reference points at ``target``."""
    return tuple((k, ref) for k in KINDS.values() for ref in k.references if ref.target == target)
