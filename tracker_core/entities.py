"""Typed records for every collection the store owns.

CSV headers are camelCase (the format the templates and existing exports use);
attributes are snake_case. The ``*_COLUMNS`` maps translate header -> attribute
and list every raw input column; derived metric fields are never columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Optional, Tuple, get_args

FundStatus = Literal["Active", "Harvesting", "Fully Realized"]
CompanyStatus = Literal["Active", "Exited", "Written Off"]
VehicleType = Literal["Truck", "Van", "Bike", "Car"]
VehicleStatus = Literal["Available", "In Transit", "Maintenance"]
ShipmentStatus = Literal["Pending", "Assigned", "Picked Up", "In Transit", "Delivered", "Cancelled"]

FUND_STATUSES: Tuple[str, ...] = get_args(FundStatus)
COMPANY_STATUSES: Tuple[str, ...] = get_args(CompanyStatus)
EXIT_STATUSES: Tuple[str, ...] = ("Exited", "Written Off")
VEHICLE_TYPES: Tuple[str, ...] = get_args(VehicleType)
VEHICLE_STATUSES: Tuple[str, ...] = get_args(VehicleStatus)
SHIPMENT_STATUSES: Tuple[str, ...] = get_args(ShipmentStatus)
CLOSED_SHIPMENT_STATUSES: Tuple[str, ...] = ("Delivered", "Cancelled")


@dataclass(frozen=True)
class Fund:
    name: str
    strategy: str
    vintage: int
    aum: float
    irr: float
    moic: float
    commitments: float
    called: float
    distributed: float
    nav: float
    status: FundStatus
    dpi: float = 0.0
    tvpi: float = 0.0
    id: Optional[str] = None


@dataclass(frozen=True)
class PortfolioCompany:
    name: str
    fund_id: str
    sector: str
    investment_date: str
    initial_investment: float
    current_value: float
    ownership: float
    revenue: float
    ebitda: float
    status: CompanyStatus
    exit_date: Optional[str] = None
    exit_value: Optional[float] = None
    moic: float = 0.0
    irr: Optional[float] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Student:
    first_name: str
    last_name: str
    class_id: str
    email: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Assignment:
    title: str
    due_date: str
    max_points: int
    class_id: str
    description: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Vehicle:
    plate_number: str
    type: VehicleType
    capacity: str
    status: VehicleStatus
    driver_name: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Shipment:
    origin: str
    destination: str
    cargo_description: str
    customer_name: str
    status: ShipmentStatus
    pickup_date: str
    expected_delivery_date: str
    assigned_vehicle_id: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Grade:
    student_id: str
    assignment_id: str
    score: float
    comments: Optional[str] = None
    graded_date: Optional[str] = None
    id: Optional[str] = None


FUND_COLUMNS: Dict[str, str] = {
    "name": "name",
    "strategy": "strategy",
    "vintage": "vintage",
    "aum": "aum",
    "irr": "irr",
    "moic": "moic",
    "commitments": "commitments",
    "called": "called",
    "distributed": "distributed",
    "nav": "nav",
    "status": "status",
}

COMPANY_COLUMNS: Dict[str, str] = {
    "name": "name",
    "fundId": "fund_id",
    "sector": "sector",
    "investmentDate": "investment_date",
    "initialInvestment": "initial_investment",
    "currentValue": "current_value",
    "ownership": "ownership",
    "revenue": "revenue",
    "ebitda": "ebitda",
    "status": "status",
    "exitDate": "exit_date",
    "exitValue": "exit_value",
}

STUDENT_COLUMNS: Dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "classId": "class_id",
}

ASSIGNMENT_COLUMNS: Dict[str, str] = {
    "title": "title",
    "description": "description",
    "dueDate": "due_date",
    "maxPoints": "max_points",
    "classId": "class_id",
}

VEHICLE_COLUMNS: Dict[str, str] = {
    "plateNumber": "plate_number",
    "type": "type",
    "capacity": "capacity",
    "status": "status",
    "driverName": "driver_name",
}

SHIPMENT_COLUMNS: Dict[str, str] = {
    "origin": "origin",
    "destination": "destination",
    "cargoDescription": "cargo_description",
    "customerName": "customer_name",
    "status": "status",
    "assignedVehicleId": "assigned_vehicle_id",
    "pickupDate": "pickup_date",
    "expectedDeliveryDate": "expected_delivery_date",
}

GRADE_COLUMNS: Dict[str, str] = {
    "studentId": "student_id",
    "assignmentId": "assignment_id",
    "score": "score",
    "comments": "comments",
    "gradedDate": "graded_date",
}
