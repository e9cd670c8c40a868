from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from tracker_core.entities import (
    CompanyStatus,
    FundStatus,
    ShipmentStatus,
    VehicleStatus,
    VehicleType,
)


class StoredModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)


class FundModel(StoredModel):
    name: str
    strategy: str
    vintage: int
    aum: float = Field(ge=0)
    irr: float
    moic: float = Field(ge=0)
    commitments: float = Field(ge=0)
    called: float = Field(ge=0)
    distributed: float = Field(ge=0)
    nav: float = Field(ge=0)
    status: FundStatus
    dpi: float = 0.0
    tvpi: float = 0.0


class PortfolioCompanyModel(StoredModel):
    name: str
    fund_id: str
    sector: str
    investment_date: str
    initial_investment: float = Field(ge=0)
    current_value: float = Field(ge=0)
    ownership: float = Field(ge=0, le=100)
    revenue: float = Field(ge=0)
    ebitda: float
    status: CompanyStatus
    exit_date: Optional[str] = None
    exit_value: Optional[float] = Field(default=None, ge=0)
    moic: float = 0.0
    irr: Optional[float] = None


class StudentModel(StoredModel):
    first_name: str
    last_name: str
    class_id: str
    email: Optional[str] = None


class AssignmentModel(StoredModel):
    title: str
    due_date: str
    max_points: int = Field(ge=0)
    class_id: str
    description: Optional[str] = None


class VehicleModel(StoredModel):
    plate_number: str
    type: VehicleType
    capacity: str
    status: VehicleStatus
    driver_name: Optional[str] = None


class ShipmentModel(StoredModel):
    origin: str
    destination: str
    cargo_description: str
    customer_name: str
    status: ShipmentStatus
    pickup_date: str
    expected_delivery_date: str
    assigned_vehicle_id: Optional[str] = None


class GradeModel(StoredModel):
    student_id: str
    assignment_id: str
    score: float = Field(ge=0)
    comments: Optional[str] = None
    graded_date: Optional[str] = None
