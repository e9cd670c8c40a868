from __future__ import annotations

from typing import Dict, List

import pandas as pd

from tracker_core.kinds import EntityKind, get_kind


def _template_rows(fund_id: str, student_id: str, assignment_id: str) -> Dict[str, List[Dict[str, str]]]:
    return {
        "fund": [
            {
                "name": "Fund Name",
                "strategy": "Buyout",
                "vintage": "2022",
                "aum": "500",
                "irr": "15",
                "moic": "1.5",
                "commitments": "550",
                "called": "300",
                "distributed": "100",
                "nav": "350",
                "status": "Active",
            }
        ],
        "company": [
            {
                "name": "Company A",
                "fundId": fund_id,
                "sector": "Technology",
                "investmentDate": "2021-03-15",
                "initialInvestment": "25",
                "currentValue": "40",
                "ownership": "35",
                "revenue": "120",
                "ebitda": "18",
                "status": "Active",
                "exitDate": "",
                "exitValue": "",
            },
            {
                "name": "Company B",
                "fundId": fund_id,
                "sector": "Healthcare",
                "investmentDate": "2020-06-01",
                "initialInvestment": "20",
                "currentValue": "",
                "ownership": "40",
                "revenue": "80",
                "ebitda": "-2",
                "status": "Exited",
                "exitDate": "2023-05-01",
                "exitValue": "40",
            },
        ],
        "student": [
            {"firstName": "Ada", "lastName": "Lovelace", "email": "ada@example.com", "classId": "class-1"}
        ],
        "assignment": [
            {
                "title": "Essay 1",
                "description": "Short essay",
                "dueDate": "2024-09-30",
                "maxPoints": "100",
                "classId": "class-1",
            }
        ],
        "grade": [
            {
                "studentId": student_id,
                "assignmentId": assignment_id,
                "score": "85",
                "comments": "Clear argument",
                "gradedDate": "2024-10-02",
            }
        ],
        "vehicle": [
            {
                "plateNumber": "ABC-123",
                "type": "Truck",
                "capacity": "10t",
                "status": "Available",
                "driverName": "Sam Driver",
            }
        ],
        "shipment": [
            {
                "origin": "Warehouse A",
                "destination": "Store B",
                "cargoDescription": "Pallets",
                "customerName": "Acme Corp",
                "status": "Pending",
                "assignedVehicleId": "",
                "pickupDate": "2024-10-01",
                "expectedDeliveryDate": "2024-10-03",
            }
        ],
    }


def build_template(
    kind: str | EntityKind,
    *,
    fund_id: str = "fund-1",
    student_id: str = "student-1",
    assignment_id: str = "assignment-1",
) -> str:
    """CSV text with every column of ``kind`` and example row(s).

    Company and grade rows reference the given ids, which must exist before the template imports.
    """
    kind = get_kind(kind)
    rows = _template_rows(fund_id, student_id, assignment_id)[kind.name]
    return pd.DataFrame(rows, columns=list(kind.columns)).to_csv(index=False)
