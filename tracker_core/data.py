from __future__ import annotations

import csv
import io
import json
import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd


ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")

RawRow = Union[List[str], Dict[str, str]]


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def clean_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def to_number(value: object) -> Optional[float]:
    """Strict numeric coercion: None for blank or anything that is not a finite number."""
    s = clean_cell(value)
    if not s:
        return None
    out = pd.to_numeric(s, errors="coerce")
    if pd.isna(out):
        return None
    out = float(out)
    if not math.isfinite(out):
        return None
    return out


def parse_date(value: object) -> Optional[str]:
    """Parse an ISO-8601 date cell into a YYYY-MM-DD string, None when blank or unparsable."""
    s = clean_cell(value)
    if not s or not ISO_DATE_RE.match(s):
        return None
    ts = pd.to_datetime(s, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date().isoformat()


def to_timestamp(value: object) -> Optional[pd.Timestamp]:
    if isinstance(value, (date, datetime)):
        return pd.Timestamp(value)
    if not isinstance(value, str) or not ISO_DATE_RE.match(value.strip()):
        return None
    ts = pd.to_datetime(value.strip(), errors="coerce")
    if pd.isna(ts):
        return None
    return ts


def decode_text(raw: Union[str, bytes]) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8-sig")
    return raw.lstrip("\ufeff")


def sniff_format(text: str) -> str:
    return "json" if text.lstrip().startswith("[") else "csv"


def read_csv_rows(text: str) -> Tuple[List[str], List[Tuple[int, RawRow]]]:
    """Split CSV text into (header, [(line_number, values), ...]); blank lines are dropped."""
    reader = csv.reader(io.StringIO(text))
    headers: List[str] = []
    rows: List[Tuple[int, RawRow]] = []
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        if not headers:
            headers = [v.strip() for v in values]
            continue
        rows.append((reader.line_num, [v.strip() for v in values]))
    return headers, rows


def read_json_records(text: str) -> Tuple[List[str], List[Tuple[int, RawRow]]]:
    """Read a JSON array of flat objects; the first record's keys act as the header row."""
    payload = json.loads(text)
    if not isinstance(payload, list) or not all(isinstance(r, dict) for r in payload):
        raise ValueError("JSON payload must be an array of objects")
    if not payload:
        return [], []
    headers = [str(k).strip() for k in payload[0].keys()]
    rows: List[Tuple[int, RawRow]] = []
    for idx, record in enumerate(payload, start=2):
        rows.append((idx, {str(k).strip(): clean_cell(v) for k, v in record.items()}))
    return headers, rows
