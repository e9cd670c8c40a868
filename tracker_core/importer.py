from __future__ import annotations

import csv
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from tracker_core.data import RawRow, decode_text, read_csv_rows, read_json_records, sniff_format
from tracker_core.kinds import EntityKind, get_kind
from tracker_core.parsers import NO_REFERENCES, References, RejectReason, RowRejected, row_mapping
from tracker_core.schema import validate_headers
from tracker_core.settings import DEFAULT_SETTINGS, MetricSettings

logger = logging.getLogger(__name__)


class ImportState(Enum):
    IDLE = "idle"
    HEADER_VALIDATED = "header_validated"
    ROWS_PROCESSING = "rows_processing"
    COMPLETED = "completed"
    ABORTED = "aborted"


class AbortReason(Enum):
    UNREADABLE = "unreadable"
    EMPTY_FILE = "empty_file"
    MISSING_HEADERS = "missing_headers"


class ImportOutcome(Enum):
    IMPORTED = "imported"
    NO_VALID_ROWS = "no_valid_rows"
    ABORTED = "aborted"


class ImportAborted(Exception):
    def __init__(self, reason: AbortReason, detail: str, missing: Tuple[str, ...] = ()) -> None:
        super().__init__(detail)
        self.reason = reason
        self.detail = detail
        self.missing = missing


@dataclass(frozen=True)
class RowFailure:
    row: int
    reason: RejectReason
    detail: str


@dataclass
class ImportReport:
    kind: str
    state: ImportState
    entities: List[Any] = field(default_factory=list)
    failures: List[RowFailure] = field(default_factory=list)
    abort_reason: Optional[AbortReason] = None
    abort_detail: str = ""
    missing_headers: Tuple[str, ...] = ()
    extra_headers: Tuple[str, ...] = ()

    @property
    def imported_count(self) -> int:
        return len(self.entities)

    @property
    def skipped_count(self) -> int:
        return len(self.failures)

    @property
    def outcome(self) -> ImportOutcome:
        if self.state is ImportState.ABORTED:
            return ImportOutcome.ABORTED
        if not self.entities:
            return ImportOutcome.NO_VALID_ROWS
        return ImportOutcome.IMPORTED

    def summary(self) -> str:
        if self.outcome is ImportOutcome.ABORTED:
            return f"Import aborted ({self.abort_reason.value}): {self.abort_detail}"
        text = f"{self.imported_count} imported, {self.skipped_count} skipped"
        if self.failures:
            counts = Counter(f.reason.value for f in self.failures)
            text += ": " + ", ".join(f"{reason} x{n}" for reason, n in counts.items())
        if self.outcome is ImportOutcome.NO_VALID_ROWS:
            text = f"No valid {self.kind} rows found ({text})"
        return text


class ImportPipeline:
    """Single-use import run: Idle -> HeaderValidated -> RowsProcessing -> Completed, or Idle -> Aborted.

    Rows are parsed independently; a rejected row is recorded and skipped. Nothing
    is committed here, the caller merges ``report.entities`` once the run completes.
    """

    def __init__(
        self,
        kind: str | EntityKind,
        *,
        references: References = NO_REFERENCES,
        as_of: Optional[date] = None,
        settings: MetricSettings = DEFAULT_SETTINGS,
    ) -> None:
        self.kind = get_kind(kind)
        self.references = references
        self.as_of = as_of or date.today()
        self.settings = settings
        self.state = ImportState.IDLE

    def run(self, raw: Union[str, bytes], fmt: Optional[str] = None) -> ImportReport:
        if self.state is not ImportState.IDLE:
            raise RuntimeError(f"import pipeline already {self.state.value}")

        try:
            headers, rows = self._read(raw, fmt)
            if not rows:
                raise ImportAborted(AbortReason.EMPTY_FILE, "file is empty or contains only headers")
            check = validate_headers(headers, self.kind.required, self.kind.optional)
            if not check.ok:
                raise ImportAborted(
                    AbortReason.MISSING_HEADERS,
                    f"missing required headers: {', '.join(check.missing)}",
                    missing=check.missing,
                )
        except ImportAborted as exc:
            self.state = ImportState.ABORTED
            logger.warning("%s import aborted: %s", self.kind.name, exc.detail)
            return ImportReport(
                kind=self.kind.name,
                state=self.state,
                abort_reason=exc.reason,
                abort_detail=exc.detail,
                missing_headers=exc.missing,
            )

        self.state = ImportState.HEADER_VALIDATED
        if check.extra:
            logger.info("%s import: ignoring extra columns %s", self.kind.name, ", ".join(check.extra))

        self.state = ImportState.ROWS_PROCESSING
        entities: List[Any] = []
        failures: List[RowFailure] = []
        for row_number, values in rows:
            try:
                entities.append(self._parse(headers, values))
            except RowRejected as exc:
                logger.warning("Skipping %s row %d: %s", self.kind.name, row_number, exc)
                failures.append(RowFailure(row=row_number, reason=exc.reason, detail=exc.detail))

        self.state = ImportState.COMPLETED
        report = ImportReport(
            kind=self.kind.name,
            state=self.state,
            entities=entities,
            failures=failures,
            extra_headers=check.extra,
        )
        logger.info("%s import completed: %s", self.kind.name, report.summary())
        return report

    def _read(self, raw: Union[str, bytes], fmt: Optional[str]) -> Tuple[List[str], List[Tuple[int, RawRow]]]:
        try:
            text = decode_text(raw)
        except UnicodeDecodeError as exc:
            raise ImportAborted(AbortReason.UNREADABLE, f"file is not UTF-8 text: {exc}") from exc

        fmt = (fmt or sniff_format(text)).lower()
        if fmt == "json":
            try:
                return read_json_records(text)
            except ValueError as exc:
                raise ImportAborted(AbortReason.UNREADABLE, f"invalid JSON: {exc}") from exc
        if fmt == "csv":
            try:
                return read_csv_rows(text)
            except csv.Error as exc:
                raise ImportAborted(AbortReason.UNREADABLE, f"invalid CSV: {exc}") from exc
        raise ValueError(f"unsupported import format {fmt!r}")

    def _parse(self, headers: List[str], values: RawRow) -> Any:
        record = values if isinstance(values, dict) else row_mapping(headers, values)
        return self.kind.parser(record, references=self.references, as_of=self.as_of, settings=self.settings)


def import_records(
    kind: str | EntityKind,
    raw: Union[str, bytes],
    *,
    fmt: Optional[str] = None,
    references: References = NO_REFERENCES,
    as_of: Optional[date] = None,
    settings: MetricSettings = DEFAULT_SETTINGS,
) -> ImportReport:
    return ImportPipeline(kind, references=references, as_of=as_of, settings=settings).run(raw, fmt)
