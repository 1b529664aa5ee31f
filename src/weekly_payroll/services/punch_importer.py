"""Punch export ingestion.

Parses a clock-device export (CSV or XLSX), deduplicates whole files by
content hash and week, validates clock references against the roster,
persists the punches and hands each matched employee's punches to the
reconciler to produce a pending timesheet.
"""

from __future__ import annotations

import csv
import hashlib
import io
import json
import logging
import zipfile
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, BinaryIO, Callable, Union
from uuid import uuid4

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from weekly_payroll.calculators.reconciler import PunchReconciler, ReconciliationResult
from weekly_payroll.calculators.weeks import week_ending_for
from weekly_payroll.errors import DuplicateError, PunchFileError, UnmatchedEmployeesError
from weekly_payroll.models import (
    Employee,
    ImportBatch,
    ImportStatus,
    PendingTimesheet,
    RawPunch,
    TimesheetSource,
)
from weekly_payroll.store.repositories import Repositories

logger = logging.getLogger(__name__)

PunchSource = Union[str, Path, bytes, BinaryIO]

# Attribute -> lowercase substring looked for in the header cell.
HEADER_PATTERNS: tuple[tuple[str, str], ...] = (
    ("clock_ref", "person id"),
    ("employee_name", "person name"),
    ("department", "department"),
    ("punch_time", "punch time"),
    ("device_label", "device name"),
    ("device_serial", "device serial"),
    ("punch_type", "type"),
    ("source", "source"),
)
REQUIRED_HEADERS = ("clock_ref", "punch_time")
MIN_HEADER_MATCHES = 3

TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
)
XLSX_SUFFIXES = (".xlsx", ".xlsm")
CSV_DELIMITERS = ",;\t|"


@dataclass
class ImportResult:
    """What one successful import produced."""

    import_id: str
    file_hash: str
    week_ending: date
    total_records: int
    matched_employee_count: int
    unmatched_refs: list[str] = field(default_factory=list)
    replaced_import_ids: list[str] = field(default_factory=list)
    timesheets_created: list[int] = field(default_factory=list)
    timesheets_refreshed: list[int] = field(default_factory=list)
    timesheets_skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "import_id": self.import_id,
            "file_hash": self.file_hash,
            "week_ending": self.week_ending.isoformat(),
            "total_records": self.total_records,
            "matched_employee_count": self.matched_employee_count,
            "unmatched_refs": list(self.unmatched_refs),
            "replaced_import_ids": list(self.replaced_import_ids),
            "timesheets_created": list(self.timesheets_created),
            "timesheets_refreshed": list(self.timesheets_refreshed),
            "timesheets_skipped": list(self.timesheets_skipped),
            "warnings": list(self.warnings),
        }


def compute_file_hash(punches: list[RawPunch]) -> str:
    """Order-independent fingerprint of the parsed punch set."""
    canonical = sorted(
        (p.canonical() for p in punches),
        key=lambda c: (c["clock_ref"], c["timestamp"], c["device"]),
    )
    json_str = json.dumps(canonical, sort_keys=True)
    return hashlib.sha256(json_str.encode()).hexdigest()[:32]


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a punch time cell; ``None`` when it is not recognisable."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        pass
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def match_headers(cells: list[Any]) -> dict[str, int]:
    """Map attribute name to column index by case-insensitive substring."""
    mapping: dict[str, int] = {}
    for index, cell in enumerate(cells):
        text = "" if cell is None else str(cell).strip().lower()
        if not text:
            continue
        for attr, needle in HEADER_PATTERNS:
            if attr not in mapping and needle in text:
                mapping[attr] = index
                break
    return mapping


class PunchFileParser:
    """Turns a punch export into RawPunch candidates (not yet persisted)."""

    def __init__(self, clock_skew_hours: float = 0.0):
        self.skew = timedelta(hours=clock_skew_hours)

    def parse(self, content: bytes, file_name: str = "") -> list[RawPunch]:
        rows = self._read_rows(content, file_name)
        header_index, columns = self._locate_header(rows)

        punches: list[RawPunch] = []
        errors: list[str] = []
        for offset, cells in enumerate(rows[header_index + 1 :], start=header_index + 2):
            raw_time = _cell_value(cells, columns, "punch_time")
            clock_ref = _cell_text(cells, columns, "clock_ref")
            if not clock_ref and (raw_time is None or not str(raw_time).strip()):
                continue  # blank line
            if not clock_ref:
                errors.append(f"row {offset}: missing person id")
                continue
            stamp = parse_timestamp(raw_time)
            if stamp is None:
                errors.append(f"row {offset}: unrecognised punch time '{raw_time}'")
                continue
            stamp += self.skew
            punches.append(
                RawPunch(
                    clock_ref=clock_ref,
                    employee_id=None,
                    employee_name=_cell_text(cells, columns, "employee_name"),
                    department=_cell_text(cells, columns, "department"),
                    punch_date=stamp.date(),
                    punch_timestamp=stamp,
                    device_label=_cell_text(cells, columns, "device_label"),
                    device_serial=_cell_text(cells, columns, "device_serial"),
                    punch_type=_cell_text(cells, columns, "punch_type"),
                    source=_cell_text(cells, columns, "source"),
                )
            )

        if errors:
            raise PunchFileError(
                f"{len(errors)} unreadable row(s) in {file_name or 'punch file'}",
                details={"errors": errors[:20]},
            )
        if not punches:
            raise PunchFileError(f"No punch rows found in {file_name or 'punch file'}")
        return punches

    def _read_rows(self, content: bytes, file_name: str) -> list[list[Any]]:
        if file_name.lower().endswith(XLSX_SUFFIXES) or content[:2] == b"PK":
            return self._read_xlsx(content, file_name)
        return self._read_csv(content, file_name)

    @staticmethod
    def _read_xlsx(content: bytes, file_name: str) -> list[list[Any]]:
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
            raise PunchFileError(f"Cannot open workbook {file_name}: {exc}") from exc
        try:
            sheet = workbook.active
            return [list(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()

    @staticmethod
    def _read_csv(content: bytes, file_name: str) -> list[list[Any]]:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = content.decode("latin-1")
        lines = text.splitlines()[:50]
        # A title line carries no delimiter and throws the sniffer off.
        if len(lines) > 1 and not any(d in lines[0] for d in CSV_DELIMITERS):
            lines = lines[1:]
        try:
            sniffed: Any = csv.Sniffer().sniff("\n".join(lines), delimiters=CSV_DELIMITERS)
        except csv.Error:
            sniffed = csv.excel

        candidates = [{"dialect": sniffed}] + [{"delimiter": d} for d in CSV_DELIMITERS]
        first_rows: list[list[Any]] | None = None
        for options in candidates:
            try:
                rows = [row for row in csv.reader(io.StringIO(text), **options)]
            except csv.Error as exc:
                raise PunchFileError(f"Malformed CSV {file_name}: {exc}") from exc
            if first_rows is None:
                first_rows = rows
            if any(len(match_headers(cells)) >= MIN_HEADER_MATCHES for cells in rows[:2]):
                return rows
        return first_rows or []

    @staticmethod
    def _locate_header(rows: list[list[Any]]) -> tuple[int, dict[str, int]]:
        # The export may open with a title line; the header is whichever of
        # the first two rows names enough known columns.
        for index, cells in enumerate(rows[:2]):
            columns = match_headers(cells)
            if len(columns) >= MIN_HEADER_MATCHES:
                missing = [h for h in REQUIRED_HEADERS if h not in columns]
                if missing:
                    raise PunchFileError(
                        "Punch file is missing required columns: "
                        + ", ".join(dict(HEADER_PATTERNS)[m] for m in missing),
                        details={"missing_columns": missing},
                    )
                return index, columns
        raise PunchFileError("Could not find a header row in the punch file")


class PunchImporter:
    """Import pipeline: parse, dedup, validate refs, persist, reconcile."""

    def __init__(
        self,
        repos: Repositories,
        reconciler: PunchReconciler,
        clock_skew_hours: float = 0.0,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.repos = repos
        self.reconciler = reconciler
        self.parser = PunchFileParser(clock_skew_hours)
        self._now = now

    def import_punches(
        self,
        source: PunchSource,
        *,
        file_name: str | None = None,
        override: bool = False,
        week_ending: date | None = None,
        imported_by: str | None = None,
    ) -> ImportResult:
        """Import one punch export.

        Raises:
            PunchFileError: unreadable file; nothing persisted.
            DuplicateError: same content already imported for the week
                (code ``DUPLICATE_IMPORT``); retry with ``override=True``.
            UnmatchedEmployeesError: clock references with no roster
                entry; retry with ``override=True`` after review.
        """
        content, name = read_source(source, file_name)
        punches = self.parser.parse(content, name)
        file_hash = compute_file_hash(punches)
        target_week = week_ending_for(
            week_ending or max(p.punch_date for p in punches)
        )

        active = self.repos.imports.active_for_week(target_week)
        prior = next((b for _, b in active if b.file_hash == file_hash), None)
        if prior is not None and not override:
            raise DuplicateError(
                f"This file was already imported for week ending {target_week} "
                f"as {prior.import_id}",
                code="DUPLICATE_IMPORT",
                details={
                    "prior_import_id": prior.import_id,
                    "week_ending": target_week.isoformat(),
                    "file_hash": file_hash,
                },
            )

        roster = self.repos.employees.clock_ref_map()
        unmatched = sorted({p.clock_ref for p in punches if p.clock_ref not in roster})
        if unmatched and not override:
            report = _unmatched_report(punches, unmatched)
            raise UnmatchedEmployeesError(
                [
                    f"Clock reference {r['clock_ref']} ({r['name'] or 'unknown'}, "
                    f"{r['transactions']} punches) is not on the roster"
                    for r in report
                ],
                details={"unmatched": report, "week_ending": target_week.isoformat()},
            )

        import_id = f"IMP-{uuid4().hex[:12].upper()}"
        for punch in punches:
            punch.import_id = import_id
            employee = roster.get(punch.clock_ref)
            if employee is not None:
                punch.employee_id = employee.id

        matched_ids = {p.employee_id for p in punches if p.employee_id}
        batch = ImportBatch(
            import_id=import_id,
            file_hash=file_hash,
            week_ending=target_week,
            total_records=len(punches),
            matched_employee_count=len(matched_ids),
            unmatched_refs=unmatched,
            status=ImportStatus.ACTIVE,
            imported_at=self._now(),
            imported_by=imported_by,
            file_name=name,
            notes="override" if override else "",
        )
        self.repos.imports.append(batch)

        replaced = []
        for index, old in active:
            old.status = ImportStatus.REPLACED
            old.replaced_by_import_id = import_id
            self.repos.imports.update(index, old)
            replaced.append(old.import_id)

        self.repos.punches.append_many(punches)
        logger.info(
            "Imported %d punches as %s for week ending %s (%d employees, %d unmatched refs)",
            len(punches),
            import_id,
            target_week,
            len(matched_ids),
            len(unmatched),
        )
        if replaced:
            logger.info("Import %s replaced %s", import_id, ", ".join(replaced))

        result = ImportResult(
            import_id=import_id,
            file_hash=file_hash,
            week_ending=target_week,
            total_records=len(punches),
            matched_employee_count=len(matched_ids),
            unmatched_refs=unmatched,
            replaced_import_ids=replaced,
        )

        by_employee: dict[str, list[RawPunch]] = defaultdict(list)
        for punch in punches:
            if punch.employee_id:
                by_employee[punch.employee_id].append(punch)
        employees = {e.id: e for e in roster.values()}
        for employee_id in sorted(by_employee):
            self._reconcile_employee(
                employees[employee_id], by_employee[employee_id], batch, result
            )
        return result

    def _reconcile_employee(
        self,
        employee: Employee,
        punches: list[RawPunch],
        batch: ImportBatch,
        result: ImportResult,
    ) -> None:
        reconciliation = self.reconciler.reconcile(punches)
        for warning in reconciliation.warnings:
            result.warnings.append(f"{employee.ref_name}: {warning}")

        existing = self.repos.timesheets.find_chain(employee.id, batch.week_ending)
        if existing is not None:
            index, timesheet = existing
            if not timesheet.is_editable:
                result.timesheets_skipped.append(employee.ref_name)
                logger.warning(
                    "Timesheet %s for %s week ending %s is %s%s; not refreshed by %s",
                    timesheet.id,
                    employee.ref_name,
                    batch.week_ending,
                    timesheet.status.value,
                    " and locked" if timesheet.is_locked else "",
                    batch.import_id,
                )
                return
            _apply_reconciliation(timesheet, reconciliation, batch.import_id)
            self.repos.timesheets.update(index, timesheet)
            result.timesheets_refreshed.append(timesheet.id)
            return

        timesheet = PendingTimesheet(
            id=self.repos.timesheets.next_id(),
            employee_id=employee.id,
            employee_name=employee.ref_name,
            clock_ref=employee.clock_in_ref,
            week_ending=batch.week_ending,
            source=TimesheetSource.IMPORT,
            created_at=self._now(),
        )
        _apply_reconciliation(timesheet, reconciliation, batch.import_id)
        self.repos.timesheets.append(timesheet)
        result.timesheets_created.append(timesheet.id)


def _apply_reconciliation(
    timesheet: PendingTimesheet, reconciliation: ReconciliationResult, import_id: str
) -> None:
    """Computed values become the editable proposal; overtime starts at zero."""
    timesheet.computed_hours = reconciliation.calculated_total_hours
    timesheet.computed_minutes = reconciliation.calculated_total_minutes
    timesheet.editable_hours = reconciliation.calculated_total_hours
    timesheet.editable_minutes = reconciliation.calculated_total_minutes
    timesheet.lunch_deduction_minutes = reconciliation.lunch_deduction_minutes
    timesheet.aux_deduction_minutes = reconciliation.bathroom_time_minutes
    timesheet.reconciliation_detail = reconciliation.to_detail()
    timesheet.warnings = list(reconciliation.warnings)
    timesheet.import_id = import_id


def _unmatched_report(punches: list[RawPunch], unmatched: list[str]) -> list[dict[str, Any]]:
    counts = Counter(p.clock_ref for p in punches)
    names: dict[str, Counter[str]] = defaultdict(Counter)
    for punch in punches:
        if punch.employee_name:
            names[punch.clock_ref][punch.employee_name] += 1
    return [
        {
            "clock_ref": ref,
            "transactions": counts[ref],
            "name": names[ref].most_common(1)[0][0] if names[ref] else "",
        }
        for ref in unmatched
    ]


def read_source(source: PunchSource, file_name: str | None) -> tuple[bytes, str]:
    if isinstance(source, bytes):
        return source, file_name or ""
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            return path.read_bytes(), file_name or path.name
        except OSError as exc:
            raise PunchFileError(f"Cannot read {path}: {exc}") from exc
    return source.read(), file_name or getattr(source, "name", "") or ""


def _cell_value(cells: list[Any], columns: dict[str, int], attr: str) -> Any:
    index = columns.get(attr)
    if index is None or index >= len(cells):
        return None
    return cells[index]


def _cell_text(cells: list[Any], columns: dict[str, int], attr: str) -> str:
    value = _cell_value(cells, columns, attr)
    return "" if value is None else str(value).strip()
