"""Load a spreadsheet export into the tabular store.

Each worksheet whose title matches a known table is copied row by row.
Header cells are matched exactly; columns the table does not define are
dropped and columns the sheet lacks are left blank.
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from weekly_payroll.models import ALL_RECORDS
from weekly_payroll.store.base import Row, StoreError, TabularStore

logger = logging.getLogger(__name__)

KNOWN_TABLES = {record_cls.TABLE: record_cls for record_cls in ALL_RECORDS}


@dataclass
class WorkbookLoadResult:
    loaded: dict[str, int] = field(default_factory=dict)
    skipped_sheets: list[str] = field(default_factory=list)
    dropped_columns: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "loaded": dict(self.loaded),
            "skipped_sheets": list(self.skipped_sheets),
            "dropped_columns": {k: list(v) for k, v in self.dropped_columns.items()},
        }


def cell_text(value: Any) -> str:
    """Render a worksheet cell the way the store holds values."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        if value.time() == time.min:
            return value.date().isoformat()
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(Decimal(str(value)))
    return str(value).strip()


def load_workbook(
    store: TabularStore, content: bytes, *, replace: bool = False
) -> WorkbookLoadResult:
    """Copy every recognised sheet of an XLSX export into ``store``.

    Tables that already hold rows are left alone unless ``replace`` is set,
    in which case their rows are deleted first.
    """
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise StoreError(f"Cannot open workbook: {exc}", code="WORKBOOK_ERROR") from exc

    result = WorkbookLoadResult()
    try:
        for sheet in workbook.worksheets:
            record_cls = KNOWN_TABLES.get(sheet.title)
            if record_cls is None:
                result.skipped_sheets.append(sheet.title)
                continue
            rows = list(sheet.iter_rows(values_only=True))
            if not rows:
                result.loaded[sheet.title] = 0
                continue

            table = record_cls.TABLE
            existing = len(store.scan_rows(table))
            if existing and not replace:
                logger.warning(
                    "Table %s already holds %d rows; sheet not loaded", table, existing
                )
                result.skipped_sheets.append(sheet.title)
                continue
            for index in range(existing - 1, -1, -1):
                store.delete_row(table, index)

            headers = [cell_text(h) for h in rows[0]]
            known = set(store.headers(table))
            dropped = [h for h in headers if h and h not in known]
            if dropped:
                result.dropped_columns[table] = dropped

            count = 0
            for cells in rows[1:]:
                row: Row = {
                    header: cell_text(value)
                    for header, value in zip(headers, cells)
                    if header in known
                }
                if not any(row.values()):
                    continue
                store.append_row(table, row)
                count += 1
            result.loaded[table] = count
            logger.info("Loaded %d rows into %s", count, table)
    finally:
        workbook.close()
    return result
