"""In-memory tabular store, used by tests and dry runs."""

from __future__ import annotations

from weekly_payroll.store.base import (
    Row,
    RowIndexError,
    TableNotFoundError,
    check_row_columns,
)


class InMemoryTabularStore:
    """Dict-of-lists implementation of the TabularStore protocol."""

    def __init__(self, tables: dict[str, list[str]] | None = None):
        self._headers: dict[str, list[str]] = {}
        self._rows: dict[str, list[Row]] = {}
        for name, headers in (tables or {}).items():
            self.create_table(name, headers)

    def create_table(self, table: str, headers: list[str]) -> None:
        """Create an empty table (no-op if it already exists)."""
        if table in self._headers:
            return
        self._headers[table] = list(headers)
        self._rows[table] = []

    def drop_table(self, table: str) -> None:
        self._headers.pop(table, None)
        self._rows.pop(table, None)

    def _table(self, table: str) -> list[Row]:
        if table not in self._rows:
            raise TableNotFoundError(table)
        return self._rows[table]

    def headers(self, table: str) -> list[str]:
        self._table(table)
        return list(self._headers[table])

    def append_row(self, table: str, row: Row) -> int:
        rows = self._table(table)
        headers = self._headers[table]
        check_row_columns(table, headers, row)
        rows.append({h: row.get(h, "") for h in headers})
        return len(rows) - 1

    def scan_rows(self, table: str) -> list[Row]:
        return [dict(r) for r in self._table(table)]

    def update_row(self, table: str, row_index: int, row: Row) -> None:
        rows = self._table(table)
        if not 0 <= row_index < len(rows):
            raise RowIndexError(table, row_index)
        headers = self._headers[table]
        check_row_columns(table, headers, row)
        rows[row_index] = {h: row.get(h, "") for h in headers}

    def delete_row(self, table: str, row_index: int) -> None:
        rows = self._table(table)
        if not 0 <= row_index < len(rows):
            raise RowIndexError(table, row_index)
        del rows[row_index]
