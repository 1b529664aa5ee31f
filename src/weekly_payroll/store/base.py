"""Tabular store collaborator interface.

The store is a set of append-only, header-addressed tables with no
secondary indices. Rows are plain ``dict[str, str]`` keyed by column
header and addressed by their 0-based position in scan order. All lookups
above this layer are full scans.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from weekly_payroll.errors import PayrollError

Row = dict[str, str]


class StoreError(PayrollError):
    """Base class for storage collaborator failures."""

    code = "STORE_ERROR"


class TableNotFoundError(StoreError):
    """The named table does not exist in the store."""

    code = "TABLE_NOT_FOUND"

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Table '{table}' not found", details={"table": table})


class MissingColumnsError(StoreError):
    """A table lacks one or more columns that a caller depends on."""

    code = "MISSING_COLUMNS"

    def __init__(self, table: str, columns: list[str]):
        self.table = table
        self.columns = columns
        super().__init__(
            f"Table '{table}' is missing columns: {', '.join(columns)}",
            details={"table": table, "columns": columns},
        )


class RowIndexError(StoreError):
    """Row index is outside the table."""

    code = "ROW_INDEX_ERROR"

    def __init__(self, table: str, row_index: int):
        super().__init__(
            f"Row {row_index} does not exist in table '{table}'",
            details={"table": table, "row_index": row_index},
        )


@runtime_checkable
class TabularStore(Protocol):
    """Header-addressed table storage."""

    def headers(self, table: str) -> list[str]:
        """Return the column headers of a table."""
        ...

    def append_row(self, table: str, row: Row) -> int:
        """Append a row and return its index."""
        ...

    def scan_rows(self, table: str) -> list[Row]:
        """Return every row of a table in storage order."""
        ...

    def update_row(self, table: str, row_index: int, row: Row) -> None:
        """Overwrite the row at ``row_index``."""
        ...

    def delete_row(self, table: str, row_index: int) -> None:
        """Delete the row at ``row_index``; later rows shift up by one."""
        ...


def require_columns(store: TabularStore, table: str, columns: list[str]) -> None:
    """Raise MissingColumnsError unless ``table`` has all ``columns``."""
    present = set(store.headers(table))
    missing = [c for c in columns if c not in present]
    if missing:
        raise MissingColumnsError(table, missing)


def check_row_columns(table: str, headers: list[str], row: Row) -> None:
    """Reject rows that address columns the table does not define."""
    unknown = [k for k in row if k not in headers]
    if unknown:
        raise MissingColumnsError(table, unknown)
