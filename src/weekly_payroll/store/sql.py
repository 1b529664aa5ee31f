"""SQLAlchemy-backed tabular store.

Each logical table maps to one SQL table whose columns are the sheet
headers (all TEXT) plus a surrogate ``_row_id`` that fixes scan order.
Row indexes are positions in that order, so deleting a row shifts the
indexes of later rows exactly as a spreadsheet would.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    Table,
    Text,
    delete,
    func,
    inspect,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine

from weekly_payroll.store.base import (
    Row,
    RowIndexError,
    TableNotFoundError,
    check_row_columns,
)

ROW_ID = "_row_id"


class SqlTabularStore:
    """TabularStore implementation over any SQLAlchemy engine."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.metadata = MetaData()

    def create_table(self, table: str, headers: list[str]) -> None:
        """Create the table if it does not exist yet."""
        if inspect(self.engine).has_table(table):
            self._table(table)
            return
        sql_table = Table(
            table,
            self.metadata,
            Column(ROW_ID, Integer, primary_key=True, autoincrement=True),
            *(Column(h, Text, nullable=False, server_default="") for h in headers),
        )
        sql_table.create(self.engine)

    def _table(self, table: str) -> Table:
        if table in self.metadata.tables:
            return self.metadata.tables[table]
        if not inspect(self.engine).has_table(table):
            raise TableNotFoundError(table)
        return Table(table, self.metadata, autoload_with=self.engine)

    def _row_id_at(self, conn: Connection, sql_table: Table, row_index: int) -> int:
        if row_index < 0:
            raise RowIndexError(sql_table.name, row_index)
        row_id = conn.execute(
            select(sql_table.c[ROW_ID])
            .order_by(sql_table.c[ROW_ID])
            .offset(row_index)
            .limit(1)
        ).scalar()
        if row_id is None:
            raise RowIndexError(sql_table.name, row_index)
        return int(row_id)

    def headers(self, table: str) -> list[str]:
        sql_table = self._table(table)
        return [c.name for c in sql_table.columns if c.name != ROW_ID]

    def append_row(self, table: str, row: Row) -> int:
        sql_table = self._table(table)
        headers = self.headers(table)
        check_row_columns(table, headers, row)
        values = {h: row.get(h, "") for h in headers}
        with self.engine.begin() as conn:
            conn.execute(insert(sql_table).values(values))
            count = conn.execute(select(func.count()).select_from(sql_table)).scalar()
        return int(count or 0) - 1

    def scan_rows(self, table: str) -> list[Row]:
        sql_table = self._table(table)
        with self.engine.connect() as conn:
            result = conn.execute(select(sql_table).order_by(sql_table.c[ROW_ID]))
            rows = []
            for mapping in result.mappings():
                rows.append(
                    {
                        key: "" if value is None else str(value)
                        for key, value in mapping.items()
                        if key != ROW_ID
                    }
                )
        return rows

    def update_row(self, table: str, row_index: int, row: Row) -> None:
        sql_table = self._table(table)
        headers = self.headers(table)
        check_row_columns(table, headers, row)
        values = {h: row.get(h, "") for h in headers}
        with self.engine.begin() as conn:
            row_id = self._row_id_at(conn, sql_table, row_index)
            conn.execute(
                update(sql_table).where(sql_table.c[ROW_ID] == row_id).values(values)
            )

    def delete_row(self, table: str, row_index: int) -> None:
        sql_table = self._table(table)
        with self.engine.begin() as conn:
            row_id = self._row_id_at(conn, sql_table, row_index)
            conn.execute(delete(sql_table).where(sql_table.c[ROW_ID] == row_id))
