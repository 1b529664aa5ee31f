"""Tabular storage collaborator and typed repositories."""

from weekly_payroll.store.base import (
    MissingColumnsError,
    StoreError,
    TableNotFoundError,
    TabularStore,
)
from weekly_payroll.store.memory import InMemoryTabularStore
from weekly_payroll.store.repositories import Repositories, bootstrap_tables
from weekly_payroll.store.sql import SqlTabularStore
from weekly_payroll.store.workbook import load_workbook

__all__ = [
    "InMemoryTabularStore",
    "MissingColumnsError",
    "Repositories",
    "SqlTabularStore",
    "StoreError",
    "TableNotFoundError",
    "TabularStore",
    "bootstrap_tables",
    "load_workbook",
]
