"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Header

from weekly_payroll.config import get_settings
from weekly_payroll.database import get_store
from weekly_payroll.services.operations import PayrollOperations


def get_operations() -> PayrollOperations:
    """Build the operations facade over the process-wide store."""
    return PayrollOperations(get_store(), get_settings())


def get_user(x_user: Annotated[str | None, Header()] = None) -> str | None:
    """Acting user, recorded on created and modified rows."""
    return x_user.strip() if x_user and x_user.strip() else None


# Type aliases for cleaner dependency injection
Operations = Annotated[PayrollOperations, Depends(get_operations)]
CurrentUser = Annotated[str | None, Depends(get_user)]
