"""API routes."""

from weekly_payroll.api.routes.health import router as health_router
from weekly_payroll.api.routes.imports import router as imports_router
from weekly_payroll.api.routes.loans import router as loans_router
from weekly_payroll.api.routes.payslips import router as payslips_router
from weekly_payroll.api.routes.timesheets import router as timesheets_router

__all__ = [
    "health_router",
    "imports_router",
    "loans_router",
    "payslips_router",
    "timesheets_router",
]
