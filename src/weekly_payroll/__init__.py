"""Weekly payroll: punch import, timesheet approval, payslips and loans."""

__version__ = "0.1.0"
