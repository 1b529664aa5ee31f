"""Weekly payroll command line interface.

Provides operational tools for:
- Punch file import
- Timesheet review (missing days, approve, reject)
- Loan balance and history queries
- Loading a spreadsheet export into the database

Usage:
    weekly-payroll import-punches punches.xlsx --week-ending 2024-03-15
    weekly-payroll missing-days --employee-name "Jane Doe" --week-ending 2024-03-15
    weekly-payroll approve 12 --user supervisor
    weekly-payroll loan-balance EMP001
    weekly-payroll load-workbook export.xlsx
    weekly-payroll serve
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from typing import Any, Callable

from weekly_payroll.config import configure_logging, get_settings
from weekly_payroll.services.operations import OperationResult, PayrollOperations


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_date_list(s: str) -> list[date]:
    """Parse a comma-separated list of ISO dates."""
    return [date.fromisoformat(part.strip()) for part in s.split(",") if part.strip()]


def default_operations(database_url: str | None) -> PayrollOperations:
    from weekly_payroll.database import init_db

    settings = get_settings()
    return PayrollOperations(init_db(database_url or settings.database_url), settings)


class PayrollCli:
    """Weekly payroll command line interface."""

    def __init__(
        self,
        operations_factory: Callable[[str | None], PayrollOperations] = default_operations,
    ) -> None:
        self.operations_factory = operations_factory
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="weekly-payroll",
            description="Weekly payroll operational tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Override DATABASE_URL for this invocation",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the raw result envelope as JSON",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # import-punches command
        imp = subparsers.add_parser(
            "import-punches",
            help="Import a clock punch export (CSV or XLSX)",
        )
        imp.add_argument("file", type=str, help="Path to the punch export")
        imp.add_argument(
            "--week-ending",
            type=parse_date,
            help="Week ending Friday (default: derived from the latest punch)",
        )
        imp.add_argument(
            "--override",
            action="store_true",
            help="Import even if duplicate or unmatched clock references are found",
        )
        imp.add_argument("--user", type=str, help="Recorded as the importer")

        # missing-days command
        missing = subparsers.add_parser(
            "missing-days",
            help="List workdays with neither a clock-in nor leave",
        )
        missing.add_argument("--employee-name", type=str, required=True)
        missing.add_argument("--week-ending", type=parse_date, required=True)

        # timesheets command
        timesheets = subparsers.add_parser("timesheets", help="List timesheets")
        timesheets.add_argument(
            "--status",
            type=str,
            choices=["Pending", "Approved", "Rejected"],
            help="Filter by status",
        )
        timesheets.add_argument("--week-ending", type=parse_date)

        # approve command
        approve = subparsers.add_parser(
            "approve",
            help="Approve a pending timesheet and create its payslip",
        )
        approve.add_argument("timesheet_id", type=int)
        approve.add_argument(
            "--leave-days",
            type=parse_date_list,
            help="Comma-separated missing days to record as leave first",
        )
        approve.add_argument(
            "--leave-reason",
            type=str,
            help="Leave reason for --leave-days (e.g. SickLeavePaid)",
        )
        approve.add_argument("--notes", type=str, default="")
        approve.add_argument("--user", type=str)

        # reject command
        reject = subparsers.add_parser("reject", help="Reject a pending timesheet")
        reject.add_argument("timesheet_id", type=int)
        reject.add_argument("--reason", type=str)
        reject.add_argument("--user", type=str)

        # loan-balance command
        balance = subparsers.add_parser("loan-balance", help="Current loan balance")
        balance.add_argument("employee_id", type=str)
        balance.add_argument("--as-of", type=parse_date)

        # loan-history command
        history = subparsers.add_parser("loan-history", help="Loan ledger entries")
        history.add_argument("employee_id", type=str)
        history.add_argument("--start", type=parse_date)
        history.add_argument("--end", type=parse_date)

        # recalculate-loans command
        recalc = subparsers.add_parser(
            "recalculate-loans",
            help="Replay an employee's loan ledger and rewrite balances",
        )
        recalc.add_argument("employee_id", type=str)

        # load-workbook command
        workbook = subparsers.add_parser(
            "load-workbook",
            help="Load a spreadsheet export (one sheet per table) into the database",
        )
        workbook.add_argument("file", type=str, help="Path to the XLSX export")
        workbook.add_argument(
            "--replace",
            action="store_true",
            help="Delete existing rows of each loaded table first",
        )

        # serve command
        subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(get_settings().log_level)

        if parsed.command == "serve":
            from weekly_payroll.__main__ import main as serve

            serve()
            return 0

        # Dispatch to command handler
        handlers: dict[str, Callable[[PayrollOperations, argparse.Namespace], OperationResult]] = {
            "import-punches": self._cmd_import_punches,
            "missing-days": self._cmd_missing_days,
            "timesheets": self._cmd_timesheets,
            "approve": self._cmd_approve,
            "reject": self._cmd_reject,
            "loan-balance": self._cmd_loan_balance,
            "loan-history": self._cmd_loan_history,
            "recalculate-loans": self._cmd_recalculate_loans,
            "load-workbook": self._cmd_load_workbook,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        ops = self.operations_factory(parsed.database_url)
        result = handler(ops, parsed)
        return self._report(result, parsed)

    def _report(self, result: OperationResult, args: argparse.Namespace) -> int:
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
        elif result.success:
            self._print_data(result.data)
        else:
            print(f"ERROR [{result.code}]: {result.error}", file=sys.stderr)
            for key, value in result.details.items():
                print(f"  {key}: {json.dumps(value)}", file=sys.stderr)
        return 0 if result.success else 1

    @staticmethod
    def _print_data(data: Any) -> None:
        if isinstance(data, list):
            if not data:
                print("(none)")
            for item in data:
                print(json.dumps(item))
        elif isinstance(data, dict):
            for key, value in data.items():
                print(f"{key}: {value if isinstance(value, str) else json.dumps(value)}")
        else:
            print(data)

    def _cmd_import_punches(self, ops: PayrollOperations, args: argparse.Namespace) -> OperationResult:
        """Import a punch file."""
        return ops.import_punches(
            args.file,
            args.override,
            week_ending=args.week_ending,
            user=args.user,
        )

    def _cmd_missing_days(self, ops: PayrollOperations, args: argparse.Namespace) -> OperationResult:
        return ops.missing_days(args.employee_name, args.week_ending)

    def _cmd_timesheets(self, ops: PayrollOperations, args: argparse.Namespace) -> OperationResult:
        return ops.list_timesheets(args.status, args.week_ending)

    def _cmd_approve(self, ops: PayrollOperations, args: argparse.Namespace) -> OperationResult:
        """Approve, with leave backfill when missing days are given."""
        if args.leave_days:
            if not args.leave_reason:
                self.parser.error("--leave-reason is required with --leave-days")
            return ops.approve_timesheet_with_leave(
                args.timesheet_id, args.leave_days, args.leave_reason, args.notes, args.user
            )
        return ops.approve_timesheet(args.timesheet_id, args.user)

    def _cmd_reject(self, ops: PayrollOperations, args: argparse.Namespace) -> OperationResult:
        return ops.reject_timesheet(args.timesheet_id, args.reason, args.user)

    def _cmd_loan_balance(self, ops: PayrollOperations, args: argparse.Namespace) -> OperationResult:
        return ops.get_current_loan_balance(args.employee_id, args.as_of)

    def _cmd_loan_history(self, ops: PayrollOperations, args: argparse.Namespace) -> OperationResult:
        return ops.get_loan_history(args.employee_id, args.start, args.end)

    def _cmd_recalculate_loans(
        self, ops: PayrollOperations, args: argparse.Namespace
    ) -> OperationResult:
        return ops.recalculate_loan_balances(args.employee_id)

    def _cmd_load_workbook(self, ops: PayrollOperations, args: argparse.Namespace) -> OperationResult:
        """Migrate spreadsheet data into the configured store."""
        return ops.load_workbook(args.file, args.replace)


def main() -> int:
    """CLI entry point."""
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
