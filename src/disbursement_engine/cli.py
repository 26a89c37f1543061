"""Disbursement Command Line Interface.

Provides operational tools for:
- Schema creation
- Employee registration
- Single and batch salary payouts
- Transfer status queries and ledger refresh
- Ledger inspection
- Webhook signing for local testing

Usage:
    python -m disbursement_engine.cli init-db
    python -m disbursement_engine.cli add-employee --name "Ada" --account-number 0123456789 \
        --bank-code 058 --salary 150000
    python -m disbursement_engine.cli pay EMPLOYEE_ID
    python -m disbursement_engine.cli pay-all
    python -m disbursement_engine.cli transfer-status TRF_CODE [--refresh]
    python -m disbursement_engine.cli payments EMPLOYEE_ID --month 2025-01
    python -m disbursement_engine.cli sign-payload event.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, TextIO

from disbursement_engine.config import get_settings
from disbursement_engine.database import create_schema, get_engine
from disbursement_engine.disbursement import Disbursement
from disbursement_engine.exceptions import DisbursementError, ValidationError
from disbursement_engine.gateway import TransferGateway
from disbursement_engine.services import sign_payload, total_disbursed
from disbursement_engine.types import MONTH_KEY_RE, TransferResult


def parse_month(s: str) -> str:
    """Validate a YYYY-MM month key."""
    if not MONTH_KEY_RE.match(s):
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {s!r}")
    return s


def _json_default(value: Any) -> str:
    # Decimal amounts and datetimes
    return str(value)


class DisbursementCli:
    """Disbursement Command Line Interface."""

    def __init__(
        self,
        system_factory: Callable[[], Disbursement] | None = None,
        out: TextIO | None = None,
        gateway: TransferGateway | None = None,
    ) -> None:
        """Initialize the CLI.

        Args:
            system_factory: Builds the collaborators for one command. Defaults
                to the environment settings, which must select the sql ledger
                for commands that read or write records.
            out: Stream for JSON output.
            gateway: Gateway override for the settings-built system.
        """
        self.parser = self._build_parser()
        self._uses_settings = system_factory is None
        self._gateway = gateway
        self._system_factory = system_factory or (
            lambda: Disbursement.from_settings(get_settings(), gateway=self._gateway)
        )
        self._out = out or sys.stdout

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m disbursement_engine.cli",
            description="Salary disbursement operational tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # init-db command
        init_db = subparsers.add_parser(
            "init-db",
            help="Create the employee and salary_payment tables",
        )
        init_db.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )

        # add-employee command
        add = subparsers.add_parser(
            "add-employee",
            help="Register an employee in the directory",
        )
        add.add_argument("--name", type=str, required=True, help="Full name")
        add.add_argument(
            "--account-number", type=str, required=True, help="Bank account number"
        )
        add.add_argument("--bank-code", type=str, required=True, help="Bank code")
        add.add_argument(
            "--salary",
            type=Decimal,
            required=True,
            help="Monthly salary amount",
        )
        add.add_argument("--email", type=str, default="", help="Email address")
        add.add_argument("--phone", type=str, default="", help="Phone number")
        add.add_argument("--id", dest="employee_id", type=str, help="Explicit employee ID")

        # pay command
        pay = subparsers.add_parser(
            "pay",
            help="Pay one employee this month's salary",
        )
        pay.add_argument("employee_id", type=str, help="Employee ID")

        # pay-all command
        subparsers.add_parser(
            "pay-all",
            help="Pay every employee in the directory",
        )

        # transfer-status command
        status = subparsers.add_parser(
            "transfer-status",
            help="Query the provider for a transfer",
        )
        status.add_argument("transfer_code", type=str, help="Provider transfer code")
        status.add_argument(
            "--refresh",
            action="store_true",
            help="Apply the reported status to the payment ledger",
        )

        # payments command
        payments = subparsers.add_parser(
            "payments",
            help="List ledger records for an employee",
        )
        payments.add_argument("employee_id", type=str, help="Employee ID")
        payments.add_argument(
            "--month",
            type=parse_month,
            help="Limit to one month (YYYY-MM)",
        )

        # sign-payload command
        sign = subparsers.add_parser(
            "sign-payload",
            help="Compute the webhook signature for a payload file",
        )
        sign.add_argument("path", type=Path, help="File holding the raw webhook body")
        sign.add_argument(
            "--secret",
            type=str,
            help="Webhook secret (default: $PAYSTACK_WEBHOOK_SECRET)",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        handlers: dict[str, Callable[..., int]] = {
            "init-db": self._cmd_init_db,
            "add-employee": self._cmd_add_employee,
            "pay": self._cmd_pay,
            "pay-all": self._cmd_pay_all,
            "transfer-status": self._cmd_transfer_status,
            "payments": self._cmd_payments,
            "sign-payload": self._cmd_sign_payload,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return handler(parsed)
        except DisbursementError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

    def _emit(self, payload: Any) -> None:
        print(json.dumps(payload, indent=2, default=_json_default), file=self._out)

    def _with_system(
        self, action: Callable[[Disbursement], int], *, stateful: bool = True
    ) -> int:
        # Each invocation is its own process; in-memory records die with it
        if stateful and self._uses_settings and get_settings().ledger_backend != "sql":
            raise ValidationError(
                "This command needs a persistent ledger; set LEDGER_BACKEND=sql"
            )
        system = self._system_factory()
        try:
            return action(system)
        finally:
            system.close()

    def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create the schema."""
        url = args.database_url or get_settings().database_url
        engine = get_engine(url)
        try:
            create_schema(engine)
        finally:
            engine.dispose()
        self._emit({"status": "ok", "database_url": url})
        return 0

    def _cmd_add_employee(self, args: argparse.Namespace) -> int:
        """Register an employee."""

        def action(system: Disbursement) -> int:
            add = getattr(system.directory, "add", None)
            if add is None:
                print("ERROR: directory backend is read-only", file=sys.stderr)
                return 1
            employee = add(
                name=args.name,
                account_number=args.account_number,
                bank_code=args.bank_code,
                salary_amount=args.salary,
                email=args.email,
                phone=args.phone,
                employee_id=args.employee_id,
            )
            self._emit(
                {
                    "id": employee.id,
                    "name": employee.name,
                    "salary_amount": employee.salary_amount,
                }
            )
            return 0

        return self._with_system(action)

    def _cmd_pay(self, args: argparse.Namespace) -> int:
        """Pay one employee."""

        def action(system: Disbursement) -> int:
            result = system.orchestrator.pay_employee(args.employee_id)
            self._emit(result.to_dict())
            return 0

        return self._with_system(action)

    def _cmd_pay_all(self, args: argparse.Namespace) -> int:
        """Pay every employee."""

        def action(system: Disbursement) -> int:
            results = system.orchestrator.pay_all()
            failed = [r for r in results if not isinstance(r, TransferResult)]
            self._emit(
                {
                    "results": [r.to_dict() for r in results],
                    "total": len(results),
                    "failed": len(failed),
                    "disbursed": total_disbursed(results),
                }
            )
            return 1 if failed else 0

        return self._with_system(action)

    def _cmd_transfer_status(self, args: argparse.Namespace) -> int:
        """Query a transfer, optionally applying its status to the ledger."""

        def action(system: Disbursement) -> int:
            if not args.refresh:
                self._emit(system.orchestrator.get_transfer_status(args.transfer_code))
                return 0

            payload, result = system.refresh_transfer(args.transfer_code)
            self._emit(
                {
                    "provider": payload,
                    "reconciliation": result.status.value,
                    "message": result.message,
                }
            )
            return 0

        return self._with_system(action, stateful=args.refresh)

    def _cmd_payments(self, args: argparse.Namespace) -> int:
        """List an employee's ledger records."""

        def action(system: Disbursement) -> int:
            records = system.orchestrator.payments_for(args.employee_id, args.month)
            self._emit([r.to_dict() for r in records])
            return 0

        return self._with_system(action)

    def _cmd_sign_payload(self, args: argparse.Namespace) -> int:
        """Sign a raw webhook body."""
        secret = args.secret or get_settings().paystack_webhook_secret
        if not secret:
            print("ERROR: no webhook secret configured", file=sys.stderr)
            return 1
        try:
            payload = args.path.read_bytes()
        except OSError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        self._emit({"x-paystack-signature": sign_payload(payload, secret)})
        return 0


def main() -> int:
    """CLI entry point."""
    logging.basicConfig(level=get_settings().log_level)
    cli = DisbursementCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
