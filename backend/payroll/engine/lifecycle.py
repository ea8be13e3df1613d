import copy
import logging
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from ..config import PayrollConfig
from ..domain.money import ZERO, to_decimal
from ..domain.payslip import PayComputationResult, PayslipLine, RunStatus
from ..errors import EmployeeNotFound, PayrollRunNotFound, PayrollValidationError
from .calculator import PayrollCalculator
from .policy import Cutoff, DeductionPolicyResolver, parse_date
from .store import PayrollStore

logger = logging.getLogger(__name__)

RUN_FIELDS = ("period_start", "period_end", "items", "status")


def _require_date(value, name: str) -> date:
    if value is None or value == "":
        raise PayrollValidationError(f"{name} is required")
    parsed = parse_date(value)
    if parsed is None:
        raise PayrollValidationError(f"Invalid date format for {name}")
    return parsed


def _check_period(start: date, end: date) -> None:
    if start > end:
        raise PayrollValidationError("period_start must not be after period_end")


def _status(value, default: RunStatus) -> RunStatus:
    if value is None or value == "":
        return default
    try:
        return RunStatus(value)
    except ValueError:
        raise PayrollValidationError(f"Unknown payroll status: {value}") from None


def _lines(items) -> list[PayslipLine]:
    if items is None:
        raise PayrollValidationError("items is required")
    lines = []
    try:
        for item in items:
            if isinstance(item, PayslipLine):
                lines.append(item)
            elif isinstance(item, PayComputationResult):
                lines.append(PayslipLine.model_validate(item.model_dump()))
            else:
                lines.append(PayslipLine.model_validate(item))
    except ValidationError as e:
        raise PayrollValidationError(f"Invalid payslip item: {e}") from e
    return lines


def _total(lines: list[PayslipLine]) -> Decimal:
    return sum((line.net_pay for line in lines), ZERO)


class PayrollRunManager:
    """Creates, edits, finalizes and deletes payroll runs.

    Finalizing a run writes each payslip's loan deductions back onto the
    employees' loan balances. That happens exactly once per run, after the
    run's payslips are persisted and in the same transaction.
    """

    def __init__(self, store: PayrollStore, config: PayrollConfig | None = None):
        self.store = store
        self.config = config or PayrollConfig()
        self.resolver = DeductionPolicyResolver(self.config)
        self.calculator = PayrollCalculator(self.config)

    # preview

    def calculate_preview(
        self,
        employees: Iterable[Any],
        period_start,
        period_end,
        deduction_ids: Optional[Iterable[str]] = None,
    ) -> list[PayComputationResult]:
        start = _require_date(period_start, "start_date")
        end = _require_date(period_end, "end_date")
        _check_period(start, end)

        cutoff = Cutoff(start, end)
        active = self.resolver.resolve(end, deduction_ids)
        results = []
        for employee in employees:
            result = self.calculator.compute(employee, cutoff, active)
            if result is not None:
                results.append(result)
        return results

    def preview(
        self,
        period_start,
        period_end,
        deduction_ids: Optional[Iterable[str]] = None,
        branch: Optional[str] = None,
    ) -> list[PayComputationResult]:
        if branch == "All":
            branch = None
        employees = self.store.list_employees(branch=branch or None)
        return self.calculate_preview(employees, period_start, period_end, deduction_ids)

    # runs

    def list_runs(self) -> list[Any]:
        return self.store.list_runs()

    def get_run(self, run_id: int) -> Any:
        run = self.store.get_run(run_id)
        if run is None:
            raise PayrollRunNotFound(run_id)
        return run

    def get_run_payslips(self, run_id: int) -> list[tuple[Any, Any]]:
        """Payslips of a run, each paired with its employee (``None`` if gone)."""
        self.get_run(run_id)
        payslips = self.store.list_payslips(run_id)
        employees = self.store.get_employees(p.employee_id for p in payslips)
        return [(p, employees.get(p.employee_id)) for p in payslips]

    def employee_payslips(self, employee_id: int) -> list[Any]:
        if not self.store.get_employees([employee_id]):
            raise EmployeeNotFound(employee_id)
        return self.store.employee_payslips(employee_id)

    def create_run(
        self,
        period_start,
        period_end,
        items,
        status=None,
        created_by: Optional[int] = None,
    ) -> int:
        start = _require_date(period_start, "period_start")
        end = _require_date(period_end, "period_end")
        _check_period(start, end)
        lines = _lines(items)
        # an omitted status settles the run immediately
        run_status = _status(status, RunStatus.FINALIZED)

        with self.store.atomic():
            run_id = self.store.create_run(
                start, end, run_status.value, _total(lines), created_by=created_by
            )
            self.store.batch_create_payslips(run_id, lines)
            if run_status is RunStatus.FINALIZED:
                self._apply_loan_decrements(self.store.list_payslips(run_id))

        logger.info(
            "created payroll run %s (%s, %d payslips, %s..%s)",
            run_id, run_status.value, len(lines), start, end,
        )
        return run_id

    def update_run(self, run_id: int, fields: Mapping[str, Any]) -> None:
        """Apply a partial edit; only keys present in ``fields`` change."""
        unknown = set(fields) - set(RUN_FIELDS)
        if unknown:
            raise PayrollValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        run = self.get_run(run_id)
        previous = _status(run.status, RunStatus.DRAFT)

        updates: dict[str, Any] = {}
        if "period_start" in fields:
            updates["period_start"] = _require_date(fields["period_start"], "period_start")
        if "period_end" in fields:
            updates["period_end"] = _require_date(fields["period_end"], "period_end")
        _check_period(
            updates.get("period_start", run.period_start),
            updates.get("period_end", run.period_end),
        )

        lines = None
        if "items" in fields:
            lines = _lines(fields["items"])
            updates["total_amount"] = _total(lines)

        requested = None
        if fields.get("status") not in (None, ""):
            requested = _status(fields["status"], previous)
            if requested is RunStatus.DRAFT and previous is RunStatus.FINALIZED:
                raise PayrollValidationError("A finalized payroll run cannot return to Draft")

        with self.store.atomic():
            self.store.update_run_fields(run_id, **updates)
            if lines is not None:
                if previous is RunStatus.FINALIZED:
                    logger.warning(
                        "replacing payslips of finalized run %s; loan balances are not re-applied",
                        run_id,
                    )
                self.store.replace_payslips(run_id, lines)
            if requested is RunStatus.FINALIZED:
                if self.store.finalize_run(run_id):
                    self._apply_loan_decrements(self.store.list_payslips(run_id))
                    logger.info("finalized payroll run %s", run_id)
                else:
                    logger.info("payroll run %s already finalized", run_id)

    def delete_run(self, run_id: int) -> None:
        # applied loan decrements stay; reversing them is a manual HR action
        with self.store.atomic():
            if not self.store.delete_run(run_id):
                raise PayrollRunNotFound(run_id)
        logger.info("deleted payroll run %s", run_id)

    def _apply_loan_decrements(self, payslips: list[Any]) -> dict[int, dict]:
        """Subtract each payslip's loan deductions from the employee's balances.

        Not idempotent; callers gate it on the Draft to Finalized transition.
        """
        employees = self.store.get_employees(p.employee_id for p in payslips)
        updated: dict[int, dict] = {}

        for payslip in payslips:
            employee = employees.get(payslip.employee_id)
            if employee is None or not isinstance(employee.salary_info, dict):
                continue
            salary_info = updated.get(employee.id) or copy.deepcopy(employee.salary_info)
            deductions = salary_info.get("deductions")
            if not isinstance(deductions, dict):
                continue

            details = payslip.deduction_details or {}
            changed = False
            for category in self.config.loan_categories:
                loan = deductions.get(category)
                deducted = to_decimal(details.get(category))
                if deducted <= 0 or not isinstance(loan, dict):
                    continue
                balance = to_decimal(loan.get("balance"))
                loan["balance"] = float(max(ZERO, balance - deducted))
                changed = True
            if changed:
                updated[employee.id] = salary_info

        self.store.batch_update_employees(updated)
        if updated:
            logger.info("updated loan balances for %d employees", len(updated))
        return updated
