from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from ..domain.payslip import PayslipLine


class PayrollStore:
    """Storage collaborator of the payroll run manager.

    Writes are batch-shaped: payslips are created or replaced per run and
    employee salary profiles are updated per run, never one row at a time.
    Every write of one manager operation happens inside ``atomic()``.
    """

    def atomic(self) -> AbstractContextManager:
        """Scope one operation: commit on success, roll back everything on error."""
        raise NotImplementedError

    # employees
    def list_employees(self, branch: Optional[str] = None) -> list[Any]:
        raise NotImplementedError

    def get_employees(self, employee_ids: Iterable[int]) -> dict[int, Any]:
        raise NotImplementedError

    def batch_update_employees(self, salary_infos: dict[int, dict]) -> None:
        """Replace the ``salary_info`` document of each given employee."""
        raise NotImplementedError

    # runs
    def create_run(
        self,
        period_start: date,
        period_end: date,
        status: str,
        total_amount: Decimal,
        created_by: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def get_run(self, run_id: int) -> Optional[Any]:
        raise NotImplementedError

    def list_runs(self) -> list[Any]:
        raise NotImplementedError

    def update_run_fields(self, run_id: int, **fields) -> None:
        raise NotImplementedError

    def finalize_run(self, run_id: int) -> bool:
        """Move the run to Finalized unless it already is.

        Returns whether this call made the transition.
        """
        raise NotImplementedError

    def delete_run(self, run_id: int) -> bool:
        raise NotImplementedError

    # payslips
    def list_payslips(self, run_id: int) -> list[Any]:
        raise NotImplementedError

    def batch_create_payslips(self, run_id: int, lines: list[PayslipLine]) -> None:
        raise NotImplementedError

    def replace_payslips(self, run_id: int, lines: list[PayslipLine]) -> None:
        raise NotImplementedError

    def employee_payslips(self, employee_id: int) -> list[Any]:
        raise NotImplementedError
