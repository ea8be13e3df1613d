import logging
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..domain.payslip import PayslipLine, RunStatus
from ..errors import PayrollStorageError
from .store import PayrollStore

logger = logging.getLogger(__name__)


class SqlAlchemyPayrollStore(PayrollStore):
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def atomic(self):
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("payroll transaction rolled back: %s", e)
            raise PayrollStorageError("Failed to save payroll") from e
        except Exception:
            self.db.rollback()
            raise

    def list_employees(self, branch: Optional[str] = None) -> list[models.Employee]:
        query = select(models.Employee).order_by(models.Employee.id)
        if branch:
            query = query.where(models.Employee.branch == branch)
        return list(self.db.scalars(query))

    def get_employees(self, employee_ids: Iterable[int]) -> dict[int, models.Employee]:
        ids = set(employee_ids)
        if not ids:
            return {}
        rows = self.db.scalars(select(models.Employee).where(models.Employee.id.in_(ids)))
        return {e.id: e for e in rows}

    def batch_update_employees(self, salary_infos: dict[int, dict]) -> None:
        if not salary_infos:
            return
        self.db.execute(
            update(models.Employee),
            [{"id": emp_id, "salary_info": info} for emp_id, info in salary_infos.items()],
        )

    def create_run(
        self,
        period_start: date,
        period_end: date,
        status: str,
        total_amount: Decimal,
        created_by: Optional[int] = None,
    ) -> int:
        run = models.PayrollRun(
            period_start=period_start,
            period_end=period_end,
            status=status,
            total_amount=total_amount,
            created_by=created_by,
        )
        self.db.add(run)
        self.db.flush()
        return run.id

    def get_run(self, run_id: int) -> Optional[models.PayrollRun]:
        return self.db.get(models.PayrollRun, run_id)

    def list_runs(self) -> list[models.PayrollRun]:
        query = select(models.PayrollRun).order_by(
            models.PayrollRun.created_at.desc(), models.PayrollRun.id.desc()
        )
        return list(self.db.scalars(query))

    def update_run_fields(self, run_id: int, **fields) -> None:
        if not fields:
            return
        self.db.execute(
            update(models.PayrollRun)
            .where(models.PayrollRun.id == run_id)
            .values(**fields)
        )

    def finalize_run(self, run_id: int) -> bool:
        # conditional update: only one caller can ever see rowcount == 1
        result = self.db.execute(
            update(models.PayrollRun)
            .where(
                models.PayrollRun.id == run_id,
                models.PayrollRun.status != RunStatus.FINALIZED.value,
            )
            .values(status=RunStatus.FINALIZED.value)
        )
        return result.rowcount == 1

    def delete_run(self, run_id: int) -> bool:
        run = self.get_run(run_id)
        if run is None:
            return False
        self.db.execute(delete(models.Payslip).where(models.Payslip.payroll_run_id == run_id))
        self.db.expire(run, ["payslips"])
        self.db.delete(run)
        self.db.flush()
        return True

    def list_payslips(self, run_id: int) -> list[models.Payslip]:
        query = (
            select(models.Payslip)
            .where(models.Payslip.payroll_run_id == run_id)
            .order_by(models.Payslip.id)
        )
        return list(self.db.scalars(query))

    def batch_create_payslips(self, run_id: int, lines: list[PayslipLine]) -> None:
        if not lines:
            return
        self.db.execute(insert(models.Payslip), [line.to_row(run_id) for line in lines])

    def replace_payslips(self, run_id: int, lines: list[PayslipLine]) -> None:
        self.db.execute(delete(models.Payslip).where(models.Payslip.payroll_run_id == run_id))
        self.batch_create_payslips(run_id, lines)

    def employee_payslips(self, employee_id: int) -> list[models.Payslip]:
        query = (
            select(models.Payslip)
            .where(models.Payslip.employee_id == employee_id)
            .order_by(models.Payslip.id.desc())
        )
        return list(self.db.scalars(query))
