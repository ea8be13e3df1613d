from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models
from ..config import PAYROLL_CONFIG, PayrollConfig
from ..database import get_db
from ..domain.money import to_decimal
from ..domain.payslip import PayComputationResult
from ..engine.lifecycle import PayrollRunManager
from ..engine.sql_store import SqlAlchemyPayrollStore
from ..errors import PayrollError
from ..schemas.payroll import (
    PreviewRequest,
    RunCreate,
    RunCreated,
    RunDetail,
    RunPayslip,
    RunRead,
    RunUpdate,
)

router = APIRouter()


def get_config() -> PayrollConfig:
    return PAYROLL_CONFIG


def get_manager(
    db: Session = Depends(get_db),
    config: PayrollConfig = Depends(get_config),
) -> PayrollRunManager:
    return PayrollRunManager(SqlAlchemyPayrollStore(db), config)


def http_error(e: PayrollError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


def to_run_payslip(p: models.Payslip, employee: models.Employee | None) -> RunPayslip:
    payslip = RunPayslip.model_validate(p)
    if employee is None:
        return payslip
    return payslip.model_copy(update={
        "employee_name": f"{employee.last_name}, {employee.first_name}",
        "position": employee.position or "N/A",
        "daily_rate": to_decimal((employee.salary_info or {}).get("daily_rate")),
    })


@router.post("/calculate", response_model=list[PayComputationResult])
def calculate(payload: PreviewRequest, manager: PayrollRunManager = Depends(get_manager)):
    try:
        return manager.preview(
            payload.start_date,
            payload.end_date,
            deduction_ids=payload.selected_deductions,
            branch=payload.branch,
        )
    except PayrollError as e:
        raise http_error(e)


@router.get("", response_model=list[RunRead])
def list_runs(manager: PayrollRunManager = Depends(get_manager)):
    return manager.list_runs()


@router.post("", response_model=RunCreated)
def create_run(payload: RunCreate, manager: PayrollRunManager = Depends(get_manager)):
    try:
        run_id = manager.create_run(
            payload.period_start,
            payload.period_end,
            payload.items,
            status=payload.status,
        )
    except PayrollError as e:
        raise http_error(e)
    return RunCreated(id=run_id)


@router.get("/{run_id}", response_model=RunDetail)
def get_run(run_id: int, manager: PayrollRunManager = Depends(get_manager)):
    try:
        run = manager.get_run(run_id)
        payslips = manager.get_run_payslips(run_id)
    except PayrollError as e:
        raise http_error(e)
    read = RunRead.model_validate(run)
    return RunDetail(
        **read.model_dump(),
        payslips=[to_run_payslip(p, employee) for p, employee in payslips],
    )


@router.patch("/{run_id}")
def update_run(run_id: int, payload: RunUpdate, manager: PayrollRunManager = Depends(get_manager)):
    fields = {name: getattr(payload, name) for name in payload.model_fields_set}
    try:
        manager.update_run(run_id, fields)
    except PayrollError as e:
        raise http_error(e)
    return {"success": True}


@router.delete("/{run_id}")
def delete_run(run_id: int, manager: PayrollRunManager = Depends(get_manager)):
    try:
        manager.delete_run(run_id)
    except PayrollError as e:
        raise http_error(e)
    return {"success": True}
