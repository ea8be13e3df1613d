from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models
from ..database import get_db
from ..engine.lifecycle import PayrollRunManager
from ..errors import PayrollError
from ..schemas.employee import EmployeeCreate, EmployeeRead
from ..schemas.payroll import PayslipRead
from .payroll import get_manager, http_error

router = APIRouter()


@router.post("", response_model=EmployeeRead)
def create_employee(payload: EmployeeCreate, db: Session = Depends(get_db)):
    e = models.Employee(**payload.model_dump())
    db.add(e)
    db.commit()
    db.refresh(e)
    return e


@router.get("", response_model=list[EmployeeRead])
def list_employees(branch: str | None = None, db: Session = Depends(get_db)):
    query = db.query(models.Employee)
    if branch:
        query = query.filter(models.Employee.branch == branch)
    return query.order_by(models.Employee.id).all()


@router.get("/{employee_id}", response_model=EmployeeRead)
def get_employee(employee_id: int, db: Session = Depends(get_db)):
    e = db.get(models.Employee, employee_id)
    if not e:
        raise HTTPException(status_code=404, detail="Employee not found")
    return e


@router.get("/{employee_id}/payslips", response_model=list[PayslipRead])
def employee_payslips(employee_id: int, manager: PayrollRunManager = Depends(get_manager)):
    try:
        return manager.employee_payslips(employee_id)
    except PayrollError as e:
        raise http_error(e)
