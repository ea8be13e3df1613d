from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from ..domain.money import ZERO, Money
from ..domain.payslip import PayslipLine


class PreviewRequest(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    selected_deductions: Optional[List[str]] = None
    branch: Optional[str] = None


class RunCreate(BaseModel):
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    items: Optional[List[PayslipLine]] = None
    status: Optional[str] = None


class RunUpdate(RunCreate):
    """Partial edit; only the fields actually sent are applied."""


class RunCreated(BaseModel):
    success: bool = True
    id: int


class RunRead(BaseModel):
    id: int
    period_start: date
    period_end: date
    status: str
    total_amount: Money = ZERO
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class PayslipRead(BaseModel):
    id: int
    payroll_run_id: int
    employee_id: int
    gross_pay: Money = ZERO
    net_pay: Money = ZERO
    total_deductions: Money = ZERO
    total_allowances: Money = ZERO
    days_present: Money = ZERO
    double_pay_days: Money = ZERO
    double_pay_amount: Money = ZERO
    deduction_details: dict[str, Money] = Field(default_factory=dict)
    allowance_details: dict[str, Money] = Field(default_factory=dict)

    model_config = {
        "from_attributes": True,
    }

    @field_validator("deduction_details", "allowance_details", mode="before")
    @classmethod
    def _missing_details(cls, value):
        return value or {}


class RunPayslip(PayslipRead):
    employee_name: str = "Unknown Employee"
    position: str = "N/A"
    daily_rate: Money = ZERO


class RunDetail(RunRead):
    payslips: List[RunPayslip] = []
