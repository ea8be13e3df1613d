from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field

from .money import ZERO, Money


class RunStatus(str, Enum):
    DRAFT = "Draft"
    FINALIZED = "Finalized"


class PayComputationResult(BaseModel):
    """One employee's computed pay for a cutoff, before it becomes a payslip."""

    employee_id: int
    employee_name: str
    department: Optional[str] = None
    position: Optional[str] = None
    branch: str = "N/A"
    daily_rate: Money = ZERO
    gross_pay: Money = ZERO
    total_allowances: Money = ZERO
    total_deductions: Money = ZERO
    net_pay: Money = ZERO
    days_present: Money = ZERO
    double_pay_days: Money = ZERO
    double_pay_amount: Money = ZERO
    deduction_details: dict[str, Money] = Field(default_factory=dict)
    allowance_details: dict[str, Money] = Field(default_factory=dict)
    # remaining company loan after this cutoff, display only
    company_loan_balance: Optional[Money] = None


class PayslipLine(BaseModel):
    """A payslip line item as submitted when a run is created or edited.

    Accepts the preview's ``allowances``/``deductions`` names as well as the
    stored ``total_*`` names, so preview rows can be posted back unchanged.
    """

    employee_id: int
    gross_pay: Money = ZERO
    net_pay: Money = ZERO
    total_deductions: Money = Field(
        default=ZERO, validation_alias=AliasChoices("total_deductions", "deductions")
    )
    total_allowances: Money = Field(
        default=ZERO, validation_alias=AliasChoices("total_allowances", "allowances")
    )
    days_present: Money = ZERO
    double_pay_days: Money = ZERO
    double_pay_amount: Money = ZERO
    deduction_details: dict[str, Money] = Field(default_factory=dict)
    allowance_details: Optional[dict[str, Money]] = None

    def to_row(self, payroll_run_id: int) -> dict[str, Any]:
        allowance_details = self.allowance_details
        if allowance_details is None:
            allowance_details = {"standard": self.total_allowances}
        return {
            "payroll_run_id": payroll_run_id,
            "employee_id": self.employee_id,
            "gross_pay": self.gross_pay,
            "net_pay": self.net_pay,
            "total_deductions": self.total_deductions,
            "total_allowances": self.total_allowances,
            "days_present": self.days_present,
            "double_pay_days": self.double_pay_days,
            "double_pay_amount": self.double_pay_amount,
            "deduction_details": _json_amounts(self.deduction_details),
            "allowance_details": _json_amounts(allowance_details),
        }


def _json_amounts(amounts: dict[str, Decimal]) -> dict[str, float]:
    return {name: float(amount) for name, amount in amounts.items()}
