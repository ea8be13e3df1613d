from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .money import ZERO, Money


class Loan(BaseModel):
    """A revolving balance paid down by a fixed amortization each cutoff."""

    balance: Money = ZERO
    amortization: Money = ZERO

    def deductible(self) -> Decimal:
        if self.amortization <= 0:
            return ZERO
        return min(self.balance, self.amortization)


class ScalarCashAdvance(BaseModel):
    kind: Literal["scalar"] = "scalar"
    amount: Money = ZERO

    def deductible(self) -> Decimal:
        return self.amount


class StructuredCashAdvance(BaseModel):
    kind: Literal["structured"] = "structured"
    balance: Money = ZERO
    amortization: Money = ZERO

    def deductible(self) -> Decimal:
        if self.balance <= 0:
            return ZERO
        # no amortization configured means the whole balance is due
        due = self.amortization if self.amortization > 0 else self.balance
        return min(self.balance, due)


CashAdvance = Annotated[
    Union[ScalarCashAdvance, StructuredCashAdvance],
    Field(discriminator="kind"),
]


class OtherDeduction(BaseModel):
    name: Optional[str] = None
    amount: Money = ZERO


class Deductions(BaseModel):
    sss_contribution: Money = ZERO
    philhealth_contribution: Money = ZERO
    pagibig_contribution: Money = ZERO
    company_cash_fund: Money = ZERO
    company_loan: Optional[Loan] = None
    sss_loan: Optional[Loan] = None
    pagibig_loan: Optional[Loan] = None
    cash_advance: Optional[CashAdvance] = None
    other_deductions: list[OtherDeduction] = Field(default_factory=list)

    @field_validator("company_loan", "sss_loan", "pagibig_loan", mode="before")
    @classmethod
    def _loan_shape(cls, value: Any):
        return value if isinstance(value, dict) else None

    @field_validator("cash_advance", mode="before")
    @classmethod
    def _cash_advance_shape(cls, value: Any):
        # legacy records hold a plain number, a numeric string or a loan-like dict
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (ScalarCashAdvance, StructuredCashAdvance)):
            return value
        if isinstance(value, dict):
            if value.get("kind") in ("scalar", "structured"):
                return value
            return {
                "kind": "structured",
                "balance": value.get("balance"),
                "amortization": value.get("amortization"),
            }
        if isinstance(value, (int, float, str, Decimal)):
            return {"kind": "scalar", "amount": value}
        return None

    @field_validator("other_deductions", mode="before")
    @classmethod
    def _other_deductions_shape(cls, value: Any):
        if not isinstance(value, (list, tuple)):
            return []
        entries = []
        for entry in value:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name")
            entries.append({
                "name": str(name) if name not in (None, "") else None,
                "amount": entry.get("amount"),
            })
        return entries


class SalaryProfile(BaseModel):
    """Read-only view of an employee's ``salary_info`` document."""

    basic_salary: Money = ZERO
    daily_rate: Money = ZERO
    allowances: dict[str, Money] = Field(default_factory=dict)
    deductions: Deductions = Field(default_factory=Deductions)

    @field_validator("allowances", mode="before")
    @classmethod
    def _allowances_shape(cls, value: Any):
        if not isinstance(value, dict):
            return {}
        return {str(k): v for k, v in value.items()}

    @field_validator("deductions", mode="before")
    @classmethod
    def _deductions_shape(cls, value: Any):
        return value if isinstance(value, (dict, Deductions)) else {}

    @property
    def total_allowances(self) -> Decimal:
        return sum(self.allowances.values(), ZERO)

    @classmethod
    def from_salary_info(cls, info: Any) -> Optional["SalaryProfile"]:
        if not info or not isinstance(info, dict):
            return None
        return cls.model_validate(info)
