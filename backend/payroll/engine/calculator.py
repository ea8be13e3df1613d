import logging
from decimal import Decimal
from typing import Optional

from ..config import PayrollConfig
from ..domain.money import ZERO, cents, finite
from ..domain.payslip import PayComputationResult
from ..domain.salary import SalaryProfile
from .policy import Cutoff

logger = logging.getLogger(__name__)

OTHER_DEDUCTION_NAME = "Other Deduction"
OTHER_DEDUCTION_AGGREGATE = "other_deductions"


def _employee_name(employee) -> str:
    last = getattr(employee, "last_name", None) or ""
    first = getattr(employee, "first_name", None) or ""
    return f"{last}, {first}"


class PayrollCalculator:
    """Turns a salary profile into one cutoff's pay breakdown.

    Pure: nothing is read from or written to storage, and bad numeric input
    is read as zero rather than raised.
    """

    def __init__(self, config: PayrollConfig | None = None):
        self.config = config or PayrollConfig()
        # itemized other deductions never share a key with a category charge
        self.reserved_names = (
            set(self.config.always_on_categories)
            | set(self.config.mid_month_categories)
            | set(self.config.end_month_categories)
            | set(self.config.loan_categories)
            | {OTHER_DEDUCTION_AGGREGATE}
        )

    def compute(self, employee, cutoff: Cutoff, active_ids) -> Optional[PayComputationResult]:
        status = getattr(employee, "employment_status", None)
        if status in self.config.inactive_statuses:
            logger.debug("skipping employee %s: %s", getattr(employee, "id", None), status)
            return None

        profile = SalaryProfile.from_salary_info(getattr(employee, "salary_info", None))
        if profile is None:
            # keep batch totals stable: no profile pays nothing
            return self._result(employee, ZERO, ZERO, ZERO, {}, {})

        logger.debug(
            "computing pay for employee %s, cutoff %s..%s",
            getattr(employee, "id", None), cutoff.start, cutoff.end,
        )

        gross = profile.daily_rate * self.config.semi_monthly_days
        allowances = profile.total_allowances / 2
        allowance_details = {
            name: cents(amount / 2) for name, amount in profile.allowances.items()
        }

        details: dict[str, Decimal] = {}
        total = ZERO

        def charge(category: str, amount: Decimal) -> Decimal:
            nonlocal total
            if category not in active_ids or amount <= 0:
                return ZERO
            amount = cents(amount)
            details[category] = amount
            total += amount
            return amount

        d = profile.deductions
        charge("pagibig", d.pagibig_contribution)
        charge("company_cash_fund", d.company_cash_fund)
        charge("philhealth", d.philhealth_contribution)
        charge("sss", d.sss_contribution)
        if d.sss_loan is not None:
            charge("sss_loan", d.sss_loan.deductible())

        company_loan_balance = None
        if d.company_loan is not None:
            paid = charge("company_loan", d.company_loan.deductible())
            if paid > 0:
                company_loan_balance = cents(d.company_loan.balance - paid)

        if d.cash_advance is not None:
            charge("cash_advance", d.cash_advance.deductible())
        if d.pagibig_loan is not None:
            charge("pagibig_loan", d.pagibig_loan.deductible())

        if OTHER_DEDUCTION_AGGREGATE in active_ids:
            other_total = ZERO
            for entry in d.other_deductions:
                if entry.amount <= 0:
                    continue
                name = entry.name or OTHER_DEDUCTION_NAME
                if name in self.reserved_names:
                    name = f"{name} (other)"
                amount = cents(entry.amount)
                details[name] = details.get(name, ZERO) + amount
                other_total += amount
            if other_total > 0:
                details[OTHER_DEDUCTION_AGGREGATE] = other_total
                total += other_total

        return self._result(
            employee,
            gross,
            allowances,
            total,
            details,
            allowance_details,
            daily_rate=profile.daily_rate,
            company_loan_balance=company_loan_balance,
        )

    def _result(
        self,
        employee,
        gross: Decimal,
        allowances: Decimal,
        deductions: Decimal,
        details: dict[str, Decimal],
        allowance_details: dict[str, Decimal],
        daily_rate: Decimal = ZERO,
        company_loan_balance: Optional[Decimal] = None,
    ) -> PayComputationResult:
        gross = cents(finite(gross))
        allowances = cents(finite(allowances))
        deductions = cents(finite(deductions))
        net = finite(gross + allowances - deductions)
        return PayComputationResult(
            employee_id=employee.id,
            employee_name=_employee_name(employee),
            department=getattr(employee, "department", None),
            position=getattr(employee, "position", None),
            branch=getattr(employee, "branch", None) or "N/A",
            daily_rate=daily_rate,
            gross_pay=gross,
            total_allowances=allowances,
            total_deductions=deductions,
            net_pay=net,
            deduction_details=details,
            allowance_details=allowance_details,
            company_loan_balance=company_loan_balance,
        )
