import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "..", ".env"))

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./payroll.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# loan-like categories whose balances are written back on finalize
LOAN_CATEGORIES = ("company_loan", "sss_loan", "pagibig_loan")

DEFAULT_ACTIVE_CATEGORIES = frozenset({
    "sss_loan",
    "pagibig_loan",
    "company_loan",
    "cash_advance",
    "other_deductions",
    "philhealth",
    "pagibig",
    "sss",
    "company_cash_fund",
})


@dataclass(frozen=True)
class PayrollConfig:
    """Pay-period rules shared by the resolver, the calculator and the run manager.

    ``mid_month_days`` is the inclusive day-of-month range of a mid-month
    cutoff. An end-of-month cutoff ends on or after ``end_month_from`` or on or
    before ``end_month_until`` (the latter covers cutoffs that spill into the
    next month).
    """

    semi_monthly_days: int = 15
    mid_month_days: tuple[int, int] = (10, 15)
    end_month_from: int = 25
    end_month_until: int = 5
    always_on_categories: frozenset[str] = DEFAULT_ACTIVE_CATEGORIES
    mid_month_categories: frozenset[str] = frozenset()
    end_month_categories: frozenset[str] = frozenset()
    loan_categories: tuple[str, ...] = LOAN_CATEGORIES
    inactive_statuses: frozenset[str] = frozenset({"Resigned", "Terminated"})


def load_config() -> PayrollConfig:
    days = os.getenv("PAYROLL_SEMI_MONTHLY_DAYS")
    if not days:
        return PayrollConfig()
    return PayrollConfig(semi_monthly_days=int(days))


PAYROLL_CONFIG = load_config()
