from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from ..config import PayrollConfig


@dataclass(frozen=True)
class Cutoff:
    start: Optional[date]
    end: Optional[date]


@dataclass(frozen=True)
class CutoffPhase:
    is_15th: bool = False
    is_end: bool = False


def parse_date(value) -> Optional[date]:
    """Read a ``date``, ``datetime`` or ISO string; ``None`` if unreadable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    for fmt in ("%Y-%m-%d", "%Y/%m/%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


class DeductionPolicyResolver:
    """Decides which deduction categories apply to a cutoff."""

    def __init__(self, config: PayrollConfig | None = None):
        self.config = config or PayrollConfig()

    def phase(self, cutoff_end) -> CutoffPhase:
        end = parse_date(cutoff_end)
        if end is None:
            return CutoffPhase()
        first, last = self.config.mid_month_days
        day = end.day
        return CutoffPhase(
            is_15th=first <= day <= last,
            is_end=day >= self.config.end_month_from or day <= self.config.end_month_until,
        )

    def resolve(self, cutoff_end, explicit_ids: Optional[Iterable[str]] = None) -> frozenset[str]:
        """Return the active category ids.

        An explicit id list (even an empty one) wins outright. Otherwise the
        always-on categories apply, plus whatever the cutoff phase adds.
        """
        if explicit_ids is not None:
            return frozenset(explicit_ids)

        phase = self.phase(cutoff_end)
        active = set(self.config.always_on_categories)
        if phase.is_15th:
            active |= self.config.mid_month_categories
        if phase.is_end:
            active |= self.config.end_month_categories
        return frozenset(active)
