from datetime import date, datetime

import pytest

from payroll.config import DEFAULT_ACTIVE_CATEGORIES, PayrollConfig
from payroll.engine.policy import DeductionPolicyResolver, parse_date


def test_explicit_ids_win():
    resolver = DeductionPolicyResolver()
    assert resolver.resolve(date(2024, 3, 15), ["sss"]) == {"sss"}
    assert resolver.resolve(date(2024, 3, 15), []) == frozenset()


@pytest.mark.parametrize("day", [1, 5, 6, 9, 10, 15, 16, 24, 25, 31])
def test_default_path_charges_every_category(day):
    resolver = DeductionPolicyResolver()
    assert resolver.resolve(date(2024, 3, day)) == DEFAULT_ACTIVE_CATEGORIES


@pytest.mark.parametrize(
    "day,is_15th,is_end",
    [
        (9, False, False),
        (10, True, False),
        (15, True, False),
        (16, False, False),
        (24, False, False),
        (25, False, True),
        (31, False, True),
        (1, False, True),
        (5, False, True),
        (6, False, False),
    ],
)
def test_cutoff_phase_boundaries(day, is_15th, is_end):
    phase = DeductionPolicyResolver().phase(date(2024, 3, day))
    assert phase.is_15th is is_15th
    assert phase.is_end is is_end


def test_phase_accepts_strings_and_datetimes():
    resolver = DeductionPolicyResolver()
    assert resolver.phase("2024-03-15").is_15th
    assert resolver.phase(datetime(2024, 3, 31, 8, 30)).is_end
    assert resolver.phase("2024-03-31T00:00:00Z").is_end


@pytest.mark.parametrize("value", [None, "", "not-a-date", "2024-02-30", 42])
def test_malformed_dates_have_no_phase(value):
    resolver = DeductionPolicyResolver()
    phase = resolver.phase(value)
    assert not phase.is_15th and not phase.is_end
    assert resolver.resolve(value) == DEFAULT_ACTIVE_CATEGORIES


def test_phase_only_categories_come_from_config():
    config = PayrollConfig(
        always_on_categories=frozenset({"sss_loan"}),
        mid_month_categories=frozenset({"philhealth", "pagibig"}),
        end_month_categories=frozenset({"sss"}),
    )
    resolver = DeductionPolicyResolver(config)
    assert resolver.resolve(date(2024, 3, 15)) == {"sss_loan", "philhealth", "pagibig"}
    assert resolver.resolve(date(2024, 3, 31)) == {"sss_loan", "sss"}
    assert resolver.resolve(date(2024, 3, 20)) == {"sss_loan"}


def test_end_of_month_spill_is_configurable():
    resolver = DeductionPolicyResolver(PayrollConfig(end_month_until=6))
    assert resolver.phase(date(2024, 4, 6)).is_end
    assert not resolver.phase(date(2024, 4, 7)).is_end


def test_parse_date():
    assert parse_date("2024-03-01") == date(2024, 3, 1)
    assert parse_date("2024/03/01") == date(2024, 3, 1)
    assert parse_date("garbage") is None
