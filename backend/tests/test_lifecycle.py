import copy
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from payroll import models
from payroll.engine.lifecycle import PayrollRunManager
from payroll.engine.sql_store import SqlAlchemyPayrollStore
from payroll.errors import PayrollRunNotFound, PayrollStorageError, PayrollValidationError

from profiles import EDDIE

START, END = "2024-03-01", "2024-03-15"


def line(employee, net_pay, **deduction_details):
    return {
        "employee_id": employee.id,
        "gross_pay": net_pay,
        "net_pay": net_pay,
        "deductions": sum(deduction_details.values()),
        "allowances": 0,
        "deduction_details": deduction_details,
    }


def loan_balance(db, employee, category):
    db.expire_all()
    return db.get(models.Employee, employee.id).salary_info["deductions"][category]["balance"]


def payslip_rows(manager, run_id):
    return [
        (p.employee_id, p.net_pay, p.deduction_details)
        for p in manager.store.list_payslips(run_id)
    ]


@pytest.fixture
def josephine(make_employee):
    return make_employee()


@pytest.fixture
def eddie(make_employee):
    return make_employee("EDDIE JR.", "CABALLES", EDDIE, position="Driver")


def test_preview_skips_separated_employees(manager, make_employee, josephine):
    make_employee("PEDRO", "PENDUKO", employment_status="Resigned")
    results = manager.calculate_preview(manager.store.list_employees(), START, END)
    assert [r.employee_id for r in results] == [josephine.id]


def test_preview_filters_by_branch(manager, josephine, make_employee):
    make_employee("MARIA", "CLARA", branch="Tacloban Branch")
    assert len(manager.preview(START, END, branch="Ormoc Branch")) == 1
    assert len(manager.preview(START, END, branch="All")) == 2
    assert manager.preview(START, END, branch="Non-existent Branch") == []


def test_preview_requires_cutoff_dates(manager, josephine):
    with pytest.raises(PayrollValidationError):
        manager.calculate_preview([josephine], None, END)
    with pytest.raises(PayrollValidationError):
        manager.calculate_preview([josephine], START, "31/03/2024")
    with pytest.raises(PayrollValidationError):
        manager.calculate_preview([josephine], END, START)


def test_create_draft_run_leaves_balances_alone(manager, db, josephine, eddie):
    preview = manager.calculate_preview([josephine, eddie], START, END)
    run_id = manager.create_run(START, END, preview, status="Draft")

    run = manager.get_run(run_id)
    assert run.status == "Draft"
    assert run.total_amount == sum(r.net_pay for r in preview)
    assert len(manager.store.list_payslips(run_id)) == 2
    assert loan_balance(db, josephine, "sss_loan") == 20000
    assert loan_balance(db, eddie, "company_loan") == 10000


def test_finalize_applies_loan_decrements_once(manager, db, josephine, eddie):
    preview = manager.calculate_preview([josephine, eddie], START, END)
    run_id = manager.create_run(START, END, preview, status="Draft")

    manager.update_run(run_id, {"status": "Finalized"})
    assert manager.get_run(run_id).status == "Finalized"
    assert loan_balance(db, josephine, "sss_loan") == pytest.approx(20000 - 1292.06)
    assert loan_balance(db, josephine, "pagibig_loan") == pytest.approx(30000 - 1783.16)
    assert loan_balance(db, eddie, "company_loan") == pytest.approx(8000)

    manager.update_run(run_id, {"status": "Finalized"})
    assert loan_balance(db, josephine, "sss_loan") == pytest.approx(20000 - 1292.06)
    assert loan_balance(db, eddie, "company_loan") == pytest.approx(8000)


def test_create_finalized_run_settles_immediately(manager, db, eddie):
    preview = manager.calculate_preview([eddie], START, END)
    manager.create_run(START, END, preview, status="Finalized")
    assert loan_balance(db, eddie, "company_loan") == pytest.approx(8000)
    assert loan_balance(db, eddie, "sss_loan") == pytest.approx(15000 - 1199.77)


def test_other_deduction_named_like_a_loan_leaves_the_balance_alone(manager, db, make_employee):
    info = copy.deepcopy(EDDIE)
    info["deductions"]["other_deductions"] = [{"name": "company_loan", "amount": 150}]
    eddie = make_employee("EDDIE JR.", "CABALLES", info)
    preview = manager.calculate_preview([eddie], START, END)
    assert preview[0].deduction_details["company_loan"] == Decimal("2000")
    manager.create_run(START, END, preview, status="Finalized")
    assert loan_balance(db, eddie, "company_loan") == pytest.approx(8000)


def test_create_without_status_finalizes(manager, db, eddie):
    run_id = manager.create_run(START, END, [line(eddie, 100, company_loan=2000)])
    assert manager.get_run(run_id).status == "Finalized"
    assert loan_balance(db, eddie, "company_loan") == pytest.approx(8000)


def test_balances_never_go_negative(manager, db, eddie):
    manager.create_run(START, END, [line(eddie, 100, company_loan=25000)], status="Finalized")
    assert loan_balance(db, eddie, "company_loan") == 0


def test_only_configured_loans_are_decremented(manager, db, josephine):
    manager.create_run(START, END, [line(josephine, 100, company_loan=500)], status="Finalized")
    db.expire_all()
    assert "company_loan" not in db.get(models.Employee, josephine.id).salary_info["deductions"]


def test_repeated_payslips_for_one_employee_accumulate(manager, db, josephine):
    items = [line(josephine, 100, sss_loan=1000), line(josephine, 100, sss_loan=1000)]
    manager.create_run(START, END, items, status="Finalized")
    assert loan_balance(db, josephine, "sss_loan") == pytest.approx(18000)


def test_edit_replaces_every_payslip(manager, db, josephine, eddie, make_employee):
    third = make_employee("MARIA", "CLARA")
    run_id = manager.create_run(
        START, END, [line(josephine, 100), line(eddie, 200)], status="Draft"
    )

    manager.update_run(run_id, {"items": [line(josephine, 110), line(eddie, 220), line(third, 330)]})

    assert db.query(models.Payslip).count() == 3
    assert sorted(e for e, _, _ in payslip_rows(manager, run_id)) == sorted(
        [josephine.id, eddie.id, third.id]
    )
    assert manager.get_run(run_id).total_amount == Decimal("660")


def test_identical_edits_are_stable(manager, josephine, eddie):
    items = [line(josephine, "3019.78", sss_loan=1292.06), line(eddie, 1631.93)]
    run_id = manager.create_run(START, END, items, status="Draft")

    manager.update_run(run_id, {"items": items, "status": "Draft"})
    first = (manager.get_run(run_id).total_amount, payslip_rows(manager, run_id))
    manager.update_run(run_id, {"items": items, "status": "Draft"})
    second = (manager.get_run(run_id).total_amount, payslip_rows(manager, run_id))

    assert first == second
    assert first[0] == Decimal("4651.71")


def test_finalize_uses_replaced_payslips(manager, db, eddie):
    run_id = manager.create_run(START, END, [line(eddie, 100, company_loan=2000)], status="Draft")
    manager.update_run(run_id, {
        "items": [line(eddie, 100, company_loan=500)],
        "status": "Finalized",
    })
    assert loan_balance(db, eddie, "company_loan") == pytest.approx(9500)


def test_editing_finalized_run_does_not_reapply(manager, db, eddie):
    run_id = manager.create_run(START, END, [line(eddie, 100, company_loan=2000)], status="Finalized")
    manager.update_run(run_id, {
        "items": [line(eddie, 50, company_loan=3000)],
        "status": "Finalized",
    })
    assert loan_balance(db, eddie, "company_loan") == pytest.approx(8000)
    assert manager.get_run(run_id).total_amount == Decimal("50")


def test_finalized_run_cannot_return_to_draft(manager, eddie):
    run_id = manager.create_run(START, END, [line(eddie, 100)], status="Finalized")
    with pytest.raises(PayrollValidationError):
        manager.update_run(run_id, {"status": "Draft"})
    assert manager.get_run(run_id).status == "Finalized"


def test_period_edit(manager, eddie):
    run_id = manager.create_run(START, END, [line(eddie, 100)], status="Draft")
    manager.update_run(run_id, {"period_start": "2024-03-16", "period_end": "2024-03-31"})
    run = manager.get_run(run_id)
    assert (run.period_start.day, run.period_end.day) == (16, 31)
    assert len(manager.store.list_payslips(run_id)) == 1

    with pytest.raises(PayrollValidationError):
        manager.update_run(run_id, {"period_end": "2024-03-01"})


def test_delete_keeps_applied_decrements(manager, db, eddie):
    run_id = manager.create_run(START, END, [line(eddie, 100, company_loan=2000)], status="Finalized")
    manager.delete_run(run_id)

    assert db.query(models.Payslip).count() == 0
    with pytest.raises(PayrollRunNotFound):
        manager.get_run(run_id)
    assert loan_balance(db, eddie, "company_loan") == pytest.approx(8000)


def test_unknown_run(manager):
    with pytest.raises(PayrollRunNotFound):
        manager.update_run(404, {"status": "Finalized"})
    with pytest.raises(PayrollRunNotFound):
        manager.delete_run(404)


@pytest.mark.parametrize(
    "period_start,period_end,items,status",
    [
        (None, END, [], "Draft"),
        (START, None, [], "Draft"),
        (START, END, None, "Draft"),
        (START, END, [{"net_pay": 10}], "Draft"),
        (START, END, [], "Paid"),
    ],
)
def test_create_rejects_bad_input(manager, period_start, period_end, items, status):
    with pytest.raises(PayrollValidationError):
        manager.create_run(period_start, period_end, items, status=status)


def test_update_rejects_unknown_fields(manager, eddie):
    run_id = manager.create_run(START, END, [line(eddie, 100)], status="Draft")
    with pytest.raises(PayrollValidationError):
        manager.update_run(run_id, {"total_amount": 1})


def test_finalize_transition_happens_once(db, manager, eddie):
    run_id = manager.create_run(START, END, [line(eddie, 100)], status="Draft")
    store = SqlAlchemyPayrollStore(db)
    assert store.finalize_run(run_id) is True
    assert store.finalize_run(run_id) is False
    db.commit()


class FailingPayslipStore(SqlAlchemyPayrollStore):
    def batch_create_payslips(self, run_id, lines):
        raise SQLAlchemyError("disk I/O error")


def test_failed_payslip_write_rolls_back_everything(db, eddie):
    manager = PayrollRunManager(FailingPayslipStore(db))
    with pytest.raises(PayrollStorageError):
        manager.create_run(START, END, [line(eddie, 100, company_loan=2000)], status="Finalized")

    assert db.query(models.PayrollRun).count() == 0
    assert loan_balance(db, eddie, "company_loan") == 10000


def test_failed_edit_keeps_draft_and_old_payslips(db, manager, eddie):
    run_id = manager.create_run(START, END, [line(eddie, 100, company_loan=2000)], status="Draft")

    failing = PayrollRunManager(FailingPayslipStore(db))
    with pytest.raises(PayrollStorageError):
        failing.update_run(run_id, {
            "items": [line(eddie, 50, company_loan=1000)],
            "status": "Finalized",
        })

    db.expire_all()
    assert manager.get_run(run_id).status == "Draft"
    assert [net for _, net, _ in payslip_rows(manager, run_id)] == [Decimal("100")]
    assert loan_balance(db, eddie, "company_loan") == 10000
