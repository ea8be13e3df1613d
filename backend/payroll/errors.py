class PayrollError(Exception):
    """Base error raised by the payroll engine."""

    status_code = 500


class PayrollValidationError(PayrollError, ValueError):
    status_code = 400


class PayrollRunNotFound(PayrollError, LookupError):
    status_code = 404

    def __init__(self, run_id: int):
        super().__init__(f"Payroll run {run_id} not found")
        self.run_id = run_id


class EmployeeNotFound(PayrollError, LookupError):
    status_code = 404

    def __init__(self, employee_id: int):
        super().__init__(f"Employee {employee_id} not found")
        self.employee_id = employee_id


class PayrollStorageError(PayrollError):
    """A storage failure; the whole operation was rolled back."""

    status_code = 500
