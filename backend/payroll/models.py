from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Numeric, JSON
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()


class Employee(Base):
    __tablename__ = 'employees'

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    department = Column(String, nullable=True)
    position = Column(String, nullable=True)
    branch = Column(String, nullable=True, index=True)
    employment_status = Column(String, nullable=True, default="Active")
    # salary profile document: basic_salary, daily_rate, allowances, deductions
    salary_info = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    payslips = relationship("Payslip", back_populates="employee")


class PayrollRun(Base):
    __tablename__ = 'payroll_runs'

    id = Column(Integer, primary_key=True, index=True)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="Draft")
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    payslips = relationship(
        "Payslip",
        back_populates="payroll_run",
        cascade="all, delete-orphan",
        order_by="Payslip.id",
    )


class Payslip(Base):
    __tablename__ = 'payslips'
    # payslip ids are never reused after a run's line items are replaced
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    payroll_run_id = Column(Integer, ForeignKey('payroll_runs.id', ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey('employees.id'), nullable=False, index=True)
    gross_pay = Column(Numeric(12, 2), nullable=False, default=0)
    net_pay = Column(Numeric(12, 2), nullable=False, default=0)
    total_deductions = Column(Numeric(12, 2), nullable=False, default=0)
    total_allowances = Column(Numeric(12, 2), nullable=False, default=0)
    days_present = Column(Numeric(6, 2), nullable=False, default=0)
    double_pay_days = Column(Numeric(6, 2), nullable=False, default=0)
    double_pay_amount = Column(Numeric(12, 2), nullable=False, default=0)
    deduction_details = Column(JSON, nullable=True)
    allowance_details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    payroll_run = relationship("PayrollRun", back_populates="payslips")
    employee = relationship("Employee", back_populates="payslips")
