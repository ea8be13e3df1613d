import copy
import os

# keep the app's own engine off disk; tests bind their own engine below
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from payroll import models
from payroll.database import get_db
from payroll.engine.lifecycle import PayrollRunManager
from payroll.engine.sql_store import SqlAlchemyPayrollStore
from payroll.main import app

from profiles import JOSEPHINE


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def manager(db):
    return PayrollRunManager(SqlAlchemyPayrollStore(db))


@pytest.fixture
def make_employee(db):
    def make(first_name="JOSEPHINE", last_name="ARRADAZA", salary_info=JOSEPHINE, **fields):
        fields.setdefault("branch", "Ormoc Branch")
        fields.setdefault("position", "Cashier")
        e = models.Employee(
            first_name=first_name,
            last_name=last_name,
            salary_info=copy.deepcopy(salary_info),
            **fields,
        )
        db.add(e)
        db.commit()
        db.refresh(e)
        return e

    return make


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
