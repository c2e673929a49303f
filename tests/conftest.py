"""Shared fixtures: every service wired over a fresh in-memory database."""
from datetime import date

import pytest

from database.bill_dao import BillDAO
from database.db_manager import DatabaseManager
from database.notification_dao import NotificationDAO
from database.projection_dao import ProjectionDAO
from database.recurring_dao import RecurringDAO
from database.transaction_dao import TransactionDAO
from services.forecast_service import ForecastService
from services.health_service import FinancialHealthService
from services.projection_service import ProjectionService
from services.recurring_service import RecurringService
from services.reminder_service import ReminderService

OWNER = 1


@pytest.fixture
def db():
    manager = DatabaseManager(":memory:")
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def tx_dao(db):
    return TransactionDAO(db)


@pytest.fixture
def recurring_dao(db):
    return RecurringDAO(db)


@pytest.fixture
def bill_dao(db):
    return BillDAO(db)


@pytest.fixture
def notification_dao(db):
    return NotificationDAO(db)


@pytest.fixture
def projection_dao(db):
    return ProjectionDAO(db)


@pytest.fixture
def recurring_svc(recurring_dao, tx_dao):
    return RecurringService(recurring_dao, tx_dao)


@pytest.fixture
def reminder_svc(bill_dao, notification_dao):
    return ReminderService(bill_dao, notification_dao)


@pytest.fixture
def projection_svc(projection_dao, recurring_dao, tx_dao):
    return ProjectionService(projection_dao, recurring_dao, tx_dao)


@pytest.fixture
def forecast_svc(projection_svc, recurring_dao):
    return ForecastService(projection_svc, recurring_dao)


@pytest.fixture
def health_svc(recurring_svc, projection_svc, tx_dao):
    return FinancialHealthService(recurring_svc, projection_svc, tx_dao)


@pytest.fixture
def salary(recurring_svc):
    """Monthly income of 500000 starting 2024-01-15."""
    return recurring_svc.create(
        OWNER, "income", "500000", "Salary", "monthly", date(2024, 1, 15),
    )
