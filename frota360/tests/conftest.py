import uuid

import pytest

from frota360.config import TestConfig
from frota360.extensions import db as _db
from frota360.server import create_app


@pytest.fixture(scope='session')
def app():
    return create_app(TestConfig)


@pytest.fixture
def db(app):
    """Fresh schema for every test, inside an app context."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def make_driver(db):
    from frota360.models.driver import Driver

    def _make(**kwargs):
        params = {
            'name': f"Motorista {uuid.uuid4().hex[:6]}",
            'type': 'affiliate',
            'status': 'active',
        }
        params.update(kwargs)
        driver = Driver(**params)
        db.session.add(driver)
        db.session.commit()
        return driver

    return _make


@pytest.fixture
def make_payment(db):
    from frota360.models.driver_payment import DriverPayment
    from frota360.utils.timezone_utils import get_week_dates

    def _make(driver, week_id, **kwargs):
        week_start, week_end = get_week_dates(week_id)
        params = {
            'driver_id': driver.id,
            'driver_name': driver.name,
            'driver_type': driver.type,
            'week_id': week_id,
            'week_start': week_start,
            'week_end': week_end,
            'payment_status': 'pending',
        }
        params.update(kwargs)
        payment = DriverPayment(**params)
        db.session.add(payment)
        db.session.commit()
        return payment

    return _make


class DummyCurrentUser:
    def __init__(self, user_id=1, driver_id=None, roles=('admin',)):
        self.id = user_id
        self.driver_id = driver_id
        self.roles = roles

    def has_role(self, role):
        return role in self.roles


@pytest.fixture
def dummy_user():
    return DummyCurrentUser
