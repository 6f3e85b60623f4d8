"""Root conftest: snapshots, an in-memory repository and a Flask test client."""

import pytest

from settleup.app import create_app
from settleup.config import Config
from settleup.repository import InMemoryGroupRepository
from tests.factories import equal_expense, payment, snapshot


class _TestConfig(Config):
    SECRET_KEY = "test-secret"
    DEFAULT_CURRENCY = "USD"
    LOG_LEVEL = "WARNING"
    LOG_FORMAT = "text"


@pytest.fixture
def trip_expenses():
    # user 1 pays 30 for all three, user 2 pays 60 for all three
    return [
        equal_expense("30.00", 1, [1, 2, 3], expense_id=1),
        equal_expense("60.00", 2, [1, 2, 3], expense_id=2),
    ]


@pytest.fixture
def trip_snapshot(trip_expenses):
    return snapshot([1, 2, 3], trip_expenses)


@pytest.fixture
def repository(trip_expenses):
    repo = InMemoryGroupRepository("USD")
    repo.add_group(1, [1, 2, 3])
    for exp in trip_expenses:
        repo.add_expense(1, exp)

    # second group: user 2 pays 50 shared with user 1
    repo.add_group(2, [1, 2])
    repo.add_expense(2, equal_expense("50.00", 2, [1, 2], expense_id=3))
    repo.add_payment(2, payment("5.00", 1, 2))
    return repo


@pytest.fixture
def app(repository):
    return create_app(repository=repository, settings=_TestConfig())


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(user_id):
        with client.session_transaction() as sess:
            sess["user_id"] = user_id
        return client

    return _login
