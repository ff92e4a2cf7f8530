import sqlite3

import pytest

from app import create_app
from auth import StaticTokenVerifier
from database import Database

TOKEN = "token2019"


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path}/customers.db").connect()
    yield db
    db.close()


@pytest.fixture
def app(database):
    return create_app(
        test_config={'TESTING': True},
        database=database,
        verifier=StaticTokenVerifier(TOKEN),
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {'Authorization': TOKEN}


class FailingDatabase:
    """Storage stand-in whose every call raises a driver error."""

    def __init__(self, message="disk I/O error"):
        self.message = message

    def _fail(self, *args, **kwargs):
        raise sqlite3.OperationalError(self.message)

    add_customer = _fail
    get_all_customers = _fail
    get_customer_by_id = _fail
    update_customer = _fail
    delete_customer = _fail


@pytest.fixture
def failing_client():
    app = create_app(
        test_config={'TESTING': True},
        database=FailingDatabase(),
        verifier=StaticTokenVerifier(TOKEN),
    )
    return app.test_client()
