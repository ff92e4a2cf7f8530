import sqlite3

import pytest

from database import Database, DatabaseConfigError, describe_database_url, parse_database_url


def test_parse_database_url():
    assert parse_database_url(None) == ('sqlite', 'customers.db')
    assert parse_database_url('sqlite:///local.db') == ('sqlite', 'local.db')
    assert parse_database_url('sqlite:////var/data/c.db') == ('sqlite', '/var/data/c.db')
    assert parse_database_url('postgres://u:p@host/db') == ('postgres', 'postgres://u:p@host/db')
    assert parse_database_url('postgresql://host/db')[0] == 'postgres'


@pytest.mark.parametrize("url", ['mysql://host/db', 'sqlite://', 'not a url'])
def test_parse_database_url_rejects_unusable_urls(url):
    with pytest.raises(DatabaseConfigError):
        parse_database_url(url)


def test_describe_database_url_masks_password():
    assert describe_database_url('postgresql://app:hunter2@db:5432/crm') == 'postgresql://app:****@db:5432/crm'
    assert describe_database_url('sqlite:///local.db') == 'sqlite:///local.db'
    assert describe_database_url(None) == '<unset>'


def test_schema_creation_is_idempotent(tmp_path):
    url = f"sqlite:///{tmp_path}/c.db"
    with Database(url) as db:
        db.add_customer("A", "a@x.com", "new")

    with Database(url) as db:
        customers = db.get_all_customers()
    assert [(c.id, c.name) for c in customers] == [(1, "A")]


def test_crud_round_trip(database):
    first = database.add_customer("A", "a@x.com", "new")
    second = database.add_customer("B", "b@x.com", "lead")
    assert second > first > 0

    customer = database.get_customer_by_id(first)
    assert customer.to_dict() == {"id": first, "name": "A", "email": "a@x.com", "status": "new"}

    # path parameters arrive as strings
    assert database.get_customer_by_id(str(second)).name == "B"

    assert database.update_customer(first, "A2", "a2@x.com", "active") is True
    assert database.get_customer_by_id(first).status == "active"
    assert database.update_customer(999, "X", "X", "X") is False

    assert database.delete_customer(first) is True
    assert database.get_customer_by_id(first) is None
    assert database.delete_customer(first) is False
    assert [c.id for c in database.get_all_customers()] == [second]


def test_ids_are_not_reused_after_delete(database):
    first = database.add_customer("A", "", "")
    database.delete_customer(first)
    assert database.add_customer("B", "", "") > first


def test_failed_statement_rolls_back(database):
    database.add_customer("A", "", "")
    with pytest.raises(sqlite3.OperationalError):
        with database._cursor() as cursor:
            cursor.execute("INSERT INTO customers (name) VALUES ('ghost')")
            cursor.execute("SELECT * FROM no_such_table")

    assert [c.name for c in database.get_all_customers()] == ["A"]


def test_calls_before_connect_raise():
    db = Database('sqlite:///never-opened.db')
    with pytest.raises(DatabaseConfigError):
        db.get_all_customers()


def test_unreachable_sqlite_path_fails_connect(tmp_path):
    db = Database(f"sqlite:///{tmp_path}/missing-dir/c.db")
    with pytest.raises(sqlite3.OperationalError):
        db.connect()
