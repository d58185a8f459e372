from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import inspect

from pygoose.errors import RunnerError
from pygoose.runner import Runner

SCRIPTS = {
    "1_create_users.sql": """-- +goose Up
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    email TEXT NOT NULL
);

-- +goose Down
DROP TABLE users;
""",
    "2_create_posts.sql": """-- +goose Up
CREATE TABLE posts (id INTEGER PRIMARY KEY, user_id INTEGER REFERENCES users (id));

-- +goose Down
DROP TABLE posts;
""",
    "3_lowercase_emails.sql": """-- +goose Up
-- +goose StatementBegin
CREATE TRIGGER users_email_lower AFTER INSERT ON users
BEGIN
    UPDATE users SET email = lower(NEW.email) WHERE id = NEW.id;
END;
-- +goose StatementEnd

-- +goose Down
DROP TRIGGER users_email_lower;
""",
}


@pytest.fixture()
def runner(database, migrations_dir: Path) -> Runner:
    for name, body in SCRIPTS.items():
        (migrations_dir / name).write_text(body)
    return Runner(database, migrations_dir)


def _tables(runner: Runner) -> set[str]:
    return set(inspect(runner.database.engine).get_table_names())


def test_up_applies_everything_in_order(runner):
    applied = runner.up()

    assert [m.version for m in applied] == [1, 2, 3]
    assert runner.version() == 3
    assert {"users", "posts"} <= _tables(runner)

    with runner.database.engine.begin() as conn:
        conn.exec_driver_sql("INSERT INTO users (email) VALUES ('Ada@Example.COM')")
    with runner.database.engine.connect() as conn:
        assert conn.exec_driver_sql("SELECT email FROM users").scalar_one() == "ada@example.com"

    assert runner.up() == []


def test_up_to_and_down_to(runner):
    assert [m.version for m in runner.up_to(2)] == [1, 2]
    assert runner.version() == 2

    assert [m.version for m in runner.down_to(0)] == [2, 1]
    assert runner.version() == 0
    assert "users" not in _tables(runner)

    runner.up()
    with pytest.raises(RunnerError):
        runner.up_to(1)
    with pytest.raises(RunnerError):
        runner.down_to(5)


def test_down_reverts_one_migration(runner):
    runner.up()

    assert [m.version for m in runner.down()] == [3]
    assert runner.version() == 2
    assert "posts" in _tables(runner)


def test_down_at_zero_is_an_error(runner):
    with pytest.raises(RunnerError):
        runner.down()


def test_redo_and_reset(runner):
    runner.up()

    assert [m.version for m in runner.redo()] == [3, 3]
    assert runner.version() == 3

    assert [m.version for m in runner.reset()] == [3, 2, 1]
    assert runner.version() == 0
    assert not {"users", "posts"} & _tables(runner)


def test_status_reports_pending_and_applied(runner):
    runner.up_to(1)

    statuses = runner.status()

    assert [s.migration.version for s in statuses] == [1, 2, 3]
    assert [s.applied for s in statuses] == [True, False, False]
    assert statuses[1].label == "Pending"
    assert statuses[0].label != "Pending"
