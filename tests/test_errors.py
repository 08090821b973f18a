import sqlite3

from sqlalchemy.exc import IntegrityError

from core.errors import (
    AppError,
    EmailAlreadyRegistered,
    InsertFailed,
    InvalidToken,
    ServiceNotConfigured,
    UserNotFound,
    is_unique_violation,
)


class _PgError(Exception):
    pgcode = "23505"


def test_is_unique_violation_postgres_code():
    err = IntegrityError("INSERT INTO users ...", {}, _PgError("duplicate key value"))
    assert is_unique_violation(err)


def test_is_unique_violation_sqlite_message():
    orig = sqlite3.IntegrityError("UNIQUE constraint failed: users.email")
    assert is_unique_violation(IntegrityError("INSERT INTO users ...", {}, orig))


def test_is_unique_violation_other_errors():
    not_null = sqlite3.IntegrityError("NOT NULL constraint failed: users.email")
    assert not is_unique_violation(IntegrityError("INSERT", {}, not_null))
    assert not is_unique_violation(Exception())
    assert not is_unique_violation(None)


def test_error_status_codes_and_bodies():
    assert EmailAlreadyRegistered().status_code == 409
    assert InvalidToken().status_code == 401
    assert UserNotFound().status_code == 404
    assert ServiceNotConfigured().status_code == 500
    assert InsertFailed().to_body() == {"error": "Insert failed"}

    err = AppError("Nope", status_code=418, code="TEAPOT")
    assert err.status_code == 418
    assert err.to_body() == {"error": "Nope", "code": "TEAPOT"}
