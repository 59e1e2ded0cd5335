from sqlalchemy.exc import DBAPIError, OperationalError

from devkit.db import asyncpg_dsn, is_transient_db_error, normalize_postgres_dsn


def test_normalize_postgres_dsn_pins_psycopg() -> None:
    assert normalize_postgres_dsn("postgresql://u:p@h:5432/db") == "postgresql+psycopg://u:p@h:5432/db"
    assert normalize_postgres_dsn("postgres://u:p@h:5432/db") == "postgresql+psycopg://u:p@h:5432/db"
    assert normalize_postgres_dsn("postgresql+psycopg://u:p@h:5432/db") == "postgresql+psycopg://u:p@h:5432/db"
    assert normalize_postgres_dsn("sqlite+aiosqlite:///local.db") == "sqlite+aiosqlite:///local.db"


def test_asyncpg_dsn_strips_driver_suffix() -> None:
    assert asyncpg_dsn("postgresql+psycopg://u:p@h:5432/db") == "postgresql://u:p@h:5432/db"
    assert asyncpg_dsn("postgres://u:p@h:5432/db") == "postgresql://u:p@h:5432/db"
    assert asyncpg_dsn("not-a-dsn") == "not-a-dsn"


def test_transient_error_detection() -> None:
    invalidated = DBAPIError("stmt", {}, Exception("gone"), connection_invalidated=True)
    syntax = DBAPIError("stmt", {}, Exception("syntax"))

    assert is_transient_db_error(OperationalError("stmt", {}, Exception("down")))
    assert is_transient_db_error(invalidated)
    assert not is_transient_db_error(syntax)
    assert not is_transient_db_error(ValueError("nope"))
