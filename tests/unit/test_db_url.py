"""Unit tests for database URL normalization."""

import ssl

from airfeed.utils.db_async import (
    _normalize_db_url,
    _prepare_asyncpg_connection,
    describe_database_url,
)


class TestNormalizeDbUrl:
    """Tests for driver selection."""

    def test_bare_postgres_uses_asyncpg(self) -> None:
        assert (
            _normalize_db_url("postgres://u:p@db:5432/airfeed")
            == "postgresql+asyncpg://u:p@db:5432/airfeed"
        )

    def test_explicit_driver_is_kept(self) -> None:
        url = "sqlite+aiosqlite:///tmp/airfeed.db"
        assert _normalize_db_url(url) == url


class TestPrepareAsyncpgConnection:
    """Tests for libpq query arg translation."""

    def test_sslmode_require(self) -> None:
        url, connect_args = _prepare_asyncpg_connection(
            "postgresql://u:p@db/airfeed?sslmode=require&channel_binding=require"
        )

        assert url == "postgresql+asyncpg://u:p@db/airfeed"
        assert isinstance(connect_args["ssl"], ssl.SSLContext)
        assert connect_args["ssl"].verify_mode == ssl.CERT_NONE

    def test_sslmode_disable(self) -> None:
        _, connect_args = _prepare_asyncpg_connection(
            "postgresql://u:p@db/airfeed?sslmode=disable"
        )
        assert connect_args == {"ssl": False}

    def test_sslmode_prefer_leaves_negotiation_to_driver(self) -> None:
        _, connect_args = _prepare_asyncpg_connection(
            "postgresql://u:p@db/airfeed?sslmode=prefer"
        )
        assert connect_args == {}

    def test_sqlite_is_untouched(self) -> None:
        url = "sqlite+aiosqlite:///tmp/airfeed.db"
        assert _prepare_asyncpg_connection(url) == (url, {})


def test_describe_database_url_hides_password() -> None:
    description = describe_database_url("postgresql+asyncpg://u:secret@db:5432/airfeed")
    assert description == "postgresql+asyncpg://u@db:5432/airfeed"
    assert "secret" not in description
