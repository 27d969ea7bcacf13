"""Tests for the listen_sql statement recorder."""

import pytest
from sqlalchemy import create_engine, select, text
from sqlalchemy.pool import StaticPool

from gateway.domain import models
from gateway.infra.db import make_session_factory
from gateway.infra.sql_listener import enable_sql_listener


@pytest.fixture
def watched_engine():
    engine = create_engine("sqlite://", poolclass=StaticPool, future=True)
    yield engine
    engine.dispose()


def _listen_rows(session_factory):
    with session_factory() as db:
        return db.scalars(select(models.ListenSql).order_by(models.ListenSql.id)).all()


def test_statements_are_recorded_until_disabled(watched_engine, session_factory):
    disable = enable_sql_listener(watched_engine, session_factory, role="slave")

    with watched_engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    disable()

    with watched_engine.connect() as conn:
        conn.execute(text("SELECT 2"))

    rows = _listen_rows(session_factory)
    assert [r.sql for r in rows] == ["SELECT 1"]
    assert rows[0].ms == "slave"
    assert rows[0].exec_time.endswith("s")
    assert len(rows[0].date) == 19


def test_bound_parameters_are_kept(watched_engine, session_factory):
    disable = enable_sql_listener(watched_engine, session_factory)
    try:
        with watched_engine.connect() as conn:
            conn.execute(text("SELECT :x"), {"x": 5})
    finally:
        disable()

    rows = _listen_rows(session_factory)
    assert rows[0].ms == "master"
    assert rows[0].params in ([5], {"x": 5})


def test_log_table_statements_are_skipped(watched_engine, session_factory):
    models.Base.metadata.create_all(watched_engine)
    disable = enable_sql_listener(watched_engine, session_factory)
    try:
        with make_session_factory(watched_engine)() as db:
            db.add(models.ListenSql(date="2024-01-01 00:00:00", sql="manual", exec_time="0s", ms="master"))
            db.commit()
    finally:
        disable()

    assert _listen_rows(session_factory) == []
