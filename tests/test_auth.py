"""Tests for the auth gate and registries."""

import time

import pytest

from gateway.application.pipeline import (
    AuthGate,
    AuthRecord,
    AuthRegistry,
    AuthStatus,
    SqlAuthRegistry,
)
from gateway.common.errors import AuthError
from gateway.domain import models


@pytest.mark.parametrize(
    "raw,expected",
    [
        (1, AuthStatus.ACTIVE),
        ("1", AuthStatus.ACTIVE),
        ("active", AuthStatus.ACTIVE),
        (0, AuthStatus.DISABLED),
        ("disabled", AuthStatus.DISABLED),
        (2, AuthStatus.UNKNOWN),
        (None, AuthStatus.UNKNOWN),
    ],
)
def test_status_from_raw(raw, expected):
    assert AuthStatus.from_raw(raw) is expected


def test_active_record_is_returned(registry):
    result = AuthGate(registry).authenticate("game-1")
    assert isinstance(result, AuthRecord)
    assert result.id == "game-1"
    assert result.status is AuthStatus.ACTIVE
    assert result.metadata == {"name": "alpha"}


@pytest.mark.parametrize(
    "auth_id,debug",
    [
        ("game-2", "status: disabled"),
        ("game-3", "status: unknown"),
        ("missing", "status: not found"),
        ("", "status: not found"),
        (None, "status: not found"),
    ],
)
def test_rejections_carry_status(registry, auth_id, debug):
    result = AuthGate(registry).authenticate(auth_id)
    assert isinstance(result, AuthError)
    assert result.code == -7
    assert result.message == "invalid or unauthorized credential"
    assert result.debug == debug


def test_sql_registry_reads_game_table(session_factory):
    with session_factory() as db:
        db.add_all([
            models.Game(id="g-100", name="live", status=1, remark="prod"),
            models.Game(id="g-200", name="off", status=0),
        ])
        db.commit()

    gate = AuthGate(SqlAuthRegistry(session_factory))

    ok = gate.authenticate("g-100")
    assert isinstance(ok, AuthRecord)
    assert ok.metadata["name"] == "live"
    assert ok.metadata["remark"] == "prod"

    off = gate.authenticate("g-200")
    assert isinstance(off, AuthError)
    assert off.debug == "status: disabled"

    assert gate.authenticate("g-300").debug == "status: not found"


def test_sql_registry_is_read_only(session_factory):
    with session_factory() as db:
        db.add(models.Game(id="g-1", name="live", status=1))
        db.commit()

    AuthGate(SqlAuthRegistry(session_factory)).authenticate("g-1")

    with session_factory() as db:
        row = db.get(models.Game, "g-1")
        assert row.updated_at is None


class _SlowRegistry(AuthRegistry):
    def lookup(self, auth_id):
        time.sleep(0.5)
        return AuthRecord(id=auth_id, status=AuthStatus.ACTIVE)


def test_registry_timeout_is_an_auth_error():
    result = AuthGate(_SlowRegistry(), timeout=0.05).authenticate("game-1")
    assert isinstance(result, AuthError)
    assert result.debug == "status: registry unavailable"
