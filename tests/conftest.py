"""Shared test fixtures."""

import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from gateway.application import system
from gateway.application.pipeline import (
    AuditLogger,
    AuthGate,
    InboundRequest,
    MemoryAuditSink,
    MemoryAuthRegistry,
    RequestPipeline,
    TransportInfo,
)
from gateway.application.rulesets import build_validation_engine
from gateway.domain import models  # noqa: F401
from gateway.infra.db import Base, make_session_factory

FIXED_TIME = 1700000000


def _memory_engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_engine():
    engine = _memory_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def registry():
    return MemoryAuthRegistry({
        "game-1": {"status": 1, "name": "alpha"},
        "game-2": {"status": 0, "name": "beta"},
        "game-3": {"status": 7, "name": "gamma"},
    })


@pytest.fixture
def audit_sink():
    return MemoryAuditSink()


@pytest.fixture
def make_pipeline(registry, audit_sink):
    def _make(actions=None, filters=None, online=False, audit=None, validation=None, jsonp_handler="callback"):
        return RequestPipeline(
            validation=validation or build_validation_engine(),
            auth_gate=AuthGate(registry),
            actions=actions if actions is not None else system.actions,
            filters=filters if filters is not None else system.filters,
            audit=audit or AuditLogger(audit_sink),
            online=online,
            jsonp_handler=jsonp_handler,
            clock=lambda: FIXED_TIME,
        )

    return _make


@pytest.fixture
def make_inbound():
    def _make(body=None, params=None, controller="system", action="ping", legacy=False, remote_addr="10.0.0.8"):
        raw = b""
        if body is not None:
            raw = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        return InboundRequest(
            raw_body=raw,
            params=params or {},
            controller=controller,
            action=action,
            transport=TransportInfo(remote_addr=remote_addr, server={"method": "POST", "path": f"/internal/{controller}"}),
            legacy=legacy,
            trace_id="trace-test",
        )

    return _make
