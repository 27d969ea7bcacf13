"""Tests for RequestPipeline — full request lifecycle."""

import json

import pytest

from gateway.application.pipeline import (
    AuditLogger,
    AuditSink,
    AuthGate,
    AuthRecord,
    AuthRegistry,
    AuthStatus,
    BeforeAction,
    DispatchTable,
    FilterChain,
    Reply,
    RequestPipeline,
    SqlAuditSink,
    TransportHints,
    success,
)
from gateway.application.rulesets import build_validation_engine
from gateway.common.errors import FilterAbort
from gateway.domain import models

# same instant as the pipeline clock in conftest
FIXED_TIME = 1700000000


def _body(resp):
    return json.loads(resp.body)


@pytest.fixture
def foo_actions():
    table = DispatchTable()
    table.register("foo", lambda ctx: success(data={"foo": 1}))
    return table


# ── end-to-end scenarios ─────────────────────────────────────


def test_empty_auth_id_fails_validation(make_pipeline, make_inbound, audit_sink):
    inbound = make_inbound(params={"auth_id": "", "module": "x", "action": "y"})

    resp = make_pipeline().handle(inbound)

    assert resp.status_code == 200
    assert _body(resp) == {
        "code": -7,
        "msg": "missing/invalid request parameters",
        "time": FIXED_TIME,
        "data": {},
        "debug": {"auth_id": "required"},
    }
    assert [r.code for r in audit_sink.records] == [-7]


def test_missing_auth_id_key_fails_validation(make_pipeline, make_inbound):
    resp = make_pipeline().handle(make_inbound(body={"data": {"user_id": 1}}))
    body = _body(resp)
    assert body["code"] == -7
    assert body["debug"]["auth_id"]


def test_disabled_credential(make_pipeline, make_inbound, audit_sink):
    resp = make_pipeline().handle(make_inbound(body={"auth_id": "game-2"}))

    body = _body(resp)
    assert resp.status_code == 200
    assert body["code"] == -7
    assert body["msg"] == "invalid or unauthorized credential"
    assert body["debug"] == "status: disabled"
    assert audit_sink.records[0].debug == "status: disabled"


def test_unknown_credential(make_pipeline, make_inbound):
    body = _body(make_pipeline().handle(make_inbound(body={"auth_id": "nobody"})))
    assert body["debug"] == "status: not found"


def test_successful_request(make_pipeline, make_inbound, audit_sink, foo_actions):
    pipeline = make_pipeline(actions=foo_actions, filters=FilterChain())

    resp = pipeline.handle(make_inbound(body={"auth_id": "game-1", "data": {"user_id": 9}}, action="foo"))

    assert resp.status_code == 200
    assert resp.media_type == "application/json"
    assert _body(resp) == {"code": 1, "msg": "", "time": FIXED_TIME, "data": {"foo": 1}}
    assert resp.audit_error is None

    records = audit_sink.records
    assert len(records) == 1
    assert records[0].code == 1
    assert records[0].auth_id == "game-1"
    assert records[0].user_id == "9"
    assert records[0].action == "foo"
    assert records[0].trace_id == "trace-test"
    assert records[0].ip == "10.0.0.8"


def test_online_mode_hides_debug_but_audit_keeps_it(make_pipeline, make_inbound, audit_sink):
    resp = make_pipeline(online=True).handle(make_inbound(body={"auth_id": "game-2"}))

    assert "debug" not in _body(resp)
    assert audit_sink.records[0].response["debug"] == "status: disabled"


def test_malformed_body(make_pipeline, make_inbound, audit_sink):
    resp = make_pipeline().handle(make_inbound(body=b"{oops"))

    body = _body(resp)
    assert body["code"] == 0
    assert body["msg"] == "malformed request body"
    assert len(audit_sink.records) == 1
    assert audit_sink.records[0].request == {}


def test_unknown_action(make_pipeline, make_inbound, audit_sink):
    resp = make_pipeline().handle(make_inbound(body={"auth_id": "game-1"}, action="nope"))

    assert resp.status_code == 404
    assert _body(resp)["code"] == 404
    assert _body(resp)["msg"] == "unknown action"
    assert audit_sink.records[0].code == 404


def test_handler_defect_still_produces_envelope_and_audit(make_pipeline, make_inbound, audit_sink):
    table = DispatchTable()

    @table.register("boom")
    def boom(ctx):
        raise RuntimeError("kaput")

    resp = make_pipeline(actions=table, filters=FilterChain()).handle(
        make_inbound(body={"auth_id": "game-1"}, action="boom")
    )

    body = _body(resp)
    assert resp.status_code == 200
    assert body["code"] == 0
    assert body["msg"] == "internal server error"
    assert "RuntimeError" in body["debug"]
    assert audit_sink.records[0].code == 0


def test_handler_must_return_reply(make_pipeline, make_inbound):
    table = DispatchTable({"bad": lambda ctx: {"foo": 1}})
    resp = make_pipeline(actions=table, filters=FilterChain()).handle(
        make_inbound(body={"auth_id": "game-1"}, action="bad")
    )
    assert _body(resp)["code"] == 0


def test_handler_transport_hints(make_pipeline, make_inbound):
    table = DispatchTable({
        "created": lambda ctx: success("made", {"id": 7}, hints=TransportHints(status_code=201, headers={"X-Id": "7"})),
    })
    resp = make_pipeline(actions=table, filters=FilterChain()).handle(
        make_inbound(body={"auth_id": "game-1"}, action="created")
    )
    assert resp.status_code == 201
    assert resp.headers == {"X-Id": "7"}
    assert _body(resp)["data"] == {"id": 7}


def test_caller_defined_code_maps_to_200(make_pipeline, make_inbound):
    table = DispatchTable({"biz": lambda ctx: success("balance low", code=3001)})
    resp = make_pipeline(actions=table, filters=FilterChain()).handle(
        make_inbound(body={"auth_id": "game-1"}, action="biz")
    )
    assert resp.status_code == 200
    assert _body(resp)["code"] == 3001


class _Opaque:
    __slots__ = ()


def test_malformed_reply_becomes_internal_error(make_pipeline, make_inbound, audit_sink):
    table = DispatchTable({"bad": lambda ctx: Reply(message=123)})

    resp = make_pipeline(actions=table, filters=FilterChain()).handle(
        make_inbound(body={"auth_id": "game-1"}, action="bad")
    )

    body = _body(resp)
    assert resp.status_code == 200
    assert body["code"] == 0
    assert body["msg"] == "internal server error"
    assert "ValidationError" in body["debug"]
    assert [r.code for r in audit_sink.records] == [0]


def test_unserializable_reply_data_becomes_internal_error(make_pipeline, make_inbound, session_factory):
    table = DispatchTable({"odd": lambda ctx: success(data={"x": _Opaque()})})
    pipeline = make_pipeline(actions=table, filters=FilterChain(), audit=AuditLogger(SqlAuditSink(session_factory)))

    resp = pipeline.handle(make_inbound(body={"auth_id": "game-1"}, action="odd"))

    assert _body(resp)["code"] == 0
    assert _body(resp)["msg"] == "internal server error"
    assert resp.audit_error is None
    with session_factory() as db:
        rows = db.query(models.ApiInternalLog).all()
    assert [r.code for r in rows] == [0]


def test_unserializable_debug_is_still_audited_online(make_pipeline, make_inbound, audit_sink):
    filters = FilterChain([BeforeAction("deny", lambda ctx: FilterAbort("nope", code=-3, debug=_Opaque()))])

    resp = make_pipeline(filters=filters, online=True).handle(make_inbound(body={"auth_id": "game-1"}))

    assert _body(resp)["code"] == -3
    assert resp.audit_error is None
    assert audit_sink.records[0].debug.startswith("<")


# ── stage ordering and short-circuits ────────────────────────


class _SpyRegistry(AuthRegistry):
    def __init__(self):
        self.calls = []

    def lookup(self, auth_id):
        self.calls.append(auth_id)
        return AuthRecord(id=auth_id, status=AuthStatus.ACTIVE)


def test_validation_failure_skips_auth_and_hooks(make_inbound, audit_sink, foo_actions):
    spy = _SpyRegistry()
    hook_calls = []
    pipeline = RequestPipeline(
        validation=build_validation_engine(),
        auth_gate=AuthGate(spy),
        actions=foo_actions,
        filters=FilterChain([BeforeAction("h", lambda ctx: hook_calls.append(ctx) or None)]),
        audit=AuditLogger(audit_sink),
    )

    pipeline.handle(make_inbound(body={"auth_id": ""}, action="foo"))

    assert spy.calls == []
    assert hook_calls == []
    assert len(audit_sink.records) == 1


def test_auth_runs_before_hooks_and_hooks_see_record(make_pipeline, make_inbound, foo_actions):
    seen = []

    def hook(ctx):
        seen.append(ctx.auth.id)
        return None

    pipeline = make_pipeline(actions=foo_actions, filters=FilterChain([BeforeAction("h", hook)]))
    pipeline.handle(make_inbound(body={"auth_id": "game-1"}, action="foo"))
    assert seen == ["game-1"]


def test_filter_abort_skips_dispatch(make_pipeline, make_inbound, audit_sink):
    dispatched = []
    table = DispatchTable({"foo": lambda ctx: dispatched.append(1) or success()})
    filters = FilterChain([
        BeforeAction("deny", lambda ctx: FilterAbort("maintenance", code=1503, debug="window"), only="foo"),
    ])

    resp = make_pipeline(actions=table, filters=filters).handle(
        make_inbound(body={"auth_id": "game-1"}, action="foo")
    )

    assert dispatched == []
    assert _body(resp) == {"code": 1503, "msg": "maintenance", "time": FIXED_TIME, "data": {}, "debug": "window"}
    assert audit_sink.records[0].code == 1503


def test_system_echo_requires_user_id(make_pipeline, make_inbound):
    pipeline = make_pipeline()

    missing = _body(pipeline.handle(make_inbound(body={"auth_id": "game-1"}, action="echo")))
    assert missing["code"] == -7
    assert missing["debug"] == {"data.user_id": "required"}

    ok = _body(pipeline.handle(make_inbound(body={"auth_id": "game-1", "data": {"user_id": 5}}, action="echo")))
    assert ok["code"] == 1
    assert ok["data"] == {"user_id": 5}


def test_system_ping(make_pipeline, make_inbound):
    body = _body(make_pipeline().handle(make_inbound(body={"auth_id": "game-1"})))
    assert body["data"] == {"pong": True, "auth_id": "game-1", "time": FIXED_TIME}


# ── legacy dispatch mode ─────────────────────────────────────


def test_legacy_mode_dispatches_on_body_action(make_pipeline, make_inbound, audit_sink):
    pipeline = make_pipeline()
    inbound = make_inbound(
        body={"auth_id": "game-1", "module": "system", "action": "ping"}, action="", legacy=True,
    )

    body = _body(pipeline.handle(inbound))

    assert body["code"] == 1
    assert audit_sink.records[0].module == "system"
    assert audit_sink.records[0].action == "ping"


def test_legacy_mode_uses_old_scene(make_pipeline, make_inbound):
    inbound = make_inbound(body={"auth_id": "game-1", "module": "system"}, action="", legacy=True)
    body = _body(make_pipeline().handle(inbound))
    assert body["code"] == -7
    assert body["debug"] == {"action": "required"}


def test_legacy_mode_filters_see_resolved_action(make_pipeline, make_inbound):
    inbound = make_inbound(body={"auth_id": "game-1", "module": "system", "action": "echo"}, legacy=True)
    body = _body(make_pipeline().handle(inbound))
    assert body["debug"] == {"data.user_id": "required"}


# ── audit behaviour ──────────────────────────────────────────


class _BrokenSink(AuditSink):
    def write(self, record):
        raise OSError("disk full")


def test_audit_failure_does_not_change_response(make_pipeline, make_inbound):
    surfaced = []
    pipeline = make_pipeline(audit=AuditLogger(_BrokenSink(), on_error=surfaced.append))

    resp = pipeline.handle(make_inbound(body={"auth_id": "game-1"}))

    assert _body(resp)["code"] == 1
    assert resp.audit_error is not None
    assert surfaced == [resp.audit_error]


def test_exactly_one_record_per_request(make_pipeline, make_inbound, audit_sink):
    pipeline = make_pipeline()
    pipeline.handle(make_inbound(body={"auth_id": "game-1"}))
    pipeline.handle(make_inbound(body={"auth_id": ""}))
    pipeline.handle(make_inbound(body=b"[]"))
    pipeline.handle(make_inbound(body={"auth_id": "game-3"}))
    assert [r.code for r in audit_sink.records] == [1, -7, 0, -7]


def test_fail_exception_validation_is_still_an_envelope(make_pipeline, make_inbound, audit_sink):
    engine = build_validation_engine()
    engine.fail_exception = True
    resp = make_pipeline(validation=engine).handle(make_inbound(body={"auth_id": ""}))
    assert _body(resp)["code"] == -7
    assert len(audit_sink.records) == 1


# ── jsonp ────────────────────────────────────────────────────


def test_jsonp_callback_param(make_pipeline, make_inbound):
    resp = make_pipeline().handle(make_inbound(params={"auth_id": "game-1", "callback": "cb"}))
    assert resp.media_type == "application/javascript"
    assert resp.body.startswith(b"cb(")


def test_jsonp_disabled(make_pipeline, make_inbound):
    resp = make_pipeline(jsonp_handler="").handle(make_inbound(params={"auth_id": "game-1", "callback": "cb"}))
    assert resp.media_type == "application/json"
