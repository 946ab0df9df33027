import logging

import pytest

from ctxmeta.actions import ClientContext, InsertAction, UpsertAction
from ctxmeta.config import ActionConfig, ConfigError
from ctxmeta.processors import (
    ContextLogsProcessor,
    ContextMetricsProcessor,
    ContextTracesProcessor,
    ResourceData,
    build_actions_runner,
)

PROCESSORS = [
    (ContextTracesProcessor, "consume_traces"),
    (ContextLogsProcessor, "consume_logs"),
    (ContextMetricsProcessor, "consume_metrics"),
]


def _collector():
    calls = []

    def consume(ctx, resources):
        calls.append((ctx, resources))

    return calls, consume


@pytest.mark.parametrize("cls,method", PROCESSORS)
def test_upsert_from_attribute_per_resource(cls, method):
    calls, consume = _collector()
    actions = [ActionConfig(key="tenant", action="upsert", from_attribute="service.name", value="unknown")]
    proc = cls(consume, actions)
    resources = [
        ResourceData({"service.name": "checkout"}, ["a"]),
        ResourceData({}, ["b"]),
    ]
    getattr(proc, method)(None, resources)
    assert len(calls) == 2
    assert calls[0][0].get("tenant") == ["checkout"]
    assert calls[1][0].get("tenant") == ["unknown"]
    assert calls[0][1] == [resources[0]]
    assert calls[1][1] == [resources[1]]


def test_forwarded_resources_are_copies():
    calls, consume = _collector()
    proc = ContextTracesProcessor(consume, [ActionConfig(key="k", action="upsert", value="v")])
    original = ResourceData({"a": "b"}, ["r1"])
    proc.consume_traces(None, [original])
    forwarded = calls[0][1][0]
    assert forwarded is not original
    forwarded.records.append("r2")
    assert original.records == ["r1"]


def test_insert_keeps_incoming_value_and_drops_untouched_keys():
    actions = [ActionConfig(key="keep", action="insert", value="new")]
    ctx = ClientContext({"keep": ["old"], "other": ["x"]})

    runner = build_actions_runner(actions)
    result = runner.apply(ctx, {})
    assert result.get("keep") == ["old"]
    assert result.get("other") == []

    calls, consume = _collector()
    proc = ContextLogsProcessor(consume, actions)
    proc.consume_logs(ctx, [ResourceData()])
    assert len(calls) == 1
    out = calls[0][0]
    assert out.get("keep") == ["old"]
    assert out.get("other") == []


def test_error_stops_processing_and_logs_end(caplog):
    calls = []

    def failing(ctx, resources):
        calls.append(resources)
        raise ValueError("downstream")

    proc = ContextMetricsProcessor(failing, [ActionConfig(key="k", action="upsert", value="v")])
    with caplog.at_level(logging.DEBUG, logger="ctxmeta.processors"):
        with pytest.raises(ValueError, match="downstream"):
            proc.consume_metrics(None, [ResourceData(), ResourceData()])
    assert len(calls) == 1
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Start processing") for m in messages)
    assert any(m.startswith("End processing") for m in messages)


def test_empty_batch_sends_nothing_but_records_events(caplog):
    calls, consume = _collector()
    proc = ContextTracesProcessor(
        consume,
        [ActionConfig(key="k", action="upsert", value="v")],
        event_attributes={"processor": "context/main"},
    )
    with caplog.at_level(logging.DEBUG, logger="ctxmeta.processors"):
        proc.consume_traces(None, [])
    assert calls == []
    messages = [r.getMessage() for r in caplog.records]
    assert messages[0].startswith("Start processing")
    assert messages[-1].startswith("End processing")
    assert "context/main" in messages[0]


def test_invalid_action_rejected_at_construction():
    _, consume = _collector()
    with pytest.raises(ConfigError, match="Unknown action type"):
        ContextTracesProcessor(consume, [ActionConfig(key="k", action="rename", value="v")])


def test_build_actions_runner_keeps_order():
    runner = build_actions_runner(
        [
            ActionConfig(key="a", action="insert", value="1"),
            ActionConfig(key="b", action="upsert", value="2"),
        ]
    )
    assert [type(a) for a in runner.actions] == [InsertAction, UpsertAction]
    assert [a.key for a in runner.actions] == ["a", "b"]


def test_start_and_shutdown_lifecycle(caplog):
    _, consume = _collector()
    proc = ContextLogsProcessor(consume, [])
    assert proc.running is False
    with caplog.at_level(logging.INFO, logger="ctxmeta.processors"):
        proc.start({"health_check": object()})
    assert proc.running is True
    assert "Extension health_check" in [r.getMessage() for r in caplog.records]
    proc.shutdown()
    assert proc.running is False


def test_start_with_host_object(caplog):
    class Host:
        def get_extensions(self):
            return {"ext_one": None, "ext_two": None}

    _, consume = _collector()
    proc = ContextMetricsProcessor(consume, [])
    with caplog.at_level(logging.INFO, logger="ctxmeta.processors"):
        proc.start(Host())
    messages = [r.getMessage() for r in caplog.records]
    assert messages == ["Extension ext_one", "Extension ext_two"]


def test_shutdown_without_start_raises():
    _, consume = _collector()
    proc = ContextTracesProcessor(consume, [])
    with pytest.raises(RuntimeError):
        proc.shutdown()