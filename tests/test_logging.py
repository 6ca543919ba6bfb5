import json
import logging

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind

from unison_patch.logging import configure_logging, log_json, scrub


def get_last_log_json(caplog):
    for rec in reversed(caplog.records):
        try:
            return json.loads(rec.getMessage())
        except Exception:
            continue
    return {}


def test_redacts_sensitive_keys_and_values(caplog):
    caplog.set_level(logging.INFO)
    configure_logging("test")

    log_json(logging.INFO, "patch_value",
             authorization="Bearer xyz.abc.def",
             token="abc",
             value={"password": "123", "contact": "user@example.com"},
             ops=[{"op": "add", "value": "bearer ABC.D.E"}])

    payload = get_last_log_json(caplog)
    assert payload["event"] == "patch_value"
    assert payload["authorization"] == "[REDACTED]"
    assert payload["token"] == "[REDACTED]"
    assert payload["value"]["password"] == "[REDACTED]"
    assert payload["value"]["contact"] == "[REDACTED_EMAIL]"
    assert payload["ops"][0]["value"] == "[REDACTED]"
    assert payload["ops"][0]["op"] == "add"


def test_log_json_enriches_trace_fields(caplog):
    caplog.set_level(logging.INFO)
    tracer = TracerProvider().get_tracer(__name__)

    with tracer.start_as_current_span("log-span", kind=SpanKind.INTERNAL) as span:
        log_json(logging.INFO, "test_event", custom="ok")
        ctx = span.get_span_context()

    payload = get_last_log_json(caplog)
    assert payload["custom"] == "ok"
    assert payload["trace_id"] == format(ctx.trace_id, "032x")
    assert payload["span_id"] == format(ctx.span_id, "016x")
    assert payload["traceparent"].startswith(f"00-{payload['trace_id']}-{payload['span_id']}-")


def test_no_trace_fields_outside_spans(caplog):
    caplog.set_level(logging.INFO)
    log_json(logging.INFO, "plain")
    payload = get_last_log_json(caplog)
    assert payload == {"event": "plain"}


def test_unserializable_values_fall_back_to_repr(caplog):
    caplog.set_level(logging.INFO)
    log_json(logging.INFO, "obj", value=object)
    assert get_last_log_json(caplog)["value"] == repr(object)


def test_scrub_leaves_plain_values():
    assert scrub({"path": "/a/b", "n": 1, "items": (1, "x")}) == {"path": "/a/b", "n": 1, "items": [1, "x"]}
