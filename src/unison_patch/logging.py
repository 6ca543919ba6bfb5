import json
import logging
import re

from opentelemetry import trace


SENSITIVE_KEYS = {
    "authorization",
    "api_key",
    "apikey",
    "api-key",
    "password",
    "secret",
    "token",
    "access_token",
    "refresh_token",
    "id_token",
    "cookie",
}

_BEARER_RE = re.compile(r"bearer\s+[A-Za-z0-9._\-]+", re.IGNORECASE)
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")


def configure_logging(name: str):
    logger = logging.getLogger(name)
    if not logger.handlers:
        logging.basicConfig(level=logging.INFO, format='%(message)s')
    return logger


def _get_trace_fields() -> dict:
    """Extract trace fields from the current OpenTelemetry span, if any."""
    fields = {}
    span = trace.get_current_span()
    ctx = span.get_span_context() if span else None
    if ctx and ctx.is_valid:
        trace_id_hex = format(ctx.trace_id, '032x')
        span_id_hex = format(ctx.span_id, '016x')
        fields["trace_id"] = trace_id_hex
        fields["span_id"] = span_id_hex
        fields["traceparent"] = f"00-{trace_id_hex}-{span_id_hex}-{format(ctx.trace_flags, '02x')}"
    return fields


def _scrub_value(v):
    if isinstance(v, str):
        if _BEARER_RE.search(v):
            return "[REDACTED]"
        if _EMAIL_RE.search(v):
            return "[REDACTED_EMAIL]"
    return v


def scrub(obj):
    """Redact sensitive keys and values from a log payload."""
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if str(k).lower() in SENSITIVE_KEYS:
                out[k] = "[REDACTED]"
            else:
                out[k] = scrub(v)
        return out
    if isinstance(obj, (list, tuple)):
        return [scrub(i) for i in obj]
    return _scrub_value(obj)


def log_json(level: int, event: str, **kwargs):
    for k, v in _get_trace_fields().items():
        kwargs.setdefault(k, v)
    payload = scrub({"event": event, **kwargs})
    logging.getLogger("unison_patch").log(level, json.dumps(payload, default=repr))
