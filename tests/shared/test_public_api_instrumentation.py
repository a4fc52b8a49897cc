"""Unit tests for public API instrumentation concerns and the decorator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pytest

from packages.filevault_shared.envelope import (
    EnvelopeKind,
    failure,
    new_meta,
    success,
)
from packages.filevault_shared.errors import validation_error
from packages.filevault_shared.logging import (
    CompletionContext,
    InvocationContext,
    PublicApiMetricsConcern,
    PublicApiTracingConcern,
    public_api_instrumented,
)


@dataclass
class _RecordingConcern:
    """Concern capturing every invocation and completion event."""

    invocations: list[InvocationContext] = field(default_factory=list)
    completions: list[CompletionContext] = field(default_factory=list)

    def on_invocation(self, context: InvocationContext) -> None:
        self.invocations.append(context)

    def on_completion(self, context: CompletionContext) -> None:
        self.completions.append(context)


class _ExplodingConcern:
    def on_invocation(self, context: InvocationContext) -> None:
        raise RuntimeError("concern down")

    def on_completion(self, context: CompletionContext) -> None:
        raise RuntimeError("concern down")


class _FakeSpan:
    def __init__(self) -> None:
        self.attributes: dict[str, object] = {}
        self.exceptions: list[Exception] = []
        self.statuses: list[object] = []

    def set_attribute(self, key: str, value: object) -> None:
        self.attributes[key] = value

    def record_exception(self, exception: Exception) -> None:
        self.exceptions.append(exception)

    def set_status(self, status: object) -> None:
        self.statuses.append(status)


class _FakeSpanManager:
    def __init__(self) -> None:
        self.span = _FakeSpan()
        self.exited = False

    def __enter__(self) -> _FakeSpan:
        return self.span

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.exited = True


class _FakeTracer:
    def __init__(self) -> None:
        self.names: list[str] = []
        self.managers: list[_FakeSpanManager] = []

    def start_as_current_span(self, name: str) -> _FakeSpanManager:
        self.names.append(name)
        manager = _FakeSpanManager()
        self.managers.append(manager)
        return manager


class _FakeInstrument:
    def __init__(self) -> None:
        self.samples: list[tuple[float, dict[str, str]]] = []

    def add(self, amount: float, attributes: dict[str, str]) -> None:
        self.samples.append((amount, dict(attributes)))

    def record(self, amount: float, attributes: dict[str, str]) -> None:
        self.samples.append((amount, dict(attributes)))


def _meta():
    return new_meta(
        kind=EnvelopeKind.COMMAND,
        source="test",
        principal="alice",
        trace_id="trace-1",
        envelope_id="env-1",
    )


def _invocation() -> InvocationContext:
    return InvocationContext(
        component_id="service_file_authority",
        api_name="upload_file",
        trace_id="trace-1",
        envelope_id="env-1",
        principal="alice",
        references={"file_id": "01ABC"},
    )


def test_decorator_reports_envelope_success_and_references() -> None:
    concern = _RecordingConcern()

    @public_api_instrumented(
        component_id="service_file_authority",
        id_fields=("file_id",),
        concerns=[concern],
    )
    def stat_file(*, meta, file_id: str):
        return success(meta=meta, payload=file_id)

    result = stat_file(meta=_meta(), file_id="01ABC")

    assert result.ok is True
    invocation = concern.invocations[0]
    assert invocation.api_name == "stat_file"
    assert invocation.trace_id == "trace-1"
    assert invocation.principal == "alice"
    assert invocation.references == {"file_id": "01ABC"}
    assert concern.completions[0].success is True


def test_decorator_reports_envelope_failure_categories() -> None:
    concern = _RecordingConcern()

    @public_api_instrumented(component_id="service_file_authority", concerns=[concern])
    def upload_file(*, meta):
        return failure(meta=meta, errors=[validation_error("bad name")])

    upload_file(meta=_meta())

    completion = concern.completions[0]
    assert completion.success is False
    assert completion.errors == ["VALIDATION_ERROR: bad name"]
    assert completion.error_categories == ["validation"]


def test_decorator_reports_and_reraises_exceptions() -> None:
    concern = _RecordingConcern()

    @public_api_instrumented(component_id="service_file_authority", concerns=[concern])
    def delete_file(*, meta):
        raise RuntimeError("disk on fire")

    with pytest.raises(RuntimeError):
        delete_file(meta=_meta())

    assert concern.completions[0].success is False
    assert concern.completions[0].error_categories == ["internal"]


def test_failing_concern_never_breaks_the_call(
    caplog: pytest.LogCaptureFixture,
) -> None:
    recording = _RecordingConcern()
    logger = logging.getLogger("filevault.test.instrumentation")

    @public_api_instrumented(
        component_id="service_file_authority",
        concerns=[_ExplodingConcern(), recording],
        logger=logger,
    )
    def health(*, meta):
        return success(meta=meta, payload=True)

    with caplog.at_level(logging.WARNING, logger=logger.name):
        result = health(meta=_meta())

    assert result.ok is True
    assert len(recording.completions) == 1
    assert "instrumentation concern failed" in caplog.text


def test_empty_concern_set_is_rejected() -> None:
    with pytest.raises(ValueError):
        public_api_instrumented(component_id="service_file_authority", concerns=[])


def test_tracing_concern_opens_and_closes_one_span() -> None:
    tracer = _FakeTracer()
    concern = PublicApiTracingConcern(tracer=tracer)
    invocation = _invocation()

    concern.on_invocation(invocation)
    concern.on_completion(
        CompletionContext(
            invocation=invocation,
            success=False,
            duration_ms=1.5,
            errors=["PLACEMENT_FAILURE: no space"],
            error_categories=["dependency"],
        )
    )

    assert tracer.names == ["public_api.service_file_authority.upload_file"]
    manager = tracer.managers[0]
    assert manager.exited is True
    assert manager.span.attributes["reference.file_id"] == "01ABC"
    assert manager.span.attributes["outcome"] == "failure"
    assert len(manager.span.statuses) == 1
    assert len(manager.span.exceptions) == 1


def test_tracing_completion_without_open_span_is_ignored() -> None:
    tracer = _FakeTracer()
    concern = PublicApiTracingConcern(tracer=tracer)

    concern.on_completion(
        CompletionContext(
            invocation=_invocation(),
            success=True,
            duration_ms=0.1,
            errors=[],
            error_categories=[],
        )
    )

    assert tracer.managers == []


def test_metrics_concern_counts_calls_and_error_categories() -> None:
    calls, duration, errors = _FakeInstrument(), _FakeInstrument(), _FakeInstrument()
    concern = PublicApiMetricsConcern(
        public_api_calls_total=calls,
        public_api_duration_ms=duration,
        public_api_errors_total=errors,
    )

    concern.on_completion(
        CompletionContext(
            invocation=_invocation(),
            success=False,
            duration_ms=2.0,
            errors=["x"],
            error_categories=["dependency", "validation"],
        )
    )

    assert calls.samples[0][1]["outcome"] == "failure"
    assert duration.samples == [
        (
            2.0,
            {
                "component_id": "service_file_authority",
                "api_name": "upload_file",
                "outcome": "failure",
            },
        )
    ]
    assert [attrs["error_category"] for _, attrs in errors.samples] == [
        "dependency",
        "validation",
    ]


def test_completion_summarizes_envelope_errors_in_order() -> None:
    invocation = _invocation()
    result = failure(
        meta=_meta(),
        errors=[validation_error("bad name"), validation_error("too long")],
    )

    completion = CompletionContext.from_result(invocation, result, 3.25)

    assert completion.outcome == "failure"
    assert completion.duration_ms == 3.25
    assert completion.errors == [
        "VALIDATION_ERROR: bad name",
        "VALIDATION_ERROR: too long",
    ]
    assert completion.error_categories == ["validation", "validation"]


def test_nested_calls_close_their_own_spans() -> None:
    tracer = _FakeTracer()

    @public_api_instrumented(
        component_id="service_file_authority",
        concerns=[PublicApiTracingConcern(tracer=tracer)],
    )
    def inner(*, meta):
        return failure(meta=meta, errors=[validation_error("bad name")])

    @public_api_instrumented(
        component_id="service_file_authority",
        concerns=[PublicApiTracingConcern(tracer=tracer)],
    )
    def outer(*, meta):
        inner(meta=meta)
        return success(meta=meta, payload=True)

    outer(meta=_meta())

    outer_span, inner_span = (manager.span for manager in tracer.managers)
    assert all(manager.exited for manager in tracer.managers)
    assert inner_span.attributes["outcome"] == "failure"
    assert outer_span.attributes["outcome"] == "success"
    assert outer_span.attributes["principal"] == "alice"
