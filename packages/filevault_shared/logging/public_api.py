"""Instrumentation for public service operations.

``public_api_instrumented`` wraps an envelope-returning method and reports each
call to its concerns. By default these are the OpenTelemetry tracing and
metrics concerns; a ``logger`` adds structured start/finish logs in front.
Concern errors are logged and counted, and the wrapped call still returns.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass
from functools import lru_cache, wraps
from time import perf_counter
from typing import Any, Callable, Mapping, Protocol, Sequence

from opentelemetry import metrics as otel_metrics
from opentelemetry import trace as otel_trace
from opentelemetry.trace.status import Status, StatusCode

from . import fields
from .context import log_context

METER_NAME = "filevault.public_api"
TRACER_NAME = "filevault.public_api"
METRIC_CALLS_TOTAL = "filevault_public_api_calls_total"
METRIC_DURATION_MS = "filevault_public_api_duration_ms"
METRIC_ERRORS_TOTAL = "filevault_public_api_errors_total"
METRIC_INSTRUMENTATION_FAILURES_TOTAL = (
    "filevault_public_api_instrumentation_failures_total"
)


@dataclass(frozen=True)
class InvocationContext:
    """Who called which operation, and on what."""

    component_id: str
    api_name: str
    trace_id: str | None
    envelope_id: str | None
    principal: str | None
    references: Mapping[str, str]

    @classmethod
    def from_call(
        cls,
        *,
        component_id: str,
        api_name: str,
        id_fields: Sequence[str],
        kwargs: Mapping[str, Any],
    ) -> "InvocationContext":
        meta = kwargs.get("meta")
        return cls(
            component_id=component_id,
            api_name=api_name,
            trace_id=_meta_value(meta, "trace_id"),
            envelope_id=_meta_value(meta, "envelope_id"),
            principal=_meta_value(meta, "principal"),
            references={
                name: str(kwargs[name])
                for name in id_fields
                if kwargs.get(name) not in (None, "")
            },
        )

    def log_fields(self) -> dict[str, object]:
        return {
            fields.EVENT: fields.PUBLIC_API_INVOCATION_EVENT,
            fields.COMPONENT_ID: self.component_id,
            fields.API_NAME: self.api_name,
            fields.TRACE_ID: self.trace_id,
            fields.ENVELOPE_ID: self.envelope_id,
            fields.PRINCIPAL: self.principal,
            **self.references,
        }


@dataclass(frozen=True)
class CompletionContext:
    """Outcome of one finished call."""

    invocation: InvocationContext
    success: bool
    duration_ms: float
    errors: list[str]
    error_categories: list[str]

    @property
    def outcome(self) -> str:
        return "success" if self.success else "failure"

    @classmethod
    def from_result(
        cls, invocation: InvocationContext, result: object, duration_ms: float
    ) -> "CompletionContext":
        """Summarize an envelope: ``code: message`` lines plus error categories."""
        details = getattr(result, "errors", None)
        if not isinstance(details, list):
            details = []
        summaries: list[str] = []
        categories: list[str] = []
        for detail in details:
            message = getattr(detail, "message", None)
            if message:
                code = getattr(detail, "code", None)
                summaries.append(f"{code}: {message}" if code else str(message))
            category = getattr(getattr(detail, "category", None), "value", None)
            if category:
                categories.append(str(category))
        ok = getattr(result, "ok", None)
        return cls(
            invocation=invocation,
            success=ok if isinstance(ok, bool) else not summaries,
            duration_ms=duration_ms,
            errors=summaries,
            error_categories=categories,
        )

    @classmethod
    def from_exception(
        cls, invocation: InvocationContext, exc: Exception, duration_ms: float
    ) -> "CompletionContext":
        return cls(
            invocation=invocation,
            success=False,
            duration_ms=duration_ms,
            errors=[f"{type(exc).__name__}: {exc}"],
            error_categories=["internal"],
        )


class PublicApiInstrumentationConcern(Protocol):
    def on_invocation(self, context: InvocationContext) -> None: ...

    def on_completion(self, context: CompletionContext) -> None: ...


class PublicApiLoggingConcern:
    """Structured start/finish logs; failed calls finish at warning."""

    def __init__(self, *, logger: Any) -> None:
        self._logger = logger

    def on_invocation(self, context: InvocationContext) -> None:
        with log_context(context.log_fields()):
            self._logger.info("Public API invocation")

    def on_completion(self, context: CompletionContext) -> None:
        payload = context.invocation.log_fields()
        payload[fields.EVENT] = fields.PUBLIC_API_COMPLETION_EVENT
        payload[fields.SUCCESS] = context.success
        payload[fields.DURATION_MS] = context.duration_ms
        payload[fields.ERRORS] = context.errors
        level = "info" if context.success else "warning"
        with log_context(payload):
            getattr(self._logger, level)("Public API completion")


class PublicApiTracingConcern:
    """One span per call, closed with the call's outcome.

    Open spans are kept per execution context so nested instrumented calls
    close innermost first.
    """

    def __init__(self, *, tracer: Any) -> None:
        self._tracer = tracer
        self._open: ContextVar[tuple[tuple[Any, Any], ...]] = ContextVar(
            "filevault_public_api_spans", default=()
        )

    def on_invocation(self, context: InvocationContext) -> None:
        manager = self._tracer.start_as_current_span(
            f"public_api.{context.component_id}.{context.api_name}"
        )
        span = manager.__enter__()
        for key, value in context.log_fields().items():
            if value is None or key == fields.EVENT:
                continue
            if key in context.references:
                key = f"reference.{key}"
            span.set_attribute(key, value)
        self._open.set((*self._open.get(), (manager, span)))

    def on_completion(self, context: CompletionContext) -> None:
        stack = self._open.get()
        if not stack:
            return
        manager, span = stack[-1]
        self._open.set(stack[:-1])

        span.set_attribute(fields.SUCCESS, context.success)
        span.set_attribute(fields.DURATION_MS, context.duration_ms)
        span.set_attribute(fields.OUTCOME, context.outcome)
        span.set_attribute("errors.count", len(context.errors))
        if not context.success:
            span.set_status(Status(StatusCode.ERROR))
            if context.errors:
                span.record_exception(RuntimeError("; ".join(context.errors[:3])))
        manager.__exit__(None, None, None)


class PublicApiMetricsConcern:
    """Call and error counters plus a latency histogram, recorded at completion."""

    def __init__(
        self,
        *,
        public_api_calls_total: Any,
        public_api_duration_ms: Any,
        public_api_errors_total: Any,
    ) -> None:
        self._calls = public_api_calls_total
        self._duration = public_api_duration_ms
        self._errors = public_api_errors_total

    def on_invocation(self, context: InvocationContext) -> None:
        del context

    def on_completion(self, context: CompletionContext) -> None:
        labels = {
            fields.COMPONENT_ID: context.invocation.component_id,
            fields.API_NAME: context.invocation.api_name,
        }
        self._calls.add(1, attributes={**labels, fields.OUTCOME: context.outcome})
        self._duration.record(
            context.duration_ms, attributes={**labels, fields.OUTCOME: context.outcome}
        )
        if context.success:
            return
        for category in context.error_categories or ["unknown"]:
            self._errors.add(1, attributes={**labels, fields.ERROR_CATEGORY: category})


class _Dispatcher:
    """Fans events out to concerns, isolating each concern's failures."""

    def __init__(
        self, concerns: Sequence[PublicApiInstrumentationConcern], logger: Any | None
    ) -> None:
        self._concerns = tuple(concerns)
        self._logger = logger

    def started(self, context: InvocationContext) -> None:
        for concern in self._concerns:
            try:
                concern.on_invocation(context)
            except Exception as exc:  # noqa: BLE001
                self._concern_failed(concern, "invocation", context, exc)

    def finished(self, context: CompletionContext) -> None:
        for concern in self._concerns:
            try:
                concern.on_completion(context)
            except Exception as exc:  # noqa: BLE001
                self._concern_failed(concern, "completion", context.invocation, exc)

    def _concern_failed(
        self,
        concern: object,
        stage: str,
        invocation: InvocationContext,
        exc: Exception,
    ) -> None:
        labels = {
            fields.COMPONENT_ID: invocation.component_id,
            fields.API_NAME: invocation.api_name,
            fields.STAGE: stage,
            fields.CONCERN: type(concern).__name__,
        }
        _instrumentation_failures_counter().add(1, attributes=labels)
        if self._logger is None:
            return
        with log_context(
            {
                fields.EVENT: fields.PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT,
                fields.ERRORS: [f"{type(exc).__name__}: {exc}"],
                **labels,
            }
        ):
            self._logger.warning("Public API instrumentation concern failed")


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    concerns: Sequence[PublicApiInstrumentationConcern] | None = None,
    logger: Any | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Instrument one public operation.

    ``concerns=None`` means the default OpenTelemetry tracing and metrics
    concerns; an explicit sequence replaces them. Keyword arguments named in
    ``id_fields`` are reported as references.
    """
    selected = list(
        concerns
        if concerns is not None
        else (_default_tracing_concern(), _default_metrics_concern())
    )
    if logger is not None:
        selected.insert(0, PublicApiLoggingConcern(logger=logger))
    if not selected:
        raise ValueError("public_api_instrumented requires at least one concern")
    dispatcher = _Dispatcher(selected, logger)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        name = api_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            invocation = InvocationContext.from_call(
                component_id=component_id,
                api_name=name,
                id_fields=id_fields,
                kwargs=kwargs,
            )
            dispatcher.started(invocation)
            started = perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:  # noqa: BLE001
                dispatcher.finished(
                    CompletionContext.from_exception(
                        invocation, exc, _elapsed_ms(started)
                    )
                )
                raise
            dispatcher.finished(
                CompletionContext.from_result(invocation, result, _elapsed_ms(started))
            )
            return result

        return wrapper

    return decorator


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000.0, 3)


def _meta_value(meta: object | None, name: str) -> str | None:
    value = getattr(meta, name, None)
    return None if value in (None, "") else str(value)


@lru_cache(maxsize=1)
def _default_tracing_concern() -> PublicApiTracingConcern:
    return PublicApiTracingConcern(tracer=otel_trace.get_tracer(TRACER_NAME))


@lru_cache(maxsize=1)
def _default_metrics_concern() -> PublicApiMetricsConcern:
    meter = otel_metrics.get_meter(METER_NAME)
    return PublicApiMetricsConcern(
        public_api_calls_total=meter.create_counter(
            METRIC_CALLS_TOTAL, unit="1", description="Public API calls by outcome."
        ),
        public_api_duration_ms=meter.create_histogram(
            METRIC_DURATION_MS, unit="ms", description="Public API latency."
        ),
        public_api_errors_total=meter.create_counter(
            METRIC_ERRORS_TOTAL, unit="1", description="Public API errors by category."
        ),
    )


@lru_cache(maxsize=1)
def _instrumentation_failures_counter() -> Any:
    return otel_metrics.get_meter(METER_NAME).create_counter(
        METRIC_INSTRUMENTATION_FAILURES_TOTAL,
        unit="1",
        description="Instrumentation concern failures.",
    )
