"""Canonical structured-log field names.

Keeping names centralized prevents drift between components and the
OpenTelemetry attributes derived from them.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Envelope/correlation fields.
TRACE_ID = "trace_id"
ENVELOPE_ID = "envelope_id"
PARENT_ID = "parent_id"
SOURCE = "source"
PRINCIPAL = "principal"

# Public API invocation fields.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT = "public_api_instrumentation_failure"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
OUTCOME = "outcome"
ERROR_CATEGORY = "error_category"
STAGE = "stage"
CONCERN = "concern"

# Storage fields.
DIGEST = "digest"
FILE_ID = "file_id"
OWNER_ID = "owner_id"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
