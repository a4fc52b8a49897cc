"""Shared error code constants.

These constants are domain-agnostic. Service-specific codes extend this set in
local service modules (see ``services.state.file_authority.codes``).
"""

# Validation
VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

# Not found
NOT_FOUND = "NOT_FOUND"
RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

# Conflict
CONFLICT = "CONFLICT"

# Policy / authorization
POLICY_VIOLATION = "POLICY_VIOLATION"
PERMISSION_DENIED = "PERMISSION_DENIED"

# Dependency / external system
DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
DEPENDENCY_TIMEOUT = "DEPENDENCY_TIMEOUT"
DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"

# Internal
INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
