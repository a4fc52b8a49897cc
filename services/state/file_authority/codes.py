"""Error codes specific to File Authority Service.

Shared codes (``INVALID_ARGUMENT``, ``RESOURCE_NOT_FOUND``,
``PERMISSION_DENIED``) come from ``packages.filevault_shared.errors.codes``.
"""

INPUT_UNAVAILABLE = "INPUT_UNAVAILABLE"
STAGING_FAILURE = "STAGING_FAILURE"
PLACEMENT_FAILURE = "PLACEMENT_FAILURE"
CATALOG_UNAVAILABLE = "CATALOG_UNAVAILABLE"
OBJECT_STORE_UNAVAILABLE = "OBJECT_STORE_UNAVAILABLE"
OBJECT_MISSING = "OBJECT_MISSING"
PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
