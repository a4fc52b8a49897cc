"""File Authority Service native package exports."""

from packages.filevault_shared.envelope import Envelope, EnvelopeKind, EnvelopeMeta
from packages.filevault_shared.errors import ErrorCategory, ErrorDetail
from services.state.file_authority.component import MANIFEST
from services.state.file_authority.config import FileAuthoritySettings
from services.state.file_authority.domain import (
    DeleteResult,
    FileDownload,
    FileRecord,
    HealthStatus,
    ReclaimReport,
)
from services.state.file_authority.implementation import DefaultFileAuthorityService
from services.state.file_authority.service import (
    FileAuthorityService,
    build_file_authority_service,
)

__all__ = [
    "MANIFEST",
    "DefaultFileAuthorityService",
    "DeleteResult",
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "ErrorCategory",
    "ErrorDetail",
    "FileAuthorityService",
    "FileAuthoritySettings",
    "FileDownload",
    "FileRecord",
    "HealthStatus",
    "ReclaimReport",
    "build_file_authority_service",
]
