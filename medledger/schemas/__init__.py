"""
Pydantic schemas for API request/response validation.
"""

from medledger.schemas.common import ErrorResponse, HealthResponse
from medledger.schemas.records import (
    AccessDecisionResponse,
    AccessLogEntryResponse,
    AccessLogResponse,
    GranteesResponse,
    OwnedRecordsResponse,
    RecordCreate,
    RecordReadResponse,
    RecordResponse,
)
from medledger.schemas.roles import AuditVerificationResponse, SubjectRolesResponse

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "RecordCreate",
    "RecordResponse",
    "RecordReadResponse",
    "OwnedRecordsResponse",
    "AccessDecisionResponse",
    "GranteesResponse",
    "AccessLogEntryResponse",
    "AccessLogResponse",
    "SubjectRolesResponse",
    "AuditVerificationResponse",
]
