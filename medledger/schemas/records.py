"""
Record, grant and access-log schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from medledger.kernel.ledger.types import DecisionReason


class RecordCreate(BaseModel):
    """Record creation request."""
    
    data_hash: str = Field(..., min_length=1, max_length=512)


class RecordResponse(BaseModel):
    """Record metadata returned to its creator."""
    
    model_config = ConfigDict(from_attributes=True)
    
    id: int
    owner: str
    data_hash: str
    created_at: datetime


class RecordReadResponse(BaseModel):
    """Result of an audited read."""
    
    id: int
    data_hash: str


class OwnedRecordsResponse(BaseModel):
    """Ids created by the caller, in creation order."""
    
    owner: str
    record_ids: List[int]


class AccessDecisionResponse(BaseModel):
    """Read eligibility for the caller, without auditing."""
    
    model_config = ConfigDict(from_attributes=True)
    
    record_id: int
    subject: str
    allowed: bool
    reason: DecisionReason


class GranteesResponse(BaseModel):
    """Subjects currently granted read access to a record."""
    
    record_id: int
    grantees: List[str]


class AccessLogEntryResponse(BaseModel):
    """One audited read."""
    
    model_config = ConfigDict(from_attributes=True)
    
    sequence: int
    record_id: int
    accessed_by: str
    timestamp: datetime
    digest: str
    previous_digest: Optional[str] = None


class AccessLogResponse(BaseModel):
    """Access history of one record, in audit order."""
    
    record_id: int
    entries: List[AccessLogEntryResponse]
    total: int
