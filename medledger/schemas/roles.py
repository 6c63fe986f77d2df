"""
Role administration and audit schemas.
"""

from typing import List

from pydantic import BaseModel

from medledger.kernel.ledger.types import Role


class SubjectRolesResponse(BaseModel):
    """Roles held by a subject."""
    
    subject: str
    roles: List[Role]


class AuditVerificationResponse(BaseModel):
    """Result of recomputing the access-log digest chain."""
    
    valid: bool
    entries: int
    head_digest: str
