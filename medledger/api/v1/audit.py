"""
Audit endpoints - access-log integrity.
"""

from fastapi import APIRouter, status

from medledger.api.deps import CurrentSubject, LedgerDep
from medledger.kernel.ledger import Role, UnauthorizedError
from medledger.schemas.common import ErrorResponse
from medledger.schemas.roles import AuditVerificationResponse

router = APIRouter(responses={status.HTTP_403_FORBIDDEN: {"model": ErrorResponse}})


@router.get("/verify", response_model=AuditVerificationResponse)
async def verify_access_log(
    subject: CurrentSubject,
    ledger: LedgerDep,
):
    """Recompute the access-log digest chain. Admin only."""
    if not ledger.has_role(Role.ADMIN, subject):
        raise UnauthorizedError("Admin role required", subject=subject)
    
    return AuditVerificationResponse(
        valid=ledger.verify_access_log(),
        entries=len(ledger.access_log),
        head_digest=ledger.access_log.head_digest,
    )
