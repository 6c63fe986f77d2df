"""
Role administration endpoints.
"""

from fastapi import APIRouter, Response, status

from medledger.api.deps import CurrentSubject, LedgerDep, LedgerWriterDep
from medledger.kernel.ledger import Role
from medledger.schemas.roles import SubjectRolesResponse

router = APIRouter()


@router.get("/{member}", response_model=SubjectRolesResponse)
async def get_roles(
    member: str,
    subject: CurrentSubject,
    ledger: LedgerDep,
):
    """List the roles a subject holds."""
    roles = sorted(ledger.roles_of(member), key=lambda r: r.value)
    return SubjectRolesResponse(subject=member, roles=roles)


@router.put("/{role}/members/{member}", status_code=status.HTTP_204_NO_CONTENT)
async def grant_role(
    role: Role,
    member: str,
    subject: CurrentSubject,
    writer: LedgerWriterDep,
):
    """Add ``member`` to ``role``. Admin only; idempotent."""
    await writer.run(writer.ledger.grant_role, subject, role, member)
    
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{role}/members/{member}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_role(
    role: Role,
    member: str,
    subject: CurrentSubject,
    writer: LedgerWriterDep,
):
    """Remove ``member`` from ``role``. Admin only; idempotent."""
    await writer.run(writer.ledger.revoke_role, subject, role, member)
    
    return Response(status_code=status.HTTP_204_NO_CONTENT)
