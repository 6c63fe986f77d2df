"""
Record endpoints - creation, audited reads, grants and access history.
"""

from fastapi import APIRouter, Response, status

from medledger.api.deps import CurrentSubject, LedgerDep, LedgerWriterDep
from medledger.kernel.ledger import DecisionReason, NotFoundError, UnauthorizedError
from medledger.schemas.common import ErrorResponse
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

router = APIRouter(
    responses={
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    },
)


@router.post("", response_model=RecordResponse, status_code=status.HTTP_201_CREATED)
async def create_record(
    data: RecordCreate,
    subject: CurrentSubject,
    writer: LedgerWriterDep,
):
    """Register a record owned by the caller."""
    ledger = writer.ledger
    record_id = await writer.run(ledger.create_record, subject, data.data_hash)

    return RecordResponse.model_validate(ledger.get_record(record_id))


# Declared before /{record_id} so "mine" is not parsed as an id
@router.get("/mine", response_model=OwnedRecordsResponse)
async def list_owned_records(
    subject: CurrentSubject,
    ledger: LedgerDep,
):
    """List the ids of records the caller created, oldest first."""
    return OwnedRecordsResponse(
        owner=subject,
        record_ids=ledger.list_owned_records(subject),
    )


@router.get("/{record_id}", response_model=RecordReadResponse)
async def read_record(
    record_id: int,
    subject: CurrentSubject,
    writer: LedgerWriterDep,
):
    """
    Read a record's data hash.

    Allowed for the owner, any provider, or an explicit grantee. Every
    successful read is appended to the access log.
    """
    data_hash = await writer.run(writer.ledger.read_record, subject, record_id)

    return RecordReadResponse(id=record_id, data_hash=data_hash)


@router.get("/{record_id}/access", response_model=AccessDecisionResponse)
async def check_access(
    record_id: int,
    subject: CurrentSubject,
    ledger: LedgerDep,
):
    """Report whether the caller may read the record. Not audited."""
    decision = ledger.check_access(subject, record_id)
    if decision.reason is DecisionReason.NOT_FOUND:
        raise NotFoundError(f"Record {record_id} not found", record_id=record_id)
    return AccessDecisionResponse.model_validate(decision)


@router.get("/{record_id}/grants", response_model=GranteesResponse)
async def list_grantees(
    record_id: int,
    subject: CurrentSubject,
    ledger: LedgerDep,
):
    """List current grantees. Owner only."""
    return GranteesResponse(
        record_id=record_id,
        grantees=ledger.list_grantees(subject, record_id),
    )


@router.put("/{record_id}/grants/{grantee}", status_code=status.HTTP_204_NO_CONTENT)
async def grant_access(
    record_id: int,
    grantee: str,
    subject: CurrentSubject,
    writer: LedgerWriterDep,
):
    """Grant read access to ``grantee``. Owner only; idempotent."""
    await writer.run(writer.ledger.grant_access, subject, record_id, grantee)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{record_id}/grants/{grantee}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_access(
    record_id: int,
    grantee: str,
    subject: CurrentSubject,
    writer: LedgerWriterDep,
):
    """Revoke read access from ``grantee``. Owner only; idempotent."""
    await writer.run(writer.ledger.revoke_access, subject, record_id, grantee)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{record_id}/access-log", response_model=AccessLogResponse)
async def list_access_log(
    record_id: int,
    subject: CurrentSubject,
    ledger: LedgerDep,
):
    """
    Access history of a record in audit order.

    Subject to the same eligibility rule as reading the record, but viewing
    the history is not itself audited.
    """
    decision = ledger.check_access(subject, record_id)
    if decision.reason is DecisionReason.NOT_FOUND:
        raise NotFoundError(f"Record {record_id} not found", record_id=record_id)
    if not decision.allowed:
        raise UnauthorizedError(
            f"Subject is not permitted to view the access log of record {record_id}",
            record_id=record_id,
            subject=subject,
        )

    entries = ledger.list_access_log(record_id)
    return AccessLogResponse(
        record_id=record_id,
        entries=[AccessLogEntryResponse.model_validate(e) for e in entries],
        total=len(entries),
    )
