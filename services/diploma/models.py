"""
Diploma Service Models
======================

Request and response bodies shared by the diploma routes.
"""

from datetime import datetime

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from services.diploma.errors import http_status_for
from services.diploma.workflow import Issuance, IssueState
from shared.registry import TransactionReceipt


class ReceiptResponse(BaseModel):
    """Ledger receipt summary."""

    tx_hash: str
    method: str
    status: str
    block_number: int
    confirmations: int
    sender: str | None = None

    @classmethod
    def from_receipt(cls, receipt: TransactionReceipt) -> "ReceiptResponse":
        return cls(
            tx_hash=receipt.tx_hash,
            method=receipt.method,
            status=receipt.status.value,
            block_number=receipt.block_number,
            confirmations=receipt.confirmations,
            sender=receipt.sender,
        )


class IssuanceResponse(BaseModel):
    """Outcome of an Issue flow."""

    success: bool
    issuance_id: str
    state: IssueState
    content_id: str | None = None
    receipt: ReceiptResponse | None = None
    skipped: bool = False
    retryable: bool = False
    error: str | None = None
    error_code: str | None = None
    created_at: datetime


class HashWriteRequest(BaseModel):
    """Request to record an already stored content id."""

    content_id: str = Field(..., min_length=1)
    skip_if_unchanged: bool = False


class RetryIssueRequest(BaseModel):
    """Resubmit a failed ledger write without uploading again."""

    content_id: str = Field(..., min_length=1)
    student_name: str | None = None
    institution_name: str | None = None
    degree: str | None = None


class CurrentHashResponse(BaseModel):
    """Content id currently recorded on the ledger."""

    issued: bool
    content_id: str | None = None


def issuance_response(issuance: Issuance) -> JSONResponse:
    """
    Render an issuance.

    Committed issuances answer 200 (201 when a transaction was mined);
    failed ones use the status of their typed error, with the content id
    kept in the body so the write can be retried.
    """
    body = IssuanceResponse(
        success=issuance.committed,
        issuance_id=issuance.id,
        state=issuance.state,
        content_id=issuance.content_id,
        receipt=ReceiptResponse.from_receipt(issuance.receipt) if issuance.receipt else None,
        skipped=issuance.skipped,
        retryable=issuance.retryable,
        error=issuance.error.message if issuance.error else None,
        error_code=issuance.error.code if issuance.error else None,
        created_at=issuance.created_at,
    )

    if issuance.error is not None:
        status_code = http_status_for(issuance.error)
    elif issuance.receipt is not None:
        status_code = status.HTTP_201_CREATED
    else:
        status_code = status.HTTP_200_OK

    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))
