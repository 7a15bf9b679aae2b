"""
Registry Routes
===============

Read and write the content id held by the registry contract.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from services.diploma.models import CurrentHashResponse, HashWriteRequest, issuance_response
from services.diploma.workflow import DiplomaWorkflow, Issuance, get_workflow
from shared.logging import get_logger


logger = get_logger(__name__)
router = APIRouter()


@router.get("/hash", response_model=CurrentHashResponse)
async def get_hash(
    workflow: DiplomaWorkflow = Depends(get_workflow),
) -> CurrentHashResponse:
    """Read the current content id. `issued` is false until the first write."""
    content_id = await workflow.registry.read_hash()
    return CurrentHashResponse(issued=content_id is not None, content_id=content_id)


@router.put("/hash")
async def set_hash(
    request: HashWriteRequest,
    workflow: DiplomaWorkflow = Depends(get_workflow),
) -> JSONResponse:
    """
    Record a content id that is already in the content store.

    Each call appends a transaction unless `skip_if_unchanged` is set and the
    ledger already holds the same id.
    """
    logger.info(
        "hash_write_requested",
        content_id=request.content_id,
        skip_if_unchanged=request.skip_if_unchanged,
    )
    issuance = await workflow.retry_submit(
        Issuance.from_content_id(request.content_id),
        skip_if_unchanged=request.skip_if_unchanged,
    )
    return issuance_response(issuance)
