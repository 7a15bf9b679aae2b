"""
Content Routes
==============

Direct access to the content store: upload a file, fetch it back by id.
"""

from fastapi import APIRouter, Depends, File, Response, UploadFile
from pydantic import BaseModel

from services.diploma.workflow import DiplomaWorkflow, get_workflow, sniff_media_type
from shared.logging import get_logger


logger = get_logger(__name__)
router = APIRouter()


class UploadResponse(BaseModel):
    """Response from a content upload."""

    content_id: str
    size: int


@router.post("", response_model=UploadResponse, status_code=201)
async def upload_content(
    file: UploadFile = File(...),
    workflow: DiplomaWorkflow = Depends(get_workflow),
) -> UploadResponse:
    """
    Store a file and return its content id.

    Nothing is written to the ledger.
    """
    content = await file.read()
    content_id = await workflow.store.upload(content)

    logger.info("content_uploaded", content_id=content_id, filename=file.filename)
    return UploadResponse(content_id=content_id, size=len(content))


@router.get("/{content_id}")
async def fetch_content(
    content_id: str,
    workflow: DiplomaWorkflow = Depends(get_workflow),
) -> Response:
    """Return the raw bytes stored under a content id."""
    content = await workflow.store.fetch(content_id)
    return Response(
        content=content,
        media_type=sniff_media_type(content),
        headers={"X-Content-Id": content_id},
    )
