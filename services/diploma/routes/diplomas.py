"""
Diploma Routes
==============

Issue a diploma document and render the one currently on record.
"""

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.responses import JSONResponse

from services.diploma.models import RetryIssueRequest, issuance_response
from services.diploma.workflow import DiplomaWorkflow, Issuance, RetrievalStatus, get_workflow
from shared.logging import get_logger
from shared.registry import DiplomaFields


logger = get_logger(__name__)
router = APIRouter()


@router.post("")
async def issue_diploma(
    student_name: str = Form(...),
    institution_name: str = Form(...),
    degree: str = Form(...),
    file: UploadFile = File(...),
    hash_only: bool = Form(False),
    workflow: DiplomaWorkflow = Depends(get_workflow),
) -> JSONResponse:
    """
    Upload a diploma file and record it on the ledger.

    The content id is written through `issueDiploma` together with the
    diploma fields, or through `setHash` alone when `hash_only` is set.

    On a failed ledger write the body carries the content id; resubmit it
    through `/retry` instead of uploading again.
    """
    content = await file.read()
    diploma = None
    if not hash_only:
        diploma = DiplomaFields(
            student_name=student_name,
            institution_name=institution_name,
            degree=degree,
        )

    logger.info(
        "diploma_issue_requested",
        student_name=student_name,
        institution_name=institution_name,
        filename=file.filename,
        size=len(content),
    )
    issuance = await workflow.issue(content, diploma)
    return issuance_response(issuance)


@router.post("/retry")
async def retry_issue(
    request: RetryIssueRequest,
    workflow: DiplomaWorkflow = Depends(get_workflow),
) -> JSONResponse:
    """Resubmit only the ledger call for content that is already stored."""
    diploma = None
    if request.student_name or request.institution_name or request.degree:
        diploma = DiplomaFields(
            student_name=request.student_name or "",
            institution_name=request.institution_name or "",
            degree=request.degree or "",
        )

    issuance = await workflow.retry_submit(
        Issuance.from_content_id(request.content_id, diploma)
    )
    return issuance_response(issuance)


@router.get("/current")
async def current_diploma(
    workflow: DiplomaWorkflow = Depends(get_workflow),
) -> Response:
    """
    Render the document the ledger currently points to.

    404 `not_issued` means nothing was ever recorded; 503 `unreachable`
    means an id is recorded but its content cannot be fetched right now.
    """
    result = await workflow.retrieve()

    if result.status == RetrievalStatus.NOT_ISSUED:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "success": False,
                "status": result.status.value,
                "error": "No diploma has been issued yet",
            },
        )

    if result.status == RetrievalStatus.UNREACHABLE:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "success": False,
                "status": result.status.value,
                "content_id": result.content_id,
                "error": "Diploma is recorded but its content is currently unreachable",
            },
        )

    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "X-Content-Id": result.content_id or "",
            "Content-Disposition": "inline",
        },
    )
