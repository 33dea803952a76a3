from typing import Any

from fastapi import APIRouter, Depends, Query

from ..deps import require_admin
from ..schemas import CreateSubmissionRequest
from ..services import submission_service

router = APIRouter()


@router.post("/forms/{form_id}/submissions", status_code=201)
def create_submission(form_id: str, payload: CreateSubmissionRequest) -> dict[str, Any]:
    return submission_service.create_submission(form_id, payload.submission_data, payload.metadata)


@router.get("/forms/{form_id}/submissions", dependencies=[Depends(require_admin)])
def list_submissions(
    form_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> dict[str, Any]:
    return submission_service.list_submissions(form_id, limit=limit, offset=offset)


@router.get("/submissions/{submission_id}")
def get_submission(submission_id: str) -> dict[str, Any]:
    return submission_service.get_submission(submission_id)
