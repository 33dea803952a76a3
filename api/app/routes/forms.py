from typing import Any

from fastapi import APIRouter, Depends

from ..deps import require_admin
from ..schemas import CreateFormRequest
from ..services import submission_service

router = APIRouter()


@router.post("/forms", status_code=201, dependencies=[Depends(require_admin)])
def create_form(payload: CreateFormRequest) -> dict[str, Any]:
    return submission_service.create_form(
        title=payload.title,
        description=payload.description,
        questions=[q.model_dump() for q in payload.questions],
        metadata=payload.metadata,
    )


@router.get("/forms/{form_id}")
def get_form(form_id: str) -> dict[str, Any]:
    return submission_service.get_form(form_id)


@router.get("/forms/{form_id}/stats", dependencies=[Depends(require_admin)])
def form_stats(form_id: str) -> dict[str, Any]:
    return submission_service.get_submission_stats(form_id)
