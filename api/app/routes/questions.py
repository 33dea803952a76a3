from typing import Any

from fastapi import APIRouter, Depends, Header, Query

from ..deps import parse_actor, require_admin
from ..schemas import CreateQuestionRequest, OptionChangeResponse, RenameOptionRequest, ReplaceOptionsRequest
from ..services import question_service

router = APIRouter()


@router.post("/questions", status_code=201, dependencies=[Depends(require_admin)])
def create_question(payload: CreateQuestionRequest) -> dict[str, Any]:
    return question_service.create_question(
        question_text=payload.question_text,
        question_type=payload.question_type,
        options=payload.options,
        validation_rules=payload.validation_rules,
        metadata=payload.metadata,
    )


@router.get("/questions")
def list_questions(
    question_type: str | None = None,
    is_active: bool | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> dict[str, Any]:
    rows = question_service.list_questions(question_type, is_active, limit, offset)
    return {"questions": rows, "count": len(rows)}


@router.get("/questions/{question_id}")
def get_question(question_id: str) -> dict[str, Any]:
    return question_service.get_question(question_id)


@router.put("/questions/{question_id}/options", dependencies=[Depends(require_admin)])
def replace_options(
    question_id: str,
    payload: ReplaceOptionsRequest,
    x_actor: str | None = Header(default=None, alias="X-Actor"),
) -> dict[str, Any]:
    return question_service.replace_options(question_id, payload.options, actor=parse_actor(x_actor))


@router.patch(
    "/questions/{question_id}/options/{option_key}",
    response_model=OptionChangeResponse,
    dependencies=[Depends(require_admin)],
)
def rename_option(
    question_id: str,
    option_key: str,
    payload: RenameOptionRequest,
    x_actor: str | None = Header(default=None, alias="X-Actor"),
) -> dict[str, Any]:
    mutation = question_service.rename_option(
        question_id,
        option_key,
        payload.label,
        actor=parse_actor(x_actor),
        reason=payload.reason,
    )
    return {"option": mutation.option.to_dict(), "history_entry": mutation.entry.to_dict()}


@router.get("/questions/{question_id}/options/history")
def option_history(question_id: str, option_key: str | None = None) -> dict[str, Any]:
    entries = question_service.get_option_history(question_id, option_key)
    return {"question_id": question_id, "history": [e.to_dict() for e in entries]}
