from typing import Any
from pydantic import BaseModel, Field


class CreateQuestionRequest(BaseModel):
    question_text: str
    question_type: str
    options: Any = None
    validation_rules: dict[str, Any] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ReplaceOptionsRequest(BaseModel):
    options: Any


class RenameOptionRequest(BaseModel):
    label: str
    reason: str | None = None


class FormQuestionRef(BaseModel):
    question_id: str
    required: bool = False


class CreateFormRequest(BaseModel):
    title: str
    description: str | None = None
    questions: list[FormQuestionRef] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class CreateSubmissionRequest(BaseModel):
    submission_data: dict[str, Any]
    metadata: dict[str, Any] = Field(default_factory=dict)


class OptionChangeResponse(BaseModel):
    option: dict[str, Any]
    history_entry: dict[str, Any]
