from __future__ import annotations

from typing import Any

from .. import option_repo
from ..config import QUESTION_TEXT_MAX_LENGTH
from ..errors import NotFoundError, ValidationError, problem
from ..option_types import (
    QUESTION_TYPES,
    OptionHistoryEntry,
    is_valid_question_type,
    options_from_json,
    requires_options,
)
from .label_mutator import LabelMutation
from .option_normalizer import build_options, normalize_options, raise_for_problems


def _question_problems(question_text: Any, question_type: Any) -> list[dict[str, Any]]:
    errors: list[dict[str, Any]] = []
    if not isinstance(question_text, str) or not question_text.strip():
        errors.append(problem("missing_question_text", "question_text", "question text is required"))
    elif len(question_text) > QUESTION_TEXT_MAX_LENGTH:
        errors.append(
            problem(
                "question_text_too_long",
                "question_text",
                f"question text must be {QUESTION_TEXT_MAX_LENGTH} characters or fewer",
            )
        )
    if not is_valid_question_type(question_type):
        errors.append(
            problem(
                "invalid_question_type",
                "question_type",
                f"question_type '{question_type}' must be one of {list(QUESTION_TYPES)}",
            )
        )
    return errors


def create_question(
    question_text: str,
    question_type: str,
    options: Any = None,
    validation_rules: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    errors = _question_problems(question_text, question_type)
    selectable = is_valid_question_type(question_type) and requires_options(question_type)
    if selectable:
        if options is None:
            errors.append(problem("missing_options", "options", f"question type '{question_type}' requires options"))
        else:
            # Dry run before an id is allocated so bad input never reaches the database.
            _, option_errors = normalize_options(options, question_id="")
            errors.extend(option_errors)
    elif options is not None and is_valid_question_type(question_type):
        errors.append(problem("unexpected_options", "options", f"question type '{question_type}' does not take options"))

    raise_for_problems("Invalid question", errors)

    return option_repo.create_question(
        question_text=question_text.strip(),
        question_type=question_type,
        build_options=(lambda qid: build_options(options, qid)) if selectable else (lambda qid: None),
        validation_rules=validation_rules,
        metadata=metadata,
    )


def get_question(question_id: str) -> dict[str, Any]:
    question = option_repo.get_question(question_id)
    if not question:
        raise NotFoundError("Question", question_id)
    return question


def list_questions(
    question_type: str | None = None,
    is_active: bool | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[dict[str, Any]]:
    if question_type is not None and not is_valid_question_type(question_type):
        raise ValidationError(
            "Invalid filter",
            [problem("invalid_question_type", "question_type", f"unknown question_type '{question_type}'")],
        )
    return option_repo.list_questions(question_type=question_type, is_active=is_active, limit=limit, offset=offset)


def replace_options(question_id: str, options: Any, actor: str | None = None) -> dict[str, Any]:
    question = get_question(question_id)
    if not requires_options(str(question.get("question_type"))):
        raise ValidationError(
            "Invalid options",
            [problem("unexpected_options", "options", f"question '{question_id}' does not take options")],
        )
    build_options(options, question_id, options_from_json(question.get("options")))
    return option_repo.replace_question_options(
        question_id,
        lambda existing, retired: build_options(options, question_id, existing, retired),
        actor=actor,
    )


def rename_option(
    question_id: str,
    option_key: str,
    new_label: str,
    actor: str | None = None,
    reason: str | None = None,
) -> LabelMutation:
    return option_repo.rename_option_label(question_id, option_key, new_label, actor=actor, reason=reason)


def get_option_history(question_id: str, option_key: str | None = None) -> list[OptionHistoryEntry]:
    get_question(question_id)
    return option_repo.list_option_history(question_id, option_key)
