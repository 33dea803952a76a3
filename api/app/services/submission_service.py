from __future__ import annotations

import logging
import re
from typing import Any, Iterator

from .. import option_repo
from ..config import FORM_TITLE_MAX_LENGTH, STATS_PAGE_SIZE
from ..errors import NotFoundError, ValidationError, problem
from ..option_types import Option, OptionKey, OptionLabel, is_multi_select, options_from_json, requires_options
from .answer_resolver import keys_to_labels, resolve_answer
from .option_stats import aggregate_stats, count_values, is_empty_answer

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[\d\s\-+()]+$")


# Forms


def create_form(
    title: str,
    questions: list[dict[str, Any]],
    description: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    errors: list[dict[str, Any]] = []
    if not isinstance(title, str) or not title.strip():
        errors.append(problem("missing_title", "title", "form title is required"))
    elif len(title) > FORM_TITLE_MAX_LENGTH:
        errors.append(problem("title_too_long", "title", f"title must be {FORM_TITLE_MAX_LENGTH} characters or fewer"))

    if not isinstance(questions, list) or not questions:
        errors.append(problem("missing_questions", "questions", "a form needs at least one question"))
        raise ValidationError("Invalid form", errors)

    refs: list[dict[str, Any]] = []
    seen: set[str] = set()
    for idx, item in enumerate(questions):
        path = f"questions[{idx}]"
        qid = str((item or {}).get("question_id") or "").strip() if isinstance(item, dict) else ""
        if not qid:
            errors.append(problem("missing_question_id", f"{path}.question_id", "question_id is required"))
            continue
        if qid in seen:
            errors.append(problem("duplicate_question_id", f"{path}.question_id", f"duplicate question '{qid}'"))
            continue
        seen.add(qid)
        refs.append({"question_id": qid, "required": bool(item.get("required", False))})

    found = option_repo.get_questions([r["question_id"] for r in refs])
    for idx, ref in enumerate(refs):
        if ref["question_id"] not in found:
            errors.append(
                problem("unknown_question", f"questions[{idx}].question_id", f"question '{ref['question_id']}' not found")
            )

    if errors:
        raise ValidationError("Invalid form", errors)
    return option_repo.create_form(title.strip(), description, refs, metadata)


def get_form(form_id: str) -> dict[str, Any]:
    form = option_repo.get_form(form_id)
    if not form:
        raise NotFoundError("Form", form_id)
    return form


def load_form_questions(form: dict[str, Any]) -> list[dict[str, Any]]:
    """Form question refs joined with their current question rows."""
    refs = form.get("questions") if isinstance(form.get("questions"), list) else []
    found = option_repo.get_questions([str(r.get("question_id")) for r in refs])
    out: list[dict[str, Any]] = []
    for ref in refs:
        qid = str(ref.get("question_id"))
        question = found.get(qid)
        if question is None:
            logger.warning("[OPTIONS] form %s references missing question %s", form.get("id"), qid)
            continue
        out.append({"question_id": qid, "required": bool(ref.get("required", False)), "question": question})
    return out


# Submissions


def _plain_answer_problem(question_type: str, value: Any, path: str) -> dict[str, Any] | None:
    if question_type == "email" and not (isinstance(value, str) and _EMAIL_RE.match(value)):
        return problem("invalid_email", path, f"invalid email format for question '{path}'")
    if question_type == "phone" and not (isinstance(value, str) and _PHONE_RE.match(value)):
        return problem("invalid_phone", path, f"invalid phone format for question '{path}'")
    if question_type in {"number", "rating"}:
        if isinstance(value, bool):
            return problem("invalid_number", path, f"question '{path}' expects a number")
        try:
            float(value)
        except (TypeError, ValueError):
            return problem("invalid_number", path, f"question '{path}' expects a number")
    if question_type == "boolean" and not isinstance(value, bool):
        return problem("invalid_boolean", path, f"question '{path}' expects true or false")
    return None


def resolve_submission_data(
    submission_data: dict[str, Any],
    form_questions: list[dict[str, Any]],
) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Validate a whole submission and swap selectable answers for keys.

    Problems from every question are collected before returning so the caller
    can reject the submission in one go.
    """
    errors: list[dict[str, Any]] = []
    stored: dict[str, Any] = {}
    known = {fq["question_id"] for fq in form_questions}

    for qid in submission_data:
        if qid not in known:
            errors.append(problem("unknown_question", qid, f"question '{qid}' is not part of this form"))

    for fq in form_questions:
        qid = fq["question_id"]
        question = fq["question"]
        question_type = str(question.get("question_type"))
        value = submission_data.get(qid)

        if is_empty_answer(value):
            if fq.get("required"):
                errors.append(problem("required", qid, f"answer for question '{qid}' is required"))
            continue

        if requires_options(question_type):
            try:
                stored[qid] = resolve_answer(
                    value,
                    options_from_json(question.get("options")),
                    is_multi_select(question_type),
                    question_id=qid,
                    path=qid,
                )
            except ValidationError as exc:
                errors.extend(exc.errors)
            continue

        err = _plain_answer_problem(question_type, value, qid)
        if err:
            errors.append(err)
            continue
        stored[qid] = value

    return stored, errors


def create_submission(
    form_id: str,
    submission_data: dict[str, Any],
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    if not isinstance(submission_data, dict):
        raise ValidationError(
            "Submission validation failed",
            [problem("invalid_submission", "submission_data", "submission_data must be an object")],
        )
    form = get_form(form_id)
    if not form.get("is_active", True):
        raise ValidationError(
            "Submission validation failed",
            [problem("form_inactive", "form_id", f"form '{form_id}' is not accepting submissions")],
        )

    form_questions = load_form_questions(form)
    stored, errors = resolve_submission_data(submission_data, form_questions)
    if errors:
        logger.info("[OPTIONS] submission rejected form_id=%s problems=%s", form_id, len(errors))
        raise ValidationError("Submission validation failed", errors)

    created = option_repo.create_submission(form_id, stored, metadata)
    logger.info("[OPTIONS] submission stored form_id=%s submission_id=%s", form_id, created.get("id"))
    return present_submission(created, label_views(form_questions))


def label_views(form_questions: list[dict[str, Any]]) -> dict[str, tuple[list[Option], dict[OptionKey, OptionLabel]]]:
    """Per selectable question: live options and last known labels for retired keys."""
    return {
        fq["question_id"]: (
            options_from_json(fq["question"].get("options")),
            option_repo.get_last_known_labels(fq["question_id"]),
        )
        for fq in form_questions
        if requires_options(str(fq["question"].get("question_type")))
    }


def present_submission(
    submission: dict[str, Any],
    views: dict[str, tuple[list[Option], dict[OptionKey, OptionLabel]]],
) -> dict[str, Any]:
    """Stored keys under ``raw_data``; ``submission_data`` shows current labels."""
    raw = submission.get("submission_data") if isinstance(submission.get("submission_data"), dict) else {}
    display = {
        qid: keys_to_labels(value, *views[qid]) if qid in views else value
        for qid, value in raw.items()
    }
    return {**submission, "submission_data": display, "raw_data": raw}


def get_submission(submission_id: str) -> dict[str, Any]:
    submission = option_repo.get_submission(submission_id)
    if not submission:
        raise NotFoundError("Submission", submission_id)
    form = get_form(str(submission["form_id"]))
    return present_submission(submission, label_views(load_form_questions(form)))


def list_submissions(form_id: str, limit: int = 100, offset: int = 0) -> dict[str, Any]:
    form = get_form(form_id)
    views = label_views(load_form_questions(form))
    rows = option_repo.list_submissions_for_form(form_id, limit=limit, offset=offset)
    return {
        "form_id": form_id,
        "total": option_repo.count_submissions(form_id),
        "submissions": [present_submission(r, views) for r in rows],
    }


def _all_submissions(form_id: str) -> Iterator[dict[str, Any]]:
    after_id = None
    while True:
        page = option_repo.list_submissions_after(form_id, after_id=after_id, limit=STATS_PAGE_SIZE)
        yield from page
        if not page or len(page) < STATS_PAGE_SIZE:
            return
        after_id = page[-1]["id"]


def get_submission_stats(form_id: str) -> dict[str, Any]:
    """Counts over every submission of the form, read page by page."""
    form = get_form(form_id)
    form_questions = load_form_questions(form)
    views = label_views(form_questions)

    answers: dict[str, list[Any]] = {fq["question_id"]: [] for fq in form_questions}
    total = 0
    for submission in _all_submissions(form_id):
        total += 1
        data = submission.get("submission_data") or {}
        for qid, values in answers.items():
            values.append(data.get(qid))

    question_stats: dict[str, Any] = {}
    for fq in form_questions:
        qid = fq["question_id"]
        question = fq["question"]
        question_type = str(question.get("question_type"))
        if qid in views:
            stats = aggregate_stats(answers[qid], *views[qid])
        else:
            stats = count_values(answers[qid])
        question_stats[qid] = {
            "question_text": question.get("question_text"),
            "question_type": question_type,
            "total_answers": stats.total_answers,
            "empty_answers": stats.empty_answers,
            "answer_distribution": stats.label_distribution,
            "key_distribution": stats.key_distribution,
            "orphaned_keys": stats.orphaned_keys,
        }

    return {
        "form_id": form_id,
        "total_submissions": total,
        "question_stats": question_stats,
    }
