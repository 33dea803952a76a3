from __future__ import annotations

import json
import logging
from typing import Any, Callable

from sqlalchemy import text

from .database import SessionLocal
from .errors import NotFoundError
from .option_types import Option, OptionHistoryEntry, OptionKey, OptionLabel, options_from_json, options_to_json
from .services.id_sequence import DbIdSequence
from .services.label_mutator import LabelMutation, last_known_labels, mutate_label, replacement_entries

logger = logging.getLogger(__name__)

_QUESTION_COLUMNS = "id, question_text, question_type, options, validation_rules, metadata, is_active, created_at, updated_at"
_FORM_COLUMNS = "id, title, description, questions, metadata, is_active, created_at, updated_at"
_SUBMISSION_COLUMNS = "id, form_id, submission_data, metadata, submitted_at"


def _normalize_row(row) -> dict[str, Any]:
    out = dict(row)
    for key in ("created_at", "updated_at", "submitted_at"):
        if key in out and out[key] is not None and hasattr(out[key], "isoformat"):
            out[key] = out[key].isoformat()
    return out


def _insert_history(db, entry: OptionHistoryEntry) -> None:
    db.execute(
        text(
            """
            INSERT INTO question_option_history (question_id, option_key, old_label, new_label, changed_at, changed_by, change_reason)
            VALUES (:question_id, :option_key, :old_label, :new_label, :changed_at, :changed_by, :change_reason)
            """
        ),
        {
            "question_id": entry.question_id,
            "option_key": str(entry.option_key),
            "old_label": entry.old_label,
            "new_label": entry.new_label,
            "changed_at": entry.changed_at,
            "changed_by": entry.changed_by,
            "change_reason": entry.reason,
        },
    )


def _write_options(db, question_id: str, options: list[Option]) -> None:
    db.execute(
        text(
            """
            UPDATE question_bank
            SET options = CAST(:options AS jsonb), updated_at = NOW()
            WHERE id = :id
            """
        ),
        {"id": question_id, "options": json.dumps(options_to_json(options))},
    )


def _lock_question(db, question_id: str) -> dict[str, Any] | None:
    row = db.execute(
        text(f"SELECT {_QUESTION_COLUMNS} FROM question_bank WHERE id = :id FOR UPDATE"),
        {"id": question_id},
    ).mappings().first()
    return dict(row) if row else None


# Questions


def create_question(
    question_text: str,
    question_type: str,
    build_options: Callable[[str], list[Option] | None],
    validation_rules: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Insert a question; ``build_options`` receives the allocated id."""
    with SessionLocal() as db:
        question_id = DbIdSequence(db).next_id("question")
        options = build_options(question_id)
        db.execute(
            text(
                """
                INSERT INTO question_bank (id, question_text, question_type, options, validation_rules, metadata, is_active)
                VALUES (:id, :question_text, :question_type, CAST(:options AS jsonb), CAST(:validation_rules AS jsonb), CAST(:metadata AS jsonb), true)
                """
            ),
            {
                "id": question_id,
                "question_text": question_text,
                "question_type": question_type,
                "options": json.dumps(options_to_json(options)) if options is not None else None,
                "validation_rules": json.dumps(validation_rules) if validation_rules is not None else None,
                "metadata": json.dumps(metadata or {}),
            },
        )
        db.commit()
    logger.info("[OPTIONS] question created id=%s type=%s options=%s", question_id, question_type, len(options or []))
    return get_question(question_id) or {}


def get_question(question_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(f"SELECT {_QUESTION_COLUMNS} FROM question_bank WHERE id = :id"),
            {"id": question_id},
        ).mappings().first()
    return _normalize_row(row) if row else None


def get_questions(question_ids: list[str]) -> dict[str, dict[str, Any]]:
    if not question_ids:
        return {}
    with SessionLocal() as db:
        rows = db.execute(
            text(f"SELECT {_QUESTION_COLUMNS} FROM question_bank WHERE id = ANY(:ids)"),
            {"ids": list(question_ids)},
        ).mappings().all()
    return {str(r["id"]): _normalize_row(r) for r in rows}


def list_questions(
    question_type: str | None = None,
    is_active: bool | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                f"""
                SELECT {_QUESTION_COLUMNS}
                FROM question_bank
                WHERE (CAST(:question_type AS text) IS NULL OR question_type = :question_type)
                  AND (CAST(:is_active AS boolean) IS NULL OR is_active = :is_active)
                ORDER BY created_at DESC
                LIMIT :limit OFFSET :offset
                """
            ),
            {"question_type": question_type, "is_active": is_active, "limit": limit, "offset": offset},
        ).mappings().all()
    return [_normalize_row(r) for r in rows]


def replace_question_options(
    question_id: str,
    build_options: Callable[[list[Option], set[str]], list[Option]],
    actor: str | None = None,
) -> dict[str, Any]:
    """Swap a question's option list under a row lock.

    ``build_options`` gets the live options and every key seen in history.
    Dropped keys, relabeled keys and restored keys each get a history row in
    the same transaction.
    """
    with SessionLocal() as db:
        row = _lock_question(db, question_id)
        if not row:
            raise NotFoundError("Question", question_id)
        existing = options_from_json(row.get("options"))
        retired = last_known_labels(_history_entries(db, question_id))
        replacement = build_options(existing, set(retired))
        entries = replacement_entries(existing, replacement, question_id, retired=retired, actor=actor)
        _write_options(db, question_id, replacement)
        for entry in entries:
            _insert_history(db, entry)
        db.commit()
    logger.info(
        "[OPTIONS] options replaced question_id=%s count=%s changes=%s",
        question_id,
        len(replacement),
        [(str(e.option_key), e.reason) for e in entries],
    )
    return get_question(question_id) or {}


def rename_option_label(
    question_id: str,
    option_key: str,
    new_label: str,
    actor: str | None = None,
    reason: str | None = None,
) -> LabelMutation:
    """Label overwrite and history append in one transaction.

    The question row lock serializes concurrent renames: each accepted call
    writes exactly one history row, last writer wins on the label.
    """
    with SessionLocal() as db:
        row = _lock_question(db, question_id)
        if not row:
            raise NotFoundError("Question", question_id)
        mutation = mutate_label(
            options_from_json(row.get("options")),
            question_id,
            option_key,
            new_label,
            actor=actor,
            reason=reason,
        )
        _write_options(db, question_id, mutation.options)
        _insert_history(db, mutation.entry)
        db.commit()
    logger.info(
        "[OPTIONS] label changed question_id=%s key=%s old=%r new=%r by=%s",
        question_id,
        option_key,
        mutation.entry.old_label,
        mutation.entry.new_label,
        actor,
    )
    return mutation


def _history_entries(db, question_id: str, option_key: str | None = None) -> list[OptionHistoryEntry]:
    rows = db.execute(
        text(
            """
            SELECT question_id, option_key, old_label, new_label, changed_at, changed_by, change_reason
            FROM question_option_history
            WHERE question_id = :question_id
              AND (CAST(:option_key AS text) IS NULL OR option_key = :option_key)
            ORDER BY changed_at ASC, id ASC
            """
        ),
        {"question_id": question_id, "option_key": option_key},
    ).mappings().all()
    return [
        OptionHistoryEntry(
            question_id=str(r["question_id"]),
            option_key=OptionKey(str(r["option_key"])),
            old_label=OptionLabel(r["old_label"]) if r["old_label"] is not None else None,
            new_label=OptionLabel(r["new_label"]) if r["new_label"] is not None else None,
            changed_at=r["changed_at"],
            changed_by=r["changed_by"],
            reason=r["change_reason"],
        )
        for r in rows
    ]


def list_option_history(question_id: str, option_key: str | None = None) -> list[OptionHistoryEntry]:
    with SessionLocal() as db:
        return _history_entries(db, question_id, option_key)


def get_last_known_labels(question_id: str) -> dict[OptionKey, OptionLabel]:
    return last_known_labels(list_option_history(question_id))


# Forms


def create_form(
    title: str,
    description: str | None,
    questions: list[dict[str, Any]],
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    with SessionLocal() as db:
        form_id = DbIdSequence(db).next_id("form")
        db.execute(
            text(
                """
                INSERT INTO forms (id, title, description, questions, metadata, is_active)
                VALUES (:id, :title, :description, CAST(:questions AS jsonb), CAST(:metadata AS jsonb), true)
                """
            ),
            {
                "id": form_id,
                "title": title,
                "description": description,
                "questions": json.dumps(questions),
                "metadata": json.dumps(metadata or {}),
            },
        )
        db.commit()
    return get_form(form_id) or {}


def get_form(form_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(f"SELECT {_FORM_COLUMNS} FROM forms WHERE id = :id"),
            {"id": form_id},
        ).mappings().first()
    return _normalize_row(row) if row else None


# Submissions


def create_submission(form_id: str, submission_data: dict[str, Any], metadata: dict[str, Any] | None = None) -> dict[str, Any]:
    with SessionLocal() as db:
        submission_id = DbIdSequence(db).next_id("submission")
        db.execute(
            text(
                """
                INSERT INTO submissions (id, form_id, submission_data, metadata)
                VALUES (:id, :form_id, CAST(:submission_data AS jsonb), CAST(:metadata AS jsonb))
                """
            ),
            {
                "id": submission_id,
                "form_id": form_id,
                "submission_data": json.dumps(submission_data),
                "metadata": json.dumps(metadata or {}),
            },
        )
        db.commit()
    return get_submission(submission_id) or {}


def get_submission(submission_id: str) -> dict[str, Any] | None:
    with SessionLocal() as db:
        row = db.execute(
            text(f"SELECT {_SUBMISSION_COLUMNS} FROM submissions WHERE id = :id"),
            {"id": submission_id},
        ).mappings().first()
    return _normalize_row(row) if row else None


def list_submissions_for_form(form_id: str, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
    with SessionLocal() as db:
        rows = db.execute(
            text(
                f"""
                SELECT {_SUBMISSION_COLUMNS}
                FROM submissions
                WHERE form_id = :form_id
                ORDER BY submitted_at DESC, id DESC
                LIMIT :limit OFFSET :offset
                """
            ),
            {"form_id": form_id, "limit": limit, "offset": offset},
        ).mappings().all()
    return [_normalize_row(r) for r in rows]


def list_submissions_after(form_id: str, after_id: str | None = None, limit: int = 1000) -> list[dict[str, Any]]:
    """Keyset page by id for full scans; rows inserted mid-scan may or may not appear."""
    with SessionLocal() as db:
        rows = db.execute(
            text(
                f"""
                SELECT {_SUBMISSION_COLUMNS}
                FROM submissions
                WHERE form_id = :form_id
                  AND (CAST(:after_id AS text) IS NULL OR id > :after_id)
                ORDER BY id ASC
                LIMIT :limit
                """
            ),
            {"form_id": form_id, "after_id": after_id, "limit": limit},
        ).mappings().all()
    return [_normalize_row(r) for r in rows]


def count_submissions(form_id: str) -> int:
    with SessionLocal() as db:
        value = db.execute(
            text("SELECT COUNT(1) FROM submissions WHERE form_id = :form_id"),
            {"form_id": form_id},
        ).scalar() or 0
    return int(value)
