import copy
from datetime import datetime, timedelta, timezone

import pytest

from app import option_repo
from app.errors import NotFoundError
from app.option_types import options_from_json, options_to_json
from app.services.id_sequence import InMemoryIdSequence
from app.services.label_mutator import last_known_labels, mutate_label, replacement_entries


class FakeOptionRepo:
    """Dict-backed stand-in for app.option_repo with the same call signatures."""

    def __init__(self):
        self.ids = InMemoryIdSequence()
        self.questions = {}
        self.history = []
        self.forms = {}
        self.submissions = {}
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    def create_question(self, question_text, question_type, build_options, validation_rules=None, metadata=None):
        qid = self.ids.next_id("question")
        options = build_options(qid)
        self.questions[qid] = {
            "id": qid,
            "question_text": question_text,
            "question_type": question_type,
            "options": options_to_json(options) if options is not None else None,
            "validation_rules": validation_rules,
            "metadata": metadata or {},
            "is_active": True,
        }
        return copy.deepcopy(self.questions[qid])

    def get_question(self, question_id):
        row = self.questions.get(question_id)
        return copy.deepcopy(row) if row else None

    def get_questions(self, question_ids):
        return {qid: copy.deepcopy(self.questions[qid]) for qid in question_ids if qid in self.questions}

    def list_questions(self, question_type=None, is_active=None, limit=100, offset=0):
        rows = [
            copy.deepcopy(q) for q in self.questions.values()
            if (question_type is None or q["question_type"] == question_type)
            and (is_active is None or q["is_active"] == is_active)
        ]
        return rows[offset:offset + limit]

    def replace_question_options(self, question_id, build_options, actor=None):
        row = self.questions.get(question_id)
        if not row:
            raise NotFoundError("Question", question_id)
        existing = options_from_json(row["options"])
        retired = self.get_last_known_labels(question_id)
        replacement = build_options(existing, set(retired))
        self.history.extend(
            replacement_entries(existing, replacement, question_id, retired=retired, actor=actor, now=self._tick())
        )
        row["options"] = options_to_json(replacement)
        return copy.deepcopy(row)

    def rename_option_label(self, question_id, option_key, new_label, actor=None, reason=None):
        row = self.questions.get(question_id)
        if not row:
            raise NotFoundError("Question", question_id)
        mutation = mutate_label(
            options_from_json(row["options"]),
            question_id,
            option_key,
            new_label,
            actor=actor,
            reason=reason,
            now=self._tick(),
        )
        row["options"] = options_to_json(mutation.options)
        self.history.append(mutation.entry)
        return mutation

    def list_option_history(self, question_id, option_key=None):
        return [
            e for e in self.history
            if e.question_id == question_id and (option_key is None or e.option_key == option_key)
        ]

    def get_last_known_labels(self, question_id):
        return last_known_labels(self.list_option_history(question_id))

    def create_form(self, title, description, questions, metadata=None):
        form_id = self.ids.next_id("form")
        self.forms[form_id] = {
            "id": form_id,
            "title": title,
            "description": description,
            "questions": copy.deepcopy(questions),
            "metadata": metadata or {},
            "is_active": True,
        }
        return copy.deepcopy(self.forms[form_id])

    def get_form(self, form_id):
        row = self.forms.get(form_id)
        return copy.deepcopy(row) if row else None

    def create_submission(self, form_id, submission_data, metadata=None):
        sid = self.ids.next_id("submission")
        self.submissions[sid] = {
            "id": sid,
            "form_id": form_id,
            "submission_data": copy.deepcopy(submission_data),
            "metadata": metadata or {},
            "submitted_at": self._tick().isoformat(),
        }
        return copy.deepcopy(self.submissions[sid])

    def get_submission(self, submission_id):
        row = self.submissions.get(submission_id)
        return copy.deepcopy(row) if row else None

    def list_submissions_for_form(self, form_id, limit=100, offset=0):
        rows = [copy.deepcopy(s) for s in self.submissions.values() if s["form_id"] == form_id]
        return rows[offset:offset + limit]

    def list_submissions_after(self, form_id, after_id=None, limit=1000):
        rows = sorted(
            (copy.deepcopy(s) for s in self.submissions.values() if s["form_id"] == form_id),
            key=lambda s: s["id"],
        )
        return [s for s in rows if after_id is None or s["id"] > after_id][:limit]

    def count_submissions(self, form_id):
        return len([s for s in self.submissions.values() if s["form_id"] == form_id])


_PATCHED = (
    "create_question",
    "get_question",
    "get_questions",
    "list_questions",
    "replace_question_options",
    "rename_option_label",
    "list_option_history",
    "get_last_known_labels",
    "create_form",
    "get_form",
    "create_submission",
    "get_submission",
    "list_submissions_for_form",
    "list_submissions_after",
    "count_submissions",
)


@pytest.fixture
def fake_repo(monkeypatch):
    repo = FakeOptionRepo()
    for name in _PATCHED:
        monkeypatch.setattr(option_repo, name, getattr(repo, name))
    return repo
