import pytest

from app.errors import ConflictError, NotFoundError, ValidationError
from app.services import question_service


def _colors(fake_repo):
    return question_service.create_question("Favourite color?", "select", ["Red", "Blue", "Green"])


def test_create_selectable_question_generates_keys(fake_repo):
    question = _colors(fake_repo)

    assert question["id"] == "Q-001"
    keys = [o["key"] for o in question["options"]]
    assert all(k.startswith("opt_") for k in keys)
    assert keys[0].startswith("opt_red_")
    assert [o["order"] for o in question["options"]] == [1, 2, 3]


def test_question_problems_are_collected(fake_repo):
    with pytest.raises(ValidationError) as exc:
        question_service.create_question("", "dropdown", ["Red"])
    codes = {e["code"] for e in exc.value.errors}
    assert codes == {"missing_question_text", "invalid_question_type"}
    assert fake_repo.questions == {}


def test_selectable_needs_options_and_free_text_rejects_them(fake_repo):
    with pytest.raises(ValidationError) as exc:
        question_service.create_question("Pick", "radio")
    assert exc.value.errors[0]["code"] == "missing_options"

    with pytest.raises(ValidationError) as exc:
        question_service.create_question("Name", "text", ["A"])
    assert exc.value.errors[0]["code"] == "unexpected_options"

    plain = question_service.create_question("Name", "text")
    assert plain["options"] is None


def test_duplicate_keys_conflict_before_anything_is_stored(fake_repo):
    with pytest.raises(ConflictError) as exc:
        question_service.create_question(
            "Priority",
            "select",
            [{"key": "high", "label": "High"}, {"key": "high", "label": "Urgent"}],
        )
    assert exc.value.keys == ["high"]
    assert fake_repo.questions == {}
    assert fake_repo.ids.next_id("question") == "Q-001"


def test_rename_keeps_key_and_records_history(fake_repo):
    question = _colors(fake_repo)
    red_key = question["options"][0]["key"]

    mutation = question_service.rename_option(question["id"], red_key, "Crimson", actor="admin", reason="rebrand")

    assert mutation.option.key == red_key
    stored = question_service.get_question(question["id"])
    assert [o["key"] for o in stored["options"]] == [o["key"] for o in question["options"]]
    assert stored["options"][0]["label"] == "Crimson"

    history = question_service.get_option_history(question["id"], red_key)
    assert [(h.old_label, h.new_label, h.changed_by) for h in history] == [("Red", "Crimson", "admin")]


def test_rename_unknown_question_or_key(fake_repo):
    question = _colors(fake_repo)
    with pytest.raises(NotFoundError):
        question_service.rename_option("Q-404", "opt_x", "X")
    with pytest.raises(NotFoundError):
        question_service.rename_option(question["id"], "opt_missing", "X")
    with pytest.raises(NotFoundError):
        question_service.get_option_history("Q-404")


def test_replace_options_keeps_matching_keys_and_logs_removals(fake_repo):
    question = _colors(fake_repo)
    before = {o["label"]: o["key"] for o in question["options"]}

    updated = question_service.replace_options(question["id"], ["Blue", "Red", "Yellow"], actor="admin")

    after = {o["label"]: o["key"] for o in updated["options"]}
    assert after["Blue"] == before["Blue"]
    assert after["Red"] == before["Red"]
    assert after["Yellow"] not in before.values()

    removed = question_service.get_option_history(question["id"], before["Green"])
    assert len(removed) == 1
    assert removed[0].new_label is None
    assert removed[0].reason == "option_removed"


def test_replace_options_rejects_bad_batches_and_plain_questions(fake_repo):
    question = _colors(fake_repo)
    with pytest.raises(ValidationError):
        question_service.replace_options(question["id"], ["Red", "Red"])
    assert len(question_service.get_question(question["id"])["options"]) == 3

    plain = question_service.create_question("Email", "email")
    with pytest.raises(ValidationError) as exc:
        question_service.replace_options(plain["id"], ["A"])
    assert exc.value.errors[0]["code"] == "unexpected_options"


def test_structured_replacement_that_changes_a_label_is_recorded(fake_repo):
    question = _colors(fake_repo)
    specs = [{"key": o["key"], "label": o["label"]} for o in question["options"]]
    red_key = specs[0]["key"]
    specs[0]["label"] = "Scarlet"

    updated = question_service.replace_options(question["id"], specs, actor="admin")

    assert updated["options"][0] == {**question["options"][0], "label": "Scarlet"}
    history = question_service.get_option_history(question["id"], red_key)
    assert [(h.old_label, h.new_label, h.reason, h.changed_by) for h in history] == [
        ("Red", "Scarlet", "option_relabeled", "admin"),
    ]


def test_relabel_back_to_an_old_name_gets_a_new_key(fake_repo):
    question = _colors(fake_repo)
    red_key = question["options"][0]["key"]
    question_service.rename_option(question["id"], red_key, "Crimson")

    updated = question_service.replace_options(question["id"], ["Red", "Blue", "Green"])

    new_red = updated["options"][0]
    assert new_red["label"] == "Red"
    assert new_red["key"] != red_key
    assert [o["key"] for o in updated["options"][1:]] == [o["key"] for o in question["options"][1:]]

    history = question_service.get_option_history(question["id"], red_key)
    assert [(h.old_label, h.new_label, h.reason) for h in history] == [
        ("Red", "Crimson", None),
        ("Crimson", None, "option_removed"),
    ]
    assert question_service.get_option_history(question["id"], new_red["key"]) == []


def test_removed_key_is_never_handed_to_a_new_label(fake_repo):
    question = _colors(fake_repo)
    green_key = question["options"][2]["key"]
    question_service.replace_options(question["id"], ["Red", "Blue"])

    # Same label at the same position would hash to the retired key.
    updated = question_service.replace_options(question["id"], ["Red", "Blue", "Green"])

    assert updated["options"][2]["key"] != green_key
    assert question_service.get_option_history(question["id"], updated["options"][2]["key"]) == []


def test_restoring_a_removed_key_by_hand_is_recorded(fake_repo):
    question = _colors(fake_repo)
    specs = [{"key": o["key"], "label": o["label"]} for o in question["options"]]
    question_service.replace_options(question["id"], specs[:2])

    question_service.replace_options(question["id"], specs[:2] + [{"key": specs[2]["key"], "label": "Lime"}])

    history = question_service.get_option_history(question["id"], specs[2]["key"])
    assert [(h.old_label, h.new_label, h.reason) for h in history] == [
        ("Green", None, "option_removed"),
        ("Green", "Lime", "option_restored"),
    ]
