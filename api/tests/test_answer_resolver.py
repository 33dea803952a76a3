import pytest

from app.errors import ValidationError
from app.option_types import Option
from app.services.answer_resolver import keys_to_labels, resolve_answer
from app.services.label_mutator import mutate_label

OPTIONS = [
    Option(key="k_red", label="Red", order=1),
    Option(key="k_blue", label="Blue", order=2),
    Option(key="k_green", label="Green", order=3),
]


def test_key_and_label_resolve_to_the_same_key():
    assert resolve_answer("k_red", OPTIONS, is_multi=False) == "k_red"
    assert resolve_answer("Red", OPTIONS, is_multi=False) == "k_red"


def test_multi_select_resolves_mixed_keys_and_labels_in_order():
    assert resolve_answer(["Green", "k_red"], OPTIONS, is_multi=True) == ["k_green", "k_red"]
    assert resolve_answer([], OPTIONS, is_multi=True) == []


def test_key_wins_when_a_label_matches_another_key():
    options = [Option(key="a", label="b", order=1), Option(key="b", label="c", order=2)]
    assert resolve_answer("b", options, is_multi=False) == "b"


def test_old_label_stops_resolving_after_rename():
    renamed = mutate_label(OPTIONS, "Q-001", "k_red", "Crimson").options

    assert resolve_answer("Crimson", renamed, is_multi=False) == "k_red"
    assert resolve_answer("k_red", renamed, is_multi=False) == "k_red"
    with pytest.raises(ValidationError) as exc:
        resolve_answer("Red", renamed, is_multi=False, question_id="Q-001")
    err = exc.value.errors[0]
    assert err["code"] == "unknown_option"
    assert err["value"] == "Red"
    assert "Q-001" in err["message"]


def test_shape_mismatches():
    with pytest.raises(ValidationError) as exc:
        resolve_answer(["Red"], OPTIONS, is_multi=False)
    assert exc.value.errors[0]["code"] == "expected_scalar"

    with pytest.raises(ValidationError) as exc:
        resolve_answer("Red", OPTIONS, is_multi=True)
    assert exc.value.errors[0]["code"] == "expected_array"

    with pytest.raises(ValidationError) as exc:
        resolve_answer(3, OPTIONS, is_multi=False)
    assert exc.value.errors[0]["code"] == "invalid_answer_type"


def test_all_bad_values_reported_together():
    with pytest.raises(ValidationError) as exc:
        resolve_answer(["Red", "Purple", "k_red", "nope"], OPTIONS, is_multi=True, path="Q-009")

    errors = exc.value.errors
    assert [e["code"] for e in errors] == ["unknown_option", "duplicate_selection", "unknown_option"]
    assert [e["path"] for e in errors] == ["Q-009[1]", "Q-009[2]", "Q-009[3]"]
    assert errors[1]["key"] == "k_red"


def test_keys_to_labels_uses_current_labels_and_keeps_unknown_keys():
    assert keys_to_labels("k_blue", OPTIONS) == "Blue"
    assert keys_to_labels(["k_green", "k_gone"], OPTIONS) == ["Green", "k_gone"]
    assert keys_to_labels(None, OPTIONS) is None


def test_keys_to_labels_falls_back_to_last_known_labels():
    assert keys_to_labels("k_gone", OPTIONS, {"k_gone": "Purple"}) == "Purple"
    assert keys_to_labels(["k_red", "k_gone"], OPTIONS, {"k_gone": "Purple", "k_red": "Old Red"}) == ["Red", "Purple"]
