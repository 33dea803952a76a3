from __future__ import annotations

from typing import Any, Mapping

from ..errors import ValidationError, problem
from ..option_types import Option, OptionKey, OptionLabel


def _lookup(options: list[Option]) -> tuple[dict[str, OptionKey], dict[str, OptionKey]]:
    by_key = {o.key: o.key for o in options}
    by_label = {o.label: o.key for o in options}
    return by_key, by_label


def _resolve_one(
    raw: Any,
    by_key: dict[str, OptionKey],
    by_label: dict[str, OptionKey],
    path: str,
    question_id: str | None,
) -> tuple[OptionKey | None, dict[str, Any] | None]:
    where = f" for question '{question_id}'" if question_id else ""
    if not isinstance(raw, str):
        return None, problem("invalid_answer_type", path, f"option answers must be strings{where}, got {raw!r}")
    # Keys win over labels; only current labels are accepted.
    if raw in by_key:
        return by_key[raw], None
    if raw in by_label:
        return by_label[raw], None
    return None, {**problem("unknown_option", path, f"unknown option '{raw}'{where}"), "value": raw}


def resolve_answer(
    raw: Any,
    options: list[Option],
    is_multi: bool,
    question_id: str | None = None,
    path: str = "answer",
) -> OptionKey | list[OptionKey]:
    """Map a submitted value onto canonical option keys.

    Single-select takes and returns a scalar, multi-select a list. Every unknown
    value and every repeated selection is reported in one ``ValidationError``.
    """
    by_key, by_label = _lookup(options)

    if not is_multi:
        if isinstance(raw, (list, tuple, set)):
            raise ValidationError(
                "Invalid answer",
                [problem("expected_scalar", path, "single-select answers must be a single value")],
            )
        key, err = _resolve_one(raw, by_key, by_label, path, question_id)
        if err:
            raise ValidationError("Invalid answer", [err])
        return key

    if not isinstance(raw, (list, tuple)):
        raise ValidationError(
            "Invalid answer",
            [problem("expected_array", path, "multi-select answers must be an array")],
        )

    errors: list[dict[str, Any]] = []
    resolved: list[OptionKey] = []
    first_seen: dict[OptionKey, int] = {}
    for idx, value in enumerate(raw):
        item_path = f"{path}[{idx}]"
        key, err = _resolve_one(value, by_key, by_label, item_path, question_id)
        if err:
            errors.append(err)
            continue
        if key in first_seen:
            errors.append(
                {
                    **problem(
                        "duplicate_selection",
                        item_path,
                        f"option '{key}' selected more than once (also at {path}[{first_seen[key]}])",
                    ),
                    "key": key,
                }
            )
            continue
        first_seen[key] = idx
        resolved.append(key)

    if errors:
        raise ValidationError("Invalid answer", errors)
    return resolved


def keys_to_labels(
    value: Any,
    options: list[Option],
    last_known: Mapping[OptionKey, OptionLabel] | None = None,
) -> Any:
    """Display view of a stored answer: keys become current labels.

    Keys no longer in ``options`` fall back to ``last_known`` and then to the
    raw key, the same projection the stats use.
    """
    labels = {**(last_known or {}), **{o.key: o.label for o in options}}
    if isinstance(value, list):
        return [labels.get(v, v) if isinstance(v, str) else v for v in value]
    if isinstance(value, str):
        return labels.get(value, value)
    return value
