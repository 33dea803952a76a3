from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, Union

from ..config import OPTION_KEY_MAX_LENGTH
from ..errors import ConflictError, ValidationError, problem
from ..option_types import Option, OptionKey, OptionLabel
from .option_keys import SAFE_KEY_PATTERN, generate_option_key


@dataclass(frozen=True)
class SimpleOptions:
    labels: list[Any]


@dataclass(frozen=True)
class StructuredOptions:
    specs: list[dict[str, Any]]


OptionInput = Union[SimpleOptions, StructuredOptions]


def parse_option_input(raw: Any) -> tuple[OptionInput | None, list[dict[str, Any]]]:
    """Decide once whether ``raw`` is a label list or a list of option specs."""
    if isinstance(raw, (SimpleOptions, StructuredOptions)):
        return raw, []
    if not isinstance(raw, list):
        return None, [problem("invalid_options", "options", "options must be an array")]
    if not raw:
        return None, [problem("empty_options", "options", "a selectable question needs at least one option")]
    if all(isinstance(item, str) for item in raw):
        return SimpleOptions(labels=list(raw)), []
    if all(isinstance(item, dict) for item in raw):
        return StructuredOptions(specs=list(raw)), []
    return None, [
        problem(
            "mixed_option_shapes",
            "options",
            "options must be either all strings or all objects with key and label",
        )
    ]


def _label_problems(labels: list[tuple[str, Any]]) -> list[dict[str, Any]]:
    errors: list[dict[str, Any]] = []
    seen: Counter[str] = Counter()
    for path, label in labels:
        if not isinstance(label, str) or not label.strip():
            errors.append(problem("missing_label", path, "option label is required"))
            continue
        seen[label] += 1
    for label, count in seen.items():
        if count > 1:
            paths = [path for path, value in labels if value == label]
            errors.append(
                {
                    **problem("duplicate_label", ", ".join(paths), f"duplicate option label '{label}'"),
                    "label": label,
                }
            )
    return errors


def _duplicate_key_problems(keyed: list[tuple[str, str]]) -> list[dict[str, Any]]:
    counts = Counter(key for _, key in keyed)
    errors: list[dict[str, Any]] = []
    for key, count in counts.items():
        if count < 2:
            continue
        paths = [path for path, k in keyed if k == key]
        errors.append(
            {
                **problem("duplicate_key", ", ".join(paths), f"duplicate option key '{key}' ({count} occurrences)"),
                "key": key,
            }
        )
    return errors


def _normalize_simple(
    parsed: SimpleOptions,
    question_id: str,
    existing: list[Option] | None,
    reserved: Iterable[str] | None,
) -> tuple[list[Option], list[dict[str, Any]]]:
    labelled = [(f"options[{idx}]", label) for idx, label in enumerate(parsed.labels)]
    errors = _label_problems(labelled)
    if errors:
        return [], errors

    by_label = {o.label: o for o in (existing or [])}
    # Keys held by a live or retired option never move to a different label.
    taken = {o.key for o in (existing or [])} | set(reserved or ())
    out: list[Option] = []
    for idx, label in enumerate(parsed.labels):
        previous = by_label.get(label)
        if previous is not None:
            out.append(Option(key=previous.key, label=OptionLabel(label), order=idx + 1, metadata=dict(previous.metadata)))
        else:
            salt = 0
            key = generate_option_key(label, idx, question_id)
            while key in taken:
                salt += 1
                key = generate_option_key(label, idx, question_id, salt)
            taken.add(key)
            out.append(Option(key=key, label=OptionLabel(label), order=idx + 1))

    errors = _duplicate_key_problems([(f"options[{idx}]", o.key) for idx, o in enumerate(out)])
    return ([], errors) if errors else (out, [])


def _effective_order(spec: dict[str, Any], idx: int) -> int:
    return spec["order"] if spec.get("order") is not None else idx + 1


def _duplicate_order_problems(specs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    positions: dict[int, list[str]] = {}
    for idx, spec in enumerate(specs):
        positions.setdefault(_effective_order(spec, idx), []).append(f"options[{idx}].order")
    return [
        problem("invalid_order", ", ".join(paths), f"order {order} is used by more than one option")
        for order, paths in positions.items()
        if len(paths) > 1
    ]


def _normalize_structured(parsed: StructuredOptions) -> tuple[list[Option], list[dict[str, Any]]]:
    errors: list[dict[str, Any]] = []
    keyed: list[tuple[str, str]] = []
    labelled: list[tuple[str, Any]] = []

    for idx, spec in enumerate(parsed.specs):
        path = f"options[{idx}]"
        raw_key = spec.get("key")
        key = raw_key.strip() if isinstance(raw_key, str) else ""
        if not key:
            errors.append(problem("missing_key", f"{path}.key", "option key is required"))
        elif len(key) > OPTION_KEY_MAX_LENGTH:
            errors.append(
                problem("key_too_long", f"{path}.key", f"option key cannot exceed {OPTION_KEY_MAX_LENGTH} characters")
            )
        elif not SAFE_KEY_PATTERN.fullmatch(key):
            errors.append(
                problem(
                    "invalid_key",
                    f"{path}.key",
                    f"option key '{key}' may only contain letters, digits, underscores and hyphens",
                )
            )
        else:
            keyed.append((path, key))

        labelled.append((f"{path}.label", spec.get("label")))

        metadata = spec.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            errors.append(problem("invalid_metadata", f"{path}.metadata", "metadata must be an object"))

        order = spec.get("order")
        if order is not None and (isinstance(order, bool) or not isinstance(order, int)):
            errors.append(problem("invalid_order", f"{path}.order", "order must be an integer"))

    errors.extend(_duplicate_key_problems(keyed))
    errors.extend(_label_problems(labelled))
    if not any(e["code"] == "invalid_order" for e in errors):
        errors.extend(_duplicate_order_problems(parsed.specs))
    if errors:
        return [], errors

    out = [
        Option(
            key=OptionKey(spec["key"].strip()),
            label=OptionLabel(spec["label"]),
            order=_effective_order(spec, idx),
            metadata=dict(spec.get("metadata") or {}),
        )
        for idx, spec in enumerate(parsed.specs)
    ]
    return out, []


def normalize_options(
    raw: Any,
    question_id: str,
    existing: list[Option] | None = None,
    reserved: Iterable[str] | None = None,
) -> tuple[list[Option], list[dict[str, Any]]]:
    """Turn raw option input into ordered ``Option`` records.

    Returns ``(options, problems)``. When any problem is found the option list is
    empty: a batch is accepted whole or not at all. ``existing`` lets a
    replacement label list keep the keys of labels that are already present;
    generated keys skip anything in ``existing`` or ``reserved`` (retired keys).
    """
    parsed, errors = parse_option_input(raw)
    if parsed is None:
        return [], errors
    if isinstance(parsed, SimpleOptions):
        return _normalize_simple(parsed, question_id, existing, reserved)
    return _normalize_structured(parsed)


def raise_for_problems(message: str, errors: list[dict[str, Any]]) -> None:
    """ConflictError when any key collides, ValidationError for anything else."""
    if not errors:
        return
    duplicate_keys = [e["key"] for e in errors if e["code"] == "duplicate_key"]
    if duplicate_keys:
        raise ConflictError(
            f"Option keys must be unique within a question: {', '.join(duplicate_keys)}",
            keys=duplicate_keys,
            errors=errors,
        )
    raise ValidationError(message, errors)


def build_options(
    raw: Any,
    question_id: str,
    existing: list[Option] | None = None,
    reserved: Iterable[str] | None = None,
) -> list[Option]:
    options, errors = normalize_options(raw, question_id, existing, reserved)
    raise_for_problems("Invalid options", errors)
    return options
