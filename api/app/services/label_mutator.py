from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping

from ..errors import NotFoundError, ValidationError, problem
from ..option_types import Option, OptionHistoryEntry, OptionKey, OptionLabel


@dataclass(frozen=True)
class LabelMutation:
    option: Option
    entry: OptionHistoryEntry
    options: list[Option]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def mutate_label(
    options: list[Option],
    question_id: str,
    option_key: str,
    new_label: str,
    actor: str | None = None,
    reason: str | None = None,
    now: datetime | None = None,
) -> LabelMutation:
    """Rename one option and build the history row that records it.

    Only ``label`` changes. The caller must persist ``options`` and ``entry`` in
    the same transaction. Re-applying an identical rename still yields a new
    entry.
    """
    target = next((o for o in options if o.key == option_key), None)
    if target is None:
        raise NotFoundError("Option", f"{question_id}/{option_key}")

    if not isinstance(new_label, str) or not new_label.strip():
        raise ValidationError("Invalid label", [problem("missing_label", "new_label", "new label is required")])

    clash = next((o for o in options if o.label == new_label and o.key != target.key), None)
    if clash is not None:
        raise ValidationError(
            "Invalid label",
            [problem("duplicate_label", "new_label", f"label '{new_label}' is already used by option '{clash.key}'")],
        )

    renamed = target.with_label(OptionLabel(new_label))
    entry = OptionHistoryEntry(
        question_id=question_id,
        option_key=OptionKey(target.key),
        old_label=target.label,
        new_label=renamed.label,
        changed_at=now or _now(),
        changed_by=actor,
        reason=reason,
    )
    updated = [renamed if o.key == target.key else o for o in options]
    return LabelMutation(option=renamed, entry=entry, options=updated)


REMOVED = "option_removed"
RELABELED = "option_relabeled"
RESTORED = "option_restored"


def replacement_entries(
    before: list[Option],
    after: list[Option],
    question_id: str,
    retired: Mapping[OptionKey, OptionLabel] | None = None,
    actor: str | None = None,
    now: datetime | None = None,
) -> list[OptionHistoryEntry]:
    """History rows for an option-list replacement.

    Dropped keys get ``new_label`` ``None`` so their old label stays available
    as the last known label. Kept keys whose label differs and retired keys
    (present in ``retired``) that come back each get a row too, so every label
    a key has ever shown is in history.
    """
    changed_at = now or _now()
    previous = {o.key: o.label for o in before}
    kept = {o.key for o in after}
    retired = retired or {}

    def entry(key, old_label, new_label, reason):
        return OptionHistoryEntry(
            question_id=question_id,
            option_key=OptionKey(key),
            old_label=old_label,
            new_label=new_label,
            changed_at=changed_at,
            changed_by=actor,
            reason=reason,
        )

    out = [entry(o.key, o.label, None, REMOVED) for o in before if o.key not in kept]
    for o in after:
        if o.key in previous:
            if previous[o.key] != o.label:
                out.append(entry(o.key, previous[o.key], o.label, RELABELED))
        elif o.key in retired:
            out.append(entry(o.key, retired[o.key], o.label, RESTORED))
    return out


def last_known_labels(entries: list[OptionHistoryEntry]) -> dict[OptionKey, OptionLabel]:
    """Latest label recorded per key, walking history oldest to newest."""
    out: dict[OptionKey, OptionLabel] = {}
    for entry in sorted(entries, key=lambda e: e.changed_at):
        label = entry.new_label if entry.new_label is not None else entry.old_label
        if label is not None:
            out[entry.option_key] = label
    return out
