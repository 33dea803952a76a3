from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, NewType

OptionKey = NewType("OptionKey", str)
OptionLabel = NewType("OptionLabel", str)

QUESTION_TYPES = (
    "text",
    "textarea",
    "number",
    "email",
    "phone",
    "date",
    "time",
    "datetime",
    "select",
    "multiselect",
    "radio",
    "checkbox",
    "boolean",
    "file",
    "rating",
)
SELECTABLE_TYPES = {"select", "multiselect", "radio", "checkbox"}
MULTI_SELECT_TYPES = {"multiselect", "checkbox"}


def is_valid_question_type(question_type: Any) -> bool:
    return isinstance(question_type, str) and question_type in QUESTION_TYPES


def requires_options(question_type: str) -> bool:
    return question_type in SELECTABLE_TYPES


def is_multi_select(question_type: str) -> bool:
    return question_type in MULTI_SELECT_TYPES


@dataclass(frozen=True)
class Option:
    key: OptionKey
    label: OptionLabel
    order: int
    metadata: dict[str, Any] = field(default_factory=dict)

    def with_label(self, label: OptionLabel) -> "Option":
        return replace(self, label=label)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": str(self.key),
            "label": str(self.label),
            "metadata": dict(self.metadata),
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Option":
        return cls(
            key=OptionKey(str(data["key"])),
            label=OptionLabel(str(data["label"])),
            order=int(data.get("order") or 0),
            metadata=dict(data.get("metadata") or {}),
        )


def options_from_json(value: Any) -> list[Option]:
    """Decode the persisted JSONB option list, ordered by ``order``."""
    if not isinstance(value, list):
        return []
    out = [Option.from_dict(item) for item in value if isinstance(item, dict) and "key" in item]
    return sorted(out, key=lambda o: o.order)


def options_to_json(options: list[Option]) -> list[dict[str, Any]]:
    return [o.to_dict() for o in options]


@dataclass(frozen=True)
class OptionHistoryEntry:
    question_id: str
    option_key: OptionKey
    old_label: OptionLabel | None
    new_label: OptionLabel | None
    changed_at: datetime
    changed_by: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "option_key": str(self.option_key),
            "old_label": self.old_label,
            "new_label": self.new_label,
            "changed_at": self.changed_at.isoformat(),
            "changed_by": self.changed_by,
            "reason": self.reason,
        }
