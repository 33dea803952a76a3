from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ..option_types import Option, OptionKey, OptionLabel


@dataclass
class OptionStats:
    """Counts for one selectable question.

    ``key_distribution`` is the source of truth; ``label_distribution`` is a
    display projection computed from the live option set.
    """

    total_answers: int = 0
    empty_answers: int = 0
    key_distribution: dict[str, int] = field(default_factory=dict)
    label_distribution: dict[str, int] = field(default_factory=dict)
    orphaned_keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_answers": self.total_answers,
            "empty_answers": self.empty_answers,
            "key_distribution": dict(self.key_distribution),
            "label_distribution": dict(self.label_distribution),
            "orphaned_keys": list(self.orphaned_keys),
        }


def is_empty_answer(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, list) and not value)


def _answer_keys(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value if v is not None and v != ""]
    return [str(value)]


def aggregate_stats(
    answers: Iterable[Any],
    options: list[Option],
    last_known_labels: Mapping[OptionKey, OptionLabel] | None = None,
) -> OptionStats:
    counts: Counter[str] = Counter()
    stats = OptionStats()
    for value in answers:
        if is_empty_answer(value):
            stats.empty_answers += 1
            continue
        stats.total_answers += 1
        counts.update(_answer_keys(value))

    ordered = sorted(options, key=lambda o: o.order)
    current = {o.key: o.label for o in ordered}

    key_distribution: dict[str, int] = {o.key: counts.get(o.key, 0) for o in ordered}
    orphaned = sorted(k for k in counts if k not in current)
    for key in orphaned:
        key_distribution[key] = counts[key]

    label_distribution: dict[str, int] = {}
    for key, count in key_distribution.items():
        if key in current:
            label = current[key]
        else:
            label = (last_known_labels or {}).get(OptionKey(key), key)
        label_distribution[label] = label_distribution.get(label, 0) + count

    stats.key_distribution = key_distribution
    stats.label_distribution = label_distribution
    stats.orphaned_keys = orphaned
    return stats


def count_values(answers: Iterable[Any]) -> OptionStats:
    """Frequency table for non-selectable questions, keyed by the answer text."""
    counts: Counter[str] = Counter()
    stats = OptionStats()
    for value in answers:
        if is_empty_answer(value):
            stats.empty_answers += 1
            continue
        stats.total_answers += 1
        counts[", ".join(map(str, value)) if isinstance(value, list) else str(value)] += 1
    stats.key_distribution = dict(counts)
    stats.label_distribution = dict(counts)
    return stats
