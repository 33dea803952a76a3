from __future__ import annotations

import hashlib
import json
import re

from ..config import (
    OPTION_KEY_HASH_LENGTH,
    OPTION_KEY_MAX_LENGTH,
    OPTION_KEY_PREFIX,
    OPTION_KEY_SLUG_MAX_LENGTH,
)
from ..option_types import OptionKey

SAFE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify_label(label: str, max_length: int = OPTION_KEY_SLUG_MAX_LENGTH) -> str:
    slug = _NON_SLUG.sub("_", label.lower()).strip("_")
    return slug[:max_length].rstrip("_")


def _key_hash(label: str, index: int, question_id: str, salt: int = 0) -> str:
    parts: list = [question_id, label, index]
    if salt:
        parts.append(salt)
    payload = json.dumps(parts, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:OPTION_KEY_HASH_LENGTH]


def generate_option_key(label: str, index: int, question_id: str, salt: int = 0) -> OptionKey:
    """Derive the stable key for a label at ``index`` within ``question_id``.

    Pure: the same inputs always give the same key. Labels that slug to
    nothing (emoji, punctuation) fall back to ``{prefix}_{hash}``. A non-zero
    ``salt`` re-hashes when the plain key is already taken.
    """
    if not isinstance(label, str):
        raise TypeError(f"label must be a string, got {type(label).__name__}")
    if isinstance(index, bool) or not isinstance(index, int):
        raise TypeError(f"index must be an int, got {type(index).__name__}")
    if not isinstance(question_id, str):
        raise TypeError(f"question_id must be a string, got {type(question_id).__name__}")
    if isinstance(salt, bool) or not isinstance(salt, int):
        raise TypeError(f"salt must be an int, got {type(salt).__name__}")

    digest = _key_hash(label, index, question_id, salt)
    slug = slugify_label(label)
    if not slug:
        return OptionKey(f"{OPTION_KEY_PREFIX}_{digest}")
    return OptionKey(f"{OPTION_KEY_PREFIX}_{slug}_{digest}")


def is_safe_key(value: str) -> bool:
    return bool(SAFE_KEY_PATTERN.fullmatch(value)) and len(value) <= OPTION_KEY_MAX_LENGTH
