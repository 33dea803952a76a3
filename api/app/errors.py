from __future__ import annotations

from typing import Any


def problem(code: str, path: str, message: str) -> dict[str, Any]:
    return {"code": code, "path": path, "message": message}


class OptionError(Exception):
    """Base error for the option identity layer.

    ``errors`` is always a list of ``{code, path, message}`` dicts so callers can
    report every problem at once instead of the first one.
    """

    code = "option_error"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])

    def to_detail(self) -> dict[str, Any]:
        return {"message": self.message, "errors": self.errors}


class ValidationError(OptionError):
    code = "validation_error"


class ConflictError(ValidationError):
    code = "conflict"

    def __init__(self, message: str, keys: list[str], errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message, errors)
        self.keys = list(keys)

    def to_detail(self) -> dict[str, Any]:
        return {**super().to_detail(), "keys": self.keys}


class NotFoundError(OptionError):
    code = "not_found"

    def __init__(self, resource: str, resource_id: str) -> None:
        message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message, [problem("not_found", resource.lower(), message)])
        self.resource = resource
        self.id = resource_id
