"""
Structural validation of untrusted document input.

Runs before any lookup and knows nothing about the caller or the stored
document. Each check returns a `ValidationResult` carrying the failure
category, so the gateway can turn it into the right client-facing error.

Depth convention: a scalar has depth 0; a dict or list has depth
1 + the deepest of its values. An empty `{}` is therefore depth 1, and so is
`{"a": 1}`. Ten `{"nested": ...}` wrappers around a scalar are depth 10.
"""
import json
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from app.core import config
from app.core.errors import ValidationFailed, ValidationFailure
from app.features.documents.models import A3_SECTIONS, DocumentStatus


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation pass. `failure` is None when `ok`."""
    ok: bool
    failure: Optional[ValidationFailure] = None
    field: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def passed(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, failure: ValidationFailure, field: Optional[str], message: str) -> "ValidationResult":
        return cls(ok=False, failure=failure, field=field, message=message)

    def raise_for_failure(self) -> None:
        if not self.ok:
            raise ValidationFailed(self.failure, self.field, self.message)


PASSED = ValidationResult.passed()


def json_depth(value: Any, limit: Optional[int] = None) -> int:
    """
    Nesting depth of a JSON-like value.

    Iterative, so hostile input cannot exhaust the interpreter stack. When
    `limit` is given, stops early and returns `limit + 1` once exceeded.
    """
    deepest = 0
    stack: list[tuple[Any, int]] = [(value, 0)]
    while stack:
        current, depth = stack.pop()
        if isinstance(current, Mapping):
            children: Iterable[Any] = current.values()
        elif isinstance(current, (list, tuple)):
            children = current
        else:
            continue
        depth += 1
        if depth > deepest:
            deepest = depth
            if limit is not None and deepest > limit:
                return deepest
        stack.extend((child, depth) for child in children)
    return deepest


def serialized_size(value: Any) -> int:
    """Bytes of the compact UTF-8 JSON serialization of `value`."""
    return len(json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))


def _is_text(value: Any) -> bool:
    # JSON allows lone surrogates ("\ud800"); they cannot be stored as UTF-8
    if not isinstance(value, str):
        return False
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class InputValidator:
    """Validates payloads against structural and primitive constraints."""

    def __init__(
        self,
        max_depth: int = config.MAX_JSON_DEPTH,
        max_content_bytes: int = config.MAX_CONTENT_BYTES,
        title_max_length: int = config.TITLE_MAX_LENGTH,
        description_max_length: int = config.DESCRIPTION_MAX_LENGTH,
    ):
        self.max_depth = max_depth
        self.max_content_bytes = max_content_bytes
        self.title_max_length = title_max_length
        self.description_max_length = description_max_length

    # ------------------------------------------------------------------
    # Primitive checks
    # ------------------------------------------------------------------

    def check_depth(self, value: Any, field: str = "content") -> ValidationResult:
        if json_depth(value, limit=self.max_depth) > self.max_depth:
            return ValidationResult.failed(
                ValidationFailure.TOO_DEEP, field,
                f"'{field}' is nested deeper than {self.max_depth} levels",
            )
        return PASSED

    def check_size(self, value: Any, field: str = "content") -> ValidationResult:
        try:
            size = serialized_size(value)
        except (TypeError, ValueError):
            return ValidationResult.failed(
                ValidationFailure.INVALID_VALUE, field, f"'{field}' is not JSON serializable",
            )
        if size > self.max_content_bytes:
            return ValidationResult.failed(
                ValidationFailure.TOO_LARGE, field,
                f"'{field}' exceeds {self.max_content_bytes} bytes",
            )
        return PASSED

    def check_content(self, value: Any, field: str = "content") -> ValidationResult:
        # Depth first: it is bounded work, and serializing a hostile nesting
        # could itself fail.
        result = self.check_depth(value, field)
        if not result.ok:
            return result
        return self.check_size(value, field)

    def check_title(self, payload: Mapping[str, Any], required: bool) -> ValidationResult:
        if "title" not in payload or (required and payload["title"] is None):
            if required:
                return ValidationResult.failed(ValidationFailure.MISSING_FIELD, "title", "'title' is required")
            return PASSED
        title = payload["title"]
        if not _is_text(title):
            return ValidationResult.failed(ValidationFailure.INVALID_VALUE, "title", "'title' must be a string")
        title = title.strip()
        if not title:
            return ValidationResult.failed(ValidationFailure.MISSING_FIELD, "title", "'title' must not be empty")
        if len(title) > self.title_max_length:
            return ValidationResult.failed(
                ValidationFailure.INVALID_VALUE, "title",
                f"'title' must be at most {self.title_max_length} characters",
            )
        return PASSED

    def check_description(self, payload: Mapping[str, Any]) -> ValidationResult:
        description = payload.get("description")
        if description is None:
            return PASSED
        if not _is_text(description):
            return ValidationResult.failed(
                ValidationFailure.INVALID_VALUE, "description", "'description' must be a string",
            )
        if len(description.strip()) > self.description_max_length:
            return ValidationResult.failed(
                ValidationFailure.INVALID_VALUE, "description",
                f"'description' must be at most {self.description_max_length} characters",
            )
        return PASSED

    def check_required_string(self, payload: Mapping[str, Any], field: str) -> ValidationResult:
        value = payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return ValidationResult.failed(ValidationFailure.MISSING_FIELD, field, f"'{field}' is required")
        if not _is_text(value):
            return ValidationResult.failed(ValidationFailure.INVALID_VALUE, field, f"'{field}' must be a string")
        return PASSED

    def check_status(self, payload: Mapping[str, Any]) -> ValidationResult:
        if "status" not in payload:
            return PASSED
        status = payload["status"]
        if not isinstance(status, str) or status not in {s.value for s in DocumentStatus}:
            allowed = ", ".join(s.value for s in DocumentStatus)
            return ValidationResult.failed(
                ValidationFailure.INVALID_VALUE, "status", f"'status' must be one of: {allowed}",
            )
        return PASSED

    # ------------------------------------------------------------------
    # Operation payloads
    # ------------------------------------------------------------------

    def validate(self, payload: Any, checks) -> ValidationResult:
        """Run `checks` (callables taking the payload) in order; first failure wins."""
        if not isinstance(payload, Mapping):
            return ValidationResult.failed(ValidationFailure.INVALID_VALUE, None, "Payload must be an object")
        for check in checks:
            result = check(payload)
            if not result.ok:
                return result
        return PASSED

    def validate_create(self, payload: Any) -> ValidationResult:
        return self.validate(payload, [
            lambda p: self.check_title(p, required=True),
            self.check_description,
            lambda p: self.check_required_string(p, "department_id"),
        ])

    def validate_update(self, payload: Any) -> ValidationResult:
        def has_changes(p: Mapping[str, Any]) -> ValidationResult:
            if not any(key in p for key in ("title", "description", "status")):
                return ValidationResult.failed(
                    ValidationFailure.MISSING_FIELD, None, "At least one field must be provided",
                )
            return PASSED

        return self.validate(payload, [
            has_changes,
            lambda p: self.check_title(p, required=False),
            self.check_description,
            self.check_status,
        ])

    def validate_section(self, section_number: Any, payload: Any) -> ValidationResult:
        def number_in_range(_p: Mapping[str, Any]) -> ValidationResult:
            if isinstance(section_number, bool) or not isinstance(section_number, int) \
                    or section_number not in A3_SECTIONS:
                return ValidationResult.failed(
                    ValidationFailure.INVALID_VALUE, "section_number",
                    f"'section_number' must be between 1 and {len(A3_SECTIONS)}",
                )
            return PASSED

        def has_content(p: Mapping[str, Any]) -> ValidationResult:
            if "content" not in p:
                return ValidationResult.failed(ValidationFailure.MISSING_FIELD, "content", "'content' is required")
            return self.check_content(p["content"])

        def completed_is_bool(p: Mapping[str, Any]) -> ValidationResult:
            completed = p.get("completed")
            if completed is not None and not isinstance(completed, bool):
                return ValidationResult.failed(
                    ValidationFailure.INVALID_VALUE, "completed", "'completed' must be a boolean",
                )
            return PASSED

        return self.validate(payload, [number_in_range, has_content, completed_is_bool])
