"""Validation of candidate extraction JSON against the schema contract"""
import json
import logging
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError, ValidationErrorKind
from .schema import ExtractionResult

logger = logging.getLogger(__name__)

# pydantic error types that are not plain type mismatches
_ERROR_KINDS = {
    'missing': ValidationErrorKind.MISSING_FIELD,
    'string_too_short': ValidationErrorKind.MISSING_FIELD,
    'literal_error': ValidationErrorKind.INVALID_ENUM,
    'enum': ValidationErrorKind.INVALID_ENUM,
    'bool_type': ValidationErrorKind.INVALID_ENUM,
    'bool_parsing': ValidationErrorKind.INVALID_ENUM,
}

# Checks are reported in this order: shape, numbers, enums
_KIND_PRIORITY = (
    ValidationErrorKind.MISSING_FIELD,
    ValidationErrorKind.TYPE_MISMATCH,
    ValidationErrorKind.INVALID_ENUM,
)


class CandidateValidator:
    """Checks raw candidate JSON and turns it into an ``ExtractionResult``"""

    def __init__(self, max_reported_errors: int = 5):
        self.max_reported_errors = max_reported_errors

    def validate(self, candidate: Any) -> ExtractionResult:
        """
        Validate a candidate produced by the extraction backend

        Args:
            candidate: Parsed JSON (dict) or raw JSON text/bytes

        Returns:
            The validated, not yet normalized, ExtractionResult

        Raises:
            ValidationError: with kind MissingField, TypeMismatch,
                InvalidEnum or EmptyResult
        """
        if isinstance(candidate, (bytes, bytearray)):
            try:
                candidate = candidate.decode('utf-8')
            except UnicodeDecodeError as e:
                raise ValidationError(
                    ValidationErrorKind.TYPE_MISMATCH,
                    f"Candidate is not valid UTF-8: {e}",
                ) from e
        if isinstance(candidate, str):
            if not candidate.strip():
                raise self._empty("Candidate is blank")
            try:
                candidate = json.loads(candidate)
            except json.JSONDecodeError as e:
                raise ValidationError(
                    ValidationErrorKind.TYPE_MISMATCH,
                    f"Candidate is not valid JSON: {e}",
                ) from e

        # Nothing extracted at all, as opposed to a malformed extraction
        if candidate is None or candidate == {}:
            raise self._empty("Candidate is empty")

        try:
            result = ExtractionResult.model_validate(candidate)
        except PydanticValidationError as e:
            raise self._classify(e) from e

        if not any(location.resorts for location in result.locations):
            raise self._empty("Candidate contains no location with at least one resort")

        logger.debug(
            "Candidate validated: %d location(s), %d resort(s)",
            len(result.locations),
            sum(len(location.resorts) for location in result.locations),
        )
        return result

    def _classify(self, exc: PydanticValidationError) -> ValidationError:
        """Map pydantic errors onto the first failing check"""
        grouped: Dict[ValidationErrorKind, List[Dict[str, object]]] = {}
        for error in exc.errors():
            kind = _ERROR_KINDS.get(error['type'], ValidationErrorKind.TYPE_MISMATCH)
            grouped.setdefault(kind, []).append({
                'loc': self._format_loc(error['loc']),
                'type': error['type'],
                'message': error['msg'],
            })

        kind = next(k for k in _KIND_PRIORITY if k in grouped)
        errors = grouped[kind]
        shown = '; '.join(f"{e['loc']}: {e['message']}" for e in errors[:self.max_reported_errors])
        if len(errors) > self.max_reported_errors:
            shown += f" (+{len(errors) - self.max_reported_errors} more)"
        return ValidationError(kind, f"{kind.value}: {shown}", errors)

    @staticmethod
    def _empty(message: str) -> ValidationError:
        return ValidationError(ValidationErrorKind.EMPTY_RESULT, message)

    @staticmethod
    def _format_loc(loc) -> str:
        return '.'.join(str(part) for part in loc) or '<root>'
