"""Error taxonomy for extraction runs"""
from enum import Enum
from typing import Dict, List, Optional


class OrchestrationError(Exception):
    """Base class for every error that aborts an extraction run"""

    kind = "OrchestrationError"

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    def to_dict(self) -> Dict[str, object]:
        return {"kind": self.kind, "message": str(self)}


class EmptyBatch(OrchestrationError):
    """Raised when a run is requested for a batch without documents"""

    kind = "EmptyBatch"


class RunAlreadyInProgress(OrchestrationError):
    """Raised when a second run is requested while one is in flight"""

    kind = "RunAlreadyInProgress"


class ExtractionError(OrchestrationError):
    """The extraction collaborator failed or timed out"""

    kind = "ExtractionError"


class ValidationErrorKind(str, Enum):
    MISSING_FIELD = "MissingField"
    TYPE_MISMATCH = "TypeMismatch"
    INVALID_ENUM = "InvalidEnum"
    EMPTY_RESULT = "EmptyResult"


class ValidationError(OrchestrationError):
    """Candidate JSON did not satisfy the schema contract"""

    kind = "ValidationError"

    def __init__(self,
                 error_kind: ValidationErrorKind,
                 message: str,
                 errors: Optional[List[Dict[str, object]]] = None):
        super().__init__(message)
        self.error_kind = error_kind
        self.errors = errors or []

    def to_dict(self) -> Dict[str, object]:
        payload = super().to_dict()
        payload["validation_kind"] = self.error_kind.value
        payload["errors"] = list(self.errors)
        return payload


class NormalizationConflict(OrchestrationError):
    """A currency or classification conflict the engine cannot resolve"""

    kind = "NormalizationConflict"


class LifecycleError(Exception):
    """Illegal document or batch state transition"""
