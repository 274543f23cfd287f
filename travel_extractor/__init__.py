"""Normalized travel pricing database extraction"""

from .errors import (
    EmptyBatch,
    ExtractionError,
    LifecycleError,
    NormalizationConflict,
    OrchestrationError,
    RunAlreadyInProgress,
    ValidationError,
    ValidationErrorKind,
)
from .extractor import ExtractionOrchestrator, ReplayExtractor, RunOutcome
from .lifecycle import Batch, BatchState, CancelPolicy, Document, DocumentState
from .schema import Activity, ExtractionResult, Location, Resort, Room, describe

__all__ = [
    "Activity",
    "Batch",
    "BatchState",
    "CancelPolicy",
    "Document",
    "DocumentState",
    "EmptyBatch",
    "ExtractionError",
    "ExtractionOrchestrator",
    "ExtractionResult",
    "LifecycleError",
    "Location",
    "NormalizationConflict",
    "OrchestrationError",
    "ReplayExtractor",
    "Resort",
    "Room",
    "RunAlreadyInProgress",
    "RunOutcome",
    "ValidationError",
    "ValidationErrorKind",
    "describe",
]
