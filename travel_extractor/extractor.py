"""Main extraction orchestrator"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

from .config import EXTRACTION_TIMEOUT_S
from .errors import EmptyBatch, ExtractionError, OrchestrationError, RunAlreadyInProgress
from .lifecycle import Batch, CancelPolicy, Document
from .normalization_engine import NormalizationEngine
from .schema import ExtractionResult, describe
from .validator import CandidateValidator

logger = logging.getLogger(__name__)


class Extractor(Protocol):
    """Extraction backend turning documents into candidate JSON"""

    async def extract(self, documents: Sequence[Document], schema: Dict[str, Any]) -> Any:
        """Return candidate JSON constrained by ``schema`` for all documents at once."""


class ReplayExtractor:
    """Extractor that replays a previously captured candidate"""

    def __init__(self, candidate: Any):
        self.candidate = candidate

    async def extract(self, documents: Sequence[Document], schema: Dict[str, Any]) -> Any:
        return self.candidate


@dataclass(frozen=True)
class RunOutcome:
    """Typed result of one run: exactly one of ``result`` or ``error`` is set"""

    result: Optional[ExtractionResult] = None
    error: Optional[OrchestrationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ExtractionOrchestrator:
    """Runs extract -> validate -> normalize for a batch and tracks its lifecycle"""

    def __init__(self,
                 extractor: Extractor,
                 validator: Optional[CandidateValidator] = None,
                 engine: Optional[NormalizationEngine] = None,
                 timeout_s: Optional[float] = EXTRACTION_TIMEOUT_S):
        self.extractor = extractor
        self.validator = validator or CandidateValidator()
        self.engine = engine or NormalizationEngine()
        self.timeout_s = timeout_s

    async def run(self, batch: Batch, cancel_policy: CancelPolicy = CancelPolicy.RESET) -> RunOutcome:
        """
        Run one extraction over every document of the batch

        Args:
            batch: Batch whose documents are submitted together
            cancel_policy: Where documents go if the run task is cancelled

        Returns:
            RunOutcome with the published ExtractionResult, or the error that
            aborted the run. All documents end up completed, or all end up in error.
        """
        try:
            batch.begin_run()
        except (EmptyBatch, RunAlreadyInProgress) as e:
            logger.warning("Run rejected for batch %s: %s", batch.id, e)
            return RunOutcome(error=e)

        logger.info("Batch %s: extraction started for %d document(s)", batch.id, len(batch))
        start_ts = time.perf_counter()
        try:
            result = await self._execute(batch.documents)
        except asyncio.CancelledError:
            logger.warning("Batch %s: run cancelled (%s)", batch.id, cancel_policy.value)
            batch.cancel_run(cancel_policy)
            raise
        except OrchestrationError as e:
            logger.error("Batch %s: run failed with %s: %s", batch.id, e.kind, e)
            batch.fail_run(e)
            return RunOutcome(error=e)
        except Exception as e:
            logger.exception("Batch %s: unexpected failure during run", batch.id)
            error = OrchestrationError(f"Unexpected failure: {e}", cause=e)
            batch.fail_run(error)
            return RunOutcome(error=error)

        batch.complete_run(result)
        logger.info(
            "Batch %s: published %d location(s) in %.2fs",
            batch.id, len(result.locations), time.perf_counter() - start_ts,
        )
        return RunOutcome(result=result)

    async def _execute(self, documents: Sequence[Document]) -> ExtractionResult:
        # Exactly one collaborator call per run; retries are the caller's decision
        try:
            candidate = await asyncio.wait_for(
                self.extractor.extract(documents, describe()),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionError(f"Extraction timed out after {self.timeout_s}s", cause=e) from e
        except Exception as e:
            raise ExtractionError(f"Extraction failed: {e}", cause=e) from e

        validated = self.validator.validate(candidate)
        return self.engine.normalize(validated)
