"""Batch lifecycle tracking for uploaded documents

Every document moves through ``pending -> processing -> completed | error``.
Batch-wide transitions are atomic: either every document in the batch moves
to the new state or none does. The batch state itself is never stored, it is
derived from the document states.
"""
import logging
import mimetypes
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from .errors import EmptyBatch, LifecycleError, OrchestrationError, RunAlreadyInProgress
from .schema import ExtractionResult

logger = logging.getLogger(__name__)


class DocumentState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class BatchState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class CancelPolicy(str, Enum):
    """What happens to the documents of a cancelled run"""

    RESET = "reset"
    FAIL = "fail"


_TRANSITIONS = {
    DocumentState.PENDING: {DocumentState.PROCESSING},
    DocumentState.PROCESSING: {DocumentState.COMPLETED, DocumentState.ERROR, DocumentState.PENDING},
    DocumentState.COMPLETED: {DocumentState.PENDING},
    DocumentState.ERROR: {DocumentState.PENDING},
}


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Document:
    """One uploaded source file"""

    content: bytes
    filename: str
    mime_type: str = "application/pdf"
    id: str = field(default_factory=_new_id)
    _state: DocumentState = field(default=DocumentState.PENDING, init=False, repr=False)

    @property
    def state(self) -> DocumentState:
        """Current lifecycle state; only the owning Batch moves it"""
        return self._state

    @property
    def size(self) -> int:
        return len(self.content)

    def can_transition(self, target: DocumentState) -> bool:
        return target in _TRANSITIONS[self.state]

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "filename": self.filename,
            "mime_type": self.mime_type,
            "size": self.size,
            "state": self.state.value,
        }


BatchListener = Callable[["Batch"], None]


class Batch:
    """An independently constructible set of documents and their last result"""

    def __init__(self, batch_id: Optional[str] = None):
        self.id = batch_id or _new_id()
        self.result: Optional[ExtractionResult] = None
        self.last_error: Optional[OrchestrationError] = None
        self._documents: List[Document] = []
        self._listeners: List[BatchListener] = []

    @property
    def documents(self) -> tuple:
        return tuple(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    @property
    def state(self) -> BatchState:
        states = {document.state for document in self._documents}
        if DocumentState.PROCESSING in states:
            return BatchState.RUNNING
        if DocumentState.ERROR in states:
            return BatchState.FAILED
        if states == {DocumentState.COMPLETED}:
            return BatchState.DONE
        return BatchState.IDLE

    @property
    def is_running(self) -> bool:
        return self.state is BatchState.RUNNING

    def subscribe(self, listener: BatchListener) -> Callable[[], None]:
        """Register a callback invoked after every state change; returns an unsubscribe function"""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def add_document(self, content: bytes, filename: str, mime_type: Optional[str] = None) -> Document:
        if self.is_running:
            raise LifecycleError("Cannot add documents while a run is in progress")
        if mime_type is None:
            mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        document = Document(content=content, filename=filename, mime_type=mime_type)
        self._documents.append(document)
        logger.debug("Batch %s: added %s (%s)", self.id, filename, document.id)
        self._notify()
        return document

    def get_document(self, document_id: str) -> Document:
        for document in self._documents:
            if document.id == document_id:
                return document
        raise KeyError(document_id)

    def remove_document(self, document_id: str) -> Document:
        """Remove a document; only permitted while it is pending"""
        document = self.get_document(document_id)
        if document.state is not DocumentState.PENDING:
            raise LifecycleError(
                f"Document {document.filename} is {document.state.value}; only pending documents can be removed"
            )
        self._documents.remove(document)
        self._notify()
        return document

    def clear(self) -> None:
        if self.is_running:
            raise LifecycleError("Cannot clear a batch while a run is in progress")
        self._documents = []
        self.result = None
        self.last_error = None
        self._notify()

    def begin_run(self) -> None:
        """Claim the batch for a run: every document moves to processing"""
        if not self._documents:
            raise EmptyBatch("Batch contains no documents")
        if self.is_running:
            raise RunAlreadyInProgress(f"Batch {self.id} already has a run in progress")
        self._transition(
            [d for d in self._documents if d.state is not DocumentState.PENDING],
            DocumentState.PENDING,
            notify=False,
        )
        self._transition(self._documents, DocumentState.PROCESSING)

    def complete_run(self, result: ExtractionResult) -> None:
        self._transition(self._documents, DocumentState.COMPLETED, result=result)

    def fail_run(self, error: OrchestrationError) -> None:
        self._transition(self._documents, DocumentState.ERROR, error=error)

    def cancel_run(self, policy: CancelPolicy = CancelPolicy.RESET) -> None:
        target = DocumentState.PENDING if policy is CancelPolicy.RESET else DocumentState.ERROR
        self._transition(self._documents, target)

    def reset(self) -> None:
        """Return completed or failed documents to pending so the batch can be resubmitted"""
        if self.is_running:
            raise LifecycleError("Cannot reset a batch while a run is in progress")
        self.last_error = None
        self._transition(
            [d for d in self._documents if d.state is not DocumentState.PENDING],
            DocumentState.PENDING,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "state": self.state.value,
            "documents": [document.to_dict() for document in self._documents],
            "has_result": self.result is not None,
            "error": self.last_error.to_dict() if self.last_error else None,
        }

    def _transition(self,
                    documents: Iterable[Document],
                    target: DocumentState,
                    result: Optional[ExtractionResult] = None,
                    error: Optional[OrchestrationError] = None,
                    notify: bool = True) -> None:
        documents = list(documents)
        illegal = [d for d in documents if not d.can_transition(target)]
        if illegal:
            raise LifecycleError(
                f"Cannot move {', '.join(d.filename for d in illegal)} "
                f"from {illegal[0].state.value} to {target.value}"
            )
        if result is not None:
            self.result = result
            self.last_error = None
        if error is not None:
            self.last_error = error
        for document in documents:
            document._state = target
        if documents:
            logger.debug("Batch %s: %d document(s) -> %s", self.id, len(documents), target.value)
        if notify:
            self._notify()

    def _notify(self) -> None:
        # Listeners observe committed state; a failing one must not strand the batch
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Batch %s: state listener %r failed", self.id, listener)
