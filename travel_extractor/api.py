"""FastAPI interface for batch travel pricing extraction"""
import logging
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response

from .config import LOG_DIR, LOG_LEVEL
from .errors import (
    EmptyBatch,
    ExtractionError,
    LifecycleError,
    NormalizationConflict,
    OrchestrationError,
    RunAlreadyInProgress,
    ValidationError,
)
from .export import export_filename, serialize_result
from .extractor import ExtractionOrchestrator
from .lifecycle import Batch
from .llm_client import LLMClient
from .logging_setup import configure_logging
from .schema import describe

logger = logging.getLogger(__name__)

app = FastAPI(title="Travel Extractor API", version="1.0.0")

ERROR_STATUS = {
    EmptyBatch: 400,
    RunAlreadyInProgress: 409,
    ValidationError: 422,
    NormalizationConflict: 422,
    ExtractionError: 502,
}

# Batches are owned by this API process, not by the extraction core
batches: Dict[str, Batch] = {}
orchestrator: Optional[ExtractionOrchestrator] = None


@app.on_event("startup")
async def startup_event():
    """Initialize the orchestrator on startup"""
    global orchestrator
    configure_logging(LOG_LEVEL, Path(LOG_DIR))
    try:
        orchestrator = ExtractionOrchestrator(LLMClient())
    except Exception as e:
        logger.warning("Failed to initialize extractor: %s", e)


def get_batch(batch_id: str) -> Batch:
    batch = batches.get(batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail=f"Batch not found: {batch_id}")
    return batch


def error_response(error: OrchestrationError, batch: Batch) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(error, error_type)),
        500,
    )
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error.to_dict(), "batch": batch.to_dict()},
    )


@app.post("/batches", status_code=201)
async def create_batch():
    """Create an empty batch"""
    batch = Batch()
    batches[batch.id] = batch
    return batch.to_dict()


@app.get("/batches/{batch_id}")
async def get_batch_status(batch_id: str):
    """Batch state and per-document lifecycle states"""
    return get_batch(batch_id).to_dict()


@app.post("/batches/{batch_id}/documents", status_code=201)
async def upload_documents(batch_id: str, files: List[UploadFile] = File(...)):
    """
    Add uploaded travel briefs to a batch.

    Accepts one or more files sent with the field name "files".
    """
    batch = get_batch(batch_id)
    added = []
    try:
        for upload in files:
            content = await upload.read()
            added.append(batch.add_document(content, upload.filename or "document", upload.content_type))
    except LifecycleError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return [document.to_dict() for document in added]


@app.delete("/batches/{batch_id}/documents/{document_id}")
async def remove_document(batch_id: str, document_id: str):
    """Remove a pending document from the batch"""
    batch = get_batch(batch_id)
    try:
        batch.remove_document(document_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")
    except LifecycleError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return batch.to_dict()


@app.post("/batches/{batch_id}/run")
async def run_batch(batch_id: str):
    """
    Run one extraction over every document of the batch.

    Returns the normalized database, or the typed error that aborted the run.
    """
    batch = get_batch(batch_id)
    if orchestrator is None:
        raise HTTPException(status_code=500, detail="Extractor not initialized")

    outcome = await orchestrator.run(batch)
    if not outcome.ok:
        return error_response(outcome.error, batch)
    return {"success": True, "result": outcome.result.to_dict(), "batch": batch.to_dict()}


@app.post("/batches/{batch_id}/reset")
async def reset_batch(batch_id: str):
    """Return completed or failed documents to pending for resubmission"""
    batch = get_batch(batch_id)
    try:
        batch.reset()
    except LifecycleError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return batch.to_dict()


@app.get("/batches/{batch_id}/result")
async def get_result(batch_id: str):
    batch = get_batch(batch_id)
    if batch.result is None:
        raise HTTPException(status_code=404, detail="No result published for this batch")
    return batch.result.to_dict()


@app.get("/batches/{batch_id}/download")
async def download_result(batch_id: str):
    """Download the published database as a timestamped JSON file"""
    batch = get_batch(batch_id)
    if batch.result is None:
        raise HTTPException(status_code=404, detail="No result published for this batch")
    return Response(
        content=serialize_result(batch.result),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@app.get("/schema")
async def get_schema():
    """Schema contract every extraction result must satisfy"""
    return describe()


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "extractor_initialized": orchestrator is not None,
        "batches": len(batches),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
