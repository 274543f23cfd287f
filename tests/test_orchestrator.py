from __future__ import annotations

import asyncio
from typing import Any, List

import pytest

from conftest import FINLAND_BUNDLE, MALDIVES_COMPONENT, make_candidate, make_resort
from travel_extractor.errors import (
    EmptyBatch,
    ExtractionError,
    OrchestrationError,
    RunAlreadyInProgress,
    ValidationError,
    ValidationErrorKind,
)
from travel_extractor.extractor import ExtractionOrchestrator, ReplayExtractor
from travel_extractor.lifecycle import Batch, BatchState, CancelPolicy, DocumentState
from travel_extractor.schema import describe


class _RecordingExtractor:
    def __init__(self, *candidates: Any) -> None:
        self._candidates = list(candidates)
        self.calls: List[tuple] = []

    async def extract(self, documents, schema):
        self.calls.append((list(documents), schema))
        return self._candidates.pop(0)


class _BlockingExtractor:
    def __init__(self, candidate: Any) -> None:
        self.candidate = candidate
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def extract(self, documents, schema):
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return self.candidate


class _FailingExtractor:
    async def extract(self, documents, schema):
        raise RuntimeError("backend unavailable")


class _SlowExtractor:
    async def extract(self, documents, schema):
        await asyncio.sleep(5)


def _batch(*names: str) -> Batch:
    batch = Batch()
    for name in names:
        batch.add_document(f"brief {name}".encode(), name)
    return batch


def _states(batch: Batch) -> set:
    return {document.state for document in batch.documents}


@pytest.mark.asyncio
async def test_bundle_document_scenario(finland_candidate) -> None:
    batch = _batch("finland.pdf")
    outcome = await ExtractionOrchestrator(ReplayExtractor(finland_candidate)).run(batch)

    assert outcome.ok
    assert outcome.result.to_dict() == {"locations": [{
        "name": "Finland",
        "resorts": [{
            "resortName": "Resort X",
            "currency": "EUR",
            "locationType": "Bundle",
            "rooms": [{"type": "Aurora package", "price": 500.0}],
            "activities": [
                {"name": "breakfast", "price": 0.0, "isIncluded": True},
                {"name": "spa", "price": 0.0, "isIncluded": True},
            ],
        }],
    }]}
    assert _states(batch) == {DocumentState.COMPLETED}
    assert batch.result is outcome.result


@pytest.mark.asyncio
async def test_component_document_scenario(maldives_candidate) -> None:
    batch = _batch("maldives.pdf")
    outcome = await ExtractionOrchestrator(ReplayExtractor(maldives_candidate)).run(batch)

    resort = outcome.result.locations[0].resorts[0]
    assert resort.location_type == "Component"
    assert resort.rooms[0].type == "room" and resort.rooms[0].price == 300
    assert (resort.activities[0].name, resort.activities[0].price, resort.activities[0].is_included) == (
        "airport transfer", 50, False,
    )


@pytest.mark.asyncio
async def test_missing_currency_fails_every_document(finland_candidate) -> None:
    del finland_candidate["locations"][0]["resorts"][0]["currency"]
    batch = _batch("finland.pdf", "lapland.pdf")

    outcome = await ExtractionOrchestrator(ReplayExtractor(finland_candidate)).run(batch)

    assert not outcome.ok
    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.error_kind is ValidationErrorKind.MISSING_FIELD
    assert _states(batch) == {DocumentState.ERROR}
    assert batch.state is BatchState.FAILED
    assert batch.result is None


@pytest.mark.asyncio
async def test_documents_are_submitted_together_and_merged() -> None:
    candidate = make_candidate(
        MALDIVES_COMPONENT,
        {"name": "Maldives", "resorts": [make_resort(
            "Resort Y", "USD", "Component",
            rooms=[("room", 300), ("water villa", 800)],
            activities=[("airport transfer", 50, False)],
        )]},
    )
    extractor = _RecordingExtractor(candidate)
    batch = _batch("maldives-2025.pdf", "maldives-villas.pdf")

    outcome = await ExtractionOrchestrator(extractor).run(batch)

    (documents, schema), = extractor.calls
    assert [d.filename for d in documents] == ["maldives-2025.pdf", "maldives-villas.pdf"]
    assert schema == describe()
    (location,) = outcome.result.locations
    (resort,) = location.resorts
    assert [room.type for room in resort.rooms] == ["room", "water villa"]
    assert len(resort.activities) == 1


@pytest.mark.asyncio
async def test_second_run_while_in_flight_is_rejected(finland_candidate) -> None:
    extractor = _BlockingExtractor(finland_candidate)
    orchestrator = ExtractionOrchestrator(extractor)
    batch = _batch("finland.pdf")

    first = asyncio.create_task(orchestrator.run(batch))
    await extractor.started.wait()

    second = await orchestrator.run(batch)
    assert isinstance(second.error, RunAlreadyInProgress)
    assert _states(batch) == {DocumentState.PROCESSING}

    extractor.release.set()
    outcome = await first
    assert outcome.ok
    assert extractor.calls == 1
    assert _states(batch) == {DocumentState.COMPLETED}


@pytest.mark.asyncio
async def test_empty_batch_is_rejected() -> None:
    extractor = _RecordingExtractor()
    outcome = await ExtractionOrchestrator(extractor).run(Batch())

    assert isinstance(outcome.error, EmptyBatch)
    assert extractor.calls == []


@pytest.mark.asyncio
async def test_empty_candidate_is_an_empty_result() -> None:
    batch = _batch("blank.pdf")
    outcome = await ExtractionOrchestrator(ReplayExtractor({"locations": []})).run(batch)

    assert outcome.error.error_kind is ValidationErrorKind.EMPTY_RESULT
    assert _states(batch) == {DocumentState.ERROR}


@pytest.mark.asyncio
async def test_collaborator_failure_is_wrapped() -> None:
    batch = _batch("a.pdf", "b.pdf")
    outcome = await ExtractionOrchestrator(_FailingExtractor()).run(batch)

    assert isinstance(outcome.error, ExtractionError)
    assert isinstance(outcome.error.cause, RuntimeError)
    assert "backend unavailable" in str(outcome.error)
    assert _states(batch) == {DocumentState.ERROR}


@pytest.mark.asyncio
async def test_collaborator_timeout_is_an_extraction_error() -> None:
    batch = _batch("a.pdf")
    outcome = await ExtractionOrchestrator(_SlowExtractor(), timeout_s=0.01).run(batch)

    assert isinstance(outcome.error, ExtractionError)
    assert "timed out" in str(outcome.error)
    assert batch.state is BatchState.FAILED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "policy, expected",
    [(CancelPolicy.RESET, DocumentState.PENDING), (CancelPolicy.FAIL, DocumentState.ERROR)],
)
async def test_cancelled_run_applies_policy(finland_candidate, policy, expected) -> None:
    extractor = _BlockingExtractor(finland_candidate)
    batch = _batch("a.pdf", "b.pdf")

    task = asyncio.create_task(ExtractionOrchestrator(extractor).run(batch, cancel_policy=policy))
    await extractor.started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert _states(batch) == {expected}


@pytest.mark.asyncio
async def test_new_run_replaces_result_wholesale(finland_candidate, maldives_candidate) -> None:
    extractor = _RecordingExtractor(finland_candidate, maldives_candidate)
    orchestrator = ExtractionOrchestrator(extractor)
    batch = _batch("brief.pdf")

    first = await orchestrator.run(batch)
    second = await orchestrator.run(batch)

    assert [loc.name for loc in first.result.locations] == ["Finland"]
    assert [loc.name for loc in second.result.locations] == ["Maldives"]
    assert batch.result is second.result
    assert len(extractor.calls) == 2


@pytest.mark.asyncio
async def test_retry_after_failure_recovers(finland_candidate) -> None:
    extractor = _RecordingExtractor({"locations": []}, finland_candidate)
    orchestrator = ExtractionOrchestrator(extractor)
    batch = _batch("brief.pdf")

    failed = await orchestrator.run(batch)
    batch.reset()
    recovered = await orchestrator.run(batch)

    assert not failed.ok
    assert recovered.ok
    assert batch.state is BatchState.DONE
    assert batch.last_error is None


@pytest.mark.asyncio
async def test_nonempty_candidate_never_yields_empty_result() -> None:
    candidate = make_candidate(FINLAND_BUNDLE, MALDIVES_COMPONENT)
    outcome = await ExtractionOrchestrator(ReplayExtractor(candidate)).run(_batch("a.pdf"))
    assert len(outcome.result.locations) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("candidate", [None, "", {}, "{}"])
async def test_blank_collaborator_reply_is_an_empty_result(candidate) -> None:
    batch = _batch("blank.pdf")
    outcome = await ExtractionOrchestrator(ReplayExtractor(candidate)).run(batch)

    assert outcome.error.error_kind is ValidationErrorKind.EMPTY_RESULT
    assert batch.state is BatchState.FAILED


class _CrashingValidator:
    def validate(self, candidate):
        raise KeyError("locations")


@pytest.mark.asyncio
async def test_unexpected_failure_is_returned_as_typed_error(finland_candidate) -> None:
    batch = _batch("a.pdf")
    orchestrator = ExtractionOrchestrator(ReplayExtractor(finland_candidate), validator=_CrashingValidator())

    outcome = await orchestrator.run(batch)

    assert type(outcome.error) is OrchestrationError
    assert isinstance(outcome.error.cause, KeyError)
    assert batch.state is BatchState.FAILED
    assert batch.last_error is outcome.error


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_the_run(finland_candidate) -> None:
    batch = _batch("a.pdf")
    seen = []

    def _broken_view(b: Batch) -> None:
        seen.append(b.state)
        raise RuntimeError("view refresh failed")

    batch.subscribe(_broken_view)
    orchestrator = ExtractionOrchestrator(ReplayExtractor(finland_candidate))

    first = await orchestrator.run(batch)
    second = await orchestrator.run(batch)

    assert first.ok and second.ok
    assert seen == [BatchState.RUNNING, BatchState.DONE, BatchState.RUNNING, BatchState.DONE]
