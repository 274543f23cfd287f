from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from travel_extractor.export import export_filename, format_currency, serialize_result
from travel_extractor.validator import CandidateValidator


def test_serialized_database_matches_published_shape(finland_candidate) -> None:
    result = CandidateValidator().validate(finland_candidate)

    payload = serialize_result(result)

    assert json.loads(payload.decode("utf-8")) == result.to_dict()
    assert payload.startswith(b"{\n  ")


def test_export_filename_embeds_millisecond_timestamp() -> None:
    moment = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert export_filename(moment) == "travel-database-1767225600000.json"
    assert export_filename().startswith("travel-database-")


@pytest.mark.parametrize(
    "amount, currency, expected",
    [
        (500, "EUR", "€500.00"),
        (1250, "usd", "$1,250.00"),
        (75.5, "MVR", "MVR 75.50"),
        (10, "€", "€ 10"),
        (12.5, "US$", "US$ 12.5"),
    ],
)
def test_format_currency(amount, currency, expected) -> None:
    assert format_currency(amount, currency) == expected
