from __future__ import annotations

import copy
import logging

import pytest


FINLAND_BUNDLE = {
    "name": "Finland",
    "resorts": [
        {
            "resortName": "Resort X",
            "currency": "EUR",
            "locationType": "Bundle",
            "rooms": [{"type": "Aurora package", "price": 500}],
            "activities": [
                {"name": "breakfast", "price": 0, "isIncluded": True},
                {"name": "spa", "price": 0, "isIncluded": True},
            ],
        }
    ],
}

MALDIVES_COMPONENT = {
    "name": "Maldives",
    "resorts": [
        {
            "resortName": "Resort Y",
            "currency": "USD",
            "locationType": "Component",
            "rooms": [{"type": "room", "price": 300}],
            "activities": [{"name": "airport transfer", "price": 50, "isIncluded": False}],
        }
    ],
}


def make_candidate(*locations: dict) -> dict:
    return {"locations": [copy.deepcopy(location) for location in locations]}


def make_resort(name: str, currency: str, location_type: str, rooms=(), activities=()) -> dict:
    return {
        "resortName": name,
        "currency": currency,
        "locationType": location_type,
        "rooms": [{"type": room_type, "price": price} for room_type, price in rooms],
        "activities": [
            {"name": activity, "price": price, "isIncluded": included}
            for activity, price, included in activities
        ],
    }


@pytest.fixture
def finland_candidate() -> dict:
    return make_candidate(FINLAND_BUNDLE)


@pytest.fixture
def maldives_candidate() -> dict:
    return make_candidate(MALDIVES_COMPONENT)


@pytest.fixture(autouse=True)
def _detach_package_log_handlers():
    yield
    logger = logging.getLogger("travel_extractor")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
