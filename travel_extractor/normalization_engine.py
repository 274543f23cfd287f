"""Normalization engine applying the Bundle/Component pricing policies"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from .errors import NormalizationConflict
from .preprocessor import Preprocessor
from .schema import BUNDLE, COMPONENT, Activity, ExtractionResult, Location, Resort, Room

logger = logging.getLogger(__name__)


@dataclass
class _ResortGroup:
    """Line items collected for one resort name and currency"""

    name: str
    currency: str
    location_type: str
    rooms: List[Room] = field(default_factory=list)
    activities: List[Activity] = field(default_factory=list)
    _seen_rooms: Set[Tuple] = field(default_factory=set)
    _seen_activities: Set[Tuple] = field(default_factory=set)

    def add(self, resort: Resort) -> None:
        for room in resort.rooms:
            key = (room.type, room.price)
            if key not in self._seen_rooms:
                self._seen_rooms.add(key)
                self.rooms.append(room)
        for activity in resort.activities:
            key = (activity.name, activity.price, activity.is_included)
            if key not in self._seen_activities:
                self._seen_activities.add(key)
                self.activities.append(activity)


@dataclass
class _LocationGroup:
    name: str
    resorts: Dict[Tuple[str, str], _ResortGroup] = field(default_factory=dict)


class NormalizationEngine:
    """Reconciles validated extraction data into the published database"""

    def __init__(self):
        self.preprocessor = Preprocessor()

    def normalize(self, result: ExtractionResult) -> ExtractionResult:
        """
        Merge, split and reclassify resorts

        Args:
            result: Validated extraction result (possibly spanning many documents)

        Returns:
            New ExtractionResult where every location and resort name is unique,
            every resort carries a single currency and its locationType agrees
            with the pricing pattern of its activities

        Raises:
            NormalizationConflict: when a currency split cannot be given a
                unique resort name
        """
        locations: Dict[str, _LocationGroup] = {}

        for location in result.locations:
            location_key = self.preprocessor.name_key(location.name)
            group = locations.get(location_key)
            if group is None:
                group = _LocationGroup(name=self.preprocessor.clean_name(location.name))
                locations[location_key] = group

            for resort in location.resorts:
                currency = self.canonical_currency(resort.currency)
                resort_key = (self.preprocessor.name_key(resort.resort_name), currency)
                resort_group = group.resorts.get(resort_key)
                if resort_group is None:
                    resort_group = _ResortGroup(
                        name=self.preprocessor.clean_name(resort.resort_name),
                        currency=currency,
                        location_type=resort.location_type,
                    )
                    group.resorts[resort_key] = resort_group
                resort_group.add(resort)

        return ExtractionResult(locations=tuple(
            self._build_location(group) for group in locations.values()
        ))

    def _build_location(self, group: _LocationGroup) -> Location:
        currencies_per_name = Counter(name_key for name_key, _ in group.resorts)
        resorts = []
        taken: Dict[str, str] = {}

        for (name_key, currency), resort_group in group.resorts.items():
            name = resort_group.name
            if currencies_per_name[name_key] > 1:
                name = f"{resort_group.name} ({currency})"
                logger.info(
                    "Split resort '%s' in %s at currency boundary: %s",
                    resort_group.name, group.name, name,
                )

            final_key = self.preprocessor.name_key(name)
            if final_key in taken:
                raise NormalizationConflict(
                    f"Resort name '{name}' in location '{group.name}' is ambiguous: "
                    f"it is used for both {taken[final_key]} and {currency} pricing"
                )
            taken[final_key] = currency

            # Models only accept wire names, so build from the published shape
            resorts.append(Resort.model_validate({
                "resortName": name,
                "currency": currency,
                "locationType": self.classify(name, resort_group.location_type, resort_group.activities),
                "rooms": tuple(resort_group.rooms),
                "activities": tuple(resort_group.activities),
            }))

        return Location(name=group.name, resorts=tuple(resorts))

    def classify(self, resort_name: str, declared: str, activities: List[Activity]) -> str:
        """Return the locationType consistent with the observed activity pricing"""
        if declared == BUNDLE and any(activity.price > 0 for activity in activities):
            logger.info(
                "Resort '%s' declared Bundle but prices activities separately; reclassified as Component",
                resort_name,
            )
            return COMPONENT

        if declared == COMPONENT and activities and all(
            activity.is_included and activity.price == 0 for activity in activities
        ):
            logger.info(
                "Resort '%s' declared Component but every activity is included at no cost; reclassified as Bundle",
                resort_name,
            )
            return BUNDLE

        return declared

    @staticmethod
    def canonical_currency(token: str) -> str:
        """Trim a currency token and upper-case alphabetic codes (never converts)"""
        cleaned = ''.join(token.split())
        return cleaned.upper() if cleaned.isalpha() else cleaned
