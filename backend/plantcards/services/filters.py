"""Plant filter state, its query-string form, and the predicates that apply it."""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set
from urllib.parse import parse_qs, urlencode

from pydantic import BaseModel, ConfigDict, field_validator

NEED_PRACTICE_RATIO = 0.8
DIGITS_RE = re.compile(r"[0-9]+")

# filter field -> query parameter
QUERY_KEYS = {
    "favorites_only": "favorites",
    "testable_only": "testable",
    "need_practice": "needPractice",
    "sightings_filter": "sightings",
    "my_sightings_filter": "mySightings",
    "selected_collection": "collection",
}
_BOOL_FIELDS = {"favorites_only", "testable_only", "need_practice"}
PERSONAL_FIELDS = ("favorites_only", "testable_only", "need_practice", "my_sightings_filter")


def _check_count(value: Optional[str], allow_all: bool) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    if allow_all and value == "all":
        return value
    if not DIGITS_RE.fullmatch(value):
        raise ValueError("sightings filter must be a non-negative whole number")
    return value


class PlantFilters(BaseModel):
    model_config = ConfigDict(frozen=True)

    favorites_only: bool = False
    testable_only: bool = False
    need_practice: bool = False
    sightings_filter: str = "all"
    my_sightings_filter: Optional[str] = None
    selected_collection: Optional[str] = None

    @field_validator("sightings_filter")
    @classmethod
    def validate_sightings(cls, value: str) -> str:
        return _check_count(value, allow_all=True)

    @field_validator("my_sightings_filter")
    @classmethod
    def validate_my_sightings(cls, value: Optional[str]) -> Optional[str]:
        return _check_count(value, allow_all=False)

    @field_validator("selected_collection")
    @classmethod
    def validate_collection(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not DIGITS_RE.fullmatch(str(value)):
            raise ValueError("collection must be a collection id")
        return str(value)

    @property
    def is_default(self) -> bool:
        return self == DEFAULT_FILTERS

    @property
    def needs_user(self) -> bool:
        return any(getattr(self, name) not in (False, None) for name in PERSONAL_FIELDS)


DEFAULT_FILTERS = PlantFilters()


@dataclass
class FilterContext:
    """Per-viewer lookups the predicates read from; ``None`` means unknown."""

    favorites: Optional[Set[int]] = None
    answered: Optional[Dict[int, Dict[str, int]]] = None
    user_sightings: Optional[Dict[int, int]] = None
    global_sightings: Optional[Dict[int, int]] = None
    testable: Set[int] = field(default_factory=set)
    practice_ids: Optional[Set[int]] = None


def needs_practice(stats: Optional[Mapping[str, int]]) -> bool:
    stats = stats or {"correct": 0, "total": 0}
    return stats["total"] == 0 or stats["correct"] / stats["total"] < NEED_PRACTICE_RATIO


def _collection_ids(plant: Any) -> Iterable[int]:
    if isinstance(plant, dict):
        return plant.get("collection_ids", [])
    return plant.collection_ids


def _plant_id(plant: Any) -> int:
    return plant["id"] if isinstance(plant, dict) else plant.id


def apply_filters(plants: List[Any], filters: PlantFilters, context: Optional[FilterContext] = None) -> List[Any]:
    """Return the plants that pass every active filter, in their original order."""
    context = context or FilterContext()
    result = list(plants)

    if filters.selected_collection:
        collection_id = int(filters.selected_collection)
        result = [p for p in result if collection_id in _collection_ids(p)]

    if filters.favorites_only and context.favorites is not None:
        result = [p for p in result if _plant_id(p) in context.favorites]

    if filters.testable_only:
        result = [p for p in result if _plant_id(p) in context.testable]

    if filters.need_practice:
        if context.practice_ids is not None:
            result = [p for p in result if _plant_id(p) in context.practice_ids]
        elif context.answered is not None:
            result = [p for p in result if needs_practice(context.answered.get(_plant_id(p)))]

    if filters.sightings_filter != "all":
        minimum = int(filters.sightings_filter)
        counts = context.global_sightings or {}
        result = [p for p in result if counts.get(_plant_id(p), 0) >= minimum]

    if filters.my_sightings_filter:
        minimum = int(filters.my_sightings_filter)
        counts = context.user_sightings or {}
        result = [p for p in result if counts.get(_plant_id(p), 0) >= minimum]

    return result


def parse_filters_from_query(search: Optional[str]) -> PlantFilters:
    """Build filters from a query string such as ``?favorites=true&sightings=3``.

    Raises ``ValueError`` when a sightings or collection value is malformed.
    """
    if not search or search == "?":
        return DEFAULT_FILTERS

    params = parse_qs(search[1:] if search.startswith("?") else search, keep_blank_values=True)
    values: Dict[str, Any] = {}
    for name, key in QUERY_KEYS.items():
        if key not in params:
            continue
        raw = params[key][-1]
        values[name] = raw == "true" if name in _BOOL_FIELDS else raw
    return PlantFilters(**values) if values else DEFAULT_FILTERS


def serialize_filters_to_query(filters: PlantFilters) -> str:
    """Only non-default values are written; all-default filters give ``''``."""
    params = []
    for name, key in QUERY_KEYS.items():
        value = getattr(filters, name)
        if value == getattr(DEFAULT_FILTERS, name):
            continue
        params.append((key, str(value).lower() if name in _BOOL_FIELDS else value))
    query = urlencode(params)
    return f"?{query}" if query else ""


def merge_filters(current: PlantFilters, updates: Mapping[str, Any]) -> PlantFilters:
    merged = current.model_copy(update=dict(updates))
    merged = PlantFilters(**merged.model_dump())
    return DEFAULT_FILTERS if merged.is_default else merged
