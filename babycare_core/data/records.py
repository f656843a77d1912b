# =============================================================================
# babycare_core/data/records.py
# Record Types for the Four Synchronized Collections
# =============================================================================
"""
Typed records for feedings, diaper changes, cry analyses and pumping sessions.

Records validate themselves on construction, so anything read from local
storage, the backend or an import file is checked once at that boundary and
never re-parsed ad hoc further up.

Wire keys (``time``, ``quantity``, ``poopType``, ``aiAnalysis``, ``result``,
``detectedSound``...) are the ones already used by stored data and by the
spreadsheet backend; they must not change between versions.
"""

from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from babycare_core.errors import DataValidationError

logger = logging.getLogger(__name__)

# Fixed cause labels produced by the cry classifier, in display order
CRY_LABELS = ("lapar", "mengantuk", "sendawa", "perutKembung", "tidakNyaman")


# =============================================================================
# ENUMS
# =============================================================================

class FeedingType(str, Enum):
    BREASTMILK = "breastmilk"
    FORMULA = "formula"


class DiaperType(str, Enum):
    WET = "wet"
    DIRTY = "dirty"
    BOTH = "both"


class PoopConsistency(str, Enum):
    NORMAL = "normal"
    LIQUID = "liquid"
    HARD = "hard"


class PumpingSide(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"


# Values written by earlier releases
_LEGACY_ALIASES = {
    FeedingType: {"breast": FeedingType.BREASTMILK},
    DiaperType: {"basah": DiaperType.WET, "kotor": DiaperType.DIRTY, "keduanya": DiaperType.BOTH},
    PoopConsistency: {
        "biasa": PoopConsistency.NORMAL,
        "cair": PoopConsistency.LIQUID,
        "keras": PoopConsistency.HARD,
    },
}


# =============================================================================
# FIELD HELPERS
# =============================================================================

def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    """Generate a record id that stays stable across syncs."""
    return uuid.uuid4().hex


def parse_timestamp(value: Any, field_name: str = "time") -> datetime:
    """
    Parse an ISO-8601 string (or datetime) into an aware datetime.

    Naive values are treated as UTC; a trailing ``Z`` is accepted.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise DataValidationError(
                "Invalid timestamp", field=field_name, expected="ISO-8601", actual=value
            )
    else:
        raise DataValidationError(
            "Missing timestamp", field=field_name, expected="ISO-8601", actual=repr(value)
        )

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime the way JavaScript's ``toISOString`` does."""
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _require_id(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise DataValidationError("Record id is required", field="id", actual=repr(value))
    return value


def _to_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise DataValidationError("Expected an integer", field=field_name, actual=repr(value))
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise DataValidationError("Expected an integer", field=field_name, actual=repr(value))


def _positive_int(value: Any, field_name: str) -> int:
    number = _to_int(value, field_name)
    if number <= 0:
        raise DataValidationError(
            "Expected a positive integer", field=field_name, expected="> 0", actual=str(number)
        )
    return number


def _enum(enum_cls: Type[Enum], value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    aliases = _LEGACY_ALIASES.get(enum_cls, {})
    if value in aliases:
        return aliases[value]
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise DataValidationError(
            f"Invalid value for {field_name}", field=field_name, expected=allowed, actual=repr(value)
        )


def _optional_text(value: Any, field_name: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise DataValidationError("Expected text", field=field_name, actual=repr(value))
    return value


def _put(payload: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        payload[key] = value


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class FeedingRecord:
    """A single bottle or breast feeding."""
    id: str
    timestamp: datetime
    type: FeedingType
    quantity_ml: int

    def __post_init__(self):
        self.id = _require_id(self.id)
        self.timestamp = parse_timestamp(self.timestamp)
        self.type = _enum(FeedingType, self.type, "type")
        self.quantity_ml = _positive_int(self.quantity_ml, "quantity")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "time": format_timestamp(self.timestamp),
            "type": self.type.value,
            "quantity": self.quantity_ml,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FeedingRecord:
        return cls(
            id=data.get("id"),
            timestamp=data.get("time"),
            type=data.get("type"),
            quantity_ml=data.get("quantity"),
        )


@dataclass
class PoopAssessment:
    """Structured judgment returned by the stool-photo analyzer."""
    color: str
    consistency: str
    is_normal: bool
    description: str
    warning: Optional[str] = None
    advice: str = ""

    def __post_init__(self):
        for name in ("color", "consistency", "description"):
            if not isinstance(getattr(self, name), str):
                raise DataValidationError("Expected text", field=f"aiAnalysis.{name}")
        if not isinstance(self.is_normal, bool):
            raise DataValidationError("Expected a boolean", field="aiAnalysis.isNormal")
        self.warning = _optional_text(self.warning, "aiAnalysis.warning")
        self.advice = self.advice or ""

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "color": self.color,
            "consistency": self.consistency,
            "isNormal": self.is_normal,
            "description": self.description,
            "advice": self.advice,
        }
        _put(payload, "warning", self.warning)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PoopAssessment:
        if not isinstance(data, dict):
            raise DataValidationError("Expected an object", field="aiAnalysis")
        return cls(
            color=data.get("color"),
            consistency=data.get("consistency"),
            is_normal=data.get("isNormal"),
            description=data.get("description"),
            warning=data.get("warning"),
            advice=data.get("advice") or "",
        )


@dataclass
class DiaperRecord:
    """
    A diaper change.

    ``poop_consistency``, ``photo`` and ``ai_assessment`` only exist for
    dirty (or wet-and-dirty) diapers.
    """
    id: str
    timestamp: datetime
    type: DiaperType
    poop_consistency: Optional[PoopConsistency] = None
    notes: Optional[str] = None
    photo: Optional[str] = None
    ai_assessment: Optional[PoopAssessment] = None

    def __post_init__(self):
        self.id = _require_id(self.id)
        self.timestamp = parse_timestamp(self.timestamp)
        self.type = _enum(DiaperType, self.type, "type")
        if self.poop_consistency is not None:
            self.poop_consistency = _enum(PoopConsistency, self.poop_consistency, "poopType")
        self.notes = _optional_text(self.notes, "notes")
        self.photo = _optional_text(self.photo, "image")
        if isinstance(self.ai_assessment, dict):
            self.ai_assessment = PoopAssessment.from_dict(self.ai_assessment)

        if self.type == DiaperType.WET and (
            self.poop_consistency is not None
            or self.photo is not None
            or self.ai_assessment is not None
        ):
            raise DataValidationError(
                "Wet diapers cannot carry stool details",
                field="type",
                expected="dirty or both",
                actual=self.type.value,
            )

    @property
    def has_stool(self) -> bool:
        return self.type in (DiaperType.DIRTY, DiaperType.BOTH)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "time": format_timestamp(self.timestamp),
            "type": self.type.value,
        }
        if self.poop_consistency is not None:
            payload["poopType"] = self.poop_consistency.value
        _put(payload, "notes", self.notes)
        _put(payload, "image", self.photo)
        if self.ai_assessment is not None:
            payload["aiAnalysis"] = self.ai_assessment.to_dict()
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DiaperRecord:
        return cls(
            id=data.get("id"),
            timestamp=data.get("time"),
            type=data.get("type"),
            poop_consistency=data.get("poopType") or None,
            notes=data.get("notes"),
            photo=data.get("image"),
            ai_assessment=data.get("aiAnalysis") or None,
        )


@dataclass
class CryAnalysisRecord:
    """
    Result of one cry recording analysis.

    ``distribution`` maps cause labels to integer percentages summing to 100;
    an empty mapping means the analysis was inconclusive.
    """
    id: str
    timestamp: datetime
    distribution: Dict[str, int] = field(default_factory=dict)
    detected_label: Optional[str] = None

    def __post_init__(self):
        self.id = _require_id(self.id)
        self.timestamp = parse_timestamp(self.timestamp)
        self.distribution = validate_distribution(self.distribution)
        self.detected_label = _optional_text(self.detected_label, "detectedSound")

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "time": format_timestamp(self.timestamp),
        }
        if self.distribution:
            payload["result"] = dict(self.distribution)
        _put(payload, "detectedSound", self.detected_label)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CryAnalysisRecord:
        distribution = data.get("result") or {}
        if isinstance(distribution, dict) and any(label not in CRY_LABELS for label in distribution):
            # Older classifier label set; kept as an inconclusive analysis
            logger.warning(f"Cry analysis {data.get('id')} has retired labels {sorted(distribution)}")
            distribution = {}
        return cls(
            id=data.get("id"),
            timestamp=data.get("time"),
            distribution=distribution,
            detected_label=data.get("detectedSound"),
        )


@dataclass
class PumpingRecord:
    """A breast pumping session."""
    id: str
    timestamp: datetime
    volume_ml: int
    side: PumpingSide = PumpingSide.BOTH
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None

    def __post_init__(self):
        self.id = _require_id(self.id)
        self.timestamp = parse_timestamp(self.timestamp)
        self.volume_ml = _positive_int(self.volume_ml, "volume")
        self.side = _enum(PumpingSide, self.side, "side")
        if self.duration_minutes is not None:
            self.duration_minutes = _positive_int(self.duration_minutes, "duration")
        self.notes = _optional_text(self.notes, "notes")

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "id": self.id,
            "time": format_timestamp(self.timestamp),
            "volume": self.volume_ml,
            "side": self.side.value,
        }
        _put(payload, "duration", self.duration_minutes)
        _put(payload, "notes", self.notes)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PumpingRecord:
        duration = data.get("duration")
        return cls(
            id=data.get("id"),
            timestamp=data.get("time"),
            volume_ml=data.get("volume"),
            # rows written before the side picker existed carry no side
            side=data.get("side") or PumpingSide.BOTH,
            duration_minutes=None if duration in (None, "") else duration,
            notes=data.get("notes"),
        )


Record = Union[FeedingRecord, DiaperRecord, CryAnalysisRecord, PumpingRecord]


def validate_distribution(distribution: Any) -> Dict[str, int]:
    """Check a stored cry distribution: known labels, ints >= 0, sum 100."""
    if distribution is None:
        return {}
    if not isinstance(distribution, dict):
        raise DataValidationError("Expected an object", field="result")

    cleaned: Dict[str, int] = {}
    for label, value in distribution.items():
        if label not in CRY_LABELS:
            raise DataValidationError(
                "Unknown cry label", field="result", expected=", ".join(CRY_LABELS), actual=label
            )
        number = _to_int(value, f"result.{label}")
        if number < 0:
            raise DataValidationError("Negative percentage", field=f"result.{label}", actual=str(number))
        cleaned[label] = number

    if cleaned and sum(cleaned.values()) != 100:
        raise DataValidationError(
            "Percentages must sum to 100",
            field="result",
            expected="100",
            actual=str(sum(cleaned.values())),
        )
    return cleaned


# =============================================================================
# COLLECTIONS
# =============================================================================

class Collection(str, Enum):
    """The four synchronized record collections, by wire name."""
    FEEDINGS = "feedings"
    DIAPERS = "diapers"
    CRY_ANALYSES = "cryAnalyses"
    PUMPING_SESSIONS = "pumpingSessions"

    @property
    def record_type(self) -> Type:
        return _RECORD_TYPES[self]

    @property
    def attribute(self) -> str:
        return _SNAPSHOT_ATTRIBUTES[self]


_RECORD_TYPES = {
    Collection.FEEDINGS: FeedingRecord,
    Collection.DIAPERS: DiaperRecord,
    Collection.CRY_ANALYSES: CryAnalysisRecord,
    Collection.PUMPING_SESSIONS: PumpingRecord,
}

_SNAPSHOT_ATTRIBUTES = {
    Collection.FEEDINGS: "feedings",
    Collection.DIAPERS: "diapers",
    Collection.CRY_ANALYSES: "cry_analyses",
    Collection.PUMPING_SESSIONS: "pumping_sessions",
}


def parse_records(
    collection: Collection,
    items: Any,
    source: str = "input",
) -> List[Record]:
    """
    Leniently parse a list of wire dicts into records.

    A value that is not a list yields ``[]``; invalid or duplicate records
    are dropped with a warning instead of failing the whole collection.
    """
    if items is None:
        return []
    if not isinstance(items, list):
        logger.warning(
            f"{source}: {collection.value} is not a list ({type(items).__name__}), using empty list"
        )
        return []

    record_type = collection.record_type
    records: List[Record] = []
    seen_ids = set()

    for index, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning(f"{source}: dropping non-object entry {index} in {collection.value}")
            continue
        try:
            record = record_type.from_dict(item)
        except DataValidationError as e:
            logger.warning(f"{source}: dropping invalid {collection.value} entry {index}: {e}")
            continue
        if record.id in seen_ids:
            logger.warning(f"{source}: dropping duplicate id {record.id} in {collection.value}")
            continue
        seen_ids.add(record.id)
        records.append(record)

    return records


def sort_most_recent_first(records: Iterable[Record]) -> List[Record]:
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


@dataclass
class CollectionSnapshot:
    """All four collections for one owner at one point in time."""
    feedings: List[FeedingRecord] = field(default_factory=list)
    diapers: List[DiaperRecord] = field(default_factory=list)
    cry_analyses: List[CryAnalysisRecord] = field(default_factory=list)
    pumping_sessions: List[PumpingRecord] = field(default_factory=list)

    def get(self, collection: Collection) -> List[Record]:
        return getattr(self, collection.attribute)

    def counts(self) -> Dict[str, int]:
        return {c.value: len(self.get(c)) for c in Collection}

    @property
    def is_empty(self) -> bool:
        return not any(self.get(c) for c in Collection)

    def sorted_desc(self) -> CollectionSnapshot:
        """Copy with every collection ordered most-recent-first."""
        return CollectionSnapshot(
            **{c.attribute: sort_most_recent_first(self.get(c)) for c in Collection}
        )

    def to_wire(self) -> Dict[str, List[Dict[str, Any]]]:
        return {c.value: [r.to_dict() for r in self.get(c)] for c in Collection}

    @classmethod
    def from_wire(cls, payload: Any, source: str = "remote") -> CollectionSnapshot:
        """
        Build a snapshot from a wire payload.

        Missing or malformed collections become empty lists.
        """
        if not isinstance(payload, dict):
            logger.warning(f"{source}: payload is not an object, using empty collections")
            payload = {}
        values = {
            c.attribute: parse_records(c, payload.get(c.value), source=source)
            for c in Collection
        }
        return cls(**values)
