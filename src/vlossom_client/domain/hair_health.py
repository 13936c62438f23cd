"""Hair health profile, learning nodes and ritual calendar records."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..utils.timezone import parse_timestamp


class TextureClass(str, Enum):
    TYPE_1 = "TYPE_1"
    TYPE_2 = "TYPE_2"
    TYPE_3 = "TYPE_3"
    TYPE_4 = "TYPE_4"


class PatternFamily(str, Enum):
    STRAIGHT = "STRAIGHT"
    WAVY = "WAVY"
    CURLY = "CURLY"
    COILY = "COILY"


class ThreeLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class LoadFactor(str, Enum):
    LIGHT = "LIGHT"
    MODERATE = "MODERATE"
    HEAVY = "HEAVY"
    EXTREME = "EXTREME"


class RoutineType(str, Enum):
    MINIMALIST = "MINIMALIST"
    BASIC = "BASIC"
    MODERATE = "MODERATE"
    INTENSIVE = "INTENSIVE"
    PROFESSIONAL = "PROFESSIONAL"


class RitualQuality(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    ADEQUATE = "ADEQUATE"
    POOR = "POOR"


# Profile attributes sent on create/update, with the enum each must belong to
PROFILE_FIELDS = {
    "textureClass": TextureClass,
    "patternFamily": PatternFamily,
    "strandThickness": ThreeLevel,
    "densityLevel": ThreeLevel,
    "shrinkageTendency": ThreeLevel,
    "porosityLevel": ThreeLevel,
    "detangleTolerance": ThreeLevel,
    "manipulationTolerance": ThreeLevel,
    "tensionSensitivity": ThreeLevel,
    "scalpSensitivity": ThreeLevel,
    "washDayLoadFactor": LoadFactor,
    "estimatedWashDayMinutes": int,
    "routineType": RoutineType,
}


def validate_profile_input(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a create/update body and normalise enum members to their values.

    Raises:
        ValueError: Unknown field or a value outside its enum
    """
    clean: Dict[str, Any] = {}
    for key, value in payload.items():
        kind = PROFILE_FIELDS.get(key)
        if kind is None:
            raise ValueError(f"Unknown hair profile field: {key}")
        if value is None:
            clean[key] = None
        elif kind is int:
            clean[key] = int(value)
        else:
            clean[key] = kind(value).value
    return clean


@dataclass
class HairProfile:
    id: str
    user_id: str
    texture_class: Optional[str]
    pattern_family: Optional[str]
    routine_type: Optional[str]
    attributes: Dict[str, Any] = field(default_factory=dict)
    learning_nodes_unlocked: List[str] = field(default_factory=list)
    profile_version: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_reviewed_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HairProfile":
        # Level attributes (porosity, density, ...) stay camelCase in `attributes`
        skip = {"id", "userId", "textureClass", "patternFamily", "routineType", "learningNodesUnlocked",
                "profileVersion", "createdAt", "updatedAt", "lastReviewedAt"}
        return cls(
            id=data["id"],
            user_id=data.get("userId", ""),
            texture_class=data.get("textureClass"),
            pattern_family=data.get("patternFamily"),
            routine_type=data.get("routineType"),
            attributes={k: v for k, v in data.items() if k not in skip},
            learning_nodes_unlocked=list(data.get("learningNodesUnlocked") or []),
            profile_version=data.get("profileVersion"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            last_reviewed_at=parse_timestamp(data.get("lastReviewedAt")),
        )


@dataclass
class LearningNode:
    id: str
    node_type: str
    title: str
    description: str = ""
    unlock_criteria: List[str] = field(default_factory=list)
    prerequisite_nodes: List[str] = field(default_factory=list)
    is_unlocked: bool = False
    unlocked_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningNode":
        return cls(
            id=data["id"],
            node_type=data.get("nodeType", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            unlock_criteria=list(data.get("unlockCriteria") or []),
            prerequisite_nodes=list(data.get("prerequisiteNodes") or []),
            is_unlocked=bool(data.get("isUnlocked", False)),
            unlocked_at=parse_timestamp(data.get("unlockedAt")),
        )


@dataclass
class LearningProgress:
    total_nodes: int
    unlocked_nodes: int
    progress: int
    nodes: List[LearningNode]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningProgress":
        return cls(
            total_nodes=int(data.get("totalNodes", 0)),
            unlocked_nodes=int(data.get("unlockedNodes", 0)),
            progress=int(data.get("progress", 0)),
            nodes=[LearningNode.from_dict(n) for n in data.get("nodes") or []],
        )


@dataclass
class UpcomingRitual:
    id: str
    name: str
    scheduled_start: datetime
    scheduled_end: Optional[datetime]
    load_level: str
    event_type: str
    status: str
    is_overdue: bool = False
    days_until: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpcomingRitual":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            scheduled_start=parse_timestamp(data["scheduledStart"]),
            scheduled_end=parse_timestamp(data.get("scheduledEnd")),
            load_level=data.get("loadLevel", ""),
            event_type=data.get("eventType", ""),
            status=data.get("status", ""),
            is_overdue=bool(data.get("isOverdue", False)),
            days_until=int(data.get("daysUntil", 0)),
        )


@dataclass
class UpcomingRituals:
    rituals: List[UpcomingRitual]
    total_upcoming: int
    next_wash_day: Optional[datetime] = None
    weekly_load_status: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpcomingRituals":
        rituals = [UpcomingRitual.from_dict(r) for r in data.get("rituals") or []]
        return cls(
            rituals=rituals,
            total_upcoming=int(data.get("totalUpcoming", len(rituals))),
            next_wash_day=parse_timestamp(data.get("nextWashDay")),
            weekly_load_status=data.get("weeklyLoadStatus") or {},
        )


@dataclass
class CalendarGenerateResult:
    success: bool
    events_created: int
    events_skipped: int
    conflicts: List[Dict[str, Any]] = field(default_factory=list)
    next_scheduled_date: Optional[datetime] = None
    weekly_load_score: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalendarGenerateResult":
        return cls(
            success=bool(data.get("success", False)),
            events_created=int(data.get("eventsCreated", 0)),
            events_skipped=int(data.get("eventsSkipped", 0)),
            conflicts=list(data.get("conflicts") or []),
            next_scheduled_date=parse_timestamp(data.get("nextScheduledDate")),
            weekly_load_score=data.get("weeklyLoadScore"),
        )
