"""
Hair Health API Client - profile, learning progress and ritual calendar.

Every response arrives as {"data": ...}.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from ..cache import QueryCache
from ..domain.hair_health import (
    CalendarGenerateResult,
    HairProfile,
    LearningNode,
    LearningProgress,
    RitualQuality,
    UpcomingRituals,
    validate_profile_input,
)
from ..utils.logger import get_logger
from ..utils.timezone import to_iso
from .exceptions import NotFoundError
from .http import ApiClient

logger = get_logger(__name__)

HAIR_HEALTH_KEY = ("hair-health",)
PROFILE_PATH = "/hair-health/profile"


def _data(response: Any) -> Any:
    if isinstance(response, dict) and "data" in response:
        return response["data"]
    return response


class HairHealthClient:
    def __init__(self, api: ApiClient, cache: Optional[QueryCache] = None):
        self.api = api
        self.cache = cache or QueryCache()

    def _invalidate(self, *parts: str) -> None:
        self.cache.invalidate(HAIR_HEALTH_KEY + parts)

    # ------------------------------------------------------------------ #
    # Profile
    # ------------------------------------------------------------------ #
    def _load_profile_envelope(self) -> Optional[Dict[str, Any]]:
        def load() -> Optional[Dict[str, Any]]:
            try:
                response = self.api.get(PROFILE_PATH, error_message="Failed to fetch hair profile")
            except NotFoundError:
                # No profile created yet
                return None
            return _data(response)

        return self.cache.fetch(HAIR_HEALTH_KEY + ("profile",), load, stale="static")

    def get_profile(self) -> Optional[HairProfile]:
        envelope = self._load_profile_envelope()
        if not envelope or not envelope.get("profile"):
            return None
        return HairProfile.from_dict(envelope["profile"])

    def get_profile_with_analysis(self) -> Optional[Dict[str, Any]]:
        """
        Returns:
            {"profile": HairProfile, "analysis": {...healthScore, archetype...}} or None
        """
        envelope = self._load_profile_envelope()
        if not envelope or not envelope.get("profile"):
            return None
        return {
            "profile": HairProfile.from_dict(envelope["profile"]),
            "analysis": envelope.get("analysis") or {},
        }

    def create_profile(self, payload: Dict[str, Any]) -> HairProfile:
        response = self.api.post(
            PROFILE_PATH, json=validate_profile_input(payload), error_message="Failed to create hair profile"
        )
        self._invalidate()
        return HairProfile.from_dict(_data(response)["profile"])

    def update_profile(self, payload: Dict[str, Any]) -> HairProfile:
        response = self.api.patch(
            PROFILE_PATH, json=validate_profile_input(payload), error_message="Failed to update hair profile"
        )
        self._invalidate()
        return HairProfile.from_dict(_data(response)["profile"])

    def delete_profile(self) -> None:
        self.api.delete(PROFILE_PATH, error_message="Failed to delete hair profile")
        self._invalidate()

    # ------------------------------------------------------------------ #
    # Learning
    # ------------------------------------------------------------------ #
    def get_learning_progress(self) -> LearningProgress:
        def load() -> LearningProgress:
            response = self.api.get("/hair-health/learning", error_message="Failed to fetch learning progress")
            return LearningProgress.from_dict(_data(response))

        return self.cache.fetch(HAIR_HEALTH_KEY + ("learning",), load, stale="standard")

    def unlock_learning_node(self, node_id: str) -> LearningNode:
        response = self.api.post(f"/hair-health/learning/{node_id}", error_message="Failed to unlock node")
        self._invalidate("learning")
        return LearningNode.from_dict(_data(response)["node"])

    # ------------------------------------------------------------------ #
    # Ritual calendar
    # ------------------------------------------------------------------ #
    def generate_calendar(
        self, weeks: Optional[int] = None, replace_existing: Optional[bool] = None
    ) -> CalendarGenerateResult:
        body: Dict[str, Any] = {}
        if weeks is not None:
            if weeks < 1:
                raise ValueError("weeks must be at least 1")
            body["weeksToGenerate"] = weeks
        if replace_existing is not None:
            body["replaceExisting"] = replace_existing
        response = self.api.post(
            "/hair-health/calendar/generate", json=body, error_message="Failed to generate calendar"
        )
        self._invalidate("calendar")
        result = CalendarGenerateResult.from_dict(_data(response))
        logger.info(
            "Ritual calendar generated",
            operation="generate_calendar",
            context={"created": result.events_created, "skipped": result.events_skipped},
        )
        return result

    def get_upcoming_rituals(self, days: int = 14) -> UpcomingRituals:
        def load() -> UpcomingRituals:
            response = self.api.get(
                "/hair-health/calendar/upcoming",
                params={"days": days},
                error_message="Failed to fetch upcoming rituals",
            )
            return UpcomingRituals.from_dict(_data(response))

        return self.cache.fetch(HAIR_HEALTH_KEY + ("calendar", "upcoming", days), load, stale="dynamic")

    def get_calendar_summary(self) -> Dict[str, Any]:
        def load() -> Dict[str, Any]:
            response = self.api.get("/hair-health/calendar/summary", error_message="Failed to fetch calendar summary")
            return _data(response)

        return self.cache.fetch(HAIR_HEALTH_KEY + ("calendar", "summary"), load, stale="dynamic")

    def complete_calendar_event(self, event_id: str, quality: str = RitualQuality.GOOD.value) -> None:
        self.api.post(
            f"/hair-health/calendar/{event_id}/complete",
            json={"quality": RitualQuality(quality).value},
            error_message="Failed to complete ritual",
        )
        self._invalidate("calendar")

    def skip_calendar_event(self, event_id: str, reason: Optional[str] = None) -> Dict[str, Any]:
        """Returns {"suggestedMakeup": ...} from the API."""
        response = self.api.post(
            f"/hair-health/calendar/{event_id}/skip",
            json={"reason": reason},
            error_message="Failed to skip ritual",
        )
        self._invalidate("calendar")
        return _data(response) or {}

    def reschedule_calendar_event(self, event_id: str, new_date: datetime) -> Dict[str, Any]:
        """Returns {"success": bool, "warnings": [...]}."""
        response = self.api.patch(
            f"/hair-health/calendar/{event_id}/reschedule",
            json={"newDate": to_iso(new_date)},
            error_message="Failed to reschedule ritual",
        )
        self._invalidate("calendar")
        return _data(response) or {}
