"""Favorites API Client - customers' saved stylists."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..cache import QueryCache
from ..utils.timezone import parse_timestamp
from .http import ApiClient

FAVORITES_KEY = ("favorites",)


@dataclass
class FavoriteStylist:
    id: str
    display_name: str
    avatar_url: Optional[str] = None
    favorited_at: Optional[datetime] = None
    profile: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FavoriteStylist":
        return cls(
            id=data["id"],
            display_name=data.get("displayName", ""),
            avatar_url=data.get("avatarUrl"),
            favorited_at=parse_timestamp(data.get("favoritedAt")),
            profile=data.get("profile"),
        )


@dataclass
class FavoritesPage:
    favorites: List[FavoriteStylist] = field(default_factory=list)
    total: int = 0
    has_more: bool = False


@dataclass
class FavoriteStatus:
    is_favorited: bool
    favorited_at: Optional[datetime] = None


class FavoritesClient:
    def __init__(self, api: ApiClient, cache: Optional[QueryCache] = None):
        self.api = api
        self.cache = cache or QueryCache()

    def list_favorites(self, limit: Optional[int] = None, offset: Optional[int] = None) -> FavoritesPage:
        def load() -> FavoritesPage:
            data = self.api.get(
                "/favorites",
                params={"limit": limit, "offset": offset},
                error_message="Failed to fetch favorites",
            )
            favorites = [FavoriteStylist.from_dict(f) for f in data.get("favorites") or []]
            return FavoritesPage(
                favorites=favorites,
                total=int(data.get("total", len(favorites))),
                has_more=bool(data.get("hasMore", False)),
            )

        return self.cache.fetch(FAVORITES_KEY + ("list", limit, offset), load, stale="standard")

    def add_favorite(self, stylist_id: str) -> FavoriteStylist:
        data = self.api.post("/favorites", json={"stylistId": stylist_id}, error_message="Failed to add favorite")
        self.cache.invalidate(FAVORITES_KEY)
        return FavoriteStylist.from_dict(data["favorite"])

    def remove_favorite(self, stylist_id: str) -> bool:
        data = self.api.delete(f"/favorites/{stylist_id}", error_message="Failed to remove favorite")
        self.cache.invalidate(FAVORITES_KEY)
        return bool((data or {}).get("success", True))

    def get_favorite_status(self, stylist_id: str) -> FavoriteStatus:
        def load() -> FavoriteStatus:
            data = self.api.get(f"/favorites/{stylist_id}", error_message="Failed to check favorite status")
            return FavoriteStatus(
                is_favorited=bool(data.get("isFavorited", False)),
                favorited_at=parse_timestamp(data.get("favoritedAt")),
            )

        return self.cache.fetch(FAVORITES_KEY + ("status", stylist_id), load, stale="standard")

    def get_favorites_count(self) -> int:
        def load() -> int:
            data = self.api.get("/favorites/count", error_message="Failed to fetch favorites count")
            return int(data.get("count", 0))

        return self.cache.fetch(FAVORITES_KEY + ("count",), load, stale="standard")
