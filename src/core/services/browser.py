"""Player browsing orchestration.

The UI issues lookups through this service and reads ``BrowserState``. In-
flight calls are never interrupted: each dispatch carries a generation token
and a completion whose token is no longer current is dropped instead of
being applied.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from adapters.opendota import OpenDotaClient
from core.domain.models import MatchDetail, PlayerMatch, PlayerResponse
from core.errors import OpenDotaError

logger = logging.getLogger(__name__)


class GenerationCounter:
    """Monotonic version marker for one UI section."""

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def next(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current


@dataclass
class SearchResult:
    account_id: int
    profile: PlayerResponse | None = None
    matches: list[PlayerMatch] = field(default_factory=list)
    profile_error: OpenDotaError | None = None
    match_error: OpenDotaError | None = None


@dataclass
class BrowserState:
    account_id: int | None = None
    profile: PlayerResponse | None = None
    matches: list[PlayerMatch] = field(default_factory=list)
    profile_error: OpenDotaError | None = None
    match_error: OpenDotaError | None = None
    match_detail: MatchDetail | None = None
    detail_error: OpenDotaError | None = None
    heroes: dict[int, str] = field(default_factory=dict)
    heroes_error: OpenDotaError | None = None
    items: dict[int, str] = field(default_factory=dict)
    items_error: OpenDotaError | None = None
    hero_images: dict[int, str] = field(default_factory=dict)
    status: str = ""
    stale_discarded: int = 0


class PlayerBrowser:
    def __init__(self, client: OpenDotaClient, state: BrowserState | None = None) -> None:
        self.client = client
        self.state = state or BrowserState()
        self.search_generation = GenerationCounter()
        self.detail_generation = GenerationCounter()

    def hero_name(self, hero_id: int | None, unknown: str = "Unknown") -> str:
        if hero_id is None:
            return unknown
        return self.state.heroes.get(hero_id, unknown)

    async def load_heroes(self) -> bool:
        """Load the hero reference table once; failures stay in ``heroes_error``."""

        if self.state.heroes:
            return True
        try:
            self.state.heroes = await self.client.fetch_heroes()
        except OpenDotaError as exc:
            self.state.heroes_error = exc
            self.state.status = f"Hero list failed: {exc}"
            return False
        self.state.heroes_error = None
        return True

    def item_name(self, item_id: int) -> str:
        return self.state.items.get(item_id, str(item_id))

    def hero_image_url(self, hero_id: int | None) -> str | None:
        if hero_id is None:
            return None
        return self.state.hero_images.get(hero_id)

    async def load_items(self) -> bool:
        """Load item names once; on failure ids are shown as numbers."""

        if self.state.items:
            return True
        try:
            self.state.items = await self.client.fetch_item_names()
        except OpenDotaError as exc:
            self.state.items_error = exc
            return False
        self.state.items_error = None
        return True

    async def load_hero_images(self, cdn_base: str) -> bool:
        if self.state.hero_images:
            return True
        try:
            self.state.hero_images = await self.client.fetch_hero_images(cdn_base)
        except OpenDotaError as exc:
            logger.info("hero images unavailable: %s", exc)
            return False
        return True

    async def search(self, account_id: int) -> SearchResult | None:
        """Fetch profile and matches concurrently.

        Returns the applied result, or ``None`` when a newer search superseded
        this one before it completed.
        """

        token = self.search_generation.next()
        # A new search navigates away from any match being opened.
        self.detail_generation.next()
        self.state.status = f"Searching {account_id}..."

        profile_out, matches_out = await asyncio.gather(
            self.client.fetch_profile(account_id),
            self.client.fetch_matches(account_id),
            return_exceptions=True,
        )
        result = SearchResult(account_id=account_id)
        if isinstance(profile_out, OpenDotaError):
            result.profile_error = profile_out
        elif isinstance(profile_out, BaseException):
            raise profile_out
        else:
            result.profile = profile_out
        if isinstance(matches_out, OpenDotaError):
            result.match_error = matches_out
        elif isinstance(matches_out, BaseException):
            raise matches_out
        else:
            result.matches = matches_out

        if not self.search_generation.is_current(token):
            self.state.stale_discarded += 1
            logger.debug("discarding stale search for %s", account_id)
            return None

        self._apply_search(result)
        return result

    async def open_match(self, match_id: int) -> MatchDetail | None:
        token = self.detail_generation.next()
        try:
            detail = await self.client.fetch_match_detail(match_id)
            error = None
        except OpenDotaError as exc:
            detail, error = None, exc

        if not self.detail_generation.is_current(token):
            self.state.stale_discarded += 1
            logger.debug("discarding stale match detail %s", match_id)
            return None

        self.state.match_detail = detail
        self.state.detail_error = error
        self.state.status = f"Match failed: {error}" if error else "Match loaded"
        return detail

    def _apply_search(self, result: SearchResult) -> None:
        state = self.state
        state.account_id = result.account_id
        state.profile = result.profile
        state.profile_error = result.profile_error
        state.matches = result.matches
        state.match_error = result.match_error
        state.match_detail = None
        state.detail_error = None

        if result.profile_error is not None:
            state.status = f"Profile failed: {result.profile_error}"
        elif result.match_error is not None:
            state.status = f"Matches failed: {result.match_error}"
        elif not result.matches:
            state.status = "No recent matches"
        else:
            state.status = "Matches loaded"
