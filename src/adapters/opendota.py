"""OpenDota endpoints on top of the access pipeline.

Each fetch maps one UI need to one logical request; the pipeline decides
whether it is served from cache, coalesced or sent.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from core.access.pipeline import AccessPipeline
from core.domain.models import (
    HeroConstant,
    HeroStat,
    ItemConstant,
    MatchDetail,
    PlayerMatch,
    PlayerResponse,
)
from core.errors import ParseError, RateLimitedError, TransportError

logger = logging.getLogger(__name__)

M = TypeVar("M")

FALLBACK_MATCH_PARAMS = {"limit": "20", "significant": "0"}


def _parser(adapter: TypeAdapter[M], endpoint: str) -> Callable[[Any], M]:
    def parse(body: Any) -> M:
        try:
            return adapter.validate_python(body)
        except ValidationError as exc:
            raise ParseError(
                f"Unexpected payload from {endpoint}: {exc.error_count()} validation error(s)",
                endpoint=endpoint,
            ) from exc

    return parse


_HERO_STATS = TypeAdapter(list[HeroStat])
_PLAYER = TypeAdapter(PlayerResponse)
_MATCHES = TypeAdapter(list[PlayerMatch])
_MATCH_DETAIL = TypeAdapter(MatchDetail)
_HERO_CONSTANTS = TypeAdapter(dict[str, HeroConstant])
_ITEM_CONSTANTS = TypeAdapter(dict[str, ItemConstant])


def build_asset_map(constants: Mapping[int, HeroConstant | ItemConstant], cdn_base: str) -> dict[int, str]:
    """Absolute image URL per id; relative ``img`` paths are joined to ``cdn_base``."""

    base = cdn_base.rstrip("/")
    out: dict[int, str] = {}
    for entry_id, entry in constants.items():
        img = entry.img
        if not img:
            continue
        out[entry_id] = img if img.startswith("http") else f"{base}{img}"
    return out


class OpenDotaClient:
    def __init__(self, pipeline: AccessPipeline) -> None:
        self._pipeline = pipeline

    @property
    def pipeline(self) -> AccessPipeline:
        return self._pipeline

    async def _get(self, endpoint: str, adapter: TypeAdapter[M], params: Mapping[str, Any] | None = None) -> M:
        return await self._pipeline.get_json(endpoint, params, parse=_parser(adapter, endpoint))

    async def fetch_heroes(self) -> dict[int, str]:
        """Hero id → localized name."""

        heroes = await self._get("/heroStats", _HERO_STATS)
        return {hero.id: hero.localized_name for hero in heroes}

    async def fetch_profile(self, account_id: int) -> PlayerResponse:
        return await self._get(f"/players/{account_id}", _PLAYER)

    async def fetch_matches(self, account_id: int) -> list[PlayerMatch]:
        """Recent matches, falling back to the paged matches endpoint once."""

        try:
            return await self._get(f"/players/{account_id}/recentMatches", _MATCHES)
        except RateLimitedError:
            # No fallback on 429: the remote limit applies to every endpoint.
            raise
        except TransportError as exc:
            logger.info("recentMatches failed for %s (%s); using fallback", account_id, exc.outcome)
            self._pipeline.recorder.note(f"fallback matches for account_id={account_id}")
            return await self._get(f"/players/{account_id}/matches", _MATCHES, FALLBACK_MATCH_PARAMS)

    async def fetch_match_detail(self, match_id: int) -> MatchDetail:
        return await self._get(f"/matches/{match_id}", _MATCH_DETAIL)

    async def fetch_hero_constants(self) -> dict[int, HeroConstant]:
        raw = await self._get("/constants/heroes", _HERO_CONSTANTS)
        return {hero.id: hero for hero in raw.values()}

    async def fetch_item_constants(self) -> dict[int, ItemConstant]:
        raw = await self._get("/constants/items", _ITEM_CONSTANTS)
        return {item.id: item for item in raw.values() if item.id != 0}

    async def fetch_hero_images(self, cdn_base: str) -> dict[int, str]:
        return build_asset_map(await self.fetch_hero_constants(), cdn_base)

    async def fetch_item_names(self) -> dict[int, str]:
        constants = await self.fetch_item_constants()
        return {item_id: item.dname or str(item_id) for item_id, item in constants.items()}
