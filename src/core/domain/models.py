"""Domain models (Pydantic v2).

Only the fields the UI needs are declared; ``extra="ignore"`` drops the rest
of each remote payload.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class HeroStat(_Payload):
    id: int
    localized_name: str


class HeroConstant(_Payload):
    id: int
    img: str | None = None


class ItemConstant(_Payload):
    id: int
    dname: str | None = None
    img: str | None = None


class PlayerProfile(_Payload):
    personaname: str | None = None
    steamid: str | None = None
    avatar: str | None = None
    avatarmedium: str | None = None
    avatarfull: str | None = None

    @property
    def avatar_url(self) -> str | None:
        """Largest available avatar."""

        return self.avatarfull or self.avatarmedium or self.avatar


class MmrEstimate(_Payload):
    estimate: int | None = None


class PlayerResponse(_Payload):
    profile: PlayerProfile | None = None
    mmr_estimate: MmrEstimate | None = None

    @property
    def avatar_url(self) -> str | None:
        return self.profile.avatar_url if self.profile else None


def is_radiant_slot(player_slot: int) -> bool:
    return player_slot < 128


class PlayerMatch(_Payload):
    match_id: int
    player_slot: int
    radiant_win: bool
    duration: int = Field(..., ge=0, description="Match duration (seconds).")
    start_time: int | None = None
    hero_id: int
    game_mode: int | None = None
    kills: int | None = None
    deaths: int | None = None
    assists: int | None = None

    @property
    def won(self) -> bool:
        return self.radiant_win == is_radiant_slot(self.player_slot)


class MatchPlayer(_Payload):
    account_id: int | None = None
    personaname: str | None = None
    hero_id: int | None = None
    player_slot: int | None = None
    item_0: int | None = None
    item_1: int | None = None
    item_2: int | None = None
    item_3: int | None = None
    item_4: int | None = None
    item_5: int | None = None
    kills: int | None = None
    deaths: int | None = None
    assists: int | None = None
    gold_per_min: int | None = None
    xp_per_min: int | None = None
    net_worth: int | None = None

    @property
    def items(self) -> list[int]:
        """Main inventory item ids, empty slots (None/0) skipped."""

        raw = (self.item_0, self.item_1, self.item_2, self.item_3, self.item_4, self.item_5)
        return [item for item in raw if item]

    @property
    def is_radiant(self) -> bool:
        return is_radiant_slot(self.player_slot or 0)


class MatchDetail(_Payload):
    match_id: int | None = None
    radiant_win: bool | None = None
    duration: int | None = None
    players: list[MatchPlayer] = Field(default_factory=list)

    def team(self, radiant: bool) -> list[MatchPlayer]:
        return [p for p in self.players if p.is_radiant == radiant]
