"""
Player and team rosters for a match.

Players carry a stable ``key`` used to merge lifetime statistics across
matches: the external account id when the caller knows one, otherwise a
hash of the normalized display name so the same name maps to the same key.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict

from hat.logic.exceptions import InvalidRosterError

_PUNCTUATION_RE = re.compile(r"[.,!?:;\"'()\-–—]")
_WHITESPACE_RE = re.compile(r"\s+")
_NAME_KEY_HASH_LENGTH = 16


class PlayerSpec(BaseModel):
    """Caller-supplied player entry for match start."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    team_id: str | None = None
    account_id: str | None = None


class TeamSpec(BaseModel):
    """Caller-supplied team entry for match start; ``players`` is ordered."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    players: tuple[str, ...] = ()


@dataclass(frozen=True)
class Player:
    """A participant of one match. Immutable for the match lifetime."""

    id: str
    display_name: str
    team_id: str
    key: str


@dataclass(frozen=True)
class Team:
    """A team; member order defines turn rotation inside the team."""

    id: str
    name: str
    member_ids: tuple[str, ...] = field(default_factory=tuple)

    def has_player(self, player_id: str) -> bool:
        return player_id in self.member_ids


def normalize_display_name(name: str) -> str:
    """Lower-case, fold yo to ye, strip punctuation and collapse whitespace."""
    text = name.lower().strip().replace("ё", "е")
    text = _PUNCTUATION_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def derive_player_key(display_name: str, account_id: str | None = None) -> str:
    """Return the lifetime-stats identity for a player."""
    if account_id:
        return f"acct:{account_id}"
    digest = hashlib.sha256(normalize_display_name(display_name).encode("utf-8")).hexdigest()
    return f"name:{digest[:_NAME_KEY_HASH_LENGTH]}"


def build_roster(
    players: list[PlayerSpec],
    teams: list[TeamSpec],
) -> tuple[tuple[Player, ...], tuple[Team, ...]]:
    """
    Validate caller rosters and build immutable Player/Team records.

    A player's team is the team that lists it; a conflicting ``team_id`` on
    the player entry is rejected. Players not listed by any team are rejected
    too, since they could never take a turn.

    Raises:
        InvalidRosterError: on duplicates (ids or player keys), unknown
            players, empty teams, or when no team exists to seed turn order.

    """
    if not teams:
        raise InvalidRosterError("at least one team is required to seed turn order")

    player_specs: dict[str, PlayerSpec] = {}
    for spec in players:
        if spec.id in player_specs:
            raise InvalidRosterError(f"duplicate player id: {spec.id}")
        player_specs[spec.id] = spec

    team_of: dict[str, str] = {}
    seen_teams: set[str] = set()
    for team in teams:
        if team.id in seen_teams:
            raise InvalidRosterError(f"duplicate team id: {team.id}")
        seen_teams.add(team.id)
        if not team.players:
            raise InvalidRosterError(f"team {team.id} has no players")
        for player_id in team.players:
            spec = player_specs.get(player_id)
            if spec is None:
                raise InvalidRosterError(f"team {team.id} references unknown player {player_id}")
            if player_id in team_of:
                raise InvalidRosterError(f"player {player_id} is listed by more than one team")
            if spec.team_id is not None and spec.team_id != team.id:
                raise InvalidRosterError(
                    f"player {player_id} declares team {spec.team_id} but is listed by {team.id}"
                )
            team_of[player_id] = team.id

    unassigned = [pid for pid in player_specs if pid not in team_of]
    if unassigned:
        raise InvalidRosterError(f"players without a team: {', '.join(unassigned)}")

    built_players = tuple(
        Player(
            id=spec.id,
            display_name=spec.name,
            team_id=team_of[spec.id],
            key=derive_player_key(spec.name, spec.account_id),
        )
        for spec in players
    )
    keys: dict[str, str] = {}
    for player in built_players:
        other = keys.setdefault(player.key, player.id)
        if other != player.id:
            raise InvalidRosterError(
                f"players {other} and {player.id} share the stats identity {player.key}; give one an account id"
            )
    built_teams = tuple(Team(id=t.id, name=t.name, member_ids=tuple(t.players)) for t in teams)
    return built_players, built_teams
