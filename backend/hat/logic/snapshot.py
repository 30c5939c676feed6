"""
Explicit serialization of MatchState.

Two shapes are produced from a MatchState:

- ``MatchSnapshot``: the read model returned by every service operation;
- ``MatchRecord``: the persisted form, carrying ``schema_version`` so stored
  matches can be migrated when the data model changes.

``restore_match`` rebuilds a live MatchState from a record.
"""

from __future__ import annotations

import random
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from hat.logic.enums import MatchPhase
from hat.logic.roster import Player, Team
from hat.logic.settings import MatchSettings
from hat.logic.state import MatchState, PassedWordEntry, PlayerMatchStats
from hat.logic.turn_order import TurnOrder

MATCH_SCHEMA_VERSION = 1


class PlayerView(BaseModel):
    """Player info with match counters."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    team_id: str
    key: str
    guessed: int = 0
    passed: int = 0
    net_score: int = 0
    carried_time: float = 0


class TeamView(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    member_ids: list[str]
    score: int = 0


class MatchSnapshot(BaseModel):
    """Read model of a match handed back to callers."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    phase: MatchPhase
    round_index: int
    current_player_id: str | None
    next_player_id: str | None
    current_word: str | None
    current_word_from_missed: bool
    is_paused: bool
    is_handoff_pending: bool
    round_duration_seconds: int
    words_total: int
    words_remaining: int
    used_words: list[str]
    players: list[PlayerView]
    teams: list[TeamView]
    scores_by_team: dict[str, int]
    scores_by_team_and_round: dict[int, dict[str, int]]


class PassedWordRecord(BaseModel):
    word: str
    player_id: str | None
    team_id: str
    timestamp: datetime


class PlayerRecord(BaseModel):
    id: str
    display_name: str
    team_id: str
    key: str


class TeamRecord(BaseModel):
    id: str
    name: str
    member_ids: list[str]


class PlayerStatsRecord(BaseModel):
    guessed: int = 0
    passed: int = 0
    net_score: int = 0


class TurnOrderRecord(BaseModel):
    team_ids: list[str] = Field(default_factory=list)
    members_by_team: dict[str, list[str]] = Field(default_factory=dict)
    current_team_index: int = 0
    current_player_index: int = 0


class MatchRecord(BaseModel):
    """Persisted form of a MatchState (versioned)."""

    schema_version: int = MATCH_SCHEMA_VERSION
    match_id: str
    settings: MatchSettings
    players: list[PlayerRecord]
    teams: list[TeamRecord]
    turn_order: TurnOrderRecord
    phase: MatchPhase
    round_index: int
    current_player_id: str | None = None
    next_player_id: str | None = None
    is_paused: bool = False
    is_handoff_pending: bool = False
    current_word: str | None = None
    current_word_from_missed: bool = False
    selected_words: list[str] = Field(default_factory=list)
    available_words: list[str] = Field(default_factory=list)
    used_words: list[str] = Field(default_factory=list)
    passed_log: list[PassedWordRecord] = Field(default_factory=list)
    scores_by_team: dict[str, int] = Field(default_factory=dict)
    scores_by_team_and_round: dict[int, dict[str, int]] = Field(default_factory=dict)
    player_stats: dict[str, PlayerStatsRecord] = Field(default_factory=dict)
    carried_time_by_player: dict[str, float] = Field(default_factory=dict)
    missed_words_by_player: dict[str, list[str]] = Field(default_factory=dict)


def build_snapshot(match: MatchState) -> MatchSnapshot:
    """Return the caller-facing view of a match."""
    players = []
    for p in match.players:
        stats = match.player_stats.get(p.id, PlayerMatchStats())
        players.append(
            PlayerView(
                id=p.id,
                display_name=p.display_name,
                team_id=p.team_id,
                key=p.key,
                guessed=stats.guessed,
                passed=stats.passed,
                net_score=stats.net_score,
                carried_time=match.carried_time_for(p.id),
            )
        )
    teams = [
        TeamView(id=t.id, name=t.name, member_ids=list(t.member_ids), score=match.scores_by_team.get(t.id, 0))
        for t in match.teams
    ]
    return MatchSnapshot(
        match_id=match.match_id,
        phase=match.phase,
        round_index=match.round_index,
        current_player_id=match.current_player_id,
        next_player_id=match.next_player_id,
        current_word=match.current_word,
        current_word_from_missed=match.current_word_from_missed,
        is_paused=match.is_paused,
        is_handoff_pending=match.is_handoff_pending,
        round_duration_seconds=match.settings.round_duration_seconds,
        words_total=len(match.selected_words),
        words_remaining=len(match.available_words),
        used_words=list(match.used_words),
        players=players,
        teams=teams,
        scores_by_team=dict(match.scores_by_team),
        scores_by_team_and_round={r: dict(s) for r, s in match.scores_by_team_and_round.items()},
    )


def to_record(match: MatchState) -> MatchRecord:
    """Serialize a match field by field into its persisted form."""
    return MatchRecord(
        match_id=match.match_id,
        settings=match.settings,
        players=[
            PlayerRecord(id=p.id, display_name=p.display_name, team_id=p.team_id, key=p.key)
            for p in match.players
        ],
        teams=[TeamRecord(id=t.id, name=t.name, member_ids=list(t.member_ids)) for t in match.teams],
        turn_order=TurnOrderRecord(
            team_ids=list(match.turn_order.team_ids),
            members_by_team={k: list(v) for k, v in match.turn_order.members_by_team.items()},
            current_team_index=match.turn_order.current_team_index,
            current_player_index=match.turn_order.current_player_index,
        ),
        phase=match.phase,
        round_index=match.round_index,
        current_player_id=match.current_player_id,
        next_player_id=match.next_player_id,
        is_paused=match.is_paused,
        is_handoff_pending=match.is_handoff_pending,
        current_word=match.current_word,
        current_word_from_missed=match.current_word_from_missed,
        selected_words=list(match.selected_words),
        available_words=list(match.available_words),
        used_words=list(match.used_words),
        passed_log=[
            PassedWordRecord(word=e.word, player_id=e.player_id, team_id=e.team_id, timestamp=e.timestamp)
            for e in match.passed_log
        ],
        scores_by_team=dict(match.scores_by_team),
        scores_by_team_and_round={r: dict(s) for r, s in match.scores_by_team_and_round.items()},
        player_stats={
            pid: PlayerStatsRecord(guessed=s.guessed, passed=s.passed, net_score=s.net_score)
            for pid, s in match.player_stats.items()
        },
        carried_time_by_player=dict(match.carried_time_by_player),
        missed_words_by_player={pid: list(words) for pid, words in match.missed_words_by_player.items()},
    )


def restore_match(record: MatchRecord, rng: random.Random | None = None) -> MatchState:
    """Rebuild a live MatchState from a persisted record."""
    if record.schema_version != MATCH_SCHEMA_VERSION:
        raise ValueError(
            f"unsupported match schema version {record.schema_version} (expected {MATCH_SCHEMA_VERSION})"
        )
    return MatchState(
        match_id=record.match_id,
        settings=record.settings,
        rng=rng or random.Random(),  # noqa: S311
        players=tuple(
            Player(id=p.id, display_name=p.display_name, team_id=p.team_id, key=p.key) for p in record.players
        ),
        teams=tuple(Team(id=t.id, name=t.name, member_ids=tuple(t.member_ids)) for t in record.teams),
        turn_order=TurnOrder(
            team_ids=tuple(record.turn_order.team_ids),
            members_by_team={k: tuple(v) for k, v in record.turn_order.members_by_team.items()},
            current_team_index=record.turn_order.current_team_index,
            current_player_index=record.turn_order.current_player_index,
        ),
        phase=record.phase,
        round_index=record.round_index,
        current_player_id=record.current_player_id,
        next_player_id=record.next_player_id,
        is_paused=record.is_paused,
        is_handoff_pending=record.is_handoff_pending,
        current_word=record.current_word,
        current_word_from_missed=record.current_word_from_missed,
        selected_words=list(record.selected_words),
        available_words=list(record.available_words),
        used_words=list(record.used_words),
        passed_log=[
            PassedWordEntry(word=e.word, player_id=e.player_id, team_id=e.team_id, timestamp=e.timestamp)
            for e in record.passed_log
        ],
        scores_by_team=dict(record.scores_by_team),
        scores_by_team_and_round={r: dict(s) for r, s in record.scores_by_team_and_round.items()},
        player_stats={
            pid: PlayerMatchStats(guessed=s.guessed, passed=s.passed, net_score=s.net_score)
            for pid, s in record.player_stats.items()
        },
        carried_time_by_player=dict(record.carried_time_by_player),
        missed_words_by_player={pid: list(words) for pid, words in record.missed_words_by_player.items()},
    )
