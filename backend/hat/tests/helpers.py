"""Builders shared by the hat test suites."""

from __future__ import annotations

import random

from hat.logic.roster import PlayerSpec, TeamSpec
from hat.logic.settings import MatchSettings
from hat.logic.state import MatchState
from hat.logic.words import ListWordSource


class NoShuffleRandom(random.Random):
    """Random whose Fisher-Yates swaps are all identity swaps, so pools keep their order."""

    def randint(self, a: int, b: int) -> int:  # noqa: ARG002
        return b


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start_ms: float = 0) -> None:
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, ms: float) -> None:
        self.now_ms += ms


def make_roster(team_sizes: tuple[int, ...] = (1, 1)) -> tuple[list[PlayerSpec], list[TeamSpec]]:
    """Teams ``t1``, ``t2``... with members ``t1p1``, ``t1p2``... named after their id."""
    players: list[PlayerSpec] = []
    teams: list[TeamSpec] = []
    for t, size in enumerate(team_sizes, start=1):
        member_ids = [f"t{t}p{p}" for p in range(1, size + 1)]
        players.extend(PlayerSpec(id=pid, name=pid.upper()) for pid in member_ids)
        teams.append(TeamSpec(id=f"t{t}", name=f"Team {t}", players=tuple(member_ids)))
    return players, teams


def create_match(
    words: list[str],
    team_sizes: tuple[int, ...] = (1, 1),
    settings: MatchSettings | None = None,
    rng: random.Random | None = None,
    match_id: str = "m1",
) -> MatchState:
    """A match with round 0 open, pool order preserved unless an rng is given."""
    players, teams = make_roster(team_sizes)
    state = MatchState(match_id=match_id, rng=rng or NoShuffleRandom())
    state.initialize(players, teams, settings or MatchSettings())
    state.set_selected_words(words)
    state.initialize_turn_order()
    state.draw_initial_pool()
    return state


def ordered_source(words: list[str]) -> ListWordSource:
    """Word source that returns words in the given order."""

    class _InOrder(random.Random):
        def sample(self, population, k, **kwargs):  # noqa: ARG002
            return list(population)[:k]

    return ListWordSource.from_words(words, rng=_InOrder())
