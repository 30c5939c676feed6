"""
Deterministic turn rotation across teams.

Teams take turns in declared order. Every time the team cursor wraps back to
the first team, the shared member cursor advances, and the member picked from
a team is ``member_cursor mod team size``. Teams of unequal size therefore
cycle their own rosters at their own pace: with teams [A1, A2] and [B1] the
describers are A1, B1, A2, B1, A1, B1, ...
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hat.logic.roster import Team


@dataclass
class TurnOrder:
    """Team and member cursors for one match."""

    team_ids: tuple[str, ...] = ()
    members_by_team: dict[str, tuple[str, ...]] = field(default_factory=dict)
    current_team_index: int = 0
    current_player_index: int = 0

    @classmethod
    def from_teams(cls, teams: tuple[Team, ...]) -> TurnOrder:
        """Fix team order and member order exactly as declared."""
        return cls(
            team_ids=tuple(t.id for t in teams),
            members_by_team={t.id: tuple(t.member_ids) for t in teams},
        )

    @property
    def is_empty(self) -> bool:
        return not self.team_ids

    def first_player_id(self) -> str | None:
        """Return the first team's first member, or None without teams."""
        if self.is_empty:
            return None
        members = self.members_by_team[self.team_ids[0]]
        return members[0] if members else None

    def current_player_id(self) -> str | None:
        """Return the member the cursors currently point at."""
        if self.is_empty:
            return None
        members = self.members_by_team[self.team_ids[self.current_team_index]]
        if not members:
            return None
        return members[self.current_player_index % len(members)]

    def advance(self) -> str | None:
        """Move to the next team (and member on wrap); return the new describer."""
        if self.is_empty:
            return None
        self.current_team_index = (self.current_team_index + 1) % len(self.team_ids)
        if self.current_team_index == 0:
            self.current_player_index += 1
        return self.current_player_id()
