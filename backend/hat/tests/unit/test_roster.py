import pytest

from hat.logic.exceptions import InvalidRosterError
from hat.logic.roster import PlayerSpec, TeamSpec, build_roster, derive_player_key, normalize_display_name
from hat.logic.turn_order import TurnOrder


class TestPlayerKey:
    def test_account_id_wins(self):
        assert derive_player_key("Ann", account_id="42") == "acct:42"

    def test_name_key_ignores_case_punctuation_and_spacing(self):
        assert derive_player_key("  Ann-Marie!  ") == derive_player_key("annmarie")
        assert derive_player_key("Пётр") == derive_player_key("петр")

    def test_name_key_shape(self):
        key = derive_player_key("Ann")
        assert key.startswith("name:")
        assert len(key) == len("name:") + 16

    def test_different_names_different_keys(self):
        assert derive_player_key("Ann") != derive_player_key("Bob")

    def test_normalize_collapses_whitespace(self):
        assert normalize_display_name("  Big   Bob. ") == "big bob"


class TestBuildRoster:
    def test_team_assignment_comes_from_team_listing(self):
        players = [PlayerSpec(id="a", name="A"), PlayerSpec(id="b", name="B", account_id="7")]
        teams = [TeamSpec(id="red", name="Red", players=("b", "a"))]

        built_players, built_teams = build_roster(players, teams)

        assert [p.team_id for p in built_players] == ["red", "red"]
        assert built_players[1].key == "acct:7"
        assert built_teams[0].member_ids == ("b", "a")
        assert built_teams[0].has_player("a")

    def test_same_name_players_are_told_apart_by_account(self):
        players = [PlayerSpec(id="a", name="Ann", account_id="1"), PlayerSpec(id="b", name="Ann")]
        teams = [TeamSpec(id="t", name="T", players=("a", "b"))]

        built_players, _ = build_roster(players, teams)

        assert built_players[0].key == "acct:1"
        assert built_players[1].key.startswith("name:")

    @pytest.mark.parametrize(
        ("players", "teams", "message"),
        [
            ([PlayerSpec(id="a", name="A")], [], "at least one team"),
            (
                [PlayerSpec(id="a", name="A"), PlayerSpec(id="a", name="A2")],
                [TeamSpec(id="t", name="T", players=("a",))],
                "duplicate player id",
            ),
            (
                [PlayerSpec(id="a", name="A"), PlayerSpec(id="b", name="B")],
                [TeamSpec(id="t", name="T", players=("a",)), TeamSpec(id="t", name="T", players=("b",))],
                "duplicate team id",
            ),
            (
                [PlayerSpec(id="a", name="A")],
                [TeamSpec(id="t", name="T", players=("a", "x"))],
                "unknown player x",
            ),
            (
                [PlayerSpec(id="a", name="A")],
                [TeamSpec(id="t1", name="T1", players=("a",)), TeamSpec(id="t2", name="T2", players=("a",))],
                "more than one team",
            ),
            (
                [PlayerSpec(id="a", name="A", team_id="blue")],
                [TeamSpec(id="red", name="Red", players=("a",))],
                "declares team blue",
            ),
            (
                [PlayerSpec(id="a", name="A"), PlayerSpec(id="b", name="B")],
                [TeamSpec(id="t", name="T", players=("a",))],
                "players without a team: b",
            ),
            (
                [PlayerSpec(id="a", name="Ann"), PlayerSpec(id="b", name="ann!")],
                [TeamSpec(id="t1", name="T1", players=("a",)), TeamSpec(id="t2", name="T2", players=("b",))],
                "players a and b share the stats identity",
            ),
        ],
    )
    def test_invalid_rosters(self, players, teams, message):
        with pytest.raises(InvalidRosterError, match=message):
            build_roster(players, teams)


class TestTurnOrder:
    def _order(self, *sizes: int) -> TurnOrder:
        teams = [
            TeamSpec(id=f"t{t}", name=f"T{t}", players=tuple(f"t{t}p{p}" for p in range(1, size + 1)))
            for t, size in enumerate(sizes, start=1)
        ]
        players = [PlayerSpec(id=pid, name=pid) for team in teams for pid in team.players]
        _, built_teams = build_roster(players, teams)
        return TurnOrder.from_teams(built_teams)

    def test_unequal_teams_cycle_at_their_own_pace(self):
        order = self._order(2, 1)
        sequence = [order.first_player_id()] + [order.advance() for _ in range(6)]
        assert sequence == ["t1p1", "t2p1", "t1p2", "t2p1", "t1p1", "t2p1", "t1p2"]

    def test_equal_teams_alternate(self):
        order = self._order(2, 2)
        sequence = [order.first_player_id()] + [order.advance() for _ in range(4)]
        assert sequence == ["t1p1", "t2p1", "t1p2", "t2p2", "t1p1"]

    def test_single_team_rotates_members(self):
        order = self._order(3)
        assert [order.advance() for _ in range(3)] == ["t1p2", "t1p3", "t1p1"]

    def test_empty_order(self):
        order = TurnOrder()
        assert order.is_empty
        assert order.first_player_id() is None
        assert order.advance() is None
