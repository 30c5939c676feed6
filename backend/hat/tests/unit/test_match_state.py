"""Tests for the MatchState word pool, scoring, turns and rounds."""

import random

import pytest

from hat.logic.enums import MatchPhase
from hat.logic.events import (
    MatchEndedEvent,
    MatchStartedEvent,
    RoundEndedEvent,
    RoundExhaustedEvent,
    RoundStartedEvent,
    TurnEndedEvent,
    TurnStartedEvent,
    WordGuessedEvent,
    WordPassedEvent,
    WordShownEvent,
)
from hat.logic.exceptions import EmptyWordPoolError, InvalidRosterError, UnsupportedSettingsError
from hat.logic.roster import PlayerSpec, TeamSpec
from hat.logic.settings import MatchSettings
from hat.logic.state import MatchState
from hat.tests.helpers import NoShuffleRandom, create_match, make_roster


def _assert_conserved(state: MatchState) -> None:
    assert len(state.selected_words) == len(state.used_words) + len(state.available_words)


class TestInitialize:
    def test_zeroes_scores_for_every_team_and_round(self):
        players, teams = make_roster((2, 1))
        state = MatchState(match_id="m1")
        state.initialize(players, teams)

        assert state.scores_by_team == {"t1": 0, "t2": 0}
        assert set(state.scores_by_team_and_round) == {0, 1, 2, 3}
        assert all(scores == {"t1": 0, "t2": 0} for scores in state.scores_by_team_and_round.values())
        assert set(state.player_stats) == {"t1p1", "t1p2", "t2p1"}

    def test_unknown_player_leaves_state_untouched(self):
        players, _ = make_roster((1, 1))
        state = MatchState(match_id="m1")
        teams = [TeamSpec(id="t1", name="T1", players=("t1p1", "ghost"))]

        with pytest.raises(InvalidRosterError, match="unknown player ghost"):
            state.initialize(players, teams)

        assert state.players == ()
        assert state.phase == MatchPhase.AWAITING_START

    def test_empty_team_rejected(self):
        players = [PlayerSpec(id="p1", name="Ann")]
        teams = [TeamSpec(id="t1", name="T1", players=("p1",)), TeamSpec(id="t2", name="T2")]

        with pytest.raises(InvalidRosterError, match="no players"):
            MatchState(match_id="m1").initialize(players, teams)

    def test_invalid_settings_rejected(self):
        players, teams = make_roster()
        with pytest.raises(UnsupportedSettingsError, match="round_duration_seconds"):
            MatchState(match_id="m1").initialize(players, teams, MatchSettings(round_duration_seconds=0))

    def test_set_selected_words_requires_a_word(self):
        state = MatchState(match_id="m1")
        with pytest.raises(EmptyWordPoolError):
            state.set_selected_words([])

    def test_set_selected_words_drops_duplicates(self):
        state = MatchState(match_id="m1")
        state.set_selected_words(["A", "B", "A"])
        assert state.selected_words == ["A", "B"]
        assert state.available_words == ["A", "B"]

    def test_draw_initial_pool_opens_round_zero(self):
        state = create_match(["A", "B", "C"])

        assert state.phase == MatchPhase.ROUND_IN_PROGRESS
        assert state.current_player_id == "t1p1"
        assert state.current_word == "A"
        events = state.drain_events()
        assert [type(e) for e in events] == [MatchStartedEvent, RoundStartedEvent, WordShownEvent]
        assert events[0].word_count == 3


class TestWordPool:
    def test_end_to_end_scenario(self):
        state = create_match(["A", "B", "C"])

        assert state.word_guessed("t1") is False
        assert state.scores_by_team["t1"] == 1
        assert state.available_words == ["B", "C"]

        state.word_passed("t1")
        assert state.scores_by_team["t1"] == 0
        assert state.available_words == ["C", "B"]
        assert state.missed_words_by_player["t1p1"] == ["B"]
        assert state.current_word == "C"

        assert state.word_guessed("t1") is False
        assert state.scores_by_team["t1"] == 1
        assert state.available_words == ["B"]
        assert state.current_word == "B"
        assert state.current_word_from_missed is True

        assert state.word_guessed("t1") is True
        assert state.available_words == []
        assert state.current_word is None
        assert state.scores_by_team_and_round[0]["t1"] == 2
        assert state.used_words == ["A", "C", "B"]
        assert state.is_round_exhausted

    def test_words_are_conserved_through_guesses_and_passes(self):
        state = create_match([f"w{i}" for i in range(8)], rng=random.Random(7))
        ops = ["pass", "guess", "pass", "pass", "guess", "guess", "pass", "guess", "pass", "guess"]
        for op in ops:
            if op == "guess":
                state.word_guessed("t1")
            else:
                state.word_passed("t2")
            _assert_conserved(state)

    def test_passing_never_exhausts_the_round(self):
        state = create_match(["A", "B", "C"])
        for _ in range(20):
            state.word_passed("t1")
            assert state.available_words
            assert state.current_word is not None
        _assert_conserved(state)

    def test_missed_fallback_still_returns_a_word(self):
        state = create_match(["A", "B"])
        state.word_passed("t1")
        state.word_passed("t1")

        assert set(state.missed_words_by_player["t1p1"]) == {"A", "B"}
        assert state.get_next_word() is not None
        assert state.current_word_from_missed is True

    def test_pass_registers_missed_word_once(self):
        state = create_match(["A"])
        state.word_passed("t1")
        state.word_passed("t1")
        assert state.missed_words_by_player["t1p1"] == ["A"]
        assert len(state.passed_log) == 2
        assert state.player_stats["t1p1"].passed == 2
        assert state.player_stats["t1p1"].net_score == -2

    def test_guess_without_team_is_a_no_op(self):
        state = create_match(["A", "B"])
        state.drain_events()

        assert state.word_guessed(None) is False
        state.word_passed("")

        assert state.available_words == ["A", "B"]
        assert state.drain_events() == []

    def test_guess_events_carry_player_team_and_round(self):
        state = create_match(["A", "B"])
        state.drain_events()
        state.word_guessed("t1")
        state.word_passed("t1")

        events = state.drain_events()
        guessed = next(e for e in events if isinstance(e, WordGuessedEvent))
        passed = next(e for e in events if isinstance(e, WordPassedEvent))
        assert (guessed.word, guessed.player_id, guessed.team_id, guessed.round_index) == ("A", "t1p1", "t1", 0)
        assert passed.word == "B"

    def test_exhaustion_emits_round_exhausted(self):
        state = create_match(["A"])
        state.drain_events()
        state.word_guessed("t1")
        assert isinstance(state.drain_events()[-1], RoundExhaustedEvent)


class TestTurns:
    def test_turn_order_with_unequal_teams(self):
        state = create_match(["A"], team_sizes=(2, 1))
        sequence = [state.current_player_id]
        for _ in range(6):
            state.switch_to_next_player()
            sequence.append(state.next_player_id)

        assert sequence == ["t1p1", "t2p1", "t1p2", "t2p1", "t1p1", "t2p1", "t1p2"]

    def test_end_turn_keeps_in_flight_word_in_pool(self):
        state = create_match(["A", "B", "C"])
        state.end_player_turn(carried_time=4)

        assert state.current_word is None
        assert state.available_words == ["A", "B", "C"]
        assert state.is_handoff_pending
        assert state.next_player_id == "t2p1"
        assert state.carried_time_by_player["t1p1"] == 4

    def test_start_next_player_turn_promotes_staged_player(self):
        state = create_match(["A", "B", "C"])
        state.end_player_turn()
        state.drain_events()

        state.start_next_player_turn()

        assert state.current_player_id == "t2p1"
        assert state.next_player_id is None
        assert not state.is_handoff_pending
        assert state.current_word == "A"
        events = state.drain_events()
        assert isinstance(events[-1], TurnStartedEvent)
        assert events[-1].player_id == "t2p1"

    def test_start_next_player_turn_keeps_pending_word(self):
        state = create_match(["A", "B", "C"])
        state.drain_events()
        state.start_next_player_turn()

        assert state.current_word == "A"
        assert not any(isinstance(e, WordShownEvent) for e in state.drain_events())

    def test_end_turn_event_carries_timeout_remainder(self):
        state = create_match(["A"])
        state.drain_events()
        state.end_player_turn(carried_time=None, timer_remaining_at_show=2.5)
        event = state.drain_events()[0]
        assert isinstance(event, TurnEndedEvent)
        assert event.timer_remaining_at_show == 2.5

    def test_consume_carried_time(self):
        state = create_match(["A"])
        state.end_player_turn(carried_time=7)

        assert state.carried_time_for("t1p1") == 7
        assert state.consume_carried_time("t1p1") == 7
        assert state.consume_carried_time("t1p1") is None
        assert state.carried_time_for("t1p1") == 0

    def test_pause_and_resume_are_idempotent(self):
        state = create_match(["A"])
        state.drain_events()
        state.pause()
        state.pause()
        state.resume()
        state.resume()
        assert len(state.drain_events()) == 2
        assert not state.is_paused


class TestRounds:
    def test_end_round_emits_turn_then_round_end(self):
        state = create_match(["A"])
        state.word_guessed("t1")
        state.drain_events()

        state.end_round(carried_time=3)

        events = state.drain_events()
        assert [type(e) for e in events] == [TurnEndedEvent, RoundEndedEvent]
        assert events[1].round_scores == {"t1": 1, "t2": 0}
        assert state.phase == MatchPhase.ROUND_COMPLETED
        assert state.carried_time_by_player["t1p1"] == 3

    def test_next_round_restores_pool_and_keeps_describer(self):
        state = create_match(["A", "B"])
        state.word_guessed("t1")
        state.word_guessed("t1")
        state.end_round()

        assert state.start_next_round() is False
        assert state.round_index == 1
        assert state.available_words == ["A", "B"]
        assert state.used_words == []
        assert state.current_word == "A"
        assert state.current_player_id == "t1p1"
        assert state.scores_by_team == {"t1": 2, "t2": 0}

    def test_carried_time_floor_applies_on_entering_round_one(self):
        state = create_match(["A"], team_sizes=(2, 1))
        state.carried_time_by_player = {"t1p1": 3, "t1p2": 10}
        state.end_round()

        assert state.carried_time_by_player["t1p1"] == 3
        state.start_next_round()

        assert state.carried_time_by_player == {"t1p1": 5, "t1p2": 10}

    def test_carried_time_floor_skips_rounds_outside_the_floor_set(self):
        state = create_match(["A"], settings=MatchSettings(last_round_index=4))
        for _ in range(2):
            state.start_next_round()
        state.carried_time_by_player = {"t1p1": 3}

        state.start_next_round()

        assert state.round_index == 3
        assert state.carried_time_by_player == {"t1p1": 3}

    def test_zero_carried_time_is_not_raised(self):
        state = create_match(["A"])
        state.carried_time_by_player = {"t1p1": 0}
        state.start_next_round()
        assert state.carried_time_by_player == {"t1p1": 0}

    def test_match_completes_after_round_three(self):
        state = create_match(["A"])
        state.word_passed("t1")
        state.carried_time_by_player = {"t1p1": 8}

        results = [state.start_next_round() for _ in range(4)]

        assert results == [False, False, False, True]
        assert state.phase == MatchPhase.MATCH_COMPLETED
        assert state.is_match_completed
        assert state.current_word is None
        assert state.carried_time_by_player == {}
        assert state.missed_words_by_player == {}
        ended = state.drain_events()[-1]
        assert isinstance(ended, MatchEndedEvent)
        assert set(ended.scores_by_team_and_round) == {0, 1, 2, 3}

    def test_round_limit_is_configurable(self):
        state = create_match(["A"], settings=MatchSettings(last_round_index=1))
        assert state.start_next_round() is False
        assert state.start_next_round() is True

    def test_missed_words_survive_round_change(self):
        state = create_match(["A", "B"])
        state.word_passed("t1")
        state.start_next_round()
        assert state.missed_words_by_player["t1p1"] == ["A"]
        assert state.current_word == "B"


class TestShuffle:
    def test_seeded_shuffles_are_reproducible(self):
        words = [f"w{i}" for i in range(20)]
        first = create_match(words, rng=random.Random(42))
        second = create_match(words, rng=random.Random(42))
        assert first.available_words == second.available_words

    def test_shuffle_keeps_every_word(self):
        state = create_match([f"w{i}" for i in range(20)], rng=random.Random(1))
        state.shuffle_available_words()
        assert sorted(state.available_words) == sorted(state.selected_words)

    def test_no_shuffle_helper_preserves_order(self):
        state = MatchState(match_id="m1", rng=NoShuffleRandom())
        state.available_words = ["A", "B", "C"]
        state.shuffle_available_words()
        assert state.available_words == ["A", "B", "C"]
