"""
Tests for feature_store.py

Validates:
1. Head-to-head, form and venue records derived from match history
2. Venue par score from first innings totals
3. Match context assembly
4. Live state from scorecard innings

No network or files -- history is an in-memory DataFrame.
"""

from __future__ import annotations

import pandas as pd
import pytest

from winprob.feature_store import (
    InningsDataError,
    build_match_context,
    form_record,
    head_to_head_record,
    live_state_from_innings,
    venue_par_score,
    venue_record,
)
from winprob.models import MatchFormat, MatchOutcome, TeamProfile

CSK = "Chennai Super Kings"
MI = "Mumbai Indians"
RCB = "Royal Challengers Bengaluru"
WANKHEDE = "Wankhede Stadium, Mumbai"
CHEPAUK = "MA Chidambaram Stadium, Chennai"


def _make_matches() -> pd.DataFrame:
    return pd.DataFrame([
        {"date": "2025-03-23", "team1": CSK, "team2": MI, "venue": CHEPAUK, "winner": CSK, "first_innings_runs": 155},
        {"date": "2025-04-02", "team1": MI, "team2": RCB, "venue": WANKHEDE, "winner": RCB, "first_innings_runs": 221},
        {"date": "2025-04-20", "team1": MI, "team2": CSK, "venue": WANKHEDE, "winner": MI, "first_innings_runs": 176},
        {"date": "2025-04-27", "team1": "mumbai indians ", "team2": CSK, "venue": WANKHEDE, "winner": None,
         "result": "No result", "first_innings_runs": None},
        {"date": "2025-05-03", "team1": RCB, "team2": CSK, "venue": "M Chinnaswamy Stadium", "winner": RCB,
         "first_innings_runs": 213},
        {"date": "2025-05-11", "team1": CSK, "team2": MI, "venue": WANKHEDE, "winner": MI, "first_innings_runs": 160},
    ])


# ---------------------------------------------------------------------------
# History-derived records
# ---------------------------------------------------------------------------

def test_head_to_head_record_counts_both_orientations():
    record = head_to_head_record(_make_matches(), MI, CSK)

    assert record.matches_played == 4
    assert record.team1_wins == 2
    assert record.team2_wins == 1
    assert record.draws == 1


def test_form_record_is_most_recent_first():
    form = form_record(_make_matches(), CSK, window=3)

    assert form.results == (MatchOutcome.LOSS, MatchOutcome.LOSS, MatchOutcome.NO_RESULT)


def test_form_record_missing_team_is_none():
    assert form_record(_make_matches(), "Delhi Capitals") is None


def test_venue_record_counts_each_team_at_the_venue():
    record = venue_record(_make_matches(), MI, CSK, WANKHEDE)

    assert (record.team1_wins, record.team1_played) == (2, 4)
    assert (record.team2_wins, record.team2_played) == (0, 3)
    assert venue_record(_make_matches(), MI, CSK, "Eden Gardens") is None


def test_venue_par_score_needs_enough_samples():
    assert venue_par_score(_make_matches(), WANKHEDE) == pytest.approx((221 + 176 + 160) / 3)
    assert venue_par_score(_make_matches(), CHEPAUK) is None
    assert venue_par_score(_make_matches().drop(columns=["first_innings_runs"]), WANKHEDE) is None


def test_build_match_context_wires_every_record():
    team1 = TeamProfile(team_id="MI", name=MI, pedigree=0.9)
    team2 = TeamProfile(team_id="CSK", name=CSK, pedigree=0.9)

    context = build_match_context(_make_matches(), team1, team2, WANKHEDE)

    assert context.fmt == MatchFormat.T20
    assert context.head_to_head.matches_played == 4
    assert len(context.team1_form) == 5
    assert context.venue_record.team1_played == 4
    assert context.par_score == pytest.approx(185.67, abs=0.01)
    assert context.venue_name == WANKHEDE


# ---------------------------------------------------------------------------
# Scorecard innings
# ---------------------------------------------------------------------------

def test_live_state_from_innings_defaults_target_to_first_innings_plus_one():
    innings = [
        {"inningsId": 2, "batTeamName": "Team B", "score": 100, "wickets": 3, "overs": 12.0},
        {"inningsId": 1, "batTeamName": "Team A", "score": 170, "wickets": 8, "overs": 20.0},
    ]

    live = live_state_from_innings(innings, team_ids={"Team A": "A", "Team B": "B"})

    assert live.innings == 2
    assert live.batting_team_id == "B"
    assert live.target == 171
    assert (live.runs, live.wickets, live.balls_bowled) == (100, 3, 72)


def test_live_state_from_innings_first_innings_has_no_target():
    live = live_state_from_innings([{"inningsId": 1, "batTeamName": "Team A", "score": 90, "wickets": 2, "overs": 10.0}])

    assert live.innings == 1
    assert live.batting_team_id == "Team A"
    assert live.target is None


def test_live_state_from_innings_explicit_target_wins():
    innings = [
        {"inningsId": 1, "batTeamName": "Team A", "score": 170, "wickets": 8, "overs": 20.0},
        {"inningsId": 2, "batTeamName": "Team B", "score": 40, "wickets": 0, "overs": 4.0, "target": 150},
    ]

    assert live_state_from_innings(innings).target == 150


def test_test_match_second_and_third_innings_have_no_target():
    innings = [
        {"inningsId": 1, "batTeamName": "Team A", "score": 400, "wickets": 10, "overs": 120.0},
        {"inningsId": 2, "batTeamName": "Team B", "score": 50, "wickets": 0, "overs": 10.0},
    ]

    assert live_state_from_innings(innings, MatchFormat.TEST).target is None

    innings[1].update(score=250, wickets=10, overs=80.0)
    innings.append({"inningsId": 3, "batTeamName": "Team A", "score": 120, "wickets": 3, "overs": 30.0})
    assert live_state_from_innings(innings, MatchFormat.TEST).target is None


@pytest.mark.parametrize(
    "third_innings_team,third_score,batting_last,expected_target",
    [
        ("Team A", 200, "Team B", 400 + 200 - 250 + 1),
        # Follow-on: Team B bats twice in a row and Team A chases last.
        ("Team B", 300, "Team A", 250 + 300 - 400 + 1),
    ],
)
def test_test_match_fourth_innings_chases_the_aggregate(third_innings_team, third_score, batting_last,
                                                         expected_target):
    innings = [
        {"inningsId": 1, "batTeamName": "Team A", "score": 400, "wickets": 10, "overs": 120.0},
        {"inningsId": 2, "batTeamName": "Team B", "score": 250, "wickets": 10, "overs": 80.0},
        {"inningsId": 3, "batTeamName": third_innings_team, "score": third_score, "wickets": 10, "overs": 70.0},
        {"inningsId": 4, "batTeamName": batting_last, "score": 20, "wickets": 0, "overs": 5.0},
    ]

    live = live_state_from_innings(innings, MatchFormat.TEST)

    assert live.innings == 4
    assert live.target == expected_target


def test_limited_overs_innings_beyond_the_second_have_no_default_target():
    innings = [
        {"inningsId": 1, "batTeamName": "Team A", "score": 170, "wickets": 8, "overs": 20.0},
        {"inningsId": 2, "batTeamName": "Team B", "score": 170, "wickets": 6, "overs": 20.0},
        {"inningsId": 3, "batTeamName": "Team B", "score": 12, "wickets": 0, "overs": 0.4},
    ]

    assert live_state_from_innings(innings, MatchFormat.T20).target is None


def test_live_state_from_innings_empty_is_none():
    assert live_state_from_innings([]) is None


@pytest.mark.parametrize(
    "bad_innings",
    [
        {"inningsId": 1, "score": 10, "wickets": 0, "overs": 1.0},
        {"inningsId": 1, "batTeamName": "Team A", "score": "ten", "wickets": 0, "overs": 1.0},
        {"inningsId": 1, "batTeamName": "Team A", "score": 10, "wickets": 0, "overs": "1.x"},
    ],
)
def test_live_state_from_innings_rejects_malformed_innings(bad_innings):
    with pytest.raises(InningsDataError):
        live_state_from_innings([bad_innings])
