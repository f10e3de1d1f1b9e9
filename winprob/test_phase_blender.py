"""
Tests for phase_blender.py

Validates:
1. Pre-match pass-through
2. Additive live shift on top of the static prior
3. Re-clamping and the sum-to-100 guarantee across a grid of snapshots
4. Swapping team 1 and team 2 swaps the shares, before and during play
"""

from __future__ import annotations

import itertools

import pytest

from winprob.config import EngineConfig
from winprob.live_projector import project_live
from winprob.models import (
    FormRecord,
    HeadToHeadRecord,
    LiveProjection,
    LiveState,
    MatchContext,
    Phase,
    ProbabilityDetails,
    StaticResult,
    TeamProfile,
)
from winprob.phase_blender import blend, compute_win_probability
from winprob.utils import reconcile_shares

TEAM_A = TeamProfile(team_id="A", name="Team A", ranking=3, is_international=True)
TEAM_B = TeamProfile(team_id="B", name="Team B", ranking=8, is_international=True)


def _make_static(team1_share: float = 60.0) -> StaticResult:
    return StaticResult(
        team1=TEAM_A,
        team2=TEAM_B,
        team1_share=team1_share,
        team2_share=100.0 - team1_share,
        factors={"ranking": 10.0},
    )


def _make_projection(shift: float, phase: Phase = Phase.MID, static_share: float = 60.0) -> LiveProjection:
    return LiveProjection(
        shift=shift,
        adjusted_share=reconcile_shares(static_share + shift, EngineConfig())[0],
        phase=phase,
        innings=2,
        message="Chase On",
        details=ProbabilityDetails(runs_needed=40, balls_remaining=36, rrr=6.67, crr=7.5),
    )


def test_no_live_state_passes_static_through():
    result = blend(_make_static(), None)

    assert result.phase == Phase.PRE_MATCH
    assert result.details is None
    assert result.message is None
    assert (result.team1_share, result.team2_share) == (60, 40)
    assert result.factors == {"ranking": 10.0}


def test_live_shift_is_added_to_static_prior():
    result = blend(_make_static(60.0), _make_projection(12.4))

    assert (result.team1_share, result.team2_share) == (72, 28)
    assert result.phase == Phase.MID
    assert result.message == "Chase On"
    assert result.details.rrr == 6.67
    # The prior's breakdown is still reported alongside the live numbers.
    assert result.factors == {"ranking": 10.0}


def test_blended_share_is_reclamped():
    assert blend(_make_static(80.0), _make_projection(40.0)).team1_share == 95
    assert blend(_make_static(20.0), _make_projection(-40.0)).team1_share == 5

    config = EngineConfig(probability_floor=10.0, probability_ceiling=90.0)
    assert blend(_make_static(80.0), _make_projection(40.0), config).team1_share == 90


def test_to_dict_shape():
    payload = blend(_make_static(60.0), _make_projection(0.0)).to_dict()

    assert payload["team1"] == {"id": "A", "name": "Team A", "probability": 60}
    assert payload["team2"] == {"id": "B", "name": "Team B", "probability": 40}
    assert payload["phase"] == "mid"
    assert payload["details"] == {"crr": 7.5, "runsNeeded": 40, "ballsRemaining": 36, "rrr": 6.67}

    pre_match = blend(_make_static(60.0), None).to_dict()
    assert pre_match["phase"] == "pre-match"
    assert pre_match["details"] is None


# ---------------------------------------------------------------------------
# Properties over a grid of snapshots
# ---------------------------------------------------------------------------

CONTEXTS = [
    MatchContext(team1=TEAM_A, team2=TEAM_B),
    MatchContext(
        team1=TEAM_A,
        team2=TEAM_B,
        head_to_head=HeadToHeadRecord(matches_played=7, team1_wins=2, team2_wins=5),
        team1_form=FormRecord.from_codes(["L", "W", "D"]),
        team2_form=FormRecord.from_codes(["W", "W", "L", "NR"]),
        venue_name="Eden Gardens, Kolkata",
    ),
]

LIVE_STATES = [
    None,
    LiveState(innings=1, batting_team_id="A", runs=0, wickets=0, overs=0.0),
    LiveState(innings=1, batting_team_id="B", runs=45, wickets=0, overs=4.4),
    LiveState(innings=1, batting_team_id="A", runs=143, wickets=7, overs=17.1),
    LiveState(innings=1, batting_team_id="B", runs=120, wickets=10, overs=15.0),
    LiveState(innings=2, batting_team_id="B", runs=88, wickets=6, overs=13.0, target=171),
    LiveState(innings=2, batting_team_id="A", runs=171, wickets=2, overs=16.5, target=160),
    LiveState(innings=2, batting_team_id="A", runs=12, wickets=0, overs=1.0, target=231),
]


@pytest.mark.parametrize("context,live", list(itertools.product(CONTEXTS, LIVE_STATES)))
def test_shares_sum_to_100_within_bounds(context, live):
    config = EngineConfig()

    result = compute_win_probability(context, live, config)

    assert result.team1_share + result.team2_share == 100
    assert config.probability_floor <= result.team1_share <= config.probability_ceiling
    assert config.probability_floor <= result.team2_share <= config.probability_ceiling
    if live is None:
        assert result.phase == Phase.PRE_MATCH
        assert result.details is None


@pytest.mark.parametrize("context,live", list(itertools.product(CONTEXTS, LIVE_STATES)))
def test_swapping_teams_swaps_shares_during_play(context, live):
    # The batting side keeps its id, so it moves to the other slot with its team.
    forward = compute_win_probability(context, live)
    reverse = compute_win_probability(context.swapped(), live)

    assert (forward.team1_share, forward.team2_share) == (reverse.team2_share, reverse.team1_share)
    assert forward.team1.team_id == reverse.team2.team_id
    assert forward.phase == reverse.phase
    assert forward.message == reverse.message
    assert forward.details == reverse.details


@pytest.mark.parametrize("live", [state for state in LIVE_STATES if state is not None])
def test_adjusted_share_matches_blended_share(live):
    context = CONTEXTS[1]

    projection = project_live(context, live)
    result = compute_win_probability(context, live)

    if projection is None:
        assert result.phase == Phase.PRE_MATCH
    else:
        assert projection.adjusted_share == result.team1_share
        assert 5 <= projection.adjusted_share <= 95
