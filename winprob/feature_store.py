from __future__ import annotations

import logging
from typing import Dict, List, Optional

import pandas as pd

from winprob.models import (
    FormRecord,
    HeadToHeadRecord,
    LiveState,
    MatchContext,
    MatchFormat,
    MatchOutcome,
    PitchProfile,
    TeamProfile,
    VenueRecord,
)

logger = logging.getLogger(__name__)

FORM_WINDOW = 5
NO_RESULT_TOKENS = ("no result", "abandoned")
DRAW_TOKENS = ("draw", "tie")


class InningsDataError(ValueError):
    pass


def _key(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def _prepare(matches: pd.DataFrame) -> pd.DataFrame:
    """Lower-cased, stripped copy of the match history used for all lookups."""
    df = matches.copy()
    for column in ("team1", "team2", "venue"):
        df[column] = df[column].fillna("").astype(str).str.strip().str.lower()
    df["winner"] = df["winner"].fillna("").astype(str).str.strip().str.lower()
    if "result" in df.columns:
        df["result"] = df["result"].fillna("").astype(str).str.strip().str.lower()
    else:
        df["result"] = ""
    return df


def _involving(df: pd.DataFrame, team: str) -> pd.DataFrame:
    return df[(df["team1"] == team) | (df["team2"] == team)]


def head_to_head_record(matches: pd.DataFrame, team1: str, team2: str) -> HeadToHeadRecord:
    df = _prepare(matches)
    t1, t2 = _key(team1), _key(team2)
    h2h = df[((df["team1"] == t1) & (df["team2"] == t2)) | ((df["team1"] == t2) & (df["team2"] == t1))]

    played = int(len(h2h))
    team1_wins = int((h2h["winner"] == t1).sum())
    team2_wins = int((h2h["winner"] == t2).sum())
    return HeadToHeadRecord(
        matches_played=played,
        team1_wins=team1_wins,
        team2_wins=team2_wins,
        draws=played - team1_wins - team2_wins,
    )


def _outcome_for(row: pd.Series, team: str) -> MatchOutcome:
    if row["winner"] == team:
        return MatchOutcome.WIN
    if row["winner"]:
        return MatchOutcome.LOSS
    if any(token in row["result"] for token in DRAW_TOKENS):
        return MatchOutcome.DRAW
    return MatchOutcome.NO_RESULT


def form_record(matches: pd.DataFrame, team: str, window: int = FORM_WINDOW) -> Optional[FormRecord]:
    """Last ``window`` results for ``team``, most recent first; None if it has no history."""
    df = _prepare(matches)
    key = _key(team)
    recent = _involving(df, key)
    if recent.empty:
        return None
    recent = recent.assign(_played_on=pd.to_datetime(recent["date"], errors="coerce"))
    recent = recent.sort_values("_played_on", ascending=False, kind="mergesort").head(window)
    return FormRecord(tuple(_outcome_for(row, key) for _, row in recent.iterrows()))


def venue_record(matches: pd.DataFrame, team1: str, team2: str, venue: str) -> Optional[VenueRecord]:
    df = _prepare(matches)
    at_venue = df[df["venue"] == _key(venue)]
    if at_venue.empty:
        return None
    t1, t2 = _key(team1), _key(team2)
    return VenueRecord(
        team1_wins=int((at_venue["winner"] == t1).sum()),
        team1_played=int(len(_involving(at_venue, t1))),
        team2_wins=int((at_venue["winner"] == t2).sum()),
        team2_played=int(len(_involving(at_venue, t2))),
    )


def venue_par_score(matches: pd.DataFrame, venue: str, min_samples: int = 2) -> Optional[float]:
    """Average first innings total at the venue, when enough completed matches exist."""
    if "first_innings_runs" not in matches.columns:
        return None
    df = _prepare(matches)
    runs = pd.to_numeric(df.loc[df["venue"] == _key(venue), "first_innings_runs"], errors="coerce").dropna()
    if len(runs) < min_samples:
        return None
    return float(runs.mean())


def build_match_context(
    matches: pd.DataFrame,
    team1: TeamProfile,
    team2: TeamProfile,
    venue: str,
    fmt: MatchFormat = MatchFormat.T20,
    pitch: Optional[PitchProfile] = None,
    host_team_id: Optional[str] = None,
    form_window: int = FORM_WINDOW,
) -> MatchContext:
    context = MatchContext(
        team1=team1,
        team2=team2,
        fmt=fmt,
        head_to_head=head_to_head_record(matches, team1.name, team2.name),
        team1_form=form_record(matches, team1.name, form_window),
        team2_form=form_record(matches, team2.name, form_window),
        venue_record=venue_record(matches, team1.name, team2.name, venue),
        pitch=pitch,
        venue_name=venue,
        host_team_id=host_team_id,
        par_score=venue_par_score(matches, venue),
    )
    logger.info("Built context for %s vs %s at %s: h2h=%d matches, par=%s",
                team1.name, team2.name, venue, context.head_to_head.matches_played, context.par_score)
    return context


def _as_int(innings: Dict, field: str) -> int:
    value = innings.get(field) or 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InningsDataError(f"Innings field '{field}' is not a number: {value!r}")


def _default_target(ordered: List[Dict], fmt: MatchFormat) -> Optional[int]:
    """Target implied by the completed innings, or None when the current innings is not a chase."""
    if fmt != MatchFormat.TEST:
        return _as_int(ordered[0], "score") + 1 if len(ordered) == 2 else None
    if len(ordered) != 4:
        return None
    # Fourth innings: chase the opposition's aggregate less what this side already made.
    chasing = ordered[-1].get("batTeamName")
    own = sum(_as_int(entry, "score") for entry in ordered[:-1] if entry.get("batTeamName") == chasing)
    opposition = sum(_as_int(entry, "score") for entry in ordered[:-1] if entry.get("batTeamName") != chasing)
    return opposition - own + 1


def live_state_from_innings(innings: List[Dict], fmt: MatchFormat = MatchFormat.T20,
                            team_ids: Optional[Dict[str, str]] = None) -> Optional[LiveState]:
    """Turn a scorecard innings list into the snapshot for the innings in progress.

    Each entry carries ``inningsId``, ``batTeamName``, ``score``, ``wickets``,
    ``overs`` and optionally ``target``. Without an explicit target, a
    limited-overs second innings chases the first score plus one and a Test
    fourth innings chases the aggregate lead plus one; Test innings two and
    three carry no target. Returns None before the first ball.
    """
    if not innings:
        return None

    ordered = sorted(innings, key=lambda x: x.get("inningsId", 0))
    current = ordered[-1]
    batting_name = current.get("batTeamName")
    if not batting_name:
        raise InningsDataError("Current innings has no batting team")

    try:
        overs = float(current.get("overs") or 0.0)
    except (TypeError, ValueError):
        raise InningsDataError(f"Innings overs is not a number: {current.get('overs')!r}")

    target = _as_int(current, "target") or None
    if target is None:
        target = _default_target(ordered, fmt)

    team_ids = team_ids or {}
    return LiveState(
        innings=len(ordered),
        batting_team_id=team_ids.get(batting_name, batting_name),
        runs=_as_int(current, "score"),
        wickets=_as_int(current, "wickets"),
        overs=overs,
        target=target,
    )
