from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from winprob.utils import overs_to_balls


class MatchFormat(str, Enum):
    T20 = "T20"
    ODI = "ODI"
    TEST = "Test"

    @property
    def overs(self) -> int:
        return FORMAT_OVERS[self]

    @property
    def balls(self) -> int:
        return FORMAT_OVERS[self] * 6

    @property
    def par_score(self) -> int:
        return FORMAT_PAR_SCORES[self]


# Test innings have no allotment; one day's play stands in for it.
FORMAT_OVERS = {
    MatchFormat.T20: 20,
    MatchFormat.ODI: 50,
    MatchFormat.TEST: 90,
}

FORMAT_PAR_SCORES = {
    MatchFormat.T20: 170,
    MatchFormat.ODI: 280,
    MatchFormat.TEST: 300,
}


class MatchOutcome(str, Enum):
    WIN = "W"
    LOSS = "L"
    DRAW = "D"
    NO_RESULT = "NR"

    @classmethod
    def parse(cls, code: str) -> "MatchOutcome":
        text = (code or "").strip().upper()
        aliases = {
            "W": cls.WIN, "WIN": cls.WIN, "WON": cls.WIN,
            "L": cls.LOSS, "LOSS": cls.LOSS, "LOST": cls.LOSS,
            "D": cls.DRAW, "DRAW": cls.DRAW, "DRAWN": cls.DRAW, "T": cls.DRAW, "TIE": cls.DRAW,
        }
        return aliases.get(text, cls.NO_RESULT)


class PitchSuitedFor(str, Enum):
    BATTING = "batting"
    BOWLING = "bowling"
    SPIN = "spin"
    BALANCED = "balanced"

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["PitchSuitedFor"]:
        """Map free-text venue metadata such as "Batting friendly" to a tag."""
        if not label:
            return None
        text = label.lower()
        if "spin" in text:
            return cls.SPIN
        if "bat" in text:
            return cls.BATTING
        if "bowl" in text or "pace" in text or "seam" in text:
            return cls.BOWLING
        return cls.BALANCED


class Phase(str, Enum):
    PRE_MATCH = "pre-match"
    EARLY = "early"
    MID = "mid"
    DEATH = "death"


@dataclass(frozen=True)
class TeamProfile:
    team_id: str
    name: str
    ranking: Optional[float] = None  # rank position, lower is better
    is_international: bool = False
    nationality: Optional[str] = None
    pedigree: Optional[float] = None  # 0..1, franchise matchups only


@dataclass(frozen=True)
class HeadToHeadRecord:
    matches_played: int
    team1_wins: int
    team2_wins: int
    draws: int = 0

    @property
    def team1_win_pct(self) -> float:
        if self.matches_played <= 0:
            return 0.0
        return self.team1_wins / self.matches_played

    @property
    def team2_win_pct(self) -> float:
        if self.matches_played <= 0:
            return 0.0
        return self.team2_wins / self.matches_played

    def swapped(self) -> "HeadToHeadRecord":
        return HeadToHeadRecord(self.matches_played, self.team2_wins, self.team1_wins, self.draws)


@dataclass(frozen=True)
class FormRecord:
    results: Tuple[MatchOutcome, ...] = ()  # most recent first

    @classmethod
    def from_codes(cls, codes: Iterable[str], window: int = 5) -> "FormRecord":
        return cls(tuple(MatchOutcome.parse(code) for code in list(codes)[:window]))

    def __len__(self) -> int:
        return len(self.results)


@dataclass(frozen=True)
class VenueRecord:
    team1_wins: int = 0
    team1_played: int = 0
    team2_wins: int = 0
    team2_played: int = 0

    @property
    def team1_win_pct(self) -> Optional[float]:
        return self.team1_wins / self.team1_played if self.team1_played > 0 else None

    @property
    def team2_win_pct(self) -> Optional[float]:
        return self.team2_wins / self.team2_played if self.team2_played > 0 else None

    def swapped(self) -> "VenueRecord":
        return VenueRecord(self.team2_wins, self.team2_played, self.team1_wins, self.team1_played)


@dataclass(frozen=True)
class PitchProfile:
    suited_for: Optional[PitchSuitedFor] = None
    surface: Optional[str] = None


@dataclass(frozen=True)
class MatchContext:
    team1: TeamProfile
    team2: TeamProfile
    fmt: MatchFormat = MatchFormat.T20
    head_to_head: Optional[HeadToHeadRecord] = None
    team1_form: Optional[FormRecord] = None
    team2_form: Optional[FormRecord] = None
    venue_record: Optional[VenueRecord] = None
    pitch: Optional[PitchProfile] = None
    venue_name: Optional[str] = None
    host_team_id: Optional[str] = None
    par_score: Optional[float] = None  # venue-specific first innings average

    @property
    def is_international(self) -> bool:
        return bool(self.team1 and self.team2 and self.team1.is_international and self.team2.is_international)

    @property
    def resolved_par_score(self) -> float:
        return float(self.par_score) if self.par_score else float(self.fmt.par_score)

    def swapped(self) -> "MatchContext":
        """The same fixture with team 1 and team 2 exchanged."""
        return replace(
            self,
            team1=self.team2,
            team2=self.team1,
            head_to_head=self.head_to_head.swapped() if self.head_to_head else None,
            team1_form=self.team2_form,
            team2_form=self.team1_form,
            venue_record=self.venue_record.swapped() if self.venue_record else None,
        )


@dataclass
class LiveState:
    innings: int
    batting_team_id: str
    runs: int = 0
    wickets: int = 0
    overs: float = 0.0  # cricket notation, 12.3 = 12 overs 3 balls
    target: Optional[int] = None

    @property
    def balls_bowled(self) -> int:
        return overs_to_balls(self.overs)

    @property
    def is_chase(self) -> bool:
        return self.innings >= 2


@dataclass(frozen=True)
class ProbabilityDetails:
    projected_score: Optional[int] = None
    par_score: Optional[int] = None
    crr: Optional[float] = None
    runs_needed: Optional[int] = None
    balls_remaining: Optional[int] = None
    rrr: Optional[float] = None

    def to_dict(self) -> Dict:
        return {
            key: value
            for key, value in (
                ("projectedScore", self.projected_score),
                ("parScore", self.par_score),
                ("crr", self.crr),
                ("runsNeeded", self.runs_needed),
                ("ballsRemaining", self.balls_remaining),
                ("rrr", self.rrr),
            )
            if value is not None
        }


@dataclass(frozen=True)
class StaticResult:
    team1: Optional[TeamProfile]
    team2: Optional[TeamProfile]
    team1_share: float
    team2_share: float
    factors: Dict[str, float] = field(default_factory=dict)
    has_identity: bool = True


@dataclass(frozen=True)
class LiveProjection:
    """Live adjustment for one snapshot; ``shift`` is in points for team 1.

    ``adjusted_share`` is team 1's share after the shift, clamped and rounded
    the same way the blended result is.
    """

    shift: float
    adjusted_share: int
    phase: Phase
    innings: int
    message: Optional[str] = None
    details: Optional[ProbabilityDetails] = None


@dataclass(frozen=True)
class ProbabilityResult:
    team1: TeamProfile
    team2: TeamProfile
    team1_share: int
    team2_share: int
    phase: Phase = Phase.PRE_MATCH
    message: Optional[str] = None
    details: Optional[ProbabilityDetails] = None
    factors: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "team1": {
                "id": self.team1.team_id if self.team1 else None,
                "name": self.team1.name if self.team1 else None,
                "probability": self.team1_share,
            },
            "team2": {
                "id": self.team2.team_id if self.team2 else None,
                "name": self.team2.name if self.team2 else None,
                "probability": self.team2_share,
            },
            "phase": self.phase.value,
            "message": self.message,
            "details": self.details.to_dict() if self.details else None,
            "factors": dict(self.factors),
        }
