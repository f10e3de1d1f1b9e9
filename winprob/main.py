import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from winprob.cache import cache, result_cache_key
from winprob.config import CORS_ORIGINS, PREDICTION_LIVE_TTL, PREDICTION_PRE_TTL, engine_config_from_env
from winprob.feature_store import InningsDataError, live_state_from_innings
from winprob.models import (
    FormRecord,
    HeadToHeadRecord,
    LiveState,
    MatchContext,
    MatchFormat,
    PitchProfile,
    PitchSuitedFor,
    TeamProfile,
    VenueRecord,
)
from winprob.phase_blender import compute_win_probability

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Cricket Win Probability", version="1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

engine_config = engine_config_from_env()


class TeamRequest(BaseModel):
    team_id: str
    name: str
    ranking: Optional[float] = None
    is_international: bool = False
    nationality: Optional[str] = None
    pedigree: Optional[float] = None


class HeadToHeadRequest(BaseModel):
    matches_played: int = 0
    team1_wins: int = 0
    team2_wins: int = 0
    draws: int = 0


class VenueRecordRequest(BaseModel):
    team1_wins: int = 0
    team1_played: int = 0
    team2_wins: int = 0
    team2_played: int = 0


class PitchRequest(BaseModel):
    suited_for: Optional[str] = None  # free text such as "Batting friendly"
    surface: Optional[str] = None


class MatchContextRequest(BaseModel):
    team1: TeamRequest
    team2: TeamRequest
    format: MatchFormat = MatchFormat.T20
    head_to_head: Optional[HeadToHeadRequest] = None
    team1_form: Optional[List[str]] = None
    team2_form: Optional[List[str]] = None
    venue_record: Optional[VenueRecordRequest] = None
    pitch: Optional[PitchRequest] = None
    venue_name: Optional[str] = None
    host_team_id: Optional[str] = None
    par_score: Optional[float] = None


class LiveStateRequest(BaseModel):
    innings: int = Field(1, ge=1)
    batting_team_id: str
    runs: int = Field(0, ge=0)
    wickets: int = Field(0, ge=0, le=10)
    overs: float = Field(0.0, ge=0)
    target: Optional[int] = Field(None, gt=0)


class WinProbabilityRequest(BaseModel):
    context: MatchContextRequest
    live: Optional[LiveStateRequest] = None
    innings: Optional[List[Dict[str, Any]]] = None  # raw scorecard innings, used when live is absent


def _team(team: TeamRequest) -> TeamProfile:
    return TeamProfile(
        team_id=team.team_id,
        name=team.name,
        ranking=team.ranking,
        is_international=team.is_international,
        nationality=team.nationality,
        pedigree=team.pedigree,
    )


def _to_context(request: MatchContextRequest) -> MatchContext:
    h2h = request.head_to_head
    venue = request.venue_record
    pitch = request.pitch
    return MatchContext(
        team1=_team(request.team1),
        team2=_team(request.team2),
        fmt=request.format,
        head_to_head=HeadToHeadRecord(h2h.matches_played, h2h.team1_wins, h2h.team2_wins, h2h.draws) if h2h else None,
        team1_form=FormRecord.from_codes(request.team1_form) if request.team1_form is not None else None,
        team2_form=FormRecord.from_codes(request.team2_form) if request.team2_form is not None else None,
        venue_record=VenueRecord(venue.team1_wins, venue.team1_played, venue.team2_wins, venue.team2_played) if venue else None,
        pitch=PitchProfile(PitchSuitedFor.from_label(pitch.suited_for), pitch.surface) if pitch else None,
        venue_name=request.venue_name,
        host_team_id=request.host_team_id,
        par_score=request.par_score,
    )


def _to_live(request: WinProbabilityRequest) -> Optional[LiveState]:
    if request.live:
        live = request.live
        return LiveState(
            innings=live.innings,
            batting_team_id=live.batting_team_id,
            runs=live.runs,
            wickets=live.wickets,
            overs=live.overs,
            target=live.target,
        )
    if request.innings:
        team_ids = {
            request.context.team1.name: request.context.team1.team_id,
            request.context.team2.name: request.context.team2.team_id,
        }
        try:
            return live_state_from_innings(request.innings, request.context.format, team_ids)
        except InningsDataError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
    return None


@app.post("/win-probability")
def win_probability(request: WinProbabilityRequest):
    context = _to_context(request.context)
    live = _to_live(request)
    ttl = PREDICTION_LIVE_TTL if live else PREDICTION_PRE_TTL
    key = result_cache_key(request.model_dump(mode="json"))
    logger.info("Win probability requested: %s vs %s live=%s",
                context.team1.name, context.team2.name, live is not None)
    return cache.get_or_set(key, ttl, lambda: compute_win_probability(context, live, engine_config).to_dict())


@app.get("/config")
def get_config():
    return engine_config.as_dict()
