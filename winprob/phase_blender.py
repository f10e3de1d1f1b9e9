from __future__ import annotations

import logging
from typing import Optional

from winprob.config import EngineConfig
from winprob.live_projector import project_live
from winprob.models import LiveProjection, LiveState, MatchContext, Phase, ProbabilityResult, StaticResult
from winprob.static_scorer import score_static
from winprob.utils import reconcile_shares

logger = logging.getLogger(__name__)


def blend(static: StaticResult, live: Optional[LiveProjection],
          config: Optional[EngineConfig] = None) -> ProbabilityResult:
    """Merge the pre-match prior with the live adjustment for the current innings.

    The live shift is added on top of the static share so rankings, home
    advantage and the rest keep counting once play starts. Shares are
    re-clamped and rounded so they always sum to 100.
    """
    config = config or EngineConfig()

    if not static.has_identity:
        return ProbabilityResult(team1=static.team1, team2=static.team2, team1_share=50, team2_share=50)

    if live is None:
        team1_share, team2_share = reconcile_shares(static.team1_share, config)
        return ProbabilityResult(
            team1=static.team1,
            team2=static.team2,
            team1_share=team1_share,
            team2_share=team2_share,
            phase=Phase.PRE_MATCH,
            factors=dict(static.factors),
        )

    team1_share, team2_share = reconcile_shares(static.team1_share + live.shift, config)
    logger.info("Blend: innings=%d phase=%s static=%.2f shift=%.2f final=%d/%d",
                live.innings, live.phase.value, static.team1_share, live.shift, team1_share, team2_share)
    return ProbabilityResult(
        team1=static.team1,
        team2=static.team2,
        team1_share=team1_share,
        team2_share=team2_share,
        phase=live.phase,
        message=live.message,
        details=live.details,
        factors=dict(static.factors),
    )


def compute_win_probability(context: MatchContext, live: Optional[LiveState] = None,
                            config: Optional[EngineConfig] = None) -> ProbabilityResult:
    """Win probability for both teams from the match context and, once play starts, the live state."""
    config = config or EngineConfig()
    static = score_static(context, config)
    if not static.has_identity or live is None:
        return blend(static, None, config)
    return blend(static, project_live(context, live, config, static=static), config)
