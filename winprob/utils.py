# utils.py
import math
from typing import Tuple

from winprob.config import EngineConfig


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def overs_to_balls(overs: float) -> int:
    """Convert cricket overs notation (12.3 = 12 overs and 3 balls) to balls."""
    if not overs or overs <= 0:
        return 0
    overs_int = int(overs)
    balls_in_over = int(round((overs - overs_int) * 10))
    return overs_int * 6 + min(balls_in_over, 5)


def balls_to_overs(balls: int) -> float:
    """Decimal overs (12.5 for 75 balls), as used in run-rate arithmetic."""
    return balls / 6.0


def share_bounds(config: EngineConfig) -> Tuple[float, float]:
    # Tighter of the two bounds so both teams stay inside [floor, ceiling].
    low = max(config.probability_floor, 100.0 - config.probability_ceiling)
    high = min(config.probability_ceiling, 100.0 - config.probability_floor)
    return low, high


def reconcile_shares(team1_share: float, config: EngineConfig) -> Tuple[int, int]:
    """Clamp team 1's share, round it to a whole point and give team 2 the rest."""
    low, high = share_bounds(config)
    rounded = int(round(clamp(team1_share, low, high)))
    rounded = int(clamp(rounded, math.ceil(low), math.floor(high)))
    return rounded, 100 - rounded
