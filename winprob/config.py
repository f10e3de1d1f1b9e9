import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() in {"1", "true", "yes"}
REDIS_URL = os.getenv("REDIS_URL")
CACHE_NAMESPACE = os.getenv("CACHE_NAMESPACE", "winprob")
CACHE_VERSION = os.getenv("CACHE_VERSION", "v1")
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "2048"))

PREDICTION_PRE_TTL = int(os.getenv("PREDICTION_PRE_TTL", "120"))
PREDICTION_LIVE_TTL = int(os.getenv("PREDICTION_LIVE_TTL", "8"))  # roughly one poll of the live scorecard

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if origin.strip()]


@dataclass(frozen=True)
class FactorWeights:
    ranking: float = 0.0
    h2h: float = 0.0
    form: float = 0.0
    venue: float = 0.0
    pitch: float = 0.0
    home: float = 0.0
    pedigree: float = 0.0

    def __post_init__(self):
        for name, value in self.as_dict().items():
            if value < 0:
                raise ValueError(f"Weight '{name}' must not be negative, got {value}")

    def as_dict(self) -> dict:
        return {
            "ranking": self.ranking,
            "h2h": self.h2h,
            "form": self.form,
            "venue": self.venue,
            "pitch": self.pitch,
            "home": self.home,
            "pedigree": self.pedigree,
        }


INTERNATIONAL_WEIGHTS = FactorWeights(ranking=0.20, h2h=0.20, form=0.15, venue=0.10, pitch=0.15, home=0.10)
# Franchise rankings are not meaningful; pedigree stands in for them.
FRANCHISE_WEIGHTS = FactorWeights(h2h=0.25, form=0.25, venue=0.15, pitch=0.15, home=0.10, pedigree=0.10)


@dataclass(frozen=True)
class EngineConfig:
    """Tunable constants of the win probability engine.

    ``home_advantage_bonus`` is the point shift the host team receives when
    every weighted factor is available; like the other factors it scales up
    when missing factors have their weight redistributed.
    """

    international_weights: FactorWeights = field(default_factory=lambda: INTERNATIONAL_WEIGHTS)
    franchise_weights: FactorWeights = field(default_factory=lambda: FRANCHISE_WEIGHTS)
    probability_floor: float = 5.0
    probability_ceiling: float = 95.0
    home_advantage_bonus: float = 5.0

    def __post_init__(self):
        if not 0.0 <= self.probability_floor < 50.0:
            raise ValueError(f"probability_floor must be in [0, 50), got {self.probability_floor}")
        if not 50.0 < self.probability_ceiling <= 100.0:
            raise ValueError(f"probability_ceiling must be in (50, 100], got {self.probability_ceiling}")
        if self.home_advantage_bonus < 0:
            raise ValueError(f"home_advantage_bonus must not be negative, got {self.home_advantage_bonus}")

    def as_dict(self) -> dict:
        return {
            "international_weights": self.international_weights.as_dict(),
            "franchise_weights": self.franchise_weights.as_dict(),
            "probability_floor": self.probability_floor,
            "probability_ceiling": self.probability_ceiling,
            "home_advantage_bonus": self.home_advantage_bonus,
        }


def engine_config_from_env() -> EngineConfig:
    return EngineConfig(
        probability_floor=float(os.getenv("WINPROB_PROBABILITY_FLOOR", "5.0")),
        probability_ceiling=float(os.getenv("WINPROB_PROBABILITY_CEILING", "95.0")),
        home_advantage_bonus=float(os.getenv("WINPROB_HOME_ADVANTAGE_BONUS", "5.0")),
    )
