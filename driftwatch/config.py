"""
DriftWatch Configuration

Central settings loaded from environment variables.
Scoring weights are tunable defaults, not fixed constants.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _csv(value: str) -> tuple:
    return tuple(p.strip().lower() for p in value.split(",") if p.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Versioning ---
    ENGINE_VERSION: str = "1.0.0"

    # --- AI Providers ---
    PROVIDERS: tuple = _csv(os.getenv("DRIFTWATCH_PROVIDERS", "anthropic,gemini"))
    PREFERRED_PROVIDER: str = os.getenv("DRIFTWATCH_PREFERRED_PROVIDER", "anthropic")
    AI_TIMEOUT_S: float = float(os.getenv("DRIFTWATCH_AI_TIMEOUT_S", "30"))
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-latest")
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # --- Scoring ---
    CAPTURE_WEIGHT: float = float(os.getenv("DRIFTWATCH_CAPTURE_WEIGHT", "4"))
    DRIFT_WEIGHT: float = float(os.getenv("DRIFTWATCH_DRIFT_WEIGHT", "2"))
    WARNING_WEIGHT: float = float(os.getenv("DRIFTWATCH_WARNING_WEIGHT", "1"))
    HALF_LIFE_WEEKS: float = float(os.getenv("DRIFTWATCH_HALF_LIFE_WEEKS", "8"))

    # --- Coverage ---
    COVERAGE_FULL_AT: int = int(os.getenv("DRIFTWATCH_COVERAGE_FULL_AT", "10"))

    # --- Storage / Cache ---
    STORE_PATH: str = os.getenv("DRIFTWATCH_STORE_PATH", "driftwatch.db")
    CACHE_TTL_S: int = int(os.getenv("DRIFTWATCH_CACHE_TTL_S", str(6 * 60 * 60)))

    def scoring_weights(self):
        """Build the ScoringWeights used by the scorer from these settings."""
        from driftwatch.scorer import ScoringWeights
        return ScoringWeights(
            capture_weight=self.CAPTURE_WEIGHT,
            drift_weight=self.DRIFT_WEIGHT,
            warning_weight=self.WARNING_WEIGHT,
            half_life_weeks=self.HALF_LIFE_WEEKS,
        )


settings = Settings()
