"""
Pydantic models for the longevity forecaster.
All data models and validation logic.
"""

import math
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint, confloat

from config import (
    BASE_LIFE_EXPECTANCY,
    DEFAULT_ANNUAL_WITHDRAWAL,
    DEFAULT_CURRENT_AGE,
    DEFAULT_GROWTH_ASSET_RATIO,
    DEFAULT_HEALTH_MULTIPLIER,
    DEFAULT_HORIZON_YEARS,
    DEFAULT_SIMULATIONS,
    GROWTH_EXPECTED_RETURN,
    GROWTH_VOLATILITY,
    INCOME_INITIAL_RATE,
    INCOME_LONG_RUN_MEAN,
    INCOME_RATE_VOLATILITY,
    INCOME_REVERSION_SPEED,
    MAX_SIMULATIONS,
    MIN_SIMULATIONS,
)


# ============================
# Simulation Inputs
# ============================
class SimulationParameters(BaseModel):
    """Household inputs for one projection run"""
    model_config = ConfigDict(frozen=True)

    starting_wealth: confloat(ge=0)
    years: conint(gt=0)
    annual_withdrawal: confloat(ge=0) = 0.0
    growth_asset_ratio: confloat(ge=0, le=1) = DEFAULT_GROWTH_ASSET_RATIO

    @property
    def income_asset_ratio(self) -> float:
        return 1.0 - self.growth_asset_ratio


# ============================
# Market Assumptions
# ============================
class GrowthProcess(BaseModel):
    """Geometric Brownian motion parameters for the growth bucket"""
    model_config = ConfigDict(frozen=True)

    expected_return: float = GROWTH_EXPECTED_RETURN
    volatility: confloat(ge=0) = GROWTH_VOLATILITY


class IncomeProcess(BaseModel):
    """Vasicek short-rate parameters for the income bucket"""
    model_config = ConfigDict(frozen=True)

    initial_rate: float = INCOME_INITIAL_RATE
    mean_reversion_speed: float = INCOME_REVERSION_SPEED
    long_run_mean: float = INCOME_LONG_RUN_MEAN
    rate_volatility: confloat(ge=0) = INCOME_RATE_VOLATILITY


class AssetProcessConfig(BaseModel):
    """Process parameters for both asset classes"""
    model_config = ConfigDict(frozen=True)

    growth: GrowthProcess = Field(default_factory=GrowthProcess)
    income: IncomeProcess = Field(default_factory=IncomeProcess)
    steps_per_year: conint(gt=0) = 1


# ============================
# Mortality & Estate Models
# ============================
class MortalityProfile(BaseModel):
    """Age and health adjustment used to derive an expected death age"""
    model_config = ConfigDict(frozen=True)

    current_age: conint(ge=0)
    health_multiplier: confloat(gt=0) = DEFAULT_HEALTH_MULTIPLIER

    def expected_death_age(self, base_life_expectancy: float = BASE_LIFE_EXPECTANCY) -> int:
        """Floor of base life expectancy scaled by health, never before current_age + 2."""
        age = math.floor(base_life_expectancy * self.health_multiplier)
        return max(age, self.current_age + 2)


class EstateBracket(BaseModel):
    """Jurisdiction estate tax terms assigned to a user"""
    exemption_threshold: confloat(ge=0)
    tax_rate_percentage: confloat(ge=0, le=100)


# ============================
# Derived Results
# ============================
class PercentileBands(BaseModel):
    """Per-year order statistics across an ensemble"""
    model_config = ConfigDict(frozen=True)

    percentiles: List[float]
    bands: List[List[float]]

    def band(self, percentile: float) -> List[float]:
        for p, values in zip(self.percentiles, self.bands):
            if p == percentile:
                return values
        raise KeyError(f"Percentile {percentile} not extracted. Available: {self.percentiles}")

    @property
    def low(self) -> List[float]:
        return self.bands[0]

    @property
    def median(self) -> List[float]:
        return self.band(50)

    @property
    def high(self) -> List[float]:
        return self.bands[-1]


class RiskAssessment(BaseModel):
    """Mortality-adjusted ruin probability"""
    model_config = ConfigDict(frozen=True)

    success_rate: float  # 0-100
    longevity_risk_score: float  # 100 - success_rate
    expected_death_age: int
    years_reviewed: int


class EstateTaxEvaluation(BaseModel):
    """Median-path estate tax exposure"""
    model_config = ConfigDict(frozen=True)

    exemption_threshold: float
    tax_rate: float
    breach_year: Optional[int] = None  # years from today, None if never breached
    expected_tax_burden_at_death: float = 0.0
    surviving_wealth: float = 0.0


# ============================
# Request & Response Models
# ============================
class ProjectionRequest(BaseModel):
    """Everything needed to project one household"""
    user_id: str = "anonymous"
    starting_wealth: confloat(ge=0)
    years: conint(gt=0) = DEFAULT_HORIZON_YEARS
    annual_withdrawal: confloat(ge=0) = DEFAULT_ANNUAL_WITHDRAWAL
    growth_asset_ratio: confloat(ge=0, le=1) = DEFAULT_GROWTH_ASSET_RATIO
    current_age: conint(ge=0) = DEFAULT_CURRENT_AGE
    health_multiplier: confloat(gt=0) = DEFAULT_HEALTH_MULTIPLIER
    ensemble_size: conint(ge=MIN_SIMULATIONS, le=MAX_SIMULATIONS) = DEFAULT_SIMULATIONS

    # Jurisdiction terms; None falls back to the stored bracket or defaults
    exemption_threshold: Optional[confloat(ge=0)] = None
    tax_rate: Optional[confloat(ge=0, le=1)] = None

    seed: Optional[int] = None  # fixed seed for reproducible runs

    def simulation_parameters(self) -> SimulationParameters:
        return SimulationParameters(
            starting_wealth=self.starting_wealth,
            years=self.years,
            annual_withdrawal=self.annual_withdrawal,
            growth_asset_ratio=self.growth_asset_ratio,
        )

    def mortality_profile(self) -> MortalityProfile:
        return MortalityProfile(
            current_age=self.current_age,
            health_multiplier=self.health_multiplier,
        )


class ProjectionSummary(BaseModel):
    """Results from a projection run, as persisted"""
    user_id: str
    run_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    parameters: SimulationParameters
    ensemble_size: int
    current_age: int
    risk: RiskAssessment
    estate: EstateTaxEvaluation
    percentiles: Optional[PercentileBands] = None  # None when the ensemble was empty
