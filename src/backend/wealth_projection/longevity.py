"""
Longevity risk: the probability of running out of money before expected death.
"""

import logging

import numpy as np

from config import BASE_LIFE_EXPECTANCY, MAX_AGE
from models import MortalityProfile, RiskAssessment
from .engine import Ensemble

logger = logging.getLogger(__name__)


class LongevityRiskAssessor:
    """Scores ruin probability against a mortality-adjusted horizon.

    The expected death age is a flat floor(base * health_multiplier), never
    earlier than current_age + 2. A path counts as a failure if its wealth
    touches zero in any year up to the years the household is expected to live
    (capped at MAX_AGE and at the simulated horizon).
    """

    def __init__(self, base_life_expectancy: float = BASE_LIFE_EXPECTANCY,
                 max_age: int = MAX_AGE):
        self.base_life_expectancy = base_life_expectancy
        self.max_age = max_age

    def evaluate_risk(self, ensemble: Ensemble, mortality: MortalityProfile) -> RiskAssessment:
        """
        Args:
            ensemble: Simulated wealth trajectories
            mortality: Current age and health multiplier

        Returns:
            RiskAssessment with success rate and longevity risk score in 0-100
        """
        expected_death_age = mortality.expected_death_age(self.base_life_expectancy)
        years_to_live = min(self.max_age - mortality.current_age,
                            expected_death_age - mortality.current_age)
        years_reviewed = max(0, min(years_to_live, ensemble.years))

        total = ensemble.size
        if total == 0:
            logger.info("No trajectories to assess; reporting zero success")
            return RiskAssessment(
                success_rate=0.0,
                longevity_risk_score=100.0,
                expected_death_age=expected_death_age,
                years_reviewed=years_reviewed,
            )

        # Insolvency is absorbing, so first touch within the window == any touch
        window = ensemble.paths[:, 1:years_reviewed + 1]
        failures = int(np.any(window <= 0, axis=1).sum())

        success_rate = (total - failures) / total * 100
        return RiskAssessment(
            success_rate=success_rate,
            longevity_risk_score=100 - success_rate,
            expected_death_age=expected_death_age,
            years_reviewed=years_reviewed,
        )
