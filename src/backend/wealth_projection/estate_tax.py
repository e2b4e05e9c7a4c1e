"""
Estate tax exposure of the median wealth path.
"""

from typing import Optional, Sequence, Tuple

from config import DEFAULT_ESTATE_TAX_RATE, DEFAULT_EXEMPTION_THRESHOLD
from models import EstateBracket, EstateTaxEvaluation


def resolve_estate_terms(bracket: Optional[EstateBracket]) -> Tuple[float, float]:
    """Exemption threshold and tax rate (fraction) for a user's bracket.

    Users without an assigned bracket get the statutory default exemption and
    the flat top-bracket rate.
    """
    if bracket is None:
        return DEFAULT_EXEMPTION_THRESHOLD, DEFAULT_ESTATE_TAX_RATE
    return bracket.exemption_threshold, bracket.tax_rate_percentage / 100


def evaluate_breach(median_band: Sequence[float], expected_death_year_offset: int,
                    exemption_threshold: float, tax_rate: float) -> EstateTaxEvaluation:
    """
    Find when the median path first exceeds the exemption and the tax owed at death.

    Args:
        median_band: Median wealth per year, index 0 = today
        expected_death_year_offset: Years from today to expected death;
                                    clamped into the band's range
        exemption_threshold: Wealth level below which no estate tax is owed
        tax_rate: Tax rate on the excess, as a fraction

    Returns:
        EstateTaxEvaluation; breach_year is None if the threshold is never exceeded
    """
    breach_year = None
    for year, value in enumerate(median_band):
        if value > exemption_threshold:
            breach_year = year
            break

    if len(median_band) == 0:
        value_at_death = 0.0
    else:
        idx = min(max(expected_death_year_offset, 0), len(median_band) - 1)
        value_at_death = float(median_band[idx])

    tax = 0.0
    if value_at_death > exemption_threshold:
        tax = (value_at_death - exemption_threshold) * tax_rate

    return EstateTaxEvaluation(
        exemption_threshold=exemption_threshold,
        tax_rate=tax_rate,
        breach_year=breach_year,
        expected_tax_burden_at_death=tax,
        surviving_wealth=value_at_death - tax,
    )
