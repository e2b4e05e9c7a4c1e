"""
End-to-end household projection and the nightly batch driver.

One projection runs the full chain: ensemble simulation, percentile bands,
longevity risk, then estate tax exposure of the median path at expected death.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Sequence

from config import DEFAULT_PERCENTILES
from models import EstateBracket, ProjectionRequest, ProjectionSummary
from .engine import SimulationOrchestrator
from .estate_tax import evaluate_breach, resolve_estate_terms
from .longevity import LongevityRiskAssessor
from .percentiles import extract_percentiles

if TYPE_CHECKING:
    from database import ResultsStore

logger = logging.getLogger(__name__)


class ProjectionPipeline:
    """Runs the five projection stages for one household."""

    def __init__(self,
                 orchestrator: Optional[SimulationOrchestrator] = None,
                 assessor: Optional[LongevityRiskAssessor] = None,
                 percentiles: Sequence[float] = DEFAULT_PERCENTILES):
        if 50 not in percentiles:
            raise ValueError("percentiles must include the median (50)")
        self.orchestrator = orchestrator or SimulationOrchestrator()
        self.assessor = assessor or LongevityRiskAssessor()
        self.percentiles = tuple(percentiles)

    def project(self, request: ProjectionRequest,
                bracket: Optional[EstateBracket] = None) -> ProjectionSummary:
        """
        Project one household.

        Args:
            request: Household inputs. Explicit exemption_threshold / tax_rate
                     take precedence over ``bracket``.
            bracket: Stored jurisdiction bracket; defaults apply when None.

        Returns:
            ProjectionSummary ready to persist
        """
        params = request.simulation_parameters()
        mortality = request.mortality_profile()

        ensemble = self.orchestrator.run_ensemble(params, request.ensemble_size, seed=request.seed)
        bands = extract_percentiles(ensemble, self.percentiles)
        risk = self.assessor.evaluate_risk(ensemble, mortality)

        threshold, rate = resolve_estate_terms(bracket)
        if request.exemption_threshold is not None:
            threshold = request.exemption_threshold
        if request.tax_rate is not None:
            rate = request.tax_rate

        death_offset = max(0, risk.expected_death_age - mortality.current_age)
        median = bands.median if bands is not None else []
        estate = evaluate_breach(median, death_offset, threshold, rate)

        return ProjectionSummary(
            user_id=request.user_id,
            parameters=params,
            ensemble_size=ensemble.size,
            current_age=mortality.current_age,
            risk=risk,
            estate=estate,
            percentiles=bands,
        )


@dataclass
class BatchReport:
    """Outcome counts for one batch run"""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: Dict[str, str] = field(default_factory=dict)
    duration_s: float = 0.0


def run_nightly_batch(requests: Iterable[ProjectionRequest],
                      pipeline: Optional[ProjectionPipeline] = None,
                      store: Optional["ResultsStore"] = None) -> BatchReport:
    """
    Project every household in turn.

    Stored mortality assumptions and estate brackets override the request
    values when a store is given; missing rows fall back to the request and
    the statutory defaults. A failing household is logged and skipped so the
    rest of the batch still runs.
    """
    pipeline = pipeline or ProjectionPipeline()
    report = BatchReport()
    started = time.monotonic()
    logger.info("Starting nightly longevity forecast")

    for request in requests:
        report.total += 1
        try:
            bracket = None
            if store is not None:
                profile = store.load_mortality_profile(request.user_id)
                if profile is not None:
                    request = request.model_copy(update={
                        "current_age": profile.current_age,
                        "health_multiplier": profile.health_multiplier,
                    })
                else:
                    logger.info("No mortality assumptions for %s; using defaults", request.user_id)
                bracket = store.load_estate_bracket(request.user_id)
                if bracket is None:
                    logger.info("No estate bracket for %s; using statutory defaults", request.user_id)

            summary = pipeline.project(request, bracket)
            if store is not None:
                store.save_summary(summary)

            report.succeeded += 1
            logger.info(
                "Projected %s: success %.1f%%, breach year %s",
                request.user_id, summary.risk.success_rate, summary.estate.breach_year,
            )
        except Exception as e:
            report.failed += 1
            report.errors[request.user_id] = str(e)
            logger.exception("Projection failed for %s", request.user_id)

    report.duration_s = time.monotonic() - started
    logger.info(
        "Nightly forecast complete: %d succeeded, %d failed in %.1fs",
        report.succeeded, report.failed, report.duration_s,
    )
    return report
