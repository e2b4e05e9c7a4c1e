"""
Stochastic wealth projection: path generation, ensemble simulation, percentile
bands, longevity risk and estate tax breach analysis.
"""

from .paths import PathGenerator
from .engine import Ensemble, SimulationOrchestrator, SimulationTimeoutError, walk_paths
from .percentiles import extract_percentiles
from .longevity import LongevityRiskAssessor
from .estate_tax import evaluate_breach, resolve_estate_terms
from .pipeline import BatchReport, ProjectionPipeline, run_nightly_batch

__all__ = [
    'PathGenerator',
    'Ensemble',
    'SimulationOrchestrator',
    'SimulationTimeoutError',
    'walk_paths',
    'extract_percentiles',
    'LongevityRiskAssessor',
    'evaluate_breach',
    'resolve_estate_terms',
    'BatchReport',
    'ProjectionPipeline',
    'run_nightly_batch',
]
