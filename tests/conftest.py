"""
Shared fixtures for wealth projection testing.
"""

import sys
import os
import pytest
import numpy as np

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src', 'backend'))

from models import AssetProcessConfig, GrowthProcess, IncomeProcess, SimulationParameters
from wealth_projection import PathGenerator, SimulationOrchestrator


@pytest.fixture
def rng():
    """Fixed-seed generator for reproducible draws."""
    return np.random.default_rng(20240601)


@pytest.fixture
def generator(rng):
    """Path generator over the seeded generator."""
    return PathGenerator(rng)


@pytest.fixture
def retirement_params():
    """Classic 4% rule household: $1M, 30 years, 60/40."""
    return SimulationParameters(
        starting_wealth=1_000_000,
        years=30,
        annual_withdrawal=40_000,
        growth_asset_ratio=0.6,
    )


@pytest.fixture
def deterministic_assets():
    """Zero-volatility processes with a flat 5% growth drift and 3% rate."""
    return AssetProcessConfig(
        growth=GrowthProcess(expected_return=0.05, volatility=0.0),
        income=IncomeProcess(initial_rate=0.03, mean_reversion_speed=0.0,
                             long_run_mean=0.03, rate_volatility=0.0),
    )


@pytest.fixture
def orchestrator():
    """In-process, seeded orchestrator with small chunks."""
    return SimulationOrchestrator(max_workers=1, chunk_size=500, seed=7)


@pytest.fixture
def tolerance():
    """Tolerance for statistical tests."""
    return {
        "mean": 0.02,  # absolute tolerance for sample means
        "std": 0.03,  # absolute tolerance for sample standard deviations
        "ks_pvalue": 0.001,  # minimum KS p-value for normality
    }
