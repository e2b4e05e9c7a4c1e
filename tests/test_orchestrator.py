"""
Test ensemble orchestration: blending, withdrawal, rebalancing and insolvency.
"""

import math

import pytest
import numpy as np
from models import AssetProcessConfig, SimulationParameters
from wealth_projection import Ensemble, SimulationOrchestrator, SimulationTimeoutError, walk_paths


class TestBlendedWalk:
    """Year-by-year walk with deterministic processes."""

    def test_deterministic_growth_and_rebalance(self, deterministic_assets):
        """Buckets compound at exp(5%) and exp(3%) then rebalance to 50/50."""
        params = SimulationParameters(starting_wealth=1000, years=2,
                                      annual_withdrawal=0, growth_asset_ratio=0.5)
        orch = SimulationOrchestrator(deterministic_assets, max_workers=1)
        paths = orch.run_ensemble(params, ensemble_size=3).paths

        year1 = 500 * math.exp(0.05) + 500 * math.exp(0.03)
        year2 = year1 / 2 * math.exp(0.05) + year1 / 2 * math.exp(0.03)
        for row in paths:
            np.testing.assert_allclose(row, [1000, year1, year2])

    def test_withdrawal_after_growth(self, deterministic_assets):
        """The flat withdrawal comes out of the grown total."""
        params = SimulationParameters(starting_wealth=1000, years=1,
                                      annual_withdrawal=100, growth_asset_ratio=1.0)
        orch = SimulationOrchestrator(deterministic_assets, max_workers=1)
        paths = orch.run_ensemble(params, ensemble_size=1).paths
        assert paths[0, 1] == pytest.approx(1000 * math.exp(0.05) - 100)

    def test_insolvency_zero_fills_remaining_years(self, deterministic_assets):
        """Once wealth drops to <= 0 the rest of the path is zero."""
        params = SimulationParameters(starting_wealth=100, years=6,
                                      annual_withdrawal=60, growth_asset_ratio=0.6)
        orch = SimulationOrchestrator(deterministic_assets, max_workers=1)
        row = orch.run_ensemble(params, ensemble_size=1).paths[0]

        assert row[1] > 0
        np.testing.assert_array_equal(row[2:], np.zeros(5))

    def test_exact_zero_is_insolvent(self):
        """A total of exactly zero counts as ruin even if later growth would help."""
        params = SimulationParameters(starting_wealth=100, years=3,
                                      annual_withdrawal=100, growth_asset_ratio=1.0)
        growth = np.ones((1, 4))
        rates = np.zeros((1, 4))
        wealth = walk_paths(growth, rates, params)
        np.testing.assert_array_equal(wealth[0], [100, 0, 0, 0])

    def test_sub_annual_paths_sampled_at_year_boundaries(self):
        """Growth uses the year-end/year-start ratio, income the rate at year start."""
        params = SimulationParameters(starting_wealth=100, years=1,
                                      annual_withdrawal=0, growth_asset_ratio=0.5)
        growth = np.array([[1.0, 3.0, 2.0]])
        rates = np.array([[0.1, 5.0, 5.0]])
        wealth = walk_paths(growth, rates, params, steps_per_year=2)
        assert wealth[0, 1] == pytest.approx(50 * 2.0 + 50 * math.exp(0.1))

    @pytest.mark.parametrize("ratio", [0.0, 1.0])
    def test_single_bucket_allocations(self, orchestrator, ratio):
        """All-income or all-growth portfolios stay finite."""
        params = SimulationParameters(starting_wealth=500_000, years=20,
                                      annual_withdrawal=10_000, growth_asset_ratio=ratio)
        paths = orchestrator.run_ensemble(params, ensemble_size=200).paths
        assert np.all(np.isfinite(paths))
        assert np.all(paths >= 0)

    def test_zero_starting_wealth(self, orchestrator):
        """No wealth means an all-zero ensemble, not an error."""
        params = SimulationParameters(starting_wealth=0, years=10, annual_withdrawal=0)
        paths = orchestrator.run_ensemble(params, ensemble_size=50).paths
        np.testing.assert_array_equal(paths, np.zeros((50, 11)))


class TestEnsembleInvariants:
    """Properties that hold for every ensemble."""

    def test_shape_and_start(self, orchestrator, retirement_params):
        """Every trajectory has years + 1 values starting at the starting wealth."""
        ensemble = orchestrator.run_ensemble(retirement_params, ensemble_size=1_200)
        assert ensemble.paths.shape == (1_200, 31)
        assert ensemble.size == 1_200
        assert ensemble.years == 30
        np.testing.assert_array_equal(ensemble.paths[:, 0], 1_000_000)

    def test_insolvency_is_absorbing(self, orchestrator):
        """After the first zero every later value is zero."""
        params = SimulationParameters(starting_wealth=1_000_000, years=40,
                                      annual_withdrawal=90_000, growth_asset_ratio=0.8)
        paths = orchestrator.run_ensemble(params, ensemble_size=2_000).paths

        hit = paths <= 0
        assert hit.any(), "scenario should produce some ruined paths"
        ever_hit = np.maximum.accumulate(hit, axis=1)
        np.testing.assert_array_equal(paths[ever_hit], 0)

    def test_values_never_negative(self, orchestrator, retirement_params):
        paths = orchestrator.run_ensemble(retirement_params, ensemble_size=1_000).paths
        assert np.all(paths >= 0)

    def test_ensemble_rejects_wrong_width(self, retirement_params):
        with pytest.raises(ValueError):
            Ensemble(retirement_params, np.zeros((5, 10)))

    def test_final_values_is_a_copy(self, orchestrator, retirement_params):
        ensemble = orchestrator.run_ensemble(retirement_params, ensemble_size=10)
        final = ensemble.final_values()
        final[:] = -1
        assert np.all(ensemble.paths[:, -1] >= 0)


class TestExecution:
    """Chunking, seeding, parallelism and deadlines."""

    def test_empty_ensemble(self, orchestrator, retirement_params):
        ensemble = orchestrator.run_ensemble(retirement_params, ensemble_size=0)
        assert ensemble.is_empty
        assert ensemble.paths.shape == (0, 31)

    def test_negative_ensemble_size(self, orchestrator, retirement_params):
        with pytest.raises(ValueError):
            orchestrator.run_ensemble(retirement_params, ensemble_size=-5)

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            SimulationOrchestrator(chunk_size=0)

    def test_seed_reproducibility(self, retirement_params):
        a = SimulationOrchestrator(max_workers=1, chunk_size=300, seed=11)
        b = SimulationOrchestrator(max_workers=1, chunk_size=300, seed=11)
        np.testing.assert_array_equal(
            a.run_ensemble(retirement_params, 1_000).paths,
            b.run_ensemble(retirement_params, 1_000).paths,
        )

    def test_run_seed_overrides_orchestrator_seed(self, orchestrator, retirement_params):
        a = orchestrator.run_ensemble(retirement_params, 100, seed=1).paths
        b = orchestrator.run_ensemble(retirement_params, 100, seed=2).paths
        assert not np.array_equal(a, b)

    def test_parallel_matches_sequential(self, retirement_params):
        """Worker count does not change a seeded ensemble."""
        seq = SimulationOrchestrator(max_workers=1, chunk_size=250, seed=3)
        par = SimulationOrchestrator(max_workers=2, chunk_size=250, seed=3)
        np.testing.assert_array_equal(
            seq.run_ensemble(retirement_params, 1_000).paths,
            par.run_ensemble(retirement_params, 1_000).paths,
        )

    def test_partial_last_chunk(self, orchestrator, retirement_params):
        ensemble = orchestrator.run_ensemble(retirement_params, ensemble_size=1_234)
        assert ensemble.size == 1_234

    def test_deadline_exceeded(self, retirement_params):
        orch = SimulationOrchestrator(max_workers=1, chunk_size=100, deadline_seconds=0)
        with pytest.raises(SimulationTimeoutError):
            orch.run_ensemble(retirement_params, ensemble_size=500)

    def test_default_asset_config(self):
        orch = SimulationOrchestrator(max_workers=1)
        assert orch.asset_config == AssetProcessConfig()
        assert orch.asset_config.growth.expected_return == 0.07
        assert orch.asset_config.income.long_run_mean == 0.05
