"""
Monte Carlo orchestration for blended growth/income wealth trajectories.
"""

import logging
import time
from concurrent.futures import ProcessPoolExecutor, wait
from concurrent.futures.process import BrokenProcessPool
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from config import CHUNK_SIZE, DEFAULT_SIMULATIONS, SIMULATION_WORKERS, USE_PARALLEL_PROCESSING
from models import AssetProcessConfig, SimulationParameters
from .paths import PathGenerator

logger = logging.getLogger(__name__)


class SimulationTimeoutError(RuntimeError):
    """Raised when an ensemble does not finish before its deadline."""


@dataclass
class Ensemble:
    """All simulated trajectories for one parameter set.

    ``paths`` has shape (N, years + 1); row i is trajectory i and column 0 is
    the starting wealth.
    """
    params: SimulationParameters
    paths: np.ndarray

    def __post_init__(self):
        expected = self.params.years + 1
        if self.paths.ndim != 2 or self.paths.shape[1] != expected:
            raise ValueError(
                f"Ensemble paths must have shape (N, {expected}), got {self.paths.shape}"
            )

    @property
    def size(self) -> int:
        return self.paths.shape[0]

    @property
    def years(self) -> int:
        return self.params.years

    @property
    def is_empty(self) -> bool:
        return self.size == 0

    def final_values(self) -> np.ndarray:
        return self.paths[:, -1].copy()


def walk_paths(growth_paths: np.ndarray, rate_paths: np.ndarray,
               params: SimulationParameters, steps_per_year: int = 1) -> np.ndarray:
    """
    Blend growth and rate paths into wealth trajectories.

    Each year the growth bucket moves by the ratio of consecutive growth-path
    values and the income bucket compounds at exp(rate) using the rate at the
    start of the year. The flat withdrawal comes out of the total, which is then
    rebalanced to the target ratio. A path whose total falls to <= 0 becomes
    insolvent: it records zero for that year and is never simulated again.

    Args:
        growth_paths: (N, years * steps_per_year + 1) GBM levels
        rate_paths: (N, years * steps_per_year + 1) short rates
        params: Household simulation parameters
        steps_per_year: Resolution of the input paths

    Returns:
        (N, years + 1) wealth matrix
    """
    n_paths = growth_paths.shape[0]
    years = params.years
    growth_ratio = params.growth_asset_ratio
    income_ratio = params.income_asset_ratio

    wealth = np.zeros((n_paths, years + 1))
    wealth[:, 0] = params.starting_wealth

    growth = np.full(n_paths, params.starting_wealth * growth_ratio)
    income = np.full(n_paths, params.starting_wealth * income_ratio)
    solvent = np.ones(n_paths, dtype=bool)

    for year in range(1, years + 1):
        active = np.flatnonzero(solvent)
        if active.size == 0:
            break

        start = (year - 1) * steps_per_year
        end = year * steps_per_year
        growth_factor = growth_paths[active, end] / growth_paths[active, start]
        income_factor = np.exp(rate_paths[active, start])

        total = growth[active] * growth_factor + income[active] * income_factor
        total -= params.annual_withdrawal

        # Insolvent rows keep their zero-filled remainder
        ruined = total <= 0
        solvent[active[ruined]] = False

        survivors = active[~ruined]
        remaining = total[~ruined]
        wealth[survivors, year] = remaining
        growth[survivors] = remaining * growth_ratio
        income[survivors] = remaining * income_ratio

    return wealth


def _simulate_chunk(params: SimulationParameters, asset_config: AssetProcessConfig,
                    n_paths: int, seed_seq: np.random.SeedSequence) -> np.ndarray:
    """Simulate one chunk of independent paths with its own generator."""
    gen = PathGenerator(np.random.default_rng(seed_seq))
    growth = asset_config.growth
    income = asset_config.income
    spy = asset_config.steps_per_year

    # Only consecutive ratios matter, so paths start from a unit level
    growth_paths = gen.generate_growth_paths(
        n_paths, 1.0, growth.expected_return, growth.volatility, params.years, spy
    )
    rate_paths = gen.generate_rate_paths(
        n_paths, income.initial_rate, income.mean_reversion_speed,
        income.long_run_mean, income.rate_volatility, params.years, spy
    )
    return walk_paths(growth_paths, rate_paths, params, spy)


class SimulationOrchestrator:
    """Runs ensembles of blended wealth trajectories.

    Paths are independent, so the ensemble is split into chunks that are
    simulated in worker processes and gathered in order once all complete.
    Each chunk draws from a child of one ``SeedSequence``; a fixed seed gives
    the same ensemble regardless of the number of workers.
    """

    def __init__(self,
                 asset_config: Optional[AssetProcessConfig] = None,
                 max_workers: Optional[int] = None,
                 chunk_size: int = CHUNK_SIZE,
                 seed: Optional[int] = None,
                 deadline_seconds: Optional[float] = None):
        """
        Args:
            asset_config: Process parameters for both buckets. Defaults from config.
            max_workers: Worker processes; 1 runs in-process. Defaults to
                         SIMULATION_WORKERS when parallel processing is enabled.
            chunk_size: Paths per worker task
            seed: Root seed for reproducible ensembles. None draws fresh entropy.
            deadline_seconds: Abort with SimulationTimeoutError after this long.
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {chunk_size}")
        if max_workers is None:
            max_workers = SIMULATION_WORKERS if USE_PARALLEL_PROCESSING else 1
        self.asset_config = asset_config or AssetProcessConfig()
        self.max_workers = max(1, max_workers)
        self.chunk_size = chunk_size
        self.seed = seed
        self.deadline_seconds = deadline_seconds

    def _chunk_sizes(self, ensemble_size: int) -> List[int]:
        full, rest = divmod(ensemble_size, self.chunk_size)
        sizes = [self.chunk_size] * full
        if rest:
            sizes.append(rest)
        return sizes

    def run_ensemble(self, params: SimulationParameters,
                     ensemble_size: int = DEFAULT_SIMULATIONS,
                     seed: Optional[int] = None) -> Ensemble:
        """
        Simulate ``ensemble_size`` independent trajectories.

        Args:
            params: Household simulation parameters
            ensemble_size: Number of paths; 0 yields an empty ensemble
            seed: Overrides the orchestrator seed for this run

        Returns:
            Ensemble with paths of shape (ensemble_size, years + 1)
        """
        if ensemble_size < 0:
            raise ValueError(f"ensemble_size cannot be negative: {ensemble_size}")
        if ensemble_size == 0:
            logger.info("Empty ensemble requested; skipping simulation")
            return Ensemble(params, np.zeros((0, params.years + 1)))

        sizes = self._chunk_sizes(ensemble_size)
        root = np.random.SeedSequence(seed if seed is not None else self.seed)
        seeds = root.spawn(len(sizes))

        logger.info(
            "Running %d paths over %d years in %d chunks (workers=%d)",
            ensemble_size, params.years, len(sizes), self.max_workers,
        )
        started = time.monotonic()

        if self.max_workers > 1 and len(sizes) > 1:
            try:
                chunks = self._run_parallel(params, sizes, seeds, started)
            except (OSError, BrokenProcessPool) as e:
                logger.warning("Parallel execution failed (%s); falling back to sequential", e)
                chunks = self._run_sequential(params, sizes, seeds, started)
        else:
            chunks = self._run_sequential(params, sizes, seeds, started)

        paths = np.vstack(chunks)
        logger.info("Ensemble complete in %.2fs", time.monotonic() - started)
        return Ensemble(params, paths)

    def _remaining(self, started: float) -> Optional[float]:
        if self.deadline_seconds is None:
            return None
        return self.deadline_seconds - (time.monotonic() - started)

    def _run_sequential(self, params, sizes, seeds, started) -> List[np.ndarray]:
        chunks = []
        for i, (n, ss) in enumerate(zip(sizes, seeds)):
            remaining = self._remaining(started)
            if remaining is not None and remaining <= 0:
                raise SimulationTimeoutError(
                    f"Deadline of {self.deadline_seconds}s passed after {i}/{len(sizes)} chunks"
                )
            chunks.append(_simulate_chunk(params, self.asset_config, n, ss))
            logger.debug("Chunk %d/%d done (%d paths)", i + 1, len(sizes), n)
        return chunks

    def _run_parallel(self, params, sizes, seeds, started) -> List[np.ndarray]:
        workers = min(self.max_workers, len(sizes))
        executor = ProcessPoolExecutor(max_workers=workers)
        timed_out = False
        try:
            futures = [
                executor.submit(_simulate_chunk, params, self.asset_config, n, ss)
                for n, ss in zip(sizes, seeds)
            ]
            remaining = self._remaining(started)
            done, not_done = wait(futures, timeout=None if remaining is None else max(remaining, 0.0))
            if not_done:
                timed_out = True
                raise SimulationTimeoutError(
                    f"Deadline of {self.deadline_seconds}s passed with "
                    f"{len(not_done)}/{len(futures)} chunks outstanding"
                )
            return [f.result() for f in futures]
        finally:
            # Don't block on running chunks once the deadline has passed
            executor.shutdown(wait=not timed_out, cancel_futures=True)
