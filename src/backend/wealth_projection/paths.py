"""
Stochastic path generation for the two asset buckets.

Growth assets follow geometric Brownian motion using its exact solution, so
values stay strictly positive. Income assets are driven by a Vasicek short rate
discretized with Euler-Maruyama; the rate is not clamped and may go negative.
Normal draws come from a Box-Muller transform over the injected generator.
"""

from typing import Optional, Tuple, Union

import numpy as np


def _validate_horizon(years: int, steps_per_year: int) -> None:
    if years <= 0:
        raise ValueError(f"years must be > 0, got {years}")
    if steps_per_year <= 0:
        raise ValueError(f"steps_per_year must be > 0, got {steps_per_year}")


def _validate_volatility(name: str, value: float) -> None:
    if value < 0:
        raise ValueError(f"{name} cannot be negative: {value}")


class PathGenerator:
    """Generates GBM growth paths and Vasicek rate paths.

    Example:
        >>> gen = PathGenerator(np.random.default_rng(42))
        >>> gen.generate_growth_path(100.0, 0.05, 0.0, years=2)
        array([100.        , 105.12710964, 110.51709181])
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        """
        Args:
            rng: Source of uniform draws. A fresh entropy-seeded generator is
                 used when omitted.
        """
        self.rng = rng if rng is not None else np.random.default_rng()

    # ============================
    # Normal Sampling
    # ============================
    def _open_uniform(self, size: Union[int, Tuple[int, ...]]) -> np.ndarray:
        """Uniform draws on (0, 1); exact zeros are redrawn."""
        u = self.rng.random(size)
        zeros = u == 0.0
        while zeros.any():
            u[zeros] = self.rng.random(int(zeros.sum()))
            zeros = u == 0.0
        return u

    def standard_normal_sample(self) -> float:
        """Return one N(0, 1) draw via Box-Muller."""
        u = 0.0
        while u == 0.0:
            u = self.rng.random()
        v = 0.0
        while v == 0.0:
            v = self.rng.random()
        return float(np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v))

    def standard_normal(self, size: Union[int, Tuple[int, ...]]) -> np.ndarray:
        """Array of N(0, 1) draws via Box-Muller."""
        u = self._open_uniform(size)
        v = self._open_uniform(size)
        return np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v)

    # ============================
    # Growth Asset (GBM)
    # ============================
    def generate_growth_paths(self, n_paths: int, initial_value: float,
                              expected_return: float, volatility: float,
                              years: int, steps_per_year: int = 1) -> np.ndarray:
        """
        Generate independent GBM paths.

        S(t+dt) = S(t) * exp((mu - sigma^2 / 2) * dt + sigma * sqrt(dt) * Z)

        Args:
            n_paths: Number of independent paths
            initial_value: Value at index 0 of every path
            expected_return: Annualized drift (mu)
            volatility: Annualized volatility (sigma), >= 0
            years: Horizon in years, > 0
            steps_per_year: Time steps per year, > 0

        Returns:
            Array of shape (n_paths, years * steps_per_year + 1)
        """
        _validate_horizon(years, steps_per_year)
        _validate_volatility("volatility", volatility)
        if n_paths < 0:
            raise ValueError(f"n_paths cannot be negative: {n_paths}")

        dt = 1.0 / steps_per_year
        total_steps = years * steps_per_year
        drift = (expected_return - 0.5 * volatility ** 2) * dt
        shock = volatility * np.sqrt(dt)

        if shock > 0:
            log_steps = drift + shock * self.standard_normal((n_paths, total_steps))
        else:
            # Zero volatility: deterministic compounding
            log_steps = np.full((n_paths, total_steps), drift)

        log_levels = np.zeros((n_paths, total_steps + 1))
        np.cumsum(log_steps, axis=1, out=log_levels[:, 1:])
        return initial_value * np.exp(log_levels)

    def generate_growth_path(self, initial_value: float, expected_return: float,
                             volatility: float, years: int,
                             steps_per_year: int = 1) -> np.ndarray:
        """Single GBM path of length years * steps_per_year + 1."""
        return self.generate_growth_paths(
            1, initial_value, expected_return, volatility, years, steps_per_year
        )[0]

    # ============================
    # Income Asset (Vasicek)
    # ============================
    def generate_rate_paths(self, n_paths: int, initial_rate: float,
                            reversion_speed: float, long_run_mean: float,
                            rate_volatility: float, years: int,
                            steps_per_year: int = 1) -> np.ndarray:
        """
        Generate independent Vasicek short-rate paths.

        dr = a * (b - r) * dt + sigma * sqrt(dt) * Z   (Euler-Maruyama)

        Args:
            n_paths: Number of independent paths
            initial_rate: Rate at index 0
            reversion_speed: Speed of reversion to the long-run mean (a)
            long_run_mean: Long-run mean rate (b)
            rate_volatility: Rate volatility (sigma), >= 0
            years: Horizon in years, > 0
            steps_per_year: Time steps per year, > 0

        Returns:
            Array of shape (n_paths, years * steps_per_year + 1). Rates are not
            floored at zero.
        """
        _validate_horizon(years, steps_per_year)
        _validate_volatility("rate_volatility", rate_volatility)
        if n_paths < 0:
            raise ValueError(f"n_paths cannot be negative: {n_paths}")

        dt = 1.0 / steps_per_year
        total_steps = years * steps_per_year
        shock = rate_volatility * np.sqrt(dt)

        if shock > 0:
            z = self.standard_normal((n_paths, total_steps))
        else:
            z = np.zeros((n_paths, total_steps))

        rates = np.empty((n_paths, total_steps + 1))
        rates[:, 0] = initial_rate
        for i in range(1, total_steps + 1):
            prev = rates[:, i - 1]
            rates[:, i] = prev + reversion_speed * (long_run_mean - prev) * dt + shock * z[:, i - 1]
        return rates

    def generate_rate_path(self, initial_rate: float, reversion_speed: float,
                           long_run_mean: float, rate_volatility: float,
                           years: int, steps_per_year: int = 1) -> np.ndarray:
        """Single Vasicek path of length years * steps_per_year + 1."""
        return self.generate_rate_paths(
            1, initial_rate, reversion_speed, long_run_mean,
            rate_volatility, years, steps_per_year
        )[0]
