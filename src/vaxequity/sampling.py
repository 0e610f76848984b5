"""
===============================================================================
sampling.py
Last Updated: 2026-10-17
===============================================================================
Parameter sampling for probabilistic sensitivity analysis (PSA)

Uncertain inputs are described by (low, central, high) and drawn from a PERT
distribution: a beta distribution rescaled to [low, high] with mode central.

    alpha = 1 + 4 (central - low) / (high - low)
    beta  = 1 + 4 (high - central) / (high - low)

Each (country, iteration) unit gets its own random stream derived from the
base seed, so results do not depend on the order units are executed in.
--------------------------------------------------------------------------------
License: MIT
================================================================================
"""
import zlib
from typing import Optional

import numpy as np
from scipy import stats

from .errors import ConfigurationError

PERT_SHAPE = 4.0


def unit_rng(base_seed: int, country: str, iteration: int) -> np.random.Generator:
    """Independent random stream for one (country, iteration) unit."""
    country_key = zlib.adler32(country.encode("utf8")) & 0xFFFFFFFF
    seq = np.random.SeedSequence(entropy=base_seed, spawn_key=(country_key, int(iteration)))
    return np.random.default_rng(seq)


def pert_shape(central, low, high):
    """Beta shape parameters (alpha, beta) of the PERT distribution."""
    span = high - low
    alpha = 1.0 + PERT_SHAPE * (central - low) / span
    beta = 1.0 + PERT_SHAPE * (high - central) / span
    return alpha, beta


class ParameterSampler:
    """Draw values from bounded PERT distributions.

    Parameters:
    enabled: bool. If False, sample() returns the central value
    rng: np.random.Generator, optional. Random stream (required when enabled)
    """

    def __init__(self, enabled: bool = False, rng: Optional[np.random.Generator] = None):
        if enabled and rng is None:
            raise ConfigurationError("PSA sampling needs a random generator")
        self.enabled = enabled
        self.rng = rng

    @staticmethod
    def _check_bounds(central, low, high):
        central = np.asarray(central, dtype=float)
        low = np.asarray(low, dtype=float)
        high = np.asarray(high, dtype=float)
        if not (np.all(np.isfinite(central)) and np.all(np.isfinite(low)) and np.all(np.isfinite(high))):
            raise ConfigurationError("PSA bounds must be finite")
        if np.any(low > high):
            raise ConfigurationError(f"PSA bounds inverted: low={low} > high={high}")
        if np.any(central < low) or np.any(central > high):
            raise ConfigurationError(f"central value {central} outside bounds [{low}, {high}]")
        return central, low, high

    def sample(self, central: float, low: float, high: float) -> float:
        """Draw a single value with mode `central` on [low, high]."""
        self._check_bounds(central, low, high)
        if not self.enabled or low == high:
            return float(central)
        a, b = pert_shape(central, low, high)
        draw = stats.beta.rvs(a, b, random_state=self.rng)
        return float(min(max(low + (high - low) * draw, low), high))

    def sample_array(self, central, low, high) -> np.ndarray:
        """Element-wise sample(); degenerate elements consume no draws."""
        central, low, high = self._check_bounds(central, low, high)
        values = central.astype(float, copy=True)
        if not self.enabled:
            return values

        free = high > low
        if np.any(free):
            a, b = pert_shape(central[free], low[free], high[free])
            draws = stats.beta.rvs(a, b, size=int(free.sum()), random_state=self.rng)
            values[free] = np.clip(low[free] + (high[free] - low[free]) * draws, low[free], high[free])
        return values
