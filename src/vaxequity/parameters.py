"""
===============================================================================
parameters.py
Last Updated: 2026-10-17
===============================================================================
Model parameters for the quintile vaccination burden engine

This module holds the process-wide parameter set (vaccine, disease, economic,
PSA and simulation settings) and the per-iteration run context built from it.

- GlobalParameters is fixed at the start of a run and validated on creation.
- RunContext is the immutable bundle of (possibly resampled) values used by
  one PSA iteration. A fresh one is built for every (country, iteration),
  global parameters are never overwritten in place.
--------------------------------------------------------------------------------
License: MIT
================================================================================
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from .errors import ConfigurationError

QUINTILES: Tuple[int, ...] = (1, 2, 3, 4, 5)


class WaningType(str, Enum):
    """Shape of the decline in vaccine-induced protection."""
    NO_WANING = "none"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass
class GlobalParameters:
    """
    Global parameter set for the burden simulation and economic analysis.

    Rates are per annual time step. Costs are in a single currency unit.
    Fields ending in _low/_high are the PSA bounds of the field they prefix.
    """

    # ==================== Vaccine ================================================
    efficacy: float = 0.5
    efficacy_low: float = 0.4
    efficacy_high: float = 0.6

    duration: float = 10.0     # years of protection after vaccination
    waning: WaningType = WaningType.NO_WANING

    # ==================== Programme ==============================================
    program_length: int = 39    # years a birth cohort stays in the eligible window
    build_years: float = 5.0    # years for coverage to reach its target level
    ramp_floor: float = 0.2     # empirical lower clamp of the coverage ramp

    # ages (in years) dosed half a year into the bin, protection is halved there
    half_protection_ages: Tuple[int, ...] = (0, 10)

    # ==================== Disease burden =========================================
    disability_weight: float = 0.2
    disability_weight_low: float = 0.1
    disability_weight_high: float = 0.3

    treatment_effectiveness: float = 0.5    # fraction of deaths prevented by treatment
    treatment_effectiveness_low: float = 0.3
    treatment_effectiveness_high: float = 0.7

    # ==================== Economic ===============================================
    vaccine_unit_cost: float = 10.0     # cost per fully vaccinated child
    discount_rate: float = 0.03     # per time step
    gdp_per_capita: float = 1_000.0
    ce_threshold: Optional[float] = None  # cost per DALY averted (3x GDP per capita when unset)

    # ==================== Simulation =============================================
    horizon: int = 39   # number of annual time steps
    psa_enabled: bool = False
    n_iterations: int = 1
    base_seed: int = 20240601
    max_workers: int = 1

    def __post_init__(self):
        """Derive thresholds and validate the whole set."""
        try:
            self.waning = WaningType(self.waning)
        except ValueError as e:
            raise ConfigurationError(f"Unknown waning type: {self.waning!r}") from e

        self.half_protection_ages = tuple(int(a) for a in self.half_protection_ages)

        if self.ce_threshold is None:
            self.ce_threshold = 3 * self.gdp_per_capita

        self._validate_parameters()

    def _validate_parameters(self):
        """Validate that all parameters are within their documented domains."""
        for name in ("efficacy", "disability_weight", "treatment_effectiveness"):
            central = getattr(self, name)
            low = getattr(self, f"{name}_low")
            high = getattr(self, f"{name}_high")
            for label, value in ((name, central), (f"{name}_low", low), (f"{name}_high", high)):
                if not (math.isfinite(value) and 0.0 <= value <= 1.0):
                    raise ConfigurationError(f"{label} must lie in [0, 1], got {value}")
            if not low <= central <= high:
                raise ConfigurationError(
                    f"PSA bounds for {name} must satisfy low <= central <= high, "
                    f"got {low} <= {central} <= {high}"
                )

        if self.duration < 0:
            raise ConfigurationError("duration of immunity must be non-negative")
        if self.waning is not WaningType.NO_WANING and self.duration <= 0:
            raise ConfigurationError(f"{self.waning.value} waning needs a positive duration")
        if self.program_length < 0:
            raise ConfigurationError("program_length must be non-negative")
        if self.build_years <= 0:
            raise ConfigurationError("build_years must be positive")
        if self.ramp_floor <= 0:
            raise ConfigurationError("ramp_floor must be positive")
        if any(a < 0 for a in self.half_protection_ages):
            raise ConfigurationError("half_protection_ages must be non-negative ages")
        if not 0.0 <= self.discount_rate < 1.0:
            raise ConfigurationError("discount_rate must lie in [0, 1)")
        if self.vaccine_unit_cost < 0:
            raise ConfigurationError("vaccine_unit_cost must be non-negative")
        if self.ce_threshold < 0:
            raise ConfigurationError("ce_threshold must be non-negative")
        if self.horizon < 1:
            raise ConfigurationError("horizon must be at least one time step")
        if self.n_iterations < 1:
            raise ConfigurationError("n_iterations must be at least 1")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")

    def to_dict(self) -> Dict:
        """Convert parameters to dictionary for easy inspection."""
        return {
            'efficacy': self.efficacy,
            'efficacy_bounds': (self.efficacy_low, self.efficacy_high),
            'duration': self.duration,
            'waning': self.waning.value,
            'program_length': self.program_length,
            'build_years': self.build_years,
            'disability_weight': self.disability_weight,
            'treatment_effectiveness': self.treatment_effectiveness,
            'vaccine_unit_cost': self.vaccine_unit_cost,
            'discount_rate': self.discount_rate,
            'ce_threshold': self.ce_threshold,
            'horizon': self.horizon,
            'psa_enabled': self.psa_enabled,
            'n_iterations': self.n_iterations,
        }

    def print_summary(self):
        """Print parameter summary for documentation."""
        print("QUINTILE BURDEN MODEL PARAMETERS:")
        print("\n--- VACCINE ---")
        print(f"Efficacy: {self.efficacy * 100:.0f}% "
              f"({self.efficacy_low * 100:.0f}-{self.efficacy_high * 100:.0f}%)")
        print(f"Duration of protection: {self.duration:.1f} years ({self.waning.value} waning)")
        print(f"Programme length: {self.program_length} years, build-up {self.build_years:.1f} years")

        print("\n--- DISEASE ---")
        print(f"Disability weight: {self.disability_weight:.3f}")
        print(f"Treatment effectiveness: {self.treatment_effectiveness * 100:.0f}%")

        print("\n--- ECONOMICS ---")
        print(f"Vaccine unit cost: ${self.vaccine_unit_cost:,.2f}")
        print(f"Discount rate: {self.discount_rate * 100:.1f}% per year")
        print(f"Cost-effectiveness threshold: ${self.ce_threshold:,.0f}/DALY")

        print("\n--- SIMULATION ---")
        print(f"Horizon: {self.horizon} years")
        print(f"PSA: {'on' if self.psa_enabled else 'off'} ({self.n_iterations} iterations)")


@dataclass(frozen=True)
class CohortArrays:
    """Per-age parameter arrays for one quintile, sorted by age."""
    ages: np.ndarray
    incidence: np.ndarray
    cfr: np.ndarray
    case_cost: np.ndarray
    treat_prop: np.ndarray


@dataclass(frozen=True)
class RunContext:
    """Immutable values used by one PSA iteration of one country.

    Parameters:
    iteration: int. PSA iteration index (0-based)
    params: GlobalParameters. Values that are never resampled
    efficacy: float. Vaccine efficacy for this iteration
    disability_weight: float. Disability weight for this iteration
    treatment_effectiveness: float. Treatment effectiveness for this iteration
    cohorts: dict. quintile -> CohortArrays for this iteration
    """
    iteration: int
    params: GlobalParameters
    efficacy: float
    disability_weight: float
    treatment_effectiveness: float
    cohorts: Dict[int, CohortArrays] = field(default_factory=dict)

    @classmethod
    def build(cls, params: GlobalParameters, cohort_table, sampler, iteration: int = 0) -> "RunContext":
        """Draw one iteration's values.

        Globals are drawn first, then the cohort table, so the order of draws
        on a given stream is fixed.
        """
        efficacy = sampler.sample(params.efficacy, params.efficacy_low, params.efficacy_high)
        disability_weight = sampler.sample(
            params.disability_weight, params.disability_weight_low, params.disability_weight_high
        )
        treatment_effectiveness = sampler.sample(
            params.treatment_effectiveness,
            params.treatment_effectiveness_low,
            params.treatment_effectiveness_high,
        )
        return cls(
            iteration=iteration,
            params=params,
            efficacy=efficacy,
            disability_weight=disability_weight,
            treatment_effectiveness=treatment_effectiveness,
            cohorts=cohort_table.sample(sampler),
        )


# Alternative parameter sets for sensitivity analysis
def create_psa_params(n_iterations: int = 1000, **overrides) -> GlobalParameters:
    """Probabilistic sensitivity analysis with the default bounds."""
    return GlobalParameters(psa_enabled=True, n_iterations=n_iterations, **overrides)


def create_waning_params(waning: WaningType = WaningType.LINEAR, duration: float = 10.0,
                         **overrides) -> GlobalParameters:
    """Protection that declines over `duration` years."""
    return GlobalParameters(waning=waning, duration=duration, **overrides)
