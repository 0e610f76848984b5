"""
===============================================================================
inputs.py
Last Updated: 2026-10-17
===============================================================================
Country input tables for the burden engine

Containers for the four already-parsed tables a country needs:
- PopulationTable: population by calendar-year index and age
- CoverageTable: vaccine coverage by wealth quintile
- LifeExpectancyTable: residual life expectancy at birth by quintile
- CohortParameterTable: incidence, CFR, case cost and treatment-seeking
  proportion by (quintile, age), each with PSA bounds

CountryInputs.validate() checks every table before any simulation work starts
and raises InputValidationError with country/quintile context.
--------------------------------------------------------------------------------
License: MIT
================================================================================
"""
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

import numpy as np
import pandas as pd

from .errors import InputValidationError
from .parameters import QUINTILES, CohortArrays

COHORT_FIELDS = ("incidence", "cfr", "case_cost", "treat_prop")
# fields that are probabilities or per-person annual rates
UNIT_INTERVAL_FIELDS = ("incidence", "cfr", "treat_prop")
COHORT_COLUMNS = ["quintile", "age"] + [
    f"{name}{suffix}" for name in COHORT_FIELDS for suffix in ("", "_low", "_high")
]


@dataclass(frozen=True)
class PopulationTable:
    """Population counts, shape (n_years, n_ages).

    Row t-1 holds calendar-year index t (t = 1..T); column a holds age a.
    """
    counts: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "counts", np.asarray(self.counts, dtype=float))

    @property
    def n_years(self) -> int:
        return self.counts.shape[0]

    @property
    def n_ages(self) -> int:
        return self.counts.shape[1]

    def at(self, t: int, ages) -> np.ndarray:
        """Population at time step t (1-based) for the given ages."""
        return self.counts[t - 1, ages]


@dataclass(frozen=True)
class CoverageTable:
    """Vaccine coverage fraction per quintile."""
    coverage: Mapping[int, float]

    def __getitem__(self, quintile: int) -> float:
        return float(self.coverage[quintile])


@dataclass(frozen=True)
class LifeExpectancyTable:
    """Residual life expectancy at birth (years) per quintile."""
    life_expectancy: Mapping[int, float]

    def __getitem__(self, quintile: int) -> float:
        return float(self.life_expectancy[quintile])


class CohortParameterTable:
    """Per-(quintile, age) disease and cost parameters with PSA bounds.

    Parameters:
    frame: pd.DataFrame. Columns listed in COHORT_COLUMNS, one row per (quintile, age)
    country: str, optional. Used as error context
    """

    def __init__(self, frame: pd.DataFrame, country: Optional[str] = None):
        missing = [c for c in COHORT_COLUMNS if c not in frame.columns]
        if missing:
            raise InputValidationError(f"cohort table is missing columns: {missing}", country)
        frame = frame[COHORT_COLUMNS].copy()
        for key in ("quintile", "age"):
            values = pd.to_numeric(frame[key], errors="coerce").to_numpy(float)
            if not np.all(np.isfinite(values)):
                raise InputValidationError(f"cohort table has blank or non-numeric {key} values", country)
            if np.any(values != np.round(values)):
                raise InputValidationError(f"cohort {key} values must be whole numbers", country)
            frame[key] = values
        self.frame = (
            frame
            .astype({"quintile": int, "age": int})
            .sort_values(["quintile", "age"])
            .reset_index(drop=True)
        )

    def for_quintile(self, quintile: int) -> pd.DataFrame:
        return self.frame[self.frame["quintile"] == quintile]

    def central(self) -> Dict[int, CohortArrays]:
        """Central values per quintile, no sampling."""
        return {q: self._arrays(self.for_quintile(q)) for q in QUINTILES}

    def sample(self, sampler) -> Dict[int, CohortArrays]:
        """One PSA draw of every row.

        Fields are drawn column by column over the whole table (quintile, then
        age order) so a given stream always yields the same table.
        """
        draws = {
            name: sampler.sample_array(
                self.frame[name].to_numpy(float),
                self.frame[f"{name}_low"].to_numpy(float),
                self.frame[f"{name}_high"].to_numpy(float),
            )
            for name in COHORT_FIELDS
        }
        out = {}
        for q in QUINTILES:
            mask = (self.frame["quintile"] == q).to_numpy()
            out[q] = self._arrays(self.frame[mask], {name: values[mask] for name, values in draws.items()})
        return out

    @staticmethod
    def _arrays(rows: pd.DataFrame, values: Dict[str, np.ndarray] = None) -> CohortArrays:
        def pick(name):
            return rows[name].to_numpy(float) if values is None else values[name]

        return CohortArrays(
            ages=rows["age"].to_numpy(int),
            incidence=pick("incidence"),
            cfr=pick("cfr"),
            case_cost=pick("case_cost"),
            treat_prop=pick("treat_prop"),
        )


@dataclass
class CountryInputs:
    """All tables for one country, loaded once before its PSA iterations."""
    country: str
    population: PopulationTable
    coverage: CoverageTable
    life_expectancy: LifeExpectancyTable
    cohort: CohortParameterTable

    def validate(self, horizon: int):
        """Raise InputValidationError on the first missing or out-of-domain value."""
        self._validate_population(horizon)
        extra = sorted(int(q) for q in set(self.cohort.frame["quintile"]) - set(QUINTILES))
        if extra:
            raise InputValidationError(f"cohort table has rows for unknown quintiles {extra}", self.country)
        for q in QUINTILES:
            if q not in self.coverage.coverage:
                raise InputValidationError("no coverage entry", self.country, q)
            cov = float(self.coverage.coverage[q])
            if not (np.isfinite(cov) and 0.0 <= cov <= 1.0):
                raise InputValidationError(f"coverage {cov} outside [0, 1]", self.country, q)

            if q not in self.life_expectancy.life_expectancy:
                raise InputValidationError("no life expectancy entry", self.country, q)
            le = float(self.life_expectancy.life_expectancy[q])
            if not (np.isfinite(le) and le >= 0):
                raise InputValidationError(f"life expectancy {le} must be non-negative", self.country, q)

            self._validate_cohort_rows(q)

    def _validate_population(self, horizon: int):
        counts = self.population.counts
        if counts.ndim != 2:
            raise InputValidationError("population table must be 2-D (year, age)", self.country)
        if not np.all(np.isfinite(counts)) or np.any(counts < 0):
            raise InputValidationError("population counts must be finite and non-negative", self.country)
        if self.population.n_ages < 1:
            raise InputValidationError("population table has no age columns", self.country)
        if self.population.n_years < horizon:
            raise InputValidationError(
                f"population table covers {self.population.n_years} years, horizon is {horizon}",
                self.country,
            )

    def _validate_cohort_rows(self, quintile: int):
        rows = self.cohort.for_quintile(quintile)
        if rows.empty:
            raise InputValidationError("no cohort parameter rows", self.country, quintile)
        ages = rows["age"].to_numpy(int)
        if np.any(ages < 0) or len(np.unique(ages)) != len(ages):
            raise InputValidationError("cohort ages must be unique and non-negative", self.country, quintile)
        if ages.max() >= self.population.n_ages:
            raise InputValidationError(
                f"cohort age {ages.max()} not in population table ({self.population.n_ages} ages)",
                self.country, quintile,
            )
        for name in COHORT_FIELDS:
            central = rows[name].to_numpy(float)
            low = rows[f"{name}_low"].to_numpy(float)
            high = rows[f"{name}_high"].to_numpy(float)
            for label, values in ((name, central), (f"{name}_low", low), (f"{name}_high", high)):
                if not np.all(np.isfinite(values)) or np.any(values < 0):
                    raise InputValidationError(f"{label} must be finite and non-negative", self.country, quintile)
                if name in UNIT_INTERVAL_FIELDS and np.any(values > 1):
                    raise InputValidationError(f"{label} must lie in [0, 1]", self.country, quintile)
            if np.any(low > high) or np.any(central < low) or np.any(central > high):
                raise InputValidationError(
                    f"PSA bounds for {name} must satisfy low <= central <= high", self.country, quintile
                )
