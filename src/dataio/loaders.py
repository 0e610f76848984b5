"""
===========================================================
loaders.py
Last Updated: 2026-10-17
===========================================================

Description:
    Minimal loaders for the burden engine's country tables.
    Each loader accepts a CSV path or an already-read
    DataFrame in long format and returns the engine's table
    for one country.

Expected columns:
    population:      country, year, age, population
    coverage:        country, quintile, coverage
    life expectancy: country, quintile, life_expectancy
    cohort:          [country,] quintile, age, incidence, cfr,
                     case_cost, treat_prop (+ _low/_high bounds)

Notes:
    - Years are sorted and renumbered 1..T in file order.
    - Missing ages in the population table become NaN and
      are rejected by CountryInputs.validate().
    - A cohort table without a country column is shared by
      every country.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import os
import numpy as np
import pandas as pd
from typing import Union

from vaxequity.errors import InputValidationError
from vaxequity.inputs import (
    CohortParameterTable,
    CountryInputs,
    CoverageTable,
    LifeExpectancyTable,
    PopulationTable,
)

Source = Union[str, os.PathLike, pd.DataFrame]


def _read(source: Source) -> pd.DataFrame:
    if isinstance(source, pd.DataFrame):
        return source.copy()
    return pd.read_csv(source)


def _country_rows(df: pd.DataFrame, country: str, table: str) -> pd.DataFrame:
    if "country" not in df.columns:
        return df
    sub = df.loc[df["country"] == country]
    if sub.empty:
        raise InputValidationError(f"no rows in {table} table", country)
    return sub


def load_population_table(source: Source, country: str) -> PopulationTable:
    """Population by (year index, age) for one country."""
    sub = _country_rows(_read(source), country, "population")
    grid = sub.pivot_table(index="year", columns="age", values="population", aggfunc="sum").sort_index()
    ages = np.arange(0, int(grid.columns.max()) + 1)
    grid = grid.reindex(columns=ages)
    return PopulationTable(grid.to_numpy(dtype=float))


def _by_quintile(sub: pd.DataFrame, column: str, country: str, table: str) -> dict:
    duplicated = sub.loc[sub["quintile"].duplicated(), "quintile"]
    if not duplicated.empty:
        raise InputValidationError(
            f"{table} table has more than one row for quintile", country, int(duplicated.iloc[0])
        )
    return {int(q): float(v) for q, v in zip(sub["quintile"], sub[column])}


def load_coverage_table(source: Source, country: str) -> CoverageTable:
    sub = _country_rows(_read(source), country, "coverage")
    return CoverageTable(_by_quintile(sub, "coverage", country, "coverage"))


def load_life_expectancy_table(source: Source, country: str) -> LifeExpectancyTable:
    sub = _country_rows(_read(source), country, "life expectancy")
    return LifeExpectancyTable(_by_quintile(sub, "life_expectancy", country, "life expectancy"))


def load_cohort_table(source: Source, country: str) -> CohortParameterTable:
    sub = _country_rows(_read(source), country, "cohort parameter")
    return CohortParameterTable(sub.reset_index(drop=True), country)


def load_country_inputs(
        country: str,
        population: Source,
        coverage: Source,
        life_expectancy: Source,
        cohort: Source,
        ) -> CountryInputs:
    """
    Load all four tables for one country.

    Raises InputValidationError when the country has no rows in a table.
    Domain checks are left to CountryInputs.validate().
    """
    return CountryInputs(
        country=country,
        population=load_population_table(population, country),
        coverage=load_coverage_table(coverage, country),
        life_expectancy=load_life_expectancy_table(life_expectancy, country),
        cohort=load_cohort_table(cohort, country),
    )
