import numpy as np
import pandas as pd
import pytest

from vaxequity.inputs import (
    CohortParameterTable,
    CountryInputs,
    CoverageTable,
    LifeExpectancyTable,
    PopulationTable,
)
from vaxequity.parameters import QUINTILES

UNIT_FIELDS = ("incidence", "cfr", "treat_prop")


def build_cohort_frame(ages, incidence=0.05, cfr=0.01, case_cost=20.0, treat_prop=0.5,
                       spread=0.0, quintile_gradient=True):
    """Cohort table with the same values for every age.

    Incidence falls with wealth quintile unless quintile_gradient is False.
    spread > 0 gives symmetric PSA bounds of +/- spread (relative).
    """
    rows = []
    for q in QUINTILES:
        scale = (1.5 - 0.1 * q) if quintile_gradient else 1.0
        values = {
            "incidence": incidence * scale,
            "cfr": cfr,
            "case_cost": case_cost,
            "treat_prop": treat_prop,
        }
        for a in ages:
            row = {"quintile": q, "age": a}
            for name, value in values.items():
                high = value * (1 + spread)
                if name in UNIT_FIELDS:
                    high = min(high, 1.0)
                row[name] = value
                row[f"{name}_low"] = value * (1 - spread)
                row[f"{name}_high"] = high
            rows.append(row)
    return pd.DataFrame(rows)


def build_inputs(country="Testland", ages=range(15), n_years=39, births=1000.0,
                 coverage=0.8, life_expectancy=65.0, **cohort_kw):
    ages = list(ages)
    population = PopulationTable(np.full((n_years, max(ages) + 1), births))
    if not isinstance(coverage, dict):
        coverage = {q: coverage for q in QUINTILES}
    if not isinstance(life_expectancy, dict):
        life_expectancy = {q: life_expectancy for q in QUINTILES}
    return CountryInputs(
        country=country,
        population=population,
        coverage=CoverageTable(coverage),
        life_expectancy=LifeExpectancyTable(life_expectancy),
        cohort=CohortParameterTable(build_cohort_frame(ages, **cohort_kw)),
    )


@pytest.fixture
def make_inputs():
    return build_inputs


@pytest.fixture
def make_cohort_frame():
    return build_cohort_frame
