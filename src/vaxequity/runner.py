"""
===============================================================================
runner.py
Last Updated: 2026-10-17
===============================================================================
Run the burden engine over countries and PSA iterations

Control flow:
    for each country: validate its tables (skip the country on failure)
    for each (country, iteration) unit, possibly in parallel:
        build a RunContext from the unit's own random stream
        simulate the five quintiles
        write the five QuintileResults to the collector in one go
    aggregate each country's results into a CountrySummary

Units share only read-only tables. Each has its own accumulators and random
stream, so results do not depend on thread scheduling.

Example Usage:
    from vaxequity.runner import run_countries
    summaries, skipped = run_countries(inputs_by_country, GlobalParameters())
--------------------------------------------------------------------------------
License: MIT
================================================================================
"""
import logging
import threading
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Mapping, Tuple

from .economic_framework import AggregationEngine, CountrySummary
from .errors import InputValidationError
from .inputs import CountryInputs
from .parameters import QUINTILES, GlobalParameters, RunContext
from .sampling import ParameterSampler, unit_rng
from .simulator import BurdenSimulator, QuintileResult

logger = logging.getLogger(__name__)


class ResultsCollector:
    """Thread-safe, write-once store of completed (country, iteration) units."""

    def __init__(self):
        self._lock = threading.Lock()
        self._results: Dict[Tuple[str, int], Tuple[QuintileResult, ...]] = {}

    def add(self, country: str, iteration: int, results: List[QuintileResult]):
        key = (country, iteration)
        with self._lock:
            if key in self._results:
                raise RuntimeError(f"results for {key} were already collected")
            self._results[key] = tuple(results)

    def for_country(self, country: str) -> List[QuintileResult]:
        """All results for a country, ordered by (iteration, quintile)."""
        with self._lock:
            keys = sorted(k for k in self._results if k[0] == country)
            return [r for k in keys for r in sorted(self._results[k], key=lambda r: r.quintile)]

    def __len__(self):
        with self._lock:
            return len(self._results)


def simulate_iteration(inputs: CountryInputs, params: GlobalParameters, iteration: int) -> List[QuintileResult]:
    """Run the five quintile simulations of one PSA iteration."""
    rng = unit_rng(params.base_seed, inputs.country, iteration) if params.psa_enabled else None
    sampler = ParameterSampler(enabled=params.psa_enabled, rng=rng)
    context = RunContext.build(params, inputs.cohort, sampler, iteration=iteration)

    results = []
    for q in QUINTILES:
        simulator = BurdenSimulator(
            country=inputs.country,
            quintile=q,
            context=context,
            population=inputs.population,
            coverage=inputs.coverage[q],
            life_expectancy=inputs.life_expectancy[q],
        )
        results.append(simulator.run())
    return results


def _run_unit(inputs: CountryInputs, params: GlobalParameters, iteration: int, collector: ResultsCollector):
    logger.debug("running %s iteration %d", inputs.country, iteration)
    collector.add(inputs.country, iteration, simulate_iteration(inputs, params, iteration))


def run_countries(countries: Mapping[str, CountryInputs],
                  params: GlobalParameters) -> Tuple[Dict[str, CountrySummary], Dict[str, str]]:
    """Simulate and aggregate every country.

    Parameters:
    countries: mapping of country name -> CountryInputs (keys must equal inputs.country)
    params: GlobalParameters. Validated on construction

    Returns:
    summaries: dict. country -> CountrySummary for countries that ran
    skipped: dict. country -> reason for countries that failed validation
    """
    if params.psa_enabled and params.n_iterations == 1:
        warnings.warn("PSA is enabled but only one iteration will run; no uncertainty intervals")
    n_iterations = params.n_iterations

    skipped: Dict[str, str] = {}
    valid: Dict[str, CountryInputs] = {}
    for name, inputs in countries.items():
        try:
            if name != inputs.country:
                raise InputValidationError(f"mapping key {name!r} does not match the inputs", inputs.country)
            inputs.validate(params.horizon)
        except InputValidationError as e:
            logger.error("skipping %s: %s", name, e)
            skipped[name] = str(e)
            continue
        valid[name] = inputs

    collector = ResultsCollector()
    units = [(inputs, it) for inputs in valid.values() for it in range(n_iterations)]
    logger.info("running %d countries x %d iterations (%d workers)",
                len(valid), n_iterations, params.max_workers)

    if params.max_workers > 1 and len(units) > 1:
        with ThreadPoolExecutor(max_workers=params.max_workers) as pool:
            futures = {pool.submit(_run_unit, inputs, params, it, collector): inputs.country
                       for inputs, it in units}
            for future, name in futures.items():
                try:
                    future.result()
                except InputValidationError as e:
                    logger.error("aborting %s: %s", name, e)
                    skipped.setdefault(name, str(e))
    else:
        for inputs, it in units:
            if inputs.country in skipped:
                continue
            try:
                _run_unit(inputs, params, it, collector)
            except InputValidationError as e:
                logger.error("aborting %s: %s", inputs.country, e)
                skipped[inputs.country] = str(e)

    engine = AggregationEngine(params)
    summaries = {}
    for name in valid:
        if name in skipped:
            continue
        summaries[name] = engine.summarize_country(name, collector.for_country(name))
        logger.info("%s: %d iterations aggregated", name, summaries[name].n_iterations)
    return summaries, skipped


def run_country(inputs: CountryInputs, params: GlobalParameters) -> CountrySummary:
    """Single-country convenience wrapper; raises InputValidationError instead of skipping."""
    inputs.validate(params.horizon)
    summaries, skipped = run_countries({inputs.country: inputs}, params)
    if inputs.country in skipped:
        raise InputValidationError(f"run aborted: {skipped[inputs.country]}")
    return summaries[inputs.country]


if __name__ == "__main__":
    import numpy as np
    import pandas as pd

    from .inputs import CohortParameterTable, CoverageTable, LifeExpectancyTable, PopulationTable

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    def demo_inputs(country, births, coverage_by_q, le_by_q):
        ages = np.arange(0, 15)
        population = PopulationTable(np.tile(births * np.exp(-0.01 * ages), (39, 1)))
        rows = []
        for q in QUINTILES:
            for a in ages:
                inc = 0.05 * (1.2 - 0.1 * q) * np.exp(-0.2 * a)
                rows.append({
                    'quintile': q, 'age': a,
                    'incidence': inc, 'incidence_low': 0.8 * inc, 'incidence_high': 1.2 * inc,
                    'cfr': 0.01, 'cfr_low': 0.005, 'cfr_high': 0.02,
                    'case_cost': 20.0, 'case_cost_low': 15.0, 'case_cost_high': 30.0,
                    'treat_prop': 0.3 + 0.1 * q, 'treat_prop_low': 0.2 + 0.1 * q, 'treat_prop_high': 0.4 + 0.1 * q,
                })
        return CountryInputs(
            country=country,
            population=population,
            coverage=CoverageTable(coverage_by_q),
            life_expectancy=LifeExpectancyTable(le_by_q),
            cohort=CohortParameterTable(pd.DataFrame(rows)),
        )

    countries = {
        'Examplia': demo_inputs('Examplia', 100_000, {1: 0.5, 2: 0.6, 3: 0.7, 4: 0.8, 5: 0.9},
                                {1: 60, 2: 63, 3: 66, 4: 69, 5: 72}),
        'Samplestan': demo_inputs('Samplestan', 40_000, {1: 0.3, 2: 0.45, 3: 0.6, 4: 0.75, 5: 0.85},
                                  {1: 55, 2: 58, 3: 61, 4: 64, 5: 67}),
    }

    params = GlobalParameters(psa_enabled=True, n_iterations=50, max_workers=4)
    params.print_summary()
    summaries, skipped = run_countries(countries, params)
    for summary in summaries.values():
        print()
        summary.print_summary()
