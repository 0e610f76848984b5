"""
===============================================================================
economic_framework.py
Last Updated: 2026-10-17
===============================================================================
Aggregation and cost-effectiveness analysis across wealth quintiles

This module combines the per-quintile simulation totals of a country into:
- burden distribution (each quintile's share of national cases, pre and post)
- impact percentage (cases averted as % of cases without vaccination)
- incremental cost, incremental health (DALYs averted) and ICER
- cross-iteration mean and 95% interval of burden shares (PSA)

ICER = (vaccine cost - treatment cost averted) / DALYs averted

Undefined ratios (zero denominators, empty PSA sets) are reported as NaN with
a flag set to False, they never raise.
--------------------------------------------------------------------------------
License: MIT
================================================================================
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .parameters import QUINTILES, GlobalParameters
from .simulator import QuintileResult

ICER_UNDEFINED = float('nan')
NATIONAL = "national"
TOTAL_FIELDS = (
    'cases_pre', 'cases_post', 'deaths_pre', 'deaths_post',
    'cost_pre', 'cost_post', 'dalys_pre', 'dalys_post', 'vaccinated',
)


@dataclass(frozen=True)
class QuintileMetrics:
    """Derived cost-effectiveness metrics for one quintile (or the whole country)."""
    country: str
    iteration: int
    quintile: object    # 1..5, or NATIONAL for the sum over quintiles
    cases_averted: float
    deaths_averted: float
    dalys_averted: float
    impact_percent: float
    impact_defined: bool
    vaccine_cost: float
    treatment_cost_averted: float
    incremental_cost: float
    incremental_health: float
    icer: float
    icer_defined: bool
    cost_saving: bool
    ce_category: str


@dataclass(frozen=True)
class BurdenDistribution:
    """Share of national cases per quintile for one iteration, indexed by quintile - 1."""
    iteration: int
    share_pre: np.ndarray
    share_post: np.ndarray
    defined_pre: bool
    defined_post: bool

    def share(self, quintile: int, direction: str = 'pre') -> float:
        shares = self.share_pre if direction == 'pre' else self.share_post
        return float(shares[quintile - 1])

    def is_defined(self, direction: str = 'pre') -> bool:
        return self.defined_pre if direction == 'pre' else self.defined_post


@dataclass(frozen=True)
class ShareInterval:
    """Mean and 2.5th/97.5th percentiles of a quintile's burden share over iterations."""
    quintile: int
    direction: str
    mean: float
    lower: float
    upper: float
    n: int
    defined: bool


@dataclass
class CountrySummary:
    """Everything the reporting layer needs for one country."""
    country: str
    results: List[QuintileResult]
    metrics: List[QuintileMetrics]
    distributions: List[BurdenDistribution]
    share_intervals: Optional[List[ShareInterval]] = None

    @property
    def n_iterations(self) -> int:
        return len(self.distributions)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per (iteration, quintile) plus a national row per iteration."""
        totals = {(r.iteration, r.quintile): r.to_record() for r in self.results}
        shares = {d.iteration: d for d in self.distributions}
        rows = []
        for m in self.metrics:
            row = dict(m.__dict__)
            if m.quintile == NATIONAL:
                row.update(_sum_totals([r for r in self.results if r.iteration == m.iteration]))
                row['share_pre'], row['share_post'] = 1.0, 1.0
            else:
                row.update({k: totals[(m.iteration, m.quintile)][k] for k in TOTAL_FIELDS})
                row['share_pre'] = shares[m.iteration].share(m.quintile, 'pre')
                row['share_post'] = shares[m.iteration].share(m.quintile, 'post')
            rows.append(row)
        return pd.DataFrame.from_records(rows)

    def share_interval_frame(self) -> pd.DataFrame:
        """Cross-iteration burden share table (empty when only one iteration ran)."""
        columns = ['country', 'quintile', 'direction', 'mean', 'lower', 'upper', 'n', 'defined']
        if not self.share_intervals:
            return pd.DataFrame(columns=columns)
        records = [dict(country=self.country, **s.__dict__) for s in self.share_intervals]
        return pd.DataFrame.from_records(records, columns=columns)

    def cases_averted_frame(self) -> pd.DataFrame:
        """Tidy time series of cases averted per (iteration, quintile, time step)."""
        frames = []
        for r in self.results:
            averted = r.cases_averted_by_year
            frames.append(pd.DataFrame({
                'country': self.country,
                'iteration': r.iteration,
                'quintile': r.quintile,
                't': np.arange(1, len(averted) + 1),
                'cases_averted': averted,
            }))
        return pd.concat(frames, ignore_index=True)

    def print_summary(self, iteration: int = 0):
        """Print formatted results for one iteration."""
        print(f"BURDEN AND COST-EFFECTIVENESS: {self.country} (iteration {iteration})")
        for m in self.metrics:
            if m.iteration != iteration:
                continue
            label = "National" if m.quintile == NATIONAL else f"Quintile {m.quintile}"
            print(f"\n--- {label.upper()} ---")
            print(f"Cases averted: {m.cases_averted:,.0f}")
            print(f"Deaths averted: {m.deaths_averted:,.0f}")
            print(f"DALYs averted: {m.incremental_health:,.1f}")
            if m.impact_defined:
                print(f"Impact: {m.impact_percent:.1f}% of cases averted")
            print(f"Incremental cost: ${m.incremental_cost:,.0f}")
            if m.cost_saving:
                print("Status: DOMINANT STRATEGY (Cost-saving and more effective)")
            elif m.icer_defined:
                print(f"ICER: ${m.icer:,.0f} per DALY averted ({m.ce_category})")
            else:
                print("ICER: undefined (no DALYs averted)")

        if self.share_intervals:
            print("\n--- BURDEN SHARE ACROSS ITERATIONS ---")
            for s in self.share_intervals:
                if s.defined:
                    print(f"Q{s.quintile} {s.direction}: {s.mean * 100:.1f}% "
                          f"({s.lower * 100:.1f}-{s.upper * 100:.1f}%)")


def _sum_totals(results: Sequence[QuintileResult]) -> Dict[str, float]:
    return {name: float(sum(getattr(r, name) for r in results)) for name in TOTAL_FIELDS}


class AggregationEngine:
    """Combine quintile results into distribution and cost-effectiveness metrics.

    Parameters:
    params: GlobalParameters. Supplies vaccine unit cost and the CE threshold
    """

    def __init__(self, params: GlobalParameters):
        self.params = params

    def burden_distribution(self, results: Sequence[QuintileResult]) -> BurdenDistribution:
        """Share of national pre/post cases held by each quintile."""
        by_quintile = {r.quintile: r for r in results}
        missing = [q for q in QUINTILES if q not in by_quintile]
        if missing:
            raise ValueError(f"results are missing quintiles {missing}")

        pre = np.array([by_quintile[q].cases_pre for q in QUINTILES])
        post = np.array([by_quintile[q].cases_post for q in QUINTILES])
        defined_pre, defined_post = bool(pre.sum() > 0), bool(post.sum() > 0)
        return BurdenDistribution(
            iteration=results[0].iteration,
            share_pre=pre / pre.sum() if defined_pre else np.full(len(QUINTILES), np.nan),
            share_post=post / post.sum() if defined_post else np.full(len(QUINTILES), np.nan),
            defined_pre=defined_pre,
            defined_post=defined_post,
        )

    def metrics(self, country: str, iteration: int, quintile, totals: Dict[str, float]) -> QuintileMetrics:
        """Impact, incremental cost/health and ICER from summed totals."""
        cases_pre, cases_post = totals['cases_pre'], totals['cases_post']
        if cases_pre > 0:
            impact, impact_defined = 100.0 * (1.0 - cases_post / cases_pre), True
        else:
            impact, impact_defined = float('nan'), False

        vaccine_cost = self.params.vaccine_unit_cost * totals['vaccinated']
        cost_averted = totals['cost_pre'] - totals['cost_post']
        incremental_cost = vaccine_cost - cost_averted
        incremental_health = totals['dalys_pre'] - totals['dalys_post']

        if incremental_health != 0:
            icer, icer_defined = incremental_cost / incremental_health, True
        else:
            icer, icer_defined = ICER_UNDEFINED, False

        cost_saving = incremental_cost < 0 and incremental_health > 0
        if not icer_defined:
            ce_category = 'Undefined'
        elif cost_saving:
            ce_category = 'Cost-saving'
        elif incremental_health > 0 and icer <= self.params.ce_threshold:
            ce_category = 'Cost-effective'
        else:
            ce_category = 'Not cost-effective'

        return QuintileMetrics(
            country=country,
            iteration=iteration,
            quintile=quintile,
            cases_averted=cases_pre - cases_post,
            deaths_averted=totals['deaths_pre'] - totals['deaths_post'],
            dalys_averted=incremental_health,
            impact_percent=impact,
            impact_defined=impact_defined,
            vaccine_cost=vaccine_cost,
            treatment_cost_averted=cost_averted,
            incremental_cost=incremental_cost,
            incremental_health=incremental_health,
            icer=icer,
            icer_defined=icer_defined,
            cost_saving=cost_saving,
            ce_category=ce_category,
        )

    def summarize_iteration(self, results: Sequence[QuintileResult]):
        """Metrics per quintile plus a national row, and the burden distribution.

        Returns:
        metrics: list of QuintileMetrics (quintiles 1..5, then NATIONAL)
        distribution: BurdenDistribution
        """
        results = sorted(results, key=lambda r: r.quintile)
        country, iteration = results[0].country, results[0].iteration
        metrics = [self.metrics(country, iteration, r.quintile, r.to_record()) for r in results]
        metrics.append(self.metrics(country, iteration, NATIONAL, _sum_totals(results)))
        return metrics, self.burden_distribution(results)

    @staticmethod
    def share_intervals(distributions: Sequence[BurdenDistribution]) -> List[ShareInterval]:
        """Mean and 95% interval of each quintile's share across iterations."""
        intervals = []
        for direction in ('pre', 'post'):
            for q in QUINTILES:
                values = np.array([d.share(q, direction) for d in distributions if d.is_defined(direction)])
                if values.size == 0:
                    intervals.append(ShareInterval(q, direction, np.nan, np.nan, np.nan, 0, False))
                    continue
                lower, upper = np.percentile(values, [2.5, 97.5])
                intervals.append(ShareInterval(
                    q, direction, float(values.mean()), float(lower), float(upper), int(values.size), True
                ))
        return intervals

    def summarize_country(self, country: str, results: Sequence[QuintileResult]) -> CountrySummary:
        """Fold every iteration's quintile results into a CountrySummary."""
        results = sorted(results, key=lambda r: (r.iteration, r.quintile))
        by_iteration: Dict[int, List[QuintileResult]] = {}
        for r in results:
            by_iteration.setdefault(r.iteration, []).append(r)

        metrics, distributions = [], []
        for iteration in sorted(by_iteration):
            iteration_metrics, distribution = self.summarize_iteration(by_iteration[iteration])
            metrics.extend(iteration_metrics)
            distributions.append(distribution)

        intervals = self.share_intervals(distributions) if len(distributions) > 1 else None
        return CountrySummary(
            country=country,
            results=results,
            metrics=metrics,
            distributions=distributions,
            share_intervals=intervals,
        )
