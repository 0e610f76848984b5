"""
===============================================================================
simulator.py
Last Updated: 2026-10-17
===============================================================================
Burden simulation for one (country, PSA iteration, quintile)

Runs the annual time steps t = 1..T over the quintile's age cohorts and
accumulates cases, deaths, treatment costs and DALYs without (pre) and with
(post) the vaccination programme.

Per time step t and age i (quintile share = 1/5 of the population):
    pop        = population[t, i] / 5
    protection = efficacy * coverage * waning(i) * ramp(t, i)
    cases_pre  = pop * incidence
    cases_post = pop * unvax * incidence + pop * (1 - unvax) * (1 - protection) * incidence
    deaths     = cases * tp * cfr * (1 - treatment_effect) + cases * (1 - tp) * cfr
    cost       = cases * tp * case_cost * discount
    DALYs      = (cases * dw + deaths * max(0, LE - i)) * discount

The discount factor starts at 1 and is multiplied by (1 - rate) after
every step.
--------------------------------------------------------------------------------
License: MIT
================================================================================
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

import numpy as np

from .inputs import PopulationTable
from .parameters import QUINTILES, RunContext
from .vaccine_effects import is_unvaccinated, protection, ramp_factor

logger = logging.getLogger(__name__)

N_QUINTILES = len(QUINTILES)


class SimulationState(Enum):
    INITIALIZED = "initialized"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class SimulationAccumulator:
    """Running totals for one quintile simulation.

    The (step, age) grids are preallocated and written by index.
    """
    cases_pre_grid: np.ndarray
    cases_post_grid: np.ndarray
    cases_pre: float = 0.0
    cases_post: float = 0.0
    deaths_pre: float = 0.0
    deaths_post: float = 0.0
    cost_pre: float = 0.0
    cost_post: float = 0.0
    dalys_pre: float = 0.0
    dalys_post: float = 0.0
    vaccinated: float = 0.0

    @classmethod
    def fresh(cls, n_steps: int, n_ages: int) -> "SimulationAccumulator":
        return cls(
            cases_pre_grid=np.zeros((n_steps, n_ages)),
            cases_post_grid=np.zeros((n_steps, n_ages)),
        )


@dataclass(frozen=True)
class QuintileResult:
    """Totals of one completed quintile simulation.

    Attributes:
    country, iteration, quintile: identifying keys
    cases_pre ... dalys_post: cumulative totals over the horizon (costs and DALYs discounted)
    vaccinated: float. Cumulative number of children vaccinated
    ages: np.ndarray. Ages of the grid columns
    cases_pre_grid, cases_post_grid: np.ndarray. Cases per (time step, age)
    """
    country: str
    iteration: int
    quintile: int
    cases_pre: float
    cases_post: float
    deaths_pre: float
    deaths_post: float
    cost_pre: float
    cost_post: float
    dalys_pre: float
    dalys_post: float
    vaccinated: float
    ages: np.ndarray = field(repr=False)
    cases_pre_grid: np.ndarray = field(repr=False)
    cases_post_grid: np.ndarray = field(repr=False)

    @property
    def cases_averted(self) -> float:
        return self.cases_pre - self.cases_post

    @property
    def deaths_averted(self) -> float:
        return self.deaths_pre - self.deaths_post

    @property
    def cases_averted_by_year(self) -> np.ndarray:
        """Cases averted at each time step, summed over ages."""
        return (self.cases_pre_grid - self.cases_post_grid).sum(axis=1)

    def to_record(self) -> Dict:
        """Scalar fields as a flat dict (one row of a results table)."""
        return {
            'country': self.country,
            'iteration': self.iteration,
            'quintile': self.quintile,
            'cases_pre': self.cases_pre,
            'cases_post': self.cases_post,
            'deaths_pre': self.deaths_pre,
            'deaths_post': self.deaths_post,
            'cost_pre': self.cost_pre,
            'cost_post': self.cost_post,
            'dalys_pre': self.dalys_pre,
            'dalys_post': self.dalys_post,
            'vaccinated': self.vaccinated,
        }


class BurdenSimulator:
    """Pre/post vaccination burden of one quintile over the full horizon.

    Parameters:
    country: str. Country name (used for result keys)
    quintile: int. Wealth quintile, 1..5
    context: RunContext. Iteration values (efficacy, cohort arrays, ...)
    population: PopulationTable. Country population by year and age
    coverage: float. Quintile vaccine coverage
    life_expectancy: float. Quintile residual life expectancy at birth
    """

    def __init__(self,
                 country: str,
                 quintile: int,
                 context: RunContext,
                 population: PopulationTable,
                 coverage: float,
                 life_expectancy: float):
        self.country = country
        self.quintile = quintile
        self.context = context
        self.population = population
        self.coverage = coverage
        self.life_expectancy = life_expectancy
        self.cohort = context.cohorts[quintile]
        self.state = SimulationState.INITIALIZED

    @property
    def impact(self) -> float:
        """Vaccine impact before waning and ramp-up: efficacy x coverage."""
        return self.context.efficacy * self.coverage

    def run(self) -> QuintileResult:
        """Run all time steps and return the quintile totals."""
        if self.state is not SimulationState.INITIALIZED:
            raise RuntimeError("BurdenSimulator instances can only be run once")
        self.state = SimulationState.RUNNING

        params = self.context.params
        acc = SimulationAccumulator.fresh(params.horizon, len(self.cohort.ages))

        # per-age terms that do not change over time
        ages = self.cohort.ages
        wane = protection(params.waning, ages, params.duration)
        wane = np.where(np.isin(ages, params.half_protection_ages), 0.5 * wane, wane)
        years_lost = np.maximum(0.0, self.life_expectancy - ages)

        discount = 1.0
        for t in range(1, params.horizon + 1):
            self._step(t, discount, wane, years_lost, acc)
            discount *= 1.0 - params.discount_rate

        self.state = SimulationState.COMPLETED
        logger.debug("%s iteration %d quintile %d: %.1f cases pre, %.1f post",
                     self.country, self.context.iteration, self.quintile, acc.cases_pre, acc.cases_post)

        return QuintileResult(
            country=self.country,
            iteration=self.context.iteration,
            quintile=self.quintile,
            cases_pre=float(acc.cases_pre),
            cases_post=float(acc.cases_post),
            deaths_pre=float(acc.deaths_pre),
            deaths_post=float(acc.deaths_post),
            cost_pre=float(acc.cost_pre),
            cost_post=float(acc.cost_post),
            dalys_pre=float(acc.dalys_pre),
            dalys_post=float(acc.dalys_post),
            vaccinated=float(acc.vaccinated),
            ages=ages.copy(),
            cases_pre_grid=acc.cases_pre_grid,
            cases_post_grid=acc.cases_post_grid,
        )

    def _step(self, t: int, discount: float, wane: np.ndarray, years_lost: np.ndarray,
              acc: SimulationAccumulator):
        """One annual time step over every age cohort."""
        params = self.context.params
        cohort = self.cohort
        ages = cohort.ages

        # this quintile's share of the birth cohort
        acc.vaccinated += self.population.at(t, 0) / N_QUINTILES * self.coverage

        pop = self.population.at(t, ages) / N_QUINTILES
        unvax = is_unvaccinated(t, ages, params.program_length).astype(float)
        ramp = ramp_factor(t, ages, params.build_years, params.ramp_floor)
        complete_protection = self.impact * wane * ramp

        inc = cohort.incidence
        cases_pre = pop * inc
        cases_post = pop * unvax * inc + pop * (1.0 - unvax) * (1.0 - complete_protection) * inc

        deaths_pre = self._deaths(cases_pre)
        deaths_post = self._deaths(cases_post)

        # treatment costs only for cases that seek care
        unit_cost = cohort.treat_prop * cohort.case_cost * discount
        cost_pre = cases_pre * unit_cost
        cost_post = cases_post * unit_cost

        dw = self.context.disability_weight
        dalys_pre = (cases_pre * dw + deaths_pre * years_lost) * discount
        dalys_post = (cases_post * dw + deaths_post * years_lost) * discount

        acc.cases_pre_grid[t - 1, :] = cases_pre
        acc.cases_post_grid[t - 1, :] = cases_post
        acc.cases_pre += cases_pre.sum()
        acc.cases_post += cases_post.sum()
        acc.deaths_pre += deaths_pre.sum()
        acc.deaths_post += deaths_post.sum()
        acc.cost_pre += cost_pre.sum()
        acc.cost_post += cost_post.sum()
        acc.dalys_pre += dalys_pre.sum()
        acc.dalys_post += dalys_post.sum()

    def _deaths(self, cases: np.ndarray) -> np.ndarray:
        """Deaths among treated (reduced by treatment effect) and untreated cases."""
        cohort = self.cohort
        treated = cases * cohort.treat_prop * cohort.cfr * (1.0 - self.context.treatment_effectiveness)
        untreated = cases * (1.0 - cohort.treat_prop) * cohort.cfr
        return treated + untreated
