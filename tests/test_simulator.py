import numpy as np
import pytest

from vaxequity.parameters import QUINTILES, GlobalParameters, RunContext, WaningType
from vaxequity.sampling import ParameterSampler
from vaxequity.simulator import BurdenSimulator, SimulationState


def simulate(inputs, params, quintile=1, coverage=None):
    context = RunContext.build(params, inputs.cohort, ParameterSampler(enabled=False))
    simulator = BurdenSimulator(
        country=inputs.country,
        quintile=quintile,
        context=context,
        population=inputs.population,
        coverage=inputs.coverage[quintile] if coverage is None else coverage,
        life_expectancy=inputs.life_expectancy[quintile],
    )
    return simulator, simulator.run()


def test_single_cohort_matches_hand_calculation(make_inputs):
    inputs = make_inputs(
        ages=[3], n_years=5, births=1000.0, coverage=0.8, life_expectancy=63.0,
        incidence=0.1, cfr=0.1, case_cost=10.0, treat_prop=0.5, quintile_gradient=False,
    )
    params = GlobalParameters(
        horizon=5, efficacy=0.5, program_length=39, build_years=1,
        waning=WaningType.NO_WANING, duration=100, disability_weight=0.2,
        treatment_effectiveness=0.5, discount_rate=0.03,
    )
    _, result = simulate(inputs, params)

    discount = 0.97 ** np.arange(5)
    pop = 1000.0 / 5
    cases_pre = np.full(5, pop * 0.1)
    # age 3 is first dosed at t=3, protection = 0.5 * 0.8
    cases_post = np.array([20.0, 20.0, 12.0, 12.0, 12.0])
    deaths_per_case = 0.5 * 0.1 * 0.5 + 0.5 * 0.1
    dalys_per_case = 0.2 + deaths_per_case * (63.0 - 3)

    assert result.cases_pre == pytest.approx(cases_pre.sum())
    assert result.cases_post == pytest.approx(cases_post.sum())
    assert result.deaths_pre == pytest.approx(cases_pre.sum() * deaths_per_case)
    assert result.deaths_post == pytest.approx(cases_post.sum() * deaths_per_case)
    assert result.cost_pre == pytest.approx((cases_pre * 0.5 * 10.0 * discount).sum())
    assert result.cost_post == pytest.approx((cases_post * 0.5 * 10.0 * discount).sum())
    assert result.dalys_pre == pytest.approx((cases_pre * dalys_per_case * discount).sum())
    assert result.dalys_post == pytest.approx((cases_post * dalys_per_case * discount).sum())
    assert result.vaccinated == pytest.approx(5 * pop * 0.8)
    np.testing.assert_allclose(result.cases_averted_by_year, cases_pre - cases_post)


def test_zero_coverage_leaves_burden_unchanged(make_inputs):
    inputs = make_inputs(coverage=0.0)
    params = GlobalParameters(efficacy=0.9, efficacy_high=0.95)
    for q in QUINTILES:
        _, result = simulate(inputs, params, quintile=q)
        assert result.cases_post == result.cases_pre
        assert result.deaths_post == result.deaths_pre
        assert result.cost_post == result.cost_pre
        assert result.dalys_post == result.dalys_pre
        assert result.vaccinated == 0.0
        np.testing.assert_array_equal(result.cases_post_grid, result.cases_pre_grid)


def test_zero_efficacy_leaves_burden_unchanged(make_inputs):
    inputs = make_inputs(coverage=0.9)
    params = GlobalParameters(efficacy=0.0, efficacy_low=0.0, efficacy_high=0.0)
    _, result = simulate(inputs, params)
    assert result.cases_post == result.cases_pre
    assert result.dalys_post == result.dalys_pre


@pytest.mark.parametrize("waning", list(WaningType))
def test_vaccination_never_increases_burden(make_inputs, waning):
    inputs = make_inputs(coverage={1: 0.3, 2: 0.5, 3: 0.7, 4: 0.9, 5: 1.0}, incidence=0.2)
    params = GlobalParameters(waning=waning, duration=6, program_length=20, build_years=4)
    for q in QUINTILES:
        _, result = simulate(inputs, params, quintile=q)
        assert np.all(result.cases_post_grid <= result.cases_pre_grid)
        assert result.cases_post < result.cases_pre
        assert result.deaths_post <= result.deaths_pre
        assert result.cost_post <= result.cost_pre
        assert result.dalys_post <= result.dalys_pre


def test_full_protection_inside_programme_window(make_inputs):
    inputs = make_inputs(coverage=1.0)
    params = GlobalParameters(
        efficacy=1.0, efficacy_low=1.0, efficacy_high=1.0,
        waning=WaningType.NO_WANING, duration=100, build_years=1, program_length=39,
    )
    _, result = simulate(inputs, params)

    pre, post = result.cases_pre_grid, result.cases_post_grid
    for t in range(1, params.horizon + 1):
        for col, age in enumerate(result.ages):
            if t < age:
                # cohort born before the programme started
                assert post[t - 1, col] == pre[t - 1, col]
            elif age in params.half_protection_ages:
                assert post[t - 1, col] == pytest.approx(0.5 * pre[t - 1, col])
            else:
                assert post[t - 1, col] == 0.0


def test_discounting_reduces_later_costs(make_inputs):
    inputs = make_inputs(coverage=0.0, ages=[5])
    undiscounted = GlobalParameters(discount_rate=0.0)
    discounted = GlobalParameters(discount_rate=0.03)
    _, flat = simulate(inputs, undiscounted)
    _, disc = simulate(inputs, discounted)

    assert flat.cases_pre == disc.cases_pre
    expected_ratio = (0.97 ** np.arange(39)).sum() / 39
    assert disc.cost_pre / flat.cost_pre == pytest.approx(expected_ratio)


def test_higher_coverage_averts_more_cases(make_inputs):
    params = GlobalParameters()
    _, low = simulate(make_inputs(coverage=0.3), params)
    _, high = simulate(make_inputs(coverage=0.9), params)
    assert high.cases_averted > low.cases_averted > 0


def test_life_expectancy_below_age_adds_no_years_lost(make_inputs):
    inputs = make_inputs(ages=[12], coverage=0.0, life_expectancy=10.0)
    params = GlobalParameters(discount_rate=0.0)
    _, result = simulate(inputs, params)
    assert result.dalys_pre == pytest.approx(result.cases_pre * params.disability_weight)


def test_simulator_runs_once(make_inputs):
    simulator, _ = simulate(make_inputs(), GlobalParameters())
    assert simulator.state is SimulationState.COMPLETED
    with pytest.raises(RuntimeError):
        simulator.run()
