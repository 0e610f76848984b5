import numpy as np
import pytest

from vaxequity.errors import ConfigurationError
from vaxequity.sampling import ParameterSampler, pert_shape, unit_rng


@pytest.mark.parametrize("central, low, high", [(0.5, 0.1, 0.9), (0.2, 0.2, 0.3), (7.0, 7.0, 7.0)])
def test_disabled_sampler_is_identity(central, low, high):
    sampler = ParameterSampler(enabled=False)
    assert sampler.sample(central, low, high) == central


def test_degenerate_bounds_return_value_without_drawing():
    rng = unit_rng(1, "Testland", 0)
    reference = unit_rng(1, "Testland", 0)
    sampler = ParameterSampler(enabled=True, rng=rng)

    assert sampler.sample(0.4, 0.4, 0.4) == 0.4
    # the stream was not advanced
    assert rng.random() == reference.random()


@pytest.mark.parametrize("central, low, high", [(0.5, 0.6, 0.4), (0.9, 0.1, 0.5), (0.0, 0.1, 0.5)])
def test_invalid_bounds_raise_configuration_error(central, low, high):
    with pytest.raises(ConfigurationError):
        ParameterSampler(enabled=False).sample(central, low, high)
    with pytest.raises(ConfigurationError):
        ParameterSampler(enabled=True, rng=unit_rng(1, "x", 0)).sample(central, low, high)


def test_enabled_sampler_needs_a_generator():
    with pytest.raises(ConfigurationError):
        ParameterSampler(enabled=True)


def test_pert_draws_stay_in_bounds_and_centre_on_mode():
    sampler = ParameterSampler(enabled=True, rng=unit_rng(7, "Testland", 3))
    draws = np.array([sampler.sample(0.3, 0.1, 0.9) for _ in range(4000)])

    assert draws.min() >= 0.1
    assert draws.max() <= 0.9
    # PERT mean = (low + 4 mode + high) / 6
    assert draws.mean() == pytest.approx((0.1 + 4 * 0.3 + 0.9) / 6, abs=0.01)


def test_pert_shape_symmetric_mode():
    assert pert_shape(0.5, 0.0, 1.0) == (3.0, 3.0)


def test_same_unit_gives_same_stream():
    a = ParameterSampler(enabled=True, rng=unit_rng(42, "Testland", 5))
    b = ParameterSampler(enabled=True, rng=unit_rng(42, "Testland", 5))
    assert [a.sample(0.5, 0.0, 1.0) for _ in range(5)] == [b.sample(0.5, 0.0, 1.0) for _ in range(5)]


def test_units_get_independent_streams():
    base = unit_rng(42, "Testland", 0).random(5)
    assert not np.array_equal(base, unit_rng(42, "Testland", 1).random(5))
    assert not np.array_equal(base, unit_rng(42, "Otherland", 0).random(5))
    assert not np.array_equal(base, unit_rng(43, "Testland", 0).random(5))


def test_sample_array_keeps_degenerate_elements():
    sampler = ParameterSampler(enabled=True, rng=unit_rng(3, "Testland", 0))
    central = np.array([0.2, 0.5, 0.7])
    low = np.array([0.2, 0.4, 0.5])
    high = np.array([0.2, 0.6, 0.9])

    values = sampler.sample_array(central, low, high)

    assert values[0] == 0.2
    assert np.all(values >= low)
    assert np.all(values <= high)


def test_sample_array_disabled_returns_copy_of_central():
    central = np.array([0.1, 0.2])
    values = ParameterSampler().sample_array(central, central - 0.05, central + 0.05)
    np.testing.assert_array_equal(values, central)
    assert values is not central
