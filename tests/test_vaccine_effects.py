import math

import numpy as np
import pytest

from vaxequity.errors import ConfigurationError
from vaxequity.parameters import WaningType
from vaxequity.vaccine_effects import is_unvaccinated, protection, ramp_factor


class TestWaning:
    def test_no_waning_is_a_step_function(self):
        assert protection(WaningType.NO_WANING, 10, 10) == 1.0
        assert protection(WaningType.NO_WANING, 11, 10) == 0.0

    def test_linear_starts_at_full_protection(self):
        assert protection(WaningType.LINEAR, 0, 8) == 1.0
        assert protection(WaningType.LINEAR, 4, 8) == pytest.approx(0.5)
        assert protection(WaningType.LINEAR, 12, 8) == 0.0

    def test_exponential_at_duration(self):
        assert protection(WaningType.EXPONENTIAL, 6, 6) == pytest.approx(math.exp(-1))

    def test_string_types_and_arrays(self):
        ages = np.arange(5)
        result = protection("linear", ages, 4)
        np.testing.assert_allclose(result, [1.0, 0.75, 0.5, 0.25, 0.0])

    def test_waning_needs_positive_duration(self):
        with pytest.raises(ConfigurationError):
            protection(WaningType.EXPONENTIAL, 1, 0)

    def test_negative_age_rejected(self):
        with pytest.raises(ValueError):
            protection(WaningType.NO_WANING, -1, 5)

    @pytest.mark.parametrize("waning", list(WaningType))
    def test_protection_in_unit_interval(self, waning):
        values = protection(waning, np.arange(0, 60), 15)
        assert np.all((values >= 0) & (values <= 1))


class TestCoverageRamp:
    def test_floor_applies_to_cohorts_not_yet_vaccinated(self):
        assert ramp_factor(1, 5, 5) == pytest.approx(0.2 / 5)

    def test_first_year_of_programme(self):
        assert ramp_factor(3, 3, 5) == pytest.approx(1 / 5)

    def test_saturates_after_build_years(self):
        assert ramp_factor(10, 6, 5) == 1.0
        assert ramp_factor(30, 0, 5) == 1.0

    def test_non_decreasing_in_years_since_start(self):
        gaps = np.arange(-5, 15)
        values = ramp_factor(gaps + 20, 20, 4)
        assert np.all(np.diff(values) >= 0)
        assert values[-1] == 1.0

    def test_build_years_below_floor_saturates(self):
        assert ramp_factor(1, 5, 0.1) == 1.0

    def test_build_years_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            ramp_factor(1, 0, 0)


class TestEligibility:
    def test_cohort_vaccinated_at_programme_start_is_eligible(self):
        assert is_unvaccinated(7, 7, 10) is False

    def test_cohort_beyond_programme_length_is_not(self):
        program_length = 10
        t = 20
        assert is_unvaccinated(t, t - program_length, program_length) is False
        assert is_unvaccinated(t, t - program_length - 1, program_length) is True

    def test_cohort_older_than_programme_is_unvaccinated(self):
        assert is_unvaccinated(3, 8, 10) is True

    def test_vectorised(self):
        result = is_unvaccinated(5, np.arange(8), 2)
        np.testing.assert_array_equal(result, [True, True, True, False, False, False, True, True])
