"""
===============================================================================
vaccine_effects.py
Last Updated: 2026-10-17
===============================================================================
Vaccine effect models used by the burden simulator

- protection(): residual protection by years since vaccination (waning)
- ramp_factor(): achieved share of target coverage while the programme scales up
- is_unvaccinated(): whether a cohort fell outside the programme window

Ages are years since vaccination, since cohorts are dosed in their first year.
All three functions accept scalars or numpy arrays for the age argument.
--------------------------------------------------------------------------------
License: MIT
================================================================================
"""
import numpy as np

from .errors import ConfigurationError
from .parameters import WaningType

DEFAULT_RAMP_FLOOR = 0.2


def protection(waning_type, age_since_vaccination, duration: float):
    """Residual protection multiplier in [0, 1].

    Parameters:
    waning_type: WaningType or str. 'none', 'linear' or 'exponential'
    age_since_vaccination: float or array. Years since the dose
    duration: float. Duration of protection (years)

    Returns:
    multiplier: float or ndarray
    """
    waning_type = WaningType(waning_type)
    age = np.asarray(age_since_vaccination, dtype=float)
    if np.any(age < 0):
        raise ValueError("age since vaccination must be non-negative")

    if waning_type is WaningType.NO_WANING:
        result = np.where(age <= duration, 1.0, 0.0)
    else:
        if duration <= 0:
            raise ConfigurationError(f"{waning_type.value} waning needs a positive duration")
        if waning_type is WaningType.LINEAR:
            result = np.maximum(0.0, 1.0 - age / duration)
        else:
            result = np.maximum(0.0, np.exp(-age / duration))

    return float(result) if result.ndim == 0 else result


def ramp_factor(current_time, age_index, build_years: float, floor: float = DEFAULT_RAMP_FLOOR):
    """Share of target coverage reached by the cohort aged `age_index` at `current_time`.

    factor = clip(t - i + 1, floor, build_years) / build_years
    """
    if build_years <= 0:
        raise ConfigurationError("build_years must be positive")
    years_in = np.asarray(current_time, dtype=float) - np.asarray(age_index, dtype=float) + 1.0
    # saturates at 1 when build_years < floor
    result = np.minimum(np.maximum(years_in, floor), build_years) / build_years
    return float(result) if result.ndim == 0 else result


def is_unvaccinated(current_time, age_index, program_length):
    """True when the cohort was never offered the vaccine.

    A cohort aged i at time t was dosed at t - i; it is covered when that
    lies in [0, program_length] years after programme start.
    """
    t = np.asarray(current_time)
    i = np.asarray(age_index)
    eligible = (t >= i) & (i >= t - program_length)
    result = ~eligible
    return bool(result) if result.ndim == 0 else result
