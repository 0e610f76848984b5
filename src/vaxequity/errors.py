"""
===============================================================================
errors.py
Last Updated: 2026-10-17
===============================================================================
Error types for the quintile burden engine

- InputValidationError: a country's tables are missing entries or hold values
  outside their documented domain. The country is skipped, others proceed.
- ConfigurationError: global parameters or PSA bounds are invalid. Raised
  before any simulation work starts.
--------------------------------------------------------------------------------
License: MIT
================================================================================
"""
from typing import Optional


class ConfigurationError(ValueError):
    """Invalid global configuration (bounds, PSA settings, model constants)."""


class InputValidationError(ValueError):
    """Invalid or missing country input data.

    Parameters:
    message: str. What is wrong
    country: str, optional. Country the tables belong to
    quintile: int, optional. Quintile the offending value belongs to
    """

    def __init__(self, message: str, country: Optional[str] = None, quintile: Optional[int] = None):
        self.country = country
        self.quintile = quintile
        self.reason = message
        context = []
        if country is not None:
            context.append(f"country={country}")
        if quintile is not None:
            context.append(f"quintile={quintile}")
        if context:
            message = f"[{', '.join(context)}] {message}"
        super().__init__(message)
