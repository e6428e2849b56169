from __future__ import annotations


class EmulationError(Exception):
    pass


class ConfigurationInconsistencyError(EmulationError, LookupError):
    """The live configuration (or a requested cell) is not part of the profiling sweep."""


class ArithmeticDegeneracyError(EmulationError, ArithmeticError):
    """A reconstruction step would produce NaN/Inf (zero pivot, too few samples)."""


class StoreLoadError(EmulationError, ValueError):
    """The profiling dump is missing, malformed or inconsistent."""
