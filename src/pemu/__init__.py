from .counters import EmulatedCounters, ExecutionMode, MeasurementSwitch
from .errors import ArithmeticDegeneracyError, ConfigurationInconsistencyError, EmulationError, StoreLoadError
from .interpolation import Interpolator
from .reader import DeltaReader, ReadingMode, remap_iteration
from .rng import RandomSource
from .store import DeltaSample, ProfilingStore, SampleKey, StoreBuilder, StoreMetadata

__version__ = "0.1.0"

__all__ = [
    "ArithmeticDegeneracyError",
    "ConfigurationInconsistencyError",
    "DeltaReader",
    "DeltaSample",
    "EmulatedCounters",
    "EmulationError",
    "ExecutionMode",
    "Interpolator",
    "MeasurementSwitch",
    "ProfilingStore",
    "RandomSource",
    "ReadingMode",
    "SampleKey",
    "StoreBuilder",
    "StoreLoadError",
    "StoreMetadata",
    "remap_iteration",
]
