from __future__ import annotations

from enum import Enum
import logging
import math

from .errors import ArithmeticDegeneracyError, ConfigurationInconsistencyError
from .rng import RandomSource, default_source
from .store import DeltaSample, ProfilingStore, SampleKey

logger = logging.getLogger(__name__)

# Statistics-mode noise is uniform in [-mean/N, +mean/N].
STATISTICS_NOISE_DIVISOR = 3.0


class ReadingMode(str, Enum):
    tape = "tape"
    statistics = "statistics"


def remap_iteration(iteration: int, *, number_of_inputs_traced: int, warmup_inputs: int = 0) -> int:
    """Map an arbitrary input index onto the traced range, replaying the trace back and forth.

    For a trace of 3 inputs, iterations 0..7 read rows 0, 1, 2, 2, 1, 0, 0, 1.
    """
    if warmup_inputs != 0:
        raise NotImplementedError(f"Trace remapping with warmup_inputs={warmup_inputs} is not supported")
    if iteration < 0:
        raise ValueError(f"iteration must be >= 0 (got {iteration})")
    trace_size = number_of_inputs_traced - warmup_inputs
    if trace_size <= 0:
        raise ValueError(f"Empty trace: number_of_inputs_traced={number_of_inputs_traced}")
    repetition, shifted = divmod(iteration, trace_size)
    if repetition % 2 == 1:
        return (trace_size - 1) - shifted
    return shifted


def eliminate_outliers(measurement: float, error: float, factor: float, safety_margin: float) -> float:
    """Shrink ``factor`` so that ``measurement`` stays ``safety_margin`` deviations above zero."""
    if error == 0:
        return factor
    return min(factor, measurement / (error * safety_margin))


def _mean_and_deviation(values: list[float], divisor: int) -> tuple[float, float]:
    mean = sum(values) / divisor
    variance = sum((v - mean) ** 2 for v in values) / divisor
    return mean, math.sqrt(variance)


class DeltaReader:
    """Resolves one profiled cell + iteration into a noisy (time, energy) delta."""

    def __init__(
        self,
        store: ProfilingStore,
        *,
        mode: ReadingMode = ReadingMode.statistics,
        rng: RandomSource | None = None,
    ) -> None:
        self.store = store
        self.mode = ReadingMode(mode)
        self.rng = rng if rng is not None else default_source()

    def read(self, key: SampleKey, iteration: int) -> DeltaSample:
        if not self.store.is_traced(key):
            raise ConfigurationInconsistencyError(
                f"Attempt to read deltas for configuration {key.model_dump()} that was not traced; "
                f"{len(self.store.traced_configurations)} configurations were traced"
            )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Reading deltas (%s) for application settings %r and system settings %r.",
                self.mode.value,
                self.store.application_settings(key.application_configuration_id),
                self.store.system_settings(key.system_configuration_id),
            )
        if self.mode == ReadingMode.tape:
            return self._read_tape(key, iteration)
        return self._read_statistics(key, iteration)

    def _read_tape(self, key: SampleKey, iteration: int) -> DeltaSample:
        meta = self.store.metadata
        remapped = remap_iteration(
            iteration,
            number_of_inputs_traced=meta.number_of_inputs_traced,
            warmup_inputs=meta.warmup_inputs,
        )
        recorded = self.store.sample(key, remapped)
        time_noise = self.rng.gaussian(abs(recorded.time_delta) * meta.tape_noise)
        energy_noise = self.rng.gaussian(abs(recorded.energy_delta) * meta.tape_noise)
        delta = DeltaSample(
            time_delta=recorded.time_delta + time_noise,
            energy_delta=recorded.energy_delta + energy_noise,
        )
        logger.debug(
            "Tape read for %s iteration %d (remapped %d): recorded %s, with noise %s.",
            key.model_dump(),
            iteration,
            remapped,
            recorded,
            delta,
        )
        return delta

    def _read_statistics(self, key: SampleKey, iteration: int) -> DeltaSample:
        meta = self.store.metadata
        # The last traced row is left out of the cell statistics.
        count = meta.number_of_inputs_traced - 1
        if count < 2:
            raise ArithmeticDegeneracyError(
                f"Statistics mode needs at least 2 samples per configuration; "
                f"number_of_inputs_traced={meta.number_of_inputs_traced} leaves {count}"
            )
        rows = self.store.samples(key, range(count))
        mean_time, deviation_time = _mean_and_deviation([r.time_delta for r in rows], count)
        mean_energy, deviation_energy = _mean_and_deviation([r.energy_delta for r in rows], count)

        rescale = 1.0
        if self.store.outlier_elimination:
            rescale = eliminate_outliers(mean_time, deviation_time, rescale, meta.time_outlier)
            rescale = eliminate_outliers(mean_energy, deviation_energy, rescale, meta.energy_outlier)

        logger.debug(
            "Statistics read for %s iteration %d: mean time %r (deviation %r), mean energy %r (deviation %r), "
            "rescale factor %r over %d samples.",
            key.model_dump(),
            iteration,
            mean_time,
            deviation_time,
            mean_energy,
            deviation_energy,
            rescale,
            count,
        )

        time_noise = self.rng.uniform(-mean_time, mean_time) / STATISTICS_NOISE_DIVISOR
        energy_noise = self.rng.uniform(-mean_energy, mean_energy) / STATISTICS_NOISE_DIVISOR
        delta = DeltaSample(
            time_delta=mean_time * rescale + time_noise,
            energy_delta=mean_energy * rescale + energy_noise,
        )
        logger.debug("Statistics read with noise (%r, %r): %s.", time_noise, energy_noise, delta)
        return delta
