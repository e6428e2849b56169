from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
import logging
import threading
from typing import Any, Protocol

from .interpolation import Interpolator
from .store import ProfilingStore

logger = logging.getLogger(__name__)

ProgressSignal = Callable[[], int]


class ClockMonitor(Protocol):
    def read_clock(self) -> float: ...


class EnergyMonitor(Protocol):
    def read_energy(self) -> int: ...


class ConfigurationSource(Protocol):
    def current_application_configuration_id(self) -> int: ...

    def current_system_configuration_id(self) -> int: ...


class KnobSnapshotConfigurationSource:
    """Resolves the live application/system knob snapshots to profiled configuration ids."""

    def __init__(
        self,
        store: ProfilingStore,
        *,
        application_knobs: Callable[[], Mapping[str, Any]],
        system_knobs: Callable[[], Mapping[str, Any]],
    ) -> None:
        self.store = store
        self._application_knobs = application_knobs
        self._system_knobs = system_knobs

    def current_application_configuration_id(self) -> int:
        return self.store.application_configuration_id(self._application_knobs())

    def current_system_configuration_id(self) -> int:
        return self.store.system_configuration_id(self._system_knobs())


class FixedConfigurationSource:
    def __init__(self, application_configuration_id: int, system_configuration_id: int) -> None:
        self.application_configuration_id = application_configuration_id
        self.system_configuration_id = system_configuration_id

    def current_application_configuration_id(self) -> int:
        return self.application_configuration_id

    def current_system_configuration_id(self) -> int:
        return self.system_configuration_id


class EmulatedCounters:
    """Clock and energy counters advanced by emulated per-input deltas.

    Every processed input is charged exactly once, however irregularly the
    counters are polled.
    """

    def __init__(
        self,
        interpolator: Interpolator,
        configuration: ConfigurationSource,
        progress: ProgressSignal,
        *,
        application_input_id: int | None = None,
    ) -> None:
        self.interpolator = interpolator
        self.configuration = configuration
        self.progress = progress
        if application_input_id is None:
            application_input_id = interpolator.reader.store.metadata.application_input_stream_id
        self.application_input_id = application_input_id

        self.number_of_processed_inputs = 0
        self.global_time = 0.0
        self.global_energy = 0.0
        self._clock_reading = 0.0
        self._energy_reading = 0
        self._lock = threading.Lock()

    def on_query(self, current_processed_inputs: int) -> None:
        with self._lock:
            if current_processed_inputs <= self.number_of_processed_inputs:
                return
            app_cfg = self.configuration.current_application_configuration_id()
            sys_cfg = self.configuration.current_system_configuration_id()
            total_time = self.global_time
            total_energy = self.global_energy
            clock_reading = self._clock_reading
            energy_reading = self._energy_reading
            for i in range(self.number_of_processed_inputs + 1, current_processed_inputs + 1):
                delta = self.interpolator.interpolate(app_cfg, self.application_input_id, sys_cfg, i)
                total_time += delta.time_delta
                total_energy += delta.energy_delta
                # High-water marks are taken per input, not per poll.
                clock_reading = max(clock_reading, total_time)
                energy_reading = max(energy_reading, int(max(total_energy, 0.0)))
            self.global_time = total_time
            self.global_energy = total_energy
            self._clock_reading = clock_reading
            self._energy_reading = energy_reading
            logger.debug(
                "Charged inputs %d..%d (appCfg=%d, sysCfg=%d): time=%r energy=%r.",
                self.number_of_processed_inputs + 1,
                current_processed_inputs,
                app_cfg,
                sys_cfg,
                self.global_time,
                self.global_energy,
            )
            self.number_of_processed_inputs = current_processed_inputs

    def read_clock(self) -> float:
        self.on_query(self.progress())
        logger.debug("Emulated clock reading: %r", self._clock_reading)
        return self._clock_reading

    def read_energy(self) -> int:
        self.on_query(self.progress())
        return self._energy_reading


class ExecutionMode(str, Enum):
    default = "default"
    emulated = "emulated"


class MeasurementSwitch:
    """Backs the clock/energy interfaces with hardware monitors or with emulated counters."""

    def __init__(
        self,
        *,
        clock: ClockMonitor,
        energy: EnergyMonitor,
        emulator_factory: Callable[[], EmulatedCounters],
        mode: ExecutionMode = ExecutionMode.default,
    ) -> None:
        self._hardware_clock = clock
        self._hardware_energy = energy
        self._emulator_factory = emulator_factory
        self._mode = ExecutionMode.default
        self.emulator: EmulatedCounters | None = None
        self.set_mode(mode)

    @property
    def mode(self) -> ExecutionMode:
        return self._mode

    def set_mode(self, mode: ExecutionMode) -> None:
        mode = ExecutionMode(mode)
        if mode == self._mode and (mode == ExecutionMode.default or self.emulator is not None):
            return
        if mode == ExecutionMode.emulated:
            self.emulator = self._emulator_factory()
        else:
            # Accumulated emulated time/energy is dropped, not carried over.
            self.emulator = None
        logger.info("Measurement execution mode: %s -> %s", self._mode.value, mode.value)
        self._mode = mode

    def read_clock(self) -> float:
        if self.emulator is not None:
            return self.emulator.read_clock()
        return self._hardware_clock.read_clock()

    def read_energy(self) -> int:
        if self.emulator is not None:
            return self.emulator.read_energy()
        return self._hardware_energy.read_energy()
