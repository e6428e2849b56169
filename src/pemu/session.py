from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path

from .config import EmulatorConfig
from .counters import ConfigurationSource, EmulatedCounters, FixedConfigurationSource, ProgressSignal
from .interpolation import Interpolator
from .reader import DeltaReader
from .report import EmulationPoint, EmulationReport, EmulationTotals, InputPaths
from .rng import RandomSource, default_source
from .store import ProfilingStore

logger = logging.getLogger(__name__)


def open_store(config: EmulatorConfig, *, store_path: str | Path | None = None) -> ProfilingStore:
    path = Path(store_path) if store_path is not None else config.resolved_store_path()
    return ProfilingStore.from_json(path, outlier_elimination_applications=config.outlier_elimination)


def make_rng(config: EmulatorConfig) -> RandomSource:
    if config.seed is not None:
        return RandomSource(config.seed)
    return default_source()


def build_counters(
    store: ProfilingStore,
    config: EmulatorConfig,
    *,
    configuration: ConfigurationSource,
    progress: ProgressSignal,
    rng: RandomSource | None = None,
) -> EmulatedCounters:
    reader = DeltaReader(store, mode=config.reading_mode, rng=rng if rng is not None else make_rng(config))
    return EmulatedCounters(
        Interpolator(reader),
        configuration,
        progress,
        application_input_id=config.application_input_id,
    )


def emulate_run(
    store: ProfilingStore,
    config: EmulatorConfig,
    *,
    inputs: int,
    application_configuration_id: int,
    system_configuration_id: int,
    poll_every: int = 1,
    rng: RandomSource | None = None,
    paths: dict[str, str] | None = None,
) -> EmulationReport:
    """Drive emulated counters through ``inputs`` processed inputs, polling every ``poll_every`` inputs."""
    if inputs < 0:
        raise ValueError(f"inputs must be >= 0 (got {inputs})")
    if poll_every < 1:
        raise ValueError(f"poll_every must be >= 1 (got {poll_every})")

    rng = rng if rng is not None else make_rng(config)
    processed = 0

    def progress() -> int:
        return processed

    counters = build_counters(
        store,
        config,
        configuration=FixedConfigurationSource(application_configuration_id, system_configuration_id),
        progress=progress,
        rng=rng,
    )

    points: list[EmulationPoint] = []
    while processed < inputs:
        processed = min(processed + poll_every, inputs)
        points.append(
            EmulationPoint(processed_inputs=processed, clock=counters.read_clock(), energy=counters.read_energy())
        )
    logger.info(
        "Emulated %d inputs of '%s' on '%s' (%s mode): time=%r energy=%r.",
        inputs,
        store.metadata.application_name,
        store.metadata.architecture_name,
        config.reading_mode.value,
        counters.global_time,
        counters.global_energy,
    )

    app_settings = store.application_settings(application_configuration_id)
    sys_settings = store.system_settings(system_configuration_id)
    return EmulationReport(
        generated_at=datetime.now(timezone.utc).isoformat(),
        application=store.metadata.application_name,
        architecture=store.metadata.architecture_name,
        input_stream=store.metadata.input_stream_name,
        reading_mode=config.reading_mode.value,
        seed=rng.seed,
        outlier_elimination=store.outlier_elimination,
        application_configuration_id=application_configuration_id,
        system_configuration_id=system_configuration_id,
        application_settings=app_settings.plain() if app_settings is not None else None,
        system_settings=sys_settings.plain() if sys_settings is not None else None,
        interpolated=not counters.interpolator.is_directly_profiled(
            application_configuration_id, system_configuration_id
        ),
        poll_every=poll_every,
        points=points,
        totals=EmulationTotals.from_counters(
            processed_inputs=counters.number_of_processed_inputs,
            time=counters.global_time,
            energy=counters.global_energy,
        ),
        inputs=InputPaths(**paths) if paths is not None else None,
    )
