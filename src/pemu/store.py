from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
import json
import logging
from pathlib import Path
import math
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, ValidationError, field_validator

from .errors import ArithmeticDegeneracyError, ConfigurationInconsistencyError, StoreLoadError
from .knobs import KnobSettings

logger = logging.getLogger(__name__)

RawKnobValue = Union[StrictInt, StrictFloat, StrictStr]


class SampleKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    application_configuration_id: int
    application_input_id: int
    system_configuration_id: int


class IterationKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    sample: SampleKey
    iteration: int = Field(..., ge=0)


class DeltaSample(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    time_delta: float
    energy_delta: float

    @classmethod
    def _finite(cls, time_delta: float, energy_delta: float, *, op: str) -> "DeltaSample":
        if not (math.isfinite(time_delta) and math.isfinite(energy_delta)):
            raise ArithmeticDegeneracyError(f"Non-finite delta ({time_delta!r}, {energy_delta!r}) from {op}")
        return cls(time_delta=time_delta, energy_delta=energy_delta)

    def __mul__(self, other: "DeltaSample") -> "DeltaSample":
        return DeltaSample._finite(
            self.time_delta * other.time_delta,
            self.energy_delta * other.energy_delta,
            op=f"{self} * {other}",
        )

    def __truediv__(self, other: "DeltaSample") -> "DeltaSample":
        if other.time_delta == 0 or other.energy_delta == 0:
            raise ArithmeticDegeneracyError(f"Division by a zero delta field: {self} / {other}")
        return DeltaSample._finite(
            self.time_delta / other.time_delta,
            self.energy_delta / other.energy_delta,
            op=f"{self} / {other}",
        )


class StoreMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    application_name: str
    architecture_name: str
    input_stream_name: str
    application_id: int
    application_input_stream_id: int
    warmup_inputs: int = Field(0, ge=0)
    number_of_inputs_traced: int = Field(..., ge=1)
    tape_noise: float = Field(0.0, ge=0.0)
    time_outlier: float
    energy_outlier: float
    reference_application_configuration_id: int
    reference_system_configuration_id: int

    @field_validator("warmup_inputs")
    @classmethod
    def _validate_warmup(cls, v: int) -> int:
        if v != 0:
            raise ValueError(f"warmup_inputs must be 0 (got {v}); warmup segments are not supported")
        return v


class ConfigurationEntry(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    id: int
    settings: dict[str, RawKnobValue]


class DeltaRow(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    application_configuration_id: int
    application_input_id: int
    system_configuration_id: int
    iteration: int = Field(..., ge=0)
    time_delta: float
    energy_delta: float

    @property
    def key(self) -> IterationKey:
        return IterationKey(
            sample=SampleKey(
                application_configuration_id=self.application_configuration_id,
                application_input_id=self.application_input_id,
                system_configuration_id=self.system_configuration_id,
            ),
            iteration=self.iteration,
        )


class StoreRecord(StoreMetadata):
    """Persisted form of one application + architecture profiling dump."""

    application_configurations: list[ConfigurationEntry]
    system_configurations: list[ConfigurationEntry]
    traced_configurations: list[SampleKey]
    deltas: list[DeltaRow]

    def metadata(self) -> StoreMetadata:
        return StoreMetadata.model_validate(
            {field: getattr(self, field) for field in StoreMetadata.model_fields}
        )


def _settings_map(entries: list[ConfigurationEntry], *, field: str, source: str) -> dict[KnobSettings, int]:
    by_settings: dict[KnobSettings, int] = {}
    seen_ids: set[int] = set()
    for entry in entries:
        settings = KnobSettings(entry.settings)
        if settings in by_settings:
            raise StoreLoadError(
                f"Invalid profiling store '{source}': {field} lists settings {settings!r} twice "
                f"(ids {by_settings[settings]} and {entry.id})"
            )
        if entry.id in seen_ids:
            raise StoreLoadError(f"Invalid profiling store '{source}': {field} lists id {entry.id} twice")
        by_settings[settings] = entry.id
        seen_ids.add(entry.id)
    return by_settings


class ProfilingStore:
    """Read-only repository of profiled (time, energy) deltas for one application/architecture."""

    def __init__(
        self,
        *,
        metadata: StoreMetadata,
        deltas: Mapping[IterationKey, DeltaSample],
        traced_configurations: Iterable[SampleKey],
        application_configuration_ids: Mapping[KnobSettings, int],
        system_configuration_ids: Mapping[KnobSettings, int],
        outlier_elimination: bool = False,
    ) -> None:
        self.metadata = metadata
        self.outlier_elimination = outlier_elimination
        self._deltas = dict(deltas)
        self._traced = frozenset(traced_configurations)
        self._app_ids = dict(application_configuration_ids)
        self._sys_ids = dict(system_configuration_ids)
        self._app_settings = {v: k for k, v in self._app_ids.items()}
        self._sys_settings = {v: k for k, v in self._sys_ids.items()}

    @classmethod
    def from_record(
        cls,
        record: StoreRecord,
        *,
        outlier_elimination: bool = False,
        outlier_elimination_applications: Collection[str] = (),
        source: str = "<record>",
    ) -> "ProfilingStore":
        """Validate a persisted record and build the store from it, all or nothing.

        Outlier elimination is enabled when ``outlier_elimination`` is set or when the
        record's application is listed in ``outlier_elimination_applications``.
        """
        deltas: dict[IterationKey, DeltaSample] = {}
        for row in record.deltas:
            key = row.key
            if key in deltas:
                raise StoreLoadError(
                    f"Invalid profiling store '{source}': deltas has a duplicate row for "
                    f"{key.sample.model_dump()} iteration {key.iteration}"
                )
            deltas[key] = DeltaSample(time_delta=row.time_delta, energy_delta=row.energy_delta)

        traced = list(dict.fromkeys(record.traced_configurations))
        for sample in traced:
            missing = [
                i for i in range(record.number_of_inputs_traced)
                if IterationKey(sample=sample, iteration=i) not in deltas
            ]
            if missing:
                raise StoreLoadError(
                    f"Invalid profiling store '{source}': traced_configurations entry {sample.model_dump()} "
                    f"has no deltas for iterations {missing} (number_of_inputs_traced="
                    f"{record.number_of_inputs_traced})"
                )

        return cls(
            metadata=record.metadata(),
            deltas=deltas,
            traced_configurations=traced,
            application_configuration_ids=_settings_map(
                record.application_configurations, field="application_configurations", source=source
            ),
            system_configuration_ids=_settings_map(
                record.system_configurations, field="system_configurations", source=source
            ),
            outlier_elimination=outlier_elimination or record.application_name in outlier_elimination_applications,
        )

    @classmethod
    def from_json(
        cls,
        path: str | Path,
        *,
        outlier_elimination: bool = False,
        outlier_elimination_applications: Collection[str] = (),
    ) -> "ProfilingStore":
        p = Path(path)
        if not p.exists():
            raise StoreLoadError(f"Profiling store file not found: {p}")
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StoreLoadError(
                f"Invalid profiling store JSON in '{p}': {exc.msg} at line {exc.lineno}, column {exc.colno}"
            ) from exc
        if not isinstance(raw, dict):
            raise StoreLoadError(f"Invalid profiling store '{p}': top-level JSON must be an object")
        try:
            record = StoreRecord.model_validate(raw)
        except ValidationError as exc:
            raise StoreLoadError(f"Invalid profiling store: {p}\n{exc}") from exc

        store = cls.from_record(
            record,
            outlier_elimination=outlier_elimination,
            outlier_elimination_applications=outlier_elimination_applications,
            source=str(p),
        )
        logger.info(
            "Loaded profiling store '%s' for application '%s' on '%s': %d traced configurations, %d rows.",
            p,
            store.metadata.application_name,
            store.metadata.architecture_name,
            len(store.traced_configurations),
            store.row_count,
        )
        return store

    @property
    def row_count(self) -> int:
        return len(self._deltas)

    @property
    def traced_configurations(self) -> frozenset[SampleKey]:
        return self._traced

    def is_traced(self, key: SampleKey) -> bool:
        return key in self._traced

    def sample(self, key: SampleKey, iteration: int) -> DeltaSample:
        try:
            return self._deltas[IterationKey(sample=key, iteration=iteration)]
        except KeyError:
            raise ConfigurationInconsistencyError(
                f"No profiled delta for {key.model_dump()} at iteration {iteration}"
            ) from None

    def samples(self, key: SampleKey, iterations: Iterable[int]) -> list[DeltaSample]:
        return [self.sample(key, i) for i in iterations]

    def application_configuration_id(self, snapshot: Mapping[str, Any]) -> int:
        return self._lookup_id(self._app_ids, snapshot, kind="application")

    def system_configuration_id(self, snapshot: Mapping[str, Any]) -> int:
        return self._lookup_id(self._sys_ids, snapshot, kind="system")

    def application_settings(self, configuration_id: int) -> KnobSettings | None:
        return self._app_settings.get(configuration_id)

    def system_settings(self, configuration_id: int) -> KnobSettings | None:
        return self._sys_settings.get(configuration_id)

    @staticmethod
    def _lookup_id(ids: Mapping[KnobSettings, int], snapshot: Mapping[str, Any], *, kind: str) -> int:
        settings = KnobSettings.from_raw(snapshot)
        try:
            return ids[settings]
        except KeyError:
            raise ConfigurationInconsistencyError(
                f"No {kind} configuration id for the current knob settings {settings!r}; "
                f"{len(ids)} {kind} configurations were profiled"
            ) from None

    def to_record(self) -> StoreRecord:
        def entries(ids: Mapping[KnobSettings, int]) -> list[ConfigurationEntry]:
            return [
                ConfigurationEntry(id=cid, settings=settings.plain())
                for settings, cid in sorted(ids.items(), key=lambda item: item[1])
            ]

        def row_order(key: IterationKey) -> tuple[int, int, int, int]:
            s = key.sample
            return (s.application_configuration_id, s.application_input_id, s.system_configuration_id, key.iteration)

        rows = [
            DeltaRow(
                **key.sample.model_dump(),
                iteration=key.iteration,
                time_delta=delta.time_delta,
                energy_delta=delta.energy_delta,
            )
            for key, delta in sorted(self._deltas.items(), key=lambda item: row_order(item[0]))
        ]
        traced = sorted(
            self._traced,
            key=lambda s: (s.application_configuration_id, s.application_input_id, s.system_configuration_id),
        )
        return StoreRecord(
            **self.metadata.model_dump(),
            application_configurations=entries(self._app_ids),
            system_configurations=entries(self._sys_ids),
            traced_configurations=traced,
            deltas=rows,
        )

    def write_json(self, path: str | Path) -> Path:
        p = Path(path)
        p.write_text(self.to_record().model_dump_json(indent=2), encoding="utf-8")
        return p


class StoreBuilder:
    """Collects profiling rows during an offline tracing phase.

    Nothing becomes queryable until :meth:`build` validates the whole dump.
    """

    def __init__(self, metadata: StoreMetadata) -> None:
        self.metadata = metadata
        self._app_configs: list[ConfigurationEntry] = []
        self._sys_configs: list[ConfigurationEntry] = []
        self._traced: list[SampleKey] = []
        self._rows: list[DeltaRow] = []

    def add_application_configuration(self, configuration_id: int, settings: Mapping[str, Any]) -> "StoreBuilder":
        self._app_configs.append(
            ConfigurationEntry(id=configuration_id, settings=KnobSettings.from_raw(settings).plain())
        )
        return self

    def add_system_configuration(self, configuration_id: int, settings: Mapping[str, Any]) -> "StoreBuilder":
        self._sys_configs.append(
            ConfigurationEntry(id=configuration_id, settings=KnobSettings.from_raw(settings).plain())
        )
        return self

    def add_trace(
        self,
        *,
        application_configuration_id: int,
        system_configuration_id: int,
        deltas: Iterable[tuple[float, float]],
        application_input_id: int | None = None,
    ) -> SampleKey:
        if application_input_id is None:
            application_input_id = self.metadata.application_input_stream_id
        key = SampleKey(
            application_configuration_id=application_configuration_id,
            application_input_id=application_input_id,
            system_configuration_id=system_configuration_id,
        )
        for iteration, (time_delta, energy_delta) in enumerate(deltas):
            self._rows.append(
                DeltaRow(
                    **key.model_dump(),
                    iteration=iteration,
                    time_delta=float(time_delta),
                    energy_delta=float(energy_delta),
                )
            )
        self._traced.append(key)
        return key

    def record(self) -> StoreRecord:
        return StoreRecord(
            **self.metadata.model_dump(),
            application_configurations=list(self._app_configs),
            system_configurations=list(self._sys_configs),
            traced_configurations=list(self._traced),
            deltas=list(self._rows),
        )

    def build(self, *, outlier_elimination: bool = False) -> ProfilingStore:
        return ProfilingStore.from_record(self.record(), outlier_elimination=outlier_elimination, source="<builder>")
