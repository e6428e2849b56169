from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class InputPaths(BaseModel):
    store: str
    config: str | None = None


class EmulationPoint(BaseModel):
    processed_inputs: int = Field(..., ge=0)
    clock: float
    energy: int = Field(..., ge=0)


class EmulationTotals(BaseModel):
    processed_inputs: int = Field(..., ge=0)
    time: float
    energy: float
    time_per_input: float | None = None
    energy_per_input: float | None = None

    @classmethod
    def from_counters(cls, *, processed_inputs: int, time: float, energy: float) -> "EmulationTotals":
        if processed_inputs == 0:
            return cls(processed_inputs=0, time=time, energy=energy)
        return cls(
            processed_inputs=processed_inputs,
            time=time,
            energy=energy,
            time_per_input=time / processed_inputs,
            energy_per_input=energy / processed_inputs,
        )


class EmulationReport(BaseModel):
    generated_at: str
    application: str
    architecture: str
    input_stream: str
    reading_mode: str
    seed: int
    outlier_elimination: bool
    application_configuration_id: int
    system_configuration_id: int
    application_settings: dict[str, Any] | None = None
    system_settings: dict[str, Any] | None = None
    interpolated: bool
    poll_every: int = Field(..., ge=1)
    points: list[EmulationPoint]
    totals: EmulationTotals
    inputs: InputPaths | None = None
