from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .reader import ReadingMode


class EmulatorConfig(BaseModel):
    store: str | None = None
    reading_mode: ReadingMode = ReadingMode.statistics
    seed: int | None = Field(default=None, ge=0)
    outlier_elimination: list[str] = Field(default_factory=list)
    application_input_id: int | None = None

    @field_validator("outlier_elimination")
    @classmethod
    def _validate_outlier_elimination(cls, v: list[str]) -> list[str]:
        for name in v:
            if not name:
                raise ValueError("outlier_elimination entries must be non-empty application names")
        return v

    def resolved_store_path(self) -> Path:
        if self.store is None:
            raise ValueError("No profiling store configured: set 'store' in the emulator config or pass --store")
        return Path(self.store)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "EmulatorConfig":
        p = Path(path)
        data = _load_yaml(p)
        raw_store = data.get("store")
        if raw_store is not None:
            sp = Path(str(raw_store))
            if not sp.is_absolute():
                sp = (p.parent / sp).resolve()
            data["store"] = str(sp)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid emulator config: {path}\n{exc}") from exc


def _load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(path))
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:  # pragma: no cover
        raise ValueError(f"Failed to parse YAML: {p}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Invalid emulator config: {p}\ntop-level YAML must be a mapping")
    return data
