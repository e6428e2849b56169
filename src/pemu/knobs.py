from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr


class IntKnob(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["int"] = "int"
    value: StrictInt


class FloatKnob(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["float"] = "float"
    value: StrictFloat


class TextKnob(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: StrictStr


KnobValue = Union[IntKnob, FloatKnob, TextKnob]


def knob_value(raw: Any) -> KnobValue:
    if isinstance(raw, (IntKnob, FloatKnob, TextKnob)):
        return raw
    # bool is an int subclass; no knob is boolean-typed
    if isinstance(raw, bool):
        raise ValueError(f"Unsupported knob value type: {raw!r} (bool)")
    if isinstance(raw, int):
        return IntKnob(value=raw)
    if isinstance(raw, float):
        return FloatKnob(value=raw)
    if isinstance(raw, str):
        return TextKnob(value=raw)
    raise ValueError(f"Unsupported knob value type: {raw!r} ({type(raw).__name__})")


def parse_knob_setting(text: str) -> KnobValue:
    """Parse a knob value written in the profiler's textual convention.

    Integers and floats are written bare; text values are wrapped in angle
    brackets, e.g. ``<fast>``.
    """
    try:
        return IntKnob(value=int(text))
    except ValueError:
        pass
    try:
        return FloatKnob(value=float(text))
    except ValueError:
        pass
    if len(text) > 2 and text.startswith("<") and text.endswith(">"):
        return TextKnob(value=text[1:-1])
    raise ValueError(f"Could not parse knob setting {text!r}: expected an int, a float or <text>")


class KnobSettings(Mapping[str, Any]):
    """Immutable knob-name -> knob-value snapshot, usable as a dict key."""

    __slots__ = ("_values", "_hash")

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        converted = {str(name): knob_value(raw) for name, raw in (values or {}).items()}
        self._values = dict(sorted(converted.items()))
        self._hash = hash(frozenset(self._values.items()))

    @classmethod
    def from_raw(cls, values: Mapping[str, Any] | "KnobSettings") -> "KnobSettings":
        if isinstance(values, KnobSettings):
            return values
        return cls(values)

    def __getitem__(self, name: str) -> KnobValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KnobSettings):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={value.value!r}" for name, value in self._values.items())
        return f"KnobSettings({inner})"

    def plain(self) -> dict[str, int | float | str]:
        return {name: value.value for name, value in self._values.items()}
