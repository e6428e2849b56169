from __future__ import annotations

import logging
import math

from .errors import ArithmeticDegeneracyError
from .reader import DeltaReader
from .store import DeltaSample, SampleKey

logger = logging.getLogger(__name__)


class Interpolator:
    """Synthesizes deltas for (application, system) configuration pairs that were never profiled together.

    The profiling sweep covers the reference application configuration against every
    system configuration, and every application configuration against the reference
    system configuration. Any other pair is reconstructed multiplicatively:

        f(app, sys) = f(ref_app, sys) * f(app, ref_sys) / f(ref_app, ref_sys)
    """

    def __init__(self, reader: DeltaReader) -> None:
        self.reader = reader

    @property
    def reference_application_configuration_id(self) -> int:
        return self.reader.store.metadata.reference_application_configuration_id

    @property
    def reference_system_configuration_id(self) -> int:
        return self.reader.store.metadata.reference_system_configuration_id

    def is_directly_profiled(self, app_cfg: int, sys_cfg: int) -> bool:
        return (
            app_cfg == self.reference_application_configuration_id
            or sys_cfg == self.reference_system_configuration_id
        )

    def _read(self, app_cfg: int, app_inp: int, sys_cfg: int, iteration: int) -> DeltaSample:
        key = SampleKey(
            application_configuration_id=app_cfg,
            application_input_id=app_inp,
            system_configuration_id=sys_cfg,
        )
        return self.reader.read(key, iteration)

    def interpolate(self, app_cfg: int, app_inp: int, sys_cfg: int, iteration: int) -> DeltaSample:
        if self.is_directly_profiled(app_cfg, sys_cfg):
            return self._read(app_cfg, app_inp, sys_cfg, iteration)

        ref_app = self.reference_application_configuration_id
        ref_sys = self.reference_system_configuration_id
        pivot_over_ref = self._read(ref_app, app_inp, sys_cfg, iteration)
        pivot_at_origin = self._read(ref_app, app_inp, ref_sys, iteration)
        at_ref_sys = self._read(app_cfg, app_inp, ref_sys, iteration)

        if pivot_at_origin.time_delta == 0 or pivot_at_origin.energy_delta == 0:
            raise ArithmeticDegeneracyError(
                f"Zero pivot while interpolating appCfg={app_cfg} sysCfg={sys_cfg} at iteration {iteration}: "
                f"reference cell (appCfg={ref_app}, sysCfg={ref_sys}) read {pivot_at_origin}"
            )
        time_delta = pivot_over_ref.time_delta * at_ref_sys.time_delta / pivot_at_origin.time_delta
        energy_delta = pivot_over_ref.energy_delta * at_ref_sys.energy_delta / pivot_at_origin.energy_delta
        if not (math.isfinite(time_delta) and math.isfinite(energy_delta)):
            raise ArithmeticDegeneracyError(
                f"Non-finite interpolation result ({time_delta!r}, {energy_delta!r}) "
                f"for appCfg={app_cfg} sysCfg={sys_cfg} at iteration {iteration}"
            )
        result = DeltaSample(time_delta=time_delta, energy_delta=energy_delta)
        logger.debug(
            "Interpolated appCfg=%d sysCfg=%d iteration %d: %s * %s / %s = %s.",
            app_cfg,
            sys_cfg,
            iteration,
            pivot_over_ref,
            at_ref_sys,
            pivot_at_origin,
            result,
        )
        return result
