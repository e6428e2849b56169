import pytest

from pemu.errors import ArithmeticDegeneracyError, ConfigurationInconsistencyError
from pemu.interpolation import Interpolator
from pemu.reader import DeltaReader, ReadingMode
from pemu.rng import RandomSource
from pemu.store import ProfilingStore, SampleKey, StoreBuilder, StoreMetadata


def _store(cells: dict[tuple[int, int], tuple[float, float]], *, traced_inputs: int = 3) -> ProfilingStore:
    metadata = StoreMetadata(
        application_name="incrementer",
        architecture_name="XilinxZcu",
        input_stream_name="default",
        application_id=1,
        application_input_stream_id=0,
        number_of_inputs_traced=traced_inputs,
        tape_noise=0.0,
        time_outlier=1.0,
        energy_outlier=1.0,
        reference_application_configuration_id=0,
        reference_system_configuration_id=0,
    )
    builder = StoreBuilder(metadata)
    for (app_cfg, sys_cfg), delta in cells.items():
        builder.add_trace(
            application_configuration_id=app_cfg,
            system_configuration_id=sys_cfg,
            deltas=[delta] * traced_inputs,
        )
    return builder.build()


CELLS = {
    (0, 0): (4.0, 10.0),  # pivot at origin
    (0, 1): (2.0, 30.0),  # reference application on system 1
    (1, 0): (6.0, 5.0),  # application 1 on the reference system
}


def test_directly_profiled_pairs() -> None:
    interpolator = Interpolator(DeltaReader(_store(CELLS), mode=ReadingMode.tape, rng=RandomSource(1)))

    assert interpolator.is_directly_profiled(0, 1)
    assert interpolator.is_directly_profiled(1, 0)
    assert interpolator.is_directly_profiled(0, 0)
    assert not interpolator.is_directly_profiled(1, 1)


@pytest.mark.parametrize("app_cfg, sys_cfg", [(0, 0), (0, 1), (1, 0)])
@pytest.mark.parametrize("mode", [ReadingMode.tape, ReadingMode.statistics])
def test_pivot_identity(app_cfg: int, sys_cfg: int, mode: ReadingMode) -> None:
    store = _store(CELLS)
    interpolator = Interpolator(DeltaReader(store, mode=mode, rng=RandomSource(21)))
    direct = DeltaReader(store, mode=mode, rng=RandomSource(21))
    key = SampleKey(application_configuration_id=app_cfg, application_input_id=0, system_configuration_id=sys_cfg)

    for iteration in range(1, 6):
        assert interpolator.interpolate(app_cfg, 0, sys_cfg, iteration) == direct.read(key, iteration)


def test_composition_multiplies_out_the_reference_cell() -> None:
    interpolator = Interpolator(DeltaReader(_store(CELLS), mode=ReadingMode.tape, rng=RandomSource(1)))

    for iteration in range(1, 8):
        result = interpolator.interpolate(1, 0, 1, iteration)
        # a * c / b with a = f(ref_app, sys), b = f(ref_app, ref_sys), c = f(app, ref_sys)
        assert result.time_delta == pytest.approx(2.0 * 6.0 / 4.0)
        assert result.energy_delta == pytest.approx(30.0 * 5.0 / 10.0)


def test_zero_pivot_is_surfaced() -> None:
    cells = dict(CELLS)
    cells[(0, 0)] = (0.0, 10.0)
    interpolator = Interpolator(DeltaReader(_store(cells), mode=ReadingMode.tape, rng=RandomSource(1)))

    with pytest.raises(ArithmeticDegeneracyError, match="Zero pivot"):
        interpolator.interpolate(1, 0, 1, 1)


def test_interpolation_requires_the_profiled_axes() -> None:
    cells = {(0, 0): (4.0, 10.0), (1, 0): (6.0, 5.0)}
    interpolator = Interpolator(DeltaReader(_store(cells), mode=ReadingMode.tape, rng=RandomSource(1)))

    with pytest.raises(ConfigurationInconsistencyError):
        interpolator.interpolate(1, 0, 1, 1)


def test_zero_energy_pivot_is_surfaced() -> None:
    cells = dict(CELLS)
    cells[(0, 0)] = (4.0, 0.0)
    interpolator = Interpolator(DeltaReader(_store(cells), mode=ReadingMode.tape, rng=RandomSource(1)))

    with pytest.raises(ArithmeticDegeneracyError, match="Zero pivot"):
        interpolator.interpolate(1, 0, 1, 1)


def test_overflowing_composition_is_surfaced() -> None:
    cells = {(0, 0): (1.0, 1.0), (0, 1): (1e200, 2.0), (1, 0): (1e200, 3.0)}
    interpolator = Interpolator(DeltaReader(_store(cells), mode=ReadingMode.tape, rng=RandomSource(1)))

    with pytest.raises(ArithmeticDegeneracyError, match="Non-finite interpolation result"):
        interpolator.interpolate(1, 0, 1, 1)
