import json

from pemu.config import EmulatorConfig
from pemu.reader import ReadingMode
from pemu.report import EmulationTotals
from pemu.session import emulate_run
from pemu.store import StoreBuilder, StoreMetadata


def test_report_payload_includes_configuration_and_totals() -> None:
    metadata = StoreMetadata(
        application_name="incrementer",
        architecture_name="XilinxZcu",
        input_stream_name="default",
        application_id=1,
        application_input_stream_id=0,
        number_of_inputs_traced=2,
        time_outlier=3.0,
        energy_outlier=3.0,
        reference_application_configuration_id=0,
        reference_system_configuration_id=0,
    )
    builder = StoreBuilder(metadata)
    builder.add_application_configuration(0, {"step": 1, "label": "base"})
    builder.add_system_configuration(0, {"frequency": 1.2})
    builder.add_trace(application_configuration_id=0, system_configuration_id=0, deltas=[(1.0, 4.0), (3.0, 8.0)])

    report = emulate_run(
        builder.build(),
        EmulatorConfig(reading_mode=ReadingMode.tape, seed=1),
        inputs=2,
        application_configuration_id=0,
        system_configuration_id=0,
        paths={"store": "store.json"},
    )
    payload = report.model_dump(mode="json")

    assert payload["reading_mode"] == "tape"
    assert payload["application_settings"] == {"label": "base", "step": 1}
    assert payload["system_settings"] == {"frequency": 1.2}
    assert payload["inputs"] == {"store": "store.json", "config": None}
    assert payload["points"] == [
        {"processed_inputs": 1, "clock": 3.0, "energy": 8},
        {"processed_inputs": 2, "clock": 6.0, "energy": 16},
    ]
    assert payload["totals"]["time_per_input"] == 3.0
    json.dumps(payload)


def test_totals_without_inputs_have_no_per_input_rates() -> None:
    totals = EmulationTotals.from_counters(processed_inputs=0, time=0.0, energy=0.0)
    assert totals.time_per_input is None
    assert totals.energy_per_input is None
