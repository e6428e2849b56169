from pathlib import Path

import pytest

from pemu.config import EmulatorConfig
from pemu.reader import ReadingMode


def test_example_config_loads_and_resolves_store() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    config = EmulatorConfig.from_yaml(repo_root / "examples" / "emulator.yaml")

    assert config.reading_mode == ReadingMode.statistics
    assert config.seed == 20180501
    assert config.outlier_elimination == ["incrementer"]
    assert config.resolved_store_path() == (repo_root / "examples" / "store.json").resolve()


def test_relative_store_path_is_resolved_against_config_dir(tmp_path: Path) -> None:
    (tmp_path / "nested").mkdir()
    path = tmp_path / "nested" / "emulator.yaml"
    path.write_text(
        """
store: ../profiles/store.json
reading_mode: tape
""".lstrip(),
        encoding="utf-8",
    )
    config = EmulatorConfig.from_yaml(path)
    assert config.reading_mode == ReadingMode.tape
    assert config.resolved_store_path() == (tmp_path / "profiles" / "store.json").resolve()


def test_absolute_store_path_is_kept(tmp_path: Path) -> None:
    store = tmp_path / "store.json"
    path = tmp_path / "emulator.yaml"
    path.write_text(f"store: {store}\n", encoding="utf-8")
    assert EmulatorConfig.from_yaml(path).resolved_store_path() == store


def test_empty_config_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "emulator.yaml"
    path.write_text("", encoding="utf-8")
    config = EmulatorConfig.from_yaml(path)

    assert config.reading_mode == ReadingMode.statistics
    assert config.seed is None
    assert config.outlier_elimination == []
    with pytest.raises(ValueError, match="No profiling store configured"):
        config.resolved_store_path()


def test_invalid_reading_mode_rejected(tmp_path: Path) -> None:
    path = tmp_path / "emulator.yaml"
    path.write_text("reading_mode: replay\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid emulator config"):
        EmulatorConfig.from_yaml(path)


def test_negative_seed_rejected(tmp_path: Path) -> None:
    path = tmp_path / "emulator.yaml"
    path.write_text("seed: -1\n", encoding="utf-8")
    with pytest.raises(ValueError, match="seed"):
        EmulatorConfig.from_yaml(path)


def test_empty_outlier_application_name_rejected(tmp_path: Path) -> None:
    path = tmp_path / "emulator.yaml"
    path.write_text(
        """
outlier_elimination:
  - incrementer
  - ""
""".lstrip(),
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="non-empty application names"):
        EmulatorConfig.from_yaml(path)


def test_non_mapping_yaml_rejected(tmp_path: Path) -> None:
    path = tmp_path / "emulator.yaml"
    path.write_text("- store.json\n", encoding="utf-8")
    with pytest.raises(ValueError, match="top-level YAML must be a mapping"):
        EmulatorConfig.from_yaml(path)


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        EmulatorConfig.from_yaml(tmp_path / "missing.yaml")
