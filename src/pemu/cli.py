from __future__ import annotations

import argparse
import json
import logging
import sys

from .config import EmulatorConfig
from .errors import EmulationError
from .knobs import KnobSettings, parse_knob_setting
from .reader import ReadingMode
from .session import emulate_run, open_store
from .store import ProfilingStore


def _parse_knob_assignments(assignments: list[str], *, option: str) -> KnobSettings:
    values = {}
    for assignment in assignments:
        name, sep, raw = assignment.partition("=")
        if not sep or not name:
            raise ValueError(f"{option} expects NAME=VALUE (got {assignment!r})")
        values[name] = parse_knob_setting(raw)
    return KnobSettings(values)


def _resolve_configuration_ids(args: argparse.Namespace, store: ProfilingStore) -> tuple[int, int]:
    meta = store.metadata
    if args.app_knob:
        app_cfg = store.application_configuration_id(_parse_knob_assignments(args.app_knob, option="--app-knob"))
    elif args.app_config_id is not None:
        app_cfg = args.app_config_id
    else:
        app_cfg = meta.reference_application_configuration_id

    if args.sys_knob:
        sys_cfg = store.system_configuration_id(_parse_knob_assignments(args.sys_knob, option="--sys-knob"))
    elif args.sys_config_id is not None:
        sys_cfg = args.sys_config_id
    else:
        sys_cfg = meta.reference_system_configuration_id
    return app_cfg, sys_cfg


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pemu",
        description="Emulate per-input time and energy measurements from a profiling store.",
    )
    p.add_argument("--config", help="Emulator config YAML")
    p.add_argument("--store", help="Profiling store JSON (overrides 'store' in --config)")
    p.add_argument("--mode", choices=[m.value for m in ReadingMode], help="Reading mode (overrides config)")
    p.add_argument("--seed", type=int, help="Random seed (overrides config)")
    p.add_argument("--inputs", type=int, required=True, help="Number of processed inputs to emulate")
    p.add_argument("--poll-every", type=int, default=1, help="Read clock/energy every N processed inputs")

    app = p.add_mutually_exclusive_group()
    app.add_argument("--app-config-id", type=int, help="Application configuration id")
    app.add_argument("--app-knob", action="append", default=[], metavar="NAME=VALUE", help="Application knob setting")
    sys_group = p.add_mutually_exclusive_group()
    sys_group.add_argument("--sys-config-id", type=int, help="System configuration id")
    sys_group.add_argument("--sys-knob", action="append", default=[], metavar="NAME=VALUE", help="System knob setting")

    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Logging level written to stderr",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = EmulatorConfig.from_yaml(args.config) if args.config else EmulatorConfig()
        overrides = {}
        if args.mode is not None:
            overrides["reading_mode"] = ReadingMode(args.mode)
        if args.seed is not None:
            overrides["seed"] = args.seed
        if overrides:
            config = config.model_copy(update=overrides)

        store = open_store(config, store_path=args.store)
        app_cfg, sys_cfg = _resolve_configuration_ids(args, store)

        paths = {"store": str(args.store or config.store)}
        if args.config:
            paths["config"] = str(args.config)

        report = emulate_run(
            store,
            config,
            inputs=args.inputs,
            application_configuration_id=app_cfg,
            system_configuration_id=sys_cfg,
            poll_every=args.poll_every,
            paths=paths,
        )
    except (EmulationError, ValueError, FileNotFoundError) as exc:
        print(f"pemu: error: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(report.model_dump(mode="json"), indent=2, sort_keys=False))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
