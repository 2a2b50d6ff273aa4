"""
Command-line entry point for the bunkerwatch sounding app.

    python -m bunkerwatch_app.main install-package vessel_42.json
    python -m bunkerwatch_app.main sound 7 123.5 0.8 --heel -1.2 --record
    python -m bunkerwatch_app.main stats
    python -m bunkerwatch_app.main pending --json > upload.json
    python -m bunkerwatch_app.main mark 3 4 5
    python -m bunkerwatch_app.main build-package --vessel-id 42 --vessel-name "MV EXAMPLE" \
        --compartment "7:No.1 HFO P:no1_main.xlsx:no1_heel.xlsx" -o vessel_42.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Sequence

from bunkerwatch_app.config.grids import DISPLAY_DECIMALS
from bunkerwatch_app.config.settings import Settings, init_logging
from bunkerwatch_app.models import Compartment, SoundingSuccess, Vessel
from bunkerwatch_app.repositories.database import init_database
from bunkerwatch_app.repositories.sounding_log_repository import SoundingLogRepository
from bunkerwatch_app.repositories.vessel_repository import VesselRepository
from bunkerwatch_app.services.calibration_import import (
    parse_heel_correction_file,
    parse_main_sounding_file,
)
from bunkerwatch_app.services.data_package import (
    DataPackage,
    DataPackageError,
    DataPackageService,
    load_data_package_file,
)
from bunkerwatch_app.services.sounding import SoundingService

_LOG = logging.getLogger(__name__)


def _fmt(value: float) -> str:
    return f"{value:.{DISPLAY_DECIMALS}f}"


def _cmd_install_package(args: argparse.Namespace, session_factory) -> int:
    try:
        package = load_data_package_file(args.file)
    except (FileNotFoundError, DataPackageError) as exc:
        print(f"Download failed: {exc}", file=sys.stderr)
        return 1
    with session_factory() as db:
        summary = DataPackageService(db).install(package)
    print(
        f"Installed {summary.vessel_name} (package {summary.package_version}): "
        f"{summary.compartments} compartments, {summary.calibration_rows} calibration rows"
    )
    return 0


def _cmd_sound(args: argparse.Namespace, session_factory) -> int:
    with session_factory() as db:
        result = SoundingService(db).calculate(
            args.compartment_id, args.ullage, args.trim, heel=args.heel, record=args.record
        )
        compartment = VesselRepository(db).get_compartment(args.compartment_id)
    if not isinstance(result, SoundingSuccess):
        print(result.error, file=sys.stderr)
        return 1
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if args.json:
        print(json.dumps(result.to_display_dict()))
        return 0
    if compartment is not None and compartment.compartment_name:
        print(compartment.compartment_name)
    if result.heel_correction != 0:
        sign = "+" if result.heel_correction > 0 else ""
        print(f"Base:  {_fmt(result.base_volume)} m³")
        print(f"Heel:  {sign}{_fmt(result.heel_correction)} m³")
    print(f"Final: {_fmt(result.final_volume)} m³")
    print(f"Sound: {result.sound if result.sound is not None else '-'} mm")
    print(
        f"LCG {_fmt(result.lcg)} m  TCG {_fmt(result.tcg)} m  "
        f"VCG {_fmt(result.vcg)} m  Iy {_fmt(result.iy)}"
    )
    return 0


def _cmd_stats(args: argparse.Namespace, session_factory) -> int:
    with session_factory() as db:
        stats = DataPackageService(db).database_stats()
    vessel = stats["vessel"]
    print(f"Vessel:            {vessel.vessel_name if vessel else '(none installed)'}")
    print(f"Package version:   {stats['package_version'] or '-'}")
    print(f"Last download:     {stats['last_download'] or '-'}")
    print(f"Compartments:      {stats['compartment_count']}")
    print(f"Sounding rows:     {stats['sounding_data_rows']}")
    print(f"Heel rows:         {stats['heel_data_rows']}")
    print(f"Soundings pending: {stats['pending_soundings']} / {stats['total_soundings']}")
    return 0


def _cmd_compartments(args: argparse.Namespace, session_factory) -> int:
    with session_factory() as db:
        compartments = VesselRepository(db).list_compartments()
    if not compartments:
        print("No compartments installed", file=sys.stderr)
        return 1
    for c in compartments:
        capacity = f"{_fmt(c.capacity_m3)} m³" if c.capacity_m3 is not None else "-"
        print(f"{c.compartment_id:>6}  {c.compartment_name:<30} {capacity}")
    return 0


def _cmd_pending(args: argparse.Namespace, session_factory) -> int:
    with session_factory() as db:
        logs = SoundingLogRepository(db).list_pending()
    if args.json:
        print(json.dumps([
            {
                "id": log.id,
                "vessel_id": log.vessel_id,
                "compartment_id": log.compartment_id,
                "ullage": log.ullage,
                "trim": log.trim,
                "heel": log.heel,
                "base_volume": log.base_volume,
                "heel_correction": log.heel_correction,
                "final_volume": log.final_volume,
                "sound": log.sound,
                "recorded_at": log.recorded_at.isoformat() if log.recorded_at else None,
            }
            for log in logs
        ], indent=2))
        return 0
    for log in logs:
        print(
            f"{log.id:>6}  compartment {log.compartment_id:<6} "
            f"ullage {log.ullage:g} cm  trim {log.trim:g} m  final {_fmt(log.final_volume)} m³"
        )
    print(f"{len(logs)} pending")
    return 0


def _cmd_mark(args: argparse.Namespace, session_factory) -> int:
    with session_factory() as db:
        repo = SoundingLogRepository(db)
        try:
            if args.failed:
                repo.mark_failed(args.log_ids)
            else:
                repo.mark_synced(args.log_ids)
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            return 1
    status = "failed" if args.failed else "synced"
    print(f"Marked {len(args.log_ids)} soundings as {status}")
    return 0


def _cmd_clear_data(args: argparse.Namespace, session_factory) -> int:
    with session_factory() as db:
        DataPackageService(db).clear()
    print("Installed vessel data cleared")
    return 0


def _parse_compartment_arg(text: str) -> List[str]:
    parts = text.split(":")
    if len(parts) not in (3, 4) or not parts[0].strip().isdigit():
        raise argparse.ArgumentTypeError(
            f"Expected ID:NAME:MAIN_FILE[:HEEL_FILE], got {text!r}"
        )
    return parts


def _cmd_build_package(args: argparse.Namespace, session_factory) -> int:
    vessel = Vessel(
        vessel_id=args.vessel_id,
        vessel_name=args.vessel_name,
        imo_number=args.imo or "",
        package_version=args.package_version,
    )
    package = DataPackage(vessel=vessel)
    try:
        for parts in args.compartment:
            compartment_id = int(parts[0])
            package.compartments.append(
                Compartment(
                    compartment_id=compartment_id,
                    vessel_id=vessel.vessel_id,
                    compartment_name=parts[1],
                )
            )
            package.main_sounding[compartment_id] = parse_main_sounding_file(parts[2])
            if len(parts) == 4 and parts[3]:
                package.heel_correction[compartment_id] = parse_heel_correction_file(parts[3])
    except (FileNotFoundError, ValueError) as exc:
        print(f"Import failed: {exc}", file=sys.stderr)
        return 1

    Path(args.output).write_text(json.dumps(package.to_payload(), indent=2), encoding="utf-8")
    print(f"Wrote {args.output} with {len(package.compartments)} compartments")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bunkerwatch", description="Tank sounding calculations")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("install-package", help="Install a vessel calibration data package (JSON)")
    p.add_argument("file")
    p.set_defaults(func=_cmd_install_package)

    p = sub.add_parser("sound", help="Volume from ullage, trim and optional heel")
    p.add_argument("compartment_id", type=int)
    p.add_argument("ullage", type=float, help="Ullage (cm)")
    p.add_argument("trim", type=float, help="Trim (m)")
    p.add_argument("--heel", type=float, default=None, help="Heel (degrees)")
    p.add_argument("--record", action="store_true", help="Store the reading for upload")
    p.add_argument("--json", action="store_true", help="Print the result as JSON")
    p.set_defaults(func=_cmd_sound)

    p = sub.add_parser("stats", help="Show installed vessel data and pending soundings")
    p.set_defaults(func=_cmd_stats)

    p = sub.add_parser("compartments", help="List installed compartments")
    p.set_defaults(func=_cmd_compartments)

    p = sub.add_parser("pending", help="List recorded soundings awaiting upload")
    p.add_argument("--json", action="store_true", help="Print the soundings as JSON")
    p.set_defaults(func=_cmd_pending)

    p = sub.add_parser("mark", help="Set the upload status of recorded soundings")
    p.add_argument("log_ids", type=int, nargs="+")
    p.add_argument("--failed", action="store_true", help="Mark as failed instead of synced")
    p.set_defaults(func=_cmd_mark)

    p = sub.add_parser("clear-data", help="Remove the installed vessel and calibration tables")
    p.set_defaults(func=_cmd_clear_data)

    p = sub.add_parser("build-package",help="Build a data package from spreadsheet tables")
    p.add_argument("--vessel-id", type=int, required=True)
    p.add_argument("--vessel-name", required=True)
    p.add_argument("--imo", default="")
    p.add_argument("--package-version", default="1")
    p.add_argument(
        "--compartment",
        action="append",
        type=_parse_compartment_arg,
        required=True,
        help="ID:NAME:MAIN_FILE[:HEEL_FILE]",
    )
    p.add_argument("-o", "--output", required=True)
    p.set_defaults(func=_cmd_build_package)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Bootstraps settings, logging and the database, then runs one command."""
    args = build_parser().parse_args(argv)

    settings = Settings.default()
    init_logging(settings)
    session_factory = init_database(settings.db_path)

    _LOG.info("Running command %s", args.command)
    return args.func(args, session_factory)


if __name__ == "__main__":
    sys.exit(main())
