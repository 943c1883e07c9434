#!/usr/bin/env python3
"""Build an assembly model JSON into a 3D section (GLB + metrics)."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from assembly_section import MalformedModelError, Section, SectionOptions, Viewport
from assembly_section.report import section_report
from assembly_section.run_protocol import SectionRun, read_json


def _positive_float(value: str) -> float:
    number = float(value)
    if not number > 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compile a layered assembly model into 3D section geometry"
    )
    parser.add_argument("--model", required=True, help="Path to model JSON")
    parser.add_argument(
        "--options", default=None, help="Optional JSON file of section options"
    )
    parser.add_argument("--name", default="section", help="Run name")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument(
        "--min-thickness",
        type=_positive_float,
        default=None,
        help="Minimum effective layer thickness (> 0)",
    )
    parser.add_argument(
        "--no-bounding-boxes",
        action="store_true",
        help="Do not add layer/assembly bounding-box helpers",
    )
    parser.add_argument(
        "--no-origin-marker", action="store_true", help="Omit the axis marker"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def _load_options(args: argparse.Namespace) -> SectionOptions:
    values = dict(read_json(args.options)) if args.options else {}
    if args.min_thickness is not None:
        values["minThickness"] = args.min_thickness
    if args.no_bounding_boxes:
        values["showLayerBoundingBox"] = False
        values["showAssemblyBoundingBox"] = False
    if args.no_origin_marker:
        values["showOriginMarker"] = False
    return SectionOptions.from_dict(values)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger(__name__)

    try:
        options = _load_options(args)
    except ValueError as exc:
        logger.error("Invalid options: %s", exc)
        return 2
    run = SectionRun.start(args.runs_dir, args.name, args.model)

    section = Section(Viewport(), run.load_model(), options)
    try:
        section.build()
    except MalformedModelError as exc:
        logger.error("Malformed model: %s", exc)
        section.close()
        return 2

    section.export(run.section_path)
    report = section_report(section.stack, options.assembly_width, options.assembly_height)
    section.close()
    run.record(options, report)

    print(f"Run ID: {run.run_id}")
    print(f"Run dir: {run.run_dir}")
    print(f"Layers: {len(report['layers'])}")
    print(f"Total thickness: {report['total_thickness']:.2f}")
    print(f"Section: {run.section_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
