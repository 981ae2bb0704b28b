#!/usr/bin/env python3
"""
VIN Scan CLI - Command Line Interface
=====================================

Main CLI entry point for VIN scan operations.

Usage:
    vin-scan validate <code>                 Check the 17-character grammar
    vin-scan decode <code>                   Guess manufacturer/year/price
    vin-scan extract <text>                  Find a code in recognized text
    vin-scan submit <code> --route R         Manual entry into the record store
    vin-scan scan --route R [--image F]      Camera (or image file) scan
    vin-scan devices                         List camera devices that open

Every command accepts --json. Exit code is 0 on success, 1 on a
classified failure.
"""

import argparse
import json
import sys
from typing import Any, Dict, Optional

from .config import PipelineConfig, get_config, set_config
from .core.exceptions import PipelineError


def _emit(args, payload: Dict[str, Any], text: str) -> None:
    if args.json:
        print(json.dumps(payload, indent=2, default=str))
    else:
        print(text)


def _fail(args, error: PipelineError) -> int:
    if args.json:
        print(json.dumps({"error": error.to_dict()}, indent=2, default=str))
    else:
        print(f"Error [{error.error_code}]: {error.message}", file=sys.stderr)
    return 1


def _load_config(args) -> PipelineConfig:
    if args.config:
        config = PipelineConfig.load(args.config)
        set_config(config)
    else:
        config = get_config()
    if getattr(args, 'db', None):
        config.store.backend = 'sqlite'
        config.store.path = args.db
    return config


def cmd_validate(args) -> int:
    """Validate a code and report every aspect."""
    from .core.vin_utils import validate_vin

    result = validate_vin(args.code)
    status = "VALID" if result.is_valid else "INVALID"
    lines = [
        f"VIN: {result.vin} - {status}",
        f"  Length: {'OK' if result.is_valid_length else 'INVALID'}",
        f"  Characters: {'OK' if result.has_valid_chars else 'INVALID ' + ''.join(result.invalid_chars)}",
        f"  Check digit: {'OK' if result.checksum_valid else 'mismatch (advisory)'}",
    ]
    _emit(args, result.to_dict(), "\n".join(lines))
    return 0 if result.is_valid else 1


def cmd_decode(args) -> int:
    """Decode a validated code."""
    from .core.vin_utils import validate_identification_code
    from .decoding import decode_code

    code = validate_identification_code(args.code)
    vehicle = decode_code(code)
    lines = [
        f"VIN: {vehicle.code}",
        f"  WMI: {vehicle.wmi}",
        f"  Manufacturer: {vehicle.manufacturer}",
        f"  Category: {vehicle.category.value}",
        f"  Country: {vehicle.country or 'Unknown'}",
        f"  Model Year: {vehicle.model_year}{' (assumed)' if vehicle.year_inferred else ''}",
        f"  Price Estimate: {vehicle.price_estimate}",
    ]
    _emit(args, vehicle.to_dict(), "\n".join(lines))
    return 0


def cmd_extract(args) -> int:
    """Extract a code from free text."""
    from .extraction import CodeExtractor

    config = _load_config(args)
    result = CodeExtractor(min_text_length=config.extraction.min_text_length).extract(args.text)
    _emit(
        args,
        {"code": result.code, "source_pass": result.source_pass, "matched_text": result.matched_text},
        f"VIN: {result.code} ({result.source_pass} match)",
    )
    return 0


def _print_scan(args, result) -> None:
    outcome = result.outcome
    lines = [
        f"VIN: {result.code}",
        f"  Outcome: {outcome.kind} (record {outcome.record_id})",
        f"  Vehicle: {result.decoded.manufacturer} {result.decoded.model_year} ({result.decoded.category.value})",
    ]
    if outcome.kind == "relocated":
        lines.append(f"  Moved from: {outcome.previous_location}")
    lines.append(f"  Processing Time: {result.processing_time_ms:.0f}ms")
    _emit(args, result.to_dict(), "\n".join(lines))


def cmd_submit(args) -> int:
    """Manual entry."""
    from .pipeline import create_pipeline, create_store
    from .reconciliation import placement_for_route

    config = _load_config(args)
    store = create_store(config)
    try:
        pipeline = create_pipeline(config, store=store)
        result = pipeline.submit_manual_code(args.code, placement_for_route(args.route))
    finally:
        store.close()
    _print_scan(args, result)
    return 0


def cmd_scan(args) -> int:
    """Camera or image-file scan."""
    from .capture.surface import CapturedFrame
    from .pipeline import create_pipeline, create_store
    from .reconciliation import placement_for_route

    config = _load_config(args)
    store = create_store(config)
    try:
        pipeline = create_pipeline(config, store=store)
        target = placement_for_route(args.route)
        if args.image:
            result = pipeline.process_frame(CapturedFrame.from_file(args.image), target)
        else:
            result = pipeline.scan_from_camera(target)
    finally:
        store.close()
    _print_scan(args, result)
    return 0


def cmd_devices(args) -> int:
    """List camera devices that open."""
    from .capture.backends import OpenCVCaptureBackend

    devices = OpenCVCaptureBackend().list_devices(max_index=args.max_index)
    if devices:
        text = "\n".join(f"  device {d['index']}: {d['width']}x{d['height']}" for d in devices)
    else:
        text = "  no camera devices found"
    _emit(args, {"devices": devices}, "Camera devices:\n" + text)
    return 0 if devices else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='vin-scan',
        description='VIN Scan Pipeline - capture, decode and place vehicles by VIN',
    )
    parser.add_argument('--version', action='version', version='%(prog)s 1.0.0')
    parser.add_argument('--config', '-c', help='JSON or YAML configuration file')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    def add(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('--json', '-j', action='store_true', help='Output as JSON')
        return sub

    validate_parser = add('validate', 'Check the 17-character grammar')
    validate_parser.add_argument('code', help='VIN to validate')

    decode_parser = add('decode', 'Guess manufacturer, year and price')
    decode_parser.add_argument('code', help='VIN to decode')

    extract_parser = add('extract', 'Find a VIN in recognized text')
    extract_parser.add_argument('text', help='Recognized text')

    submit_parser = add('submit', 'Manually enter a VIN')
    submit_parser.add_argument('code', help='VIN as typed')
    submit_parser.add_argument('--route', '-r', default='/inventory', help='Navigation route (default: /inventory)')
    submit_parser.add_argument('--db', help='SQLite record store path')

    scan_parser = add('scan', 'Scan a VIN plate with the camera')
    scan_parser.add_argument('--route', '-r', default='/inventory', help='Navigation route (default: /inventory)')
    scan_parser.add_argument('--image', '-i', help='Use an image file instead of the camera')
    scan_parser.add_argument('--db', help='SQLite record store path')

    devices_parser = add('devices', 'List camera devices')
    devices_parser.add_argument('--max-index', type=int, default=4, help='Highest device index to try')

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        'validate': cmd_validate,
        'decode': cmd_decode,
        'extract': cmd_extract,
        'submit': cmd_submit,
        'scan': cmd_scan,
        'devices': cmd_devices,
    }

    try:
        return commands[args.command](args)
    except PipelineError as e:
        return _fail(args, e)


if __name__ == '__main__':
    sys.exit(main())
