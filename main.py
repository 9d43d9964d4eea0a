"""
Food Portal: command-line entry point

Two jobs, same pipeline as the HTTP server:
  sheets        party sheets (PDF/PNG/JPEG) -> per-category cost breakdown
  vendor-costs  vendor price sheets -> price history per reference product

Usage:
    python main.py sheets party1.pdf party2.png
    python main.py vendor-costs reference.xlsx vendor1.xlsx vendor2.xlsx --mapping mapping.xlsx
"""

import argparse
import logging
import mimetypes
import os
import sys

import config
from analyzer import get_analyzer_status
from pipeline import InputError, UploadedFile, process_party_sheets, process_vendor_costs
from report import build_cost_report, build_price_report, save_outputs


def _as_upload(path: str) -> UploadedFile:
    content_type, _ = mimetypes.guess_type(path)
    return UploadedFile(path=path, filename=os.path.basename(path), content_type=content_type or "")


def _existing(paths: list[str]) -> list[str]:
    found = []
    for path in paths:
        if os.path.isfile(path):
            found.append(path)
        else:
            print(f"File not found: {path}")
    return found


def run_sheets(args) -> int:
    paths = _existing(args.files)
    if not paths:
        return 1

    analyzer_status = get_analyzer_status()
    if not analyzer_status["available"]:
        print("OpenAI: INACTIVE (OPENAI_API_KEY not set); party sheets cannot be analyzed.")
        return 1
    print(f"OpenAI: ACTIVE (model: {analyzer_status['model']})")

    print(f"\nAnalyzing {len(paths)} party sheet(s)...")
    payload = process_party_sheets([_as_upload(p) for p in paths])

    for result in payload["results"]:
        if result.get("error"):
            print(f"  !! {result['filename']}: {result['error']}")
        else:
            b = result["breakdown"]
            print(f"  {result['filename']}: food ${b['food']:,.2f}, drinks ${b['drinks']:,.2f}, "
                  f"entertainment ${b['entertainment']:,.2f}, total ${b['grand_total']:,.2f}")

    report = build_cost_report(payload)
    print()
    print(report)
    save_outputs("party_sheets", payload, report, args.output)

    summary = payload["summary"]
    print(f"\n  Processed: {summary['total_files']}")
    print(f"  Successful: {summary['successful']}")
    print(f"  Failed:     {summary['failed']}")
    return 0 if summary["successful"] else 1


def run_vendor_costs(args) -> int:
    if not os.path.isfile(args.reference):
        print(f"File not found: {args.reference}")
        return 1
    vendor_paths = _existing(args.vendor_files)
    if not vendor_paths:
        print("No vendor files to process.")
        return 1
    if args.mapping and not os.path.isfile(args.mapping):
        print(f"File not found: {args.mapping}")
        return 1

    if not get_analyzer_status()["available"]:
        print("OpenAI: INACTIVE; spreadsheet columns will be guessed from header names.")

    print(f"\nReconciling {len(vendor_paths)} vendor file(s) against {os.path.basename(args.reference)}...")
    try:
        payload = process_vendor_costs(
            _as_upload(args.reference),
            [_as_upload(p) for p in vendor_paths],
            _as_upload(args.mapping) if args.mapping else None,
        )
    except InputError as e:
        print(f"  ERROR: {e}")
        return 1

    report = build_price_report(payload)
    print()
    print(report)
    save_outputs("vendor_costs", payload, report, args.output)
    return 0


def main(argv=None) -> int:
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    parser = argparse.ArgumentParser(description="Party sheet cost breakdowns and vendor cost reconciliation")
    parser.add_argument("--output", default="output", help="Directory for the JSON payload and report")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sheets = subparsers.add_parser("sheets", help="Break down party sheets (PDF, PNG, JPEG)")
    sheets.add_argument("files", nargs="+")
    sheets.set_defaults(func=run_sheets)

    vendor = subparsers.add_parser("vendor-costs", help="Reconcile vendor price sheets")
    vendor.add_argument("reference", help="Reference product sheet (.xlsx)")
    vendor.add_argument("vendor_files", nargs="+", help="Vendor price sheets (.xlsx)")
    vendor.add_argument("--mapping", help="Mapping sheet of known invoice spellings (.xlsx)")
    vendor.set_defaults(func=run_vendor_costs)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
