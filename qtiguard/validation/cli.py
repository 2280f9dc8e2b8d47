"""Command-line validator for QTI item documents and zip packages."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from qtiguard.validation.validator import ValidationReport, validate_document


def format_report(path: str, report: ValidationReport) -> str:
    lines = [f"Validating: {path}"]
    lines.append("Result: VALID" if report.valid else "Result: INVALID")
    lines.append(f"Items: {report.info.item_count}")
    if report.info.detected_kinds:
        lines.append(f"Kinds: {', '.join(report.info.detected_kinds)}")
    lines.append(f"Manifest metadata: {'yes' if report.info.has_metadata else 'no'}")
    if report.errors:
        lines.append(f"Errors ({len(report.errors)}):")
        lines.extend(f"  - {e}" for e in report.errors)
    if report.warnings:
        lines.append(f"Warnings ({len(report.warnings)}):")
        lines.extend(f"  - {w}" for w in report.warnings)
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate a QTI 2.1 item document (.xml) or package (.zip).",
    )
    parser.add_argument("path", help="Path to an .xml item or a .zip package")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args(argv)

    path = Path(args.path)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 2

    report = validate_document(path.read_bytes())
    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        print(format_report(str(path), report))
    return 0 if report.valid else 1
