"""Structural conformance checks for QTI 2.1 item documents and packages.

The validator works on raw document text or archive bytes, never on the
in-memory Question model.  It never raises for document content: anything
that cannot be parsed is reported as a single error entry.

Errors break conformance (``valid`` becomes False); warnings describe a
degraded but usable document.  Tag names are matched by local name so
namespace prefixes do not matter.  Unsupported interaction kinds are
ignored.
"""
from __future__ import annotations

import io
import logging
import zipfile
import zlib

from lxml import etree
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MANIFEST_NAME = "imsmanifest.xml"
ITEM_ROOT = "assessmentItem"
LEGACY_ROOT = "questestinterop"
MANIFEST_ROOT = "manifest"

#: Interaction local name → reported question kind.
INTERACTION_KINDS: dict[str, str] = {
    "choiceInteraction": "multiple_choice",
    "extendedTextInteraction": "essay",
}

_ZIP_MAGIC = b"PK\x03\x04"
_ENTRY_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    OSError,
    EOFError,
    NotImplementedError,
    RuntimeError,
)


class ValidationInfo(BaseModel):
    item_count: int = 0
    detected_kinds: list[str] = Field(default_factory=list)
    has_metadata: bool = False


class ValidationReport(BaseModel):
    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    info: ValidationInfo = Field(default_factory=ValidationInfo)

    def error(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False

    def warn(self, message: str) -> None:
        self.warnings.append(message)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _parse(document: str | bytes) -> etree._Element:
    """Parse without entity expansion or network access."""
    if isinstance(document, str):
        document = document.encode("utf-8")
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    return etree.fromstring(document, parser)


def _local(element: etree._Element) -> str:
    return etree.QName(element).localname


def _children(element: etree._Element, name: str) -> list[etree._Element]:
    return [c for c in element if isinstance(c.tag, str) and _local(c) == name]


def _descendants(element: etree._Element, name: str) -> list[etree._Element]:
    return [
        e for e in element.iter()
        if e is not element and isinstance(e.tag, str) and _local(e) == name
    ]


# ---------------------------------------------------------------------------
# Item documents
# ---------------------------------------------------------------------------


def _check_response(item: etree._Element, report: ValidationReport) -> None:
    declarations = _children(item, "responseDeclaration")
    if not declarations:
        report.error("Missing required element: responseDeclaration")
        return
    correct = _children(declarations[0], "correctResponse")
    if not correct:
        report.warn("responseDeclaration missing correctResponse (scoring might be impossible)")
        return
    values = [(v.text or "").strip() for v in _children(correct[0], "value")]
    if not any(values):
        report.warn("correctResponse has no value (scoring might be impossible)")


def _check_body(item: etree._Element, report: ValidationReport) -> None:
    bodies = _children(item, "itemBody")
    if not bodies:
        report.error("Missing required element: itemBody")
        return
    body = bodies[0]

    for interaction in _descendants(body, "choiceInteraction"):
        if not _children(interaction, "simpleChoice"):
            report.error("choiceInteraction has no simpleChoice elements (answer options)")
        if not _children(interaction, "prompt"):
            report.warn("choiceInteraction missing prompt")

    for name, kind in INTERACTION_KINDS.items():
        if _descendants(body, name) and kind not in report.info.detected_kinds:
            report.info.detected_kinds.append(kind)


def _validate_item_root(root: etree._Element) -> ValidationReport:
    report = ValidationReport()
    root_name = _local(root)

    if root_name == MANIFEST_ROOT:
        report.warn("Document is a manifest, not an item; skipped")
        return report
    if root_name == LEGACY_ROOT:
        report.error(
            f"Expected QTI 2.1 ({ITEM_ROOT}) but found QTI 1.2 ({LEGACY_ROOT}): "
            "wrong format version"
        )
        return report
    if root_name != ITEM_ROOT:
        report.error(f"Unknown root element <{root_name}>: unknown format")
        return report

    report.info.item_count = 1
    if not (root.get("identifier") or "").strip():
        report.error("assessmentItem missing identifier attribute")
    if not (root.get("title") or "").strip():
        report.warn("assessmentItem missing title attribute")
    _check_response(root, report)
    _check_body(root, report)
    return report


def validate_item(document: str | bytes) -> ValidationReport:
    """Validate one standalone item document."""
    try:
        root = _parse(document)
    except (etree.XMLSyntaxError, ValueError) as exc:
        report = ValidationReport()
        report.error(f"XML parsing error: {exc}")
        return report
    return _validate_item_root(root)


def validate_manifest(document: str | bytes) -> ValidationReport:
    report = ValidationReport()
    try:
        root = _parse(document)
    except (etree.XMLSyntaxError, ValueError) as exc:
        report.error(f"XML parsing error: {exc}")
        return report
    if _local(root) != MANIFEST_ROOT:
        report.error("Root element is not <manifest>")
        return report
    report.info.has_metadata = bool(_children(root, "metadata"))
    return report


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------


def validate_archive(data: bytes) -> ValidationReport:
    """Validate a zip package: manifest (optional) plus every item document."""
    report = ValidationReport()
    entries: dict[str, bytes] = {}
    unreadable: set[str] = set()
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                # Unsupported compression raises NotImplementedError,
                # encrypted entries RuntimeError.
                try:
                    entries[info.filename] = archive.read(info.filename)
                except _ENTRY_ERRORS as exc:
                    report.error(f"[{info.filename}] Archive entry unreadable: {exc}")
                    unreadable.add(info.filename)
    except _ENTRY_ERRORS as exc:
        report.error(f"Archive parsing error: {exc}")
        return report

    if MANIFEST_NAME in entries:
        manifest = validate_manifest(entries[MANIFEST_NAME])
        for message in manifest.errors:
            report.error(f"[{MANIFEST_NAME}] {message}")
        report.info.has_metadata = manifest.info.has_metadata
    elif MANIFEST_NAME not in unreadable:
        report.warn(f"No {MANIFEST_NAME} found in root")

    for name, content in entries.items():
        if name == MANIFEST_NAME or not name.lower().endswith(".xml"):
            continue
        if b"<manifest" in content:
            continue

        item = validate_item(content)
        for message in item.errors:
            report.error(f"[{name}] {message}")
        for message in item.warnings:
            report.warn(f"[{name}] {message}")
        if item.valid:
            report.info.item_count += item.info.item_count
        for kind in item.info.detected_kinds:
            if kind not in report.info.detected_kinds:
                report.info.detected_kinds.append(kind)

    logger.info(
        "Archive validated: entries=%d items=%d errors=%d warnings=%d",
        len(entries),
        report.info.item_count,
        len(report.errors),
        len(report.warnings),
    )
    return report


def is_archive(data: bytes) -> bool:
    return data[:4] == _ZIP_MAGIC


def validate_document(data: bytes) -> ValidationReport:
    """Dispatch on content: zip archives vs single item documents."""
    if is_archive(data):
        return validate_archive(data)
    return validate_item(data)
