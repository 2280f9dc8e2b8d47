"""Screen mapped rows for PII and queue the affected fields for human review.

Only fields with at least one detected entity are queued.  A detector that
fails open (status UNAVAILABLE) is recorded in ``ScanReport.unverified`` so
the caller can decide whether to block the conversion.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from qtiguard.pii.base import PIIDetector
from qtiguard.pii.entities import DetectionResult, DetectionStatus
from qtiguard.questions.population import SCANNED_FIELDS, MappedRow

logger = logging.getLogger(__name__)

FIELD_LABELS: dict[str, str] = {
    "question_text": "Question Text",
    "option_a": "Option A",
    "option_b": "Option B",
    "option_c": "Option C",
    "option_d": "Option D",
    "explanation": "Explanation",
}


def field_key(row_index: int, field_name: str) -> str:
    """Stable identifier of one scanned field, e.g. ``"3-option_b"``."""
    return f"{row_index}-{field_name}"


@dataclass(frozen=True)
class ReviewItem:
    """One field of one row with its detection result."""

    row_index: int
    field: str
    text: str
    result: DetectionResult

    @property
    def key(self) -> str:
        return field_key(self.row_index, self.field)

    @property
    def field_label(self) -> str:
        return FIELD_LABELS.get(self.field, self.field)

    @property
    def context(self) -> str:
        """Short human-readable location, e.g. ``"Q4 - Option B"``."""
        return f"Q{self.row_index + 1} - {self.field_label}"


@dataclass
class ScanReport:
    items: list[ReviewItem] = field(default_factory=list)
    fields_scanned: int = 0
    unverified: list[str] = field(default_factory=list)

    @property
    def needs_review(self) -> bool:
        return bool(self.items)


def scan_rows(rows: Sequence[MappedRow], detector: PIIDetector) -> ScanReport:
    """Run *detector* over every non-blank scanned field of *rows*."""
    report = ScanReport()
    for row_index, row in enumerate(rows):
        for field_name in SCANNED_FIELDS:
            text = row.get(field_name)
            if not text or not text.strip():
                continue
            report.fields_scanned += 1
            result = detector.detect(text)
            if result.status is DetectionStatus.UNAVAILABLE:
                report.unverified.append(field_key(row_index, field_name))
            if result.has_pii:
                report.items.append(ReviewItem(
                    row_index=row_index,
                    field=field_name,
                    text=text,
                    result=result,
                ))

    logger.info(
        "PII scan: rows=%d fields=%d queued=%d unverified=%d",
        len(rows),
        report.fields_scanned,
        len(report.items),
        len(report.unverified),
    )
    return report
