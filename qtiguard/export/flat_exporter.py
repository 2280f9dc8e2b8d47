"""Export Questions as QTI, CSV or JSON downloads.

The CSV and JSON renderings are pure functions of the question list; QTI
delegates to the package generator.
"""
from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from enum import Enum

from qtiguard.export.artifact import ExportArtifact, slugify
from qtiguard.export.qti_builder import DEFAULT_TITLE_MAX_CHARS
from qtiguard.export.qti_generator import QtiGenerator
from qtiguard.questions.model import Question


class ExportFormat(str, Enum):
    QTI = "qti"
    CSV = "csv"
    JSON = "json"


CSV_HEADERS: list[str] = [
    "Question",
    "Type",
    "Option A",
    "Option B",
    "Option C",
    "Option D",
    "Correct Answer",
    "Explanation",
]

OPTION_COLUMNS = 4


def _option_cells(question: Question) -> list[str]:
    # Positional: the first four choices fill Option A-D whatever their labels.
    texts = [choice.text for choice in question.answer_choices[:OPTION_COLUMNS]]
    return texts + [""] * (OPTION_COLUMNS - len(texts))


def build_csv_content(questions: Sequence[Question]) -> str:
    """CSV header + one row per question.  Pure function, no IO."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_HEADERS)
    for question in questions:
        writer.writerow([
            question.prompt_text,
            question.question_kind.value,
            *_option_cells(question),
            question.correct_answer or "",
            question.explanation or "",
        ])
    return buf.getvalue()


def build_json_content(questions: Sequence[Question]) -> str:
    return json.dumps([q.to_dict() for q in questions], indent=2, ensure_ascii=False)


def render_export(
    questions: Sequence[Question],
    fmt: ExportFormat | str,
    title: str | None = None,
    *,
    title_max_chars: int = DEFAULT_TITLE_MAX_CHARS,
) -> ExportArtifact:
    """Render *questions* in *fmt*; raises ValueError for an unknown format."""
    fmt = ExportFormat(fmt)
    slug = slugify(title)

    if fmt is ExportFormat.QTI:
        return QtiGenerator(title_max_chars=title_max_chars).generate(questions, title=title)
    if fmt is ExportFormat.CSV:
        return ExportArtifact(
            content=build_csv_content(questions).encode("utf-8"),
            media_type="text/csv",
            filename=f"export-{slug}.csv",
        )
    return ExportArtifact(
        content=build_json_content(questions).encode("utf-8"),
        media_type="application/json",
        filename=f"export-{slug}.json",
    )
