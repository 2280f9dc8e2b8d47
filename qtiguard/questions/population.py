"""Build Question objects from mapped source rows.

Row ingestion and column mapping live outside this package; they hand over
``MappedRow`` objects whose fields are the raw cell values.  The review step
may supply redacted replacements for any scanned field via ``overrides``.

Correctness is decided against the ORIGINAL option texts so that a redacted
option still matches the row's answer key; the exported choice text is the
redacted one, and ``correct_answer`` is rewritten to the matched label so the
raw key never leaves this module.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace

from qtiguard.questions.model import AnswerChoice, Question, QuestionKind

#: Row fields that carry free text and are screened for PII, in scan order.
SCANNED_FIELDS: tuple[str, ...] = (
    "question_text",
    "option_a",
    "option_b",
    "option_c",
    "option_d",
    "explanation",
)

_OPTION_FIELDS: tuple[tuple[str, str], ...] = (
    ("A", "option_a"),
    ("B", "option_b"),
    ("C", "option_c"),
    ("D", "option_d"),
)

_KIND_ALIASES: dict[str, QuestionKind] = {
    "multiple_choice": QuestionKind.SINGLE_BEST_ANSWER,
    "multiplechoice": QuestionKind.SINGLE_BEST_ANSWER,
    "mcq": QuestionKind.SINGLE_BEST_ANSWER,
    "mc": QuestionKind.SINGLE_BEST_ANSWER,
    "single": QuestionKind.SINGLE_BEST_ANSWER,
    "single_best_answer": QuestionKind.SINGLE_BEST_ANSWER,
    "true_false": QuestionKind.TRUE_FALSE,
    "truefalse": QuestionKind.TRUE_FALSE,
    "true/false": QuestionKind.TRUE_FALSE,
    "tf": QuestionKind.TRUE_FALSE,
    "t/f": QuestionKind.TRUE_FALSE,
    "boolean": QuestionKind.TRUE_FALSE,
}


@dataclass(frozen=True)
class MappedRow:
    """Raw field values for one source row after column mapping."""

    question_text: str | None = None
    question_type: str | None = None
    option_a: str | None = None
    option_b: str | None = None
    option_c: str | None = None
    option_d: str | None = None
    correct_answer: str | None = None
    explanation: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> MappedRow:
        """Build from a plain dict, ignoring unknown keys; non-string cells are stringified."""
        known = {f.name for f in fields(cls)}
        values: dict[str, str | None] = {}
        for key, value in data.items():
            if key not in known:
                continue
            values[key] = None if value is None else str(value)
        return cls(**values)

    def get(self, field_name: str) -> str | None:
        return getattr(self, field_name)

    def with_overrides(self, overrides: Mapping[str, str]) -> MappedRow:
        """Return a copy with *overrides* substituted for the named fields."""
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in overrides.items() if k in known})


def normalize_question_kind(raw: str | None) -> QuestionKind:
    """Map a free-form type cell onto QuestionKind; blank means multiple choice."""
    if raw is None or not raw.strip():
        return QuestionKind.SINGLE_BEST_ANSWER
    key = raw.strip().lower().replace("-", "_").replace(" ", "_")
    return _KIND_ALIASES.get(key, QuestionKind.OTHER)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _match_correct(
    key: str | None,
    options: list[tuple[str, str]],
) -> int | None:
    """Index of the option matching *key* by text first, then by label."""
    if _blank(key):
        return None
    wanted = key.strip()
    for index, (_, text) in enumerate(options):
        if text.strip() == wanted:
            return index
    for index, (label, _) in enumerate(options):
        if label.lower() == wanted.lower():
            return index
    return None


def question_from_row(
    row: MappedRow,
    overrides: Mapping[str, str] | None = None,
    *,
    question_id: str | None = None,
) -> Question:
    """Populate a Question from *row*, applying redacted *overrides*.

    Parameters
    ----------
    row:
        Raw mapped row (original, unredacted values).
    overrides:
        Field name → redacted text, as produced by the review commit.
    question_id:
        Stable identifier; a fresh UUID is generated when omitted.
    """
    redacted = row.with_overrides(overrides or {})
    kind = normalize_question_kind(row.question_type)

    original_options: list[tuple[str, str]] = []
    exported_texts: list[str] = []
    for label, field_name in _OPTION_FIELDS:
        original = row.get(field_name)
        if _blank(original):
            continue
        original_options.append((label, original))
        exported_texts.append(redacted.get(field_name) or "")

    if kind is QuestionKind.TRUE_FALSE and not original_options:
        original_options = [("A", "True"), ("B", "False")]
        exported_texts = ["True", "False"]

    correct_index = _match_correct(row.correct_answer, original_options)
    choices = tuple(
        AnswerChoice(label=label, text=text, is_correct=(index == correct_index))
        for index, ((label, _), text) in enumerate(zip(original_options, exported_texts))
    )

    if correct_index is not None:
        correct_answer: str | None = original_options[correct_index][0]
    else:
        correct_answer = redacted.correct_answer

    extra: dict = {}
    if question_id is not None:
        extra["question_id"] = question_id

    return Question(
        prompt_text=redacted.question_text or "",
        answer_choices=choices,
        correct_answer=correct_answer,
        explanation=None if _blank(redacted.explanation) else redacted.explanation,
        question_kind=kind,
        **extra,
    )


def build_questions(
    rows: list[MappedRow],
    overrides: Mapping[int, Mapping[str, str]] | None = None,
) -> list[Question]:
    """Populate one Question per row; *overrides* is keyed by row index."""
    overrides = overrides or {}
    return [
        question_from_row(row, overrides.get(index))
        for index, row in enumerate(rows)
    ]
