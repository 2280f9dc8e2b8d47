"""Normalized in-memory representation of one assessment item.

A Question is built from a mapped (and, where needed, redacted) source row
and is never mutated afterwards; the QTI generator and the flat exporters
only read it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4


class QuestionKind(str, Enum):
    SINGLE_BEST_ANSWER = "multiple_choice"
    TRUE_FALSE = "true_false"
    OTHER = "other"


#: Kinds for which exactly one choice is expected to be correct.
SINGLE_RESPONSE_KINDS: frozenset[QuestionKind] = frozenset({
    QuestionKind.SINGLE_BEST_ANSWER,
    QuestionKind.TRUE_FALSE,
})


@dataclass(frozen=True)
class AnswerChoice:
    label: str
    text: str
    is_correct: bool = False

    def to_dict(self) -> dict:
        return {"label": self.label, "text": self.text, "is_correct": self.is_correct}


@dataclass(frozen=True)
class Question:
    """One assessment item.

    Fields
    ------
    prompt_text:     question stem shown to the candidate
    answer_choices:  ordered choices; order is preserved in every export
    correct_answer:  redundant cross-check value (a label or a choice text)
    explanation:     optional rationale, exported as feedback
    question_kind:   QuestionKind
    question_id:     stable identifier; item documents are named after it
    """
    prompt_text: str
    answer_choices: tuple[AnswerChoice, ...] = ()
    correct_answer: str | None = None
    explanation: str | None = None
    question_kind: QuestionKind = QuestionKind.SINGLE_BEST_ANSWER
    question_id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        object.__setattr__(self, "answer_choices", tuple(self.answer_choices))
        if not self.question_id:
            raise ValueError("question_id must be a non-empty string")

    @property
    def flagged_correct(self) -> list[int]:
        """Indices of choices marked ``is_correct``."""
        return [i for i, choice in enumerate(self.answer_choices) if choice.is_correct]

    @property
    def has_single_correct_choice(self) -> bool:
        return len(self.flagged_correct) == 1

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "prompt_text": self.prompt_text,
            "question_kind": self.question_kind.value,
            "answer_choices": [c.to_dict() for c in self.answer_choices],
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
        }
