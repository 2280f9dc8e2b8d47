"""Question bank export.

POST /exports?format=qti|csv|json  -- render the posted questions and return
                                      the file as an attachment
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from qtiguard.core.settings import get_settings
from qtiguard.export.flat_exporter import ExportFormat, render_export
from qtiguard.export.qti_generator import PackageGenerationError
from qtiguard.questions.model import AnswerChoice, Question, QuestionKind

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/exports", tags=["exports"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ChoiceBody(BaseModel):
    label: str = ""
    text: str
    is_correct: bool = False


class QuestionBody(BaseModel):
    prompt_text: str
    answer_choices: list[ChoiceBody] = Field(default_factory=list)
    correct_answer: str | None = None
    explanation: str | None = None
    question_kind: QuestionKind = QuestionKind.SINGLE_BEST_ANSWER
    question_id: str | None = None

    def to_question(self) -> Question:
        extra = {"question_id": self.question_id} if self.question_id else {}
        return Question(
            prompt_text=self.prompt_text,
            answer_choices=tuple(
                AnswerChoice(label=c.label, text=c.text, is_correct=c.is_correct)
                for c in self.answer_choices
            ),
            correct_answer=self.correct_answer,
            explanation=self.explanation,
            question_kind=self.question_kind,
            **extra,
        )


class CreateExportBody(BaseModel):
    title: str | None = None
    questions: list[QuestionBody]


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("", summary="Export questions as a QTI package, CSV or JSON")
def create_export(
    body: CreateExportBody,
    export_format: str = Query(default="qti", alias="format"),
):
    try:
        fmt = ExportFormat(export_format.lower())
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported format: {export_format!r}. "
                   f"Supported: {[f.value for f in ExportFormat]}",
        )
    if not body.questions:
        raise HTTPException(status_code=400, detail="No questions to export")

    questions = [q.to_question() for q in body.questions]
    try:
        artifact = render_export(
            questions,
            fmt,
            body.title,
            title_max_chars=get_settings().qti_title_max_chars,
        )
    except PackageGenerationError as exc:
        logger.error("Export failed: format=%s error=%s", fmt.value, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    logger.info("Export rendered: format=%s questions=%d", fmt.value, len(questions))
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )
