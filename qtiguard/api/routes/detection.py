"""PII detection preview.

POST /pii/detect  -- run one or more detectors over a text and return the
                     reconciled entities plus the redacted text

Nothing is persisted.  The response carries entity values because the
review screen needs them; logs carry counts only.
"""
from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from qtiguard.api.deps import get_model_detector_factory, get_pattern_detector
from qtiguard.pii.pattern_detector import PatternDetector
from qtiguard.pii.reconciler import merge_results

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pii", tags=["pii"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class DetectBody(BaseModel):
    text: str
    detectors: list[Literal["pattern", "model"]] = Field(default_factory=lambda: ["pattern"])


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/detect", summary="Detect and redact PII in a text")
def detect_pii(
    body: DetectBody,
    pattern_detector: PatternDetector = Depends(get_pattern_detector),
    model_detector_factory=Depends(get_model_detector_factory),
):
    if not body.detectors:
        raise HTTPException(status_code=400, detail="At least one detector is required")

    results = []
    if "pattern" in body.detectors:
        results.append(pattern_detector.detect(body.text))
    if "model" in body.detectors:
        model_detector = model_detector_factory()
        if model_detector is None:
            raise HTTPException(
                status_code=403,
                detail="Model-assisted detection is disabled (LLM_ASSIST_ENABLED=false)",
            )
        results.append(model_detector.detect(body.text))

    merged = merge_results(body.text, *results)
    logger.info(
        "PII detect: detectors=%s entities=%d status=%s",
        ",".join(sorted(set(body.detectors))),
        len(merged.entities),
        merged.status.value,
    )
    return {**merged.to_dict(), "detectors": sorted(set(body.detectors))}
