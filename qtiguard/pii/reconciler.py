"""Span reconciler: resolve candidate entities into one non-overlapping redaction.

Every path that produces redacted text goes through ``reconcile()``: the
pattern detector, the model-assisted detector, multi-detector merges and the
human-review commit step.

Algorithm
---------
1. Sort candidates by start descending; ties by end descending, so among
   candidates sharing a start the longer span is evaluated first.
2. Track ``last_accepted_start``, initialised to ``len(text)``.
3. Accept a candidate iff ``candidate.end <= last_accepted_start``.  On
   acceptance move ``last_accepted_start`` to ``candidate.start`` and splice
   ``[REDACTED-<KIND>]`` over ``[start, end)``.  The working text is rebuilt
   right to left, so offsets of not-yet-processed (further left) candidates
   stay valid.
4. Any candidate overlapping an accepted span is dropped.
5. Reverse the accepted list to ascending order.

Bias
----
Within an overlap region the candidate evaluated first wins: the one with the
rightmost start, and among equal starts the longest.  Confidence and source
are NOT consulted.  Detector order only breaks ties between exact duplicate
spans (the sort is stable, so the earlier input wins).
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from qtiguard.pii.entities import (
    DetectionResult,
    DetectionStatus,
    PIIEntity,
    placeholder_for,
)

logger = logging.getLogger(__name__)


def _is_anchored(entity: PIIEntity, text: str) -> bool:
    return entity.end <= len(text) and text[entity.start:entity.end] == entity.value


def reconcile(
    text: str,
    candidates: Iterable[PIIEntity],
    *,
    status: DetectionStatus = DetectionStatus.CHECKED,
) -> DetectionResult:
    """Reduce *candidates* to a non-overlapping set and redact *text*.

    Candidates whose offsets do not point at their value in *text* are
    discarded rather than raising.
    """
    anchored: list[PIIEntity] = []
    discarded = 0
    for entity in candidates:
        if _is_anchored(entity, text):
            anchored.append(entity)
        else:
            discarded += 1
    if discarded:
        logger.debug("Reconciler: discarded %d unanchored candidate(s)", discarded)

    ordered = sorted(anchored, key=lambda e: (e.start, e.end), reverse=True)

    accepted: list[PIIEntity] = []
    working = text
    last_accepted_start = len(text)
    for entity in ordered:
        if entity.end > last_accepted_start:
            continue
        accepted.append(entity)
        last_accepted_start = entity.start
        working = working[:entity.start] + placeholder_for(entity.kind) + working[entity.end:]

    accepted.reverse()

    # SAFETY: counts only, never values
    logger.debug(
        "Reconciler: candidates=%d accepted=%d",
        len(anchored),
        len(accepted),
    )
    return DetectionResult(entities=tuple(accepted), redacted_text=working, status=status)


def redact(
    text: str,
    entities: Sequence[PIIEntity],
    mask: Sequence[bool] | None = None,
) -> DetectionResult:
    """Redact only the entities whose mask flag is True.

    ``mask[i]`` is the review decision for ``entities[i]``; entities beyond
    the end of *mask* default to redact.  The surviving subset runs through
    the same splice procedure as detection.
    """
    if mask is None:
        selected = list(entities)
    else:
        selected = [
            entity for index, entity in enumerate(entities)
            if index >= len(mask) or mask[index]
        ]
    return reconcile(text, selected)


def merge_results(text: str, *results: DetectionResult) -> DetectionResult:
    """Union several detectors' results for the same *text* and reconcile them.

    Results are consumed in argument order, which decides ties between
    identical spans.  The merged status is UNAVAILABLE if any input was.
    """
    candidates: list[PIIEntity] = []
    status = DetectionStatus.CHECKED
    for result in results:
        candidates.extend(result.entities)
        if result.status is DetectionStatus.UNAVAILABLE:
            status = DetectionStatus.UNAVAILABLE
    return reconcile(text, candidates, status=status)
