"""Model-assisted PII detector backed by an external LLM.

Finds context-dependent entities (person names, addresses, free-form
sensitive content) that the regex battery cannot see.  Implements the same
PIIDetector protocol as PatternDetector.

Failure policy
--------------
- Missing credentials fail closed: the LLM client cannot be constructed
  without an API key (``LLMCredentialsError``), so neither can this detector.
- Everything that goes wrong *during* a call fails open: transport errors,
  timeouts, and malformed replies all yield an empty result with
  ``status=UNAVAILABLE``.  Callers are expected to keep PatternDetector as a
  safety net and to treat UNAVAILABLE differently from a clean CHECKED result.

Offsets
-------
The model returns literal values, not offsets.  Every occurrence of each
value is located by scanning the text left to right, so a value that appears
twice produces two entities.  The reconciler then resolves overlaps exactly
as for the pattern detector.

Safety rule: neither the text nor the returned values are logged.
"""
from __future__ import annotations

import logging
from typing import Protocol

from qtiguard.llm.client import LLMConnectionError, LLMResponseError, LLMTimeoutError
from qtiguard.llm.prompts import SYSTEM_PROMPT, build_detect_prompt
from qtiguard.pii.entities import (
    DetectionResult,
    DetectionSource,
    DetectionStatus,
    PIIEntity,
)
from qtiguard.pii.model_response import ModelEntity, ParseFailure, parse_model_response
from qtiguard.pii.reconciler import reconcile

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    def complete(self, prompt: str, system: str | None = None) -> str:
        ...


def locate_occurrences(text: str, found: ModelEntity) -> list[PIIEntity]:
    """Return one PIIEntity per literal occurrence of ``found.value`` in *text*."""
    located: list[PIIEntity] = []
    cursor = 0
    while True:
        index = text.find(found.value, cursor)
        if index < 0:
            break
        end = index + len(found.value)
        located.append(PIIEntity(
            kind=found.kind,
            value=found.value,
            start=index,
            end=end,
            confidence=found.confidence,
            source=DetectionSource.AI,
        ))
        cursor = end
    return located


class ModelAssistedDetector:
    """LLM-backed implementation of the PIIDetector protocol.

    Parameters
    ----------
    client:
        Anything with ``complete(prompt, system) -> str``; normally an
        ``AnthropicClient`` constructed with explicit credentials.
    """

    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def detect(self, text: str) -> DetectionResult:
        if not text or not text.strip():
            return DetectionResult.empty(text or "")

        try:
            reply = self._client.complete(build_detect_prompt(text), system=SYSTEM_PROMPT)
        except (LLMConnectionError, LLMTimeoutError, LLMResponseError) as exc:
            logger.warning(
                "Model-assisted PII detection unavailable (%s); failing open",
                type(exc).__name__,
            )
            return DetectionResult.empty(text, status=DetectionStatus.UNAVAILABLE)

        outcome = parse_model_response(reply)
        if isinstance(outcome, ParseFailure):
            logger.warning(
                "Model-assisted PII detection returned unusable output (%s); failing open",
                outcome.reason,
            )
            return DetectionResult.empty(text, status=DetectionStatus.UNAVAILABLE)

        candidates: list[PIIEntity] = []
        unlocated = 0
        for found in outcome.entities:
            occurrences = locate_occurrences(text, found)
            if not occurrences:
                unlocated += 1
            candidates.extend(occurrences)

        # SAFETY: counts only
        logger.debug(
            "Model-assisted detection: reported=%d located=%d unlocated=%d",
            len(outcome.entities),
            len(candidates),
            unlocated,
        )
        return reconcile(text, candidates)
