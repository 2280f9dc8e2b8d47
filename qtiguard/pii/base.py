"""The detection capability shared by every PII detector.

Callers, the review scanner and the API depend on this protocol only and
must not know which detector produced a result.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from qtiguard.pii.entities import DetectionResult


@runtime_checkable
class PIIDetector(Protocol):
    """Locate PII in *text* and return a reconciled DetectionResult.

    Implementations: PatternDetector (deterministic regex battery) and
    ModelAssistedDetector (LLM-backed).  ``detect`` is total over any text,
    including the empty string.
    """

    def detect(self, text: str) -> DetectionResult:
        ...
