"""Span / entity model shared by every PII detector and the reconciler.

Field contract
--------------
PIIEntity.kind       : PIIKind; its value is used in redaction placeholders
PIIEntity.value      : exact matched substring of the source text
PIIEntity.start/end  : half-open character offsets, value == text[start:end]
PIIEntity.confidence : score in [0, 1] from the firing rule or the model
PIIEntity.source     : DetectionSource (REGEX or AI)

DetectionResult is produced fresh per detector invocation and never mutated
afterwards.  Reconciliation consumes candidate entities and produces a new,
derived DetectionResult.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PIIKind(str, Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    SSN = "SSN"
    CREDIT_CARD = "CREDIT_CARD"
    IP_ADDRESS = "IP_ADDRESS"
    NAME = "NAME"
    ADDRESS = "ADDRESS"
    OTHER = "OTHER"

    @classmethod
    def coerce(cls, raw: object) -> PIIKind:
        """Map a loosely formatted kind string onto the closed vocabulary.

        Anything unrecognised becomes OTHER.
        """
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return cls.OTHER
        key = raw.strip().upper().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return cls.OTHER


class DetectionSource(str, Enum):
    REGEX = "REGEX"
    AI = "AI"


class DetectionStatus(str, Enum):
    """Whether the detector actually inspected the text.

    CHECKED     : the detector ran; an empty entity list means "no PII found"
    UNAVAILABLE : the detector failed open; an empty entity list means
                  "could not verify"
    """
    CHECKED = "checked"
    UNAVAILABLE = "unavailable"


def placeholder_for(kind: PIIKind) -> str:
    """Return the typed redaction marker for *kind*, e.g. ``[REDACTED-EMAIL]``."""
    return f"[REDACTED-{kind.value}]"


@dataclass(frozen=True)
class PIIEntity:
    kind: PIIKind
    value: str
    start: int
    end: int
    confidence: float
    source: DetectionSource

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(
                f"entity span must satisfy 0 <= start < end; got [{self.start}, {self.end})"
            )
        if self.end - self.start != len(self.value):
            raise ValueError("entity span length does not match len(value)")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1]; got {self.confidence!r}")

    def overlaps(self, other: PIIEntity) -> bool:
        return self.start < other.end and other.start < self.end

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "value": self.value,
            "start": self.start,
            "end": self.end,
            "confidence": self.confidence,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class DetectionResult:
    """Reconciled detection output for one text.

    ``entities`` are ordered by ascending ``start`` and pairwise
    non-overlapping; ``redacted_text`` is derived from them.
    """
    entities: tuple[PIIEntity, ...]
    redacted_text: str
    status: DetectionStatus = DetectionStatus.CHECKED
    has_pii: bool = field(init=False)

    def __post_init__(self) -> None:
        # frozen dataclass: derived fields go through object.__setattr__
        object.__setattr__(self, "entities", tuple(self.entities))
        object.__setattr__(self, "has_pii", len(self.entities) > 0)

    @classmethod
    def empty(
        cls,
        text: str,
        status: DetectionStatus = DetectionStatus.CHECKED,
    ) -> DetectionResult:
        return cls(entities=(), redacted_text=text, status=status)

    @property
    def kinds(self) -> list[str]:
        """Sorted distinct entity kinds; safe to log."""
        return sorted({e.kind.value for e in self.entities})

    def to_dict(self) -> dict:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "redacted_text": self.redacted_text,
            "has_pii": self.has_pii,
            "status": self.status.value,
        }
