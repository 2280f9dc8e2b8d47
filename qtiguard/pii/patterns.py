"""Deterministic regex pattern catalogue used by PatternDetector.

Each PatternDefinition carries the PII kind it reports and a fixed confidence
score.  Rules run in catalogue order; the order only matters when two rules
produce the exact same span (see qtiguard.pii.reconciler).

Score semantics
---------------
≥ 0.90  very specific format, low false-positive rate
  0.85  high confidence, minor ambiguity possible
  0.80  plausible but collides with version strings and similar dotted numbers
  0.70  heuristic: honorific followed by a capitalised word
< 0.70  heuristic: numbered street, many false positives in prose
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from qtiguard.pii.entities import PIIKind

#: Compile flags for every rule.  \d and \b are ASCII-only, so digits from
#: other scripts never form a phone number or SSN.
PATTERN_FLAGS = re.ASCII


@dataclass
class PatternDefinition:
    """A single regex rule.

    Attributes
    ----------
    name:   Human-readable identifier; safe to log.
    kind:   PIIKind reported for every match.
    regex:  Regular expression applied with ``re.finditer`` over the whole
            text, case-sensitive, compiled with PATTERN_FLAGS.
    score:  Confidence attached to every match.
    """
    name: str
    kind: PIIKind
    regex: str
    score: float


STREET_SUFFIXES: tuple[str, ...] = (
    "St", "Ave", "Rd", "Blvd", "Way", "Lane", "Drive", "Dr", "Ln", "Ct", "Pl",
    "Terrace", "Place", "Street", "Avenue", "Road", "Boulevard",
)

HONORIFICS: tuple[str, ...] = ("Dr.", "Mr.", "Mrs.", "Ms.", "Prof.", "Rev.")


DEFAULT_PATTERNS: list[PatternDefinition] = [
    PatternDefinition(
        name="email",
        kind=PIIKind.EMAIL,
        regex=r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b",
        score=0.95,
    ),
    PatternDefinition(
        # Full form: optional +1 country code, area code, 3 + 4 subscriber digits.
        # Abbreviated form: 3-digit prefix + 4-digit line (e.g. 555-0199).
        # The abbreviated branch is permissive on purpose and will also fire on
        # things like "100-2000"; recall wins over precision here.
        name="phone",
        kind=PIIKind.PHONE,
        regex=(
            r"(?:\+?1[\-. ]?)?\(?\d{3}\)?[\-. ]?\d{3}[\-. ]?\d{4}\b"
            r"|\b\d{3}[\-. ]\d{4}\b"
        ),
        score=0.85,
    ),
    PatternDefinition(
        name="ssn",
        kind=PIIKind.SSN,
        regex=r"\b\d{3}-\d{2}-\d{4}\b",
        score=0.90,
    ),
    PatternDefinition(
        # Four groups of four digits, optionally separated by dash or space.
        name="credit_card",
        kind=PIIKind.CREDIT_CARD,
        regex=r"\b(?:\d{4}[\- ]?){3}\d{4}\b",
        score=0.85,
    ),
    PatternDefinition(
        name="ipv4",
        kind=PIIKind.IP_ADDRESS,
        regex=r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b",
        score=0.80,
    ),
    PatternDefinition(
        name="honorific_name",
        kind=PIIKind.NAME,
        regex=(
            r"\b(?:" + "|".join(h.replace(".", r"\.") for h in HONORIFICS) + r")"
            r"\s+[A-Z][a-z]+\b"
        ),
        score=0.70,
    ),
    PatternDefinition(
        name="street_address",
        kind=PIIKind.ADDRESS,
        regex=(
            r"\b\d+\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+"
            r"(?:" + "|".join(STREET_SUFFIXES) + r")\.?\b"
        ),
        score=0.65,
    ),
]


def get_all_patterns(kinds: list[PIIKind] | None = None) -> list[PatternDefinition]:
    """Return PatternDefinition objects, optionally filtered by kind.

    Parameters
    ----------
    kinds:
        If None, return all patterns in catalogue order.
        Otherwise return only patterns whose kind is in the list, still in
        catalogue order.
    """
    if kinds is None:
        return list(DEFAULT_PATTERNS)
    wanted = set(kinds)
    return [p for p in DEFAULT_PATTERNS if p.kind in wanted]
