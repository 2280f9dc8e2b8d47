"""Deterministic PII detector: the regex battery from patterns.py.

Runs every PatternDefinition over the full text, unions the raw matches in
catalogue order and hands them to the reconciler, so the returned result
never contains overlapping spans.  Same text + same catalogue always gives
the same result.

Never log raw text values; only kinds, rule names and counts appear in log
output.
"""
from __future__ import annotations

import logging
import re

from qtiguard.pii.entities import DetectionResult, DetectionSource, PIIEntity
from qtiguard.pii.patterns import PATTERN_FLAGS, PatternDefinition, get_all_patterns
from qtiguard.pii.reconciler import reconcile

logger = logging.getLogger(__name__)


class PatternDetector:
    """Regex-based implementation of the PIIDetector protocol.

    Holds only compiled patterns, so one instance may be shared across
    threads and calls.
    """

    def __init__(self, patterns: list[PatternDefinition] | None = None) -> None:
        """Compile the rule battery.

        Parameters
        ----------
        patterns:
            Rules to run, in order.  Defaults to the full catalogue.
        """
        self._patterns = list(patterns) if patterns is not None else get_all_patterns()
        self._compiled: list[tuple[PatternDefinition, re.Pattern[str]]] = [
            (p, re.compile(p.regex, PATTERN_FLAGS)) for p in self._patterns
        ]

    @property
    def patterns(self) -> list[PatternDefinition]:
        return list(self._patterns)

    def find_candidates(self, text: str) -> list[PIIEntity]:
        """Return every raw rule match, unreconciled, in rule order."""
        candidates: list[PIIEntity] = []
        for pattern, compiled in self._compiled:
            hits = 0
            for match in compiled.finditer(text):
                start, end = match.span()
                if start == end:
                    continue
                candidates.append(PIIEntity(
                    kind=pattern.kind,
                    value=match.group(0),
                    start=start,
                    end=end,
                    confidence=pattern.score,
                    source=DetectionSource.REGEX,
                ))
                hits += 1
            if hits:
                # SAFETY: rule metadata only, never the matched span
                logger.debug("Pattern %s fired %d time(s)", pattern.name, hits)
        return candidates

    def detect(self, text: str) -> DetectionResult:
        """Run the battery over *text* and return the reconciled result."""
        if not text:
            return DetectionResult.empty(text or "")
        return reconcile(text, self.find_candidates(text))
